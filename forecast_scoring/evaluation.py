"""
Evaluation Module - Apply scoring rules to a table of forecasts.

`score()` validates the input, reshapes it according to its forecast type and
applies every scoring rule through `run_safely`, so that one failing rule
never aborts the whole run:

- point / binary: rules are applied row-wise to observed and predicted
- sample: predictions of one forecast become a row of a (forecasts x samples) matrix
- quantile: predictions of one forecast, ordered by quantile level, become a
  row of a (forecasts x quantile levels) matrix; one score row per quantile level
"""

import logging
from typing import Callable, Dict, Iterator, List, Mapping, Optional, Sequence, Tuple

import numpy as np
import pandas as pd

from .config import Config
from .diagnostics import Diagnostic, run_safely
from .forecast import Forecast, as_forecast, get_forecast_unit, recorded_score_names, validate_forecast
from .metrics import get_rules, validate_metrics
from .scores import Scores, as_scores
from .validation import ForecastType, ValidationError

logger = logging.getLogger(__name__)


def score(data, metrics: Optional[Mapping[str, Callable]] = None, **kwargs) -> Scores:
    """
    Evaluate forecasts.

    Args:
        data: DataFrame of forecasts or a Forecast from `as_forecast()`
        metrics: Mapping of score name -> scoring rule. Defaults to the rule
            set for the forecast type (see `metrics.get_rules`).
        **kwargs: Options forwarded to every rule that accepts them

    Returns:
        Scores: One row per forecast (point, binary, sample) or per forecast
        and quantile level (quantile), with one column per metric. Problems
        raised by individual rules are in `Scores.diagnostics`.

    Raises:
        ValidationError: If the data is not a valid forecast
    """
    if isinstance(data, Forecast):
        forecast = validate_forecast(data)
    else:
        forecast = as_forecast(data)

    diagnostics: List[Diagnostic] = list(forecast.diagnostics)
    if metrics is None:
        metrics = get_rules(forecast.forecast_type)
    metrics = validate_metrics(metrics, diagnostics)

    existing_scores = recorded_score_names(forecast)
    forecast_unit = get_forecast_unit(forecast)
    df = forecast.data
    not_scores = [col for col in df.columns if col not in existing_scores]
    complete = df.dropna(subset=not_scores).reset_index(drop=True)
    if len(complete) < len(df):
        message = f"Removed {len(df) - len(complete)} rows with missing values before scoring"
        logger.info(message)
        diagnostics.append(Diagnostic(level="message", message=message, source="score"))
    if complete.empty:
        raise ValidationError("No forecasts left to score after removing rows with missing values")

    logger.info(f"Scoring {forecast.forecast_type} forecasts ({len(complete)} rows) "
                f"with metrics {list(metrics)}")

    forecast_type = forecast.forecast_type
    if forecast_type in (ForecastType.POINT, ForecastType.BINARY):
        scored, rule_diagnostics = _score_rowwise(complete, metrics, kwargs)
    elif forecast_type == ForecastType.SAMPLE:
        scored, rule_diagnostics = _score_sample(complete, forecast_unit, metrics, kwargs)
    elif forecast_type == ForecastType.QUANTILE:
        scored, rule_diagnostics = _score_quantile(complete, forecast_unit, metrics, kwargs)
    else:
        raise ValidationError(f"Unknown forecast type: {forecast_type}")
    diagnostics.extend(rule_diagnostics)

    # Scores computed earlier (e.g. coverage) stay scores if they survived reshaping
    score_names = [name for name in existing_scores if name in scored.columns and name not in metrics]
    score_names += list(metrics)
    return as_scores(scored, score_names, diagnostics)


def apply_rules(
    data: pd.DataFrame,
    metrics: Mapping[str, Callable],
    args: Sequence,
    options: Optional[Dict] = None,
    repeat: int = 1,
) -> Tuple[pd.DataFrame, List[Diagnostic]]:
    """
    Apply each scoring rule to args and store the result as a column of data.

    Rules are called through `run_safely`. A rule that fails, or returns a
    result of the wrong length, yields a column of NaN and a diagnostic.

    Args:
        data: Rows the scores belong to
        metrics: Mapping of score name -> scoring rule
        args: Positional arguments for every rule (observed, predicted, ...)
        options: Keyword arguments, passed to each rule that accepts them
        repeat: Rows of data per forecast; per-forecast values are repeated
            this many times

    Returns:
        The scored copy of data and the collected diagnostics
    """
    data = data.copy()
    options = dict(options or {})
    diagnostics: List[Diagnostic] = []

    for metric_name, fun in metrics.items():
        result = run_safely(fun, *args, metric_name=metric_name, **options)
        diagnostics.extend(result.diagnostics)
        try:
            values = _score_column(result.value, len(data), repeat)
        except ValueError as e:
            diagnostic = Diagnostic(level="error", message=str(e), source=metric_name)
            logger.warning(str(diagnostic))
            diagnostics.append(diagnostic)
            values = None
        data[metric_name] = np.nan if values is None else values

    return data, diagnostics


def _score_column(value, n_rows: int, repeat: int = 1) -> Optional[np.ndarray]:
    """Shape a rule's return value into one value per row."""
    if value is None:
        return None
    arr = np.asarray(value)
    if arr.ndim == 0:
        return np.repeat(arr, n_rows)
    if arr.ndim == 2 and arr.size == n_rows:
        return arr.reshape(-1)
    arr = arr.reshape(-1)
    if arr.size == n_rows:
        return arr
    if repeat > 1 and arr.size * repeat == n_rows:
        return np.repeat(arr, repeat)
    raise ValueError(
        f"Scoring rule returned {arr.size} values, expected one per forecast ({n_rows // repeat})"
    )


def _concat_partitions(results: List[pd.DataFrame], metrics) -> pd.DataFrame:
    """Stack partition results, with one dtype per metric column."""
    if len(results) > 1:
        for name in metrics:
            if len({r[name].dtype for r in results}) > 1:
                # e.g. a boolean rule that failed (NaN) in one partition only
                results = [r.assign(**{name: r[name].astype(float)}) for r in results]
    return pd.concat(results, ignore_index=True)


def _score_rowwise(df: pd.DataFrame, metrics, options) -> Tuple[pd.DataFrame, List[Diagnostic]]:
    # .values keeps binary outcomes as a Categorical
    observed = df[Config.OBSERVED].values
    predicted = df[Config.PREDICTED].to_numpy(dtype=float)
    return apply_rules(df, metrics, (observed, predicted), options)


def _iter_forecasts(df: pd.DataFrame, forecast_unit: List[str]) -> Iterator[Tuple[tuple, pd.DataFrame]]:
    """Yield (forecast unit values, rows) for every single forecast."""
    if not forecast_unit:
        yield (), df
        return
    for key, group in df.groupby(forecast_unit, dropna=False, sort=False, observed=True):
        yield key, group


def _single_observed(group: pd.DataFrame, forecast_unit: List[str], key: tuple) -> float:
    observed = group[Config.OBSERVED].unique()
    if len(observed) != 1:
        raise ValidationError(
            f"Forecast {dict(zip(forecast_unit, key))} has {len(observed)} different observed values. "
            "Check the forecast unit and run `get_duplicate_forecasts()`."
        )
    return observed[0]


def _identity_frame(keys: List[tuple], forecast_unit: List[str], df: pd.DataFrame) -> pd.DataFrame:
    """One row per forecast with the forecast unit columns, keeping their dtypes."""
    if not forecast_unit:
        return pd.DataFrame(index=range(len(keys)))
    ids = pd.DataFrame([tuple(k) for k in keys], columns=forecast_unit)
    for col in forecast_unit:
        ids[col] = ids[col].astype(df[col].dtype)
    return ids


def _score_sample(df: pd.DataFrame, forecast_unit: List[str], metrics,
                  options) -> Tuple[pd.DataFrame, List[Diagnostic]]:
    # Forecasts with different numbers of samples can't share a matrix
    partitions: Dict[int, list] = {}
    for key, group in _iter_forecasts(df, forecast_unit):
        observed = _single_observed(group, forecast_unit, key)
        predicted = group[Config.PREDICTED].to_numpy(dtype=float)
        partitions.setdefault(len(predicted), []).append((key, observed, predicted))

    results, diagnostics = [], []
    for n_samples in sorted(partitions):
        entries = partitions[n_samples]
        ids = _identity_frame([key for key, _, _ in entries], forecast_unit, df)
        observed = np.array([obs for _, obs, _ in entries], dtype=float)
        predicted = np.vstack([pred for _, _, pred in entries])
        logger.debug(f"Scoring {len(entries)} sample forecasts with {n_samples} samples each")

        scored, partition_diagnostics = apply_rules(ids, metrics, (observed, predicted), options)
        results.append(scored)
        diagnostics.extend(partition_diagnostics)

    return _concat_partitions(results, metrics), diagnostics


def _score_quantile(df: pd.DataFrame, forecast_unit: List[str], metrics,
                    options) -> Tuple[pd.DataFrame, List[Diagnostic]]:
    # Rules assume every forecast in a batch has the same quantile levels
    ordered = df.sort_values(Config.QUANTILE_LEVEL, kind="mergesort")
    partitions: Dict[tuple, list] = {}
    for key, group in _iter_forecasts(ordered, forecast_unit):
        _single_observed(group, forecast_unit, key)
        levels = tuple(group[Config.QUANTILE_LEVEL].to_numpy(dtype=float))
        partitions.setdefault(levels, []).append(group)

    results, diagnostics = [], []
    for levels in sorted(partitions):
        groups = partitions[levels]
        rows = pd.concat(groups, ignore_index=True)
        observed = np.array([g[Config.OBSERVED].iloc[0] for g in groups], dtype=float)
        predicted = np.vstack([g[Config.PREDICTED].to_numpy(dtype=float) for g in groups])
        quantile_level = np.array(levels)
        logger.debug(f"Scoring {len(groups)} quantile forecasts with levels {list(levels)}")

        scored, partition_diagnostics = apply_rules(
            rows, metrics, (observed, predicted, quantile_level), options, repeat=len(levels)
        )
        results.append(scored)
        diagnostics.extend(partition_diagnostics)

    return _concat_partitions(results, metrics), diagnostics
