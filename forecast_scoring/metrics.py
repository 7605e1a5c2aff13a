"""
Metrics Module - Scoring rules and the registry of default rule sets.

Every scoring rule takes observed and predicted (and quantile_level for
quantile forecasts) and returns one value per forecast:

- point:    observed (n,), predicted (n,)
- binary:   observed (n,) categorical with two levels, predicted (n,) probabilities
- sample:   observed (n,), predicted (n, n_samples)
- quantile: observed (n,), predicted (n, n_quantiles), quantile_level (n_quantiles,)
"""

from dataclasses import dataclass
from functools import partial
from typing import Callable, Dict, Iterable, List, Literal, Mapping, Optional

import numpy as np
import pandas as pd

from . import weighted_interval_score as wis
from .config import Config
from .diagnostics import Diagnostic, warn
from .validation import ForecastType, ValidationError, get_type


# Point forecasts

def ae_point(observed, predicted) -> np.ndarray:
    return np.abs(np.asarray(observed, dtype=float) - np.asarray(predicted, dtype=float))


def se_point(observed, predicted) -> np.ndarray:
    return (np.asarray(observed, dtype=float) - np.asarray(predicted, dtype=float)) ** 2


def ape(observed, predicted) -> np.ndarray:
    """Absolute percentage error, relative to the observed value."""
    observed = np.asarray(observed, dtype=float)
    return np.abs(observed - np.asarray(predicted, dtype=float)) / np.abs(observed)


# Binary forecasts

def _binary_outcome(observed) -> np.ndarray:
    """Encode a two-level categorical as 0/1, with the second level as the event."""
    if isinstance(getattr(observed, "dtype", None), pd.CategoricalDtype):
        categorical = pd.Categorical(observed)
        if len(categorical.categories) != 2:
            raise ValueError("Binary outcomes need exactly two levels")
        return categorical.codes.astype(float)
    return np.asarray(observed, dtype=float)


def brier_score(observed, predicted) -> np.ndarray:
    return (_binary_outcome(observed) - np.asarray(predicted, dtype=float)) ** 2


def log_score_binary(observed, predicted) -> np.ndarray:
    outcome = _binary_outcome(observed)
    predicted = np.asarray(predicted, dtype=float)
    return -np.log(np.where(outcome == 1, predicted, 1 - predicted))


# Sample-based forecasts

def _sample_inputs(observed, predicted):
    observed = np.asarray(observed, dtype=float).reshape(-1)
    predicted = np.asarray(predicted, dtype=float)
    if predicted.ndim == 1:
        predicted = predicted.reshape((observed.size, -1))
    if predicted.shape[0] != observed.size:
        raise ValueError(
            f"Number of rows of predicted ({predicted.shape[0]}) does not match "
            f"the number of observations ({observed.size})"
        )
    return observed, predicted


def crps_sample(observed, predicted) -> np.ndarray:
    """
    Continuous ranked probability score estimated from samples.

    Uses E|X - y| - 1/2 E|X - X'|, with the second term computed from the
    sorted samples in O(m log m).
    """
    observed, predicted = _sample_inputs(observed, predicted)
    m = predicted.shape[1]
    abs_error = np.mean(np.abs(predicted - observed.reshape((-1, 1))), axis=1)
    ordered = np.sort(predicted, axis=1)
    ranks = 2 * np.arange(1, m + 1) - m - 1
    spread = 2 * np.sum(ordered * ranks, axis=1) / m ** 2
    return abs_error - 0.5 * spread


def dss_sample(observed, predicted) -> np.ndarray:
    """Dawid-Sebastiani score from the sample mean and standard deviation."""
    observed, predicted = _sample_inputs(observed, predicted)
    mean = np.mean(predicted, axis=1)
    sigma = np.std(predicted, axis=1, ddof=1)
    return ((observed - mean) / sigma) ** 2 + 2 * np.log(sigma)


def mad_sample(observed, predicted, constant: float = 1.4826) -> np.ndarray:
    """Median absolute deviation of the samples, a measure of dispersion."""
    _, predicted = _sample_inputs(observed, predicted)
    median = np.median(predicted, axis=1, keepdims=True)
    return constant * np.median(np.abs(predicted - median), axis=1)


def bias_sample(observed, predicted) -> np.ndarray:
    """
    Bias of sample forecasts, between -1 (underprediction) and 1 (overprediction).

    Continuous: 1 - 2 * P(X <= y). Integer: 1 - (P(X <= y) + P(X <= y - 1)).
    """
    observed, predicted = _sample_inputs(observed, predicted)
    y = observed.reshape((-1, 1))
    below = np.mean(predicted <= y, axis=1)
    if get_type(predicted) == "integer" and get_type(observed) == "integer":
        return 1 - (below + np.mean(predicted <= y - 1, axis=1))
    return 1 - 2 * below


def ae_median_sample(observed, predicted) -> np.ndarray:
    observed, predicted = _sample_inputs(observed, predicted)
    return np.abs(observed - np.median(predicted, axis=1))


def se_mean_sample(observed, predicted) -> np.ndarray:
    observed, predicted = _sample_inputs(observed, predicted)
    return (observed - np.mean(predicted, axis=1)) ** 2


@dataclass
class MetricSpec:
    """Specification for a scoring metric with metadata."""
    name: str                               # Column name in the scores table
    fun: Callable                           # Scoring rule
    forecast_types: List[ForecastType]      # Forecast types the rule applies to
    orientation: Literal["min", "max"]      # Lower is better vs higher is better
    family: str                             # Metric family ("wis", "crps", "coverage")
    default: bool = True                    # Part of the default rule set
    per_quantile: bool = False              # Returns one value per quantile level


def _interval_coverage_spec(interval_range: int) -> MetricSpec:
    return MetricSpec(
        name=f"interval_coverage_{interval_range}",
        fun=partial(wis.interval_coverage, interval_range=interval_range),
        forecast_types=[ForecastType.QUANTILE],
        orientation="max",
        family="coverage",
    )


class MetricRegistry:
    """Registry of all available scoring metrics."""

    AE_POINT = MetricSpec("ae_point", ae_point, [ForecastType.POINT], "min", "absolute_error")
    SE_POINT = MetricSpec("se_point", se_point, [ForecastType.POINT], "min", "squared_error")
    APE = MetricSpec("ape", ape, [ForecastType.POINT], "min", "absolute_error")

    BRIER_SCORE = MetricSpec("brier_score", brier_score, [ForecastType.BINARY], "min", "brier")
    LOG_SCORE_BINARY = MetricSpec("log_score", log_score_binary, [ForecastType.BINARY], "min", "log_score")

    WIS = MetricSpec("wis", wis.wis, [ForecastType.QUANTILE], "min", "wis")
    OVERPREDICTION = MetricSpec("overprediction", wis.overprediction_quantile, [ForecastType.QUANTILE], "min", "wis")
    UNDERPREDICTION = MetricSpec("underprediction", wis.underprediction_quantile, [ForecastType.QUANTILE], "min", "wis")
    DISPERSION = MetricSpec("dispersion", wis.dispersion_quantile, [ForecastType.QUANTILE], "min", "wis")
    BIAS_QUANTILE = MetricSpec("bias", wis.bias_quantile, [ForecastType.QUANTILE], "min", "bias")
    INTERVAL_COVERAGE = [_interval_coverage_spec(r) for r in Config.DEFAULT_INTERVAL_RANGES]
    AE_MEDIAN_QUANTILE = MetricSpec("ae_median", wis.ae_median_quantile, [ForecastType.QUANTILE], "min", "absolute_error")
    QUANTILE_SCORE = MetricSpec(
        "quantile_score", wis.quantile_score, [ForecastType.QUANTILE], "min", "wis",
        default=False, per_quantile=True,
    )

    BIAS_SAMPLE = MetricSpec("bias", bias_sample, [ForecastType.SAMPLE], "min", "bias")
    DSS = MetricSpec("dss", dss_sample, [ForecastType.SAMPLE], "min", "dss")
    CRPS = MetricSpec("crps", crps_sample, [ForecastType.SAMPLE], "min", "crps")
    MAD = MetricSpec("mad", mad_sample, [ForecastType.SAMPLE], "min", "dispersion")
    AE_MEDIAN_SAMPLE = MetricSpec("ae_median", ae_median_sample, [ForecastType.SAMPLE], "min", "absolute_error")
    SE_MEAN_SAMPLE = MetricSpec("se_mean", se_mean_sample, [ForecastType.SAMPLE], "min", "squared_error")

    # Convenient groupings
    POINT = [AE_POINT, SE_POINT, APE]
    BINARY = [BRIER_SCORE, LOG_SCORE_BINARY]
    QUANTILE = [WIS, OVERPREDICTION, UNDERPREDICTION, DISPERSION, BIAS_QUANTILE,
                *INTERVAL_COVERAGE, AE_MEDIAN_QUANTILE, QUANTILE_SCORE]
    SAMPLE = [BIAS_SAMPLE, DSS, CRPS, MAD, AE_MEDIAN_SAMPLE, SE_MEAN_SAMPLE]
    ALL = POINT + BINARY + QUANTILE + SAMPLE

    @classmethod
    def for_type(cls, forecast_type) -> List[MetricSpec]:
        forecast_type = ForecastType(forecast_type)
        return [spec for spec in cls.ALL if forecast_type in spec.forecast_types]


def select_metrics(rules: Mapping[str, Callable], select: Optional[Iterable[str]] = None,
                   exclude: Optional[Iterable[str]] = None) -> Dict[str, Callable]:
    """
    Select or exclude rules by name. Only one of select/exclude is used; select wins.

    Raises:
        ValidationError: If a selected or excluded name is unknown
    """
    rules = dict(rules)
    if select is not None:
        select = list(select)
        unknown = [name for name in select if name not in rules]
        if unknown:
            raise ValidationError(f"Unknown metrics selected: {unknown}. Available: {list(rules)}")
        return {name: rules[name] for name in select}
    if exclude is not None:
        exclude = list(exclude)
        unknown = [name for name in exclude if name not in rules]
        if unknown:
            raise ValidationError(f"Unknown metrics excluded: {unknown}. Available: {list(rules)}")
        return {name: fun for name, fun in rules.items() if name not in exclude}
    return rules


def get_rules(forecast_type, select: Optional[Iterable[str]] = None,
              exclude: Optional[Iterable[str]] = None) -> Dict[str, Callable]:
    """Default rule set for a forecast type, as a name -> function mapping."""
    rules = {spec.name: spec.fun for spec in MetricRegistry.for_type(forecast_type) if spec.default}
    return select_metrics(rules, select=select, exclude=exclude)


def rules_point(select=None, exclude=None) -> Dict[str, Callable]:
    return get_rules(ForecastType.POINT, select, exclude)


def rules_binary(select=None, exclude=None) -> Dict[str, Callable]:
    return get_rules(ForecastType.BINARY, select, exclude)


def rules_quantile(select=None, exclude=None) -> Dict[str, Callable]:
    return get_rules(ForecastType.QUANTILE, select, exclude)


def rules_sample(select=None, exclude=None) -> Dict[str, Callable]:
    return get_rules(ForecastType.SAMPLE, select, exclude)


def available_metrics() -> List[str]:
    """Names of all registered metrics, in registry order."""
    return list(dict.fromkeys(spec.name for spec in MetricRegistry.ALL))


def validate_metrics(metrics, diagnostics: Optional[List[Diagnostic]] = None) -> Dict[str, Callable]:
    """
    Check a mapping of metric name -> scoring function.

    Entries that are not callable are dropped with a warning.

    Raises:
        ValidationError: If metrics is not a mapping or no callable remains
    """
    if not isinstance(metrics, Mapping):
        raise ValidationError(
            f"`metrics` must be a mapping of metric names to scoring functions, got {type(metrics).__name__}"
        )
    valid = {}
    for name, fun in metrics.items():
        if callable(fun):
            valid[str(name)] = fun
        else:
            warn(f"`metrics` element '{name}' is not a valid function and was removed", diagnostics,
                 source="validate_metrics")
    if not valid:
        raise ValidationError("`metrics` contains no valid scoring functions")
    return valid
