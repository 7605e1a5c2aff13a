"""
Coverage Module - Empirical coverage of central intervals and quantiles.

`add_coverage()` adds coverage columns to a quantile forecast before scoring.
They are recorded as score names, so `score()` keeps them next to the
metrics it computes and `summarise_scores()` can aggregate them, e.g. by
model and interval range.
"""

import dataclasses
import logging

import numpy as np
import pandas as pd

from .config import Config
from .forecast import Forecast, as_forecast, validate_forecast
from .validation import ForecastType, ValidationError

logger = logging.getLogger(__name__)


def interval_range_of(quantile_level) -> np.ndarray:
    """Range (in %) of the central interval a quantile level bounds; 0 for the median."""
    levels = np.asarray(quantile_level, dtype=float)
    return np.round(np.abs(1 - 2 * levels) * 100, 10)


def add_coverage(forecast) -> Forecast:
    """
    Add interval and quantile coverage columns to a quantile forecast.

    Columns added:
        interval_range: range of the central interval the row's quantile bounds
        interval_coverage: observed lies within that central interval
        interval_coverage_deviation: interval_coverage - interval_range / 100
        quantile_coverage: observed <= predicted
        quantile_coverage_deviation: quantile_coverage - quantile_level

    Rows with a missing observed or predicted value are dropped. Where only one
    bound of a central interval is present, interval coverage is missing.

    Args:
        forecast: Forecast record or DataFrame of quantile forecasts

    Returns:
        Forecast: A new record with the coverage columns added to its score names

    Raises:
        ValidationError: If the forecast is not a quantile forecast
    """
    if isinstance(forecast, Forecast):
        forecast = validate_forecast(forecast)
    else:
        forecast = as_forecast(forecast)
    if forecast.forecast_type != ForecastType.QUANTILE:
        raise ValidationError(
            f"Coverage can only be added to quantile forecasts, got a {forecast.forecast_type} forecast"
        )

    df = forecast.data.dropna(subset=[Config.OBSERVED, Config.PREDICTED]).reset_index(drop=True)
    levels = df[Config.QUANTILE_LEVEL].astype(float)
    observed = df[Config.OBSERVED].astype(float)
    predicted = df[Config.PREDICTED].astype(float)

    df[Config.INTERVAL_RANGE] = interval_range_of(levels)
    keys = [df[col] for col in forecast.forecast_unit + [Config.INTERVAL_RANGE]]
    lower = predicted.where(levels <= 0.5).groupby(keys, dropna=False, sort=False, observed=True).transform("max")
    upper = predicted.where(levels >= 0.5).groupby(keys, dropna=False, sort=False, observed=True).transform("min")

    interval_coverage = (observed >= lower) & (observed <= upper)
    bounds_missing = lower.isna() | upper.isna()
    if bounds_missing.any():
        logger.info(f"{int(bounds_missing.sum())} rows have no matching interval bound; interval coverage is missing")
        interval_coverage = interval_coverage.astype(float).where(~bounds_missing)
    quantile_coverage = observed <= predicted

    df[Config.INTERVAL_COVERAGE] = interval_coverage
    df[Config.INTERVAL_COVERAGE_DEVIATION] = interval_coverage.astype(float) - df[Config.INTERVAL_RANGE] / 100
    df[Config.QUANTILE_COVERAGE] = quantile_coverage
    df[Config.QUANTILE_COVERAGE_DEVIATION] = quantile_coverage.astype(float) - levels

    score_names = list(dict.fromkeys((forecast.score_names or []) + list(Config.COVERAGE_COLUMNS)))
    return dataclasses.replace(
        forecast, data=df, score_names=score_names, diagnostics=list(forecast.diagnostics)
    )
