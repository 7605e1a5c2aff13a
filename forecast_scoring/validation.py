"""
Validation Module - Data format and consistency checks.

This module provides validation functions to catch common data format issues
before they cause silent failures in scoring, and infers the forecast type of
a table of forecasts.
"""

from enum import Enum
from typing import Iterable, List, Optional

import numpy as np
import pandas as pd

from .config import Config
from .diagnostics import Diagnostic, warn


class ValidationError(Exception):
    """Custom exception for validation failures."""
    pass


class ForecastType(str, Enum):
    """The four supported forecast types, in inference priority order."""
    BINARY = "binary"
    QUANTILE = "quantile"
    SAMPLE = "sample"
    POINT = "point"

    def __str__(self) -> str:
        return self.value


def frame_of(data) -> pd.DataFrame:
    """Return the DataFrame held by a Forecast or Scores record, or data itself."""
    if isinstance(data, pd.DataFrame):
        return data
    frame = getattr(data, "data", None)
    if isinstance(frame, pd.DataFrame):
        return frame
    raise ValidationError(f"Expected a DataFrame, got {type(data).__name__}")


def check_columns_present(data, columns: Iterable[str], context: str = "data") -> None:
    """
    Validate that all columns are present.

    Raises:
        ValidationError: If any column is missing
    """
    df = frame_of(data)
    missing_cols = [col for col in columns if col not in df.columns]
    if missing_cols:
        raise ValidationError(f"{context} missing required columns: {missing_cols}")


def has_columns(data, columns: Iterable[str]) -> bool:
    df = frame_of(data)
    return all(col in df.columns for col in columns)


def lacks_columns(data, columns: Iterable[str]) -> bool:
    df = frame_of(data)
    return not any(col in df.columns for col in columns)


def is_categorical(x) -> bool:
    return isinstance(getattr(x, "dtype", None), pd.CategoricalDtype)


def is_numeric(x) -> bool:
    """Numeric but not boolean."""
    dtype = getattr(x, "dtype", None)
    if dtype is None or isinstance(dtype, pd.CategoricalDtype):
        return False
    return pd.api.types.is_numeric_dtype(dtype) and not pd.api.types.is_bool_dtype(dtype)


# Forecast type predicates

def is_forecast_type_binary(data) -> bool:
    df = frame_of(data)
    return is_categorical(df[Config.OBSERVED]) and is_numeric(df[Config.PREDICTED])


def is_forecast_type_quantile(data) -> bool:
    df = frame_of(data)
    return (
        is_numeric(df[Config.OBSERVED])
        and is_numeric(df[Config.PREDICTED])
        and has_columns(df, [Config.QUANTILE_LEVEL])
    )


def is_forecast_type_sample(data) -> bool:
    df = frame_of(data)
    return (
        is_numeric(df[Config.OBSERVED])
        and is_numeric(df[Config.PREDICTED])
        and has_columns(df, [Config.SAMPLE_ID])
    )


def is_forecast_type_point(data) -> bool:
    df = frame_of(data)
    return (
        is_numeric(df[Config.OBSERVED])
        and is_numeric(df[Config.PREDICTED])
        and lacks_columns(df, Config.TYPE_COLUMNS)
    )


_TYPE_PREDICATES = (
    (ForecastType.BINARY, is_forecast_type_binary),
    (ForecastType.QUANTILE, is_forecast_type_quantile),
    (ForecastType.SAMPLE, is_forecast_type_sample),
    (ForecastType.POINT, is_forecast_type_point),
)


def get_forecast_type(data, diagnostics: Optional[List[Diagnostic]] = None) -> ForecastType:
    """
    Infer the forecast type of a table of forecasts.

    The predicates are evaluated in the order binary, quantile, sample, point
    and the first one that matches wins. If data is a Forecast record whose
    stored forecast_type disagrees with the inferred one, a warning is issued
    (and recorded in diagnostics) but the inferred type is returned.

    Args:
        data: DataFrame or Forecast record with 'observed' and 'predicted' columns
        diagnostics: Optional list that conflict warnings are appended to

    Returns:
        ForecastType: The inferred type

    Raises:
        ValidationError: If required columns are missing or no type matches
    """
    df = frame_of(data)
    check_columns_present(df, [Config.OBSERVED, Config.PREDICTED])

    forecast_type = None
    for candidate, predicate in _TYPE_PREDICATES:
        if predicate(df):
            forecast_type = candidate
            break

    if forecast_type is None:
        raise ValidationError(
            "Checking `data`: input doesn't satisfy criteria for any forecast type. "
            "Are you missing a column `quantile_level` or `sample_id`? "
            "'observed' must be numeric or categorical and 'predicted' must be numeric."
        )

    stored = getattr(data, "forecast_type", None)
    if stored is not None and ForecastType(stored) != forecast_type:
        warn(
            f"Object has an attribute `forecast_type`, but it looks different from what's expected "
            f"based on the data.\nExisting: {ForecastType(stored)}\nExpected: {forecast_type}\n"
            "Running `as_forecast()` again might solve the problem.",
            diagnostics,
            source="get_forecast_type",
        )
    return forecast_type


def get_type(x) -> str:
    """
    Classify a vector of observed values or predictions.

    Returns:
        str: "classification" for categoricals, "integer" if every value is a
        whole number (or the dtype is integer), "continuous" otherwise

    Raises:
        ValidationError: If x is not numeric or all values are missing
    """
    if is_categorical(x):
        return "classification"

    arr = np.asarray(x)
    if arr.dtype == object:
        try:
            arr = arr.astype(float)
        except (TypeError, ValueError):
            raise ValidationError("Can't get type: values are not numeric")
    if not (np.issubdtype(arr.dtype, np.number) and not np.issubdtype(arr.dtype, np.bool_)):
        raise ValidationError("Can't get type: values are not numeric")

    arr = arr.ravel()
    if arr.size == 0 or np.all(np.isnan(arr.astype(float))):
        raise ValidationError("Can't get type: all values are missing")
    if np.issubdtype(arr.dtype, np.integer):
        return "integer"

    finite = arr[np.isfinite(arr)]
    if finite.size > 0 and np.all(finite == np.trunc(finite)):
        return "integer"
    return "continuous"


def validate_forecast_type_data(df: pd.DataFrame, forecast_type: ForecastType) -> None:
    """
    Check the requirements specific to a forecast type.

    Raises:
        ValidationError: If the data does not satisfy them
    """
    forecast_type = ForecastType(forecast_type)
    observed = df[Config.OBSERVED]
    predicted = df[Config.PREDICTED]

    if forecast_type == ForecastType.BINARY:
        n_levels = len(observed.cat.categories)
        if n_levels != 2:
            raise ValidationError(
                f"Binary forecasts need 'observed' to be categorical with exactly two levels, found {n_levels}"
            )
        valid = predicted.dropna()
        if ((valid < 0) | (valid > 1)).any():
            raise ValidationError("Binary forecasts need 'predicted' to be a probability between 0 and 1")

    elif forecast_type == ForecastType.QUANTILE:
        levels = df[Config.QUANTILE_LEVEL]
        if not is_numeric(levels):
            raise ValidationError("Quantile forecasts contain non-numeric values in 'quantile_level'")
        valid = levels.dropna()
        if ((valid < 0) | (valid > 1)).any():
            raise ValidationError("Quantile forecasts need 'quantile_level' values between 0 and 1")

    elif forecast_type == ForecastType.SAMPLE:
        check_columns_present(df, [Config.SAMPLE_ID], "sample forecast")

    elif forecast_type == ForecastType.POINT:
        if not (is_numeric(observed) and is_numeric(predicted)):
            raise ValidationError("Point forecasts need numeric 'observed' and 'predicted' columns")
