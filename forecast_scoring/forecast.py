"""
Forecast Module - The validated forecast record and forecast-unit helpers.

A Forecast pairs a table of forecasts with the metadata inferred from it
(forecast type, forecast unit, score names, diagnostics). Metadata is stored
on the record explicitly and never attached to the DataFrame itself.
"""

import dataclasses
import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence

import pandas as pd

from .config import Config
from .diagnostics import Diagnostic, warn
from .metrics import available_metrics
from .validation import (
    ForecastType,
    ValidationError,
    check_columns_present,
    frame_of,
    get_forecast_type,
    validate_forecast_type_data,
)

logger = logging.getLogger(__name__)


@dataclass
class Forecast:
    data: pd.DataFrame                      # One row per forecast (point/binary) or per sample/quantile
    forecast_type: ForecastType
    forecast_unit: List[str]                # Columns that identify a single forecast
    score_names: Optional[List[str]] = None  # Scores computed earlier and carried as columns
    diagnostics: List[Diagnostic] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.data)

    @property
    def messages(self) -> List[str]:
        return [str(d) for d in self.diagnostics if d.level == "message"]

    @property
    def warnings(self) -> List[str]:
        return [str(d) for d in self.diagnostics if d.level != "message"]


def recorded_score_names(data) -> List[str]:
    """Score names stored on a Forecast or Scores record, without any checks."""
    return list(getattr(data, "score_names", None) or [])


def get_protected_columns(data=None) -> List[str]:
    """
    Get the names of columns that are never part of the forecast unit.

    Args:
        data: Optional DataFrame, Forecast or Scores. If None, the full static
            list of reserved names is returned.

    Returns:
        List[str]: Without data, every reserved name. With data, the protected
        columns present in it (in column order), including columns that look
        like relative skill or coverage outputs and recorded score names.
    """
    protected = list(dict.fromkeys(list(Config.PROTECTED_COLUMNS) + available_metrics()))
    if data is None:
        return protected

    df = frame_of(data)
    dynamic = [
        col for col in df.columns
        if str(col).endswith(Config.RELATIVE_SKILL_SUFFIX) or Config.COVERAGE_MARKER in str(col)
    ]
    protected_set = set(protected) | set(dynamic) | set(recorded_score_names(data))
    return [col for col in df.columns if col in protected_set]


def get_forecast_unit(data) -> List[str]:
    """
    Get the columns that define the unit of a single forecast.

    This is every column minus the protected columns and minus the names of
    previously computed scores. An empty result means the whole table is one
    forecast.
    """
    df = frame_of(data)
    protected = set(get_protected_columns(data)) | set(recorded_score_names(data))
    return [col for col in df.columns if col not in protected]


def set_forecast_unit(data, forecast_unit: Sequence[str]):
    """
    Restrict the data to the given forecast unit.

    All columns that are neither in forecast_unit nor protected are dropped.
    Returns the same kind of object that was passed in.

    Raises:
        ValidationError: If a forecast unit column is not in the data
    """
    df = frame_of(data)
    forecast_unit = list(forecast_unit)
    check_columns_present(df, forecast_unit, "forecast unit")

    protected = set(get_protected_columns(data))
    keep = [col for col in df.columns if col in forecast_unit or col in protected]
    out = df[keep].copy()

    if isinstance(data, Forecast):
        restricted = dataclasses.replace(data, data=out, diagnostics=list(data.diagnostics))
        restricted.forecast_unit = get_forecast_unit(restricted)
        return restricted
    return out


def get_duplicate_forecasts(data, forecast_unit: Optional[Sequence[str]] = None) -> pd.DataFrame:
    """
    Find instances with more than one forecast for the same target.

    Rows are grouped by the forecast unit plus 'sample_id'/'quantile_level'
    where present. The input is not modified.

    Args:
        data: DataFrame or Forecast
        forecast_unit: Columns defining a single forecast. Inferred if None.

    Returns:
        pd.DataFrame: All rows that belong to a group with more than one row
    """
    df = frame_of(data)
    if forecast_unit is None:
        forecast_unit = get_forecast_unit(data)
    forecast_unit = list(forecast_unit)
    check_columns_present(df, forecast_unit, "forecast unit")

    type_columns = [col for col in Config.TYPE_COLUMNS if col in df.columns]
    keys = forecast_unit + [col for col in type_columns if col not in forecast_unit]

    if not keys:
        is_duplicate = pd.Series(len(df) > 1, index=df.index)
    else:
        group_ids = df.groupby(keys, dropna=False, sort=False, observed=True).ngroup()
        is_duplicate = group_ids.map(group_ids.value_counts()) > 1
    return df[is_duplicate].copy()


def as_forecast(data, forecast_unit: Optional[Sequence[str]] = None,
                forecast_type: Optional[str] = None) -> Forecast:
    """
    Validate a table of forecasts and wrap it in a Forecast record.

    Args:
        data: DataFrame with 'observed' and 'predicted' columns, or an existing Forecast
        forecast_unit: Optional columns defining a single forecast; other
            non-protected columns are dropped
        forecast_type: Optional expected type; must agree with the inferred one

    Returns:
        Forecast: The validated record

    Raises:
        ValidationError: If the data does not satisfy the requirements of any
            (or of the requested) forecast type
    """
    if not isinstance(data, (pd.DataFrame, Forecast)):
        raise ValidationError(f"Expected a DataFrame or Forecast, got {type(data).__name__}")

    diagnostics: List[Diagnostic] = list(getattr(data, "diagnostics", []))
    score_names = getattr(data, "score_names", None)
    df = frame_of(data).copy()
    check_columns_present(df, [Config.OBSERVED, Config.PREDICTED])

    inferred = get_forecast_type(data, diagnostics)
    if forecast_type is not None and ForecastType(forecast_type) != inferred:
        raise ValidationError(
            f"Forecast type '{ForecastType(forecast_type)}' was requested, "
            f"but the data looks like a '{inferred}' forecast"
        )
    validate_forecast_type_data(df, inferred)

    forecast = Forecast(
        data=df,
        forecast_type=inferred,
        forecast_unit=[],
        score_names=list(score_names) if score_names is not None else None,
        diagnostics=diagnostics,
    )
    if forecast_unit is not None:
        forecast = set_forecast_unit(forecast, forecast_unit)
    forecast.forecast_unit = get_forecast_unit(forecast)

    if len(forecast.forecast_unit) > Config.MAX_FORECAST_UNIT_COLUMNS:
        warn(
            f"The forecast unit has {len(forecast.forecast_unit)} columns: {forecast.forecast_unit}. "
            "Columns that do not identify a forecast make the grouping too fine; "
            "use `set_forecast_unit()` to specify the forecast unit explicitly.",
            forecast.diagnostics,
            source="as_forecast",
        )

    duplicates = get_duplicate_forecasts(forecast.data, forecast.forecast_unit)
    if not duplicates.empty:
        warn(
            f"There are {len(duplicates)} rows with more than one forecast for the same target. "
            "Run `get_duplicate_forecasts()` to find them.",
            forecast.diagnostics,
            source="as_forecast",
        )

    logger.info(f"Validated {forecast.forecast_type} forecast with {len(df)} rows, "
                f"forecast unit {forecast.forecast_unit}")
    return forecast


def validate_forecast(forecast: Forecast) -> Forecast:
    """
    Re-check a Forecast record before scoring.

    If the stored forecast type no longer matches the data, a warning is
    issued and the returned record carries the inferred type. The input
    record is left untouched; the returned copy holds its own diagnostics.

    Raises:
        ValidationError: If forecast is not a Forecast or its data no longer validates
    """
    if not isinstance(forecast, Forecast):
        raise ValidationError(f"Expected a Forecast, got {type(forecast).__name__}. Use `as_forecast()` first.")
    diagnostics = list(forecast.diagnostics)
    forecast_type = get_forecast_type(forecast, diagnostics)
    validate_forecast_type_data(forecast.data, forecast_type)
    return dataclasses.replace(forecast, forecast_type=forecast_type, diagnostics=diagnostics)


def get_attributes(obj) -> Dict[str, object]:
    """Collect the metadata of a Forecast or Scores record into a dict."""
    diagnostics = list(getattr(obj, "diagnostics", []) or [])
    return {
        "forecast_unit": getattr(obj, "forecast_unit", None),
        "forecast_type": getattr(obj, "forecast_type", None),
        "score_names": getattr(obj, "score_names", None),
        "messages": [str(d) for d in diagnostics if d.level == "message"],
        "warnings": [str(d) for d in diagnostics if d.level != "message"],
    }
