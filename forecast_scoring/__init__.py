"""
forecast_scoring - Evaluate point and probabilistic forecasts with scoring rules.

This package provides modular components for forecast evaluation:

- forecast_scoring.forecast: Validated forecast records
  - as_forecast(): Infer the forecast type and wrap the data in a Forecast
  - get_forecast_unit(), set_forecast_unit(): Columns that identify one forecast
  - get_duplicate_forecasts(): Data-quality check before scoring

- forecast_scoring.coverage: Coverage of quantile forecasts
  - add_coverage(): Interval and quantile coverage columns, kept by score()

- forecast_scoring.evaluation: Scoring engine
  - score(): Apply scoring rules per forecast type

- forecast_scoring.summarise: Aggregation
  - summarise_scores(): Reduce scores by grouping columns

- forecast_scoring.metrics / forecast_scoring.weighted_interval_score: Scoring rules
  - rules_point(), rules_binary(), rules_quantile(), rules_sample(): Default rule sets

- forecast_scoring.validation: Forecast type inference and input checks
  - get_forecast_type(), get_type(), ValidationError

Usage:
    import forecast_scoring as fs

    forecast = fs.as_forecast(df)
    scores = fs.score(forecast)
    fs.summarise_scores(scores, by=["model"])
"""

__version__ = "0.1.0"

from .config import Config, configure_logging
from .coverage import add_coverage
from .diagnostics import Diagnostic, SafeResult, run_safely
from .evaluation import apply_rules, score
from .forecast import (
    Forecast,
    as_forecast,
    get_attributes,
    get_duplicate_forecasts,
    get_forecast_unit,
    get_protected_columns,
    set_forecast_unit,
    validate_forecast,
)
from .metrics import (
    MetricRegistry,
    MetricSpec,
    available_metrics,
    get_rules,
    rules_binary,
    rules_point,
    rules_quantile,
    rules_sample,
    select_metrics,
    validate_metrics,
)
from .scores import Scores, as_scores, get_score_names, new_scores, validate_scores
from .summarise import summarise_scores
from .validation import ForecastType, ValidationError, get_forecast_type, get_type

__all__ = [
    "Config", "configure_logging", "add_coverage",
    "Diagnostic", "SafeResult", "run_safely",
    "apply_rules", "score",
    "Forecast", "as_forecast", "get_attributes", "get_duplicate_forecasts",
    "get_forecast_unit", "get_protected_columns", "set_forecast_unit", "validate_forecast",
    "MetricRegistry", "MetricSpec", "available_metrics", "get_rules",
    "rules_binary", "rules_point", "rules_quantile", "rules_sample",
    "select_metrics", "validate_metrics",
    "Scores", "as_scores", "get_score_names", "new_scores", "validate_scores",
    "summarise_scores",
    "ForecastType", "ValidationError", "get_forecast_type", "get_type",
]
