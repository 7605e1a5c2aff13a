"""
Configuration settings for forecast scoring.
"""

import logging


class Config:
    """Configuration settings shared by the scoring modules."""

    # Core forecast columns
    OBSERVED = "observed"
    PREDICTED = "predicted"
    SAMPLE_ID = "sample_id"
    QUANTILE_LEVEL = "quantile_level"

    # Columns that identify a component of a forecast rather than the forecast itself
    TYPE_COLUMNS = (SAMPLE_ID, QUANTILE_LEVEL)

    # Coverage columns added to quantile forecasts by add_coverage()
    INTERVAL_RANGE = "interval_range"
    INTERVAL_COVERAGE = "interval_coverage"
    INTERVAL_COVERAGE_DEVIATION = "interval_coverage_deviation"
    QUANTILE_COVERAGE = "quantile_coverage"
    QUANTILE_COVERAGE_DEVIATION = "quantile_coverage_deviation"
    COVERAGE_COLUMNS = (
        INTERVAL_COVERAGE, INTERVAL_COVERAGE_DEVIATION, QUANTILE_COVERAGE, QUANTILE_COVERAGE_DEVIATION,
    )

    # Reserved names that are never part of the forecast unit
    PROTECTED_COLUMNS = (
        PREDICTED, OBSERVED, SAMPLE_ID, QUANTILE_LEVEL, "upper", "lower",
        "pit_value", INTERVAL_RANGE, "boundary", *COVERAGE_COLUMNS,
    )
    RELATIVE_SKILL_SUFFIX = "_relative_skill"
    COVERAGE_MARKER = "coverage_"

    # A forecast unit wider than this usually means extraneous columns were left in
    MAX_FORECAST_UNIT_COLUMNS = 8

    # Central prediction intervals scored by default for quantile forecasts
    DEFAULT_INTERVAL_RANGES = (50, 90)

    LOG_FORMAT = '%(asctime)s - %(levelname)s - %(message)s'


def configure_logging(level=logging.INFO) -> None:
    """Set up root logging with the package log format."""
    logging.basicConfig(level=level, format=Config.LOG_FORMAT)
