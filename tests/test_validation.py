"""
Tests for forecast type inference and input validation.
"""

import dataclasses

import pytest
import pandas as pd
import numpy as np

import forecast_scoring as fs
from forecast_scoring import validation
from forecast_scoring.validation import ForecastType, ValidationError


class TestForecastType:
    """Forecast type inference and predicate priority."""

    def test_point(self, point_df):
        assert fs.get_forecast_type(point_df) == "point"

    def test_quantile_level_makes_quantile(self, point_df):
        df = point_df.assign(quantile_level=0.5)
        assert fs.get_forecast_type(df) == ForecastType.QUANTILE

    def test_sample_id_makes_sample(self, point_df):
        df = point_df.assign(sample_id=1)
        assert fs.get_forecast_type(df) == ForecastType.SAMPLE

    def test_categorical_observed_makes_binary(self, binary_df):
        assert fs.get_forecast_type(binary_df) == ForecastType.BINARY

    def test_binary_wins_over_quantile(self, binary_df):
        """A categorical outcome with a quantile_level column is still binary."""
        df = binary_df.assign(quantile_level=0.5)
        assert fs.get_forecast_type(df) == ForecastType.BINARY

    def test_quantile_wins_over_sample(self, point_df):
        df = point_df.assign(quantile_level=0.5, sample_id=1)
        assert fs.get_forecast_type(df) == ForecastType.QUANTILE

    def test_missing_columns(self):
        with pytest.raises(ValidationError, match="missing required columns"):
            fs.get_forecast_type(pd.DataFrame({"observed": [1.0]}))

    def test_no_type_matches(self):
        df = pd.DataFrame({"observed": ["a", "b"], "predicted": [1.0, 2.0]})
        with pytest.raises(ValidationError, match="quantile_level` or `sample_id"):
            fs.get_forecast_type(df)

    def test_boolean_is_not_numeric(self):
        df = pd.DataFrame({"observed": [True, False], "predicted": [0.1, 0.2]})
        with pytest.raises(ValidationError):
            fs.get_forecast_type(df)

    def test_stale_forecast_type_warns(self, point_df):
        """A stored type that disagrees with the data is a warning, not an error."""
        forecast = fs.as_forecast(point_df)
        stale = dataclasses.replace(forecast, forecast_type=ForecastType.QUANTILE, diagnostics=[])

        with pytest.warns(UserWarning, match="forecast_type"):
            inferred = fs.get_forecast_type(stale, stale.diagnostics)

        assert inferred == ForecastType.POINT
        assert len(stale.diagnostics) == 1
        assert stale.diagnostics[0].level == "warning"

    def test_predicates(self, point_df, binary_df):
        assert validation.is_forecast_type_point(point_df)
        assert not validation.is_forecast_type_sample(point_df)
        assert validation.is_forecast_type_binary(binary_df)
        assert validation.has_columns(point_df, ["observed", "predicted"])
        assert validation.lacks_columns(point_df, ["sample_id", "quantile_level"])

    def test_no_public_test_functions(self):
        """Nothing in the library looks like a test to the collector."""
        assert [name for name in dir(validation) if name.startswith("test")] == []


class TestGetType:
    """Classification of value vectors."""

    def test_categorical(self):
        assert fs.get_type(pd.Series(pd.Categorical(["a", "b"]))) == "classification"

    def test_integer_dtype(self):
        assert fs.get_type(np.array([1, 2, 3])) == "integer"

    def test_whole_floats_are_integer(self):
        assert fs.get_type([1.0, 2.0, np.nan]) == "integer"

    def test_continuous(self):
        assert fs.get_type([1.5, 2.0]) == "continuous"

    def test_matrix(self):
        assert fs.get_type(np.array([[1.0, 2.0], [3.0, 4.5]])) == "continuous"

    def test_all_missing(self):
        with pytest.raises(ValidationError, match="all values are missing"):
            fs.get_type([np.nan, np.nan])

    def test_not_numeric(self):
        with pytest.raises(ValidationError, match="not numeric"):
            fs.get_type(["a", "b"])


class TestTypeSpecificValidation:
    """Checks applied by as_forecast for each forecast type."""

    def test_binary_needs_two_levels(self, binary_df):
        df = binary_df.copy()
        df["observed"] = pd.Categorical(["no", "yes", "no", "yes"], categories=["no", "yes", "maybe"])
        with pytest.raises(ValidationError, match="exactly two levels"):
            fs.as_forecast(df)

    def test_binary_needs_probabilities(self, binary_df):
        df = binary_df.assign(predicted=[0.2, 1.5, 0.5, 0.4])
        with pytest.raises(ValidationError, match="between 0 and 1"):
            fs.as_forecast(df)

    def test_quantile_level_range(self, quantile_df):
        df = quantile_df.copy()
        df.loc[0, "quantile_level"] = 1.5
        with pytest.raises(ValidationError, match="between 0 and 1"):
            fs.as_forecast(df)

    def test_requested_type_must_match(self, point_df):
        with pytest.raises(ValidationError, match="was requested"):
            fs.as_forecast(point_df, forecast_type="sample")
