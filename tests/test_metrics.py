"""
Tests for scoring rules and default rule sets.
"""

import pytest
import pandas as pd
import numpy as np

import forecast_scoring as fs
from forecast_scoring import metrics
from forecast_scoring import weighted_interval_score as wis
from forecast_scoring.validation import ValidationError

LEVELS = np.array([0.05, 0.25, 0.5, 0.75, 0.95])


class TestRuleSets:
    """Default rules per forecast type."""

    def test_rule_names(self):
        assert list(fs.rules_point()) == ["ae_point", "se_point", "ape"]
        assert list(fs.rules_binary()) == ["brier_score", "log_score"]
        assert "wis" in fs.rules_quantile()
        assert "quantile_score" not in fs.rules_quantile()
        assert "crps" in fs.rules_sample()

    def test_select(self):
        assert list(fs.rules_sample(select=["crps", "dss"])) == ["crps", "dss"]

    def test_exclude(self):
        assert "ape" not in fs.rules_point(exclude=["ape"])

    def test_unknown_selection(self):
        with pytest.raises(ValidationError, match="Unknown metrics selected"):
            fs.rules_point(select=["wis"])

    def test_available_metrics_unique(self):
        names = fs.available_metrics()
        assert len(names) == len(set(names))
        assert {"wis", "crps", "brier_score", "quantile_score", "interval_coverage_90"} <= set(names)

    def test_for_type(self):
        specs = fs.MetricRegistry.for_type("binary")
        assert [spec.name for spec in specs] == ["brier_score", "log_score"]


class TestQuantileRules:
    """Weighted interval score and friends."""

    def test_perfect_median_only(self):
        observed = np.array([3.0])
        predicted = np.array([[3.0]])
        assert wis.wis(observed, predicted, [0.5]) == pytest.approx([0.0])

    def test_median_only_is_absolute_error(self):
        observed = np.array([3.0, 10.0])
        predicted = np.array([[5.0], [4.0]])
        # A lone median has weight 1/2 and normalisation 1/2
        np.testing.assert_allclose(wis.wis(observed, predicted, [0.5]), [2.0, 6.0])

    def test_components_add_up(self):
        observed = np.array([10.0, 0.0, 25.0])
        predicted = np.array([
            [5.0, 8.0, 10.0, 12.0, 15.0],
            [5.0, 8.0, 10.0, 12.0, 15.0],
            [5.0, 8.0, 10.0, 12.0, 15.0],
        ])
        parts = wis.weighted_interval_score_components(observed, predicted, LEVELS)
        np.testing.assert_allclose(
            parts["wis"], parts["dispersion"] + parts["overprediction"] + parts["underprediction"]
        )
        assert parts["overprediction"][1] > 0 and parts["underprediction"][1] == 0
        assert parts["underprediction"][2] > 0 and parts["overprediction"][2] == 0

    def test_asymmetric_levels(self):
        with pytest.raises(ValueError, match="symmetric"):
            wis.wis(np.array([1.0]), np.array([[0.0, 1.0, 2.0]]), [0.1, 0.5, 0.8])

    def test_crossing_quantiles_warn(self):
        with pytest.warns(UserWarning, match="not consistent"):
            wis.wis(np.array([1.0]), np.array([[3.0, 2.0, 1.0]]), [0.25, 0.5, 0.75])

    def test_interval_coverage(self):
        observed = np.array([10.0, 20.0])
        predicted = np.array([[5.0, 8.0, 10.0, 12.0, 15.0]] * 2)
        np.testing.assert_array_equal(wis.interval_coverage(observed, predicted, LEVELS, interval_range=90), [True, False])

    def test_bias_quantile(self):
        observed = np.array([10.0, 20.0, 9.0])
        predicted = np.array([[5.0, 8.0, 10.0, 12.0, 15.0]] * 3)
        np.testing.assert_allclose(wis.bias_quantile(observed, predicted, LEVELS), [0.0, -1.0, 0.5])


class TestPointBinarySampleRules:
    """Point, binary and sample rules."""

    def test_brier_score_numeric_outcome(self):
        np.testing.assert_allclose(metrics.brier_score([1, 0], [0.7, 0.7]), [0.09, 0.49])

    def test_brier_score_categorical_outcome(self):
        outcome = pd.Categorical(["yes", "no"], categories=["no", "yes"])
        np.testing.assert_allclose(metrics.brier_score(outcome, [0.7, 0.7]), [0.09, 0.49])

    def test_log_score_binary(self):
        np.testing.assert_allclose(metrics.log_score_binary([1, 0], [0.5, 0.5]), [np.log(2), np.log(2)])

    def test_crps_of_point_mass(self):
        """CRPS of identical samples is the absolute error."""
        predicted = np.full((1, 20), 4.0)
        assert metrics.crps_sample([6.0], predicted) == pytest.approx([2.0])

    def test_bias_sample_continuous(self):
        predicted = np.array([[1.0, 2.0, 3.0, 4.0]])
        assert metrics.bias_sample([2.5], predicted) == pytest.approx([0.0])

    def test_bias_sample_integer(self):
        predicted = np.array([[1, 2, 3, 4]])
        # 1 - (P(X <= 2) + P(X <= 1)) = 1 - (0.5 + 0.25)
        assert metrics.bias_sample(np.array([2]), predicted) == pytest.approx([0.25])

    def test_dss(self):
        predicted = np.array([[1.0, 3.0]])
        sigma = np.std([1.0, 3.0], ddof=1)
        expected = ((4.0 - 2.0) / sigma) ** 2 + 2 * np.log(sigma)
        assert metrics.dss_sample([4.0], predicted) == pytest.approx([expected])

    def test_validate_metrics(self):
        with pytest.warns(UserWarning, match="not a valid function"):
            valid = fs.validate_metrics({"se": metrics.se_point, "x": None})
        assert list(valid) == ["se"]

    def test_validate_metrics_nothing_callable(self):
        with pytest.raises(ValidationError, match="no valid scoring functions"):
            fs.validate_metrics({})
