"""
Weighted Interval Score and related scoring rules for quantile forecasts.

All functions share the quantile rule contract: observed has shape (n,),
predicted has shape (n, n_quantiles) with columns ordered like quantile_level,
and quantile_level has shape (n_quantiles,).
"""

import warnings
from typing import Dict, Tuple

import numpy as np


def _quantile_inputs(observed, predicted, quantile_level) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    observed = np.asarray(observed, dtype=float).reshape(-1)
    predicted = np.asarray(predicted, dtype=float)
    quantile_level = np.asarray(quantile_level, dtype=float).reshape(-1)
    if predicted.ndim == 1:
        predicted = predicted.reshape((1, -1)) if observed.size == 1 else predicted.reshape((-1, 1))
    if predicted.shape != (observed.size, quantile_level.size):
        raise ValueError(
            f"Shape of predicted {predicted.shape} does not match "
            f"{observed.size} observations and {quantile_level.size} quantile levels"
        )
    return observed, predicted, quantile_level


def _level_index(quantile_level: np.ndarray) -> Dict[float, int]:
    return {round(float(q), 10): i for i, q in enumerate(quantile_level)}


def _central_intervals(quantile_level: np.ndarray):
    """
    Pair up symmetric quantile levels into central prediction intervals.

    Returns:
        alphas (ascending), lower column indices, upper column indices, median column index or None
    """
    index = _level_index(quantile_level)
    lower_levels = sorted(q for q in index if q < 0.5)
    upper_levels = sorted(q for q in index if q > 0.5)
    if [round(1 - q, 10) for q in reversed(upper_levels)] != lower_levels:
        raise ValueError(
            "Quantile levels must be symmetric around the median to compute interval scores, "
            f"got {sorted(index)}"
        )
    alphas = np.array([2 * q for q in lower_levels])
    lower_idx = [index[q] for q in lower_levels]
    upper_idx = [index[round(1 - q, 10)] for q in lower_levels]
    median_idx = index.get(0.5)
    return alphas, lower_idx, upper_idx, median_idx


def weighted_interval_score_components(observed, predicted, quantile_level,
                                       check_consistency: bool = True) -> Dict[str, np.ndarray]:
    """
    Compute the weighted interval score and its decomposition.

    Each central interval (lower, upper) at level alpha contributes
    alpha / 2 * (upper - lower) to dispersion, (lower - observed)+ to
    overprediction and (observed - upper)+ to underprediction. The median, if
    present, contributes half its absolute error. Totals are normalised by the
    number of intervals (plus 1/2 for the median).

    Returns:
        Dict with 'wis', 'dispersion', 'overprediction', 'underprediction', each of shape (n,)
    """
    observed, predicted, quantile_level = _quantile_inputs(observed, predicted, quantile_level)
    alphas, lower_idx, upper_idx, median_idx = _central_intervals(quantile_level)

    n = observed.size
    lower_quantiles = predicted[:, lower_idx].T if lower_idx else np.empty((0, n))
    upper_quantiles = predicted[:, upper_idx].T if upper_idx else np.empty((0, n))

    if check_consistency and np.any(upper_quantiles - lower_quantiles < 0):
        warnings.warn("Quantiles are not consistent: some lower bounds exceed their upper bounds.")

    weights = (alphas / 2).reshape((-1, 1))
    sharpnesses = (upper_quantiles - lower_quantiles) * weights
    lower_calibrations = np.clip(lower_quantiles - observed.reshape((1, -1)), a_min=0, a_max=None)
    upper_calibrations = np.clip(observed.reshape((1, -1)) - upper_quantiles, a_min=0, a_max=None)

    dispersion = np.sum(sharpnesses, axis=0)
    overprediction = np.sum(lower_calibrations, axis=0)
    underprediction = np.sum(upper_calibrations, axis=0)
    n_intervals = float(len(lower_idx))

    if median_idx is not None:
        median = predicted[:, median_idx]
        overprediction = overprediction + 0.5 * np.clip(median - observed, a_min=0, a_max=None)
        underprediction = underprediction + 0.5 * np.clip(observed - median, a_min=0, a_max=None)
        n_intervals += 0.5

    if n_intervals == 0:
        raise ValueError("No central intervals or median available to compute interval scores")

    dispersion = dispersion / n_intervals
    overprediction = overprediction / n_intervals
    underprediction = underprediction / n_intervals
    return {
        "wis": dispersion + overprediction + underprediction,
        "dispersion": dispersion,
        "overprediction": overprediction,
        "underprediction": underprediction,
    }


def wis(observed, predicted, quantile_level, check_consistency: bool = True) -> np.ndarray:
    return weighted_interval_score_components(observed, predicted, quantile_level, check_consistency)["wis"]


def dispersion_quantile(observed, predicted, quantile_level) -> np.ndarray:
    return weighted_interval_score_components(
        observed, predicted, quantile_level, check_consistency=False
    )["dispersion"]


def overprediction_quantile(observed, predicted, quantile_level) -> np.ndarray:
    return weighted_interval_score_components(
        observed, predicted, quantile_level, check_consistency=False
    )["overprediction"]


def underprediction_quantile(observed, predicted, quantile_level) -> np.ndarray:
    return weighted_interval_score_components(
        observed, predicted, quantile_level, check_consistency=False
    )["underprediction"]


def quantile_score(observed, predicted, quantile_level) -> np.ndarray:
    """
    Twice the pinball loss, one value per forecast and quantile level.

    Averaging it over the levels of a symmetric set gives the WIS.

    Returns:
        Array of shape (n, n_quantiles)
    """
    observed, predicted, quantile_level = _quantile_inputs(observed, predicted, quantile_level)
    errors = observed.reshape((-1, 1)) - predicted
    below = (errors < 0).astype(float)
    return 2 * (quantile_level.reshape((1, -1)) - below) * errors


def interval_coverage(observed, predicted, quantile_level, interval_range: float = 50) -> np.ndarray:
    """Whether observed falls within the central prediction interval of the given range (in %)."""
    observed, predicted, quantile_level = _quantile_inputs(observed, predicted, quantile_level)
    index = _level_index(quantile_level)
    lower_level = round((100 - interval_range) / 200, 10)
    upper_level = round(1 - lower_level, 10)
    if lower_level not in index or upper_level not in index:
        raise ValueError(
            f"To compute the interval coverage for an interval range of {interval_range}%, "
            f"the {lower_level} and {upper_level} quantiles are required"
        )
    lower = predicted[:, index[lower_level]]
    upper = predicted[:, index[upper_level]]
    return (observed >= lower) & (observed <= upper)


def ae_median_quantile(observed, predicted, quantile_level) -> np.ndarray:
    """Absolute error of the median (0.5 quantile)."""
    observed, predicted, quantile_level = _quantile_inputs(observed, predicted, quantile_level)
    index = _level_index(quantile_level)
    if 0.5 not in index:
        raise ValueError("In order to compute the absolute error of the median, `0.5` must be among the quantiles given")
    return np.abs(observed - predicted[:, index[0.5]])


def bias_quantile(observed, predicted, quantile_level) -> np.ndarray:
    """
    Bias of quantile forecasts, between -1 (all quantiles below observed) and 1 (all above).

    Uses the lowest quantile level whose prediction reaches the observed value
    when the observation is above the median, and the highest level whose
    prediction stays below it otherwise.
    """
    observed, predicted, quantile_level = _quantile_inputs(observed, predicted, quantile_level)
    index = _level_index(quantile_level)
    if 0.5 not in index:
        raise ValueError("In order to compute bias for quantile forecasts, `0.5` must be among the quantiles given")
    median = predicted[:, index[0.5]]

    bias = np.zeros(observed.size)
    for i, (y, preds) in enumerate(zip(observed, predicted)):
        if y == median[i]:
            continue
        if y < median[i]:
            below = preds <= y
            bias[i] = 1.0 if not below.any() else 1 - 2 * quantile_level[below].max()
        else:
            above = preds >= y
            bias[i] = -1.0 if not above.any() else 1 - 2 * quantile_level[above].min()
    return bias
