"""
Summarise Module - Aggregate scores across groups of forecasts.
"""

import logging
from typing import Callable, List, Optional, Sequence

import numpy as np
import pandas as pd

from .forecast import get_forecast_unit
from .scores import Scores, new_scores, validate_scores
from .validation import ValidationError, check_columns_present

logger = logging.getLogger(__name__)


def _reduce(values: pd.Series, fun: Callable, fun_kwargs: dict):
    result = np.asarray(fun(values.to_numpy(), **fun_kwargs))
    if result.ndim > 0:
        # Element-wise functions (e.g. np.round) on a single-row group
        if result.size != 1:
            raise ValidationError(
                f"`fun` must reduce each group to a single value, got {result.size} values"
            )
        result = result.reshape(-1)[0]
    return result.item() if isinstance(result, np.ndarray) else result


def summarise_scores(
    scores: Scores,
    by: Optional[Sequence[str]] = None,
    across: Optional[Sequence[str]] = None,
    fun: Callable = np.mean,
    **kwargs,
) -> Scores:
    """
    Summarise scores by grouping and reducing each metric column.

    Args:
        scores: Scores record from `score()` (or a previous summary)
        by: Columns to group by. Defaults to the forecast unit, which collapses
            per-quantile rows to one row per forecast.
        across: Forecast unit columns to summarise across; the remaining
            forecast unit columns are used as `by`. Only one of by/across.
        fun: Reduction applied to each metric column of each group
        **kwargs: Passed on to fun

    Returns:
        Scores: One row per group with the `by` columns and the metric columns

    Raises:
        ValidationError: If both by and across are given, or columns are unknown
    """
    diagnostics = list(scores.diagnostics)
    validate_scores(scores, diagnostics)
    score_names = list(scores.score_names)
    df = scores.data
    forecast_unit = get_forecast_unit(scores)

    if by is not None and across is not None:
        raise ValidationError("You cannot specify both `by` and `across`. Please specify only one.")

    if across is not None:
        across = list(across)
        not_in_unit = [col for col in across if col not in forecast_unit]
        if not_in_unit:
            raise ValidationError(
                f"`across` must be a subset of the forecast unit {forecast_unit}, got {not_in_unit}"
            )
        by = [col for col in forecast_unit if col not in across]
    elif by is None:
        by = forecast_unit

    by = list(dict.fromkeys(by))
    check_columns_present(df, by, "scores")
    present_scores = [name for name in score_names if name in df.columns]
    overlap = [col for col in by if col in present_scores]
    if overlap:
        raise ValidationError(f"Cannot group by score columns: {overlap}")

    if not by:
        summary = pd.DataFrame(
            {name: [_reduce(df[name], fun, kwargs)] for name in present_scores}
        )
    else:
        grouped = df.groupby(by, dropna=False, sort=False, observed=True)
        summary = grouped[present_scores].agg(lambda values: _reduce(values, fun, kwargs)).reset_index()

    logger.debug(f"Summarised {len(df)} score rows into {len(summary)} rows by {by}")
    return new_scores(summary[by + present_scores], score_names, diagnostics)
