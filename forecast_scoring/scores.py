"""
Scores Module - Container for unsummarised and summarised scores.

A Scores record is a table of scores together with the names of the columns
that hold metric output. Everything else in the table identifies a forecast.
"""

from dataclasses import dataclass, field
from typing import List, Optional

import pandas as pd

from .diagnostics import Diagnostic, warn
from .validation import ValidationError


@dataclass
class Scores:
    data: pd.DataFrame                      # Forecast unit columns + one column per metric
    score_names: Optional[List[str]]        # Columns holding metric output
    diagnostics: List[Diagnostic] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.data)

    def __getitem__(self, key):
        return self.data[key]

    @property
    def columns(self) -> pd.Index:
        return self.data.columns

    def to_frame(self) -> pd.DataFrame:
        return self.data.copy()


def new_scores(data: pd.DataFrame, score_names,
               diagnostics: Optional[List[Diagnostic]] = None) -> Scores:
    """Wrap a table in a Scores record without validating it."""
    score_names = None if score_names is None else list(dict.fromkeys(score_names))
    return Scores(
        data=pd.DataFrame(data).reset_index(drop=True),
        score_names=score_names,
        diagnostics=list(diagnostics or []),
    )


def as_scores(data, score_names, diagnostics: Optional[List[Diagnostic]] = None) -> Scores:
    """
    Create a validated Scores record.

    The diagnostics are copied onto the new record, which also receives any
    warning raised while validating it.

    Raises:
        ValidationError: If data is not a DataFrame or score_names is missing
    """
    if not isinstance(data, pd.DataFrame):
        raise ValidationError(f"Scores must be a DataFrame, got {type(data).__name__}")
    scores = new_scores(data, score_names, diagnostics)
    validate_scores(scores, scores.diagnostics)
    return scores


def validate_scores(scores, diagnostics: Optional[List[Diagnostic]] = None) -> None:
    """
    Check that scores is a Scores record with recorded score names.

    Missing score columns only produce a warning, recorded in diagnostics if
    given. The record itself is not modified.

    Raises:
        ValidationError: If scores is not a Scores record or has no score names
    """
    if not isinstance(scores, Scores):
        raise ValidationError(f"Expected a Scores record, got {type(scores).__name__}")
    if not isinstance(scores.data, pd.DataFrame):
        raise ValidationError("Scores record does not hold a DataFrame")
    get_score_names(scores, error=True, diagnostics=diagnostics)


def get_score_names(scores, error: bool = False,
                    diagnostics: Optional[List[Diagnostic]] = None) -> Optional[List[str]]:
    """
    Get the names of the scoring rules that were used for scoring.

    Warns if any recorded name is no longer a column of the data, which can
    happen when columns are renamed after scoring. Update the record with
    `scores.score_names = [...]` or score again to fix it.

    Args:
        scores: Scores (or Forecast) record
        error: Raise if there are no recorded score names
        diagnostics: Optional list the warning is appended to

    Returns:
        List of score names, or None if no scores were recorded

    Raises:
        ValidationError: If error is True and no score names are recorded
    """
    score_names = getattr(scores, "score_names", None)
    if error and score_names is None:
        raise ValidationError(
            "Object needs a `score_names` attribute with the names of the "
            "scoring rules that were used for scoring."
        )
    if score_names is None:
        return None

    data = getattr(scores, "data", scores)
    missing = [name for name in score_names if name not in data.columns]
    if missing:
        warn(
            "The following scores have been previously computed, but are no longer "
            f"column names of the data: `{', '.join(missing)}`. "
            "Score again or update `score_names`.",
            diagnostics,
            source="get_score_names",
        )
    return list(score_names)
