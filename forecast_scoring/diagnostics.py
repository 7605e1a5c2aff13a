"""
Diagnostics Module - Non-fatal messages and safe invocation of scoring rules.

Problems that should not abort a scoring run (a metric that errors, a stale
attribute, duplicated forecasts) are recorded as Diagnostic entries and carried
along with the result instead of being raised.
"""

import inspect
import logging
import warnings
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Literal, Optional

logger = logging.getLogger(__name__)


@dataclass
class Diagnostic:
    """A single message collected while validating or scoring."""
    level: Literal["message", "warning", "error"]
    message: str
    source: Optional[str] = None            # Metric or function that produced it

    def __str__(self) -> str:
        prefix = f"[{self.source}] " if self.source else ""
        return f"{prefix}{self.message}"


@dataclass
class SafeResult:
    """Return value of a safely invoked function plus anything it reported."""
    value: Any
    diagnostics: List[Diagnostic] = field(default_factory=list)

    @property
    def failed(self) -> bool:
        return any(d.level == "error" for d in self.diagnostics)


def warn(message: str, diagnostics: Optional[List[Diagnostic]] = None,
         source: Optional[str] = None, stacklevel: int = 3) -> Diagnostic:
    """Issue a UserWarning and record it as a diagnostic."""
    diagnostic = Diagnostic(level="warning", message=message, source=source)
    if diagnostics is not None:
        diagnostics.append(diagnostic)
    warnings.warn(message, UserWarning, stacklevel=stacklevel)
    return diagnostic


def _accepted_kwargs(fun: Callable, kwargs: Dict[str, Any]) -> Dict[str, Any]:
    """Keep only the keyword arguments that fun declares."""
    try:
        params = inspect.signature(fun).parameters.values()
    except (TypeError, ValueError):
        # Builtins without a signature get everything
        return dict(kwargs)

    if any(p.kind == inspect.Parameter.VAR_KEYWORD for p in params):
        return dict(kwargs)
    names = {
        p.name for p in params
        if p.kind in (inspect.Parameter.POSITIONAL_OR_KEYWORD, inspect.Parameter.KEYWORD_ONLY)
    }
    return {k: v for k, v in kwargs.items() if k in names}


def run_safely(fun: Callable, *args, metric_name: Optional[str] = None, **kwargs) -> SafeResult:
    """
    Call fun, passing only the keyword arguments it accepts, without ever raising.

    Positional arguments are passed through unchanged. Keyword arguments are
    filtered against the signature of fun, unless fun takes **kwargs, in which
    case all of them are forwarded.

    Args:
        fun: Function to call
        *args: Positional arguments (observed, predicted, ...)
        metric_name: Name used to label diagnostics and log lines
        **kwargs: Candidate keyword arguments

    Returns:
        SafeResult: value is None if fun raised; warnings emitted by fun are
        captured as diagnostics and the value is kept.
    """
    source = metric_name or getattr(fun, "__name__", repr(fun))
    call_kwargs = _accepted_kwargs(fun, kwargs)
    diagnostics: List[Diagnostic] = []

    with warnings.catch_warnings(record=True) as caught:
        warnings.simplefilter("always")
        try:
            value = fun(*args, **call_kwargs)
        except Exception as e:
            value = None
            diagnostics.append(Diagnostic(
                level="error",
                message=f"Function '{source}' errored and returned no value: {type(e).__name__}: {e}",
                source=source,
            ))

    diagnostics = [
        Diagnostic(level="warning", message=str(w.message), source=source) for w in caught
    ] + diagnostics

    for d in diagnostics:
        logger.warning(str(d))

    return SafeResult(value=value, diagnostics=diagnostics)
