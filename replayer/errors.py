"""Error taxonomy raised by the replay runtime."""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Tuple


class ReplayError(Exception):
    code = "REPLAY_ERROR"

    def __init__(self, message: str, *, code: Optional[str] = None, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code
        self.details = details or {}


class PageNotFoundError(ReplayError):
    code = "PAGE_NOT_FOUND"

    def __init__(self, page_index: int):
        super().__init__(f"Page with index {page_index} not found", details={"page_index": page_index})
        self.page_index = page_index


class NoUniqueSelectorError(ReplayError):
    code = "NO_UNIQUE_SELECTOR"

    def __init__(self, selectors: List[str]):
        super().__init__(
            "No selector matched any element",
            details={"selectors": list(selectors)},
        )
        self.selectors = list(selectors)


class ForceActionError(ReplayError):
    """Every selector failed the DOM-level fallback."""

    code = "FORCE_ACTION_FAILED"

    def __init__(self, kind: str, reasons: List[Tuple[str, str]]):
        summary = "; ".join(f"{selector}: {reason}" for selector, reason in reasons) or "no selectors"
        super().__init__(
            f"Force {kind} failed for all selectors ({summary})",
            details={"kind": kind, "reasons": [list(item) for item in reasons]},
        )
        self.kind = kind
        self.reasons = list(reasons)


class StatementExecutionError(ReplayError):
    code = "STATEMENT_FAILED"


class ServiceUnavailableError(ReplayError):
    code = "SERVICE_UNAVAILABLE"


class ReplayInProgressError(ReplayError):
    code = "IN_PROGRESS"

    def __init__(self, message: str = "Actions are already being executed"):
        super().__init__(message)


def error_code(exc: BaseException) -> str:
    """Return the taxonomy code for ``exc``, falling back to its class name."""

    return getattr(exc, "code", None) or type(exc).__name__


__all__ = [
    "ReplayError",
    "PageNotFoundError",
    "NoUniqueSelectorError",
    "ForceActionError",
    "StatementExecutionError",
    "ServiceUnavailableError",
    "ReplayInProgressError",
    "error_code",
]
