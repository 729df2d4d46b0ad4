"""Replay engine executing recorded actions against live Playwright pages."""

from .config import ReplayConfig, load_config
from .errors import (
    ForceActionError,
    NoUniqueSelectorError,
    PageNotFoundError,
    ReplayError,
    ReplayInProgressError,
    ServiceUnavailableError,
    StatementExecutionError,
)
from .events import EventBuffer, EventHub, ReplayObserver
from .executor import ActionDispatcher, ReplayReport
from .page_registry import PageRegistry
from .request_tracker import RequestTracker
from .selector_resolver import SelectorResolver
from .session import BrowserSession

__all__ = [
    "ActionDispatcher",
    "BrowserSession",
    "EventBuffer",
    "EventHub",
    "ForceActionError",
    "NoUniqueSelectorError",
    "PageNotFoundError",
    "PageRegistry",
    "ReplayConfig",
    "ReplayError",
    "ReplayInProgressError",
    "ReplayObserver",
    "ReplayReport",
    "RequestTracker",
    "SelectorResolver",
    "ServiceUnavailableError",
    "StatementExecutionError",
    "load_config",
]
