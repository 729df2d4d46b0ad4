"""Observer interface for replay lifecycle notifications."""

from __future__ import annotations

import logging
import threading
import time
from collections import deque
from typing import Any, Callable, Deque, Dict, List, Optional

log = logging.getLogger(__name__)


class ReplayObserver:
    """Base class for observers; every hook is a no-op by default."""

    def on_action_executing(self, index: int) -> None:
        pass

    def on_action_failed(self, index: int, error: str, code: str) -> None:
        pass

    def on_page_created(self, page_index: int, opener_index: Optional[int], url: str) -> None:
        pass

    def on_page_closed(self, page_index: int, url: str) -> None:
        pass

    def on_browser_stopped(self) -> None:
        pass

    def on_browser_closed(self) -> None:
        pass

    def on_context_closed(self, timestamp: float) -> None:
        pass


class EventHub:
    """Fans notifications out to subscribed observers.

    Notifications are fire-and-forget: an observer raising does not affect
    the others or the caller.
    """

    def __init__(self) -> None:
        self._observers: List[ReplayObserver] = []

    def subscribe(self, observer: ReplayObserver) -> Callable[[], None]:
        self._observers.append(observer)

        def unsubscribe() -> None:
            if observer in self._observers:
                self._observers.remove(observer)

        return unsubscribe

    def _notify(self, hook: str, *args: Any) -> None:
        for observer in list(self._observers):
            try:
                getattr(observer, hook)(*args)
            except Exception:
                log.exception("Observer %r failed handling %s", observer, hook)

    def action_executing(self, index: int) -> None:
        self._notify("on_action_executing", index)

    def action_failed(self, index: int, error: str, code: str) -> None:
        self._notify("on_action_failed", index, error, code)

    def page_created(self, page_index: int, opener_index: Optional[int], url: str) -> None:
        self._notify("on_page_created", page_index, opener_index, url)

    def page_closed(self, page_index: int, url: str) -> None:
        self._notify("on_page_closed", page_index, url)

    def browser_stopped(self) -> None:
        self._notify("on_browser_stopped")

    def browser_closed(self) -> None:
        self._notify("on_browser_closed")

    def context_closed(self, timestamp: Optional[float] = None) -> None:
        self._notify("on_context_closed", time.time() if timestamp is None else timestamp)


class EventBuffer(ReplayObserver):
    """Bounded, sequence-numbered event history for polling clients."""

    def __init__(self, maxlen: int = 1000) -> None:
        self._events: Deque[Dict[str, Any]] = deque(maxlen=maxlen)
        self._seq = 0
        self._lock = threading.Lock()

    def _append(self, event: str, **data: Any) -> None:
        with self._lock:
            self._seq += 1
            self._events.append({"seq": self._seq, "ts": time.time(), "event": event, **data})

    @property
    def last_seq(self) -> int:
        return self._seq

    def since(self, seq: int = 0) -> List[Dict[str, Any]]:
        with self._lock:
            return [dict(item) for item in self._events if item["seq"] > seq]

    def on_action_executing(self, index: int) -> None:
        self._append("action_executing", index=index)

    def on_action_failed(self, index: int, error: str, code: str) -> None:
        self._append("action_failed", index=index, error=error, code=code)

    def on_page_created(self, page_index: int, opener_index: Optional[int], url: str) -> None:
        self._append("page_created", page_index=page_index, opener_index=opener_index, url=url)

    def on_page_closed(self, page_index: int, url: str) -> None:
        self._append("page_closed", page_index=page_index, url=url)

    def on_browser_stopped(self) -> None:
        self._append("browser_stopped")

    def on_browser_closed(self) -> None:
        self._append("browser_closed")

    def on_context_closed(self, timestamp: float) -> None:
        self._append("context_closed", timestamp=timestamp)


__all__ = ["EventBuffer", "EventHub", "ReplayObserver"]
