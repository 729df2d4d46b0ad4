"""Per-page in-flight request counters used as an idle signal."""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Any, Callable, Dict, List, Tuple

log = logging.getLogger(__name__)

TRACKED_RESOURCE_TYPES = frozenset({"xhr", "fetch"})


class RequestTracker:
    """Counts outstanding xhr/fetch requests for each tracked page."""

    def __init__(self, poll_interval_ms: int = 100) -> None:
        self.poll_interval_ms = poll_interval_ms
        self._pending: Dict[str, int] = {}
        self._listeners: Dict[str, List[Tuple[str, Callable[..., Any]]]] = {}

    def track(self, page_id: str, page: Any) -> None:
        if page_id in self._listeners:
            return
        self._pending[page_id] = 0

        def on_request(request: Any) -> None:
            if request.resource_type in TRACKED_RESOURCE_TYPES:
                self.increment(page_id)

        def on_settled(request: Any) -> None:
            if request.resource_type in TRACKED_RESOURCE_TYPES:
                self.decrement(page_id)

        listeners = [
            ("request", on_request),
            ("requestfinished", on_settled),
            ("requestfailed", on_settled),
        ]
        for event, handler in listeners:
            page.on(event, handler)
        self._listeners[page_id] = listeners

    def forget(self, page_id: str, page: Any = None) -> None:
        listeners = self._listeners.pop(page_id, [])
        self._pending.pop(page_id, None)
        if page is None:
            return
        for event, handler in listeners:
            try:
                page.remove_listener(event, handler)
            except (KeyError, ValueError):
                continue

    def increment(self, page_id: str) -> None:
        self._pending[page_id] = self._pending.get(page_id, 0) + 1

    def decrement(self, page_id: str) -> None:
        self._pending[page_id] = max(0, self._pending.get(page_id, 0) - 1)

    def pending(self, page_id: str) -> int:
        return self._pending.get(page_id, 0)

    async def wait_for_app_idle(self, page_id: str, timeout_ms: int = 10000, idle_window_ms: int = 500) -> bool:
        """Poll until no tracked request has been pending for ``idle_window_ms``.

        Returns ``True`` when the idle window was observed and ``False`` when
        ``timeout_ms`` elapsed first.
        """

        start = time.monotonic()
        idle_since = None
        while True:
            now = time.monotonic()
            if self.pending(page_id) == 0:
                if idle_since is None:
                    idle_since = now
                if (now - idle_since) * 1000 >= idle_window_ms:
                    return True
            else:
                idle_since = None
            if (now - start) * 1000 >= timeout_ms:
                log.debug("Page %s still has %d pending requests after %dms", page_id, self.pending(page_id), timeout_ms)
                return False
            await asyncio.sleep(self.poll_interval_ms / 1000)


__all__ = ["RequestTracker", "TRACKED_RESOURCE_TYPES"]
