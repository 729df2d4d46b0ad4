"""Registry of live pages, their stable indices and the active pointer."""

from __future__ import annotations

import asyncio
import itertools
import logging
import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, List, Optional

from playwright.async_api import BrowserContext, Page
from playwright.async_api import Error as PlaywrightError

from scenario.values import WindowSize

from .errors import PageNotFoundError
from .events import EventHub
from .request_tracker import RequestTracker

log = logging.getLogger(__name__)

BLANK_URL = "blank"


@dataclass(slots=True)
class PageEntry:
    page: Page
    page_id: str
    page_index: int
    last_url: str = BLANK_URL

    def current_url(self) -> str:
        try:
            url = self.page.url
        except PlaywrightError:
            url = ""
        if url and url != "about:blank":
            self.last_url = url
        return self.last_url


class PageRegistry:
    """Owns the page handle to page index mapping for one browser context.

    Indices are assigned as ``max(existing) + 1`` (or 0 when empty) and never
    renumbered; a closed page's index is not reused while others stay open.
    """

    def __init__(
        self,
        events: EventHub,
        tracker: RequestTracker,
        *,
        min_window_width: int = 800,
        min_window_height: int = 600,
        resize_settle_ms: int = 300,
    ) -> None:
        self.events = events
        self.tracker = tracker
        self.min_window_width = min_window_width
        self.min_window_height = min_window_height
        self.resize_settle_ms = resize_settle_ms
        self.active_page_id: Optional[str] = None
        self.closing = False
        self._entries: Dict[str, PageEntry] = {}
        self._ids_by_handle: Dict[int, str] = {}
        self._id_counter = itertools.count(1)
        self._context: Optional[BrowserContext] = None
        self._on_teardown: Optional[Callable[[], Awaitable[None]]] = None

    def attach(
        self,
        context: BrowserContext,
        on_teardown: Optional[Callable[[], Awaitable[None]]] = None,
    ) -> None:
        self._context = context
        self._on_teardown = on_teardown
        context.on("page", self._handle_new_page)
        context.on("close", self._handle_context_close)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------
    async def _handle_new_page(self, page: Page) -> None:
        try:
            await self.register_page(page)
        except PlaywrightError as exc:
            log.warning("Failed to register new page: %s", exc)

    async def register_page(self, page: Page) -> PageEntry:
        existing = self._ids_by_handle.get(id(page))
        if existing is not None and existing in self._entries:
            return self._entries[existing]

        page_index = max((entry.page_index for entry in self._entries.values()), default=-1) + 1
        page_id = f"page-{next(self._id_counter)}"
        entry = PageEntry(page=page, page_id=page_id, page_index=page_index)
        self._entries[page_id] = entry
        self._ids_by_handle[id(page)] = page_id
        self.active_page_id = page_id

        self._wire_page(entry)
        await self._inject_index(entry)
        opener_index = await self._opener_index(page)
        if opener_index is not None:
            url = entry.current_url()
        else:
            url = BLANK_URL
        log.info("Registered page %s with index %d (opener=%s)", page_id, page_index, opener_index)
        self.events.page_created(page_index, opener_index, url)
        return entry

    def _wire_page(self, entry: PageEntry) -> None:
        page = entry.page
        self.tracker.track(entry.page_id, page)

        def on_close(_: Any = None) -> None:
            self._handle_page_close(entry.page_id)

        def on_navigated(frame: Any) -> None:
            if frame == page.main_frame:
                entry.current_url()

        page.on("close", on_close)
        page.on("framenavigated", on_navigated)

    async def _inject_index(self, entry: PageEntry) -> None:
        script = f"window.__PAGE_INDEX__ = {entry.page_index};"
        try:
            await entry.page.add_init_script(script)
            await entry.page.evaluate(script)
        except PlaywrightError as exc:
            log.debug("Could not inject page index into %s: %s", entry.page_id, exc)

    async def _opener_index(self, page: Page) -> Optional[int]:
        try:
            opener = await page.opener()
        except PlaywrightError:
            return None
        if opener is None:
            return None
        opener_id = self._ids_by_handle.get(id(opener))
        entry = self._entries.get(opener_id) if opener_id else None
        return entry.page_index if entry else None

    def _handle_page_close(self, page_id: str) -> None:
        entry = self._purge(page_id)
        if entry is None:
            return
        log.info("Page %s (index %d) closed", page_id, entry.page_index)
        if self.closing:
            return
        self.events.page_closed(entry.page_index, entry.current_url())
        if not self._entries:
            self.events.browser_stopped()

    def _purge(self, page_id: str) -> Optional[PageEntry]:
        entry = self._entries.pop(page_id, None)
        if entry is None:
            return None
        self._ids_by_handle.pop(id(entry.page), None)
        self.tracker.forget(page_id, entry.page)
        return entry

    def begin_teardown(self) -> None:
        self.closing = True

    async def _handle_context_close(self, *_: Any) -> None:
        self.closing = True
        for entry in list(self._entries.values()):
            try:
                if not entry.page.is_closed():
                    await entry.page.close()
            except PlaywrightError as exc:
                log.debug("Closing page %s during teardown failed: %s", entry.page_id, exc)
            self._purge(entry.page_id)
        self.events.context_closed(time.time())
        if self._on_teardown is not None:
            await self._on_teardown()

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------
    def live_pages(self) -> List[PageEntry]:
        return sorted(self._entries.values(), key=lambda entry: entry.page_index)

    def entry_for(self, page: Page) -> Optional[PageEntry]:
        page_id = self._ids_by_handle.get(id(page))
        return self._entries.get(page_id) if page_id else None

    def get_page(self, page_index: int) -> Page:
        for page_id, entry in list(self._entries.items()):
            if entry.page_index != page_index:
                continue
            if entry.page.is_closed():
                log.debug("Purging stale page %s for index %d", page_id, page_index)
                self._purge(page_id)
                continue
            return entry.page
        raise PageNotFoundError(page_index)

    @property
    def active_page(self) -> Optional[Page]:
        entry = self._entries.get(self.active_page_id) if self.active_page_id else None
        return entry.page if entry else None

    def set_active(self, page: Page) -> None:
        entry = self.entry_for(page)
        if entry is not None:
            self.active_page_id = entry.page_id

    async def create_page(self, url: Optional[str] = None) -> PageEntry:
        if self._context is None:
            raise RuntimeError("Registry is not attached to a browser context")
        page = await self._context.new_page()
        entry = await self.register_page(page)
        if url and "http" in url:
            try:
                await page.goto(url)
            except PlaywrightError as exc:
                log.debug("Navigation of new page to %s failed: %s", url, exc)
        return entry

    async def wait_for_page(self, page_index: int, timeout_ms: int = 5000, poll_ms: int = 100) -> Page:
        deadline = time.monotonic() + timeout_ms / 1000
        while True:
            try:
                return self.get_page(page_index)
            except PageNotFoundError:
                if time.monotonic() >= deadline:
                    raise
            await asyncio.sleep(poll_ms / 1000)

    # ------------------------------------------------------------------
    # Window
    # ------------------------------------------------------------------
    async def resize_window(self, width: int, height: int) -> WindowSize:
        """Resize the OS window hosting the active page through CDP."""

        page = self.active_page
        if page is None or self._context is None:
            raise PageNotFoundError(-1)
        size = WindowSize(max(width, self.min_window_width), max(height, self.min_window_height))
        session = await self._context.new_cdp_session(page)
        try:
            target = await session.send("Browser.getWindowForTarget")
            window_id = target["windowId"]
            await session.send(
                "Browser.setWindowBounds",
                {"windowId": window_id, "bounds": {"windowState": "normal"}},
            )
            await session.send(
                "Browser.setWindowBounds",
                {"windowId": window_id, "bounds": {"width": size.width, "height": size.height}},
            )
        finally:
            try:
                await session.detach()
            except PlaywrightError:
                pass
        await asyncio.sleep(self.resize_settle_ms / 1000)
        return size


__all__ = ["BLANK_URL", "PageEntry", "PageRegistry"]
