"""Browser session owning the Playwright objects, the page registry and the dispatcher."""

from __future__ import annotations

import logging
import time
import uuid
from typing import Any, Dict, Optional, Sequence

from playwright.async_api import Browser, BrowserContext, Playwright, async_playwright
from playwright.async_api import Error as PlaywrightError

from .config import ReplayConfig, ensure_run_directories, load_config
from .errors import ReplayError, ReplayInProgressError
from .events import EventHub
from .executor import ActionDispatcher
from .page_registry import PageRegistry
from .request_tracker import RequestTracker
from .services import FileContentService, HttpFileContentService, HttpStatementRunner, StatementRunner
from .structured_logging import StructuredLogger, prepare_log_paths

log = logging.getLogger(__name__)

_LAUNCH_ARGS = ["--no-sandbox", "--disable-setuid-sandbox"]

_SET_ASSERT_MODE_JS = """
([enabled, kind]) => {
  if (typeof window.setAssertMode !== 'function') return false;
  window.setAssertMode(enabled, kind);
  return true;
}
"""


class BrowserSession:
    def __init__(
        self,
        config: Optional[ReplayConfig] = None,
        events: Optional[EventHub] = None,
        *,
        statements: Optional[StatementRunner] = None,
        files: Optional[FileContentService] = None,
    ) -> None:
        self.config = config or load_config()
        self.events = events or EventHub()
        self.tracker = RequestTracker(poll_interval_ms=self.config.idle_poll_ms)
        self.pages = PageRegistry(
            self.events,
            self.tracker,
            min_window_width=self.config.min_window_width,
            min_window_height=self.config.min_window_height,
            resize_settle_ms=self.config.resize_settle_ms,
        )
        if statements is None:
            statements = HttpStatementRunner.from_config(self.config)
        if files is None:
            files = HttpFileContentService.from_config(self.config)
        self.dispatcher = ActionDispatcher(
            self.pages,
            self.tracker,
            self.config,
            self.events,
            statements=statements,
            files=files,
        )
        self._playwright: Optional[Playwright] = None
        self._browser: Optional[Browser] = None
        self._context: Optional[BrowserContext] = None
        self._stopping = False

    @property
    def is_running(self) -> bool:
        return self._context is not None

    @property
    def is_executing(self) -> bool:
        return self.dispatcher.is_executing

    async def start(self) -> None:
        if self.is_running:
            log.info("Browser already started")
            return
        self._stopping = False
        self.pages.closing = False
        if self._playwright is not None:
            # Left behind by a browser that disconnected on its own.
            log.info("Stopping stale Playwright driver before restart")
            stale, self._playwright = self._playwright, None
            await stale.stop()
        self._playwright = await async_playwright().start()
        self._browser = await self._playwright.chromium.launch(headless=self.config.headless, args=_LAUNCH_ARGS)
        self._browser.on("disconnected", self._handle_disconnected)
        self._context = await self._browser.new_context(no_viewport=True)
        script = self.config.tracking_script
        if script is not None:
            if script.exists():
                await self._context.add_init_script(path=str(script))
            else:
                log.warning("Tracking script %s not found; recording hooks disabled", script)
        self.pages.attach(self._context, on_teardown=self.stop)
        await self.pages.create_page()
        log.info("Browser session started (headless=%s)", self.config.headless)

    def _handle_disconnected(self, *_: Any) -> None:
        log.info("Browser disconnected")
        self._browser = None
        self._context = None
        self.events.browser_closed()

    async def stop(self) -> None:
        if self._stopping:
            return
        self._stopping = True
        self.pages.begin_teardown()
        context, browser, playwright = self._context, self._browser, self._playwright
        self._context = self._browser = self._playwright = None
        try:
            if context is not None:
                await context.close()
            if browser is not None:
                await browser.close()
        except PlaywrightError as exc:
            log.debug("Error while closing browser: %s", exc)
        finally:
            if playwright is not None:
                await playwright.stop()
        log.info("Browser stopped")
        self.events.browser_stopped()

    async def execute_actions(self, actions: Sequence[Any], run_id: Optional[str] = None) -> Dict[str, Any]:
        if not self.is_running:
            raise ReplayError("Browser session is not started", code="NOT_STARTED")
        if self.dispatcher.is_executing:
            raise ReplayInProgressError()
        run_id = run_id or f"run-{int(time.time())}-{uuid.uuid4().hex[:6]}"
        dirs = ensure_run_directories(run_id, self.config)
        paths = prepare_log_paths(run_id, dirs["base"])
        run_log = StructuredLogger(run_id, paths)
        try:
            report = await self.dispatcher.execute_actions(actions, run_log)
        finally:
            run_log.close()
        payload = report.as_dict()
        payload["run_id"] = run_id
        payload["log_path"] = str(paths.events)
        return payload

    async def navigate(self, url: str, page_index: Optional[int] = None) -> str:
        if not self.is_running:
            raise ReplayError("Browser session is not started", code="NOT_STARTED")
        if page_index is not None:
            page = self.pages.get_page(page_index)
        else:
            page = self.pages.active_page
        if page is None:
            page = (await self.pages.create_page()).page
        await page.goto(url)
        return page.url

    async def set_assert_mode(self, enabled: bool, assert_type: Optional[str] = None) -> int:
        """Relay the assertion toggle to every live page; returns how many accepted it."""

        updated = 0
        for entry in self.pages.live_pages():
            try:
                if await entry.page.evaluate(_SET_ASSERT_MODE_JS, [enabled, assert_type]):
                    updated += 1
            except PlaywrightError as exc:
                log.debug("set_assert_mode skipped for page %d: %s", entry.page_index, exc)
        return updated


__all__ = ["BrowserSession"]
