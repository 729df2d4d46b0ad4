"""Sequential replay of an action list against the live pages of a session."""

from __future__ import annotations

import asyncio
import base64
import logging
import tempfile
import time
import uuid
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Union

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import Locator, Page

from scenario.models import Action, FileUpload
from scenario.payloads import (
    ActionValidationError,
    ApiRequestPayload,
    AssertPayload,
    BrowserStoragePayload,
    ChangePayload,
    CheckboxPayload,
    ClickPayload,
    DatabaseExecutionPayload,
    DragAndDropPayload,
    HistoryPayload,
    InputPayload,
    KeydownPayload,
    NavigatePayload,
    PageClosePayload,
    PageCreatePayload,
    PageFocusPayload,
    Payload,
    ScrollPayload,
    SelectPayload,
    UploadPayload,
    WaitPayload,
    WindowResizePayload,
)
from scenario.registry import ReplayPlan, ReplayStep

from .api_request import execute_api_request
from .browser_storage import write_browser_storage
from .config import ReplayConfig
from .errors import (
    PageNotFoundError,
    ReplayError,
    ReplayInProgressError,
    ServiceUnavailableError,
    StatementExecutionError,
    error_code,
)
from .events import EventHub
from .force_action import force_action
from .page_registry import PageRegistry
from .page_stability import settle_page
from .request_tracker import RequestTracker
from .selector_resolver import SelectorResolver
from .services import FileContentService, StatementRunner
from .structured_logging import StructuredLogger

log = logging.getLogger(__name__)

_SCROLL_ELEMENT_JS = """
(el, pos) => {
  const target = (el === document.body || el === document.documentElement) ? window : el;
  if (target.scrollTo) target.scrollTo({ left: pos.x, top: pos.y, behavior: 'instant' });
}
"""

_SCROLL_WINDOW_JS = "(pos) => window.scrollTo({ left: pos.x, top: pos.y, behavior: 'instant' })"

_FILES_POPULATED_JS = "(el) => !!el && !!el.files && el.files.length > 0"

# Errors that make the locator API unusable for an element and warrant the DOM fallback.
_FALLBACK_ERRORS = (PlaywrightError, ReplayError)


@dataclass(slots=True)
class ActionFailure:
    index: int
    action_type: str
    code: str
    error: str

    def as_dict(self) -> Dict[str, Any]:
        return {
            "index": self.index,
            "action_type": self.action_type,
            "code": self.code,
            "error": self.error,
        }


@dataclass(slots=True)
class ReplayReport:
    total: int
    failures: List[ActionFailure] = field(default_factory=list)
    duration_ms: float = 0.0

    @property
    def ok(self) -> bool:
        return not self.failures

    @property
    def failed_indices(self) -> List[int]:
        return [failure.index for failure in self.failures]

    def as_dict(self) -> Dict[str, Any]:
        return {
            "success": self.ok,
            "total": self.total,
            "failed_indices": self.failed_indices,
            "failures": [failure.as_dict() for failure in self.failures],
            "duration_ms": round(self.duration_ms, 1),
        }


def _decode_base64(content: str) -> bytes:
    if content.startswith("data:") and "," in content:
        content = content.split(",", 1)[1]
    return base64.b64decode(content)


class ActionDispatcher:
    """Runs action lists one at a time, reporting per-action failures.

    Every action runs even when earlier ones fail; the final
    ``action_executing(-1)`` notification always fires.
    """

    def __init__(
        self,
        pages: PageRegistry,
        tracker: RequestTracker,
        config: ReplayConfig,
        events: EventHub,
        *,
        statements: Optional[StatementRunner] = None,
        files: Optional[FileContentService] = None,
    ) -> None:
        self.pages = pages
        self.tracker = tracker
        self.config = config
        self.events = events
        self.statements = statements
        self.files = files
        self._executing = False

    @property
    def is_executing(self) -> bool:
        return self._executing

    async def execute_actions(
        self,
        actions: Union[ReplayPlan, Sequence[Union[Action, Dict[str, Any]]]],
        run_log: Optional[StructuredLogger] = None,
    ) -> ReplayReport:
        if self._executing:
            raise ReplayInProgressError()
        if not actions:
            raise ActionValidationError("Actions list is required and cannot be empty")
        plan = actions if isinstance(actions, ReplayPlan) else ReplayPlan.from_actions(actions)

        self._executing = True
        started = time.monotonic()
        failures: List[ActionFailure] = []
        try:
            last = len(plan) - 1
            for step in plan:
                failure = await self._run_step(step, run_log)
                if failure is not None:
                    failures.append(failure)
                if step.index < last and self.config.inter_action_delay_ms > 0:
                    await asyncio.sleep(self.config.inter_action_delay_ms / 1000)
        finally:
            self._executing = False
            self.events.action_executing(-1)
        report = ReplayReport(total=len(plan), failures=failures, duration_ms=(time.monotonic() - started) * 1000)
        log.info("Replayed %d action(s), %d failed", report.total, len(failures))
        return report

    async def _run_step(self, step: ReplayStep, run_log: Optional[StructuredLogger]) -> Optional[ActionFailure]:
        self.events.action_executing(step.index)
        started = time.monotonic()
        page: Optional[Page] = None
        failure: Optional[ActionFailure] = None
        try:
            payload = step.require_payload()
            if not isinstance(payload, PageCreatePayload):
                page = await self._target_page(step.page_index)
            page = await self._dispatch(step, page, payload)
        except Exception as exc:
            failure = ActionFailure(step.index, step.action_type, error_code(exc), str(exc))
            log.warning("Action %d (%s) failed: %s", step.index, step.action_type, exc)
            self.events.action_failed(step.index, failure.error, failure.code)

        if page is not None and not page.is_closed():
            await self._settle(page)

        if run_log is not None:
            run_log.log_action(
                index=step.index,
                action_type=step.action_type,
                page_index=step.page_index,
                status="failed" if failure else "ok",
                duration_ms=(time.monotonic() - started) * 1000,
                error=failure.error if failure else None,
                code=failure.code if failure else None,
            )
        return failure

    async def _target_page(self, page_index: int) -> Page:
        page = self.pages.get_page(page_index)
        self.pages.set_active(page)
        try:
            await page.bring_to_front()
        except PlaywrightError as exc:
            log.debug("bring_to_front failed for page %d: %s", page_index, exc)
        return page

    async def _settle(self, page: Page) -> None:
        await settle_page(page, self.config.load_state_timeout_ms)
        entry = self.pages.entry_for(page)
        if entry is not None:
            await self.tracker.wait_for_app_idle(
                entry.page_id,
                timeout_ms=self.config.idle_timeout_ms,
                idle_window_ms=self.config.idle_window_ms,
            )

    async def _locate(self, page: Page, selectors: Sequence[str]) -> Locator:
        resolved = await SelectorResolver(page, self.config.resolve_timeout_ms).resolve(selectors)
        return resolved.locator

    async def _dispatch(self, step: ReplayStep, page: Optional[Page], payload: Payload) -> Optional[Page]:
        """Perform ``payload`` and return the page that should be settled afterwards."""

        if isinstance(payload, PageCreatePayload):
            return await self._page_create(step, payload)
        if page is None:
            raise PageNotFoundError(step.page_index)

        timeout = self.config.action_timeout_ms
        if isinstance(payload, NavigatePayload):
            try:
                await page.goto(payload.url)
            except PlaywrightError as exc:
                log.debug("Navigation to %s ignored: %s", payload.url, exc)
        elif isinstance(payload, ClickPayload):
            await self._click(page, payload)
        elif isinstance(payload, InputPayload):
            try:
                locator = await self._locate(page, payload.selectors)
                await locator.fill(payload.value, timeout=timeout)
            except _FALLBACK_ERRORS as exc:
                log.info("Fill failed (%s); using force input", exc)
                await force_action(page, payload.selectors, "input", payload.value)
        elif isinstance(payload, SelectPayload):
            try:
                locator = await self._locate(page, payload.selectors)
                await locator.select_option(payload.value, timeout=timeout)
            except _FALLBACK_ERRORS as exc:
                log.info("Select failed (%s); using force select", exc)
                await force_action(page, payload.selectors, "select", payload.value)
        elif isinstance(payload, CheckboxPayload):
            locator = await self._locate(page, payload.selectors)
            await locator.set_checked(payload.checked, force=True, timeout=timeout)
        elif isinstance(payload, KeydownPayload):
            locator = await self._locate(page, payload.selectors)
            await locator.press(payload.key, timeout=timeout)
        elif isinstance(payload, UploadPayload):
            await self._upload(page, payload)
        elif isinstance(payload, ChangePayload):
            try:
                locator = await self._locate(page, payload.selectors)
                await locator.evaluate("(el) => el.click()")
            except _FALLBACK_ERRORS as exc:
                log.warning("Change action ignored: %s", exc)
        elif isinstance(payload, WaitPayload):
            await page.wait_for_timeout(payload.duration_ms)
        elif isinstance(payload, HistoryPayload):
            await self._history(page, payload)
        elif isinstance(payload, DragAndDropPayload):
            source = await self._locate(page, payload.source)
            target = await self._locate(page, payload.target)
            await source.drag_to(target, timeout=self.config.drag_timeout_ms)
        elif isinstance(payload, ScrollPayload):
            position = {"x": payload.position.x, "y": payload.position.y}
            if payload.selectors:
                locator = await self._locate(page, payload.selectors)
                await locator.evaluate(_SCROLL_ELEMENT_JS, position)
            else:
                await page.evaluate(_SCROLL_WINDOW_JS, position)
        elif isinstance(payload, WindowResizePayload):
            size = payload.size.clamped(
                self.config.min_window_width,
                self.config.min_window_height,
                self.config.default_window_width,
                self.config.default_window_height,
            )
            await self.pages.resize_window(size.width, size.height)
        elif isinstance(payload, ApiRequestPayload):
            await execute_api_request(page, payload.request)
        elif isinstance(payload, DatabaseExecutionPayload):
            await self._run_statement(payload)
        elif isinstance(payload, BrowserStoragePayload):
            await write_browser_storage(page, payload.storage)
        elif isinstance(payload, PageClosePayload):
            await page.close()
        elif isinstance(payload, (PageFocusPayload, AssertPayload)):
            log.debug("No browser-side effect for %s", step.action_type)
        else:
            raise ActionValidationError(f"Unsupported action type: {step.action_type}", action_type=step.action_type)
        return page

    async def _click(self, page: Page, payload: ClickPayload) -> None:
        kind = "dblclick" if payload.double else "click"
        try:
            locator = await self._locate(page, payload.selectors)
            if payload.double:
                await locator.dblclick(timeout=self.config.action_timeout_ms)
            else:
                await locator.click(timeout=self.config.action_timeout_ms)
        except _FALLBACK_ERRORS as exc:
            log.info("%s failed (%s); using force %s", kind, exc, kind)
            await force_action(page, payload.selectors, kind)

    async def _history(self, page: Page, payload: HistoryPayload) -> None:
        if payload.direction == "reload":
            await page.reload()
        elif payload.direction == "back":
            await page.go_back()
        else:
            await page.go_forward()

    async def _file_bytes(self, upload: FileUpload) -> bytes:
        content = upload.file_content
        if not content:
            if self.files is None:
                raise ServiceUnavailableError("File content service is not configured")
            content = await self.files.get_content(upload.file_path or "")
        return _decode_base64(content)

    async def _upload(self, page: Page, payload: UploadPayload) -> None:
        locator = await self._locate(page, payload.selectors)
        with tempfile.TemporaryDirectory(prefix="replay-upload-") as tmp:
            paths: List[Path] = []
            for upload in payload.files:
                name = Path(upload.file_name).name or "upload.bin"
                path = Path(tmp) / f"upload-{uuid.uuid4().hex[:12]}-{name}"
                path.write_bytes(await self._file_bytes(upload))
                paths.append(path)
            await locator.set_input_files(paths, timeout=self.config.upload_timeout_ms)
            handle = await locator.element_handle(timeout=self.config.upload_timeout_ms)
            await page.wait_for_function(_FILES_POPULATED_JS, arg=handle, timeout=self.config.upload_timeout_ms)

    async def _run_statement(self, payload: DatabaseExecutionPayload) -> None:
        if self.statements is None:
            raise ServiceUnavailableError("Statement service is not configured")
        statement = payload.statement
        if not statement.connection_id:
            raise StatementExecutionError("connection_id is required to run a statement")
        result = await self.statements.run(statement.connection_id, statement.query)
        if not result.ok:
            raise StatementExecutionError(
                result.error or f"Statement finished with status {result.status}",
                details=result.as_dict(),
            )
        log.info("Statement returned %d row(s)", len(result.rows))

    async def _page_create(self, step: ReplayStep, payload: PageCreatePayload) -> Optional[Page]:
        if payload.opener_index is None:
            entry = await self.pages.create_page(payload.url)
            return entry.page
        try:
            page = await self.pages.wait_for_page(step.page_index, self.config.page_wait_timeout_ms)
        except PageNotFoundError:
            log.debug("Page %d opened by %d did not appear", step.page_index, payload.opener_index)
            return None
        self.pages.set_active(page)
        return page


__all__ = ["ActionDispatcher", "ActionFailure", "ReplayReport"]
