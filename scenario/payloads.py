"""Typed payload variants built once per action at ingestion."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple, Union

from .models import (
    Action,
    ActionType,
    ApiRequestData,
    BrowserStorage,
    FileUpload,
    StatementData,
)
from .values import ScrollPosition, WindowSize

Selectors = Tuple[str, ...]


class ActionValidationError(ValueError):
    """Raised when an action lacks the data its type requires."""

    code = "VALIDATION"

    def __init__(
        self,
        message: str,
        *,
        action_type: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.action_type = action_type
        self.details = details or {}


@dataclass(frozen=True, slots=True)
class NavigatePayload:
    url: str


@dataclass(frozen=True, slots=True)
class ClickPayload:
    selectors: Selectors
    double: bool = False


@dataclass(frozen=True, slots=True)
class InputPayload:
    selectors: Selectors
    value: str


@dataclass(frozen=True, slots=True)
class SelectPayload:
    selectors: Selectors
    value: str


@dataclass(frozen=True, slots=True)
class CheckboxPayload:
    selectors: Selectors
    checked: bool


@dataclass(frozen=True, slots=True)
class KeydownPayload:
    selectors: Selectors
    key: str


@dataclass(frozen=True, slots=True)
class UploadPayload:
    selectors: Selectors
    files: Tuple[FileUpload, ...]


@dataclass(frozen=True, slots=True)
class ChangePayload:
    selectors: Selectors


@dataclass(frozen=True, slots=True)
class WaitPayload:
    duration_ms: int


@dataclass(frozen=True, slots=True)
class HistoryPayload:
    direction: str


@dataclass(frozen=True, slots=True)
class DragAndDropPayload:
    source: Selectors
    target: Selectors


@dataclass(frozen=True, slots=True)
class ScrollPayload:
    position: ScrollPosition
    selectors: Selectors = ()


@dataclass(frozen=True, slots=True)
class WindowResizePayload:
    size: WindowSize


@dataclass(frozen=True, slots=True)
class ApiRequestPayload:
    request: ApiRequestData


@dataclass(frozen=True, slots=True)
class DatabaseExecutionPayload:
    statement: StatementData


@dataclass(frozen=True, slots=True)
class BrowserStoragePayload:
    storage: BrowserStorage


@dataclass(frozen=True, slots=True)
class PageCreatePayload:
    url: Optional[str] = None
    opener_index: Optional[int] = None


@dataclass(frozen=True, slots=True)
class PageClosePayload:
    pass


@dataclass(frozen=True, slots=True)
class PageFocusPayload:
    pass


@dataclass(frozen=True, slots=True)
class AssertPayload:
    description: Optional[str] = None


Payload = Union[
    NavigatePayload,
    ClickPayload,
    InputPayload,
    SelectPayload,
    CheckboxPayload,
    KeydownPayload,
    UploadPayload,
    ChangePayload,
    WaitPayload,
    HistoryPayload,
    DragAndDropPayload,
    ScrollPayload,
    WindowResizePayload,
    ApiRequestPayload,
    DatabaseExecutionPayload,
    BrowserStoragePayload,
    PageCreatePayload,
    PageClosePayload,
    PageFocusPayload,
    AssertPayload,
]


def _fail(action: Action, message: str, **details: Any) -> ActionValidationError:
    return ActionValidationError(message, action_type=action.action_type.value, details=details)


def _first_selectors(action: Action) -> Selectors:
    if not action.elements or not action.elements[0].selectors:
        raise _fail(action, f"{action.action_type.value} requires an element with selectors")
    return tuple(action.elements[0].selectors)


def _required_text(action: Action, key: str = "value") -> str:
    raw = action.find_value(key)
    if raw is None:
        raise _fail(action, f"{action.action_type.value} requires value.{key}", key=key)
    return str(raw)


def _optional_int(raw: Any) -> Optional[int]:
    if raw is None or raw == "":
        return None
    try:
        return int(raw)
    except (TypeError, ValueError):
        return None


def build_navigate(action: Action) -> NavigatePayload:
    url = str(action.find_value("value") or "").strip()
    if not url:
        raise _fail(action, "navigate requires a URL")
    return NavigatePayload(url=url)


def build_click(action: Action) -> ClickPayload:
    return ClickPayload(
        selectors=_first_selectors(action),
        double=action.action_type is ActionType.DOUBLE_CLICK,
    )


def build_input(action: Action) -> InputPayload:
    selectors = _first_selectors(action)
    return InputPayload(selectors=selectors, value=_required_text(action))


def build_select(action: Action) -> SelectPayload:
    selectors = _first_selectors(action)
    return SelectPayload(selectors=selectors, value=_required_text(action))


def build_checkbox(action: Action) -> CheckboxPayload:
    raw = action.find_value("checked")
    if isinstance(raw, str):
        checked = raw.strip().lower() == "true"
    else:
        checked = raw is True
    return CheckboxPayload(selectors=_first_selectors(action), checked=checked)


_KEY_ALIASES = {"ctrl": "Control"}


def _normalise_key(key: str) -> str:
    """Map recorded shortcut names such as ``Ctrl+KeyA`` to Playwright key names."""

    parts = key.split("+")
    if not all(parts):
        return key
    return "+".join(_KEY_ALIASES.get(part.lower(), part) for part in parts)


def build_keydown(action: Action) -> KeydownPayload:
    selectors = _first_selectors(action)
    key = _required_text(action).strip()
    if not key:
        raise _fail(action, "keydown requires a key")
    return KeydownPayload(selectors=selectors, key=_normalise_key(key))


def build_upload(action: Action) -> UploadPayload:
    selectors = _first_selectors(action)
    files = tuple(
        data.file_upload
        for data in action.action_datas
        if data.file_upload is not None
        and (data.file_upload.file_content or data.file_upload.file_path)
    )
    if not files:
        raise _fail(action, "upload requires at least one file payload")
    return UploadPayload(selectors=selectors, files=files)


def build_change(action: Action) -> ChangePayload:
    return ChangePayload(selectors=_first_selectors(action))


def build_wait(action: Action) -> WaitPayload:
    raw = action.find_value("value")
    try:
        duration = int(float(raw))
    except (TypeError, ValueError, OverflowError):
        duration = 0
    return WaitPayload(duration_ms=max(duration, 0))


def build_history(action: Action) -> HistoryPayload:
    return HistoryPayload(direction=action.action_type.value)


def build_drag_and_drop(action: Action) -> DragAndDropPayload:
    if len(action.elements) != 2:
        raise _fail(
            action,
            "drag_and_drop requires exactly 2 elements",
            element_count=len(action.elements),
        )
    source, target = action.elements
    if not source.selectors or not target.selectors:
        raise _fail(action, "drag_and_drop elements require selectors")
    return DragAndDropPayload(source=tuple(source.selectors), target=tuple(target.selectors))


def build_scroll(action: Action) -> ScrollPayload:
    selectors: Selectors = ()
    if action.elements and action.elements[0].selectors:
        selectors = tuple(action.elements[0].selectors)
    return ScrollPayload(
        position=ScrollPosition.parse(action.find_value("value")),
        selectors=selectors,
    )


def build_window_resize(action: Action) -> WindowResizePayload:
    return WindowResizePayload(size=WindowSize.parse(action.find_value("value")))


def build_api_request(action: Action) -> ApiRequestPayload:
    request = action.find_data("api_request")
    if request is None or not request.url.strip():
        raise _fail(action, "api_request requires a descriptor with a URL")
    return ApiRequestPayload(request=request)


def build_database_execution(action: Action) -> DatabaseExecutionPayload:
    statement = action.find_data("statement")
    if statement is None or not statement.query.strip():
        raise _fail(action, "database_execution requires a query")
    return DatabaseExecutionPayload(statement=statement)


def build_browser_storage(action: Action) -> BrowserStoragePayload:
    storage = action.find_data("browser_storage")
    if storage is None:
        raise _fail(action, "add_browser_storage requires a storage payload")
    return BrowserStoragePayload(storage=storage)


def build_page_create(action: Action) -> PageCreatePayload:
    url = action.find_value("value")
    return PageCreatePayload(
        url=str(url) if url is not None else None,
        opener_index=_optional_int(action.find_value("opener_index")),
    )


def build_page_close(action: Action) -> PageClosePayload:
    return PageClosePayload()


def build_page_focus(action: Action) -> PageFocusPayload:
    return PageFocusPayload()


def build_assert(action: Action) -> AssertPayload:
    return AssertPayload(description=action.description)


__all__ = [
    "ActionValidationError",
    "Payload",
    "NavigatePayload",
    "ClickPayload",
    "InputPayload",
    "SelectPayload",
    "CheckboxPayload",
    "KeydownPayload",
    "UploadPayload",
    "ChangePayload",
    "WaitPayload",
    "HistoryPayload",
    "DragAndDropPayload",
    "ScrollPayload",
    "WindowResizePayload",
    "ApiRequestPayload",
    "DatabaseExecutionPayload",
    "BrowserStoragePayload",
    "PageCreatePayload",
    "PageClosePayload",
    "PageFocusPayload",
    "AssertPayload",
]
