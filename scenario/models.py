"""Persisted action model consumed by the replay engine."""

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator, model_validator


class ActionType(str, Enum):
    NAVIGATE = "navigate"
    CLICK = "click"
    DOUBLE_CLICK = "double_click"
    INPUT = "input"
    SELECT = "select"
    CHECKBOX = "checkbox"
    KEYDOWN = "keydown"
    UPLOAD = "upload"
    CHANGE = "change"
    WAIT = "wait"
    RELOAD = "reload"
    BACK = "back"
    FORWARD = "forward"
    DRAG_AND_DROP = "drag_and_drop"
    SCROLL = "scroll"
    WINDOW_RESIZE = "window_resize"
    API_REQUEST = "api_request"
    DATABASE_EXECUTION = "database_execution"
    ADD_BROWSER_STORAGE = "add_browser_storage"
    PAGE_CREATE = "page_create"
    PAGE_CLOSE = "page_close"
    PAGE_FOCUS = "page_focus"
    ASSERT = "assert"


class StorageType(str, Enum):
    COOKIE = "cookie"
    LOCAL_STORAGE = "localStorage"
    SESSION_STORAGE = "sessionStorage"

    @classmethod
    def _missing_(cls, value: object) -> Optional["StorageType"]:
        aliases = {
            "local_storage": cls.LOCAL_STORAGE,
            "session_storage": cls.SESSION_STORAGE,
            "localstorage": cls.LOCAL_STORAGE,
            "sessionstorage": cls.SESSION_STORAGE,
            "cookies": cls.COOKIE,
        }
        if isinstance(value, str):
            return aliases.get(value.strip().lower())
        return None


class _Payload(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class Element(_Payload):
    """One logical UI target with its candidate selector strings."""

    selectors: List[str] = Field(
        default_factory=list,
        validation_alias=AliasChoices("selectors", "selector"),
    )
    name: Optional[str] = None

    @field_validator("selectors", mode="before")
    @classmethod
    def _coerce_selectors(cls, value: Any) -> List[str]:
        if value is None:
            return []
        if isinstance(value, str):
            value = [value]
        selectors: List[str] = []
        for item in value:
            if isinstance(item, dict):
                item = item.get("value")
            if item is None:
                continue
            text = str(item).strip()
            if text:
                selectors.append(text)
        return selectors


class FileUpload(_Payload):
    file_name: str = "upload.bin"
    file_content: Optional[str] = None
    file_path: Optional[str] = None


class StatementData(_Payload):
    query: str = Field(default="", validation_alias=AliasChoices("query", "statement_text"))
    connection_id: Optional[str] = None
    statement_id: Optional[str] = None
    connection: Optional[Dict[str, Any]] = None

    @model_validator(mode="after")
    def _connection_id_from_connection(self) -> "StatementData":
        if not self.connection_id and self.connection:
            connection_id = self.connection.get("connection_id")
            if connection_id:
                self.connection_id = str(connection_id)
        return self


class BrowserStorage(_Payload):
    storage_type: StorageType
    value: Any = None
    name: Optional[str] = None


class ApiRequestParam(_Payload):
    key: str = ""
    value: Optional[str] = None


class ApiRequestFormField(_Payload):
    name: str = ""
    value: Optional[str] = None


class ApiRequestBody(_Payload):
    type: str = "none"
    content: Optional[str] = None
    form_data: List[ApiRequestFormField] = Field(
        default_factory=list,
        validation_alias=AliasChoices("form_data", "formData"),
    )


class TokenStorage(_Payload):
    type: StorageType
    key: str


class BasicAuthStorage(_Payload):
    type: StorageType
    username_key: str = Field(validation_alias=AliasChoices("username_key", "usernameKey"))
    password_key: str = Field(validation_alias=AliasChoices("password_key", "passwordKey"))


class ApiRequestAuth(_Payload):
    type: str = "none"
    username: Optional[str] = None
    password: Optional[str] = None
    token: Optional[str] = None
    token_storages: List[TokenStorage] = Field(
        default_factory=list,
        validation_alias=AliasChoices("token_storages", "tokenStorages"),
    )
    basic_auth_storages: List[BasicAuthStorage] = Field(
        default_factory=list,
        validation_alias=AliasChoices("basic_auth_storages", "basicAuthStorages"),
    )


class ApiRequestData(_Payload):
    url: str = ""
    method: str = "get"
    params: List[ApiRequestParam] = Field(default_factory=list)
    headers: List[ApiRequestParam] = Field(default_factory=list)
    auth: Optional[ApiRequestAuth] = None
    body: Optional[ApiRequestBody] = None


class ActionData(_Payload):
    """Loosely-typed payload slot; consumers look for the field they need."""

    value: Optional[Dict[str, Any]] = None
    statement: Optional[StatementData] = None
    file_upload: Optional[FileUpload] = None
    browser_storage: Optional[BrowserStorage] = None
    api_request: Optional[ApiRequestData] = None

    @field_validator("value", mode="before")
    @classmethod
    def _wrap_scalar_value(cls, value: Any) -> Any:
        if value is None or isinstance(value, dict):
            return value
        return {"value": value}


class Action(_Payload):
    """One recorded step as persisted by the recording producer."""

    action_id: Optional[str] = Field(default=None, validation_alias=AliasChoices("action_id", "id"))
    testcase_id: Optional[str] = None
    action_type: ActionType
    description: Optional[str] = None
    elements: List[Element] = Field(default_factory=list)
    action_datas: List[ActionData] = Field(
        default_factory=list,
        validation_alias=AliasChoices("action_datas", "action_data"),
    )

    def find_value(self, key: str) -> Any:
        """Return the first ``value[key]`` present across the action data entries."""

        for data in self.action_datas:
            if data.value and data.value.get(key) is not None:
                return data.value[key]
        return None

    def find_data(self, field: str) -> Any:
        for data in self.action_datas:
            found = getattr(data, field, None)
            if found is not None:
                return found
        return None

    @property
    def page_index(self) -> int:
        raw = self.find_value("page_index")
        if raw is None:
            return 0
        try:
            return int(raw)
        except (TypeError, ValueError):
            return 0
