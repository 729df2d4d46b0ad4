"""External collaborators: statement execution and remote file content."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Protocol

import httpx

from .config import ReplayConfig
from .errors import ServiceUnavailableError

log = logging.getLogger(__name__)


@dataclass(slots=True)
class StatementResult:
    status: str
    rows: List[Dict[str, Any]] = field(default_factory=list)
    error: Optional[str] = None
    affected_rows: int = 0
    elapsed_ms: float = 0.0

    @property
    def ok(self) -> bool:
        return self.status.lower() in {"success", "ok"} and not self.error

    def as_dict(self) -> Dict[str, Any]:
        return {
            "status": self.status,
            "rows": self.rows,
            "error": self.error,
            "affected_rows": self.affected_rows,
            "elapsed_ms": self.elapsed_ms,
        }


class StatementRunner(Protocol):
    async def run(self, connection_id: str, query: str) -> StatementResult:
        ...


class FileContentService(Protocol):
    async def get_content(self, path: str) -> str:
        """Return the file at ``path`` as base64 text."""
        ...


class HttpServiceClient:
    """Posts JSON to the action storage API and unwraps its response envelope."""

    def __init__(
        self,
        base_url: str,
        *,
        token: Optional[str] = None,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.token = token
        self.timeout = timeout
        self._transport = transport

    @classmethod
    def from_config(cls, config: ReplayConfig, **kwargs: Any) -> Optional["HttpServiceClient"]:
        if not config.api_base_url:
            return None
        return cls(config.api_base_url, token=config.api_token, timeout=config.api_timeout_s, **kwargs)

    def _headers(self) -> Dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    async def _post(self, path: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        url = f"{self.base_url}{path}"
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.post(url, json=payload, headers=self._headers())
                response.raise_for_status()
        except httpx.HTTPError as exc:
            log.warning("Request to %s failed: %s", url, exc)
            raise ServiceUnavailableError(f"{path} failed: {exc}") from exc
        try:
            body = response.json()
        except ValueError as exc:
            raise ServiceUnavailableError(f"{path} returned invalid JSON") from exc
        if not isinstance(body, dict):
            raise ServiceUnavailableError(f"{path} returned an unexpected payload")
        return body


class HttpStatementRunner(HttpServiceClient):
    async def run(self, connection_id: str, query: str) -> StatementResult:
        body = await self._post(
            "/statements/run_without_create",
            {"connection_id": connection_id, "query": query},
        )
        if body.get("success") is False:
            return StatementResult(status="Failed", error=str(body.get("error") or "statement failed"))
        data = body.get("data", body)
        if not isinstance(data, dict):
            data = {}
        rows = data.get("data") or data.get("rows") or []
        return StatementResult(
            status=str(data.get("status") or "Failed"),
            rows=rows if isinstance(rows, list) else [],
            error=data.get("error") or None,
            affected_rows=int(data.get("affected_rows") or 0),
            elapsed_ms=float(data.get("elapsed_ms") or 0),
        )


class HttpFileContentService(HttpServiceClient):
    async def get_content(self, path: str) -> str:
        body = await self._post("/files/get_file_content", {"file_path": path})
        if body.get("success") is False:
            raise ServiceUnavailableError(str(body.get("error") or f"cannot fetch {path}"))
        data = body.get("data", body)
        if isinstance(data, dict):
            data = data.get("content") or data.get("file_content") or data.get("data")
        if not isinstance(data, str) or not data:
            raise ServiceUnavailableError(f"no content returned for {path}")
        return data


__all__ = [
    "FileContentService",
    "HttpFileContentService",
    "HttpServiceClient",
    "HttpStatementRunner",
    "StatementResult",
    "StatementRunner",
]
