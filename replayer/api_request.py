"""Issue a recorded API request through the page's request context."""

from __future__ import annotations

import base64
import json
import logging
from typing import Any, Dict, Optional, Union
from urllib.parse import urlencode

from playwright.async_api import APIResponse, Page

from scenario.models import ApiRequestAuth, ApiRequestBody, ApiRequestData

from .browser_storage import read_storage_value

log = logging.getLogger(__name__)

HTTP_METHODS = frozenset({"GET", "POST", "PUT", "PATCH", "DELETE", "HEAD"})


def _clean(value: Any) -> str:
    return "" if value is None else str(value).strip()


def build_url(request: ApiRequestData) -> str:
    url = request.url.strip()
    pairs = [(_clean(p.key), _clean(p.value)) for p in request.params]
    pairs = [(key, value) for key, value in pairs if key and value]
    if not pairs:
        return url
    separator = "&" if "?" in url else "?"
    return f"{url}{separator}{urlencode(pairs)}"


def build_headers(request: ApiRequestData) -> Dict[str, str]:
    headers: Dict[str, str] = {}
    for header in request.headers:
        key, value = _clean(header.key), _clean(header.value)
        if key and value:
            headers[key] = value
    return headers


def _basic(username: str, password: str) -> str:
    token = base64.b64encode(f"{username}:{password}".encode("utf-8")).decode("ascii")
    return f"Basic {token}"


async def resolve_authorization(page: Page, auth: Optional[ApiRequestAuth]) -> Optional[str]:
    """Return the Authorization header value described by ``auth``, if any."""

    if auth is None:
        return None
    kind = auth.type.lower()
    if kind == "bearer":
        token = _clean(auth.token)
        if not token and auth.token_storages:
            source = auth.token_storages[0]
            token = await read_storage_value(page, source.type, source.key)
        return f"Bearer {token}" if token else None
    if kind == "basic":
        username, password = _clean(auth.username), _clean(auth.password)
        if not (username and password) and auth.basic_auth_storages:
            source = auth.basic_auth_storages[0]
            username = await read_storage_value(page, source.type, source.username_key)
            password = await read_storage_value(page, source.type, source.password_key)
        if username and password:
            return _basic(username, password)
    return None


def build_body(body: Optional[ApiRequestBody]) -> Union[str, Dict[str, str], None]:
    """Return the ``data`` argument for :meth:`APIRequestContext.fetch`.

    Form fields are sent as a JSON object.
    """

    if body is None or body.type in ("", "none"):
        return None
    if body.type == "json":
        return body.content
    if body.type == "form":
        form = {
            _clean(field.name): "" if field.value is None else str(field.value)
            for field in body.form_data
            if _clean(field.name)
        }
        return form
    log.debug("Ignoring unsupported body type %s", body.type)
    return None


async def execute_api_request(page: Page, request: ApiRequestData) -> APIResponse:
    url = build_url(request)
    headers = build_headers(request)
    authorization = await resolve_authorization(page, request.auth)
    if authorization:
        headers["Authorization"] = authorization

    data = build_body(request.body)
    if isinstance(data, str) and not any(key.lower() == "content-type" for key in headers):
        try:
            json.loads(data)
        except ValueError:
            pass
        else:
            headers["Content-Type"] = "application/json"

    method = (request.method or "get").upper()
    if method not in HTTP_METHODS:
        method = "GET"
    response = await page.request.fetch(url, method=method, headers=headers, data=data)
    log.info("API %s %s -> %s", method, url, response.status)
    return response


__all__ = [
    "build_body",
    "build_headers",
    "build_url",
    "execute_api_request",
    "resolve_authorization",
]
