"""Read and write cookies, localStorage and sessionStorage for a page."""

from __future__ import annotations

import json
import logging
from typing import Any, Dict, List, Optional
from urllib.parse import unquote

from playwright.async_api import Page

from scenario.models import BrowserStorage, StorageType

log = logging.getLogger(__name__)

_WRITE_STORAGE_JS = """
({ area, entries }) => {
  const store = area === 'sessionStorage' ? window.sessionStorage : window.localStorage;
  for (const [key, value] of Object.entries(entries)) store.setItem(key, value);
}
"""

_READ_STORAGE_JS = """
({ area, key }) => {
  const store = area === 'sessionStorage' ? window.sessionStorage : window.localStorage;
  return store.getItem(key) || '';
}
"""


def _decode(value: Any) -> Any:
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        return json.loads(text)
    return value


def _storage_entries(value: Any) -> Dict[str, str]:
    data = _decode(value) or {}
    if not isinstance(data, dict):
        raise ValueError("storage value must be an object of key/value pairs")
    return {
        str(key): item if isinstance(item, str) else json.dumps(item, ensure_ascii=False)
        for key, item in data.items()
    }


def _cookie_list(value: Any, page_url: str) -> List[Dict[str, Any]]:
    data = _decode(value) or []
    if isinstance(data, dict):
        data = [data]
    cookies: List[Dict[str, Any]] = []
    for item in data:
        if not isinstance(item, dict) or not item.get("name"):
            continue
        cookie = dict(item)
        cookie["value"] = str(cookie.get("value", ""))
        if not cookie.get("url") and not cookie.get("domain"):
            cookie["url"] = page_url
        if cookie.get("domain") and not cookie.get("path"):
            cookie["path"] = "/"
        cookies.append(cookie)
    return cookies


async def write_browser_storage(page: Page, storage: BrowserStorage) -> None:
    """Apply ``storage`` to the page's context and reload so the app picks it up."""

    if storage.storage_type is StorageType.COOKIE:
        cookies = _cookie_list(storage.value, page.url)
        await page.context.add_cookies(cookies)
        log.info("Added %d cookie(s)", len(cookies))
    else:
        entries = _storage_entries(storage.value)
        await page.evaluate(_WRITE_STORAGE_JS, {"area": storage.storage_type.value, "entries": entries})
        log.info("Wrote %d %s entr(ies)", len(entries), storage.storage_type.value)
    await page.reload()


async def read_storage_value(
    page: Page,
    storage_type: StorageType,
    key: str,
    domain: Optional[str] = None,
) -> str:
    """Return the stored value for ``key`` or an empty string."""

    if storage_type is StorageType.COOKIE:
        wanted = (domain or "").lstrip(".")
        for cookie in await page.context.cookies():
            if cookie.get("name") != key:
                continue
            if wanted and not str(cookie.get("domain", "")).lstrip(".").endswith(wanted):
                continue
            return unquote(cookie.get("value", ""))
        return ""
    value = await page.evaluate(_READ_STORAGE_JS, {"area": storage_type.value, "key": key})
    return str(value or "")


__all__ = ["read_storage_value", "write_browser_storage"]
