"""Hand-written stand-ins for the Playwright objects the replayer touches."""

from __future__ import annotations

import asyncio
from typing import Any, Callable, Dict, List, Optional


class FakeEmitter:
    def __init__(self) -> None:
        self.handlers: Dict[str, List[Callable[..., Any]]] = {}

    def on(self, event: str, handler: Callable[..., Any]) -> None:
        self.handlers.setdefault(event, []).append(handler)

    def remove_listener(self, event: str, handler: Callable[..., Any]) -> None:
        self.handlers.get(event, []).remove(handler)

    def emit(self, event: str, *args: Any) -> Any:
        results = [handler(*args) for handler in list(self.handlers.get(event, []))]
        pending = [result for result in results if asyncio.iscoroutine(result)]
        if pending:
            return asyncio.gather(*pending)
        return None


class FakeFrame:
    def __init__(self, page: "FakePage") -> None:
        self.page = page

    @property
    def url(self) -> str:
        return self.page.url


class FakePage(FakeEmitter):
    def __init__(self, url: str = "about:blank", opener: Optional["FakePage"] = None) -> None:
        super().__init__()
        self.url = url
        self._opener = opener
        self.closed = False
        self.init_scripts: List[str] = []
        self.main_frame = FakeFrame(self)
        self.calls: List[tuple] = []

    async def add_init_script(self, script: str) -> None:
        self.init_scripts.append(script)

    async def evaluate(self, script: str, arg: Any = None) -> Any:
        self.calls.append(("evaluate", script, arg))
        return None

    async def opener(self) -> Optional["FakePage"]:
        return self._opener

    def is_closed(self) -> bool:
        return self.closed

    async def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        self.emit("close", self)

    async def bring_to_front(self) -> None:
        self.calls.append(("bring_to_front",))

    async def goto(self, url: str) -> None:
        self.calls.append(("goto", url))
        self.url = url

    async def wait_for_timeout(self, ms: int) -> None:
        self.calls.append(("wait_for_timeout", ms))


class FakeContext(FakeEmitter):
    def __init__(self) -> None:
        super().__init__()
        self.pages: List[FakePage] = []

    async def new_page(self) -> FakePage:
        page = FakePage()
        self.pages.append(page)
        return page


class FakeRequest:
    def __init__(self, resource_type: str) -> None:
        self.resource_type = resource_type
