import asyncio

import pytest
from playwright.async_api import Error as PlaywrightError

from replayer.errors import NoUniqueSelectorError
from replayer.selector_resolver import SelectorResolver


class FakeLocator:
    def __init__(self, name: str, count: int) -> None:
        self.name = name
        self._count = count
        self.waited = False

    @property
    def first(self) -> "FakeLocator":
        return FakeFirst(self)

    async def wait_for(self, state: str = "visible", timeout: int = 0) -> None:
        self.waited = True
        if self._count == 0:
            raise PlaywrightError(f"Timeout {timeout}ms exceeded")

    async def count(self) -> int:
        return self._count


class FakeFirst(FakeLocator):
    def __init__(self, parent: FakeLocator) -> None:
        super().__init__(parent.name, min(parent._count, 1))
        self.parent = parent

    async def wait_for(self, state: str = "visible", timeout: int = 0) -> None:
        await self.parent.wait_for(state, timeout)


class FakePage:
    def __init__(self, counts: dict) -> None:
        self.locators = {name: FakeLocator(name, count) for name, count in counts.items()}

    def locator(self, selector: str) -> FakeLocator:
        return self.locators[selector]


def test_unique_candidate_wins_regardless_of_position():
    page = FakePage({"#a": 3, "#b": 1, "#c": 5})

    resolved = asyncio.run(SelectorResolver(page, attach_timeout_ms=10).resolve(["#a", "#b", "#c"]))

    assert resolved.selector == "#b"
    assert resolved.locator is page.locators["#b"]
    assert resolved.is_unique
    assert all(locator.waited for locator in page.locators.values())


def test_smallest_positive_count_wins_without_unique_match():
    page = FakePage({"#a": 3, "#b": 0, "#c": 5})

    resolved = asyncio.run(SelectorResolver(page, attach_timeout_ms=10).resolve(["#a", "#b", "#c"]))

    assert resolved.selector == "#a"
    assert resolved.match_count == 3
    assert isinstance(resolved.locator, FakeFirst)
    assert resolved.locator.parent is page.locators["#a"]


def test_first_unique_candidate_short_circuits():
    page = FakePage({"#a": 1, "#b": 1})

    resolved = asyncio.run(SelectorResolver(page, attach_timeout_ms=10).resolve(["#a", "#b"]))

    assert resolved.selector == "#a"


def test_no_matches_raises():
    page = FakePage({"#a": 0, "#b": 0})

    with pytest.raises(NoUniqueSelectorError) as excinfo:
        asyncio.run(SelectorResolver(page, attach_timeout_ms=10).resolve(["#a", "#b"]))

    assert excinfo.value.code == "NO_UNIQUE_SELECTOR"
    assert excinfo.value.selectors == ["#a", "#b"]


def test_count_errors_are_treated_as_zero():
    page = FakePage({"#a": 2, "#b": 1})

    async def broken_count() -> int:
        raise PlaywrightError("Execution context was destroyed")

    page.locators["#b"].count = broken_count

    resolved = asyncio.run(SelectorResolver(page, attach_timeout_ms=10).resolve(["#a", "#b"]))

    assert resolved.selector == "#a"
    assert resolved.match_count == 2
