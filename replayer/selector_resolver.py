"""Pick the candidate selector that best identifies one live element."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import Locator, Page

from .errors import NoUniqueSelectorError
from .locators import build_locator

log = logging.getLogger(__name__)

DEFAULT_ATTACH_TIMEOUT_MS = 3000


@dataclass(slots=True)
class ResolvedLocator:
    locator: Locator
    selector: str
    match_count: int

    @property
    def is_unique(self) -> bool:
        return self.match_count == 1


class SelectorResolver:
    """Resolve an ordered list of candidate selectors against a page.

    A candidate matching exactly one element wins immediately, in input order.
    Without a unique match the first element of the candidate with the
    smallest positive count is returned; callers should treat such a result as
    a risk rather than an error.
    """

    def __init__(self, page: Page, attach_timeout_ms: int = DEFAULT_ATTACH_TIMEOUT_MS) -> None:
        self.page = page
        self.attach_timeout_ms = attach_timeout_ms

    def _build(self, candidates: Sequence[str]) -> List[Tuple[str, Locator]]:
        built: List[Tuple[str, Locator]] = []
        for selector in candidates:
            try:
                built.append((selector, build_locator(self.page, selector)))
            except (ValueError, PlaywrightError) as exc:
                log.debug("Skipping unusable selector %r: %s", selector, exc)
        return built

    async def _wait_attached(self, locator: Locator) -> None:
        try:
            await locator.first.wait_for(state="attached", timeout=self.attach_timeout_ms)
        except PlaywrightError:
            pass

    async def _count(self, selector: str, locator: Locator) -> int:
        try:
            return await locator.count()
        except PlaywrightError as exc:
            log.debug("Counting %r failed: %s", selector, exc)
            return 0

    async def resolve(self, candidates: Sequence[str]) -> ResolvedLocator:
        built = self._build(candidates)
        if built:
            await asyncio.gather(*(self._wait_attached(locator) for _, locator in built))

        best: Optional[ResolvedLocator] = None
        for selector, locator in built:
            count = await self._count(selector, locator)
            if count == 1:
                return ResolvedLocator(locator=locator, selector=selector, match_count=1)
            if count > 0 and (best is None or count < best.match_count):
                best = ResolvedLocator(locator=locator.first, selector=selector, match_count=count)

        if best is not None:
            log.warning(
                "No unique selector; using first of %d matches for %r",
                best.match_count,
                best.selector,
            )
            return best
        raise NoUniqueSelectorError(list(candidates))


__all__ = ["ResolvedLocator", "SelectorResolver"]
