"""Settle waits applied after each replayed action."""

from __future__ import annotations

import logging

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import Page

log = logging.getLogger(__name__)

LOAD_STATES = ("domcontentloaded", "networkidle", "load")


async def settle_page(page: Page, timeout_ms: int = 10000) -> None:
    """Wait for the three load-state milestones in order, ignoring timeouts."""

    for state in LOAD_STATES:
        if page.is_closed():
            return
        try:
            await page.wait_for_load_state(state, timeout=timeout_ms)
        except PlaywrightError as exc:
            log.debug("Load state %s not reached: %s", state, exc)
