"""
Page readiness: settle delay and a scroll cycle to trigger lazy-loaded content.

Errors here never fail a capture.
"""

from __future__ import annotations

import asyncio

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import Page

from shared.logging import get_logger
from worker.capture.constants import SCROLL_WAIT_MS, SETTLE_DELAY_MS

logger = get_logger(__name__)


async def settle_and_scroll(
    page: Page,
    *,
    settle_ms: int = SETTLE_DELAY_MS,
    scroll_fraction: float = 0.5,
    scroll_wait_ms: int = SCROLL_WAIT_MS,
) -> bool:
    """
    Wait for dynamic content, scroll part-way down, then back to the top.

    Returns False when the scroll cycle failed (page still usable for capture).
    """
    await asyncio.sleep(settle_ms / 1000)

    try:
        await page.evaluate(
            f"window.scrollTo(0, document.body.scrollHeight * {scroll_fraction})"
        )
        await asyncio.sleep(scroll_wait_ms / 1000)
        await page.evaluate("window.scrollTo(0, 0)")
        await asyncio.sleep(scroll_wait_ms / 1000)
    except PlaywrightError as e:
        logger.info("capture.scroll_skipped", error=str(e), error_type=type(e).__name__)
        return False
    return True
