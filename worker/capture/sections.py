"""
Section heuristics for hero, social proof and primary CTA crops.

Selector misses are expected and never raise; only the hero has a fallback.
"""

from __future__ import annotations

import base64
from typing import Optional

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import Page

from shared.logging import get_logger
from worker.capture.constants import (
    HERO_FALLBACK_LABEL,
    HERO_FALLBACK_MAX_HEIGHT_PX,
    HERO_MIN_HEIGHT_PX,
    HERO_SELECTORS,
)

logger = get_logger(__name__)


def _fits(box: Optional[dict], min_height: Optional[float], min_width: Optional[float]) -> bool:
    if not box:
        return False
    if min_height is not None and box.get("height", 0) <= min_height:
        return False
    if min_width is not None and box.get("width", 0) <= min_width:
        return False
    return True


async def capture_first_match(
    page: Page,
    selectors: list[str],
    *,
    section: str,
    min_height: Optional[float] = None,
    min_width: Optional[float] = None,
) -> Optional[tuple[str, str]]:
    """
    Screenshot the first element matching a selector, in priority order.

    Only the first match of each selector is considered. Returns
    (selector, base64 png) or None when nothing qualifies.
    """
    for selector in selectors:
        try:
            element = await page.query_selector(selector)
            if element is None:
                continue
            box = await element.bounding_box()
            if not _fits(box, min_height, min_width):
                continue
            image = await element.screenshot(type="png")
        except PlaywrightError as e:
            logger.debug(
                "capture.section_selector_failed",
                section=section,
                selector=selector,
                error=str(e),
            )
            continue
        logger.info("capture.section_found", section=section, selector=selector)
        return selector, base64.b64encode(image).decode("ascii")

    logger.info("capture.section_not_found", section=section)
    return None


async def capture_hero(page: Page, width: int, height: int) -> tuple[str, str]:
    """Hero crop by selector; falls back to an above-the-fold clip."""
    match = await capture_first_match(
        page, HERO_SELECTORS, section="hero", min_height=HERO_MIN_HEIGHT_PX
    )
    if match is not None:
        return match

    clip = {"x": 0, "y": 0, "width": width, "height": min(height, HERO_FALLBACK_MAX_HEIGHT_PX)}
    image = await page.screenshot(type="png", clip=clip)
    return HERO_FALLBACK_LABEL, base64.b64encode(image).decode("ascii")
