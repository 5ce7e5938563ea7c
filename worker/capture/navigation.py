"""
Best-effort navigation: DOM-content-loaded first, bounded network-idle wait, never blocks capture.

Only network-level failures (net::ERR_*) abort. A navigation timeout or any
other navigation error is logged and the caller captures whatever rendered.
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Optional

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import Page
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from shared.errors import NavigationError, NavigationTimeout
from shared.logging import get_logger
from worker.capture.constants import (
    BODY_WAIT_TIMEOUT_MS,
    LOAD_FALLBACK_TIMEOUT_MS,
    NAVIGATION_TIMEOUT_MS,
    NETWORK_IDLE_TIMEOUT_MS,
)

logger = get_logger(__name__)

NETWORK_ERROR_MESSAGE = "Failed to load the page - network error"


@dataclass
class NavigateResult:
    """Outcome of a best-effort navigation."""

    status: Optional[int]
    soft_timeout: bool
    network_idle: bool
    duration_ms: float
    error: Optional[str] = None


def is_network_error(exc: BaseException) -> bool:
    msg = (getattr(exc, "message", None) or str(exc)).lower()
    return "net::err_" in msg


async def wait_for_network_idle(
    page: Page,
    *,
    idle_timeout_ms: int = NETWORK_IDLE_TIMEOUT_MS,
    load_timeout_ms: int = LOAD_FALLBACK_TIMEOUT_MS,
) -> bool:
    """
    Wait for network idle, falling back to the load event. Never raises on timeout.

    Returns True only when network idle was reached.
    """
    try:
        await page.wait_for_load_state("networkidle", timeout=idle_timeout_ms)
        return True
    except PlaywrightTimeoutError:
        logger.info("capture.network_idle_timeout", timeout_ms=idle_timeout_ms)

    try:
        await page.wait_for_load_state("load", timeout=load_timeout_ms)
    except PlaywrightTimeoutError:
        logger.info("capture.load_fallback_timeout", timeout_ms=load_timeout_ms)
    return False


async def navigate_best_effort(
    page: Page,
    url: str,
    *,
    wait_for_idle: bool = True,
    nav_timeout_ms: int = NAVIGATION_TIMEOUT_MS,
    idle_timeout_ms: int = NETWORK_IDLE_TIMEOUT_MS,
) -> NavigateResult:
    """
    Navigate for a screenshot capture.

    Raises NavigationError on net::ERR_* failures only.
    """
    start = time.monotonic()
    status: Optional[int] = None
    soft_timeout = False
    network_idle = False
    error: Optional[str] = None

    try:
        response = await page.goto(url, wait_until="domcontentloaded", timeout=nav_timeout_ms)
        status = response.status if response is not None else None

        try:
            await page.wait_for_selector("body", timeout=BODY_WAIT_TIMEOUT_MS)
        except PlaywrightError as e:
            logger.debug("capture.body_wait_skipped", error=str(e))

        if wait_for_idle:
            network_idle = await wait_for_network_idle(page, idle_timeout_ms=idle_timeout_ms)
    except PlaywrightTimeoutError as e:
        soft_timeout = True
        error = str(e)
        logger.warning("capture.navigation.soft_timeout", url=url, timeout_ms=nav_timeout_ms)
    except PlaywrightError as e:
        if is_network_error(e):
            logger.error("capture.navigation.network_error", url=url, error=str(e))
            raise NavigationError(NETWORK_ERROR_MESSAGE) from e
        error = str(e)
        logger.warning(
            "capture.navigation.error_ignored",
            url=url,
            error=error,
            error_type=type(e).__name__,
        )

    duration_ms = (time.monotonic() - start) * 1000
    logger.info(
        "capture.navigation.completed",
        url=url,
        status=status,
        soft_timeout=soft_timeout,
        network_idle=network_idle,
        duration_ms=round(duration_ms, 1),
    )
    return NavigateResult(
        status=status,
        soft_timeout=soft_timeout,
        network_idle=network_idle,
        duration_ms=duration_ms,
        error=error,
    )


async def navigate_strict(page: Page, url: str, *, nav_timeout_ms: int) -> Optional[int]:
    """
    Navigate where a loaded document is required (sections capture).

    Raises NavigationTimeout or NavigationError; returns the response status.
    """
    try:
        response = await page.goto(url, wait_until="domcontentloaded", timeout=nav_timeout_ms)
    except PlaywrightTimeoutError as e:
        raise NavigationTimeout(f"Navigation timed out after {nav_timeout_ms} ms") from e
    except PlaywrightError as e:
        if is_network_error(e):
            raise NavigationError(NETWORK_ERROR_MESSAGE) from e
        raise NavigationError("Failed to load the page") from e
    return response.status if response is not None else None
