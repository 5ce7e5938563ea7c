"""
Capture engine: desktop + mobile screenshots, and section crops, of one URL.

Per call the engine launches its own Chromium (never pooled or shared),
captures each profile in an isolated context, and closes everything on
every exit path. Either both profiles succeed or the call fails.
"""

from __future__ import annotations

import base64
import time
from datetime import datetime, timezone
from typing import Any, Callable, Optional

from playwright.async_api import Browser, Page, Playwright, async_playwright
from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from shared.errors import CaptureError, ScreenshotError, ScreenshotTimeout
from shared.logging import get_logger
from worker.capture.blocking import RequestBlocker
from worker.capture.browser import launch_browser, open_capture_context
from worker.capture.constants import (
    CTA_MIN_WIDTH_PX,
    CTA_SELECTORS,
    LOCALE,
    NAVIGATION_TIMEOUT_MS,
    NETWORK_IDLE_TIMEOUT_MS,
    SCREENSHOT_TIMEOUT_MS,
    SECTION_VIEWPORT_CONFIGS,
    SECTIONS_BODY_WAIT_TIMEOUT_MS,
    SECTIONS_FULL_PAGE_TIMEOUT_MS,
    SECTIONS_LAUNCH_ARGS,
    SECTIONS_SCROLL_WAIT_MS,
    SECTIONS_SETTLE_DELAY_MS,
    SECTIONS_TIMEOUT_MS,
    SOCIAL_PROOF_MIN_HEIGHT_PX,
    SOCIAL_PROOF_SELECTORS,
    TIMEZONE_ID,
    Viewport,
)
from worker.capture.content import extract_page_content
from worker.capture.evasion import simulate_pointer_activity
from worker.capture.models import (
    CaptureOptions,
    PageContent,
    PageSectionsResult,
    ScreenshotCapture,
    ScreenshotResult,
    SectionMetadata,
)
from worker.capture.navigation import navigate_best_effort, navigate_strict
from worker.capture.readiness import settle_and_scroll
from worker.capture.sections import capture_first_match, capture_hero

logger = get_logger(__name__)

CAPTURE_PROFILES: tuple[Viewport, ...] = ("desktop", "mobile")


async def take_screenshot(page: Page, *, full_page: bool, timeout_ms: int) -> str:
    """PNG screenshot as base64. Raises ScreenshotTimeout / ScreenshotError."""
    try:
        image = await page.screenshot(type="png", full_page=full_page, timeout=timeout_ms)
    except PlaywrightTimeoutError as e:
        raise ScreenshotTimeout("Timed out while capturing screenshot") from e
    except PlaywrightError as e:
        raise ScreenshotError("Failed to capture screenshot") from e
    return base64.b64encode(image).decode("ascii")


class CaptureEngine:
    """Owns browser lifecycle for captures."""

    def __init__(
        self,
        *,
        navigation_timeout_ms: int = NAVIGATION_TIMEOUT_MS,
        network_idle_timeout_ms: int = NETWORK_IDLE_TIMEOUT_MS,
        screenshot_timeout_ms: int = SCREENSHOT_TIMEOUT_MS,
        sections_timeout_ms: int = SECTIONS_TIMEOUT_MS,
        playwright_factory: Callable[[], Any] = async_playwright,
    ):
        self.navigation_timeout_ms = navigation_timeout_ms
        self.network_idle_timeout_ms = network_idle_timeout_ms
        self.screenshot_timeout_ms = screenshot_timeout_ms
        self.sections_timeout_ms = sections_timeout_ms
        self._playwright_factory = playwright_factory

    @classmethod
    def from_config(cls, config: Any) -> "CaptureEngine":
        return cls(
            navigation_timeout_ms=config.navigation_timeout_ms,
            network_idle_timeout_ms=config.network_idle_timeout_ms,
            screenshot_timeout_ms=config.screenshot_timeout_ms,
            sections_timeout_ms=config.sections_timeout_ms,
        )

    async def capture(self, url: str, options: CaptureOptions) -> ScreenshotResult:
        """
        Capture above-the-fold and full-page screenshots for desktop and mobile.

        url must already be normalized. Navigation is best effort; only
        network errors and screenshot failures abort the capture.
        """
        blocker = RequestBlocker(options.block_patterns)
        start = time.monotonic()
        logger.info(
            "capture.started",
            url=url,
            block_patterns=len(blocker.patterns),
            wait_for_network_idle=options.waits_for_network_idle,
        )

        captures: dict[str, ScreenshotCapture] = {}
        content = PageContent.empty()

        async with self._playwright_factory() as playwright:
            browser: Optional[Browser] = None
            try:
                browser = await launch_browser(playwright)
                for viewport in CAPTURE_PROFILES:
                    capture, extracted = await self._capture_profile(
                        browser,
                        playwright,
                        viewport,
                        url,
                        options,
                        blocker,
                        extract_content=viewport == "desktop",
                    )
                    captures[viewport] = capture
                    if extracted is not None:
                        content = extracted
            except PlaywrightError as e:
                logger.error(
                    "capture.browser_failed",
                    url=url,
                    error=str(e),
                    error_type=type(e).__name__,
                )
                raise CaptureError("Failed to capture page") from e
            finally:
                if browser is not None:
                    await browser.close()

        logger.info(
            "capture.completed",
            url=url,
            duration_ms=round((time.monotonic() - start) * 1000, 1),
        )
        return ScreenshotResult(
            desktop=captures["desktop"],
            mobile=captures["mobile"],
            captured_at=datetime.now(timezone.utc),
            content=content,
        )

    async def _capture_profile(
        self,
        browser: Browser,
        playwright: Playwright,
        viewport: Viewport,
        url: str,
        options: CaptureOptions,
        blocker: RequestBlocker,
        *,
        extract_content: bool,
    ) -> tuple[ScreenshotCapture, Optional[PageContent]]:
        async with open_capture_context(browser, playwright, viewport, blocker) as context:
            page = await context.new_page()
            page.set_default_navigation_timeout(self.navigation_timeout_ms)
            page.set_default_timeout(self.navigation_timeout_ms)

            navigation = await navigate_best_effort(
                page,
                url,
                wait_for_idle=options.waits_for_network_idle,
                nav_timeout_ms=self.navigation_timeout_ms,
                idle_timeout_ms=self.network_idle_timeout_ms,
            )
            scrolled = await settle_and_scroll(page)
            try:
                await simulate_pointer_activity(page)
            except PlaywrightError as e:
                logger.info("capture.pointer_skipped", viewport=viewport, error=str(e))

            above_fold = await take_screenshot(
                page, full_page=False, timeout_ms=self.screenshot_timeout_ms
            )
            full_page = await take_screenshot(
                page, full_page=True, timeout_ms=self.screenshot_timeout_ms
            )
            content = await extract_page_content(page) if extract_content else None

        logger.info(
            "capture.profile_completed",
            viewport=viewport,
            url=url,
            status=navigation.status,
            soft_timeout=navigation.soft_timeout,
            network_idle=navigation.network_idle,
            scrolled=scrolled,
        )
        return ScreenshotCapture(full_page=full_page, above_fold=above_fold), content

    async def capture_sections(self, url: str, viewport: str = "desktop") -> PageSectionsResult:
        """
        Capture full page plus hero, social proof and CTA crops at one viewport.

        hero falls back to an above-the-fold clip; social proof and CTA may be None.
        """
        config = SECTION_VIEWPORT_CONFIGS.get(viewport)
        if config is None:
            raise ValueError(f"Unsupported viewport: {viewport!r}")
        width, height = config["width"], config["height"]

        logger.info("capture.sections_started", url=url, viewport=viewport)

        async with self._playwright_factory() as playwright:
            browser: Optional[Browser] = None
            try:
                browser = await launch_browser(
                    playwright, args=SECTIONS_LAUNCH_ARGS, timeout_ms=self.sections_timeout_ms
                )
                context = await browser.new_context(
                    viewport={"width": width, "height": height},
                    user_agent=config["user_agent"],
                    ignore_https_errors=True,
                    java_script_enabled=True,
                    is_mobile=viewport == "mobile",
                    has_touch=viewport == "mobile",
                    locale=LOCALE,
                    timezone_id=TIMEZONE_ID,
                )
                try:
                    result = await self._capture_sections_in_context(
                        context, url, viewport, width, height
                    )
                finally:
                    await context.close()
            except PlaywrightError as e:
                logger.error(
                    "capture.sections_failed",
                    url=url,
                    viewport=viewport,
                    error=str(e),
                    error_type=type(e).__name__,
                )
                raise CaptureError("Failed to capture page sections") from e
            finally:
                if browser is not None:
                    await browser.close()

        logger.info(
            "capture.sections_completed",
            url=url,
            viewport=viewport,
            hero_selector=result.metadata.hero_selector,
            social_proof_found=result.metadata.social_proof_found,
            cta_found=result.metadata.cta_found,
        )
        return result

    async def _capture_sections_in_context(
        self, context: Any, url: str, viewport: str, width: int, height: int
    ) -> PageSectionsResult:
        page = await context.new_page()
        page.set_default_timeout(self.sections_timeout_ms)

        await navigate_strict(page, url, nav_timeout_ms=self.sections_timeout_ms)
        try:
            await page.wait_for_selector("body", timeout=SECTIONS_BODY_WAIT_TIMEOUT_MS)
        except PlaywrightError as e:
            logger.debug("capture.sections_body_wait_skipped", error=str(e))
        await settle_and_scroll(
            page,
            settle_ms=SECTIONS_SETTLE_DELAY_MS,
            scroll_fraction=1 / 3,
            scroll_wait_ms=SECTIONS_SCROLL_WAIT_MS,
        )

        full_page = await take_screenshot(
            page, full_page=True, timeout_ms=SECTIONS_FULL_PAGE_TIMEOUT_MS
        )
        hero_selector, hero = await capture_hero(page, width, height)
        social_proof = await capture_first_match(
            page,
            SOCIAL_PROOF_SELECTORS,
            section="social_proof",
            min_height=SOCIAL_PROOF_MIN_HEIGHT_PX,
        )
        cta = await capture_first_match(
            page, CTA_SELECTORS, section="cta", min_width=CTA_MIN_WIDTH_PX
        )

        return PageSectionsResult(
            hero=hero,
            full_page=full_page,
            social_proof=social_proof[1] if social_proof else None,
            cta=cta[1] if cta else None,
            metadata=SectionMetadata(
                hero_selector=hero_selector,
                social_proof_found=social_proof is not None,
                cta_found=cta is not None,
                viewport=viewport,
            ),
        )
