"""
Browser launch and context creation for captures (profile, UA, timezone, headers).

Each capture call owns its browser; contexts are opened and closed per profile.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from playwright.async_api import Browser, BrowserContext, Playwright

from shared.logging import get_logger
from worker.capture.blocking import RequestBlocker
from worker.capture.constants import (
    BASE_CONTEXT_OPTIONS,
    DESKTOP_CLIENT_HINT_HEADERS,
    DESKTOP_PROFILE,
    EXTRA_HTTP_HEADERS,
    LAUNCH_ARGS,
    MOBILE_DEVICE_NAME,
    Viewport,
)
from worker.capture.evasion import apply_evasion_scripts

logger = get_logger(__name__)


async def launch_browser(
    playwright: Playwright,
    *,
    args: Optional[list[str]] = None,
    timeout_ms: Optional[int] = None,
) -> Browser:
    """Launch headless Chromium with automation-suppressing flags."""
    launch_kwargs: dict = {"headless": True, "args": list(args or LAUNCH_ARGS)}
    if timeout_ms is not None:
        launch_kwargs["timeout"] = timeout_ms
    return await playwright.chromium.launch(**launch_kwargs)


def build_context_options(playwright: Playwright, viewport: Viewport) -> dict:
    """
    Context options for a capture profile.

    Desktop is a fixed 1920x1080 Chrome profile; mobile uses Playwright's
    iPhone 13 descriptor (viewport, UA, scale factor, touch).
    """
    if viewport == "desktop":
        profile = dict(DESKTOP_PROFILE)
    elif viewport == "mobile":
        profile = dict(playwright.devices[MOBILE_DEVICE_NAME])
        # Descriptors carry the default browser name, which new_context rejects.
        profile.pop("default_browser_type", None)
    else:
        raise ValueError(f"Unsupported viewport: {viewport!r}")

    return {**profile, **BASE_CONTEXT_OPTIONS}


def build_extra_headers(viewport: Viewport) -> dict[str, str]:
    headers = dict(EXTRA_HTTP_HEADERS)
    if viewport == "desktop":
        headers.update(DESKTOP_CLIENT_HINT_HEADERS)
    return headers


@asynccontextmanager
async def open_capture_context(
    browser: Browser,
    playwright: Playwright,
    viewport: Viewport,
    blocker: Optional[RequestBlocker] = None,
) -> AsyncIterator[BrowserContext]:
    """
    Open an isolated, masked context for one profile; closed on every exit path.

    Usage:
        async with open_capture_context(browser, pw, "desktop", blocker) as context:
            page = await context.new_page()
    """
    context = await browser.new_context(**build_context_options(playwright, viewport))
    try:
        await context.set_extra_http_headers(build_extra_headers(viewport))
        await apply_evasion_scripts(context)
        if blocker is not None:
            await blocker.install(context)
        yield context
    finally:
        try:
            await context.close()
        except Exception as e:
            logger.warning(
                "capture.context_close_failed",
                viewport=viewport,
                error=str(e),
                error_type=type(e).__name__,
            )
