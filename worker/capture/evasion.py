"""
Automation masking applied to every capture context.

A fixed list of init scripts runs before any page script; nothing is
generated per site.
"""

from __future__ import annotations

from playwright.async_api import BrowserContext, Page

from worker.capture.constants import POINTER_PATH

EVASION_INIT_SCRIPTS = [
    # navigator.webdriver reads as undefined, like a regular browser.
    "Object.defineProperty(navigator, 'webdriver', { get: () => undefined });",
    "window.chrome = { runtime: {} };",
    """
    (() => {
      const originalQuery = window.navigator.permissions.query;
      window.navigator.permissions.query = (parameters) =>
        parameters.name === 'notifications'
          ? Promise.resolve({ state: 'denied' })
          : originalQuery(parameters);
    })();
    """,
    "Object.defineProperty(navigator, 'plugins', { get: () => [1, 2, 3, 4, 5] });",
    "Object.defineProperty(navigator, 'languages', { get: () => ['en-US', 'en'] });",
]


async def apply_evasion_scripts(context: BrowserContext) -> None:
    for script in EVASION_INIT_SCRIPTS:
        await context.add_init_script(script=script)


async def simulate_pointer_activity(page: Page) -> None:
    """Move the mouse along a short fixed path."""
    for x, y in POINTER_PATH:
        await page.mouse.move(x, y)
