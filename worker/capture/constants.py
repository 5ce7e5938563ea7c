"""
Capture constants: browser flags, device profiles, headers, timeouts, section selectors.
"""

from __future__ import annotations

from typing import Literal

Viewport = Literal["desktop", "mobile"]

# Chromium flags that suppress automation fingerprints. Sandboxing is disabled
# because workers run inside containers without user namespaces.
LAUNCH_ARGS = [
    "--disable-blink-features=AutomationControlled",
    "--disable-dev-shm-usage",
    "--no-sandbox",
    "--disable-setuid-sandbox",
    "--disable-web-security",
    "--disable-features=IsolateOrigins,site-per-process",
    "--allow-running-insecure-content",
]

# Sections capture launches with the minimal flag set.
SECTIONS_LAUNCH_ARGS = LAUNCH_ARGS[:4]

DESKTOP_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) "
    "AppleWebKit/537.36 (KHTML, like Gecko) "
    "Chrome/131.0.0.0 Safari/537.36"
)
MOBILE_SAFARI_USER_AGENT = (
    "Mozilla/5.0 (iPhone; CPU iPhone OS 17_0 like Mac OS X) "
    "AppleWebKit/605.1.15 (KHTML, like Gecko) "
    "Version/17.0 Mobile/15E148 Safari/604.1"
)

# Playwright device descriptor used for the mobile capture profile.
MOBILE_DEVICE_NAME = "iPhone 13"

LOCALE = "en-US"
TIMEZONE_ID = "America/New_York"

# Applied to every capture context, on top of the profile.
BASE_CONTEXT_OPTIONS = {
    "ignore_https_errors": True,
    "java_script_enabled": True,
    "has_touch": True,
    "permissions": ["geolocation"],
    "color_scheme": "light",
    "locale": LOCALE,
    "timezone_id": TIMEZONE_ID,
}

DESKTOP_PROFILE = {
    "viewport": {"width": 1920, "height": 1080},
    "user_agent": DESKTOP_USER_AGENT,
}

EXTRA_HTTP_HEADERS = {
    "Accept-Language": "en-US,en;q=0.9",
    "Accept": (
        "text/html,application/xhtml+xml,application/xml;q=0.9,"
        "image/avif,image/webp,image/apng,*/*;q=0.8"
    ),
    "Sec-Fetch-Dest": "document",
    "Sec-Fetch-Mode": "navigate",
    "Sec-Fetch-Site": "none",
    "Sec-Fetch-User": "?1",
    "Upgrade-Insecure-Requests": "1",
}

# Client hints only make sense for the Chrome desktop profile.
DESKTOP_CLIENT_HINT_HEADERS = {
    "sec-ch-ua": '"Google Chrome";v="131", "Chromium";v="131", "Not_A Brand";v="24"',
    "sec-ch-ua-mobile": "?0",
    "sec-ch-ua-platform": '"Windows"',
}

# Sections capture viewports
SECTION_VIEWPORT_CONFIGS = {
    "desktop": {"width": 1440, "height": 900, "user_agent": DESKTOP_USER_AGENT},
    "mobile": {"width": 375, "height": 812, "user_agent": MOBILE_SAFARI_USER_AGENT},
}

# Timeout constants (in milliseconds)
NAVIGATION_TIMEOUT_MS = 45_000
BODY_WAIT_TIMEOUT_MS = 10_000
NETWORK_IDLE_TIMEOUT_MS = 8_000
LOAD_FALLBACK_TIMEOUT_MS = 5_000
SETTLE_DELAY_MS = 2_500
SCROLL_WAIT_MS = 500
SCREENSHOT_TIMEOUT_MS = 45_000

SECTIONS_TIMEOUT_MS = 15_000
SECTIONS_BODY_WAIT_TIMEOUT_MS = 5_000
SECTIONS_SETTLE_DELAY_MS = 2_000
SECTIONS_SCROLL_WAIT_MS = 300
SECTIONS_FULL_PAGE_TIMEOUT_MS = 10_000

# Pointer positions visited after navigation.
POINTER_PATH = [(100, 100), (200, 200)]

# Hero heuristics, in priority order; a match must be taller than HERO_MIN_HEIGHT_PX.
HERO_SELECTORS = [
    '[class*="hero" i]',
    '[id*="hero" i]',
    "header section:first-of-type",
    "main > section:first-child",
    "section:first-of-type",
    "main > div:first-child",
]
HERO_MIN_HEIGHT_PX = 100
HERO_FALLBACK_LABEL = "viewport (above-the-fold)"
HERO_FALLBACK_MAX_HEIGHT_PX = 800

SOCIAL_PROOF_SELECTORS = [
    '[class*="review" i]',
    '[class*="testimonial" i]',
    '[class*="rating" i]',
    '[class*="stars" i]',
    '[data-testid*="review" i]',
    '[class*="customer" i][class*="review" i]',
]
SOCIAL_PROOF_MIN_HEIGHT_PX = 50

CTA_SELECTORS = [
    'button[class*="cta" i]',
    'a[class*="cta" i]',
    '[class*="primary" i][class*="button" i]',
    'button[class*="buy" i]',
    'button[class*="add-to-cart" i]',
    'button[class*="get-started" i]',
    '[role="button"][class*="primary" i]',
]
CTA_MIN_WIDTH_PX = 60

# Page content extraction limits
MAX_HEADLINES = 10
MAX_CTAS = 15
MAX_CTA_TEXT_LENGTH = 50
MAX_FULL_TEXT_CHARS = 4000
