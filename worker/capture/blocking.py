"""
Glob-based request blocking for capture contexts.

Patterns use `*` as the only wildcard and match anywhere in the request URL,
case-insensitively. Everything else in a pattern is literal.
"""

from __future__ import annotations

import re
from typing import Iterable, Optional

from playwright.async_api import BrowserContext, Route

from shared.logging import get_logger

logger = get_logger(__name__)

ROUTE_ALL = "**/*"


def glob_to_regex(pattern: str) -> re.Pattern[str]:
    """
    Compile a glob into a case-insensitive regex.

    Each literal run is escaped, then runs are joined with `.*`.

    Examples:
        *.doubleclick.net -> .*\\.doubleclick\\.net
    """
    literal_runs = pattern.split("*")
    return re.compile(".*".join(re.escape(run) for run in literal_runs), re.IGNORECASE)


class RequestBlocker:
    """Aborts requests whose URL matches any configured glob."""

    def __init__(self, patterns: Optional[Iterable[str]] = None):
        self.patterns = tuple(p.strip() for p in (patterns or ()) if p and p.strip())
        self._matchers = [glob_to_regex(p) for p in self.patterns]

    @property
    def is_empty(self) -> bool:
        return not self._matchers

    def matches(self, url: str) -> bool:
        return any(m.search(url) for m in self._matchers)

    async def handle_route(self, route: Route) -> None:
        request_url = route.request.url
        if self.matches(request_url):
            logger.debug("capture.request_blocked", request_url=request_url)
            await route.abort()
            return
        await route.continue_()

    async def install(self, context: BrowserContext) -> None:
        """Register the interceptor on a context; no-op without patterns."""
        if self.is_empty:
            return
        await context.route(ROUTE_ALL, self.handle_route)
