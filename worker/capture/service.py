"""
Screenshot service: the public capture API used by jobs and the HTTP layer.

Normalizes URLs, routes full captures through the shared CaptureCache, and
delegates browser work to the CaptureEngine.
"""

from __future__ import annotations

from typing import Any, Optional

from shared.logging import get_logger
from worker.capture.cache import CaptureCache
from worker.capture.engine import CaptureEngine
from worker.capture.models import CaptureOptions, PageSectionsResult, ScreenshotResult
from worker.capture.urls import build_cache_key, normalize_url

logger = get_logger(__name__)


class ScreenshotService:
    def __init__(self, engine: CaptureEngine, cache: CaptureCache):
        self.engine = engine
        self.cache = cache

    @classmethod
    def from_config(cls, config: Any) -> "ScreenshotService":
        return cls(
            engine=CaptureEngine.from_config(config),
            cache=CaptureCache(ttl_seconds=config.capture_cache_ttl_seconds),
        )

    async def capture_page_screenshots(
        self,
        url: str,
        options: Optional[CaptureOptions] = None,
    ) -> ScreenshotResult:
        """Desktop and mobile screenshots of url, served from cache within the TTL."""
        options = options or CaptureOptions()
        normalized = normalize_url(url)
        key = build_cache_key(normalized, options)

        async def _capture() -> ScreenshotResult:
            return await self.engine.capture(normalized, options)

        return await self.cache.get_or_capture(key, _capture)

    async def capture_page_sections(
        self,
        url: str,
        viewport: str = "desktop",
    ) -> PageSectionsResult:
        """Hero, social proof, CTA and full-page crops; not cached."""
        normalized = normalize_url(url)
        return await self.engine.capture_sections(normalized, viewport)
