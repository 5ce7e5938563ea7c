"""
Playwright-based page capture: URL normalization, request blocking, result
caching with in-flight dedup, and desktop/mobile screenshot capture.

Public API: re-exports the symbols used by jobs, the API and tests so that
`from worker.capture import ...` stays stable.
"""

from __future__ import annotations

from worker.capture.blocking import RequestBlocker, glob_to_regex
from worker.capture.cache import CaptureCache
from worker.capture.content import compress_html, compute_heuristic_score
from worker.capture.engine import CaptureEngine
from worker.capture.models import (
    CaptureOptions,
    PageContent,
    PageSectionsResult,
    ScreenshotCapture,
    ScreenshotResult,
    SectionMetadata,
)
from worker.capture.service import ScreenshotService
from worker.capture.urls import build_cache_key, normalize_url

__all__ = [
    "CaptureCache",
    "CaptureEngine",
    "CaptureOptions",
    "PageContent",
    "PageSectionsResult",
    "RequestBlocker",
    "ScreenshotCapture",
    "ScreenshotResult",
    "ScreenshotService",
    "SectionMetadata",
    "build_cache_key",
    "compress_html",
    "compute_heuristic_score",
    "glob_to_regex",
    "normalize_url",
]
