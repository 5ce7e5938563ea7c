"""
Value types produced and consumed by the capture engine.

All types are frozen; a cached ScreenshotResult is shared by every caller
that hits the same cache key.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Iterable, Optional


@dataclass(frozen=True)
class CaptureOptions:
    """Per-call capture options. wait_for_network_idle=None means enabled."""

    block_patterns: tuple[str, ...] = ()
    wait_for_network_idle: Optional[bool] = None

    @classmethod
    def build(
        cls,
        block_patterns: Optional[Iterable[str]] = None,
        wait_for_network_idle: Optional[bool] = None,
    ) -> "CaptureOptions":
        """Build options from loose input; blank patterns are dropped."""
        patterns = tuple(
            p.strip() for p in (block_patterns or ()) if isinstance(p, str) and p.strip()
        )
        return cls(block_patterns=patterns, wait_for_network_idle=wait_for_network_idle)

    @property
    def waits_for_network_idle(self) -> bool:
        return self.wait_for_network_idle is not False


@dataclass(frozen=True)
class ScreenshotCapture:
    """Base64-encoded PNGs for one viewport class."""

    full_page: str
    above_fold: str


@dataclass(frozen=True)
class PageContent:
    """Text signals extracted from the rendered desktop page."""

    title: str = ""
    meta_description: str = ""
    h1: str = ""
    subheadline: str = ""
    headlines: tuple[str, ...] = ()
    ctas: tuple[str, ...] = ()
    form_fields: int = 0
    review_count: int = 0
    has_reviews: bool = False
    has_trust_badges: bool = False
    has_urgency: bool = False
    has_social_proof: bool = False
    has_money_back_guarantee: bool = False
    has_free_shipping: bool = False
    full_text: str = ""
    compressed_html: str = ""

    @classmethod
    def empty(cls) -> "PageContent":
        return cls()

    def to_dict(self) -> dict:
        data = asdict(self)
        data["headlines"] = list(self.headlines)
        data["ctas"] = list(self.ctas)
        return data


@dataclass(frozen=True)
class ScreenshotResult:
    """Desktop and mobile captures of one URL, produced atomically."""

    desktop: ScreenshotCapture
    mobile: ScreenshotCapture
    captured_at: datetime
    content: PageContent = field(default_factory=PageContent)


@dataclass(frozen=True)
class SectionMetadata:
    hero_selector: str
    social_proof_found: bool
    cta_found: bool
    viewport: str


@dataclass(frozen=True)
class PageSectionsResult:
    """Section crops of a page; hero and full_page are always present."""

    hero: str
    full_page: str
    metadata: SectionMetadata
    social_proof: Optional[str] = None
    cta: Optional[str] = None
