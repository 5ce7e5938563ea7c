"""
Page content extraction for insight generation: meta, headings, CTAs, CRO signals, compressed HTML.

Extraction runs on the rendered desktop page after screenshots are taken.
It is best effort: any failure yields PageContent.empty().
"""

from __future__ import annotations

import re
from typing import Any

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import Page

from shared.logging import get_logger
from worker.capture.constants import (
    MAX_CTA_TEXT_LENGTH,
    MAX_CTAS,
    MAX_FULL_TEXT_CHARS,
    MAX_HEADLINES,
)
from worker.capture.models import PageContent

logger = get_logger(__name__)

URGENCY_PATTERN = re.compile(
    r"(limited|hurry|now|today|sale|ending|last chance|only.*left|selling fast)", re.IGNORECASE
)
SOCIAL_PROOF_PATTERN = re.compile(
    r"(customer|bought|purchased|rated|verified|reviews|testimonial|people love|bestseller)",
    re.IGNORECASE,
)
GUARANTEE_PATTERN = re.compile(
    r"(money.back|satisfaction guaranteed|100% guarantee|risk.free|refund)", re.IGNORECASE
)
FREE_SHIPPING_PATTERN = re.compile(r"(free shipping|free delivery|ships free)", re.IGNORECASE)

# Collects raw DOM facts in one round trip; signal logic stays in Python.
EXTRACT_SCRIPT = """
() => {
  const text = (el) => (el && el.textContent ? el.textContent.trim() : '');
  const all = (sel) => Array.from(document.querySelectorAll(sel));
  const meta = document.querySelector('meta[name="description"]');
  return {
    title: document.title || '',
    metaDescription: meta ? (meta.getAttribute('content') || '') : '',
    h1: text(document.querySelector('h1')),
    subheadline: text(document.querySelector('h2')),
    headlines: all('h2, h3').map(text),
    ctas: all('button, a.btn, [class*="button"], [class*="cta"], [class*="add-to-cart"]').map(text),
    formFields: all('input, select, textarea').length,
    reviewElements: all('[class*="review"], [class*="rating"], [class*="stars"], [class*="testimonial"]').length,
    reviewCount: all('[class*="review"], [class*="testimonial"]').length,
    trustElements: all('[class*="trust"], [class*="secure"], [class*="guarantee"], [class*="badge"], [class*="certified"]').length,
    bodyText: document.body ? (document.body.innerText || document.body.textContent || '') : '',
  };
}
"""

_BLOCK_PATTERNS = [
    re.compile(r"<script[^>]*>.*?</script>", re.DOTALL | re.IGNORECASE),
    re.compile(r"<style[^>]*>.*?</style>", re.DOTALL | re.IGNORECASE),
    re.compile(r"<noscript[^>]*>.*?</noscript>", re.DOTALL | re.IGNORECASE),
    re.compile(r"<svg[^>]*>.*?</svg>", re.DOTALL | re.IGNORECASE),
    re.compile(r"<!--.*?-->", re.DOTALL),
    re.compile(r"<link[^>]*>", re.IGNORECASE),
]


def normalize_whitespace(text: str) -> str:
    return re.sub(r"\s+", " ", text or "").strip()


def compress_html(html: str, max_chars: int | None = None) -> str:
    """Strip scripts, styles, comments, noscript, svg and link tags; collapse whitespace."""
    for pattern in _BLOCK_PATTERNS:
        html = pattern.sub("", html or "")
    html = re.sub(r">\s+<", "><", html)
    html = normalize_whitespace(html)
    if max_chars is not None and len(html) > max_chars:
        html = html[:max_chars]
    return html


def build_page_content(raw: dict[str, Any], html: str = "") -> PageContent:
    """Turn raw DOM facts into PageContent; pure so it can be tested without a browser."""
    body_text = normalize_whitespace(str(raw.get("bodyText") or ""))

    headlines = [normalize_whitespace(h) for h in raw.get("headlines") or []]
    ctas = [normalize_whitespace(c) for c in raw.get("ctas") or []]

    return PageContent(
        title=normalize_whitespace(str(raw.get("title") or "")),
        meta_description=normalize_whitespace(str(raw.get("metaDescription") or "")),
        h1=normalize_whitespace(str(raw.get("h1") or "")),
        subheadline=normalize_whitespace(str(raw.get("subheadline") or "")),
        headlines=tuple([h for h in headlines if h][:MAX_HEADLINES]),
        ctas=tuple([c for c in ctas if 0 < len(c) < MAX_CTA_TEXT_LENGTH][:MAX_CTAS]),
        form_fields=int(raw.get("formFields") or 0),
        review_count=int(raw.get("reviewCount") or 0),
        has_reviews=int(raw.get("reviewElements") or 0) > 0,
        has_trust_badges=int(raw.get("trustElements") or 0) > 0,
        has_urgency=bool(URGENCY_PATTERN.search(body_text)),
        has_social_proof=bool(SOCIAL_PROOF_PATTERN.search(body_text)),
        has_money_back_guarantee=bool(GUARANTEE_PATTERN.search(body_text)),
        has_free_shipping=bool(FREE_SHIPPING_PATTERN.search(body_text)),
        full_text=body_text[:MAX_FULL_TEXT_CHARS],
        compressed_html=compress_html(html),
    )


async def extract_page_content(page: Page) -> PageContent:
    try:
        raw = await page.evaluate(EXTRACT_SCRIPT)
        html = await page.content()
    except PlaywrightError as e:
        logger.warning(
            "capture.content_extraction_failed",
            error=str(e),
            error_type=type(e).__name__,
        )
        return PageContent.empty()
    return build_page_content(raw or {}, html)


# (label, points, predicate) rows of the heuristic CRO rubric.
HEURISTIC_RUBRIC = [
    ("Clear H1 Headline", 10, lambda c: bool(c.h1)),
    ("Subheadline", 5, lambda c: bool(c.subheadline)),
    ("Call-to-Action Buttons", 15, lambda c: len(c.ctas) > 0),
    ("Social Proof (Reviews/Testimonials)", 10, lambda c: c.has_reviews),
    ("Trust Badges/Security Indicators", 10, lambda c: c.has_trust_badges),
    ("Urgency/Scarcity Elements", 8, lambda c: c.has_urgency),
    ("Social Proof Language", 7, lambda c: c.has_social_proof),
    ("Money-Back Guarantee", 10, lambda c: c.has_money_back_guarantee),
    ("Free Shipping Offer", 8, lambda c: c.has_free_shipping),
    ("Form Fields (Not Too Many)", 7, lambda c: 0 < c.form_fields <= 5),
    ("SEO Meta Description", 5, lambda c: bool(c.meta_description)),
    ("Clear Page Title", 5, lambda c: bool(c.title)),
]


def compute_heuristic_score(content: PageContent) -> dict:
    """
    Score page content against the fixed CRO rubric.

    Returns {"score", "max_score", "percentage", "breakdown"} where breakdown
    maps each label to {"present", "points"}.
    """
    breakdown = {
        label: {"present": bool(check(content)), "points": points}
        for label, points, check in HEURISTIC_RUBRIC
    }
    score = sum(item["points"] for item in breakdown.values() if item["present"])
    max_score = sum(item["points"] for item in breakdown.values())
    return {
        "score": score,
        "max_score": max_score,
        "percentage": round(score / max_score * 100),
        "breakdown": breakdown,
    }
