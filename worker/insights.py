"""
CRO insight generation from captured page content and screenshots.

Two providers are supported: "gpt" (OpenAI Responses API) and "claude"
(Anthropic Messages API). Both receive the same prompt (URL, caller context,
heuristic score, compressed HTML) plus the mobile full-page screenshot, and
must answer with a JSON object holding "summary" and "recommendations".
"""

from __future__ import annotations

import json
import re
import time
from dataclasses import dataclass, field
from typing import Any, Optional, Protocol

import anthropic
import openai
from anthropic import Anthropic
from openai import OpenAI

from shared.errors import InsightGenerationError
from shared.logging import get_logger
from worker.capture.content import compute_heuristic_score
from worker.capture.models import PageContent, ScreenshotResult

logger = get_logger(__name__)

PROVIDERS = ("gpt", "claude")

DEFAULT_SUMMARY = {
    "headline": "Analysis generated successfully",
    "diagnosticTone": "direct",
    "confidence": "medium",
}
UNPARSEABLE_SUMMARY = {
    "headline": "Analysis completed but response formatting had issues.",
    "diagnosticTone": "Please review the analysis manually.",
    "confidence": "medium",
}

# Screenshot variant sent to the model.
PROMPT_IMAGE_VARIANT = "mobile-full-page"

RESPONSE_FORMAT = """{
  "summary": {"headline": "...", "diagnosticTone": "...", "confidence": "high|medium|low"},
  "recommendations": [
    {
      "id": "...", "title": "...", "hypothesis": "If we ..., then ... because ...",
      "impact": "High|Medium|Low", "effort": "Low|Medium|High", "priority": "P0|P1|P2",
      "kpi": "...", "rationale": "...", "currentState": "...", "proposedChange": "...",
      "expectedLift": "..."
    }
  ]
}"""


@dataclass(frozen=True)
class TokenUsage:
    input_tokens: int = 0
    output_tokens: int = 0

    @property
    def total_tokens(self) -> int:
        return self.input_tokens + self.output_tokens

    def as_record(self) -> dict:
        """Usage as stored on the analysis record."""
        return {
            "totalTokens": self.total_tokens,
            "analysisInputTokens": self.input_tokens,
            "analysisOutputTokens": self.output_tokens,
        }


@dataclass(frozen=True)
class InsightResult:
    summary: dict
    recommendations: list
    usage: TokenUsage = field(default_factory=TokenUsage)


@dataclass(frozen=True)
class PageAnalysisInput:
    """What the insight step sees: extracted content, uploaded references, prompt image."""

    content: PageContent
    screenshots: dict[str, str]
    image: Optional[str] = None

    @classmethod
    def from_capture(
        cls, result: ScreenshotResult, references: dict[str, str]
    ) -> "PageAnalysisInput":
        """
        Build input from a capture and its uploaded references.

        A public http(s) reference is sent as-is; otherwise the image is inlined
        as a data URL from the captured bytes.
        """
        reference = references.get(PROMPT_IMAGE_VARIANT, "")
        if reference.startswith(("http://", "https://")):
            image = reference
        elif result.mobile.full_page:
            image = f"data:image/png;base64,{result.mobile.full_page}"
        else:
            image = None
        return cls(content=result.content, screenshots=dict(references), image=image)


class InsightGenerator(Protocol):
    def generate(
        self,
        page: PageAnalysisInput,
        url: str,
        context: dict,
        provider: str,
    ) -> InsightResult: ...


def build_prompt(url: str, context: dict, content: PageContent, max_html_chars: int) -> str:
    lines = [
        "You are an expert CRO (conversion rate optimization) analyst for DTC e-commerce "
        "and landing pages.",
        "",
        f"URL: {url}",
    ]
    context_lines = [f"- {key}: {value}" for key, value in (context or {}).items() if value]
    if context_lines:
        lines += ["", "Page context:", *context_lines]

    score = compute_heuristic_score(content)
    lines += [
        "",
        f"Heuristic CRO score: {score['score']}/{score['max_score']} ({score['percentage']}%)",
        f"Title: {content.title}",
        f"H1: {content.h1}",
        f"CTAs: {', '.join(content.ctas)}",
        "",
        "You receive the mobile full-page screenshot and the compressed rendered HTML.",
        "Return ONLY valid JSON in this shape, no markdown:",
        RESPONSE_FORMAT,
        "",
        "PAGE HTML SOURCE:",
        content.compressed_html[:max_html_chars],
        "END OF HTML SOURCE",
    ]
    return "\n".join(lines)


def parse_insights(text: str) -> dict:
    """
    Parse a model response into a dict.

    Strips code fences, then tries the whole text and the outermost {...} block.
    Falls back to a placeholder summary with no recommendations.
    """
    cleaned = re.sub(r"```(?:json)?\s*", "", text or "").strip()
    candidates = [cleaned]
    match = re.search(r"\{.*\}", cleaned, re.DOTALL)
    if match:
        candidates.append(match.group(0))

    for candidate in candidates:
        try:
            parsed = json.loads(candidate)
        except json.JSONDecodeError:
            continue
        if isinstance(parsed, dict):
            return parsed

    logger.warning("insights.parse_failed", response_chars=len(text or ""))
    return {"summary": dict(UNPARSEABLE_SUMMARY), "recommendations": []}


def _extract_output_text(resp: Any) -> str:
    text = getattr(resp, "output_text", None)
    if isinstance(text, str) and text.strip():
        return text.strip()
    for item in getattr(resp, "output", None) or []:
        for part in getattr(item, "content", None) or []:
            part_text = getattr(part, "text", None)
            if isinstance(part_text, str) and part_text.strip():
                return part_text.strip()
    return ""


def _claude_image_block(image: str) -> dict:
    if image.startswith("data:"):
        header, _, data = image.partition(",")
        media_type = header[len("data:") :].split(";")[0] or "image/png"
        return {"type": "image", "source": {"type": "base64", "media_type": media_type, "data": data}}
    return {"type": "image", "source": {"type": "url", "url": image}}


class LLMInsightGenerator:
    """InsightGenerator backed by the OpenAI and Anthropic SDKs."""

    def __init__(
        self,
        config: Any,
        *,
        openai_client: Optional[OpenAI] = None,
        anthropic_client: Optional[Anthropic] = None,
    ):
        self.config = config
        self._openai_client = openai_client
        self._anthropic_client = anthropic_client

    def _openai(self) -> OpenAI:
        if self._openai_client is None:
            if not self.config.openai_api_key:
                raise InsightGenerationError("OpenAI API key not configured", retryable=False)
            self._openai_client = OpenAI(api_key=self.config.openai_api_key)
        return self._openai_client

    def _anthropic(self) -> Anthropic:
        if self._anthropic_client is None:
            if not self.config.anthropic_api_key:
                raise InsightGenerationError("Anthropic API key not configured", retryable=False)
            self._anthropic_client = Anthropic(api_key=self.config.anthropic_api_key)
        return self._anthropic_client

    def generate(
        self,
        page: PageAnalysisInput,
        url: str,
        context: dict,
        provider: str,
    ) -> InsightResult:
        if provider not in PROVIDERS:
            raise InsightGenerationError(
                f"Unsupported insight provider: {provider}", retryable=False
            )

        prompt = build_prompt(url, context, page.content, self.config.insights_max_html_chars)
        start = time.monotonic()
        logger.info("insights.started", provider=provider, url=url, has_image=bool(page.image))

        try:
            if provider == "gpt":
                text, usage = self._generate_gpt(prompt, page.image)
            else:
                text, usage = self._generate_claude(prompt, page.image)
        except (openai.OpenAIError, anthropic.AnthropicError) as e:
            logger.error(
                "insights.provider_failed",
                provider=provider,
                error=str(e),
                error_type=type(e).__name__,
            )
            raise InsightGenerationError(f"Insight provider request failed ({provider})") from e

        insights = parse_insights(text)
        summary = insights.get("summary") or dict(DEFAULT_SUMMARY)
        recommendations = insights.get("recommendations") or []
        if not isinstance(recommendations, list):
            recommendations = []

        logger.info(
            "insights.completed",
            provider=provider,
            recommendations=len(recommendations),
            input_tokens=usage.input_tokens,
            output_tokens=usage.output_tokens,
            duration_ms=round((time.monotonic() - start) * 1000, 1),
        )
        return InsightResult(summary=summary, recommendations=recommendations, usage=usage)

    def _generate_gpt(self, prompt: str, image: Optional[str]) -> tuple[str, TokenUsage]:
        content: list[dict] = [{"type": "input_text", "text": prompt}]
        if image:
            content.append({"type": "input_image", "image_url": image, "detail": "high"})

        resp = self._openai().responses.create(
            model=self.config.openai_insights_model,
            input=[{"role": "user", "content": content}],
            max_output_tokens=self.config.insights_max_output_tokens,
        )
        usage = getattr(resp, "usage", None)
        return _extract_output_text(resp), TokenUsage(
            input_tokens=getattr(usage, "input_tokens", None) or 0,
            output_tokens=getattr(usage, "output_tokens", None) or 0,
        )

    def _generate_claude(self, prompt: str, image: Optional[str]) -> tuple[str, TokenUsage]:
        content: list[dict] = [{"type": "text", "text": prompt}]
        if image:
            content.append(_claude_image_block(image))
        else:
            content.append(
                {"type": "text", "text": "No screenshot is available; rely on the HTML only."}
            )

        resp = self._anthropic().messages.create(
            model=self.config.anthropic_insights_model,
            max_tokens=self.config.insights_max_output_tokens,
            messages=[{"role": "user", "content": content}],
        )
        text = "".join(
            block.text for block in resp.content if getattr(block, "type", None) == "text"
        )
        usage = getattr(resp, "usage", None)
        return text, TokenUsage(
            input_tokens=getattr(usage, "input_tokens", None) or 0,
            output_tokens=getattr(usage, "output_tokens", None) or 0,
        )
