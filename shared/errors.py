"""
Error taxonomy for the capture-and-analysis pipeline.

Shared by the API and worker services. Messages on these exceptions are
written by this codebase and are safe to persist in error_message; anything
else is replaced with a fallback so raw exception content stays in logs only.
"""

from __future__ import annotations

from typing import Optional


class AnalysisError(Exception):
    """Base class for every pipeline failure that can be stored on a record."""

    # False cancels the remaining whole-job retries.
    retryable = True

    def __init__(self, message: str, *, retryable: Optional[bool] = None) -> None:
        super().__init__(message)
        self.message = message
        if retryable is not None:
            self.retryable = retryable


class CaptureError(AnalysisError):
    """Raised when the browser capture cannot produce a result."""


class InvalidURL(CaptureError, ValueError):
    """Raised when a URL is unparsable or not http/https."""

    retryable = False


class NavigationTimeout(CaptureError):
    """Raised when navigation exceeds its budget and the caller needs a page."""


class NavigationError(CaptureError):
    """Raised on network/DNS level navigation failures (net::ERR_*)."""


class ScreenshotError(CaptureError):
    """Raised when a screenshot cannot be encoded."""


class ScreenshotTimeout(ScreenshotError):
    """Raised when a screenshot stalls past its timeout."""


class UploadError(AnalysisError):
    """Raised when artifact storage rejects a write."""


class InsightGenerationError(AnalysisError):
    """Raised when the LLM provider call or its setup fails."""


class PersistenceError(AnalysisError):
    """Raised when an analysis record cannot be written."""


def error_message_for(exc: BaseException, fallback: str = "Analysis failed") -> str:
    """
    Return the message to store on a failed analysis record.

    Taxonomy errors carry their own message; other exceptions use fallback.
    """
    if isinstance(exc, AnalysisError):
        msg = (exc.message or "").strip()
        if msg:
            return msg
    return fallback
