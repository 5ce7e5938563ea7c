"""
Tests for the synchronous screenshot endpoint.

The screenshot service is a MagicMock with an AsyncMock capture method.
"""

from __future__ import annotations

from datetime import datetime, timezone
from unittest.mock import AsyncMock

import pytest
from fastapi import status

from shared.errors import InvalidURL, NavigationError, NavigationTimeout, ScreenshotTimeout
from worker.capture.models import CaptureOptions, ScreenshotCapture, ScreenshotResult

CAPTURED_AT = datetime(2025, 3, 1, 12, 0, tzinfo=timezone.utc)


def _result() -> ScreenshotResult:
    return ScreenshotResult(
        desktop=ScreenshotCapture(full_page="REVTSw==", above_fold="REVTSw=="),
        mobile=ScreenshotCapture(full_page="TU9CSUxF", above_fold="Rk9MRA=="),
        captured_at=CAPTURED_AT,
    )


def test_capture_returns_mobile_full_page_data_url(client, screenshot_service):
    screenshot_service.capture_page_screenshots = AsyncMock(return_value=_result())

    response = client.post(
        "/screenshots",
        json={
            "url": "https://example.com",
            "blockPatterns": ["*.gif", "  ", 7],
            "waitForNetworkIdle": False,
        },
    )

    assert response.status_code == status.HTTP_200_OK
    data = response.json()
    assert data["url"] == "https://example.com"
    assert data["mobile"]["fullPage"] == "data:image/png;base64,TU9CSUxF"
    assert datetime.fromisoformat(data["capturedAt"].replace("Z", "+00:00")) == CAPTURED_AT

    url, options = screenshot_service.capture_page_screenshots.await_args[0]
    assert url == "https://example.com"
    assert options == CaptureOptions(block_patterns=("*.gif",), wait_for_network_idle=False)


def test_capture_defaults_to_network_idle(client, screenshot_service):
    screenshot_service.capture_page_screenshots = AsyncMock(return_value=_result())

    client.post("/screenshots", json={"url": "https://example.com"})

    _, options = screenshot_service.capture_page_screenshots.await_args[0]
    assert options.waits_for_network_idle is True
    assert options.block_patterns == ()


@pytest.mark.parametrize(
    "error,expected_status",
    [
        (InvalidURL("Invalid URL"), status.HTTP_400_BAD_REQUEST),
        (ScreenshotTimeout("Timed out while capturing screenshot"), status.HTTP_504_GATEWAY_TIMEOUT),
        (NavigationTimeout("Navigation timed out"), status.HTTP_504_GATEWAY_TIMEOUT),
        (NavigationError("Failed to load the page - network error"), status.HTTP_502_BAD_GATEWAY),
    ],
)
def test_capture_errors_map_to_status_codes(client, screenshot_service, error, expected_status):
    screenshot_service.capture_page_screenshots = AsyncMock(side_effect=error)

    response = client.post("/screenshots", json={"url": "https://example.com"})

    assert response.status_code == expected_status
    assert response.json()["detail"] == error.message


def test_capture_requires_url(client):
    response = client.post("/screenshots", json={})

    assert response.status_code == 422
