"""
Route handler for synchronous screenshot capture.

Captures run in the API process and share its capture cache, so repeated
requests for the same URL and options within the TTL hit the cache.
"""

from __future__ import annotations

from typing import Annotated, Optional

from fastapi import APIRouter, Depends, HTTPException, status

from api.schemas import MobileScreenshot, ScreenshotRequest, ScreenshotResponse
from shared.config import get_config
from shared.errors import CaptureError, InvalidURL, NavigationTimeout, ScreenshotTimeout
from shared.logging import get_logger
from worker.capture import CaptureOptions, ScreenshotService

logger = get_logger(__name__)
router = APIRouter(prefix="/screenshots", tags=["screenshots"])

_screenshot_service: Optional[ScreenshotService] = None


def get_screenshot_service() -> ScreenshotService:
    """Dependency returning the process-wide screenshot service."""
    global _screenshot_service
    if _screenshot_service is None:
        _screenshot_service = ScreenshotService.from_config(get_config())
    return _screenshot_service


def _status_for(error: CaptureError) -> int:
    if isinstance(error, InvalidURL):
        return status.HTTP_400_BAD_REQUEST
    if isinstance(error, (ScreenshotTimeout, NavigationTimeout)):
        return status.HTTP_504_GATEWAY_TIMEOUT
    return status.HTTP_502_BAD_GATEWAY


@router.post("", response_model=ScreenshotResponse, summary="Capture a mobile full-page screenshot")
async def capture_screenshot(
    request: ScreenshotRequest,
    service: Annotated[ScreenshotService, Depends(get_screenshot_service)],
) -> ScreenshotResponse:
    options = CaptureOptions.build(
        block_patterns=request.block_patterns,
        wait_for_network_idle=request.wait_for_network_idle,
    )
    try:
        result = await service.capture_page_screenshots(request.url, options)
    except CaptureError as e:
        logger.warning(
            "screenshot_capture_failed",
            url=request.url,
            error=e.message,
            error_type=type(e).__name__,
        )
        raise HTTPException(status_code=_status_for(e), detail=e.message)

    return ScreenshotResponse(
        url=request.url,
        captured_at=result.captured_at,
        mobile=MobileScreenshot(full_page=f"data:image/png;base64,{result.mobile.full_page}"),
    )
