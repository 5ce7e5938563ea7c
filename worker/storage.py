"""
Artifact storage for captured screenshots (local disk).

Convention: {artifacts_dir}/{owner_id}/{job_id}/{variant}.png

Uploads to the same owner/job/variant overwrite deterministically, so a
retried job replaces its earlier images instead of adding new ones.
"""

from __future__ import annotations

import base64
import binascii
import hashlib
import re
from pathlib import Path
from typing import Any, Optional

from shared.errors import UploadError
from shared.logging import get_logger
from worker.capture.models import ScreenshotResult

logger = get_logger(__name__)

SCREENSHOT_EXT = "png"
VARIANT_PATTERN = re.compile(r"^[a-z0-9-]+$")
# Path segments for owner/job ids: no separators or parent references.
SEGMENT_PATTERN = re.compile(r"^[A-Za-z0-9_.@-]+$")

# variant name -> (viewport, ScreenshotCapture attribute)
SCREENSHOT_VARIANTS = {
    "desktop-above-fold": ("desktop", "above_fold"),
    "desktop-full-page": ("desktop", "full_page"),
    "mobile-above-fold": ("mobile", "above_fold"),
    "mobile-full-page": ("mobile", "full_page"),
}


def _safe_segment(value: Any, label: str) -> str:
    segment = str(value)
    if not SEGMENT_PATTERN.match(segment) or segment in (".", ".."):
        raise UploadError(f"Invalid {label} for artifact path")
    return segment


class ArtifactUploader:
    """Writes screenshot bytes under a deterministic path and returns a stable reference."""

    def __init__(self, artifacts_dir: str | Path, public_base_url: Optional[str] = None):
        self.artifacts_root = Path(artifacts_dir)
        self.public_base_url = public_base_url.rstrip("/") if public_base_url else None

    @classmethod
    def from_config(cls, config: Any) -> "ArtifactUploader":
        return cls(config.artifacts_dir, config.artifacts_public_base_url)

    def build_artifact_path(self, owner_id: Any, job_id: Any, variant: str) -> Path:
        """Path for a variant (does not create the file or directory)."""
        if not VARIANT_PATTERN.match(variant or ""):
            raise UploadError(f"Invalid screenshot variant: {variant!r}")
        return (
            self.artifacts_root
            / _safe_segment(owner_id, "owner id")
            / _safe_segment(job_id, "job id")
            / f"{variant}.{SCREENSHOT_EXT}"
        )

    def get_storage_uri(self, path: Path) -> str:
        """
        Stable reference for a stored artifact.

        The path relative to the artifacts root, prefixed by the public base URL when set.
        """
        relative = path.relative_to(self.artifacts_root).as_posix()
        if self.public_base_url:
            return f"{self.public_base_url}/{relative}"
        return relative

    def upload(self, data: bytes, owner_id: Any, job_id: Any, variant: str) -> str:
        """
        Write bytes for one variant, overwriting any earlier upload.

        Raises UploadError on invalid input or storage failure.
        """
        path = self.build_artifact_path(owner_id, job_id, variant)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_bytes(data)
        except OSError as e:
            logger.error(
                "artifact.upload_failed",
                variant=variant,
                path=str(path),
                error=str(e),
                error_type=type(e).__name__,
            )
            raise UploadError(f"Failed to upload screenshot ({variant})") from e

        reference = self.get_storage_uri(path)
        logger.info(
            "artifact.uploaded",
            variant=variant,
            reference=reference,
            size_bytes=len(data),
            checksum=hashlib.md5(data).hexdigest(),
        )
        return reference

    def upload_screenshots(
        self, result: ScreenshotResult, owner_id: Any, job_id: Any
    ) -> dict[str, str]:
        """
        Upload all four capture variants; returns {variant: reference}.

        Stops at the first failure; the caller must not persist a partial map.
        """
        references: dict[str, str] = {}
        for variant, (viewport, attr) in SCREENSHOT_VARIANTS.items():
            encoded = getattr(getattr(result, viewport), attr)
            try:
                data = base64.b64decode(encoded, validate=True)
            except (binascii.Error, ValueError, TypeError) as e:
                raise UploadError(f"Failed to upload screenshot ({variant})") from e
            references[variant] = self.upload(data, owner_id, job_id, variant)
        return references
