"""
Unit tests for screenshot artifact storage.

Convention: {artifacts_dir}/{owner_id}/{job_id}/{variant}.png
"""

from __future__ import annotations

import base64
from datetime import datetime, timezone
from pathlib import Path
from unittest.mock import patch
from uuid import uuid4

import pytest

from shared.errors import UploadError
from worker.capture.models import ScreenshotCapture, ScreenshotResult
from worker.storage import SCREENSHOT_VARIANTS, ArtifactUploader

OWNER = "user-42"


def _b64(data: bytes) -> str:
    return base64.b64encode(data).decode("ascii")


def _result() -> ScreenshotResult:
    return ScreenshotResult(
        desktop=ScreenshotCapture(full_page=_b64(b"desktop-full"), above_fold=_b64(b"desktop-fold")),
        mobile=ScreenshotCapture(full_page=_b64(b"mobile-full"), above_fold=_b64(b"mobile-fold")),
        captured_at=datetime.now(timezone.utc),
    )


def test_build_artifact_path_structure(tmp_path):
    uploader = ArtifactUploader(tmp_path)
    job_id = uuid4()

    path = uploader.build_artifact_path(OWNER, job_id, "mobile-full-page")

    assert path == tmp_path / OWNER / str(job_id) / "mobile-full-page.png"


@pytest.mark.parametrize("variant", ["", "Mobile", "mobile_full", "../x", "a b"])
def test_build_artifact_path_rejects_bad_variant(tmp_path, variant):
    with pytest.raises(UploadError):
        ArtifactUploader(tmp_path).build_artifact_path(OWNER, "job", variant)


@pytest.mark.parametrize("owner", ["..", "a/b", ""])
def test_build_artifact_path_rejects_unsafe_owner(tmp_path, owner):
    with pytest.raises(UploadError):
        ArtifactUploader(tmp_path).build_artifact_path(owner, "job", "desktop-full-page")


def test_upload_writes_bytes_and_returns_relative_reference(tmp_path):
    uploader = ArtifactUploader(tmp_path)
    job_id = uuid4()

    reference = uploader.upload(b"\x89PNG", OWNER, job_id, "desktop-above-fold")

    assert reference == f"{OWNER}/{job_id}/desktop-above-fold.png"
    assert (tmp_path / reference).read_bytes() == b"\x89PNG"


def test_upload_overwrites_same_variant(tmp_path):
    uploader = ArtifactUploader(tmp_path)

    first = uploader.upload(b"one", OWNER, "job-1", "mobile-full-page")
    second = uploader.upload(b"two", OWNER, "job-1", "mobile-full-page")

    assert first == second
    assert (tmp_path / second).read_bytes() == b"two"


def test_upload_prefixes_public_base_url(tmp_path):
    uploader = ArtifactUploader(tmp_path, public_base_url="https://cdn.example.com/shots/")

    reference = uploader.upload(b"x", OWNER, "job-1", "mobile-full-page")

    assert reference == f"https://cdn.example.com/shots/{OWNER}/job-1/mobile-full-page.png"


def test_upload_storage_failure_raises_upload_error(tmp_path):
    uploader = ArtifactUploader(tmp_path)

    with patch.object(Path, "write_bytes", side_effect=PermissionError("read-only")):
        with pytest.raises(UploadError) as exc_info:
            uploader.upload(b"x", OWNER, "job-1", "mobile-full-page")

    assert exc_info.value.message == "Failed to upload screenshot (mobile-full-page)"


def test_upload_screenshots_stores_all_four_variants(tmp_path):
    uploader = ArtifactUploader(tmp_path)

    references = uploader.upload_screenshots(_result(), OWNER, "job-1")

    assert set(references) == set(SCREENSHOT_VARIANTS)
    assert (tmp_path / references["mobile-full-page"]).read_bytes() == b"mobile-full"
    assert (tmp_path / references["desktop-above-fold"]).read_bytes() == b"desktop-fold"


def test_upload_screenshots_rejects_invalid_base64(tmp_path):
    uploader = ArtifactUploader(tmp_path)
    shot = ScreenshotCapture(full_page="not base64!!", above_fold=_b64(b"ok"))
    result = ScreenshotResult(desktop=shot, mobile=shot, captured_at=datetime.now(timezone.utc))

    with pytest.raises(UploadError):
        uploader.upload_screenshots(result, OWNER, "job-1")
