"""
Unit tests for the RQ job entrypoint.

The store, job slots and AnalysisJob are patched; no Redis, Postgres or browser.
"""

from __future__ import annotations

from types import SimpleNamespace
from unittest.mock import MagicMock, patch

import pytest

from shared.errors import InsightGenerationError, InvalidURL, NavigationError
from worker.jobs import process_analysis_job
from worker.locking import JobSlotTimeoutError

ANALYSIS_ID = "2f6c1d7e-0c55-4c4e-9d61-8a3f0b1e2c44"
USER_ID = "user-42"


def _config(disable_locks: bool = True) -> SimpleNamespace:
    return SimpleNamespace(disable_locks=disable_locks, redis_url="redis://localhost:6379/0")


@pytest.fixture
def store():
    store = MagicMock()
    store.get_job_record.return_value = {"id": ANALYSIS_ID, "status": "pending"}
    return store


@pytest.fixture
def patched(store):
    """Patch process-wide collaborators; yields the AnalysisJob class mock."""
    with patch("worker.jobs.DatabaseAnalysisStore", return_value=store), patch(
        "worker.jobs.get_screenshot_service"
    ), patch("worker.jobs.ArtifactUploader"), patch("worker.jobs.LLMInsightGenerator"), patch(
        "worker.jobs.AnalysisJob"
    ) as job_cls:
        job_cls.return_value.run.return_value = {"analysis_id": ANALYSIS_ID, "status": "completed"}
        yield job_cls


def _run(**kwargs):
    return process_analysis_job(ANALYSIS_ID, USER_ID, "https://example.com", **kwargs)


def test_runs_job_with_record_status(patched, store):
    with patch("worker.jobs.get_config", return_value=_config()):
        result = _run(llm_provider="claude")

    assert result == {"analysis_id": ANALYSIS_ID, "status": "completed"}
    event = patched.call_args[0][0]
    assert event.llm_provider == "claude"
    assert patched.call_args.kwargs["initial_status"] == "pending"
    store.get_job_record.assert_called_once_with(ANALYSIS_ID, USER_ID)


def test_missing_record_raises(patched, store):
    store.get_job_record.return_value = None

    with patch("worker.jobs.get_config", return_value=_config()):
        with pytest.raises(ValueError):
            _run()

    patched.assert_not_called()


def test_completed_record_is_skipped(patched, store):
    store.get_job_record.return_value = {"id": ANALYSIS_ID, "status": "completed"}

    with patch("worker.jobs.get_config", return_value=_config()):
        result = _run()

    assert result["status"] == "completed"
    patched.assert_not_called()


def test_slot_is_released_when_job_fails(patched):
    patched.return_value.run.side_effect = NavigationError("boom")
    redis_client = MagicMock()

    with patch("worker.jobs.get_config", return_value=_config(disable_locks=False)), patch(
        "worker.jobs._redis_connection", return_value=redis_client
    ), patch("worker.jobs.acquire_job_slot", return_value="analysis:slot:0") as acquire, patch(
        "worker.jobs.release_job_slot"
    ) as release:
        with pytest.raises(NavigationError):
            _run()

    acquire.assert_called_once()
    release.assert_called_once()
    assert release.call_args[0][1] == "analysis:slot:0"


def test_slot_timeout_marks_record_failed(patched, store):
    with patch("worker.jobs.get_config", return_value=_config(disable_locks=False)), patch(
        "worker.jobs._redis_connection", return_value=MagicMock()
    ), patch(
        "worker.jobs.acquire_job_slot", side_effect=JobSlotTimeoutError("no slot")
    ), patch("worker.jobs.release_job_slot") as release:
        with pytest.raises(JobSlotTimeoutError):
            _run()

    store.update_job_record.assert_called_once_with(
        ANALYSIS_ID, USER_ID, {"status": "failed", "error_message": "Job slot timeout"}
    )
    release.assert_not_called()
    patched.assert_not_called()


def test_non_retryable_error_cancels_remaining_retries(patched):
    patched.return_value.run.side_effect = InvalidURL("URL must use http or https")
    rq_job = SimpleNamespace(retries_left=2)

    with patch("worker.jobs.get_config", return_value=_config()), patch(
        "worker.jobs.get_current_job", return_value=rq_job
    ):
        with pytest.raises(InvalidURL):
            _run()

    assert rq_job.retries_left == 0


def test_missing_api_key_cancels_remaining_retries(patched):
    patched.return_value.run.side_effect = InsightGenerationError(
        "OpenAI API key not configured", retryable=False
    )
    rq_job = SimpleNamespace(retries_left=1)

    with patch("worker.jobs.get_config", return_value=_config()), patch(
        "worker.jobs.get_current_job", return_value=rq_job
    ):
        with pytest.raises(InsightGenerationError):
            _run()

    assert rq_job.retries_left == 0


def test_retryable_error_keeps_remaining_retries(patched):
    patched.return_value.run.side_effect = NavigationError("Failed to load the page - network error")
    rq_job = SimpleNamespace(retries_left=2)

    with patch("worker.jobs.get_config", return_value=_config()), patch(
        "worker.jobs.get_current_job", return_value=rq_job
    ):
        with pytest.raises(NavigationError):
            _run()

    assert rq_job.retries_left == 2
