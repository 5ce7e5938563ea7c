"""
Unit tests for the Redis job-slot semaphore.

Uses mocked Redis; no real Redis required. Covers acquire/release and retry backoff.
"""

from __future__ import annotations

from types import SimpleNamespace
from unittest.mock import MagicMock, patch

import pytest

from worker.constants import SLOT_KEY_PREFIX
from worker.locking import JobSlotTimeoutError, acquire_job_slot, release_job_slot


def _slot_config(
    concurrency: int = 2,
    ttl_seconds: int = 900,
    max_retries: int = 3,
    backoff_base_ms: int = 1000,
) -> SimpleNamespace:
    return SimpleNamespace(
        job_concurrency=concurrency,
        job_slot_ttl_seconds=ttl_seconds,
        job_slot_max_retries=max_retries,
        job_slot_backoff_base_ms=backoff_base_ms,
    )


# --- acquire_job_slot ---


def test_acquire_takes_first_free_slot():
    redis = MagicMock()
    redis.set.return_value = True

    key = acquire_job_slot(redis, "worker-1", "analysis-1", _slot_config())

    assert key == f"{SLOT_KEY_PREFIX}0"
    redis.set.assert_called_once()
    call_kw = redis.set.call_args[1]
    assert call_kw.get("nx") is True
    assert call_kw.get("ex") == 900
    assert redis.set.call_args[0][1].startswith("worker-1:analysis-1:")


def test_acquire_falls_through_to_second_slot():
    redis = MagicMock()
    redis.set.side_effect = [False, True]

    key = acquire_job_slot(redis, "w", "a", _slot_config(concurrency=2))

    assert key == f"{SLOT_KEY_PREFIX}1"


def test_acquire_times_out_when_all_slots_busy():
    redis = MagicMock()
    redis.set.return_value = False

    with patch("worker.locking.time.sleep") as mock_sleep:
        with pytest.raises(JobSlotTimeoutError):
            acquire_job_slot(redis, "w", "a", _slot_config(concurrency=2, max_retries=3))

    # Every slot tried on every attempt; no sleep after the last attempt.
    assert redis.set.call_count == 6
    calls = [c[0][0] for c in mock_sleep.call_args_list]
    assert len(calls) == 2
    assert 1.0 <= calls[0] <= 1.5
    assert 2.0 <= calls[1] <= 2.5


def test_acquire_succeeds_after_backoff():
    redis = MagicMock()
    redis.set.side_effect = [False, False, True]

    with patch("worker.locking.time.sleep") as mock_sleep:
        key = acquire_job_slot(redis, "w", "a", _slot_config(concurrency=2))

    assert key == f"{SLOT_KEY_PREFIX}0"
    mock_sleep.assert_called_once()


# --- release_job_slot ---


def test_release_deletes_own_slot():
    redis = MagicMock()
    redis.get.return_value = b"worker-1:analysis-1:1700000000"

    release_job_slot(redis, f"{SLOT_KEY_PREFIX}0", "worker-1", "analysis-1")

    redis.delete.assert_called_once_with(f"{SLOT_KEY_PREFIX}0")


def test_release_leaves_slot_claimed_by_another_job():
    redis = MagicMock()
    redis.get.return_value = b"worker-2:analysis-9:1700000000"

    release_job_slot(redis, f"{SLOT_KEY_PREFIX}0", "worker-1", "analysis-1")

    redis.delete.assert_not_called()


def test_release_expired_slot_is_noop():
    redis = MagicMock()
    redis.get.return_value = None

    release_job_slot(redis, f"{SLOT_KEY_PREFIX}1", "worker-1", "analysis-1")

    redis.delete.assert_not_called()
