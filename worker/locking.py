"""
Redis job-slot semaphore enforcing the analysis concurrency ceiling.

Slots are keys analysis:slot:0 .. analysis:slot:{n-1}, each claimed with
SET NX EX so a crashed worker frees its slot when the TTL expires. All
events are logged with analysis_id.
"""

from __future__ import annotations

import random
import time
from typing import TYPE_CHECKING

from shared.logging import get_logger
from worker.constants import SLOT_KEY_PREFIX

if TYPE_CHECKING:
    from redis import Redis

    from shared.config import AppConfig

logger = get_logger(__name__)


class JobSlotTimeoutError(Exception):
    """Raised when no job slot could be acquired after max retries."""


def _slot_key(index: int) -> str:
    return f"{SLOT_KEY_PREFIX}{index}"


def _slot_value(worker_id: str, analysis_id: str) -> str:
    ts = int(time.time())
    return f"{worker_id}:{analysis_id}:{ts}"


def acquire_job_slot(
    redis_client: Redis[bytes],
    worker_id: str,
    analysis_id: str,
    config: AppConfig,
) -> str:
    """
    Claim one of config.job_concurrency slots; retry with exponential backoff.

    Returns the claimed slot key. Raises JobSlotTimeoutError after
    config.job_slot_max_retries attempts.
    """
    ttl = config.job_slot_ttl_seconds
    max_retries = config.job_slot_max_retries
    base_ms = config.job_slot_backoff_base_ms
    slots = max(1, config.job_concurrency)

    for attempt in range(max_retries):
        value = _slot_value(worker_id, analysis_id)
        for index in range(slots):
            key = _slot_key(index)
            if redis_client.set(key, value, nx=True, ex=ttl):
                logger.info(
                    "slot.acquire.success",
                    slot=key,
                    analysis_id=analysis_id,
                    worker_id=worker_id,
                    attempt=attempt + 1,
                )
                return key

        wait_ms = base_ms * (2**attempt) + random.randint(0, 500)
        logger.info(
            "slot.acquire.retry",
            analysis_id=analysis_id,
            attempt=attempt + 1,
            max_retries=max_retries,
            wait_ms=wait_ms,
        )
        if attempt < max_retries - 1:
            time.sleep(wait_ms / 1000.0)

    logger.error(
        "slot.acquire.timeout",
        analysis_id=analysis_id,
        max_retries_exceeded=max_retries,
    )
    raise JobSlotTimeoutError(f"No job slot free after {max_retries} attempts")


def release_job_slot(
    redis_client: Redis[bytes],
    key: str,
    worker_id: str,
    analysis_id: str,
) -> None:
    """
    Release a slot if we still hold it (value matches worker_id:analysis_id).

    A slot that expired and was re-claimed by another job is left alone.
    """
    raw = redis_client.get(key)
    if raw is None:
        logger.debug("slot.release.missing", slot=key, analysis_id=analysis_id)
        return

    current = raw.decode("utf-8") if isinstance(raw, bytes) else str(raw)
    if current.startswith(f"{worker_id}:{analysis_id}:"):
        redis_client.delete(key)
        logger.info("slot.release.success", slot=key, analysis_id=analysis_id)
    else:
        logger.warning(
            "slot.release.stale",
            slot=key,
            analysis_id=analysis_id,
            slot_value_mismatch=True,
        )
