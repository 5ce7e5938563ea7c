"""
RQ job handlers for analysis processing.

Thin entrypoint: load the record, claim a job slot, build the AnalysisJob
with process-wide collaborators, run it, release the slot in finally.
Whole-job retries are configured at enqueue time (rq.Retry).
"""

from __future__ import annotations

import os
from typing import Optional
from urllib.parse import urlsplit

import redis
from rq import get_current_job

from shared.config import AppConfig, get_config
from shared.errors import AnalysisError
from shared.logging import bind_request_context, clear_request_context, get_logger
from worker.capture import ScreenshotService
from worker.constants import SLOT_TIMEOUT_MESSAGE
from worker.insights import LLMInsightGenerator
from worker.job_status import COMPLETED, FAILED, PENDING
from worker.locking import JobSlotTimeoutError, acquire_job_slot, release_job_slot
from worker.orchestrator import AnalysisJob, AnalysisRequestedEvent
from worker.repository import DatabaseAnalysisStore
from worker.storage import ArtifactUploader

logger = get_logger(__name__)

# Built once per worker process; the capture cache lives as long as the worker.
_screenshot_service: Optional[ScreenshotService] = None


def get_screenshot_service(config: Optional[AppConfig] = None) -> ScreenshotService:
    """Get or create the process-wide screenshot service (engine + cache)."""
    global _screenshot_service
    if _screenshot_service is None:
        _screenshot_service = ScreenshotService.from_config(config or get_config())
    return _screenshot_service


def _redis_connection(config: AppConfig) -> redis.Redis:
    job = get_current_job()
    if job is not None:
        return job.connection
    if not config.redis_url:
        raise ValueError("REDIS_URL is not configured")
    return redis.from_url(config.redis_url)


def _cancel_retries(analysis_id: str) -> None:
    """Drop the current RQ job's remaining retries so the failure is final."""
    job = get_current_job()
    if job is None or not job.retries_left:
        return
    logger.info(
        "analysis_job_retries_cancelled",
        analysis_id=analysis_id,
        retries_left=job.retries_left,
    )
    job.retries_left = 0


def process_analysis_job(
    analysis_id: str,
    user_id: str,
    url: str,
    metrics: Optional[dict] = None,
    context: Optional[dict] = None,
    llm_provider: str = "gpt",
) -> dict:
    """
    RQ job handler running one analysis end to end.

    Acquires a job slot (concurrency ceiling) before any work and releases it
    on completion or failure. Errors are re-raised so RQ's retry applies.

    Args:
        analysis_id: The analysis UUID as a string
        user_id: Owner of the analysis record
        url: URL to capture
        metrics: Caller-supplied funnel metrics
        context: Caller-supplied page context (traffic source, product type, price point)
        llm_provider: "gpt" or "claude"
    """
    event = AnalysisRequestedEvent.from_dict(
        {
            "analysis_id": analysis_id,
            "user_id": user_id,
            "url": url,
            "metrics": metrics,
            "context": context,
            "llm_provider": llm_provider,
        }
    )
    bind_request_context(
        analysis_id=analysis_id,
        user_id=user_id,
        domain=urlsplit(url).hostname,
    )
    logger.info("analysis_job_started", url=url, llm_provider=event.llm_provider)

    config = get_config()
    store = DatabaseAnalysisStore()

    record = store.get_job_record(analysis_id, user_id)
    if record is None:
        logger.error("analysis_not_found", analysis_id=analysis_id)
        clear_request_context()
        raise ValueError(f"Analysis {analysis_id} not found")

    if record["status"] == COMPLETED:
        logger.info("analysis_already_completed", analysis_id=analysis_id)
        clear_request_context()
        return {"analysis_id": analysis_id, "status": COMPLETED}

    redis_client = None
    slot_key = None
    worker_id = f"worker-{os.getpid()}"

    try:
        if not config.disable_locks:
            redis_client = _redis_connection(config)
            try:
                slot_key = acquire_job_slot(redis_client, worker_id, analysis_id, config)
            except JobSlotTimeoutError as e:
                logger.error("slot.acquire.timeout", analysis_id=analysis_id, error=str(e))
                try:
                    store.update_job_record(
                        analysis_id,
                        user_id,
                        {"status": FAILED, "error_message": SLOT_TIMEOUT_MESSAGE},
                    )
                except Exception as mark_error:
                    logger.error(
                        "analysis.mark_failed.error",
                        error=str(mark_error),
                        error_type=type(mark_error).__name__,
                    )
                raise

        job = AnalysisJob(
            event,
            capture=get_screenshot_service(config),
            uploader=ArtifactUploader.from_config(config),
            insights=LLMInsightGenerator(config),
            store=store,
            initial_status=record["status"] or PENDING,
        )
        result = job.run()
    except Exception as e:
        logger.error("analysis_job_error", error=str(e), error_type=type(e).__name__)
        if isinstance(e, AnalysisError) and not e.retryable:
            _cancel_retries(analysis_id)
        raise
    finally:
        if redis_client is not None and slot_key is not None:
            release_job_slot(redis_client, slot_key, worker_id, analysis_id)
        clear_request_context()

    logger.info("analysis_job_completed", analysis_id=analysis_id)
    return result
