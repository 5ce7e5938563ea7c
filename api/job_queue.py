"""
RQ (Redis Queue) setup for the API service.

This module provides the analysis queue and job enqueueing. The job is
referenced by its string path so the API never imports worker code.
"""

from __future__ import annotations

from typing import Optional
from uuid import UUID

import redis
from rq import Queue, Retry

from shared.config import get_config
from shared.logging import get_logger

logger = get_logger(__name__)

ANALYSIS_JOB_PATH = "worker.jobs.process_analysis_job"

# Global Redis connection and queue (initialized on first use).
_redis_conn: Optional[redis.Redis] = None
_queue: Optional[Queue] = None


def get_redis_connection() -> redis.Redis:
    """Get or create the Redis connection."""
    global _redis_conn
    if _redis_conn is None:
        config = get_config()
        if not config.redis_url:
            raise ValueError(
                "REDIS_URL environment variable is required. "
                "Set it to a Redis connection string (e.g., redis://localhost:6379/0)."
            )
        _redis_conn = redis.from_url(config.redis_url)
    return _redis_conn


def get_queue() -> Queue:
    """Get or create the RQ queue."""
    global _queue
    if _queue is None:
        _queue = Queue(get_config().queue_name, connection=get_redis_connection())
    return _queue


def enqueue_analysis_job(
    analysis_id: UUID,
    *,
    user_id: str,
    url: str,
    metrics: dict,
    context: dict,
    llm_provider: str,
) -> str:
    """
    Enqueue an analysis job in RQ.

    The whole job is retried up to config.job_max_retries times by RQ.

    Returns the RQ job ID.

    Raises:
        ValueError: If Redis is not configured or the connection fails
    """
    config = get_config()
    try:
        queue = get_queue()
        job = queue.enqueue(
            ANALYSIS_JOB_PATH,
            analysis_id=str(analysis_id),
            user_id=user_id,
            url=url,
            metrics=metrics,
            context=context,
            llm_provider=llm_provider,
            job_timeout=config.analysis_job_timeout_seconds,
            retry=Retry(max=config.job_max_retries) if config.job_max_retries > 0 else None,
        )
    except redis.ConnectionError as e:
        logger.error(
            "redis_connection_failed",
            error=str(e),
            analysis_id=str(analysis_id),
        )
        raise ValueError(f"Failed to connect to Redis: {str(e)}") from e
    except Exception as e:
        logger.error(
            "job_enqueue_failed",
            error=str(e),
            error_type=type(e).__name__,
            analysis_id=str(analysis_id),
        )
        raise

    logger.info(
        "analysis_job_enqueued",
        analysis_id=str(analysis_id),
        job_id=job.id,
        url=url,
        llm_provider=llm_provider,
    )
    return job.id
