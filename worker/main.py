"""
Worker entrypoint for processing analysis jobs from RQ.

Starts an RQ worker consuming the analysis queue. SimpleWorker runs jobs in
this process, so the screenshot service and its capture cache persist
across jobs. Run one worker per core; the Redis job slots cap how many
analyses run at once across all of them.
"""

from __future__ import annotations

import sys

import redis
from dotenv import load_dotenv
from rq import Queue, SimpleWorker

from shared.config import get_config
from shared.logging import configure_logging_from_config, get_logger
from worker.jobs import get_screenshot_service

load_dotenv()


def main() -> None:
    """Start the RQ worker."""
    config = get_config()
    configure_logging_from_config(config)

    logger = get_logger(__name__)

    if not config.redis_url:
        logger.error("redis_url_not_configured")
        print("ERROR: REDIS_URL environment variable is required.", file=sys.stderr)
        sys.exit(1)

    try:
        redis_conn = redis.from_url(config.redis_url)
        redis_conn.ping()
    except redis.RedisError as e:
        logger.error("redis_connection_failed", error=str(e))
        print(f"ERROR: Failed to connect to Redis: {e}", file=sys.stderr)
        sys.exit(1)

    if not config.database_url:
        logger.error("database_url_not_configured")
        print("ERROR: DATABASE_URL environment variable is required.", file=sys.stderr)
        sys.exit(1)

    # Build the capture cache up front so every job in this process shares it.
    get_screenshot_service(config)

    logger.info(
        "worker_starting",
        redis_url=config.redis_url,
        queue_name=config.queue_name,
        job_concurrency=config.job_concurrency,
        locks_enabled=not config.disable_locks,
    )

    queue = Queue(config.queue_name, connection=redis_conn)
    worker = SimpleWorker([queue], connection=redis_conn)

    logger.info("worker_ready", queue_name=config.queue_name)
    print(f"Worker started. Listening for jobs on queue '{config.queue_name}'...")
    print("Press Ctrl+C to stop.")

    try:
        worker.work()
    except KeyboardInterrupt:
        logger.info("worker_stopping")
        print("\nWorker stopped.")


if __name__ == "__main__":
    main()
