"""
Structured logging setup for the CRO page analysis services.

All runtime logging goes through structlog. This module provides one
production baseline shared by the API and worker services.

Key principles:
- Logs are structured (JSON) and include contextual fields.
- Context can be bound per request / per job (e.g. analysis_id, viewport).
- Configuration happens once at process start-up, never ad hoc.
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import Any, Mapping, Optional

import structlog


def _build_shared_processors() -> list[structlog.types.Processor]:
    """Processors shared by both API and worker services."""

    timestamper = structlog.processors.TimeStamper(fmt="iso", utc=True)

    return [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        timestamper,
        structlog.processors.EventRenamer("message"),
        structlog.processors.format_exc_info,
        structlog.processors.JSONRenderer(),
    ]


def _stream_handler(level: int) -> logging.Handler:
    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter("%(message)s"))
    return handler


def configure_logging(
    level: int = logging.INFO,
    log_file: Optional[str] = None,
    log_stdout: bool = True,
) -> None:
    """
    Configure structlog and the standard logging module.

    Called once at process start-up by each service.

    - When log_stdout is True (default), a StreamHandler(sys.stdout) is added.
    - When log_file is set, a FileHandler is added (parent dir created if needed).
    - If neither applies, stdout is used so the process never has zero handlers.
    """

    root = logging.getLogger()
    root.setLevel(level)
    root.handlers.clear()

    if log_stdout:
        root.addHandler(_stream_handler(level))

    if log_file:
        path = Path(log_file)
        path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(level)
        file_handler.setFormatter(logging.Formatter("%(message)s"))
        root.addHandler(file_handler)

    if not root.handlers:
        root.addHandler(_stream_handler(level))

    structlog.configure(
        processors=_build_shared_processors(),
        wrapper_class=structlog.make_filtering_bound_logger(level),
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def configure_logging_from_config(config: Any) -> None:
    """Configure logging from an AppConfig (level name, file, stdout flag)."""
    level = logging.getLevelName(str(config.log_level).upper())
    if not isinstance(level, int):
        level = logging.INFO
    configure_logging(level=level, log_file=config.log_file, log_stdout=config.log_stdout)


def get_logger(name: Optional[str] = None) -> structlog.BoundLogger:
    """
    Obtain a structured logger.

    Usage:
        from shared.logging import get_logger, bind_request_context

        logger = get_logger(__name__)
        bind_request_context(analysis_id="...", viewport="desktop")
        logger.info("capture.completed")
    """

    if not structlog.is_configured():
        configure_logging()

    return structlog.get_logger(name) if name else structlog.get_logger()


def bind_request_context(
    *,
    analysis_id: Optional[str] = None,
    user_id: Optional[str] = None,
    viewport: Optional[str] = None,
    domain: Optional[str] = None,
    **extra: Any,
) -> Mapping[str, Any]:
    """
    Bind common context fields for request / job logging.

    Logs should include analysis_id, user_id, viewport and domain where known.
    Additional keyword arguments are also bound into the logging context.
    """

    context: dict[str, Any] = {
        "analysis_id": analysis_id,
        "user_id": user_id,
        "viewport": viewport,
        "domain": domain,
        **extra,
    }

    # Remove keys with None values to keep logs concise.
    filtered_context = {k: v for k, v in context.items() if v is not None}

    structlog.contextvars.bind_contextvars(**filtered_context)
    return filtered_context


def clear_request_context() -> None:
    """Drop all bound context (end of a job in a long-lived worker)."""
    structlog.contextvars.clear_contextvars()
