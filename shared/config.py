"""
Environment-based configuration for the CRO page analysis services.

This module exposes a small, typed configuration surface shared between the
API and worker services. All values are sourced from environment variables
with non-secret defaults.

No secrets or credentials are hard-coded here; they must be provided via
the environment (or python-dotenv in local development).
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Literal, Optional

Environment = Literal["local", "dev", "staging", "prod"]


@dataclass(frozen=True)
class AppConfig:
    """Top-level application configuration."""

    environment: Environment
    log_level: str

    # Optional file path for structured JSON logs; when set, logs are written
    # to file (and stdout if log_stdout).
    log_file: Optional[str]
    log_stdout: bool

    # Infrastructure endpoints. URIs only; credentials come from the environment.
    database_url: Optional[str]
    redis_url: Optional[str]
    queue_name: str

    # Artifact storage (local disk, optionally fronted by a public base URL)
    artifacts_dir: str
    artifacts_public_base_url: Optional[str]

    # Capture engine
    capture_cache_ttl_seconds: int
    navigation_timeout_ms: int
    network_idle_timeout_ms: int
    screenshot_timeout_ms: int
    sections_timeout_ms: int

    # Job runner: concurrency ceiling and whole-job retries
    job_concurrency: int
    job_max_retries: int
    job_slot_ttl_seconds: int
    job_slot_max_retries: int
    job_slot_backoff_base_ms: int
    disable_locks: bool
    analysis_job_timeout_seconds: int

    # LLM providers
    openai_api_key: Optional[str]
    openai_insights_model: str
    anthropic_api_key: Optional[str]
    anthropic_insights_model: str
    insights_max_output_tokens: int
    insights_max_html_chars: int

    @classmethod
    def from_env(cls) -> "AppConfig":
        """
        Construct configuration from environment variables.

        Defaults suit local development; deployments override via env vars.
        """

        environment = os.getenv("APP_ENV", "local")

        if environment not in {"local", "dev", "staging", "prod"}:
            raise ValueError(f"Unsupported APP_ENV value: {environment!r}")

        def _bool_env(name: str, default: bool) -> bool:
            raw = (os.getenv(name) or str(default)).strip().lower()
            return raw in ("true", "1", "yes")

        def _positive_int_env(name: str, default: int) -> int:
            raw = os.getenv(name, str(default)).strip()
            try:
                value = int(raw)
            except ValueError:
                return default
            return value if value > 0 else default

        # Slot locks need Redis; local/dev runs default to a single unlocked worker.
        locks_disabled_by_default = environment in {"local", "dev"}

        return cls(
            environment=environment,  # type: ignore[arg-type]
            log_level=os.getenv("LOG_LEVEL", "INFO"),
            log_file=os.getenv("LOG_FILE") or None,
            log_stdout=_bool_env("LOG_STDOUT", True),
            database_url=os.getenv("DATABASE_URL"),
            redis_url=os.getenv("REDIS_URL"),
            queue_name=os.getenv("ANALYSIS_QUEUE_NAME", "analysis_jobs"),
            artifacts_dir=os.getenv("ARTIFACTS_DIR", "./artifacts"),
            artifacts_public_base_url=os.getenv("ARTIFACTS_PUBLIC_BASE_URL") or None,
            capture_cache_ttl_seconds=_positive_int_env("CAPTURE_CACHE_TTL_SECONDS", 300),
            navigation_timeout_ms=_positive_int_env("NAVIGATION_TIMEOUT_MS", 45_000),
            network_idle_timeout_ms=_positive_int_env("NETWORK_IDLE_TIMEOUT_MS", 8_000),
            screenshot_timeout_ms=_positive_int_env("SCREENSHOT_TIMEOUT_MS", 45_000),
            sections_timeout_ms=_positive_int_env("SECTIONS_TIMEOUT_MS", 15_000),
            job_concurrency=_positive_int_env("JOB_CONCURRENCY", 2),
            job_max_retries=int(os.getenv("JOB_MAX_RETRIES", "2")),
            job_slot_ttl_seconds=_positive_int_env("JOB_SLOT_TTL_SECONDS", 900),
            job_slot_max_retries=_positive_int_env("JOB_SLOT_MAX_RETRIES", 5),
            job_slot_backoff_base_ms=_positive_int_env("JOB_SLOT_BACKOFF_BASE_MS", 1000),
            disable_locks=_bool_env("DISABLE_LOCKS", locks_disabled_by_default),
            analysis_job_timeout_seconds=_positive_int_env("ANALYSIS_JOB_TIMEOUT_SECONDS", 600),
            openai_api_key=os.getenv("OPENAI_API_KEY") or None,
            openai_insights_model=os.getenv("OPENAI_INSIGHTS_MODEL", "gpt-5-mini"),
            anthropic_api_key=os.getenv("ANTHROPIC_API_KEY") or None,
            anthropic_insights_model=os.getenv(
                "ANTHROPIC_INSIGHTS_MODEL", "claude-sonnet-4-5-20250929"
            ),
            insights_max_output_tokens=_positive_int_env("INSIGHTS_MAX_OUTPUT_TOKENS", 16_000),
            insights_max_html_chars=_positive_int_env("INSIGHTS_MAX_HTML_CHARS", 60_000),
        )


def get_config() -> AppConfig:
    """
    Helper to obtain the current configuration.

    Long-lived processes should build one AppConfig at start-up and pass it
    explicitly through their code.
    """

    return AppConfig.from_env()
