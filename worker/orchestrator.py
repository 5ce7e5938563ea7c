"""
Analysis job orchestration: capture -> upload -> insights -> save, with failure marking.

The job is an explicit, ordered step list. Steps run strictly in order and
are individually timed; a job retry re-runs the list from the top, which is
safe because uploads overwrite and record writes are keyed updates.

On an error from any step the job runs exactly one compensating write
(status=failed with a message) and re-raises the error for the job runner.
A failure of that compensating write is logged only.
"""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Optional, Protocol, TypeVar

from shared.errors import (
    AnalysisError,
    CaptureError,
    InsightGenerationError,
    PersistenceError,
    UploadError,
    error_message_for,
)
from shared.logging import get_logger
from worker.capture.models import ScreenshotResult
from worker.insights import InsightGenerator, InsightResult, PageAnalysisInput
from worker.job_status import (
    COMPLETED,
    FAILED,
    PENDING,
    PROCESSING,
    STATUS_PROGRESS,
    InvalidStatusTransition,
    validate_transition,
)
from worker.storage import ArtifactUploader

logger = get_logger(__name__)

T = TypeVar("T")

STEP_CAPTURE = "capture-page"
STEP_UPLOAD = "upload-screenshots"
STEP_INSIGHTS = "generate-insights"
STEP_SAVE = "save-results"
STEP_MARK_FAILED = "mark-failed"

DEFAULT_METRICS = {"visitors": "", "addToCarts": "", "purchases": "", "aov": ""}
DEFAULT_CONTEXT = {"trafficSource": "mixed", "productType": "", "pricePoint": ""}


class AnalysisStore(Protocol):
    def update_job_record(self, analysis_id: str, owner_id: str, patch: dict) -> None: ...


class CaptureService(Protocol):
    async def capture_page_screenshots(self, url: str, options: Any = None) -> ScreenshotResult: ...


@dataclass(frozen=True)
class AnalysisRequestedEvent:
    """Job trigger payload."""

    analysis_id: str
    user_id: str
    url: str
    metrics: dict = field(default_factory=lambda: dict(DEFAULT_METRICS))
    context: dict = field(default_factory=lambda: dict(DEFAULT_CONTEXT))
    llm_provider: str = "gpt"

    @classmethod
    def from_dict(cls, data: dict) -> "AnalysisRequestedEvent":
        """Accepts snake_case or camelCase keys."""

        def _pick(*names: str, default: Any = None) -> Any:
            for name in names:
                if data.get(name) is not None:
                    return data[name]
            return default

        return cls(
            analysis_id=str(_pick("analysis_id", "analysisId")),
            user_id=str(_pick("user_id", "userId")),
            url=str(_pick("url", default="")),
            metrics=dict(_pick("metrics", default=DEFAULT_METRICS)),
            context=dict(_pick("context", default=DEFAULT_CONTEXT)),
            llm_provider=str(_pick("llm_provider", "llmProvider", "llm", default="gpt")),
        )

    def to_dict(self) -> dict:
        return {
            "analysis_id": self.analysis_id,
            "user_id": self.user_id,
            "url": self.url,
            "metrics": dict(self.metrics),
            "context": dict(self.context),
            "llm_provider": self.llm_provider,
        }


@dataclass(frozen=True)
class Step:
    name: str
    run: Callable[[], None]
    # Non-taxonomy errors raised by the step are wrapped in this type.
    error_class: type[AnalysisError]
    failure_message: str


@dataclass
class JobState:
    """In-memory cursor and intermediate results of one job run."""

    capture: Optional[ScreenshotResult] = None
    screenshots: Optional[dict[str, str]] = None
    insights: Optional[InsightResult] = None
    completed_steps: list[str] = field(default_factory=list)
    failed_step: Optional[str] = None


class AnalysisJob:
    """Runs one analysis through its ordered steps and persists status transitions."""

    def __init__(
        self,
        event: AnalysisRequestedEvent,
        *,
        capture: CaptureService,
        uploader: ArtifactUploader,
        insights: InsightGenerator,
        store: AnalysisStore,
        initial_status: str = PENDING,
        run_async: Callable[[Any], Any] = asyncio.run,
    ):
        self.event = event
        self.capture = capture
        self.uploader = uploader
        self.insights = insights
        self.store = store
        self.status = initial_status
        self.state = JobState()
        self._run_async = run_async
        self.steps = [
            Step(STEP_CAPTURE, self._capture_page, CaptureError, "Failed to capture page"),
            Step(STEP_UPLOAD, self._upload_screenshots, UploadError, "Failed to upload screenshots"),
            Step(
                STEP_INSIGHTS,
                self._generate_insights,
                InsightGenerationError,
                "Failed to generate insights",
            ),
            Step(STEP_SAVE, self._save_results, PersistenceError, "Failed to save results"),
        ]

    def run(self) -> dict:
        """
        Execute all steps in order.

        Returns {"analysis_id", "status"} on success. On failure marks the
        record failed and re-raises the step's error.
        """
        start = time.monotonic()
        logger.info(
            "analysis.job.started",
            url=self.event.url,
            llm_provider=self.event.llm_provider,
            initial_status=self.status,
        )

        try:
            for step in self.steps:
                self._run_step(step)
        except Exception as exc:
            logger.error(
                "analysis.job.failed",
                failed_step=self.state.failed_step,
                completed_steps=list(self.state.completed_steps),
                error=str(exc),
                error_type=type(exc).__name__,
                duration_ms=_elapsed_ms(start),
            )
            self._mark_failed(exc)
            raise

        logger.info("analysis.job.completed", status=self.status, duration_ms=_elapsed_ms(start))
        return {"analysis_id": self.event.analysis_id, "status": self.status}

    def _run_step(self, step: Step) -> None:
        start = time.monotonic()
        logger.info("analysis.step.started", step=step.name)
        try:
            step.run()
        except AnalysisError as e:
            self.state.failed_step = step.name
            logger.warning(
                "analysis.step.failed",
                step=step.name,
                error=str(e),
                error_type=type(e).__name__,
                duration_ms=_elapsed_ms(start),
            )
            raise
        except Exception as e:
            self.state.failed_step = step.name
            logger.warning(
                "analysis.step.failed",
                step=step.name,
                error=str(e),
                error_type=type(e).__name__,
                duration_ms=_elapsed_ms(start),
            )
            raise step.error_class(step.failure_message) from e

        self.state.completed_steps.append(step.name)
        logger.info("analysis.step.completed", step=step.name, duration_ms=_elapsed_ms(start))

    def _persist(self, patch: dict) -> None:
        target = patch["status"]
        try:
            validate_transition(self.status, target)
        except InvalidStatusTransition as e:
            raise PersistenceError(str(e)) from e
        self.store.update_job_record(self.event.analysis_id, self.event.user_id, patch)
        self.status = target

    def _capture_page(self) -> None:
        self.state.capture = self._run_async(
            self.capture.capture_page_screenshots(self.event.url)
        )

    def _upload_screenshots(self) -> None:
        capture = _require(self.state.capture, "capture result")
        references = self.uploader.upload_screenshots(
            capture, self.event.user_id, self.event.analysis_id
        )
        # Persist only once every variant is stored.
        self._persist(
            {
                "screenshots": references,
                "status": PROCESSING,
                "error_message": None,
                "progress": STATUS_PROGRESS[PROCESSING],
                "progress_stage": STEP_UPLOAD,
            }
        )
        self.state.screenshots = references

    def _generate_insights(self) -> None:
        page = PageAnalysisInput.from_capture(
            _require(self.state.capture, "capture result"),
            _require(self.state.screenshots, "screenshot references"),
        )
        self.state.insights = self.insights.generate(
            page, self.event.url, self.event.context, self.event.llm_provider
        )

    def _save_results(self) -> None:
        insights = _require(self.state.insights, "insight result")
        self._persist(
            {
                "summary": insights.summary,
                "recommendations": insights.recommendations,
                "usage": insights.usage.as_record(),
                "status": COMPLETED,
                "error_message": None,
                "progress": STATUS_PROGRESS[COMPLETED],
                "progress_stage": STEP_SAVE,
            }
        )

    def _mark_failed(self, exc: BaseException) -> None:
        """Compensating write; its own failure is logged and swallowed."""
        patch = {
            "status": FAILED,
            "error_message": error_message_for(exc),
            "progress_stage": self.state.failed_step,
        }
        try:
            self.store.update_job_record(self.event.analysis_id, self.event.user_id, patch)
        except Exception as e:
            logger.error(
                "analysis.mark_failed.error",
                step=STEP_MARK_FAILED,
                error=str(e),
                error_type=type(e).__name__,
            )
            return
        self.status = FAILED
        logger.info("analysis.mark_failed.completed", error_message=patch["error_message"])


def _elapsed_ms(start: float) -> float:
    return round((time.monotonic() - start) * 1000, 1)


def _require(value: Optional[T], name: str) -> T:
    """Intermediate result of an earlier step; missing means the steps ran out of order."""
    if value is None:
        raise RuntimeError(f"{name} is not available; earlier step did not run")
    return value
