"""
Service layer for analysis business logic.

Creates analysis records, hands them to the worker queue and reports
progress back to polling clients.
"""

from __future__ import annotations

from typing import Optional
from uuid import UUID

from api.job_queue import enqueue_analysis_job
from api.repositories.analysis_repository import AnalysisRepository
from api.schemas import (
    AnalysisRecordResponse,
    AnalysisStatusResponse,
    CreateAnalysisRequest,
    CreateAnalysisResponse,
)
from shared.errors import PersistenceError
from shared.logging import get_logger
from worker.capture.urls import normalize_url

logger = get_logger(__name__)

DISPATCH_FAILED_MESSAGE = "Failed to dispatch background job"
COMPLETED_MESSAGE = "Analysis complete!"
PROCESSING_MESSAGE = "Processing..."


class JobDispatchError(Exception):
    """Raised when the record was created but the job could not be enqueued."""

    def __init__(self, analysis_id: UUID, message: str = DISPATCH_FAILED_MESSAGE):
        super().__init__(message)
        self.analysis_id = analysis_id
        self.message = message


class AnalysisService:
    """Service for analysis operations."""

    def __init__(self, repository: AnalysisRepository):
        self.repository = repository

    def create_analysis(self, request: CreateAnalysisRequest) -> CreateAnalysisResponse:
        """
        Create a pending analysis and enqueue its job.

        The record is committed before enqueueing so the worker can always
        load it. If enqueueing fails, the record is marked failed and
        JobDispatchError is raised.

        Raises:
            InvalidURL: If the URL is not an absolute http(s) URL
            JobDispatchError: If the job could not be enqueued
        """
        normalized_url = normalize_url(request.url)
        metrics = request.metrics.model_dump(by_alias=True)
        context = request.context.model_dump(by_alias=True)

        record = self.repository.create_analysis(
            user_id=request.user_id,
            url=normalized_url,
            metrics=metrics,
            context=context,
            llm=request.llm,
        )
        analysis_id = record["id"]
        self.repository.commit()

        logger.info(
            "analysis_created",
            analysis_id=str(analysis_id),
            url=normalized_url,
            llm=request.llm,
        )

        try:
            job_id = enqueue_analysis_job(
                analysis_id,
                user_id=request.user_id,
                url=normalized_url,
                metrics=metrics,
                context=context,
                llm_provider=request.llm,
            )
        except Exception as e:
            logger.error(
                "job_enqueue_failed_after_analysis_creation",
                error=str(e),
                error_type=type(e).__name__,
                analysis_id=str(analysis_id),
            )
            self._mark_dispatch_failed(analysis_id, request.user_id)
            raise JobDispatchError(analysis_id) from e

        return CreateAnalysisResponse(
            job_id=job_id,
            analysis_id=analysis_id,
            status="pending",
        )

    def _mark_dispatch_failed(self, analysis_id: UUID, user_id: str) -> None:
        try:
            self.repository.update_analysis(
                analysis_id,
                user_id,
                {"status": "failed", "error_message": DISPATCH_FAILED_MESSAGE},
            )
            self.repository.commit()
        except PersistenceError as e:
            logger.error(
                "analysis_mark_failed_error",
                analysis_id=str(analysis_id),
                error=str(e),
            )

    def get_analysis_status(
        self, analysis_id: UUID, user_id: Optional[str] = None
    ) -> Optional[AnalysisStatusResponse]:
        """
        Get the polling view of an analysis.

        Returns None if the analysis is not found (or not owned by user_id).
        """
        record = self.repository.get_analysis(analysis_id, user_id)
        if record is None:
            return None

        status = record["status"]
        if status == "completed":
            return AnalysisStatusResponse(
                status=status,
                progress=100,
                stage=record.get("progress_stage"),
                message=COMPLETED_MESSAGE,
                analysis=AnalysisRecordResponse.model_validate(record),
            )
        if status == "failed":
            error = record.get("error_message") or "Analysis failed"
            return AnalysisStatusResponse(
                status=status,
                progress=record.get("progress") or 0,
                stage=record.get("progress_stage"),
                message=error,
                error=error,
            )
        return AnalysisStatusResponse(
            status=status,
            progress=record.get("progress") or 0,
            stage=record.get("progress_stage"),
            message=PROCESSING_MESSAGE,
        )
