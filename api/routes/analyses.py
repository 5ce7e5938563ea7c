"""
Route handlers for analysis endpoints.

POST creates a pending analysis and enqueues it; GET is polled for progress.
"""

from __future__ import annotations

from typing import Annotated, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from api.db import get_db_session
from api.repositories.analysis_repository import AnalysisRepository
from api.schemas import AnalysisStatusResponse, CreateAnalysisRequest, CreateAnalysisResponse
from api.services.analysis_service import AnalysisService, JobDispatchError
from shared.errors import InvalidURL, PersistenceError
from shared.logging import bind_request_context, get_logger

logger = get_logger(__name__)
router = APIRouter(prefix="/analyses", tags=["analyses"])


def get_analysis_service(session: Annotated[Session, Depends(get_db_session)]) -> AnalysisService:
    """Dependency to get an AnalysisService instance."""
    repository = AnalysisRepository(session)
    return AnalysisService(repository)


@router.post(
    "",
    response_model=CreateAnalysisResponse,
    status_code=status.HTTP_202_ACCEPTED,
    summary="Create a new page analysis",
)
def create_analysis(
    request: CreateAnalysisRequest,
    service: Annotated[AnalysisService, Depends(get_analysis_service)],
) -> CreateAnalysisResponse:
    """
    Create a pending analysis and enqueue the background job.

    Returns 202 with the job and analysis ids; clients poll GET /analyses/{id}.
    """
    bind_request_context(user_id=request.user_id)
    try:
        response = service.create_analysis(request)
    except InvalidURL as e:
        logger.warning("analysis_creation_failed", error=e.message, url=request.url)
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=e.message)
    except JobDispatchError as e:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=e.message)
    except PersistenceError as e:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=e.message)

    logger.info("analysis_creation_requested", analysis_id=str(response.analysis_id))
    return response


@router.get(
    "/{analysis_id}",
    response_model=AnalysisStatusResponse,
    response_model_exclude_none=True,
    summary="Get analysis status and results",
)
def get_analysis(
    analysis_id: UUID,
    service: Annotated[AnalysisService, Depends(get_analysis_service)],
    user_id: Annotated[Optional[str], Query()] = None,
) -> AnalysisStatusResponse:
    """Poll an analysis; returns 404 when missing or owned by someone else."""
    bind_request_context(analysis_id=str(analysis_id), user_id=user_id)
    result = service.get_analysis_status(analysis_id, user_id)
    if result is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Analysis {analysis_id} not found",
        )
    return result
