"""
Analysis record access for the worker.

Re-exports the shared repository and adds the job-facing store, which
commits every write in its own session so a failure mark survives the
re-raise that follows it.
"""

from __future__ import annotations

from typing import Optional
from uuid import UUID

from shared.repository import AnalysisRepository
from worker.db import get_db_session

__all__ = ["AnalysisRepository", "DatabaseAnalysisStore"]


class DatabaseAnalysisStore:
    """AnalysisStore backed by Postgres; one committed transaction per call."""

    def get_job_record(self, analysis_id: str, owner_id: Optional[str] = None) -> Optional[dict]:
        with get_db_session() as session:
            return AnalysisRepository(session).get_analysis(UUID(analysis_id), owner_id)

    def update_job_record(self, analysis_id: str, owner_id: str, patch: dict) -> None:
        with get_db_session() as session:
            AnalysisRepository(session).update_analysis(UUID(analysis_id), owner_id, patch)
