"""
Shared repository for analysis record access.

Low-level database access using SQLAlchemy Table objects, keeping the
service and job layers testable. Used by both the API and worker services.
Rows are returned as plain dicts keyed by column name.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Optional
from uuid import UUID, uuid4

from sqlalchemy import Table, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from shared.db import get_analyses_table
from shared.errors import PersistenceError
from shared.logging import get_logger

logger = get_logger(__name__)

# Columns the job orchestrator is allowed to patch.
UPDATABLE_COLUMNS = frozenset(
    {
        "status",
        "error_message",
        "screenshots",
        "summary",
        "recommendations",
        "usage",
        "progress",
        "progress_stage",
    }
)


class AnalysisRepository:
    """Repository for analysis record operations."""

    def __init__(self, session: Session, table: Optional[Table] = None):
        self.session = session
        self.analyses_table = table if table is not None else get_analyses_table()

    def create_analysis(
        self,
        *,
        user_id: str,
        url: str,
        metrics: dict,
        context: dict,
        llm: str,
    ) -> dict:
        """
        Create a new analysis with status='pending'.

        Returns the created record as a dict (matching table columns).
        """
        analysis_id = uuid4()
        now = datetime.now(timezone.utc)

        insert_stmt = self.analyses_table.insert().values(
            id=analysis_id,
            user_id=user_id,
            url=url,
            metrics=metrics,
            context=context,
            llm=llm,
            status="pending",
            screenshots=None,
            summary=None,
            recommendations=[],
            usage=None,
            error_message=None,
            progress=0,
            progress_stage=None,
            created_at=now,
            updated_at=now,
        )

        try:
            self.session.execute(insert_stmt)
            self.session.flush()
        except SQLAlchemyError as e:
            logger.error("analysis_create_failed", error=str(e), error_type=type(e).__name__)
            raise PersistenceError("Failed to create analysis record") from e

        return self.get_analysis(analysis_id)  # type: ignore[return-value]

    def get_analysis(self, analysis_id: UUID, user_id: Optional[str] = None) -> Optional[dict]:
        """
        Get an analysis by ID, optionally scoped to its owner.

        Returns the record as a dict, or None if not found.
        """
        stmt = select(self.analyses_table).where(self.analyses_table.c.id == analysis_id)
        if user_id is not None:
            stmt = stmt.where(self.analyses_table.c.user_id == user_id)
        result = self.session.execute(stmt).first()
        if result is None:
            return None
        return dict(result._mapping)

    def update_analysis(self, analysis_id: UUID, user_id: str, patch: dict[str, Any]) -> None:
        """
        Apply a keyed update to a record owned by user_id.

        Raises PersistenceError for unknown columns, missing rows, or database errors.
        """
        unknown = set(patch) - UPDATABLE_COLUMNS
        if unknown:
            raise PersistenceError(f"Unsupported analysis fields: {', '.join(sorted(unknown))}")

        values = dict(patch)
        values["updated_at"] = datetime.now(timezone.utc)

        stmt = (
            self.analyses_table.update()
            .where(self.analyses_table.c.id == analysis_id)
            .where(self.analyses_table.c.user_id == user_id)
            .values(**values)
        )

        try:
            result = self.session.execute(stmt)
            self.session.flush()
        except SQLAlchemyError as e:
            logger.error(
                "analysis_update_failed",
                analysis_id=str(analysis_id),
                error=str(e),
                error_type=type(e).__name__,
            )
            raise PersistenceError("Failed to update analysis record") from e

        if result.rowcount == 0:
            raise PersistenceError("Analysis record not found")

    def commit(self) -> None:
        """Commit now (before handing the record id to another process)."""
        try:
            self.session.commit()
        except SQLAlchemyError as e:
            logger.error("analysis_commit_failed", error=str(e), error_type=type(e).__name__)
            raise PersistenceError("Failed to save analysis record") from e
