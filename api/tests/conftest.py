"""
Pytest configuration and fixtures for API tests.

The database layer is replaced by an in-memory repository and the queue and
screenshot service are mocked, so these tests need neither Postgres, Redis
nor a browser.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional
from unittest.mock import MagicMock, patch
from uuid import UUID, uuid4

import pytest
from fastapi.testclient import TestClient

from api.main import create_app
from api.routes.analyses import get_analysis_service
from api.routes.screenshots import get_screenshot_service
from api.services.analysis_service import AnalysisService
from shared.errors import PersistenceError


class InMemoryAnalysisRepository:
    """Stands in for AnalysisRepository; rows are dicts keyed by UUID."""

    def __init__(self):
        self.rows: dict[UUID, dict] = {}
        self.commits = 0

    def create_analysis(self, *, user_id, url, metrics, context, llm) -> dict:
        now = datetime.now(timezone.utc)
        row = {
            "id": uuid4(),
            "user_id": user_id,
            "url": url,
            "metrics": metrics,
            "context": context,
            "llm": llm,
            "status": "pending",
            "screenshots": None,
            "summary": None,
            "recommendations": [],
            "usage": None,
            "error_message": None,
            "progress": 0,
            "progress_stage": None,
            "created_at": now,
            "updated_at": now,
        }
        self.rows[row["id"]] = row
        return dict(row)

    def get_analysis(self, analysis_id: UUID, user_id: Optional[str] = None) -> Optional[dict]:
        row = self.rows.get(analysis_id)
        if row is None or (user_id is not None and row["user_id"] != user_id):
            return None
        return dict(row)

    def update_analysis(self, analysis_id: UUID, user_id: str, patch: dict) -> None:
        row = self.get_analysis(analysis_id, user_id)
        if row is None:
            raise PersistenceError("Analysis record not found")
        self.rows[analysis_id].update(patch)

    def commit(self) -> None:
        self.commits += 1


@pytest.fixture
def repository():
    return InMemoryAnalysisRepository()


@pytest.fixture
def enqueue():
    """Mocked enqueue_analysis_job; returns a fixed RQ job id."""
    with patch("api.services.analysis_service.enqueue_analysis_job") as mock_enqueue:
        mock_enqueue.return_value = "rq-job-1"
        yield mock_enqueue


@pytest.fixture
def screenshot_service():
    return MagicMock()


@pytest.fixture
def client(repository, enqueue, screenshot_service):
    """Create a FastAPI test client with in-memory persistence and mocked capture."""
    app = create_app()

    app.dependency_overrides[get_analysis_service] = lambda: AnalysisService(repository)
    app.dependency_overrides[get_screenshot_service] = lambda: screenshot_service

    with TestClient(app) as test_client:
        yield test_client

    # Clean up
    app.dependency_overrides.clear()
