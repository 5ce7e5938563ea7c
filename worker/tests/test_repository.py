"""
Tests for the analysis repository against an in-memory SQLite table.

The production schema is Postgres (JSONB, enums); a portable table with the
same columns is enough to exercise inserts, owner scoping and keyed updates.
"""

from __future__ import annotations

from uuid import uuid4

import pytest
import sqlalchemy as sa
from sqlalchemy.orm import Session

from shared.errors import PersistenceError
from shared.repository import AnalysisRepository


@pytest.fixture
def table_and_session():
    engine = sa.create_engine("sqlite://")
    metadata = sa.MetaData()
    table = sa.Table(
        "analyses",
        metadata,
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("user_id", sa.Text(), nullable=False),
        sa.Column("url", sa.Text(), nullable=False),
        sa.Column("status", sa.Text(), nullable=False),
        sa.Column("llm", sa.Text(), nullable=False),
        sa.Column("metrics", sa.JSON(), nullable=False),
        sa.Column("context", sa.JSON(), nullable=False),
        sa.Column("screenshots", sa.JSON(), nullable=True),
        sa.Column("summary", sa.JSON(), nullable=True),
        sa.Column("recommendations", sa.JSON(), nullable=False),
        sa.Column("usage", sa.JSON(), nullable=True),
        sa.Column("error_message", sa.Text(), nullable=True),
        sa.Column("progress", sa.Integer(), nullable=False),
        sa.Column("progress_stage", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    )
    metadata.create_all(engine)
    with Session(engine) as session:
        yield table, session
    engine.dispose()


def _create(repo: AnalysisRepository, user_id: str = "user-1") -> dict:
    return repo.create_analysis(
        user_id=user_id,
        url="https://example.com",
        metrics={"visitors": "1000"},
        context={"trafficSource": "mixed"},
        llm="gpt",
    )


def test_create_analysis_is_pending(table_and_session):
    table, session = table_and_session
    repo = AnalysisRepository(session, table=table)

    record = _create(repo)

    assert record["status"] == "pending"
    assert record["progress"] == 0
    assert record["recommendations"] == []
    assert record["metrics"] == {"visitors": "1000"}


def test_get_analysis_is_scoped_to_owner(table_and_session):
    table, session = table_and_session
    repo = AnalysisRepository(session, table=table)
    record = _create(repo, user_id="owner")

    assert repo.get_analysis(record["id"], "owner")["id"] == record["id"]
    assert repo.get_analysis(record["id"], "someone-else") is None
    assert repo.get_analysis(record["id"]) is not None
    assert repo.get_analysis(uuid4()) is None


def test_update_analysis_applies_patch(table_and_session):
    table, session = table_and_session
    repo = AnalysisRepository(session, table=table)
    record = _create(repo)

    repo.update_analysis(
        record["id"],
        "user-1",
        {"status": "processing", "screenshots": {"mobile-full-page": "u/j/m.png"}, "progress": 50},
    )

    updated = repo.get_analysis(record["id"])
    assert updated["status"] == "processing"
    assert updated["screenshots"] == {"mobile-full-page": "u/j/m.png"}
    assert updated["progress"] == 50


def test_update_analysis_rejects_unknown_columns(table_and_session):
    table, session = table_and_session
    repo = AnalysisRepository(session, table=table)
    record = _create(repo)

    with pytest.raises(PersistenceError):
        repo.update_analysis(record["id"], "user-1", {"user_id": "hijack"})


def test_update_analysis_for_wrong_owner_fails(table_and_session):
    table, session = table_and_session
    repo = AnalysisRepository(session, table=table)
    record = _create(repo)

    with pytest.raises(PersistenceError) as exc_info:
        repo.update_analysis(record["id"], "someone-else", {"status": "failed"})

    assert exc_info.value.message == "Analysis record not found"
