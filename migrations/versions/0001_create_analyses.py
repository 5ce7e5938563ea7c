from __future__ import annotations

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "0001_create_analyses"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # --- Enums ---
    analysis_status_enum = sa.Enum(
        "pending",
        "processing",
        "completed",
        "failed",
        name="analysis_status_enum",
    )
    llm_provider_enum = sa.Enum(
        "gpt",
        "claude",
        name="llm_provider_enum",
    )

    # --- Tables ---
    op.create_table(
        "analyses",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column("user_id", sa.Text(), nullable=False),
        sa.Column("url", sa.Text(), nullable=False),
        sa.Column("status", analysis_status_enum, server_default="pending", nullable=False),
        sa.Column("llm", llm_provider_enum, server_default="gpt", nullable=False),
        sa.Column(
            "metrics",
            postgresql.JSONB(astext_type=sa.Text()),
            server_default=sa.text("'{}'::jsonb"),
            nullable=False,
        ),
        sa.Column(
            "context",
            postgresql.JSONB(astext_type=sa.Text()),
            server_default=sa.text("'{}'::jsonb"),
            nullable=False,
        ),
        sa.Column("screenshots", postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column("summary", postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column(
            "recommendations",
            postgresql.JSONB(astext_type=sa.Text()),
            server_default=sa.text("'[]'::jsonb"),
            nullable=False,
        ),
        sa.Column("usage", postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column("error_message", sa.Text(), nullable=True),
        sa.Column("progress", sa.Integer(), server_default="0", nullable=False),
        sa.Column("progress_stage", sa.Text(), nullable=True),
        sa.Column(
            "created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False
        ),
        sa.Column(
            "updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False
        ),
        sa.CheckConstraint(
            "progress >= 0 AND progress <= 100",
            name="ck_analyses_progress_range",
        ),
    )

    # --- Indexes ---
    op.create_index(
        "ix_analyses_user_id_status",
        "analyses",
        ["user_id", "status"],
    )
    op.create_index(
        "ix_analyses_created_at",
        "analyses",
        ["created_at"],
    )


def downgrade() -> None:
    op.drop_index("ix_analyses_created_at", table_name="analyses")
    op.drop_index("ix_analyses_user_id_status", table_name="analyses")

    op.drop_table("analyses")

    sa.Enum(name="llm_provider_enum").drop(op.get_bind(), checkfirst=True)
    sa.Enum(name="analysis_status_enum").drop(op.get_bind(), checkfirst=True)
