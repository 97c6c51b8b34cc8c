"""Create meeting_records with a generated full-text search column.

Revision ID: 001_meeting_records
Revises:
Create Date: 2026-10-19

Creates the meeting_records table. search_vector is a STORED generated
tsvector over date, time, conversation, attendee names and additional info,
indexed with GIN for websearch_to_tsquery lookups.
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import JSON, TSVECTOR, UUID

from src.app.meetings.models import SEARCH_VECTOR_EXPRESSION

# revision identifiers, used by Alembic.
revision: str = "001_meeting_records"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # gen_random_uuid() needs pgcrypto before PostgreSQL 13
    op.execute("CREATE EXTENSION IF NOT EXISTS pgcrypto")

    op.create_table(
        "meeting_records",
        sa.Column(
            "id",
            UUID(as_uuid=True),
            primary_key=True,
            server_default=sa.text("gen_random_uuid()"),
        ),
        sa.Column("meeting_date", sa.Text(), nullable=False),
        sa.Column("meeting_time", sa.Text(), nullable=False),
        sa.Column("conversation", sa.Text(), nullable=False),
        sa.Column(
            "attendees",
            JSON(),
            server_default=sa.text("'[]'::json"),
            nullable=True,
        ),
        sa.Column(
            "attendee_names",
            sa.Text(),
            server_default=sa.text("''"),
            nullable=True,
        ),
        sa.Column(
            "additional_info",
            sa.Text(),
            server_default=sa.text("''"),
            nullable=False,
        ),
        sa.Column(
            "search_vector",
            TSVECTOR(),
            sa.Computed(SEARCH_VECTOR_EXPRESSION, persisted=True),
        ),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
        ),
    )

    op.create_index(
        "ix_meeting_records_search_vector",
        "meeting_records",
        ["search_vector"],
        postgresql_using="gin",
    )


def downgrade() -> None:
    op.drop_index("ix_meeting_records_search_vector", table_name="meeting_records")
    op.drop_table("meeting_records")
