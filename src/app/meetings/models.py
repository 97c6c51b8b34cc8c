"""Meeting record persistence model.

MeetingRecordModel stores one transcript per row. The ``search_vector``
column is generated by PostgreSQL (STORED) from the date, time, conversation,
attendee names and additional info, and carries a GIN index. Application code
never writes it; the repository only fills ``attendee_names`` so attendee
names are part of the indexed text.
"""

from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import Computed, DateTime, Index, Text, func, text
from sqlalchemy.dialects.postgresql import JSON, TSVECTOR, UUID
from sqlalchemy.orm import Mapped, mapped_column

from src.app.core.database import Base

SEARCH_CONFIG = "english"

SEARCH_VECTOR_EXPRESSION = (
    f"to_tsvector('{SEARCH_CONFIG}', "
    "coalesce(meeting_date, '') || ' ' || "
    "coalesce(meeting_time, '') || ' ' || "
    "coalesce(conversation, '') || ' ' || "
    "coalesce(attendee_names, '') || ' ' || "
    "coalesce(additional_info, ''))"
)


class MeetingRecordModel(Base):
    """A persisted meeting transcript.

    Rows are immutable once written; there is no update path.
    """

    __tablename__ = "meeting_records"
    __table_args__ = (
        Index(
            "ix_meeting_records_search_vector",
            "search_vector",
            postgresql_using="gin",
        ),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        server_default=text("gen_random_uuid()"),
    )
    date: Mapped[str] = mapped_column("meeting_date", Text, nullable=False)
    time: Mapped[str] = mapped_column("meeting_time", Text, nullable=False)
    conversation: Mapped[str] = mapped_column(Text, nullable=False)
    attendees: Mapped[list] = mapped_column(
        JSON, default=list, server_default=text("'[]'::json")
    )
    attendee_names: Mapped[str] = mapped_column(
        Text, default="", server_default=text("''")
    )
    additional_info: Mapped[str] = mapped_column(
        Text, nullable=False, default="", server_default=text("''")
    )
    search_vector: Mapped[str | None] = mapped_column(
        TSVECTOR,
        Computed(SEARCH_VECTOR_EXPRESSION, persisted=True),
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
    )
