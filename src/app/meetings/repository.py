"""Meeting record repository -- async persistence and full-text search.

Provides MeetingRepository with the session_factory callable pattern. Records
are validated into MeetingRecord before anything touches the database, so a
rejected record is never written. Full-text ranking is delegated to
PostgreSQL (websearch_to_tsquery + ts_rank over the generated search_vector).
Unquoted query terms are OR-ed, so a record matching any term is a
candidate; quoted phrases and -term exclusions keep their websearch meaning.

Every database failure surfaces as PersistenceError.
"""

from __future__ import annotations

import uuid
from collections.abc import AsyncGenerator, Callable
from typing import Any

import structlog
from pydantic import ValidationError
from sqlalchemy import Text, cast, func, literal_column, select
from sqlalchemy.dialects.postgresql import TSQUERY
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from src.app.meetings.errors import PersistenceError
from src.app.meetings.models import SEARCH_CONFIG, MeetingRecordModel
from src.app.meetings.schemas import Attendee, MeetingRecord

logger = structlog.get_logger(__name__)

# AND between terms, except in front of a negated term
TERM_AND_PATTERN = r" & (?!!)"


# ── Serialization Helpers ───────────────────────────────────────────────────


def _model_to_record(model: MeetingRecordModel) -> MeetingRecord:
    """Convert MeetingRecordModel to MeetingRecord schema."""
    return MeetingRecord(
        date=model.date,
        time=model.time,
        conversation=model.conversation,
        attendees=[Attendee.model_validate(a) for a in (model.attendees or [])],
        additional_info=model.additional_info or "",
    )


def _record_to_model(record: MeetingRecord) -> MeetingRecordModel:
    """Convert MeetingRecord schema to a new MeetingRecordModel row."""
    return MeetingRecordModel(
        id=uuid.uuid4(),
        date=record.date,
        time=record.time,
        conversation=record.conversation,
        attendees=[a.model_dump(mode="json") for a in record.attendees],
        attendee_names=" ".join(record.attendee_names()),
        additional_info=record.additional_info,
    )


def any_term_query(query: str):
    """Build a tsquery matching records that contain any term of ``query``.

    websearch_to_tsquery parses quotes, OR and -term; the AND it places
    between plain terms is rewritten to OR. Phrase operators (``<->``) and
    AND-NOT exclusions are left as parsed.
    """
    parsed = func.websearch_to_tsquery(
        literal_column(f"'{SEARCH_CONFIG}'::regconfig"), query
    )
    return cast(
        func.regexp_replace(cast(parsed, Text), TERM_AND_PATTERN, " | ", "g"),
        TSQUERY,
    )


def coerce_record(data: MeetingRecord | dict[str, Any]) -> MeetingRecord:
    """Validate raw input into a MeetingRecord.

    Raises:
        PersistenceError: If required fields are missing or empty.
    """
    if isinstance(data, MeetingRecord):
        return data
    try:
        return MeetingRecord.model_validate(data)
    except ValidationError as exc:
        fields = sorted({".".join(str(p) for p in e["loc"]) for e in exc.errors()})
        logger.warning("meeting_store.record_rejected", fields=fields)
        raise PersistenceError(
            f"Meeting record failed validation: {', '.join(fields)}"
        ) from exc


# ── Repository ──────────────────────────────────────────────────────────────


class MeetingRepository:
    """Async persistence and full-text search for meeting records.

    Args:
        session_factory: Async callable that yields AsyncSession instances.
    """

    def __init__(
        self, session_factory: Callable[..., AsyncGenerator[AsyncSession, None]]
    ) -> None:
        self._session_factory = session_factory

    async def save(self, data: MeetingRecord | dict[str, Any]) -> str:
        """Persist a new meeting record.

        Args:
            data: A MeetingRecord, or a raw dict in API field names.

        Returns:
            The new record's id as a string.

        Raises:
            PersistenceError: On validation failure, constraint violation
                or lost connectivity.
        """
        record = coerce_record(data)
        model = _record_to_model(record)
        try:
            async for session in self._session_factory():
                session.add(model)
                await session.commit()
        except (SQLAlchemyError, OSError) as exc:
            logger.error("meeting_store.save_failed", error=str(exc))
            raise PersistenceError("Error saving meeting data") from exc

        record_id = str(model.id)
        logger.info(
            "meeting_store.saved",
            record_id=record_id,
            attendee_count=len(record.attendees),
        )
        return record_id

    async def search_text(self, query: str, limit: int = 1) -> list[MeetingRecord]:
        """Full-text search over meeting records, best match first.

        Args:
            query: Free-text query (websearch syntax: quotes, OR, -term).
            limit: Maximum number of records to return.

        Returns:
            Matching records ordered by relevance, possibly empty.

        Raises:
            PersistenceError: If the database cannot be queried.
        """
        logger.info("meeting_store.search", query=query, limit=limit)

        ts_query = any_term_query(query)
        rank = func.ts_rank(MeetingRecordModel.search_vector, ts_query)
        stmt = (
            select(MeetingRecordModel)
            .where(MeetingRecordModel.search_vector.op("@@")(ts_query))
            .order_by(rank.desc(), MeetingRecordModel.created_at.desc())
            .limit(limit)
        )

        try:
            async for session in self._session_factory():
                result = await session.execute(stmt)
                models = result.scalars().all()
        except (SQLAlchemyError, OSError) as exc:
            logger.error("meeting_store.search_failed", query=query, error=str(exc))
            raise PersistenceError("Error querying database") from exc

        records = [_model_to_record(m) for m in models]
        logger.info("meeting_store.search_results", query=query, result_count=len(records))
        return records
