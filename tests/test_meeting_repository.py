"""Unit tests for MeetingRepository with a mocked AsyncSession.

Covers record validation before any write, row construction (attendee order,
attendee_names for the search column), SQLAlchemy failure mapping to
PersistenceError, and the full-text query shape.
"""

from __future__ import annotations

import re
from unittest.mock import AsyncMock, MagicMock

import pytest
from sqlalchemy.dialects import postgresql
from sqlalchemy.exc import OperationalError

from src.app.meetings.errors import PersistenceError
from src.app.meetings.models import MeetingRecordModel
from src.app.meetings.repository import (
    TERM_AND_PATTERN,
    MeetingRepository,
    coerce_record,
)
from src.app.meetings.schemas import MeetingRecord


def _session_factory(session):
    async def factory():
        yield session

    return factory


@pytest.fixture
def session():
    s = MagicMock()
    s.add = MagicMock()
    s.commit = AsyncMock()
    s.execute = AsyncMock()
    return s


@pytest.fixture
def repository(session):
    return MeetingRepository(session_factory=_session_factory(session))


def _valid_payload(**overrides) -> dict:
    payload = {
        "date": "2026-10-01",
        "time": "10:00 AM",
        "conversation": "Budget review",
        "attendees": [
            {"name": "Zed", "email": "zed@example.com"},
            {"name": "Amy", "email": "amy@example.com"},
            {"name": "Zed", "email": "zed@example.com"},
        ],
        "additionalInfo": "Finance sync",
    }
    payload.update(overrides)
    return payload


# ── Validation ───────────────────────────────────────────────────────────────


class TestCoerceRecord:
    def test_accepts_api_field_names(self):
        record = coerce_record(_valid_payload())

        assert record.additional_info == "Finance sync"
        assert [a.name for a in record.attendees] == ["Zed", "Amy", "Zed"]

    def test_additional_info_defaults_to_empty(self):
        payload = _valid_payload()
        del payload["additionalInfo"]

        assert coerce_record(payload).additional_info == ""

    @pytest.mark.parametrize("missing", ["date", "time", "conversation"])
    def test_missing_required_field_rejected(self, missing):
        payload = _valid_payload()
        del payload[missing]

        with pytest.raises(PersistenceError, match=missing):
            coerce_record(payload)

    @pytest.mark.parametrize("field", ["date", "time", "conversation"])
    def test_empty_required_field_rejected(self, field):
        with pytest.raises(PersistenceError):
            coerce_record(_valid_payload(**{field: ""}))

    def test_attendee_without_email_rejected(self):
        with pytest.raises(PersistenceError, match="attendees"):
            coerce_record(_valid_payload(attendees=[{"name": "Amy"}]))

    def test_numeric_scalars_stored_as_strings(self):
        record = coerce_record(
            _valid_payload(
                date=20261001,
                time=1000,
                attendees=[{"name": 42, "email": "amy@example.com"}],
            )
        )

        assert record.date == "20261001"
        assert record.time == "1000"
        assert record.attendees[0].name == "42"

    def test_record_instance_passes_through(self, roadmap_meeting):
        assert coerce_record(roadmap_meeting) is roadmap_meeting


# ── save ─────────────────────────────────────────────────────────────────────


class TestSave:
    @pytest.mark.asyncio
    async def test_save_builds_row(self, repository, session):
        record_id = await repository.save(_valid_payload())

        session.add.assert_called_once()
        row = session.add.call_args.args[0]
        assert isinstance(row, MeetingRecordModel)
        assert str(row.id) == record_id
        assert row.date == "2026-10-01"
        assert row.time == "10:00 AM"
        assert row.conversation == "Budget review"
        assert [a["name"] for a in row.attendees] == ["Zed", "Amy", "Zed"]
        assert row.attendee_names == "Zed Amy Zed"
        assert row.additional_info == "Finance sync"
        session.commit.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_missing_conversation_is_never_written(self, repository, session):
        payload = _valid_payload()
        del payload["conversation"]

        with pytest.raises(PersistenceError):
            await repository.save(payload)

        session.add.assert_not_called()
        session.commit.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_database_failure_maps_to_persistence_error(self, repository, session):
        session.commit.side_effect = OperationalError("INSERT", {}, Exception("connection lost"))

        with pytest.raises(PersistenceError):
            await repository.save(_valid_payload())

    @pytest.mark.asyncio
    async def test_connection_refused_maps_to_persistence_error(self, repository, session):
        session.commit.side_effect = ConnectionRefusedError("db down")

        with pytest.raises(PersistenceError):
            await repository.save(_valid_payload())


# ── search_text ──────────────────────────────────────────────────────────────


class TestSearchText:
    @pytest.mark.asyncio
    async def test_returns_records_in_database_order(self, repository, session):
        rows = [
            MeetingRecordModel(
                date="2026-10-01",
                time="10:00 AM",
                conversation="Budget review",
                attendees=[{"name": "Amy", "email": "amy@example.com"}],
                additional_info="",
            ),
            MeetingRecordModel(
                date="2026-09-01",
                time="9:00 AM",
                conversation="Budget kickoff",
                attendees=[],
                additional_info="Kickoff",
            ),
        ]
        result = MagicMock()
        result.scalars.return_value.all.return_value = rows
        session.execute.return_value = result

        records = await repository.search_text("budget", limit=2)

        assert [r.date for r in records] == ["2026-10-01", "2026-09-01"]
        assert all(isinstance(r, MeetingRecord) for r in records)
        assert records[0].attendees[0].email == "amy@example.com"
        assert records[1].additional_info == "Kickoff"

    @pytest.mark.asyncio
    async def test_no_matches_is_empty_list(self, repository, session):
        result = MagicMock()
        result.scalars.return_value.all.return_value = []
        session.execute.return_value = result

        assert await repository.search_text("nothing here") == []

    @pytest.mark.asyncio
    async def test_query_uses_ranked_full_text_search(self, repository, session):
        result = MagicMock()
        result.scalars.return_value.all.return_value = []
        session.execute.return_value = result

        await repository.search_text("roadmap", limit=1)

        stmt = session.execute.await_args.args[0]
        sql = str(stmt.compile(dialect=postgresql.dialect()))
        assert "websearch_to_tsquery('english'::regconfig" in sql
        assert "@@" in sql
        assert "ts_rank(meeting_records.search_vector" in sql
        assert "DESC" in sql
        assert "LIMIT" in sql

    @pytest.mark.asyncio
    async def test_database_failure_maps_to_persistence_error(self, repository, session):
        session.execute.side_effect = OperationalError("SELECT", {}, Exception("gone"))

        with pytest.raises(PersistenceError):
            await repository.search_text("roadmap")

    @pytest.mark.asyncio
    async def test_query_matches_any_term(self, repository, session):
        result = MagicMock()
        result.scalars.return_value.all.return_value = []
        session.execute.return_value = result

        await repository.search_text("budget alice", limit=1)

        stmt = session.execute.await_args.args[0]
        compiled = stmt.compile(dialect=postgresql.dialect())
        sql = str(compiled)
        assert "regexp_replace(CAST(websearch_to_tsquery(" in sql
        assert "AS TSQUERY)" in sql
        params = list(compiled.params.values())
        assert "budget alice" in params
        assert TERM_AND_PATTERN in params
        assert " | " in params


@pytest.mark.parametrize(
    "parsed, rewritten",
    [
        ("'budget' & 'alic'", "'budget' | 'alic'"),
        ("'budget'", "'budget'"),
        ("'quarter' <-> 'plan' & 'alic'", "'quarter' <-> 'plan' | 'alic'"),
        ("'budget' & !'hire'", "'budget' & !'hire'"),
        ("'budget' | 'alic'", "'budget' | 'alic'"),
    ],
)
def test_term_and_rewrite(parsed, rewritten):
    assert re.sub(TERM_AND_PATTERN, " | ", parsed) == rewritten
