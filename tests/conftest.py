"""Shared fixtures: sample meeting records and test doubles."""

from __future__ import annotations

import pytest

from src.app.meetings.schemas import Attendee, MeetingRecord
from tests.helpers import FakeSleep, InMemoryMeetingRepository


@pytest.fixture
def roadmap_meeting() -> MeetingRecord:
    return MeetingRecord(
        date="2026-10-01",
        time="10:00 AM",
        conversation="We reviewed the roadmap and agreed to ship the billing feature on Friday.",
        attendees=[
            Attendee(name="Alice", email="alice@example.com"),
            Attendee(name="Bob", email="bob@example.com"),
        ],
        additional_info="Quarterly planning",
    )


@pytest.fixture
def hiring_meeting() -> MeetingRecord:
    return MeetingRecord(
        date="2026-10-02",
        time="2:30 PM",
        conversation="Discussed hiring two backend engineers.",
        attendees=[Attendee(name="Carol", email="carol@example.com")],
    )


@pytest.fixture
def memory_repository() -> InMemoryMeetingRepository:
    return InMemoryMeetingRepository()


@pytest.fixture
def fake_sleep() -> FakeSleep:
    return FakeSleep()
