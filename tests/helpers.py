"""Test doubles and payload builders shared across test modules.

- InMemoryMeetingRepository: MeetingRepository double with real record validation
- FakeSleep: awaitable sleep that records requested delays instead of waiting
- completion_body(): chat-completion response payload builder
"""

from __future__ import annotations

from typing import Any

from src.app.meetings.repository import coerce_record
from src.app.meetings.schemas import MeetingRecord


class InMemoryMeetingRepository:
    """In-memory MeetingRepository for testing without database.

    Validation goes through the same coerce_record() the real repository
    uses. search_text matches records containing any query word and ranks
    by how many are present.
    """

    def __init__(self) -> None:
        self.records: list[MeetingRecord] = []
        self.search_calls: list[tuple[str, int]] = []

    async def save(self, data: MeetingRecord | dict[str, Any]) -> str:
        record = coerce_record(data)
        self.records.append(record)
        return f"record-{len(self.records)}"

    async def search_text(self, query: str, limit: int = 1) -> list[MeetingRecord]:
        self.search_calls.append((query, limit))
        words = [w.lower() for w in query.split()]

        def score(record: MeetingRecord) -> int:
            haystack = " ".join(
                [
                    record.date,
                    record.time,
                    record.conversation,
                    " ".join(record.attendee_names()),
                    record.additional_info,
                ]
            ).lower()
            return sum(1 for w in words if w in haystack)

        scored = [(score(r), r) for r in self.records]
        ranked = [r for s, r in sorted(scored, key=lambda x: x[0], reverse=True) if s > 0]
        return ranked[:limit]


class FakeSleep:
    """Records requested delays; returns immediately."""

    def __init__(self) -> None:
        self.calls: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)

    @property
    def total(self) -> float:
        return sum(self.calls)


def completion_body(content: Any = "The team agreed to ship on Friday.") -> dict:
    """Build a chat-completion response body."""
    return {
        "id": "chatcmpl-test",
        "object": "chat.completion",
        "model": "llama3-8b-8192",
        "choices": [
            {
                "index": 0,
                "message": {"role": "assistant", "content": content},
                "finish_reason": "stop",
            }
        ],
    }
