"""Question answering over stored meetings.

SearchService runs the best full-text match through the answer generator.
Failures from either step collapse into SearchProcessingError; callers never
receive matches without an answer.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from typing import Protocol

import structlog

from src.app.meetings.errors import (
    AnswerGenerationError,
    PersistenceError,
    SearchProcessingError,
)
from src.app.meetings.schemas import MeetingRecord

logger = structlog.get_logger(__name__)


class MeetingSearchStore(Protocol):
    async def search_text(self, query: str, limit: int = 1) -> list[MeetingRecord]: ...


class AnswerSource(Protocol):
    async def generate(self, query: str, meetings: Sequence[MeetingRecord]) -> str: ...


@dataclass
class SearchOutcome:
    matches: list[MeetingRecord]
    answer: str


class SearchService:
    """Search meetings and answer a question about the best match.

    Args:
        repository: Store exposing ``search_text``.
        answer_generator: Client exposing ``generate``.
        limit: Number of candidate records passed to the answer generator.
    """

    def __init__(
        self,
        repository: MeetingSearchStore,
        answer_generator: AnswerSource,
        limit: int = 1,
    ) -> None:
        self._repository = repository
        self._answer_generator = answer_generator
        self._limit = limit

    async def handle(self, query: str) -> SearchOutcome:
        """Look up matches for ``query`` and generate an answer.

        Raises:
            SearchProcessingError: The store or the answer generator failed.
        """
        try:
            matches = await self._repository.search_text(query, limit=self._limit)
            answer = await self._answer_generator.generate(query, matches)
        except (PersistenceError, AnswerGenerationError) as exc:
            logger.error(
                "search.failed",
                query=query,
                error_type=type(exc).__name__,
                error=str(exc),
            )
            raise SearchProcessingError("Error processing the search") from exc

        logger.info("search.answered", query=query, match_count=len(matches))
        return SearchOutcome(matches=matches, answer=answer)
