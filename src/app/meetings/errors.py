"""Exception taxonomy for meeting storage, transcription and answer generation.

Routers map these onto HTTP status codes; services raise them and never
return partial results.
"""

from __future__ import annotations


class MeetingServiceError(Exception):
    """Base class for all meeting service failures."""


class PersistenceError(MeetingServiceError):
    """The meeting store is unreachable or rejected a read or write."""


class TranscriptionError(MeetingServiceError):
    """The transcription provider call failed."""


class EmptyTranscriptError(TranscriptionError):
    """The transcription provider succeeded but returned no usable text."""


class AnswerGenerationError(MeetingServiceError):
    """The chat-completion provider call failed."""


class MalformedResponseError(AnswerGenerationError):
    """The chat-completion response did not match the expected shape."""


class RetriesExhaustedError(AnswerGenerationError):
    """The chat-completion provider stayed unavailable for every attempt."""

    def __init__(self, attempts: int) -> None:
        super().__init__(f"Max retries exceeded for LLM query after {attempts} attempts")
        self.attempts = attempts


class SearchProcessingError(MeetingServiceError):
    """Search could not be completed; wraps store and answer failures."""
