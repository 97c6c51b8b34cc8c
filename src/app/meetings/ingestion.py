"""Audio ingestion: transcribe an upload and store it as a meeting record."""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime
from pathlib import Path
from typing import Any, Protocol

import structlog

from src.app.meetings.schemas import Attendee, MeetingRecord
from src.app.services.transcription import TranscriptionResult, staged_upload

logger = structlog.get_logger(__name__)

PLACEHOLDER_ATTENDEE = Attendee(name="Random User", email="randomuser@example.com")
TRANSCRIBED_AUDIO_NOTE = "Transcribed audio from the meeting"


class MeetingStore(Protocol):
    async def save(self, data: MeetingRecord | dict[str, Any]) -> str: ...


class Transcriber(Protocol):
    async def transcribe(self, path: Path, filename: str) -> TranscriptionResult: ...


def _format_time_of_day(moment: datetime) -> str:
    """Render a local time of day as ``h:MM:SS AM``."""
    hour = moment.hour % 12 or 12
    return f"{hour}:{moment:%M:%S %p}"


def build_transcribed_record(transcript: str, now: datetime) -> MeetingRecord:
    """Build the meeting record stored for a transcribed upload."""
    return MeetingRecord(
        date=now.isoformat(),
        time=_format_time_of_day(now),
        conversation=transcript,
        attendees=[PLACEHOLDER_ATTENDEE],
        additional_info=TRANSCRIBED_AUDIO_NOTE,
    )


class IngestionService:
    """Turns uploaded audio into a stored meeting record.

    Args:
        transcriber: Client exposing ``transcribe(path, filename)``.
        repository: Store exposing ``save``.
        upload_dir: Directory for the temporary upload copy.
        clock: Returns the current local time; injectable for tests.
    """

    def __init__(
        self,
        transcriber: Transcriber,
        repository: MeetingStore,
        upload_dir: Path,
        clock: Callable[[], datetime] = lambda: datetime.now().astimezone(),
    ) -> None:
        self._transcriber = transcriber
        self._repository = repository
        self._upload_dir = upload_dir
        self._clock = clock

    async def handle(self, data: bytes, filename: str) -> dict[str, Any]:
        """Transcribe ``data`` and persist the transcript.

        Returns:
            The raw transcription payload from the provider.

        Raises:
            EmptyTranscriptError: The provider returned no text.
            TranscriptionError: The provider call failed.
            PersistenceError: The record could not be stored.
        """
        with staged_upload(data, filename, self._upload_dir) as path:
            result = await self._transcriber.transcribe(path, filename)

        record = build_transcribed_record(result.text, self._clock())
        record_id = await self._repository.save(record)
        logger.info(
            "ingestion.stored",
            record_id=record_id,
            filename=filename,
            transcript_length=len(result.text),
        )
        return result.raw
