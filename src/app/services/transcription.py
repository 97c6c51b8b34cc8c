"""Speech-to-text via an OpenAI-compatible audio endpoint.

Provides TranscriptionClient (single multipart upload, no retry) and
staged_upload(), which writes an uploaded blob to a uniquely named file in
the upload directory and always removes it afterwards.
"""

from __future__ import annotations

import uuid
from collections.abc import Iterator
from contextlib import contextmanager, suppress
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import httpx
import structlog

from src.app.config import Settings
from src.app.core.monitoring import track_provider_call
from src.app.meetings.errors import EmptyTranscriptError, TranscriptionError

logger = structlog.get_logger(__name__)


@dataclass
class TranscriptionResult:
    """Transcript text plus the provider's raw JSON payload."""

    text: str
    raw: dict[str, Any] = field(default_factory=dict)


@contextmanager
def staged_upload(data: bytes, filename: str, upload_dir: Path) -> Iterator[Path]:
    """Write ``data`` to a temporary file in ``upload_dir``; delete it on exit.

    The file is removed whether the body succeeds or raises.

    Raises:
        TranscriptionError: The upload could not be written.
    """
    path = upload_dir / f"{uuid.uuid4().hex}{Path(filename).suffix}"
    try:
        upload_dir.mkdir(parents=True, exist_ok=True)
        path.write_bytes(data)
    except OSError as exc:
        logger.error("upload.stage_failed", path=str(path), error=str(exc))
        with suppress(OSError):
            path.unlink(missing_ok=True)
        raise TranscriptionError("Error processing audio transcription") from exc
    logger.debug("upload.staged", path=str(path), size=len(data))
    try:
        yield path
    finally:
        path.unlink(missing_ok=True)
        logger.debug("upload.removed", path=str(path))


class TranscriptionClient:
    """Uploads audio to the transcription provider and returns its text.

    Args:
        api_key: Bearer token for the provider.
        base_url: Provider base URL.
        model: Transcription model identifier.
        endpoint: Path appended to ``base_url``.
        timeout: Request timeout in seconds.
        transport: Optional httpx transport (tests use httpx.MockTransport).
    """

    def __init__(
        self,
        api_key: str,
        base_url: str = "https://api.groq.com/openai/v1",
        model: str = "whisper-large-v3",
        endpoint: str = "/audio/translations",
        timeout: float = 120.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._url = f"{base_url.rstrip('/')}{endpoint}"
        self._headers = {"Authorization": f"Bearer {api_key}"}
        self.model = model
        self._timeout = timeout
        self._transport = transport

    @classmethod
    def from_settings(cls, settings: Settings, **kwargs: Any) -> TranscriptionClient:
        return cls(
            api_key=settings.GROQCLOUD_API_KEY,
            base_url=settings.GROQ_BASE_URL,
            model=settings.TRANSCRIPTION_MODEL,
            timeout=float(settings.TRANSCRIPTION_TIMEOUT),
            **kwargs,
        )

    async def transcribe(self, path: Path, filename: str) -> TranscriptionResult:
        """Transcribe the audio file at ``path``.

        Args:
            path: Local file holding the audio.
            filename: Original filename reported to the provider.

        Returns:
            TranscriptionResult with non-empty text.

        Raises:
            TranscriptionError: The audio file could not be read, or the
                call failed, timed out or returned a non-JSON body.
            EmptyTranscriptError: The provider returned no usable text.
        """
        data = {"model": self.model, "response_format": "json"}

        try:
            async with httpx.AsyncClient(
                headers=self._headers, timeout=self._timeout, transport=self._transport
            ) as client:
                async with track_provider_call("transcription") as tracker:
                    with path.open("rb") as audio:
                        response = await client.post(
                            self._url,
                            data=data,
                            files={"file": (filename, audio)},
                        )
                    tracker["status"] = str(response.status_code)
            response.raise_for_status()
            payload = response.json()
        except httpx.HTTPError as exc:
            logger.error("transcription.request_failed", filename=filename, error=str(exc))
            raise TranscriptionError("Error processing audio transcription") from exc
        except ValueError as exc:
            logger.error("transcription.invalid_json", filename=filename)
            raise TranscriptionError("Transcription response is not valid JSON") from exc
        except OSError as exc:
            logger.error("transcription.file_unreadable", path=str(path), error=str(exc))
            raise TranscriptionError("Error processing audio transcription") from exc

        logger.info("transcription.completed", filename=filename, payload=payload)

        text = payload.get("text") if isinstance(payload, dict) else None
        if not isinstance(text, str) or not text.strip():
            logger.warning("transcription.empty", filename=filename)
            raise EmptyTranscriptError("No transcription result available")

        return TranscriptionResult(text=text, raw=payload)
