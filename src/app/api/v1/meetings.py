"""REST endpoints for meeting records.

Provides:
- POST /api/search: full-text search plus a generated answer
- POST /api/audio-transcription: transcribe an uploaded file and store it
- POST /api/meetings: store a meeting record submitted directly

Services are created at startup and read from app.state; a missing service
yields 503. Domain errors map to 400/500 with a short message and are logged
with full context.
"""

from __future__ import annotations

from typing import Any

import structlog
from fastapi import APIRouter, Body, File, HTTPException, Request, UploadFile, status
from fastapi.responses import JSONResponse, PlainTextResponse
from pydantic import BaseModel, Field

from src.app.meetings.errors import (
    EmptyTranscriptError,
    PersistenceError,
    SearchProcessingError,
    TranscriptionError,
)

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/api", tags=["meetings"])


# ── Request / Response Schemas ───────────────────────────────────────────────


class SearchResponse(BaseModel):
    searchResults: list[dict[str, Any]] = Field(default_factory=list)
    llmResponse: str


class TranscriptionResponse(BaseModel):
    transcription: dict[str, Any]


class MessageResponse(BaseModel):
    message: str


# ── Dependency Injection Helpers ─────────────────────────────────────────────


def _get_state(request: Request, name: str, label: str) -> Any:
    """Retrieve a service from app.state, 503 if not available."""
    service = getattr(request.app.state, name, None)
    if service is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=f"{label} not initialized",
        )
    return service


def _search_failed() -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"message": "Error processing the search"},
    )


# ── Endpoints ────────────────────────────────────────────────────────────────


@router.post("/search", response_model=SearchResponse)
async def search_meetings(
    request: Request,
    payload: Any = Body(default=None),
) -> Any:
    """Search stored meetings and answer the query from the best match.

    The body is ``{"query": "<free text>"}``; a missing or non-string query
    fails like any other search error.
    """
    search_service = _get_state(request, "search_service", "Search service")

    query = payload.get("query") if isinstance(payload, dict) else None
    if not isinstance(query, str):
        logger.warning("api.search_invalid_query", query_type=type(query).__name__)
        return _search_failed()

    try:
        outcome = await search_service.handle(query)
    except SearchProcessingError:
        logger.exception("api.search_failed", query=query)
        return _search_failed()

    return SearchResponse(
        searchResults=[m.to_api() for m in outcome.matches],
        llmResponse=outcome.answer,
    )


@router.post("/audio-transcription", response_model=TranscriptionResponse)
async def transcribe_audio(
    request: Request,
    file: UploadFile | None = File(default=None),
) -> Any:
    """Transcribe an uploaded audio file and store it as a meeting record.

    Returns the provider's raw transcription payload, not the stored record.
    """
    ingestion_service = _get_state(request, "ingestion_service", "Ingestion service")

    if file is None or not file.filename:
        return PlainTextResponse("No file uploaded", status_code=status.HTTP_400_BAD_REQUEST)

    data = await file.read()
    if not data:
        return PlainTextResponse("No file uploaded", status_code=status.HTTP_400_BAD_REQUEST)

    try:
        payload = await ingestion_service.handle(data, file.filename)
    except EmptyTranscriptError:
        logger.warning("api.transcription_empty", filename=file.filename)
        return PlainTextResponse(
            "No transcription result available",
            status_code=status.HTTP_400_BAD_REQUEST,
        )
    except TranscriptionError:
        logger.exception("api.transcription_failed", filename=file.filename)
        return PlainTextResponse(
            "Error processing audio transcription",
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )
    except PersistenceError:
        logger.exception("api.transcription_save_failed", filename=file.filename)
        return PlainTextResponse(
            "Error saving meeting data to the database",
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )
    finally:
        await file.close()

    return TranscriptionResponse(transcription=payload)


@router.post(
    "/meetings",
    response_model=MessageResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_meeting(
    request: Request,
    payload: dict[str, Any] = Body(...),
) -> Any:
    """Store a meeting record submitted directly.

    Validation happens in the repository; any rejection is a 500.
    """
    repository = _get_state(request, "meeting_repository", "Meeting repository")

    try:
        record_id = await repository.save(payload)
    except PersistenceError:
        logger.exception("api.meeting_save_failed")
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"message": "Failed to save meeting data"},
        )

    logger.info("api.meeting_saved", record_id=record_id)
    return MessageResponse(message="Meeting data saved successfully")
