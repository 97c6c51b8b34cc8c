"""FastAPI application factory.

Creates the app with logging middleware, metrics middleware, CORS, Sentry,
lifespan events for database initialization and service wiring, and the
API router.
"""

from __future__ import annotations

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import structlog
import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.requests import Request
from fastapi.responses import Response

from src.app.api.middleware.logging import LoggingMiddleware, configure_structlog
from src.app.api.v1.router import router as v1_router
from src.app.config import Settings, get_settings
from src.app.core.database import close_db, get_session, init_db
from src.app.core.monitoring import MetricsMiddleware, get_metrics_response, init_sentry
from src.app.meetings.ingestion import IngestionService
from src.app.meetings.repository import MeetingRepository
from src.app.meetings.search import SearchService
from src.app.services.answer import AnswerGenerator
from src.app.services.transcription import TranscriptionClient


def wire_services(app: FastAPI, settings: Settings) -> None:
    """Build the store, provider clients and orchestrators onto app.state."""
    repository = MeetingRepository(session_factory=get_session)
    answer_generator = AnswerGenerator.from_settings(settings)
    transcriber = TranscriptionClient.from_settings(settings)

    app.state.meeting_repository = repository
    app.state.search_service = SearchService(
        repository=repository,
        answer_generator=answer_generator,
        limit=settings.SEARCH_RESULT_LIMIT,
    )
    app.state.ingestion_service = IngestionService(
        transcriber=transcriber,
        repository=repository,
        upload_dir=settings.get_upload_dir(),
    )


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan: init DB and Sentry on startup, close on shutdown."""
    log = structlog.get_logger(__name__)
    settings = get_settings()
    configure_structlog()

    if settings.SENTRY_DSN:
        init_sentry(dsn=settings.SENTRY_DSN, environment=settings.ENVIRONMENT.value)

    await init_db()
    log.info("startup.database_initialized")

    if not settings.GROQCLOUD_API_KEY:
        log.warning("startup.provider_key_missing", hint="set GROQCLOUD_API_KEY")

    wire_services(app, settings)
    log.info("startup.services_initialized", port=settings.PORT)

    yield

    await close_db()
    log.info("shutdown.database_closed")


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title="Meeting Recall API",
        version="0.1.0",
        description="Meeting transcript storage, full-text search and question answering",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.get_cors_origins(),
        allow_methods=["GET", "POST", "PUT", "DELETE"],
        allow_headers=["Content-Type", "Authorization"],
    )

    app.add_middleware(LoggingMiddleware)

    app.add_middleware(MetricsMiddleware)

    app.include_router(v1_router)

    @app.get("/metrics", include_in_schema=False)
    async def metrics(request: Request) -> Response:
        """Prometheus metrics endpoint."""
        return get_metrics_response()

    return app


def run() -> None:
    """Serve the application with uvicorn on the configured port."""
    settings = get_settings()
    uvicorn.run("src.app.main:app", host="0.0.0.0", port=settings.PORT)


# Module-level app for uvicorn
app = create_app()


if __name__ == "__main__":
    run()
