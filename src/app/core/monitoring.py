"""Prometheus metrics, Sentry integration, and outbound provider call tracking.

Provides:
- MetricsMiddleware: ASGI middleware for HTTP request metrics
- track_provider_call(): Context manager for transcription / chat-completion call metrics
- record_llm_retry(): Counter bump for each 503-driven retry
- init_sentry(): Initialize Sentry
- get_metrics_response(): Prometheus exposition for /metrics
"""

from __future__ import annotations

import time
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Any

import sentry_sdk
from prometheus_client import (
    REGISTRY,
    Counter,
    Histogram,
    generate_latest,
)
from sentry_sdk.integrations.fastapi import FastApiIntegration
from sentry_sdk.integrations.starlette import StarletteIntegration
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

# ── HTTP Metrics ─────────────────────────────────────────────────────────────

http_requests_total = Counter(
    "http_requests_total",
    "Total HTTP requests",
    ["method", "endpoint", "status_code"],
)

http_request_duration_seconds = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "endpoint"],
    buckets=(0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0),
)

# ── Provider Metrics ─────────────────────────────────────────────────────────

provider_requests_total = Counter(
    "provider_requests_total",
    "Total outbound provider API requests",
    ["provider", "status"],
)

provider_request_duration_seconds = Histogram(
    "provider_request_duration_seconds",
    "Outbound provider API request duration in seconds",
    ["provider"],
    buckets=(0.1, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0, 120.0),
)

llm_retries_total = Counter(
    "llm_retries_total",
    "Chat-completion retries scheduled after a 503 response",
)


# ── Metrics Middleware ───────────────────────────────────────────────────────


class MetricsMiddleware(BaseHTTPMiddleware):
    """ASGI middleware that records Prometheus metrics for every HTTP request.

    Skips the /metrics endpoint itself to avoid self-referential counting.
    """

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        if request.url.path == "/metrics":
            return await call_next(request)

        endpoint = request.url.path

        start_time = time.perf_counter()
        response = await call_next(request)
        duration = time.perf_counter() - start_time

        http_requests_total.labels(
            method=request.method,
            endpoint=endpoint,
            status_code=str(response.status_code),
        ).inc()

        http_request_duration_seconds.labels(
            method=request.method,
            endpoint=endpoint,
        ).observe(duration)

        return response


# ── Provider Call Helpers ───────────────────────────────────────────────────


@asynccontextmanager
async def track_provider_call(provider: str) -> AsyncGenerator[dict[str, Any], None]:
    """Context manager that tracks one outbound provider call.

    Usage:
        async with track_provider_call("chat_completion") as tracker:
            response = await client.post(...)
            tracker["status"] = str(response.status_code)

    Records duration and a request count labelled by status. The status
    defaults to "success", or "error" if the block raises and the caller
    did not set one.
    """
    tracker: dict[str, Any] = {"status": None}
    start_time = time.perf_counter()

    try:
        yield tracker
    except Exception:
        if tracker["status"] is None:
            tracker["status"] = "error"
        raise
    finally:
        duration = time.perf_counter() - start_time
        provider_requests_total.labels(
            provider=provider,
            status=tracker["status"] or "success",
        ).inc()
        provider_request_duration_seconds.labels(provider=provider).observe(duration)


def record_llm_retry() -> None:
    llm_retries_total.inc()


# ── Sentry Integration ───────────────────────────────────────────────────────


def init_sentry(dsn: str, environment: str) -> None:
    """Initialize Sentry SDK.

    Args:
        dsn: Sentry DSN string.
        environment: Deployment environment (development, staging, production).
    """
    traces_sample_rate = 0.1 if environment == "production" else 1.0

    sentry_sdk.init(
        dsn=dsn,
        environment=environment,
        traces_sample_rate=traces_sample_rate,
        integrations=[
            StarletteIntegration(),
            FastApiIntegration(),
        ],
    )


# ── Metrics Endpoint ─────────────────────────────────────────────────────────


def get_metrics_response() -> Response:
    """Generate Prometheus exposition format response."""
    return Response(
        content=generate_latest(REGISTRY),
        media_type="text/plain; version=0.0.4; charset=utf-8",
    )
