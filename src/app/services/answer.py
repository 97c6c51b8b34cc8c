"""Answer generation over meeting records via an OpenAI-compatible chat API.

Provides AnswerGenerator, which formats candidate meeting records into a
two-message chat payload, calls the chat-completion endpoint, and validates
the response against ChatCompletionResponse.

Retry policy: up to ``max_attempts`` calls in total, retrying only when the
provider answers HTTP 503. The wait before retry n (1-based) is
``retry_delay * n`` seconds (linear: 2s, 4s, 6s, 8s with the defaults).
Every other failure is raised on first occurrence. The sleep primitive is
injectable so the schedule can be observed without waiting.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable, Sequence
from typing import Any

import httpx
import structlog
from pydantic import BaseModel, Field, StrictStr, ValidationError
from tenacity import (
    AsyncRetrying,
    RetryCallState,
    RetryError,
    retry_if_exception,
    stop_after_attempt,
    wait_incrementing,
)

from src.app.config import Settings
from src.app.core.monitoring import record_llm_retry, track_provider_call
from src.app.meetings.errors import (
    AnswerGenerationError,
    MalformedResponseError,
    RetriesExhaustedError,
)
from src.app.meetings.schemas import MeetingRecord

logger = structlog.get_logger(__name__)

SYSTEM_PROMPT = "You are a helpful assistant."
STOP_SEQUENCES = ["\n", "stop"]


# ── Response Contract ────────────────────────────────────────────────────────


class ChatMessage(BaseModel):
    """Assistant message inside a completion choice."""

    role: str | None = None
    content: StrictStr = Field(min_length=1)


class ChatChoice(BaseModel):
    message: ChatMessage


class ChatCompletionResponse(BaseModel):
    """Minimal shape required from the chat-completion provider."""

    choices: list[ChatChoice] = Field(min_length=1)


# ── Prompt Construction ──────────────────────────────────────────────────────


def format_meetings(meetings: Sequence[MeetingRecord]) -> str:
    """Render meeting records as human-readable blocks for the prompt."""
    blocks = [
        f"Date: {m.date}\n"
        f"Time: {m.time}\n"
        f"Attendees: {', '.join(m.attendee_names())}\n"
        f"Conversation: {m.conversation}\n"
        for m in meetings
    ]
    return "\n\n".join(blocks)


def build_messages(query: str, meetings: Sequence[MeetingRecord]) -> list[dict[str, str]]:
    """Build the system + user message pair for a search query."""
    return [
        {"role": "system", "content": SYSTEM_PROMPT},
        {
            "role": "user",
            "content": (
                f"Search query: {query}\n\n"
                f"Relevant Meeting Information:\n{format_meetings(meetings)}\n\n"
                "Provide a summary or answer based on the above information."
            ),
        },
    ]


def _is_service_unavailable(exc: BaseException) -> bool:
    return (
        isinstance(exc, httpx.HTTPStatusError)
        and exc.response.status_code == httpx.codes.SERVICE_UNAVAILABLE
    )


# ── Client ───────────────────────────────────────────────────────────────────


class AnswerGenerator:
    """Chat-completion client that answers questions about meeting records.

    Args:
        api_key: Bearer token for the provider.
        base_url: Provider base URL (``/chat/completions`` is appended).
        model: Model identifier sent with every request.
        max_completion_tokens: Output length bound.
        temperature: Sampling temperature.
        max_attempts: Total attempts, including the first.
        retry_delay: Base delay in seconds; retry n waits ``retry_delay * n``.
        timeout: Per-request timeout in seconds.
        sleep: Awaitable sleep used between attempts.
        transport: Optional httpx transport (tests use httpx.MockTransport).
    """

    def __init__(
        self,
        api_key: str,
        base_url: str = "https://api.groq.com/openai/v1",
        model: str = "llama3-8b-8192",
        max_completion_tokens: int = 150,
        temperature: float = 1.0,
        max_attempts: int = 5,
        retry_delay: float = 2.0,
        timeout: float = 30.0,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._url = f"{base_url.rstrip('/')}/chat/completions"
        self._headers = {
            "Authorization": f"Bearer {api_key}",
            "Content-Type": "application/json",
        }
        self.model = model
        self.max_completion_tokens = max_completion_tokens
        self.temperature = temperature
        self.max_attempts = max_attempts
        self.retry_delay = retry_delay
        self._timeout = timeout
        self._sleep = sleep
        self._transport = transport

    @classmethod
    def from_settings(cls, settings: Settings, **kwargs: Any) -> AnswerGenerator:
        return cls(
            api_key=settings.GROQCLOUD_API_KEY,
            base_url=settings.GROQ_BASE_URL,
            model=settings.LLM_MODEL,
            max_completion_tokens=settings.LLM_MAX_COMPLETION_TOKENS,
            temperature=settings.LLM_TEMPERATURE,
            max_attempts=settings.LLM_MAX_ATTEMPTS,
            retry_delay=settings.LLM_RETRY_DELAY_SECONDS,
            timeout=float(settings.LLM_TIMEOUT),
            **kwargs,
        )

    def build_payload(self, query: str, meetings: Sequence[MeetingRecord]) -> dict[str, Any]:
        return {
            "model": self.model,
            "messages": build_messages(query, meetings),
            "max_completion_tokens": self.max_completion_tokens,
            "temperature": self.temperature,
            "stop": list(STOP_SEQUENCES),
        }

    async def generate(self, query: str, meetings: Sequence[MeetingRecord]) -> str:
        """Generate an answer to ``query`` grounded in ``meetings``.

        Args:
            query: The user's natural-language question.
            meetings: Candidate records, best match first. May be empty.

        Returns:
            The first choice's message content, stripped.

        Raises:
            RetriesExhaustedError: Every attempt got HTTP 503.
            MalformedResponseError: The response did not match the contract.
            AnswerGenerationError: Any other provider or network failure.
        """
        payload = self.build_payload(query, meetings)

        retrying = AsyncRetrying(
            sleep=self._sleep,
            stop=stop_after_attempt(self.max_attempts),
            wait=wait_incrementing(start=self.retry_delay, increment=self.retry_delay),
            retry=retry_if_exception(_is_service_unavailable),
            before_sleep=self._log_retry,
        )

        try:
            async for attempt in retrying:
                with attempt:
                    return await self._request_completion(
                        payload, attempt.retry_state.attempt_number
                    )
        except RetryError as exc:
            logger.error(
                "answer.retries_exhausted",
                attempts=self.max_attempts,
                model=self.model,
            )
            raise RetriesExhaustedError(self.max_attempts) from exc.last_attempt.exception()

        # AsyncRetrying either returns from inside the loop or raises.
        raise AnswerGenerationError("Failed to process query with LLM")

    def _log_retry(self, retry_state: RetryCallState) -> None:
        delay = retry_state.next_action.sleep if retry_state.next_action else 0.0
        record_llm_retry()
        logger.warning(
            "answer.provider_unavailable",
            attempt=retry_state.attempt_number,
            retry_in_ms=int(delay * 1000),
        )

    async def _request_completion(self, payload: dict[str, Any], attempt_number: int) -> str:
        logger.debug("answer.attempt", attempt=attempt_number, model=self.model)

        async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
            async with track_provider_call("chat_completion") as tracker:
                try:
                    response = await client.post(self._url, json=payload, headers=self._headers)
                except httpx.HTTPError as exc:
                    logger.error("answer.request_failed", attempt=attempt_number, error=str(exc))
                    raise AnswerGenerationError("Failed to process query with LLM") from exc
                tracker["status"] = str(response.status_code)

        try:
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            logger.error(
                "answer.provider_error",
                attempt=attempt_number,
                status_code=response.status_code,
                body=response.text[:500],
            )
            if _is_service_unavailable(exc):
                raise
            raise AnswerGenerationError(
                f"Failed to process query with LLM (HTTP {response.status_code})"
            ) from exc

        return self._parse_content(response)

    def _parse_content(self, response: httpx.Response) -> str:
        try:
            body = response.json()
        except ValueError as exc:
            raise MalformedResponseError("Chat-completion response is not valid JSON") from exc

        logger.debug("answer.provider_response", body=body)

        try:
            parsed = ChatCompletionResponse.model_validate(body)
        except ValidationError as exc:
            logger.error("answer.malformed_response", error_count=exc.error_count())
            raise MalformedResponseError(
                "Response does not contain a valid choices[0].message.content"
            ) from exc

        return parsed.choices[0].message.content.strip()
