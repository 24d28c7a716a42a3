"""SecureClient -- signed chat requests with 429 backoff."""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable

import httpx
from pydantic import ValidationError

from journale.configs.config import JournaleConfig
from journale.errors import (
    MalformedChatResponse,
    RateLimited,
    RequestFailed,
)
from journale.infra.http_utils import compact, readable_error
from journale.infra.metrics import (
    CHAT_BACKOFF_SECONDS,
    CHAT_LATENCY_SECONDS,
    CHAT_REQUESTS_TOTAL,
    CHAT_RETRIES_TOTAL,
)
from journale.infra.telemetry import (
    ATTR_CHAT_ATTEMPT,
    ATTR_CHAT_RETRIES,
    ATTR_CHAT_STATUS,
    SPAN_CHAT_ATTEMPT,
    SPAN_CHAT_REQUEST,
    tracer,
)
from journale.models import ChatRequest, ChatResponse

from .session import SessionManager
from .signing import SignedEnvelope

logger = logging.getLogger(__name__)

HTTP_TOO_MANY_REQUESTS = 429
NO_REPLY_PLACEHOLDER = "(no reply)"

Sleep = Callable[[float], Awaitable[None]]


def backoff_delay(base_seconds: float, attempt: int) -> float:
    """Delay before retry number *attempt* (1-indexed): ``base * 2**(attempt-1)``."""
    return base_seconds * (2 ** (attempt - 1))


def normalize_reply(reply: str | None) -> str:
    text = (reply or "").strip()
    return text or NO_REPLY_PLACEHOLDER


class SecureClient:
    """Client for the signed chat endpoint.

    Every attempt is signed afresh (new nonce and timestamp), so a
    retried request is never a replay of the previous one.  Only 429
    responses are retried; everything else fails immediately.  The
    client never touches conversation memory.
    """

    def __init__(
        self,
        config: JournaleConfig,
        sessions: SessionManager,
        http_client: httpx.AsyncClient,
        *,
        sleep: Sleep | None = None,
    ) -> None:
        self._config = config
        self._sessions = sessions
        self._http = http_client
        self._sleep = sleep or asyncio.sleep

    async def chat(self, request: ChatRequest) -> ChatResponse:
        """Send *request* and return the parsed, normalized reply."""
        body = request.model_dump_json(by_alias=True, exclude_none=True).encode("utf-8")
        path = self._config.chat_path
        max_retries = self._config.max_retries_on_429
        retries = 0
        start = time.monotonic()

        with tracer.start_as_current_span(SPAN_CHAT_REQUEST) as span:
            try:
                while True:
                    envelope = await self._sessions.signed_envelope(path, body)
                    response = await self._send(envelope, attempt=retries + 1)

                    if response.is_success:
                        reply = self._parse(response)
                        CHAT_REQUESTS_TOTAL.labels(status="ok").inc()
                        return reply

                    if (
                        response.status_code == HTTP_TOO_MANY_REQUESTS
                        and retries < max_retries
                    ):
                        retries += 1
                        delay = backoff_delay(self._config.base_backoff_seconds, retries)
                        CHAT_RETRIES_TOTAL.inc()
                        CHAT_BACKOFF_SECONDS.observe(delay)
                        logger.info(
                            "Chat rate limited; retry %d/%d in %.2fs",
                            retries,
                            max_retries,
                            delay,
                        )
                        await self._sleep(delay)
                        continue

                    raise self._classify(response, attempts=retries + 1)
            finally:
                span.set_attribute(ATTR_CHAT_RETRIES, retries)
                CHAT_LATENCY_SECONDS.observe(time.monotonic() - start)

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    async def _send(self, envelope: SignedEnvelope, *, attempt: int) -> httpx.Response:
        with tracer.start_as_current_span(SPAN_CHAT_ATTEMPT) as span:
            span.set_attribute(ATTR_CHAT_ATTEMPT, attempt)
            try:
                response = await self._http.request(
                    envelope.method,
                    envelope.url,
                    content=envelope.body,
                    headers=envelope.headers(),
                )
            except httpx.RequestError as exc:
                CHAT_REQUESTS_TOTAL.labels(status="transport_error").inc()
                logger.warning("Chat transport error: %s", exc)
                raise RequestFailed(0, str(exc)) from exc
            span.set_attribute(ATTR_CHAT_STATUS, response.status_code)
            return response

    def _parse(self, response: httpx.Response) -> ChatResponse:
        try:
            parsed = ChatResponse.model_validate_json(response.content)
        except ValidationError as exc:
            CHAT_REQUESTS_TOTAL.labels(status="malformed").inc()
            logger.warning("Unparsable chat response: %s", compact(response.text))
            raise MalformedChatResponse("Bad JSON from chat endpoint") from exc
        logger.debug("Chat response: %s", compact(response.text))
        return parsed.model_copy(update={"reply": normalize_reply(parsed.reply)})

    def _classify(self, response: httpx.Response, *, attempts: int) -> Exception:
        if response.status_code == HTTP_TOO_MANY_REQUESTS:
            CHAT_REQUESTS_TOTAL.labels(status="rate_limited").inc()
            logger.warning("Chat still rate limited after %d attempt(s)", attempts)
            return RateLimited(attempts)

        message = readable_error(response)
        CHAT_REQUESTS_TOTAL.labels(status="http_error").inc()
        logger.warning("Chat HTTP %d: %s", response.status_code, message)
        return RequestFailed(response.status_code, message)
