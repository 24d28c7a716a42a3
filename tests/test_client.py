"""Tests for the signed chat client and its 429 backoff."""

from __future__ import annotations

import json

import httpx
import pytest

from journale.core.client import SecureClient, backoff_delay, normalize_reply
from journale.core.device import InMemoryKeyValueStore
from journale.core.session import SessionManager
from journale.core.signing import build_canonical, sign
from journale.errors import MalformedChatResponse, RateLimited, RequestFailed
from journale.models import ChatRequest


@pytest.fixture
def make_client(backend, clock, recording_sleep, make_config):
    def _make(**overrides) -> SecureClient:
        config = make_config(**overrides)
        http = backend.client()
        sessions = SessionManager(
            config, http, device_store=InMemoryKeyValueStore(), clock=clock
        )
        return SecureClient(config, sessions, http, sleep=recording_sleep)

    return _make


def _request(**kwargs) -> ChatRequest:
    kwargs.setdefault("message", "Hi")
    return ChatRequest(**kwargs)


class TestBackoff:
    def test_doubles_per_retry(self):
        assert backoff_delay(0.6, 1) == pytest.approx(0.6)
        assert backoff_delay(0.6, 2) == pytest.approx(1.2)
        assert backoff_delay(0.6, 3) == pytest.approx(2.4)

    def test_normalize_reply(self):
        assert normalize_reply("  Hello there \n") == "Hello there"
        assert normalize_reply("   ") == "(no reply)"
        assert normalize_reply(None) == "(no reply)"


class TestChatSuccess:
    @pytest.mark.asyncio
    async def test_reply_is_trimmed(self, backend, make_client):
        backend.chat_queue.append(httpx.Response(200, json={"reply": "  Hello  "}))
        response = await make_client().chat(_request())
        assert response.reply == "Hello"

    @pytest.mark.asyncio
    async def test_missing_reply_becomes_placeholder(self, backend, make_client):
        backend.chat_queue.append(httpx.Response(200, json={"usage": {"total_tokens": 3}}))
        response = await make_client().chat(_request())
        assert response.reply == "(no reply)"
        assert response.usage.total_tokens == 3

    @pytest.mark.asyncio
    async def test_body_uses_wire_names_and_omits_unset(self, backend, make_client):
        await make_client().chat(
            _request(
                context="Player: a\n",
                character_description="A blacksmith",
                player_description="A curious player",
            )
        )
        body = backend.chat_bodies()[0]
        assert body == {
            "message": "Hi",
            "context": "Player: a\n",
            "characterDescription": "A blacksmith",
            "playerDescription": "A curious player",
        }

    @pytest.mark.asyncio
    async def test_request_is_signed(self, backend, make_client):
        await make_client().chat(_request())
        request = backend.chat_requests[0]
        headers = request.headers

        canonical = build_canonical(
            "POST",
            "/chat/player",
            headers["X-Nonce"],
            int(headers["X-Ts"]),
            request.content,
        )
        assert headers["X-Signature"] == sign(b"shared-secret", canonical)
        assert headers["X-Session-Id"] == "s1"
        assert headers["Authorization"].startswith("Bearer ")
        assert headers["Content-Type"] == "application/json"
        assert request.method == "POST"


class TestRateLimit:
    @pytest.mark.asyncio
    async def test_retries_then_succeeds(self, backend, make_client, recording_sleep):
        backend.chat_queue.extend(
            [
                httpx.Response(429, text="slow down"),
                httpx.Response(429, text="slow down"),
                httpx.Response(200, json={"reply": "Finally"}),
            ]
        )

        response = await make_client().chat(_request())

        assert response.reply == "Finally"
        assert len(backend.chat_requests) == 3
        assert recording_sleep.delays == pytest.approx([0.6, 1.2])
        nonces = {r.headers["X-Nonce"] for r in backend.chat_requests}
        assert len(nonces) == 3
        # Same payload every time.
        assert len({r.content for r in backend.chat_requests}) == 1

    @pytest.mark.asyncio
    async def test_exhausted_retries(self, backend, make_client, recording_sleep):
        backend.chat_queue.extend(httpx.Response(429) for _ in range(3))

        with pytest.raises(RateLimited) as exc_info:
            await make_client().chat(_request())

        assert exc_info.value.attempts == 3
        assert len(backend.chat_requests) == 3
        assert recording_sleep.delays == pytest.approx([0.6, 1.2])

    @pytest.mark.asyncio
    async def test_no_retries_configured(self, backend, make_client, recording_sleep):
        backend.chat_queue.append(httpx.Response(429))

        with pytest.raises(RateLimited) as exc_info:
            await make_client(max_retries_on_429=0).chat(_request())

        assert exc_info.value.attempts == 1
        assert recording_sleep.delays == []

    @pytest.mark.asyncio
    async def test_other_errors_are_not_retried(
        self, backend, make_client, recording_sleep
    ):
        backend.chat_queue.append(httpx.Response(500, text="internal"))

        with pytest.raises(RequestFailed):
            await make_client().chat(_request())

        assert len(backend.chat_requests) == 1
        assert recording_sleep.delays == []


class TestErrorMessages:
    @pytest.mark.asyncio
    async def test_html_page_with_title(self, backend, make_client):
        page = "<!DOCTYPE html><html><head><title>502 Bad Gateway</title></head></html>"
        backend.chat_queue.append(httpx.Response(502, text=page))

        with pytest.raises(RequestFailed) as exc_info:
            await make_client().chat(_request())

        assert exc_info.value.status == 502
        assert exc_info.value.message == "Server error: 502 Bad Gateway"
        assert str(exc_info.value) == "HTTP 502: Server error: 502 Bad Gateway"

    @pytest.mark.asyncio
    async def test_html_page_without_title(self, backend, make_client):
        backend.chat_queue.append(
            httpx.Response(503, text="<html><body>down</body></html>")
        )
        with pytest.raises(RequestFailed) as exc_info:
            await make_client().chat(_request())
        assert exc_info.value.message == "Server error (HTML error page received)"

    @pytest.mark.asyncio
    async def test_long_body_is_truncated(self, backend, make_client):
        backend.chat_queue.append(httpx.Response(400, text="x" * 500))
        with pytest.raises(RequestFailed) as exc_info:
            await make_client().chat(_request())
        assert exc_info.value.message == "x" * 200 + "..."

    @pytest.mark.asyncio
    async def test_empty_body_uses_reason_phrase(self, backend, make_client):
        backend.chat_queue.append(httpx.Response(403))
        with pytest.raises(RequestFailed) as exc_info:
            await make_client().chat(_request())
        assert exc_info.value.message == "Forbidden"

    @pytest.mark.asyncio
    async def test_transport_error(self, backend, make_client):
        backend.chat_queue.append(httpx.ReadTimeout("timed out"))
        with pytest.raises(RequestFailed) as exc_info:
            await make_client().chat(_request())
        assert exc_info.value.status == 0

    @pytest.mark.asyncio
    async def test_malformed_success_body(self, backend, make_client):
        backend.chat_queue.append(httpx.Response(200, text="not json"))
        with pytest.raises(MalformedChatResponse):
            await make_client().chat(_request())

    @pytest.mark.asyncio
    async def test_json_array_is_malformed(self, backend, make_client):
        backend.chat_queue.append(httpx.Response(200, content=json.dumps([1, 2])))
        with pytest.raises(MalformedChatResponse):
            await make_client().chat(_request())
