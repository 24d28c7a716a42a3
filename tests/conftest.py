"""Shared fixtures: a fake clock, a scripted backend and config factories."""

from __future__ import annotations

import asyncio
import base64
import json
from datetime import datetime, timedelta, timezone
from typing import Any, Callable

import httpx
import pytest

from journale.configs.config import JournaleConfig
from journale.core.device import InMemoryKeyValueStore

BASE_URL = "https://api.journale.test"
SESSION_PATH = "/session/create"
CHAT_PATH = "/chat/player"
START = datetime(2025, 1, 1, 12, 0, 0, tzinfo=timezone.utc)
SECRET = b"shared-secret"


def _b64url(raw: str) -> str:
    return base64.urlsafe_b64encode(raw.encode()).decode().rstrip("=")


def encode_jwt_payload(payload: str) -> str:
    """Three-part token whose middle segment is *payload* (any text)."""
    header = _b64url('{"alg":"HS256","typ":"JWT"}')
    return f"{header}.{_b64url(payload)}.signature"


def make_jwt(exp: int | None = None, **claims: Any) -> str:
    body = dict(claims)
    if exp is not None:
        body["exp"] = exp
    return encode_jwt_payload(json.dumps(body))


class FakeClock:
    """Injectable UTC clock that only moves when told to."""

    def __init__(self, now: datetime = START) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


class RecordingSleep:
    """Stand-in for ``asyncio.sleep`` that records the requested delays."""

    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


class FakeBackend:
    """Scripted session-create and chat endpoints behind ``httpx.MockTransport``.

    Queued responses (or exceptions) are consumed in order; when a queue
    is empty a successful default answer is returned.
    """

    def __init__(self, clock: FakeClock) -> None:
        self.clock = clock
        self.session_calls = 0
        self.session_bodies: list[dict[str, Any]] = []
        self.session_queue: list[httpx.Response | Exception] = []
        self.session_delay = 0.0
        self.chat_requests: list[httpx.Request] = []
        self.chat_queue: list[httpx.Response | Exception] = []
        self.player_id = "p1"
        self.jwt_ttl = 3600

    def session_ok(self, **overrides: Any) -> httpx.Response:
        exp = int(self.clock().timestamp()) + self.jwt_ttl
        body: dict[str, Any] = {
            "session_id": f"s{self.session_calls}",
            "player_id": self.player_id,
            "session_secret": base64.b64encode(SECRET).decode(),
            "refresh_token": "r1",
            "jwt": make_jwt(exp, sub=self.player_id),
            "expires_at": None,
        }
        body.update(overrides)
        return httpx.Response(200, json=body)

    async def handler(self, request: httpx.Request) -> httpx.Response:
        if request.url.path == SESSION_PATH:
            self.session_calls += 1
            self.session_bodies.append(json.loads(request.content))
            if self.session_delay:
                await asyncio.sleep(self.session_delay)
            return self._next(self.session_queue, self.session_ok)
        if request.url.path == CHAT_PATH:
            self.chat_requests.append(request)
            return self._next(
                self.chat_queue, lambda: httpx.Response(200, json={"reply": "ok"})
            )
        return httpx.Response(404, text="not found")

    @staticmethod
    def _next(
        queue: list[httpx.Response | Exception],
        default: Callable[[], httpx.Response],
    ) -> httpx.Response:
        if not queue:
            return default()
        item = queue.pop(0)
        if isinstance(item, Exception):
            raise item
        return item

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self.handler))

    def chat_bodies(self) -> list[dict[str, Any]]:
        return [json.loads(r.content) for r in self.chat_requests]


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def backend(clock: FakeClock) -> FakeBackend:
    return FakeBackend(clock)


@pytest.fixture
def recording_sleep() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture
def device_store() -> InMemoryKeyValueStore:
    return InMemoryKeyValueStore()


@pytest.fixture
def make_config() -> Callable[..., JournaleConfig]:
    def _make(**overrides: Any) -> JournaleConfig:
        values: dict[str, Any] = {
            "api_base_url": BASE_URL,
            "session_create_path": SESSION_PATH,
            "chat_path": CHAT_PATH,
            "project_id": "proj-1",
            "max_retries_on_429": 2,
            "base_backoff_seconds": 0.6,
        }
        values.update(overrides)
        return JournaleConfig(**values)

    return _make
