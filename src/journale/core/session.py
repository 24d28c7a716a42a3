"""Session lifecycle: single-flight creation, renewal and request signing.

State machine::

    EMPTY ──ensure_valid──▶ CREATING ──ok──▶ VALID ──clock──▶ EXPIRED
      ▲                        │                                │
      └──────── error ─────────┘◀────────── ensure_valid ───────┘

At most one session-create exchange is in flight per manager.  Callers
that find the session invalid take ``_gate``, re-check, and then either
start the attempt or join the one already running; the gate is released
before anyone awaits the network, so late arrivals still join the same
attempt instead of starting a second one.  The attempt runs as its own
task and is awaited through ``asyncio.shield``: a caller that gives up
does not cancel creation for everyone else.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from datetime import datetime, timezone
from enum import Enum

import httpx
from pydantic import ValidationError

from journale.configs.config import JournaleConfig
from journale.configs.system import AuthMode
from journale.errors import (
    AuthUnavailable,
    MalformedSessionResponse,
    SessionCreateFailed,
)
from journale.infra.http_utils import compact
from journale.infra.id_utils import generate_nonce
from journale.infra.metrics import SESSION_CREATES_TOTAL
from journale.infra.telemetry import (
    ATTR_SESSION_PLATFORM,
    ATTR_SESSION_STATUS,
    SPAN_SESSION_CREATE,
    tracer,
)
from journale.models import Session, SessionCreateRequest, SessionCreateResponse

from .device import InMemoryKeyValueStore, KeyValueStore, resolve_device_id
from .identity import GuestOnlyIdentityResolver, PlatformIdentityResolver
from .signing import METHOD_POST, SignedEnvelope, canonical_path, sign_envelope
from .tokens import decode_session_secret, resolve_expiry

logger = logging.getLogger(__name__)

PLATFORM_GUEST = "guest"

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class SessionState(str, Enum):
    EMPTY = "empty"
    CREATING = "creating"
    VALID = "valid"
    EXPIRED = "expired"


class SessionManager:
    """Owns the current session and signs outbound requests with it."""

    def __init__(
        self,
        config: JournaleConfig,
        http_client: httpx.AsyncClient,
        *,
        identity_resolver: PlatformIdentityResolver | None = None,
        device_store: KeyValueStore | None = None,
        clock: Clock | None = None,
    ) -> None:
        self._config = config
        self._http = http_client
        self._identity = identity_resolver or GuestOnlyIdentityResolver()
        self._device_store = device_store or InMemoryKeyValueStore()
        self._clock = clock or utc_now

        self._session: Session | None = None
        self._gate = asyncio.Lock()
        self._inflight: asyncio.Task[Session] | None = None

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def session(self) -> Session | None:
        return self._session

    @property
    def participant_id(self) -> str | None:
        return self._session.player_id if self._session else None

    @property
    def state(self) -> SessionState:
        if self._inflight is not None:
            return SessionState.CREATING
        if self._session is None:
            return SessionState.EMPTY
        if self._session.is_valid(self._clock()):
            return SessionState.VALID
        return SessionState.EXPIRED

    def is_valid(self) -> bool:
        session = self._session
        return session is not None and session.is_valid(self._clock())

    def invalidate(self) -> None:
        """Drop the current session; the next ``ensure_valid`` creates one."""
        self._session = None

    # ------------------------------------------------------------------
    # Single-flight ensure
    # ------------------------------------------------------------------

    async def ensure_valid(self) -> Session:
        """Return a valid session, creating one if needed.

        Concurrent callers share one creation attempt and all observe its
        outcome: the same ``Session`` or the same exception.
        """
        session = self._session
        if session is not None and session.is_valid(self._clock()):
            return session

        async with self._gate:
            # Another caller may have finished while we waited.
            session = self._session
            if session is not None and session.is_valid(self._clock()):
                return session

            if self._inflight is None or self._inflight.done():
                attempt = asyncio.ensure_future(self._create_session())
                attempt.add_done_callback(self._on_attempt_done)
                self._inflight = attempt
            attempt = self._inflight

        return await asyncio.shield(attempt)

    def _on_attempt_done(self, attempt: asyncio.Task[Session]) -> None:
        if self._inflight is attempt:
            self._inflight = None
        if attempt.cancelled():
            return
        # Marks the exception retrieved even if every waiter went away.
        exc = attempt.exception()
        if exc is not None:
            logger.debug("Session create attempt failed: %r", exc)
            if self._inflight is None:
                self._session = None

    # ------------------------------------------------------------------
    # Create exchange
    # ------------------------------------------------------------------

    async def _build_create_request(self) -> SessionCreateRequest:
        platform = PLATFORM_GUEST
        identity = None

        if self._config.auth_mode is AuthMode.PLATFORM:
            identity = await self._identity.resolve()
            if identity is not None:
                platform = self._config.platform_name
            elif not self._config.allow_fallback_if_platform_missing:
                raise AuthUnavailable(
                    "Platform identity not available and guest fallback disabled."
                )
            else:
                logger.warning(
                    "Platform identity not available; falling back to guest auth"
                )

        # The store may hit the filesystem.
        device_id = await asyncio.to_thread(
            resolve_device_id, self._config.device_id_override, self._device_store
        )

        return SessionCreateRequest(
            platform=platform,
            platform_user_id=identity.user_id if identity else None,
            device_id=device_id,
            is_guest=platform == PLATFORM_GUEST,
            platform_auth_ticket=identity.auth_ticket if identity else None,
            project_id=self._config.project_id or None,
        )

    async def _create_session(self) -> Session:
        with tracer.start_as_current_span(SPAN_SESSION_CREATE) as span:
            request = await self._build_create_request()
            url = self._config.url_for(self._config.session_create_path)
            span.set_attribute(ATTR_SESSION_PLATFORM, request.platform)

            logger.info(
                "Creating session: url=%s platform=%s platform_user_id=%s "
                "device_id=%s project_id=%s ticket_len=%d",
                url,
                request.platform,
                request.platform_user_id or "<none>",
                request.device_id,
                request.project_id or "<none>",
                len(request.platform_auth_ticket or ""),
            )

            try:
                response = await self._http.post(
                    url, json=request.model_dump(by_alias=True, exclude_none=True)
                )
            except httpx.RequestError as exc:
                SESSION_CREATES_TOTAL.labels(status="transport_error").inc()
                logger.warning("Session create transport error: %s", exc)
                raise SessionCreateFailed(0, str(exc)) from exc

            span.set_attribute(ATTR_SESSION_STATUS, response.status_code)
            if not response.is_success:
                SESSION_CREATES_TOTAL.labels(status="http_error").inc()
                logger.warning(
                    "Session create HTTP %d body: %s",
                    response.status_code,
                    compact(response.text),
                )
                raise SessionCreateFailed(response.status_code, response.text)

            session = self._parse_response(response)
            self._session = session
            SESSION_CREATES_TOTAL.labels(status="ok").inc()
            logger.info(
                "Session %s created for player %s (expires %s)",
                session.session_id,
                session.player_id or "<none>",
                session.expires_at.isoformat(),
            )
            return session

    def _parse_response(self, response: httpx.Response) -> Session:
        try:
            body = SessionCreateResponse.model_validate_json(response.content)
        except ValidationError as exc:
            SESSION_CREATES_TOTAL.labels(status="malformed").inc()
            raise MalformedSessionResponse(
                "Session response is not a JSON object with string fields"
            ) from exc

        if not body.session_id or not body.jwt:
            SESSION_CREATES_TOTAL.labels(status="malformed").inc()
            raise MalformedSessionResponse("Session response lacks session_id or jwt")

        return Session(
            session_id=body.session_id,
            player_id=body.player_id or "",
            jwt=body.jwt,
            secret=decode_session_secret(body.session_secret),
            expires_at=resolve_expiry(body.jwt, body.expires_at, self._clock()),
            refresh_token=body.refresh_token,
        )

    # ------------------------------------------------------------------
    # Signing
    # ------------------------------------------------------------------

    async def signed_envelope(
        self, path: str, body: bytes, method: str = METHOD_POST
    ) -> SignedEnvelope:
        """Sign a request for *path* with a fresh nonce and timestamp."""
        session = await self.ensure_valid()
        path = canonical_path(path)
        envelope = sign_envelope(
            session,
            method=method,
            path=path,
            url=self._config.url_for(path),
            body=body,
            nonce=generate_nonce(),
            timestamp=int(self._clock().timestamp()),
        )
        logger.debug(
            "Signed %s %s session=%s nonce=%s ts=%d",
            method,
            path,
            envelope.session_id,
            envelope.nonce,
            envelope.timestamp,
        )
        return envelope
