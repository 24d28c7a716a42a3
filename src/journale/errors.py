"""Exceptions raised by the Journale client.

Every error surfaces to the ``send`` caller.  The only condition handled
internally is a rate-limited chat request that still has retries left.
"""

from __future__ import annotations


class JournaleError(Exception):
    """Base class for all client errors."""


# ---------------------------------------------------------------------------
# Session errors
# ---------------------------------------------------------------------------


class AuthUnavailable(JournaleError):
    """Raised when platform auth is required but no identity is available."""


class SessionCreateFailed(JournaleError):
    """Raised when the session-create endpoint answers with a non-2xx status.

    ``status`` is ``0`` when the request never got a response.
    """

    def __init__(self, status: int, body: str) -> None:
        super().__init__(f"Session create failed: HTTP {status}: {body}")
        self.status = status
        self.body = body


class MalformedSessionResponse(JournaleError):
    """Raised when a session-create response lacks ``session_id`` or ``jwt``."""


# ---------------------------------------------------------------------------
# Chat errors
# ---------------------------------------------------------------------------


class RateLimited(JournaleError):
    """Raised when the chat endpoint keeps answering 429 after all retries."""

    def __init__(self, attempts: int) -> None:
        super().__init__(f"Rate limited after {attempts} attempt(s)")
        self.attempts = attempts


class RequestFailed(JournaleError):
    """Raised for any other non-2xx chat response (or a transport failure)."""

    def __init__(self, status: int, message: str) -> None:
        super().__init__(f"HTTP {status}: {message}")
        self.status = status
        self.message = message


class MalformedChatResponse(JournaleError):
    """Raised when a successful chat response body cannot be parsed."""


# ---------------------------------------------------------------------------
# Facade errors
# ---------------------------------------------------------------------------


class NotConfigured(JournaleError):
    """Raised when ``send`` is called with no configuration available."""
