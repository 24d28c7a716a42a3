"""Output formatting for NPC replies and client errors."""

from typing import TextIO

from journale.errors import (
    AuthUnavailable,
    JournaleError,
    MalformedChatResponse,
    MalformedSessionResponse,
    NotConfigured,
    RateLimited,
    RequestFailed,
    SessionCreateFailed,
)

_ERROR_CODES: dict[type[JournaleError], str] = {
    AuthUnavailable: "AUTH_UNAVAILABLE",
    SessionCreateFailed: "SESSION_CREATE_FAILED",
    MalformedSessionResponse: "MALFORMED_SESSION",
    RateLimited: "RATE_LIMITED",
    RequestFailed: "HTTP_ERROR",
    MalformedChatResponse: "MALFORMED_CHAT",
    NotConfigured: "NOT_CONFIGURED",
}


def error_code(exc: BaseException) -> str:
    """Short code for an error, ``UNEXPECTED_ERROR`` for unknown ones."""
    for exc_type, code in _ERROR_CODES.items():
        if isinstance(exc, exc_type):
            return code
    return "UNEXPECTED_ERROR"


class ResponseFormatter:
    """Writes NPC replies and errors to a text stream."""

    def __init__(self, output: TextIO, npc_name: str = "NPC"):
        """Initialize the formatter.

        Parameters
        ----------
        output
            File-like object to write output to.
        npc_name
            Label printed in front of replies.
        """
        self.output = output
        self.npc_name = npc_name

    def reply(self, text: str) -> None:
        self._print(f"{self.npc_name}: {text}\n\n")

    def error(self, exc: BaseException) -> None:
        self._print(f"❌ Error [{error_code(exc)}]: {exc}\n\n")

    def _print(self, text: str) -> None:
        self.output.write(text)
        self.output.flush()
