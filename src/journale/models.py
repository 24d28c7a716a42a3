"""Wire models for the session-create and chat endpoints, plus the
in-memory ``Session`` record."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator

# ---------------------------------------------------------------------------
# Session create
# ---------------------------------------------------------------------------


class SessionCreateRequest(BaseModel):
    """Body of ``POST {session_create_path}``."""

    model_config = ConfigDict(populate_by_name=True)

    platform: str = Field(description='"guest" or the platform name')
    platform_user_id: str | None = Field(
        default=None, alias="platformUserId", description="Platform user id"
    )
    device_id: str = Field(alias="deviceId", description="Stable per-install id")
    is_guest: bool = Field(alias="isGuest")
    platform_auth_ticket: str | None = Field(
        default=None,
        alias="platformAuthTicket",
        description="Opaque platform auth ticket",
    )
    project_id: str | None = Field(default=None, alias="projectId")


_OPTIONAL_FIELDS = frozenset(
    {"player_id", "session_secret", "refresh_token", "expires_at"}
)


class SessionCreateResponse(BaseModel):
    """Body returned by the session-create endpoint.

    All fields are optional and numeric scalars are accepted as text;
    required ones are checked by the session manager so that a missing
    id maps to a single error type.
    """

    model_config = ConfigDict(extra="ignore")

    session_id: str | None = None
    player_id: str | None = None
    session_secret: str | None = Field(
        default=None, description="base64 or raw string"
    )
    refresh_token: str | None = None
    jwt: str | None = None
    expires_at: str | None = Field(default=None, description="ISO-8601")

    @field_validator(
        "session_id",
        "player_id",
        "session_secret",
        "refresh_token",
        "jwt",
        "expires_at",
        mode="before",
    )
    @classmethod
    def _scalar_to_str(cls, value: Any, info: ValidationInfo) -> Any:
        # Numbers (e.g. a Unix-seconds expires_at) become text; an
        # unparseable expiry later falls back to the default TTL.
        if isinstance(value, (int, float)):
            return str(value)
        if isinstance(value, (dict, list)) and info.field_name in _OPTIONAL_FIELDS:
            return None
        return value


# ---------------------------------------------------------------------------
# Chat
# ---------------------------------------------------------------------------


class ChatRequest(BaseModel):
    """Body of the signed ``POST {chat_path}`` request."""

    model_config = ConfigDict(populate_by_name=True)

    message: str = Field(description="The participant's message")
    context: str = Field(default="", description="Compact local history")
    character_description: str | None = Field(
        default=None, alias="characterDescription"
    )
    character_id: str | None = Field(default=None, alias="characterID")
    player_description: str | None = Field(
        default=None, alias="playerDescription"
    )


class ChatUsage(BaseModel):
    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0


class ChatResponse(BaseModel):
    model_config = ConfigDict(extra="ignore")

    reply: str | None = None
    usage: ChatUsage | None = None


# ---------------------------------------------------------------------------
# Session record
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Session:
    """Authenticated session snapshot.

    Immutable: renewal replaces the whole record, so a reader always sees
    one consistent set of id, token and secret.
    """

    session_id: str
    player_id: str
    jwt: str = field(repr=False)
    secret: bytes = field(repr=False)
    expires_at: datetime
    refresh_token: str | None = field(default=None, repr=False)

    def is_valid(self, now: datetime) -> bool:
        return bool(self.session_id) and bool(self.jwt) and now < self.expires_at
