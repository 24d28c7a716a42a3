"""Session secret decoding and expiry resolution.

The JWT returned by the backend is only inspected, never verified: the
client needs its ``exp`` claim to know when to renew, nothing more.  The
payload is treated as untrusted text, so ``exp`` is located with a small
syntactic scan instead of a JSON parse.
"""

from __future__ import annotations

import base64
import binascii
import logging
import re
from datetime import datetime, timedelta, timezone

logger = logging.getLogger(__name__)

DEFAULT_SESSION_TTL = timedelta(minutes=30)

_EXP_KEYS = ('"exp"', "'exp'")
_EXP_VALUE = re.compile(r"\s*([0-9]+)")


def decode_session_secret(raw: str | None) -> bytes:
    """Decode the shared secret: strict base64 first, raw UTF-8 otherwise."""
    if not raw:
        return b""
    try:
        return base64.b64decode(raw, validate=True)
    except (binascii.Error, ValueError):
        return raw.encode("utf-8")


def _decode_jwt_payload(token: str) -> str | None:
    parts = token.split(".")
    if len(parts) < 2:
        return None
    segment = parts[1]
    segment += "=" * (-len(segment) % 4)
    try:
        return base64.urlsafe_b64decode(segment).decode("utf-8")
    except (binascii.Error, ValueError):
        return None


def parse_jwt_exp(token: str | None) -> int | None:
    """Return the ``exp`` claim of *token* in Unix seconds, if present."""
    if not token:
        return None
    payload = _decode_jwt_payload(token)
    if payload is None:
        return None

    key_idx = -1
    for key in _EXP_KEYS:
        key_idx = payload.find(key)
        if key_idx >= 0:
            break
    if key_idx < 0:
        return None

    colon = payload.find(":", key_idx)
    if colon < 0:
        return None
    match = _EXP_VALUE.match(payload, colon + 1)
    if match is None:
        return None
    return int(match.group(1))


def parse_server_expiry(value: str | None) -> datetime | None:
    """Parse the server's ISO-8601 ``expires_at``; naive values are UTC."""
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.strip())
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def resolve_expiry(jwt: str | None, expires_at: str | None, now: datetime) -> datetime:
    """Session expiry: JWT ``exp`` > server ``expires_at`` > now + 30 minutes."""
    exp = parse_jwt_exp(jwt)
    if exp is not None:
        try:
            return datetime.fromtimestamp(exp, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            logger.warning("Ignoring out-of-range JWT exp claim: %d", exp)

    server_expiry = parse_server_expiry(expires_at)
    if server_expiry is not None:
        return server_expiry

    return now + DEFAULT_SESSION_TTL
