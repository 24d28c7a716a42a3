"""Request signing.

Every request after session creation carries an HMAC-SHA256 signature
over the canonical string::

    METHOD \\n PATH \\n NONCE \\n TIMESTAMP \\n BODY

keyed by the session secret and base64-encoded.  ``PATH`` is the
configured endpoint path (always starting with ``/``), never the full
URL, and must match what the server verifies.
"""

from __future__ import annotations

import base64
import hashlib
import hmac
from dataclasses import dataclass, field

from journale.models import Session

METHOD_POST = "POST"

HEADER_CONTENT_TYPE = "Content-Type"
HEADER_AUTHORIZATION = "Authorization"
HEADER_SESSION_ID = "X-Session-Id"
HEADER_NONCE = "X-Nonce"
HEADER_TIMESTAMP = "X-Ts"
HEADER_SIGNATURE = "X-Signature"

CONTENT_TYPE_JSON = "application/json"


def canonical_path(path: str) -> str:
    return path if path.startswith("/") else "/" + path


def build_canonical(
    method: str, path: str, nonce: str, timestamp: int, body: bytes
) -> bytes:
    """Return the exact bytes that get signed (no trailing separator)."""
    head = f"{method}\n{path}\n{nonce}\n{timestamp}\n"
    return head.encode("utf-8") + body


def sign(secret: bytes, canonical: bytes) -> str:
    digest = hmac.new(secret, canonical, hashlib.sha256).digest()
    return base64.b64encode(digest).decode("ascii")


@dataclass(frozen=True)
class SignedEnvelope:
    """A signed request ready for the transport."""

    method: str
    path: str
    url: str
    nonce: str
    timestamp: int
    body: bytes
    signature: str
    session_id: str
    jwt: str = field(repr=False)

    def headers(self) -> dict[str, str]:
        return {
            HEADER_CONTENT_TYPE: CONTENT_TYPE_JSON,
            HEADER_AUTHORIZATION: f"Bearer {self.jwt}",
            HEADER_SESSION_ID: self.session_id,
            HEADER_NONCE: self.nonce,
            HEADER_TIMESTAMP: str(self.timestamp),
            HEADER_SIGNATURE: self.signature,
        }


def sign_envelope(
    session: Session,
    *,
    method: str,
    path: str,
    url: str,
    body: bytes,
    nonce: str,
    timestamp: int,
) -> SignedEnvelope:
    """Sign one request with *session*'s secret."""
    path = canonical_path(path)
    canonical = build_canonical(method, path, nonce, timestamp, body)
    return SignedEnvelope(
        method=method,
        path=path,
        url=url,
        nonce=nonce,
        timestamp=timestamp,
        body=body,
        signature=sign(session.secret, canonical),
        session_id=session.session_id,
        jwt=session.jwt,
    )
