"""Tests for canonical string construction and HMAC signing."""

import base64
import hashlib
import hmac
from datetime import timedelta

from conftest import START

from journale.core.signing import (
    build_canonical,
    canonical_path,
    sign,
    sign_envelope,
)
from journale.models import Session

SECRET = b"k" * 32


def _session(secret: bytes = SECRET) -> Session:
    return Session(
        session_id="s1",
        player_id="p1",
        jwt="header.payload.sig",
        secret=secret,
        expires_at=START + timedelta(hours=1),
    )


def _envelope(**overrides):
    fields = {
        "method": "POST",
        "path": "/chat/player",
        "url": "https://api.journale.test/chat/player",
        "body": b'{"message":"hi"}',
        "nonce": "abc123",
        "timestamp": 1735732800,
    }
    fields.update(overrides)
    session = fields.pop("session", _session())
    return sign_envelope(session, **fields)


class TestCanonical:
    def test_exact_layout(self):
        canonical = build_canonical("POST", "/chat/player", "n1", 100, b'{"a":1}')
        assert canonical == b'POST\n/chat/player\nn1\n100\n{"a":1}'

    def test_empty_body_has_no_trailing_separator_added(self):
        assert build_canonical("POST", "/p", "n", 1, b"") == b"POST\n/p\nn\n1\n"

    def test_deterministic(self):
        args = ("POST", "/chat/player", "n1", 100, b"{}")
        assert build_canonical(*args) == build_canonical(*args)
        assert sign(SECRET, build_canonical(*args)) == sign(SECRET, build_canonical(*args))

    def test_canonical_path(self):
        assert canonical_path("chat/player") == "/chat/player"
        assert canonical_path("/chat/player") == "/chat/player"


class TestSign:
    def test_matches_hmac_sha256_base64(self):
        canonical = b"POST\n/p\nn\n1\n{}"
        expected = base64.b64encode(
            hmac.new(SECRET, canonical, hashlib.sha256).digest()
        ).decode()
        assert sign(SECRET, canonical) == expected

    def test_same_fields_same_signature(self):
        assert _envelope().signature == _envelope().signature

    def test_any_field_change_changes_signature(self):
        base = _envelope().signature
        assert _envelope(path="/chat/other").signature != base
        assert _envelope(nonce="other").signature != base
        assert _envelope(timestamp=1735732801).signature != base
        assert _envelope(body=b'{"message":"ho"}').signature != base

    def test_secret_change_changes_signature(self):
        assert _envelope(session=_session(b"other")).signature != _envelope().signature


class TestEnvelope:
    def test_headers(self):
        envelope = _envelope()
        headers = envelope.headers()
        assert headers["Authorization"] == "Bearer header.payload.sig"
        assert headers["X-Session-Id"] == "s1"
        assert headers["X-Nonce"] == "abc123"
        assert headers["X-Ts"] == "1735732800"
        assert headers["X-Signature"] == envelope.signature
        assert headers["Content-Type"] == "application/json"

    def test_path_is_canonicalised(self):
        assert _envelope(path="chat/player").path == "/chat/player"

    def test_repr_hides_credentials(self):
        assert "header.payload.sig" not in repr(_envelope())
        assert "kkkk" not in repr(_session())
