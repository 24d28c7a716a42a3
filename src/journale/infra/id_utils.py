"""Random identifiers used by the client.

- device id: ``uuid4().hex`` (32 hex chars), generated once per install
  and persisted by the device store.
- nonce: 32 hex chars from ``secrets``, fresh for every signed request.
"""

import secrets
import uuid

_NONCE_BYTES = 16  # 128 bits


def generate_device_id() -> str:
    """Return a new per-install device identifier."""
    return uuid.uuid4().hex


def generate_nonce() -> str:
    """Return a single-use request nonce."""
    return secrets.token_hex(_NONCE_BYTES)
