"""Session, signing, memory and chat components.

Leaf-first:

1. **ConversationMemory**: bounded per-(thread, participant) logs.
2. **SessionManager**: single-flight session creation/renewal and
   request signing.
3. **SecureClient**: signed chat requests with 429 backoff.
4. **ChatService**: one turn: context, chat, record the exchange.
"""

from .client import SecureClient, backoff_delay
from .device import (
    InMemoryKeyValueStore,
    JsonFileKeyValueStore,
    KeyValueStore,
    resolve_device_id,
)
from .identity import (
    CallbackIdentityResolver,
    GuestOnlyIdentityResolver,
    PlatformIdentity,
    PlatformIdentityResolver,
)
from .memory import ROLE_NPC, ROLE_USER, ConversationEntry, ConversationMemory
from .service import ChatService
from .session import SessionManager, SessionState
from .signing import SignedEnvelope, build_canonical, sign, sign_envelope

__all__ = [
    "CallbackIdentityResolver",
    "ChatService",
    "ConversationEntry",
    "ConversationMemory",
    "GuestOnlyIdentityResolver",
    "InMemoryKeyValueStore",
    "JsonFileKeyValueStore",
    "KeyValueStore",
    "PlatformIdentity",
    "PlatformIdentityResolver",
    "ROLE_NPC",
    "ROLE_USER",
    "SecureClient",
    "SessionManager",
    "SessionState",
    "SignedEnvelope",
    "backoff_delay",
    "build_canonical",
    "resolve_device_id",
    "sign",
    "sign_envelope",
]
