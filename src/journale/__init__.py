"""Journale client: authenticated, signed NPC chat for applications."""

from .configs import AuthMode, JournaleConfig, load_config
from .core import (
    CallbackIdentityResolver,
    GuestOnlyIdentityResolver,
    InMemoryKeyValueStore,
    JsonFileKeyValueStore,
    KeyValueStore,
    PlatformIdentity,
    PlatformIdentityResolver,
)
from .errors import (
    AuthUnavailable,
    JournaleError,
    MalformedChatResponse,
    MalformedSessionResponse,
    NotConfigured,
    RateLimited,
    RequestFailed,
    SessionCreateFailed,
)
from .facade import Journale

__all__ = [
    "AuthMode",
    "AuthUnavailable",
    "CallbackIdentityResolver",
    "GuestOnlyIdentityResolver",
    "InMemoryKeyValueStore",
    "Journale",
    "JournaleConfig",
    "JournaleError",
    "JsonFileKeyValueStore",
    "KeyValueStore",
    "MalformedChatResponse",
    "MalformedSessionResponse",
    "NotConfigured",
    "PlatformIdentity",
    "PlatformIdentityResolver",
    "RateLimited",
    "RequestFailed",
    "SessionCreateFailed",
    "load_config",
]
