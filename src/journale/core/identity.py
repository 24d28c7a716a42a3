"""Platform identity resolution.

The session manager consults a ``PlatformIdentityResolver`` only when the
client is configured for platform auth.  Two implementations ship:

* ``GuestOnlyIdentityResolver``: never yields an identity; platform auth
  then falls back to guest (or fails, if fallback is disabled).
* ``CallbackIdentityResolver``: wraps an application callable that talks
  to the platform SDK (e.g. returns a Steam id and a hex auth ticket).
"""

from __future__ import annotations

import inspect
import logging
from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PlatformIdentity:
    user_id: str
    auth_ticket: str = field(repr=False)


IdentityCallback = Callable[
    [], "PlatformIdentity | None | Awaitable[PlatformIdentity | None]"
]


class PlatformIdentityResolver(ABC):
    """Interface for platform identity providers."""

    @abstractmethod
    async def resolve(self) -> PlatformIdentity | None:
        """Return the current platform identity, or ``None`` if unavailable."""


class GuestOnlyIdentityResolver(PlatformIdentityResolver):
    """Resolver for builds without a platform SDK."""

    async def resolve(self) -> PlatformIdentity | None:
        return None


class CallbackIdentityResolver(PlatformIdentityResolver):
    """Resolver backed by an application-supplied (sync or async) callable.

    A callback that raises is reported as "unavailable" so that the
    configured guest fallback still applies.
    """

    def __init__(self, callback: IdentityCallback) -> None:
        self._callback = callback

    async def resolve(self) -> PlatformIdentity | None:
        try:
            result = self._callback()
            if inspect.isawaitable(result):
                result = await result
        except Exception:
            logger.warning("Platform identity callback failed", exc_info=True)
            return None

        if result is None or not result.user_id or not result.auth_ticket:
            logger.warning("Platform identity unavailable")
            return None
        return result
