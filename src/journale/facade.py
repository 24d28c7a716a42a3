"""Public entry point.

Usage::

    client = Journale(JournaleConfig(project_id="my-project"))
    reply = await client.send("blacksmith-01", "Hello!")
    await client.aclose()

or, as an async context manager::

    async with Journale(config) as client:
        reply = await client.send("blacksmith-01", "Hello!")

``initialize`` wires everything exactly once.  ``send`` initializes on
demand from the configuration given to the constructor or, failing
that, from a config file found by ``load_config()``.
"""

from __future__ import annotations

import logging
from types import TracebackType

import httpx

from journale.configs.config import JournaleConfig, load_config
from journale.core.client import SecureClient, Sleep
from journale.core.device import JsonFileKeyValueStore, KeyValueStore
from journale.core.identity import PlatformIdentityResolver
from journale.core.memory import ConversationMemory
from journale.core.service import ChatService
from journale.core.session import Clock, SessionManager
from journale.errors import NotConfigured

logger = logging.getLogger(__name__)


class Journale:
    """Facade over memory, session manager and secure client.

    Collaborators may be injected (tests, custom transports, platform
    SDK integration); anything not injected is built at ``initialize``.
    """

    def __init__(
        self,
        config: JournaleConfig | None = None,
        *,
        http_client: httpx.AsyncClient | None = None,
        identity_resolver: PlatformIdentityResolver | None = None,
        device_store: KeyValueStore | None = None,
        clock: Clock | None = None,
        sleep: Sleep | None = None,
    ) -> None:
        self._config = config
        self._http_client = http_client
        self._owns_http_client = False
        self._identity_resolver = identity_resolver
        self._device_store = device_store
        self._clock = clock
        self._sleep = sleep

        self._memory: ConversationMemory | None = None
        self._sessions: SessionManager | None = None
        self._client: SecureClient | None = None
        self._service: ChatService | None = None

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    @property
    def initialized(self) -> bool:
        return self._service is not None

    @property
    def config(self) -> JournaleConfig | None:
        return self._config

    @property
    def memory(self) -> ConversationMemory | None:
        return self._memory

    @property
    def sessions(self) -> SessionManager | None:
        return self._sessions

    def initialize(self, config: JournaleConfig | None = None) -> None:
        """Wire the client.  Later calls are no-ops.

        Raises:
            NotConfigured: when no configuration was given and none can be
                loaded from disk.
        """
        if self._service is not None:
            return

        config = config or self._config or load_config()
        if config is None:
            raise NotConfigured(
                "Journale is not configured: call initialize(config) or "
                "provide a journale.yaml config file."
            )
        self._config = config

        if self._http_client is None:
            self._http_client = httpx.AsyncClient(
                timeout=config.request_timeout_seconds
            )
            self._owns_http_client = True

        device_store = self._device_store or JsonFileKeyValueStore(
            config.device_store_path
        )

        if self._memory is None:
            self._memory = ConversationMemory()
        self._sessions = SessionManager(
            config,
            self._http_client,
            identity_resolver=self._identity_resolver,
            device_store=device_store,
            clock=self._clock,
        )
        self._client = SecureClient(
            config, self._sessions, self._http_client, sleep=self._sleep
        )
        self._service = ChatService(config, self._memory, self._sessions, self._client)
        logger.info(
            "Journale initialized (base_url=%s, auth_mode=%s)",
            config.api_base_url,
            config.auth_mode.value,
        )

    async def aclose(self) -> None:
        """Close the HTTP client if this facade created it.

        Components bound to the closed client are dropped, so a later
        ``send`` re-initializes with a fresh one.  Conversation memory is
        kept.
        """
        if self._owns_http_client and self._http_client is not None:
            await self._http_client.aclose()
            self._http_client = None
            self._owns_http_client = False
            self._sessions = None
            self._client = None
            self._service = None

    async def __aenter__(self) -> Journale:
        self.initialize()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()

    # ------------------------------------------------------------------
    # Chat
    # ------------------------------------------------------------------

    async def send(
        self,
        thread_id: str,
        message: str,
        character_description: str | None = None,
        character_id: str | None = None,
        participant_description: str | None = None,
    ) -> str:
        """Send *message* on conversation *thread_id* and return the reply.

        *thread_id* is the application's own identifier for the NPC or
        conversation; history is kept per thread.  Errors propagate
        unchanged and leave history untouched.
        """
        self.initialize()
        service = self._service
        if service is None:
            raise NotConfigured("Journale is not initialized")
        return await service.send(
            thread_id,
            message,
            character_description=character_description,
            character_id=character_id,
            participant_description=participant_description,
        )
