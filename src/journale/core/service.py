"""Chat service -- one conversational turn against the backend."""

from __future__ import annotations

import logging

from journale.configs.config import JournaleConfig
from journale.models import ChatRequest

from .client import SecureClient
from .memory import ROLE_NPC, ROLE_USER, ConversationMemory
from .session import SessionManager

logger = logging.getLogger(__name__)

DEFAULT_PARTICIPANT_ID = "local"


class ChatService:
    """Threads memory, session and secure client together for one send.

    History is keyed by the thread id *and* the participant id the
    backend assigned to the session, so a new player on the same install
    starts with a clean log.
    """

    def __init__(
        self,
        config: JournaleConfig,
        memory: ConversationMemory,
        sessions: SessionManager,
        client: SecureClient,
    ) -> None:
        self._config = config
        self._memory = memory
        self._sessions = sessions
        self._client = client

    async def send(
        self,
        thread_id: str,
        message: str,
        character_description: str | None = None,
        character_id: str | None = None,
        participant_description: str | None = None,
    ) -> str:
        session = await self._sessions.ensure_valid()
        participant_id = session.player_id or DEFAULT_PARTICIPANT_ID
        cap = self._config.max_history_lines_for_context

        # Captured before this turn is recorded so the message is not
        # part of its own context.
        context = self._memory.build_context(thread_id, participant_id, cap)

        request = ChatRequest(
            message=message,
            context=context,
            character_description=character_description,
            character_id=character_id,
            player_description=(
                participant_description
                if participant_description is not None
                else self._config.default_participant_description
            ),
        )

        try:
            response = await self._client.chat(request)
        except Exception as exc:
            logger.error("Chat request for thread %s failed: %s", thread_id, exc)
            raise

        reply = response.reply or ""
        # Only completed exchanges reach the log.
        self._memory.append(thread_id, participant_id, ROLE_USER, message, cap)
        self._memory.append(thread_id, participant_id, ROLE_NPC, reply, cap)
        return reply
