"""In-memory conversation history, one bounded log per (thread, participant).

The log is what the client sends as ``context`` on the next chat request,
so it only ever holds completed exchanges.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass

ROLE_USER = "user"
ROLE_NPC = "npc"

_USER_LABEL = "Player: "
_NPC_LABEL = "NPC: "

LogKey = tuple[str, str]


@dataclass(frozen=True)
class ConversationEntry:
    role: str
    content: str


class ConversationMemory:
    """Bounded per-key message logs.

    Appends to the same key are serialised by a per-key lock so the
    length cap holds after every append; different keys never contend.
    """

    def __init__(self) -> None:
        self._logs: dict[LogKey, list[ConversationEntry]] = {}
        self._locks: dict[LogKey, threading.Lock] = {}
        self._registry_lock = threading.Lock()

    def _entry(self, thread_id: str, participant_id: str):
        key = (thread_id, participant_id)
        with self._registry_lock:
            log = self._logs.get(key)
            if log is None:
                log = self._logs[key] = []
                self._locks[key] = threading.Lock()
            return log, self._locks[key]

    def get(self, thread_id: str, participant_id: str) -> list[ConversationEntry]:
        """Return a copy of the log, oldest first (empty on first access)."""
        log, lock = self._entry(thread_id, participant_id)
        with lock:
            return list(log)

    def append(
        self,
        thread_id: str,
        participant_id: str,
        role: str,
        text: str,
        cap: int,
    ) -> None:
        """Append one entry, then evict from the front down to *cap*.

        ``cap <= 0`` keeps everything.
        """
        log, lock = self._entry(thread_id, participant_id)
        with lock:
            log.append(ConversationEntry(role, text))
            if cap > 0 and len(log) > cap:
                del log[: len(log) - cap]

    def build_context(self, thread_id: str, participant_id: str, last_n: int) -> str:
        """Render the last *last_n* entries as ``Player:``/``NPC:`` lines."""
        if last_n <= 0:
            return ""
        entries = self.get(thread_id, participant_id)[-last_n:]
        return "".join(
            f"{_USER_LABEL if e.role == ROLE_USER else _NPC_LABEL}{e.content}\n"
            for e in entries
        )

    def clear(self, thread_id: str, participant_id: str) -> None:
        """Forget the log for one key."""
        log, lock = self._entry(thread_id, participant_id)
        with lock:
            log.clear()
