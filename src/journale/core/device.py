"""Device id persistence.

The device id identifies one install across runs.  The client never owns
global state for it: it reads and writes through a small injected
``KeyValueStore``.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
import threading
from abc import ABC, abstractmethod
from pathlib import Path

from journale.infra.id_utils import generate_device_id

logger = logging.getLogger(__name__)

DEVICE_ID_KEY = "journale_device_id"


class KeyValueStore(ABC):
    """Minimal string key-value persistence.

    The session manager calls stores from a worker thread (via
    ``asyncio.to_thread``), one create attempt at a time.
    """

    @abstractmethod
    def get(self, key: str) -> str | None:
        """Return the stored value, or ``None``."""

    @abstractmethod
    def set(self, key: str, value: str) -> None:
        """Store *value* under *key*."""


class InMemoryKeyValueStore(KeyValueStore):
    """Process-local store; values are lost on exit."""

    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self._values: dict[str, str] = dict(initial or {})

    def get(self, key: str) -> str | None:
        return self._values.get(key)

    def set(self, key: str, value: str) -> None:
        self._values[key] = value


class JsonFileKeyValueStore(KeyValueStore):
    """Store backed by a small JSON object on disk.

    Writes go to a temp file in the same directory and are moved into
    place, so a crash never leaves a truncated file behind.
    """

    def __init__(self, path: Path | str) -> None:
        self._path = Path(path)
        self._lock = threading.Lock()

    def _read(self) -> dict[str, str]:
        if not self._path.is_file():
            return {}
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except (OSError, ValueError):
            logger.warning("Unreadable key-value file %s; starting empty", self._path)
            return {}
        return data if isinstance(data, dict) else {}

    def get(self, key: str) -> str | None:
        with self._lock:
            value = self._read().get(key)
        return value if isinstance(value, str) else None

    def set(self, key: str, value: str) -> None:
        with self._lock:
            data = self._read()
            data[key] = value
            self._path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp = tempfile.mkstemp(dir=self._path.parent, suffix=".tmp")
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    json.dump(data, f)
                os.replace(tmp, self._path)
            except BaseException:
                os.unlink(tmp)
                raise


def resolve_device_id(override: str, store: KeyValueStore) -> str:
    """Override > stored id > newly generated id (stored for next time)."""
    if override:
        return override

    device_id = store.get(DEVICE_ID_KEY)
    if device_id:
        return device_id

    device_id = generate_device_id()
    store.set(DEVICE_ID_KEY, device_id)
    logger.info("Generated new device id %s", device_id)
    return device_id
