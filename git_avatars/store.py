"""Key/value state stores backing the avatar cache.

A store only has to honour last-write-wins per key. ``MemoryStateStore`` lives
for the process; ``JsonFileStateStore`` keeps the same mapping in memory and
flushes it to a JSON file on every write so cached avatars survive restarts.
"""

from __future__ import annotations

import asyncio
import json
import logging
from pathlib import Path
from typing import Any, Protocol

logger = logging.getLogger(__name__)


class StateStore(Protocol):
    def has(self, key: str) -> bool: ...

    async def get(self, key: str) -> Any | None: ...

    async def set(self, key: str, value: Any) -> None: ...


class MemoryStateStore:
    """Process-local store."""

    def __init__(self) -> None:
        self._data: dict[str, Any] = {}

    def has(self, key: str) -> bool:
        return key in self._data

    async def get(self, key: str) -> Any | None:
        return self._data.get(key)

    async def set(self, key: str, value: Any) -> None:
        self._data[key] = value


class JsonFileStateStore(MemoryStateStore):
    """Store persisted to a JSON file.

    The in-memory mapping is authoritative for the running process; a failed
    flush is logged and retried on the next write.
    """

    def __init__(self, path: Path | str) -> None:
        super().__init__()
        self._path = Path(path)
        self._lock = asyncio.Lock()
        self.load()

    @property
    def path(self) -> Path:
        return self._path

    def load(self) -> None:
        """Load persisted entries from disk, if any."""
        try:
            if not self._path.exists():
                return
            data = json.loads(self._path.read_text())
            if not isinstance(data, dict):
                logger.warning("Ignoring malformed state file %s", self._path)
                return
            self._data = data
            logger.info("Loaded %d cached entries from %s", len(data), self._path)
        except Exception:
            logger.exception("Failed to load avatar state from %s", self._path)

    async def set(self, key: str, value: Any) -> None:
        async with self._lock:
            snapshot = json.dumps({**self._data, key: value}, indent=2)
            self._data[key] = value
            await asyncio.to_thread(self._write, snapshot)

    def _write(self, payload: str) -> None:
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            tmp = self._path.with_suffix(self._path.suffix + ".tmp")
            tmp.write_text(payload)
            tmp.replace(self._path)
        except OSError:
            logger.exception("Failed to save avatar state to %s", self._path)


def create_store(path: Path | str | None = None) -> StateStore:
    """Return a file-backed store for ``path``, or an in-memory one."""
    if path:
        return JsonFileStateStore(path)
    return MemoryStateStore()


__all__ = ["StateStore", "MemoryStateStore", "JsonFileStateStore", "create_store"]
