"""Persistent result cache with in-flight fetch deduplication."""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Any, Awaitable, Callable, Generic, TypeVar

from .models.cache import CacheEntry, CacheStats, InFlightEntry
from .store import StateStore

logger = logging.getLogger(__name__)

T = TypeVar("T")

RETRY_WINDOW_MS = 60 * 60 * 1000
DEDUP_WINDOW_MS = 60 * 60 * 1000


def _now_ms() -> int:
    return int(time.time() * 1000)


def _identity(value: Any) -> Any:
    return value


async def _invoke(producer: Callable[[], Awaitable[T | None]]) -> T | None:
    return await producer()


def _consume_exception(task: asyncio.Task) -> None:
    # Every caller may have been cancelled before the fetch settled.
    if not task.cancelled():
        task.exception()


class FetchDedupCache(Generic[T]):
    """Cache the outcome of ``producer`` per key and collapse concurrent fetches.

    A fetch that succeeds is cached permanently, even when it produced
    nothing. A fetch that raises is cached as retry-eligible and attempted
    again once ``retry_window_ms`` has passed. While a fetch is running, other
    callers for the same key await the same task instead of starting their own,
    unless that task was registered more than ``dedup_window_ms`` ago.

    Producer errors never reach the caller. Store errors do.
    """

    def __init__(
        self,
        store: StateStore,
        *,
        retry_window_ms: int = RETRY_WINDOW_MS,
        dedup_window_ms: int = DEDUP_WINDOW_MS,
        now_ms: Callable[[], int] = _now_ms,
        dump: Callable[[T], Any] = _identity,
        load: Callable[[Any], T] = _identity,
    ) -> None:
        self.store = store
        self.retry_window_ms = retry_window_ms
        self.dedup_window_ms = dedup_window_ms
        self.stats = CacheStats()
        self._now_ms = now_ms
        self._dump = dump
        self._load = load
        self._in_flight: dict[str, InFlightEntry] = {}

    async def fetch(
        self, key: str, producer: Callable[[], Awaitable[T | None]]
    ) -> T | None:
        if not key:
            raise ValueError("cache key must be a non-empty string")

        entry = await self._read(key)
        if entry is None or self._retry_due(entry):
            self.stats.misses += 1
            await self._refresh(key, producer)
            entry = await self._read(key)
        else:
            self.stats.hits += 1
            logger.debug("Cache hit for %s", key)

        if entry is None or not entry.succeeded or entry.value is None:
            return None
        return self._load(entry.value)

    def in_flight(self, key: str) -> bool:
        current = self._in_flight.get(key)
        return current is not None and not self._expired(current)

    def _retry_due(self, entry: CacheEntry) -> bool:
        return entry.retry and (self._now_ms() - entry.date_time_ms) > self.retry_window_ms

    def _expired(self, in_flight: InFlightEntry) -> bool:
        return (self._now_ms() - in_flight.started_at_ms) > self.dedup_window_ms

    async def _read(self, key: str) -> CacheEntry | None:
        if not self.store.has(key):
            return None
        raw = await self.store.get(key)
        if raw is None:
            return None
        if isinstance(raw, CacheEntry):
            return raw
        if not isinstance(raw, dict):
            logger.warning("Ignoring malformed cache entry for %s", key)
            return None
        return CacheEntry.from_dict(raw)

    def _claim(
        self, key: str, producer: Callable[[], Awaitable[T | None]]
    ) -> InFlightEntry:
        # No await in here: lookup and registration must not interleave with
        # another caller for the same key.
        current = self._in_flight.get(key)
        if current is not None:
            if not self._expired(current):
                self.stats.deduplicated += 1
                logger.debug("Joining in-flight fetch for %s", key)
                return current
            self.stats.expired_in_flight += 1
            logger.warning("Discarding abandoned in-flight fetch for %s", key)
            del self._in_flight[key]

        current = InFlightEntry(
            started_at_ms=self._now_ms(),
            pending=asyncio.ensure_future(_invoke(producer)),
        )
        current.pending.add_done_callback(_consume_exception)
        self._in_flight[key] = current
        return current

    async def _refresh(
        self, key: str, producer: Callable[[], Awaitable[T | None]]
    ) -> None:
        claimed = self._claim(key, producer)
        settled = False
        try:
            try:
                # A cancelled caller must not cancel the fetch other callers share.
                value = await asyncio.shield(claimed.pending)
            except Exception as exc:
                self.stats.failures += 1
                logger.warning("Fetch for %s failed, will retry later: %s", key, exc)
                entry = CacheEntry(
                    value=None, succeeded=False, retry=True, date_time_ms=self._now_ms()
                )
            else:
                entry = CacheEntry(
                    value=None if value is None else self._dump(value),
                    succeeded=True,
                    retry=False,
                    date_time_ms=self._now_ms(),
                )
            settled = True
            await self.store.set(key, entry.to_dict())
        finally:
            if settled and self._in_flight.get(key) is claimed:
                del self._in_flight[key]


__all__ = ["FetchDedupCache", "RETRY_WINDOW_MS", "DEDUP_WINDOW_MS"]
