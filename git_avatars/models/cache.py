"""Cache-related dataclasses."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Any


@dataclass
class CacheEntry:
    """Persisted outcome of the last completed fetch for a key.

    ``retry`` is only set when the fetch raised; a fetch that succeeded without
    a value is cached for good.
    """

    value: Any
    succeeded: bool
    retry: bool
    date_time_ms: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "value": self.value,
            "succeeded": self.succeeded,
            "retry": self.retry,
            "date_time_ms": self.date_time_ms,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> CacheEntry:
        return cls(
            value=data.get("value"),
            succeeded=bool(data.get("succeeded", False)),
            retry=bool(data.get("retry", False)),
            date_time_ms=int(data.get("date_time_ms", 0) or 0),
        )


@dataclass
class InFlightEntry:
    started_at_ms: int
    pending: asyncio.Task


@dataclass
class CacheStats:
    hits: int = 0
    misses: int = 0
    deduplicated: int = 0
    failures: int = 0
    expired_in_flight: int = 0
