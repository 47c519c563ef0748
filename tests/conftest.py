"""Shared test fixtures and dummy classes."""

from __future__ import annotations

import asyncio
from typing import Any

import pytest

from git_avatars.models.settings import Settings

HOUR_MS = 60 * 60 * 1000
MINUTE_MS = 60 * 1000


class FakeClock:
    """Epoch-milliseconds clock that only moves when told to."""

    def __init__(self, start_ms: int = 1_700_000_000_000) -> None:
        self.now = start_ms

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> None:
        self.now += ms


class Producer:
    """Counts invocations; optionally waits on a gate and/or raises."""

    def __init__(
        self,
        result: object = None,
        exc: Exception | None = None,
        gate: asyncio.Event | None = None,
    ) -> None:
        self.result = result
        self.exc = exc
        self.gate = gate
        self.calls = 0

    async def __call__(self) -> object:
        self.calls += 1
        if self.gate is not None:
            await self.gate.wait()
        if self.exc is not None:
            raise self.exc
        return self.result


class DummyResponse:
    """Dummy HTTP response for testing."""

    def __init__(self, data: object, status: int = 200, text: str = "") -> None:
        self._data = data
        self.status_code = status
        self.text = text or str(data)
        self.ok = 200 <= status < 300

    def json(self) -> object:
        return self._data


@pytest.fixture
def settings() -> Settings:
    return Settings(
        HTTP_PROXY="",
        GITHUB_TOKEN=None,
        GITHUB_API_URL="https://api.github.test",
        HTTP_TIMEOUT_S=5.0,
        STATE_FILE=None,
    )


def fake_get_factory(response: Any, calls: list[tuple[str, dict]]):
    def fake_get(url: str, **kwargs):
        calls.append((url, kwargs))
        return response

    return fake_get
