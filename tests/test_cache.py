import asyncio

import pytest

from git_avatars.cache import FetchDedupCache
from git_avatars.store import MemoryStateStore

from conftest import HOUR_MS, MINUTE_MS, FakeClock, Producer


def make_cache(clock: FakeClock, store: MemoryStateStore | None = None) -> FetchDedupCache:
    return FetchDedupCache(store or MemoryStateStore(), now_ms=clock)


@pytest.mark.asyncio
async def test_concurrent_fetches_invoke_producer_once() -> None:
    cache = make_cache(FakeClock())
    gate = asyncio.Event()
    producer = Producer(result={"avatar_url": "http://x/a.png"}, gate=gate)

    tasks = [asyncio.create_task(cache.fetch("K", producer)) for _ in range(10)]
    await asyncio.sleep(0)
    assert cache.in_flight("K")
    gate.set()
    results = await asyncio.gather(*tasks)

    assert producer.calls == 1
    assert all(r == {"avatar_url": "http://x/a.png"} for r in results)
    assert cache.stats.deduplicated == 9
    assert not cache.in_flight("K")


@pytest.mark.asyncio
async def test_success_is_served_from_cache() -> None:
    cache = make_cache(FakeClock())
    value = {"url": "http://x", "avatarUrl": "http://x/a.png"}
    producer = Producer(result=value)

    first = await cache.fetch("K1", producer)
    second = await cache.fetch("K1", producer)

    assert first == value
    assert second == value
    assert producer.calls == 1
    assert cache.stats.hits == 1
    assert cache.stats.misses == 1


@pytest.mark.asyncio
async def test_failure_is_retried_only_after_an_hour() -> None:
    clock = FakeClock()
    cache = make_cache(clock)
    producer = Producer(exc=RuntimeError("403 rate limited"))

    assert await cache.fetch("K2", producer) is None
    assert producer.calls == 1

    clock.advance(30 * MINUTE_MS)
    assert await cache.fetch("K2", producer) is None
    assert producer.calls == 1

    clock.advance(31 * MINUTE_MS)
    assert await cache.fetch("K2", producer) is None
    assert producer.calls == 2
    assert cache.stats.failures == 2


@pytest.mark.asyncio
async def test_failure_then_success_replaces_retry_entry() -> None:
    clock = FakeClock()
    cache = make_cache(clock)

    assert await cache.fetch("K", Producer(exc=RuntimeError("boom"))) is None
    clock.advance(HOUR_MS + 1)
    recovered = Producer(result="value")
    assert await cache.fetch("K", recovered) == "value"

    clock.advance(10 * HOUR_MS)
    assert await cache.fetch("K", recovered) == "value"
    assert recovered.calls == 1


@pytest.mark.asyncio
async def test_success_without_value_is_never_retried() -> None:
    clock = FakeClock()
    cache = make_cache(clock)
    producer = Producer(result=None)

    assert await cache.fetch("K3", producer) is None
    clock.advance(2 * HOUR_MS)
    assert await cache.fetch("K3", producer) is None
    assert producer.calls == 1


@pytest.mark.asyncio
async def test_entries_record_outcome() -> None:
    clock = FakeClock()
    store = MemoryStateStore()
    cache = make_cache(clock, store)

    await cache.fetch("ok", Producer(result=None))
    await cache.fetch("bad", Producer(exc=ValueError("nope")))

    ok = await store.get("ok")
    bad = await store.get("bad")
    assert ok == {"value": None, "succeeded": True, "retry": False, "date_time_ms": clock.now}
    assert bad == {"value": None, "succeeded": False, "retry": True, "date_time_ms": clock.now}


@pytest.mark.asyncio
async def test_abandoned_in_flight_fetch_is_replaced() -> None:
    clock = FakeClock()
    cache = make_cache(clock)
    gate = asyncio.Event()
    producer = Producer(result="late", gate=gate)

    first = asyncio.create_task(cache.fetch("K", producer))
    await asyncio.sleep(0)
    clock.advance(HOUR_MS + 1)
    assert not cache.in_flight("K")

    second = asyncio.create_task(cache.fetch("K", producer))
    await asyncio.sleep(0)
    gate.set()
    results = await asyncio.gather(first, second)

    assert producer.calls == 2
    assert results == ["late", "late"]
    assert cache.stats.expired_in_flight == 1
    assert not cache.in_flight("K")


@pytest.mark.asyncio
async def test_producer_raising_synchronously_is_cached_as_failure() -> None:
    cache = make_cache(FakeClock())

    def producer():
        raise RuntimeError("not even a coroutine")

    assert await cache.fetch("K", producer) is None
    assert cache.stats.failures == 1
    assert not cache.in_flight("K")


@pytest.mark.asyncio
async def test_empty_key_is_rejected() -> None:
    cache = make_cache(FakeClock())
    with pytest.raises(ValueError):
        await cache.fetch("", Producer(result="x"))


class BrokenStore(MemoryStateStore):
    async def set(self, key, value) -> None:
        raise OSError("disk full")


@pytest.mark.asyncio
async def test_store_errors_propagate_and_release_in_flight() -> None:
    cache = make_cache(FakeClock(), BrokenStore())
    producer = Producer(result="x")

    with pytest.raises(OSError, match="disk full"):
        await cache.fetch("K", producer)
    assert not cache.in_flight("K")


@pytest.mark.asyncio
async def test_dump_and_load_wrap_stored_values() -> None:
    store = MemoryStateStore()
    cache = FetchDedupCache(
        store,
        now_ms=FakeClock(),
        dump=lambda v: {"wrapped": v},
        load=lambda raw: raw["wrapped"],
    )

    assert await cache.fetch("K", Producer(result=42)) == 42
    assert (await store.get("K"))["value"] == {"wrapped": 42}


@pytest.mark.asyncio
async def test_cancelled_caller_does_not_cancel_shared_fetch() -> None:
    store = MemoryStateStore()
    cache = make_cache(FakeClock(), store)
    gate = asyncio.Event()
    producer = Producer(result="v", gate=gate)

    first = asyncio.create_task(cache.fetch("K", producer))
    second = asyncio.create_task(cache.fetch("K", producer))
    await asyncio.sleep(0)
    first.cancel()
    await asyncio.sleep(0)
    assert cache.in_flight("K")

    gate.set()
    assert await second == "v"
    with pytest.raises(asyncio.CancelledError):
        await first
    assert producer.calls == 1
    assert (await store.get("K"))["succeeded"] is True
    assert not cache.in_flight("K")


@pytest.mark.asyncio
async def test_caller_arriving_after_cancellation_joins_running_fetch() -> None:
    cache = make_cache(FakeClock())
    gate = asyncio.Event()
    producer = Producer(result="v", gate=gate)

    first = asyncio.create_task(cache.fetch("K", producer))
    await asyncio.sleep(0)
    first.cancel()
    await asyncio.sleep(0)

    late = asyncio.create_task(cache.fetch("K", producer))
    await asyncio.sleep(0)
    gate.set()

    assert await late == "v"
    assert producer.calls == 1
    assert cache.stats.deduplicated == 1


@pytest.mark.asyncio
async def test_malformed_stored_entry_is_treated_as_miss() -> None:
    store = MemoryStateStore()
    await store.set("K", "legacy avatar url")
    cache = make_cache(FakeClock(), store)
    producer = Producer(result="fresh")

    assert await cache.fetch("K", producer) == "fresh"
    assert producer.calls == 1
    assert (await store.get("K"))["value"] == "fresh"
