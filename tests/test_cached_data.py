"""Tests for inkpost.services.cached_data."""

import asyncio
import json
import threading
import time

import pytest

from inkpost.services.cached_data import DEFAULT_ERROR_MESSAGE, CacheEntry, CachedData

TTL = 5 * 60 * 1000


class Producer:
    """Counts calls; returns `value` or raises `error`."""

    def __init__(self, value=None, error=None):
        self.value = value
        self.error = error
        self.calls = 0

    async def __call__(self):
        self.calls += 1
        if self.error is not None:
            raise self.error
        return self.value


def stored(storage, key):
    raw = storage.get(key)
    return json.loads(raw) if raw is not None else None


class MemoryStorage:
    """dict-backed storage that counts reads and can add latency to each call"""

    def __init__(self, delay=0.0):
        self.delay = delay
        self.values = {}
        self.reads = 0
        self._lock = threading.Lock()

    def get(self, key):
        time.sleep(self.delay)
        with self._lock:
            self.reads += 1
            return self.values.get(key)

    def set(self, key, value):
        time.sleep(self.delay)
        with self._lock:
            self.values[key] = value


class TestCacheEntry:
    def test_dumps_uses_data_and_timestamp(self):
        entry = CacheEntry(value=[{"id": "1"}], stored_at_ms=123)
        assert json.loads(entry.dumps()) == {"data": [{"id": "1"}], "timestamp": 123}

    def test_loads_rejects_garbage(self):
        with pytest.raises(ValueError):
            CacheEntry.loads("not json")
        with pytest.raises(ValueError):
            CacheEntry.loads(json.dumps({"timestamp": 1}))
        with pytest.raises(ValueError):
            CacheEntry.loads(json.dumps({"data": 1, "timestamp": "yesterday"}))

    def test_freshness_boundary(self):
        entry = CacheEntry(value=1, stored_at_ms=1000)
        assert entry.is_fresh(1000 + TTL - 1, TTL)
        assert not entry.is_fresh(1000 + TTL, TTL)


class TestActivate:
    @pytest.mark.asyncio
    async def test_miss_calls_producer_and_stores(self, storage, clock):
        """Empty storage: producer runs once and the result is persisted with the clock's timestamp."""
        producer = Producer(value=["a", "b"])
        cell = CachedData("homepage_columns", producer, ttl_ms=TTL, storage=storage, clock=clock)
        assert cell.loading is True

        await cell.activate()

        assert producer.calls == 1
        assert cell.data == ["a", "b"]
        assert cell.loading is False
        assert cell.error is None
        assert stored(storage, "homepage_columns") == {"data": ["a", "b"], "timestamp": clock.now}

    @pytest.mark.asyncio
    async def test_fresh_entry_skips_producer(self, storage, clock):
        storage.set("post:1", CacheEntry(value={"id": "1"}, stored_at_ms=clock.now).dumps())
        clock.advance(TTL - 1)
        producer = Producer(value={"id": "other"})
        cell = CachedData("post:1", producer, ttl_ms=TTL, storage=storage, clock=clock)

        await cell.activate()

        assert producer.calls == 0
        assert cell.data == {"id": "1"}
        assert cell.loading is False

    @pytest.mark.asyncio
    async def test_expired_entry_is_refreshed(self, storage, clock):
        storage.set("post:1", CacheEntry(value={"id": "old"}, stored_at_ms=clock.now).dumps())
        clock.advance(TTL + 1)
        producer = Producer(value={"id": "new"})
        cell = CachedData("post:1", producer, ttl_ms=TTL, storage=storage, clock=clock)

        await cell.activate()

        assert producer.calls == 1
        assert cell.data == {"id": "new"}
        assert stored(storage, "post:1") == {"data": {"id": "new"}, "timestamp": clock.now}

    @pytest.mark.asyncio
    async def test_corrupt_entry_is_a_miss(self, storage, clock):
        storage.set("column:9", "{this is not json")
        producer = Producer(value={"column": {"id": "9"}, "posts": []})
        cell = CachedData("column:9", producer, ttl_ms=TTL, storage=storage, clock=clock)

        await cell.activate()

        assert producer.calls == 1
        assert cell.error is None
        assert cell.data == {"column": {"id": "9"}, "posts": []}
        assert stored(storage, "column:9")["data"] == {"column": {"id": "9"}, "posts": []}

    @pytest.mark.asyncio
    async def test_same_dependencies_do_not_reload(self, storage, clock):
        producer = Producer(value=1)
        cell = CachedData("k", producer, dependencies=("1",), ttl_ms=TTL, storage=storage, clock=clock)
        await cell.activate()
        storage.remove("k")

        await cell.activate(("1",))

        assert producer.calls == 1

    @pytest.mark.asyncio
    async def test_changed_dependencies_reload(self, storage, clock):
        producer = Producer(value=1)
        cell = CachedData("k", producer, dependencies=(1,), ttl_ms=TTL, storage=storage, clock=clock)
        await cell.activate()
        storage.remove("k")

        await cell.activate((2,))

        assert producer.calls == 2
        assert cell.dependencies == (2,)


class TestFailures:
    @pytest.mark.asyncio
    async def test_error_without_cache(self, storage, clock):
        producer = Producer(error=RuntimeError("backend down"))
        cell = CachedData("k", producer, ttl_ms=TTL, storage=storage, clock=clock)

        await cell.activate()

        assert cell.data is None
        assert cell.loading is False
        assert cell.error == "backend down"
        assert isinstance(cell.exception, RuntimeError)
        assert storage.get("k") is None

    @pytest.mark.asyncio
    async def test_error_without_message_uses_default(self, storage, clock):
        cell = CachedData("k", Producer(error=RuntimeError()), ttl_ms=TTL, storage=storage, clock=clock)
        await cell.activate()
        assert cell.error == DEFAULT_ERROR_MESSAGE

    @pytest.mark.asyncio
    async def test_stale_value_served_on_error(self, storage, clock):
        """An expired entry is better than nothing when the producer fails."""
        storage.set("k", CacheEntry(value=["stale"], stored_at_ms=clock.now).dumps())
        clock.advance(TTL * 3)
        cell = CachedData("k", Producer(error=RuntimeError("boom")), ttl_ms=TTL, storage=storage, clock=clock)

        await cell.activate()

        assert cell.data == ["stale"]
        assert cell.error == "boom"
        # the stale entry keeps its original timestamp
        assert stored(storage, "k")["timestamp"] == clock.now - TTL * 3

    @pytest.mark.asyncio
    async def test_refetch_failure_keeps_previous_data(self, storage, clock):
        producer = Producer(value=["v1"])
        cell = CachedData("k", producer, ttl_ms=TTL, storage=storage, clock=clock)
        await cell.activate()

        producer.error = RuntimeError("flaky")
        await cell.refetch()

        assert cell.data == ["v1"]
        assert cell.error == "flaky"

    @pytest.mark.asyncio
    async def test_storage_errors_are_not_fatal(self, clock):
        class BrokenStorage:
            def get(self, key):
                raise OSError("disk gone")

            def set(self, key, value):
                raise OSError("disk gone")

        producer = Producer(value=42)
        cell = CachedData("k", producer, ttl_ms=TTL, storage=BrokenStorage(), clock=clock)

        await cell.activate()

        assert cell.data == 42
        assert cell.error is None


class TestRefetchAndDeactivate:
    @pytest.mark.asyncio
    async def test_refetch_bypasses_fresh_entry(self, storage, clock):
        producer = Producer(value="first")
        cell = CachedData("k", producer, ttl_ms=TTL, storage=storage, clock=clock)
        await cell.activate()

        producer.value = "second"
        clock.advance(10)
        await cell.refetch()

        assert producer.calls == 2
        assert cell.data == "second"
        assert stored(storage, "k") == {"data": "second", "timestamp": clock.now}

    @pytest.mark.asyncio
    async def test_completion_after_deactivate_is_discarded(self, storage, clock):
        started = asyncio.Event()
        release = asyncio.Event()

        async def slow():
            started.set()
            await release.wait()
            return "late"

        cell = CachedData("k", slow, ttl_ms=TTL, storage=storage, clock=clock)
        task = asyncio.create_task(cell.activate())
        await started.wait()
        assert cell.loading is True

        cell.deactivate()
        release.set()
        await task

        assert cell.data is None
        assert storage.get("k") is None

    @pytest.mark.asyncio
    async def test_older_activation_cannot_overwrite_newer(self, storage, clock):
        old_started = asyncio.Event()
        release_old = asyncio.Event()

        async def producer_for(value, gate=None):
            if gate is not None:
                old_started.set()
                await gate.wait()
            return value

        cell = CachedData("k", lambda: producer_for("old", release_old), dependencies=(1,),
                          ttl_ms=TTL, storage=storage, clock=clock)
        first = asyncio.create_task(cell.activate())
        await old_started.wait()

        cell.producer = lambda: producer_for("new")
        await cell.activate((2,))
        release_old.set()
        await first

        assert cell.data == "new"
        assert stored(storage, "k")["data"] == "new"

    @pytest.mark.asyncio
    async def test_generation_increments(self, storage, clock):
        cell = CachedData("k", Producer(value=1), ttl_ms=TTL, storage=storage, clock=clock)
        await cell.activate()
        before = cell.generation
        cell.deactivate()
        assert cell.generation == before + 1


class TestCoalescing:
    @pytest.mark.asyncio
    async def test_concurrent_misses_share_one_call(self, clock):
        storage = MemoryStorage()
        started = asyncio.Event()
        release = asyncio.Event()
        calls = 0

        async def producer():
            nonlocal calls
            calls += 1
            started.set()
            await release.wait()
            return ["shared"]

        cells = [
            CachedData("homepage_posts:1", producer, ttl_ms=TTL, storage=storage, clock=clock, coalesce=True)
            for _ in range(3)
        ]
        tasks = [asyncio.create_task(c.activate()) for c in cells]
        await started.wait()
        while storage.reads < 3:
            await asyncio.sleep(0.01)
        # let the other cells reach the in-flight call
        await asyncio.sleep(0.05)
        release.set()
        await asyncio.gather(*tasks)

        assert calls == 1
        assert all(c.data == ["shared"] for c in cells)

    @pytest.mark.asyncio
    async def test_without_coalesce_each_cell_calls(self, clock):
        storage = MemoryStorage()
        producer = Producer(value=1)
        first = CachedData("k", producer, ttl_ms=TTL, storage=storage, clock=clock)
        second = CachedData("k", producer, ttl_ms=TTL, storage=storage, clock=clock)
        await asyncio.gather(first.activate(), second.activate())
        assert producer.calls == 2


class TestEventLoop:
    @pytest.mark.asyncio
    async def test_slow_storage_does_not_block_the_loop(self, clock):
        """Storage calls run off the loop: a ticker keeps running while each call takes 0.2s."""
        storage = MemoryStorage(delay=0.2)
        cell = CachedData("k", Producer(value="v"), ttl_ms=TTL, storage=storage, clock=clock)
        gaps = []
        done = False

        async def ticker():
            last = time.monotonic()
            while not done:
                await asyncio.sleep(0.02)
                now = time.monotonic()
                gaps.append(now - last)
                last = now

        ticking = asyncio.create_task(ticker())
        await cell.activate()
        done = True
        await ticking

        assert cell.data == "v"
        assert json.loads(storage.values["k"])["data"] == "v"
        assert max(gaps) < 0.1
