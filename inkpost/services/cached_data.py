"""Cache-aside fetch cell used by every data-dependent view.

A cell owns one cache key, a zero-argument coroutine function producing the
value, a dependency tuple and a time-to-live. Activating the cell adopts a
fresh stored entry when there is one and otherwise calls the producer and
stores its result. The value is persisted through a `CacheStorage` as
``{"data": <value>, "timestamp": <epoch ms>}``.

Usage:
    cell = CachedData("post:42", load_post, dependencies=("42",), ttl_ms=3_600_000)
    await cell.activate()
    if cell.error: ...
    render(cell.data)
"""

import asyncio
import json
import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Generic, Optional, Sequence, Tuple, TypeVar

from inkpost.utils.log import app_logger

T = TypeVar("T")

DEFAULT_TTL_MS = 10 * 60 * 1000
DEFAULT_ERROR_MESSAGE = "Failed to load data"


def now_ms() -> int:
    return int(time.time() * 1000)


@dataclass
class CacheEntry(Generic[T]):
    value: T
    stored_at_ms: int

    def is_fresh(self, now: int, ttl_ms: int) -> bool:
        return now - self.stored_at_ms < ttl_ms

    def dumps(self) -> str:
        return json.dumps({"data": self.value, "timestamp": self.stored_at_ms})

    @classmethod
    def loads(cls, raw: str) -> "CacheEntry":
        """Decode a stored entry; raises ValueError when the text is not a valid entry."""
        payload = json.loads(raw)
        if not isinstance(payload, dict) or "data" not in payload:
            raise ValueError("cache entry without data")
        stamp = payload.get("timestamp")
        if isinstance(stamp, bool) or not isinstance(stamp, (int, float)):
            raise ValueError("cache entry without numeric timestamp")
        return cls(value=payload["data"], stored_at_ms=int(stamp))


class CachedData(Generic[T]):
    """Time-bounded cache-aside over one producer.

    Exposes `data`, `loading` and `error` plus `activate`, `refetch` and
    `deactivate`. Every load is tagged with a generation number; completions
    from an older generation (after `deactivate()` or a newer activation)
    are dropped instead of overwriting the current state.
    """

    # (event loop id, cache key) -> in-flight producer task, used when coalesce=True
    _inflight: Dict[Tuple[int, str], "asyncio.Task"] = {}

    def __init__(
        self,
        cache_key: str,
        producer: Callable[[], Awaitable[T]],
        dependencies: Sequence[Any] = (),
        ttl_ms: int = DEFAULT_TTL_MS,
        storage=None,
        clock: Callable[[], int] = now_ms,
        coalesce: bool = False,
    ):
        if storage is None:
            from inkpost.services.cache_storage import cache_storage as storage
        self.cache_key = cache_key
        self.producer = producer
        self.dependencies = tuple(dependencies)
        self.ttl_ms = ttl_ms
        self.storage = storage
        self.clock = clock
        self.coalesce = coalesce

        self.data: Optional[T] = None
        self.loading = True
        self.error: Optional[str] = None
        self.exception: Optional[BaseException] = None

        self._generation = 0
        self._active_deps: Optional[Tuple[Any, ...]] = None

    @property
    def generation(self) -> int:
        return self._generation

    async def activate(self, dependencies: Optional[Sequence[Any]] = None) -> None:
        """Load on first activation and whenever the dependency tuple changes."""
        deps = tuple(dependencies) if dependencies is not None else self.dependencies
        if self._active_deps is not None and deps == self._active_deps:
            return
        self.dependencies = deps
        self._active_deps = deps
        self._generation += 1
        generation = self._generation

        entry = await self._read_entry()
        if generation != self._generation:
            app_logger.debug("cache.discarded", key=self.cache_key, generation=generation)
            return
        if entry is not None and entry.is_fresh(self.clock(), self.ttl_ms):
            app_logger.debug("cache.hit", key=self.cache_key)
            self.data = entry.value
            self.error = None
            self.exception = None
            self.loading = False
            return

        app_logger.debug("cache.miss", key=self.cache_key, expired=entry is not None)
        await self._fetch(generation, stale=entry)

    async def refetch(self) -> None:
        """Call the producer regardless of what is stored."""
        self._generation += 1
        await self._fetch(self._generation, stale=None)

    def deactivate(self) -> None:
        """Tear down: any load still in flight will be discarded on completion."""
        self._generation += 1
        self._active_deps = None

    async def _fetch(self, generation: int, stale: Optional[CacheEntry]) -> None:
        self.loading = True
        self.error = None
        self.exception = None
        try:
            result = await self._produce()
        except Exception as e:
            if generation != self._generation:
                app_logger.debug("cache.discarded", key=self.cache_key, generation=generation)
                return
            self.error = str(e) or DEFAULT_ERROR_MESSAGE
            self.exception = e
            if self.data is None and stale is not None:
                self.data = stale.value
            self.loading = False
            app_logger.warning("cache.fetch_failed", key=self.cache_key, error=self.error,
                               served_stale=stale is not None and self.data is stale.value)
            return

        if generation != self._generation:
            app_logger.debug("cache.discarded", key=self.cache_key, generation=generation)
            return
        self.data = result
        await self._write_entry(result)
        self.loading = False

    async def _produce(self) -> T:
        if not self.coalesce:
            return await self.producer()

        loop = asyncio.get_running_loop()
        slot = (id(loop), self.cache_key)
        pending = CachedData._inflight.get(slot)
        if pending is not None:
            app_logger.debug("cache.coalesced", key=self.cache_key)
            return await asyncio.shield(pending)

        task = loop.create_task(self.producer())
        CachedData._inflight[slot] = task
        try:
            return await asyncio.shield(task)
        finally:
            if CachedData._inflight.get(slot) is task:
                del CachedData._inflight[slot]

    async def _read_entry(self) -> Optional[CacheEntry]:
        # storage is a blocking database call
        try:
            raw = await asyncio.to_thread(self.storage.get, self.cache_key)
        except Exception as e:
            app_logger.error("cache.read_failed", key=self.cache_key, error=str(e))
            return None
        if raw is None:
            return None
        try:
            return CacheEntry.loads(raw)
        except (ValueError, TypeError) as e:
            app_logger.warning("cache.corrupt", key=self.cache_key, error=str(e))
            return None

    async def _write_entry(self, value: T) -> None:
        try:
            raw = CacheEntry(value=value, stored_at_ms=self.clock()).dumps()
            await asyncio.to_thread(self.storage.set, self.cache_key, raw)
        except Exception as e:
            app_logger.error("cache.write_failed", key=self.cache_key, error=str(e))
