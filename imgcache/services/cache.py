"""Bounded in-memory TTL cache mapping original URLs to derived URLs."""

from __future__ import annotations

import asyncio
import contextlib
import logging
import math
import threading
import time
from typing import Callable

from imgcache.api.models import CacheEntry, CacheEvent, CacheStats
from imgcache.errors import ConfigurationError

log = logging.getLogger(__name__)

DEFAULT_TTL = 300.0
DEFAULT_CAPACITY = 100
DEFAULT_EVICTION_RATIO = 0.2
DEFAULT_SWEEP_INTERVAL = 300.0

EventHook = Callable[[CacheEvent, "str | None", int], None]


class UrlCache:
    """In-memory cache with a fixed TTL and a bounded number of entries.

    When a new key would push the cache past ``capacity`` the oldest
    ``ceil(capacity * eviction_ratio)`` entries are dropped in one batch.
    Expired entries are removed lazily by ``get`` and eagerly by
    ``sweep_expired``, which can run on an interval via ``start_sweeper``.
    """

    def __init__(
        self,
        ttl: float = DEFAULT_TTL,
        capacity: int = DEFAULT_CAPACITY,
        eviction_ratio: float = DEFAULT_EVICTION_RATIO,
        sweep_interval: float = DEFAULT_SWEEP_INTERVAL,
        clock: Callable[[], float] | None = None,
        on_event: EventHook | None = None,
    ) -> None:
        if ttl <= 0:
            raise ConfigurationError(f"ttl must be positive, got {ttl!r}")
        if capacity <= 0:
            raise ConfigurationError(f"capacity must be positive, got {capacity!r}")
        if not 0 < eviction_ratio <= 1:
            raise ConfigurationError(
                f"eviction_ratio must be in (0, 1], got {eviction_ratio!r}"
            )
        self.ttl = float(ttl)
        self.capacity = int(capacity)
        self.eviction_ratio = eviction_ratio
        self.sweep_interval = sweep_interval
        self._clock = clock
        self._on_event = on_event
        # Insertion order doubles as age order; refreshed keys are re-inserted.
        self._entries: dict[str, CacheEntry] = {}
        self._lock = threading.RLock()
        self._sweeper: asyncio.Task | None = None
        self._hits = 0
        self._misses = 0
        self._evictions = 0
        self._expirations = 0

    @property
    def eviction_batch(self) -> int:
        """Number of entries dropped when a new key hits capacity."""
        return max(1, math.ceil(round(self.capacity * self.eviction_ratio, 9)))

    def _now(self) -> float:
        if self._clock is not None:
            return self._clock()
        return time.monotonic()

    def _emit(self, event: CacheEvent, key: str | None = None, count: int = 1) -> None:
        if self._on_event is not None:
            self._on_event(event, key, count)

    def get(self, key: str | None) -> str | None:
        if not key:
            return None
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                self._misses += 1
                self._emit(CacheEvent.MISS, key)
                return None
            if entry.is_expired(self._now()):
                del self._entries[key]
                self._expirations += 1
                self._misses += 1
                log.debug("Cache entry expired: %s", key)
                self._emit(CacheEvent.EXPIRE, key)
                self._emit(CacheEvent.MISS, key)
                return None
            self._hits += 1
            log.debug("Cache hit: %s", key)
            self._emit(CacheEvent.HIT, key)
            return entry.value

    def set(self, key: str | None, value: str | None) -> None:
        if not key or not value:
            return
        with self._lock:
            if key in self._entries:
                # Refresh moves the key to the newest position.
                del self._entries[key]
            elif len(self._entries) >= self.capacity:
                self._evict_oldest()
            now = self._now()
            self._entries[key] = CacheEntry(
                key=key,
                value=value,
                created_at=now,
                expires_at=now + self.ttl,
            )
            self._emit(CacheEvent.SET, key)

    def _evict_oldest(self) -> None:
        # sorted() is stable, so equal timestamps keep insertion order.
        oldest = sorted(self._entries.values(), key=lambda e: e.created_at)
        victims = oldest[: self.eviction_batch]
        for entry in victims:
            del self._entries[entry.key]
        self._evictions += len(victims)
        log.info("Evicted %d oldest cache entries", len(victims))
        self._emit(CacheEvent.EVICT, None, len(victims))

    def sweep_expired(self) -> int:
        """Remove every expired entry. Returns the number removed."""
        with self._lock:
            now = self._now()
            expired = [k for k, e in self._entries.items() if e.is_expired(now)]
            for key in expired:
                del self._entries[key]
            self._expirations += len(expired)
            if expired:
                log.info("Swept %d expired cache entries", len(expired))
            self._emit(CacheEvent.SWEEP, None, len(expired))
            return len(expired)

    def clear(self) -> None:
        with self._lock:
            count = len(self._entries)
            self._entries.clear()
            self._emit(CacheEvent.CLEAR, None, count)

    def entries(self) -> list[CacheEntry]:
        """Snapshot of current entries, oldest first."""
        with self._lock:
            return [e.model_copy() for e in self._entries.values()]

    def stats(self) -> CacheStats:
        with self._lock:
            return CacheStats(
                size=len(self._entries),
                capacity=self.capacity,
                ttl=self.ttl,
                hits=self._hits,
                misses=self._misses,
                evictions=self._evictions,
                expirations=self._expirations,
            )

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, key: object) -> bool:
        with self._lock:
            entry = self._entries.get(key) if isinstance(key, str) else None
            return entry is not None and not entry.is_expired(self._now())

    # -- background sweep -------------------------------------------------

    @property
    def sweeper_running(self) -> bool:
        return self._sweeper is not None and not self._sweeper.done()

    def start_sweeper(self, interval: float | None = None) -> asyncio.Task:
        """Run ``sweep_expired`` every ``interval`` seconds on the running loop."""
        if interval is None:
            interval = self.sweep_interval
        if interval <= 0:
            raise ConfigurationError(f"sweep interval must be positive, got {interval!r}")
        if self.sweeper_running:
            return self._sweeper
        self._sweeper = asyncio.get_running_loop().create_task(
            self._sweep_loop(interval), name="url-cache-sweeper"
        )
        return self._sweeper

    async def stop_sweeper(self) -> None:
        task, self._sweeper = self._sweeper, None
        if task is None:
            return
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task

    async def _sweep_loop(self, interval: float) -> None:
        while True:
            await asyncio.sleep(interval)
            try:
                self.sweep_expired()
            except Exception:
                log.exception("Cache sweep failed")

    async def __aenter__(self) -> UrlCache:
        self.start_sweeper()
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.stop_sweeper()
