"""Pydantic models for cache entries, cache stats and proxied images."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel


class CacheEvent(str, Enum):
    HIT = "hit"
    MISS = "miss"
    SET = "set"
    EXPIRE = "expire"
    EVICT = "evict"
    SWEEP = "sweep"
    CLEAR = "clear"


class CacheEntry(BaseModel):
    """A cached original -> derived URL mapping."""

    key: str  # original URL
    value: str  # derived (e.g. proxied) URL
    created_at: float
    expires_at: float  # created_at + ttl

    def is_expired(self, now: float) -> bool:
        return now >= self.expires_at


class CacheStats(BaseModel):
    """Point-in-time snapshot of cache size and counters."""

    size: int
    capacity: int
    ttl: float
    hits: int = 0
    misses: int = 0
    evictions: int = 0
    expirations: int = 0

    @property
    def hit_rate(self) -> float:
        lookups = self.hits + self.misses
        if lookups == 0:
            return 0.0
        return self.hits / lookups


class ProxiedImage(BaseModel):
    """Image bytes fetched through the proxy."""

    url: str  # endpoint that answered
    original_url: str
    content_type: str = "image/jpeg"
    content: bytes = b""

    @property
    def size(self) -> int:
        return len(self.content)
