"""TTL cache for registry version listings."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Dict, Generic, Optional, TypeVar

from ..constants import Constants

T = TypeVar("T")


@dataclass
class CacheEntry(Generic[T]):
    """A single cache entry with TTL."""

    value: T
    expires_at: float
    created_at: float = field(default_factory=time.time)

    def is_expired(self) -> bool:
        return time.time() > self.expires_at


class ListingCache(Generic[T]):
    """Per-client cache of listings keyed by lower-cased package name.

    Expired entries are dropped on read; the oldest tenth is evicted when the
    cache grows past ``max_entries``.
    """

    def __init__(self, default_ttl: Optional[float] = None, max_entries: int = 1000):
        self._default_ttl = Constants.LISTING_CACHE_TTL_SEC if default_ttl is None else default_ttl
        self._max_entries = max_entries
        self._cache: Dict[str, CacheEntry[T]] = {}

    @staticmethod
    def _make_key(name: str) -> str:
        return name.lower()

    def get(self, name: str) -> Optional[T]:
        key = self._make_key(name)
        entry = self._cache.get(key)
        if entry is None:
            return None
        if entry.is_expired():
            del self._cache[key]
            return None
        return entry.value

    def set(self, name: str, value: T, ttl: Optional[float] = None) -> None:
        if self._default_ttl <= 0 and ttl is None:
            return
        effective_ttl = ttl if ttl is not None else self._default_ttl
        self._cache[self._make_key(name)] = CacheEntry(value=value, expires_at=time.time() + effective_ttl)
        if len(self._cache) > self._max_entries:
            self._evict_oldest(max(1, self._max_entries // 10))

    def invalidate(self, name: str) -> None:
        self._cache.pop(self._make_key(name), None)

    def clear(self) -> None:
        self._cache.clear()

    def __len__(self) -> int:
        return len(self._cache)

    def _evict_oldest(self, count: int) -> None:
        oldest = sorted(self._cache.items(), key=lambda kv: kv[1].created_at)[:count]
        for key, _ in oldest:
            del self._cache[key]
