"""Bounded in-memory cache for match results."""

import threading
import time
from collections import OrderedDict
from collections.abc import Callable, Hashable
from dataclasses import dataclass
from typing import Protocol


class Cache(Protocol):
    """Cache interface for simple key-value data."""

    def get(self, key: Hashable) -> object | None:
        """Return a cached value if present and not expired."""

    def set(self, key: Hashable, value: object) -> None:
        """Store a cached value."""


@dataclass
class _CacheEntry:
    value: object
    expires_at: float


class LRUCache(Cache):
    """
    LRU cache with a per-entry TTL.

    Entries are kept in recency order so both lookup and eviction of the
    least recently used entry are O(1). A ``max_size`` of 0 or a
    ``ttl_seconds`` of 0 disables caching.
    """

    def __init__(
        self,
        max_size: int = 1024,
        ttl_seconds: float = 300.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if max_size < 0 or ttl_seconds < 0:
            raise ValueError("Cache size and TTL must be non-negative")
        self.max_size = max_size
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: OrderedDict[Hashable, _CacheEntry] = OrderedDict()
        self._lock = threading.Lock()
        self.hits = 0
        self.misses = 0

    @property
    def enabled(self) -> bool:
        return self.max_size > 0 and self.ttl_seconds > 0

    def get(self, key: Hashable) -> object | None:
        """Return a cached value if it hasn't expired."""
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                self.misses += 1
                return None
            if self._clock() >= entry.expires_at:
                del self._entries[key]
                self.misses += 1
                return None
            self._entries.move_to_end(key)
            self.hits += 1
            return entry.value

    def set(self, key: Hashable, value: object) -> None:
        """Store a value, evicting the least recently used entry when full."""
        if not self.enabled:
            return
        with self._lock:
            self._entries[key] = _CacheEntry(value=value, expires_at=self._clock() + self.ttl_seconds)
            self._entries.move_to_end(key)
            while len(self._entries) > self.max_size:
                self._entries.popitem(last=False)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)
