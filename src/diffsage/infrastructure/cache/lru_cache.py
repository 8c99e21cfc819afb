"""In-memory LRU cache with per-entry time-to-live."""

from __future__ import annotations

import time

from collections import OrderedDict
from collections.abc import Callable
from dataclasses import dataclass, field

from diffsage.shared.constants import DEFAULT_CACHE_MAX_ENTRIES, DEFAULT_CACHE_TTL_SECONDS


@dataclass(frozen=True)
class CacheStats:
    """Point-in-time cache counters."""

    size: int
    max_entries: int
    hits: int
    misses: int
    evictions: int

    @property
    def hit_rate(self) -> float:
        lookups = self.hits + self.misses
        return self.hits / lookups if lookups else 0.0


@dataclass
class _Entry[T]:
    value: T
    expires_at: float


@dataclass
class LRUCache[T]:
    """Least-recently-used cache; expired entries count as misses.

    Writing an existing key replaces its value (last writer wins).
    """

    max_entries: int = DEFAULT_CACHE_MAX_ENTRIES
    ttl_seconds: float = DEFAULT_CACHE_TTL_SECONDS
    clock: Callable[[], float] = time.monotonic
    _entries: OrderedDict[str, _Entry[T]] = field(default_factory=OrderedDict, init=False)
    _hits: int = field(default=0, init=False)
    _misses: int = field(default=0, init=False)
    _evictions: int = field(default=0, init=False)

    def __post_init__(self) -> None:
        if self.max_entries < 1:
            msg = f"max_entries must be >= 1, got {self.max_entries}"
            raise ValueError(msg)

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: object) -> bool:
        if not isinstance(key, str):
            return False
        entry = self._entries.get(key)
        return entry is not None and entry.expires_at > self.clock()

    def get(self, key: str) -> T | None:
        entry = self._entries.get(key)
        if entry is None:
            self._misses += 1
            return None
        if entry.expires_at <= self.clock():
            del self._entries[key]
            self._misses += 1
            return None
        self._entries.move_to_end(key)
        self._hits += 1
        return entry.value

    def set(self, key: str, value: T, ttl_seconds: float | None = None) -> None:
        ttl = self.ttl_seconds if ttl_seconds is None else ttl_seconds
        self._entries[key] = _Entry(value=value, expires_at=self.clock() + ttl)
        self._entries.move_to_end(key)
        while len(self._entries) > self.max_entries:
            self._entries.popitem(last=False)
            self._evictions += 1

    def delete(self, key: str) -> bool:
        return self._entries.pop(key, None) is not None

    def clear(self) -> None:
        self._entries.clear()

    def purge_expired(self) -> int:
        """Drop every expired entry; returns how many were removed."""
        now = self.clock()
        expired = [key for key, entry in self._entries.items() if entry.expires_at <= now]
        for key in expired:
            del self._entries[key]
        return len(expired)

    def stats(self) -> CacheStats:
        return CacheStats(
            size=len(self._entries),
            max_entries=self.max_entries,
            hits=self._hits,
            misses=self._misses,
            evictions=self._evictions,
        )
