"""
Time-boxed read-through cache keyed by collection name.

Invalidation is coarse: every write to a list drops the whole
collection entry, and the next read refetches from the store.
"""

from __future__ import annotations

import time
from typing import Any, Callable

DEFAULT_TTL_SECONDS = 300


class CollectionCache:
    def __init__(self, ttl_seconds: int = DEFAULT_TTL_SECONDS, *, clock: Callable[[], float] = time.monotonic) -> None:
        self.ttl_seconds = max(0, int(ttl_seconds))
        self._clock = clock
        self._entries: dict[str, tuple[float, Any]] = {}
        self.hits = 0
        self.misses = 0

    def get(self, key: str) -> Any | None:
        entry = self._entries.get(key)
        if entry is None:
            self.misses += 1
            return None
        expires_at, value = entry
        if self._clock() >= expires_at:
            del self._entries[key]
            self.misses += 1
            return None
        self.hits += 1
        return value

    def set(self, key: str, value: Any) -> None:
        if self.ttl_seconds == 0:
            return
        self._entries[key] = (self._clock() + self.ttl_seconds, value)

    def get_or_load(self, key: str, loader: Callable[[], Any]) -> Any:
        cached = self.get(key)
        if cached is not None:
            return cached
        value = loader()
        self.set(key, value)
        return value

    def invalidate(self, key: str) -> None:
        self._entries.pop(key, None)

    def clear(self) -> None:
        self._entries.clear()

    def keys(self) -> list[str]:
        now = self._clock()
        return sorted(key for key, (expires_at, _) in self._entries.items() if expires_at > now)

    def stats(self) -> dict[str, object]:
        return {
            "keys": self.keys(),
            "hits": self.hits,
            "misses": self.misses,
            "ttlSeconds": self.ttl_seconds,
        }
