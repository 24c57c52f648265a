"""In-memory LRU cache for parsed résumé and job records (TTL 1 hour)."""

from __future__ import annotations

import asyncio
import logging
import time
from collections import OrderedDict
from typing import Awaitable, Callable, TypeVar

from ats_scanner.utils.text import content_hash

logger = logging.getLogger(__name__)

DEFAULT_MAX_ENTRIES = 256
DEFAULT_TTL_SECONDS = 3600

T = TypeVar("T")


def cache_key(kind: str, text: str) -> str:
    """Content hash of the raw input, namespaced by record kind."""
    return content_hash(kind, text)


class ParseCache:
    """Bounded LRU cache with TTL expiration and per-key locks.

    Values are frozen records, so a hit can be shared between scans.
    ``get_or_create`` serializes concurrent misses on the same key so the
    factory runs once per key. A key's lock lives only while some call
    is holding or waiting on it.
    """

    def __init__(
        self,
        max_entries: int = DEFAULT_MAX_ENTRIES,
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.max_entries = max_entries
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: OrderedDict[str, tuple[object, float]] = OrderedDict()
        self._locks: dict[str, asyncio.Lock] = {}
        self._lock_users: dict[str, int] = {}
        self.hits = 0
        self.misses = 0

    def get(self, key: str) -> object | None:
        """Get a cached value if present and not expired."""
        entry = self._entries.get(key)
        if entry is None:
            return None
        value, stored_at = entry
        if self._clock() - stored_at > self.ttl_seconds:
            self.delete(key)
            return None
        self._entries.move_to_end(key)
        return value

    def put(self, key: str, value: object) -> None:
        """Store a value, evicting the least recently used entry when full."""
        self._entries[key] = (value, self._clock())
        self._entries.move_to_end(key)
        while len(self._entries) > self.max_entries:
            evicted, _ = self._entries.popitem(last=False)
            logger.debug("Parse cache evicted %s", evicted[:12])

    def delete(self, key: str) -> None:
        self._entries.pop(key, None)

    def clear(self) -> None:
        self._entries.clear()
        self.hits = 0
        self.misses = 0

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: str) -> bool:
        return self.get(key) is not None

    def stats(self) -> dict:
        return {
            "entries": len(self._entries),
            "max_entries": self.max_entries,
            "ttl_seconds": self.ttl_seconds,
            "hits": self.hits,
            "misses": self.misses,
        }

    async def get_or_create(
        self,
        key: str,
        factory: Callable[[], Awaitable[T]],
        keep: Callable[[T], bool] | None = None,
    ) -> tuple[T, bool]:
        """Return (value, hit). On a miss, await ``factory()`` and cache the result.

        When ``keep`` is given, results it rejects are returned but not stored.
        """
        value = self.get(key)
        if value is not None:
            self.hits += 1
            return value, True

        lock = self._locks.setdefault(key, asyncio.Lock())
        self._lock_users[key] = self._lock_users.get(key, 0) + 1
        try:
            async with lock:
                value = self.get(key)
                if value is not None:
                    self.hits += 1
                    return value, True
                self.misses += 1
                value = await factory()
                if keep is None or keep(value):
                    self.put(key, value)
                return value, False
        finally:
            self._release_lock(key)

    def _release_lock(self, key: str) -> None:
        users = self._lock_users.pop(key, 1) - 1
        if users > 0:
            self._lock_users[key] = users
        else:
            self._locks.pop(key, None)
