"""Read-through TTL cache for server lookups that rarely change (rule details)."""

import logging
import threading
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Generic, TypeVar

logger = logging.getLogger(__name__)

V = TypeVar("V")


@dataclass(slots=True)
class _Entry(Generic[V]):
    value: V
    stored_at: float


@dataclass(slots=True)
class TTLCache(Generic[V]):
    """String-keyed cache whose entries expire ``ttl_seconds`` after storage.

    Thread-safe for get/set. ``get_or_load`` does not coalesce concurrent
    loads of the same key; the last one stored wins.
    """

    ttl_seconds: float = 300.0
    """Time-to-live for cached entries (5 minutes default)."""

    clock: Callable[[], float] = time.monotonic
    """Monotonic time source, injectable for tests."""

    _entries: dict[str, _Entry[V]] = field(default_factory=dict)
    _lock: threading.Lock = field(default_factory=threading.Lock)
    hits: int = 0
    misses: int = 0

    def get(self, key: str) -> V | None:
        """Cached value, or None when absent or expired."""
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                self.misses += 1
                return None
            if self.clock() - entry.stored_at >= self.ttl_seconds:
                del self._entries[key]
                self.misses += 1
                return None
            self.hits += 1
            return entry.value

    def set(self, key: str, value: V) -> None:
        with self._lock:
            self._entries[key] = _Entry(value=value, stored_at=self.clock())

    def invalidate(self, key: str) -> bool:
        with self._lock:
            return self._entries.pop(key, None) is not None

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    async def get_or_load(self, key: str, loader: Callable[[], Awaitable[V]]) -> V:
        """Return the cached value or await ``loader`` and cache its result.

        Loader failures propagate and nothing is cached.
        """
        cached = self.get(key)
        if cached is not None:
            logger.debug("Cache hit for %s", key)
            return cached
        logger.debug("Cache miss for %s", key)
        value = await loader()
        self.set(key, value)
        return value
