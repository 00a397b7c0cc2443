"""
Key-value cache with per-entry TTL.

`MemoryCache` is process-wide: one instance is created at application startup
and shared by every request. Expiry is the only invalidation; entries are
evicted lazily when read after their deadline.
"""
import logging
import threading
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Callable, Optional

logger = logging.getLogger(__name__)

_MISSING = object()


class CacheInterface(ABC):
    """Contract for the shared cache used by the query layer."""

    @abstractmethod
    def get(self, key: str, default: Any = None) -> Any:
        pass

    @abstractmethod
    def set(self, key: str, value: Any, ttl: Optional[float] = None) -> None:
        pass

    @abstractmethod
    def delete(self, key: str) -> bool:
        pass

    @abstractmethod
    def clear(self) -> None:
        pass

    def get_or_compute(self, key: str, ttl: float, fn: Callable[[], Any]) -> Any:
        """Return the cached value for `key`, computing and storing it on a miss."""
        value = self.get(key, _MISSING)
        if value is not _MISSING:
            logger.debug("Cache hit: %s", key)
            return value
        logger.debug("Cache miss: %s", key)
        value = fn()
        self.set(key, value, ttl)
        return value


@dataclass
class CacheEntry:
    value: Any
    expires_at: Optional[float] = None

    def is_expired(self, now: float) -> bool:
        return self.expires_at is not None and now >= self.expires_at


class MemoryCache(CacheInterface):
    """Thread-safe in-memory cache.

    Args:
        default_ttl: TTL in seconds used when `set` gets none; None never expires.
        clock: monotonic time source, replaceable in tests.
    """

    def __init__(self, default_ttl: Optional[float] = None, clock: Callable[[], float] = time.monotonic):
        self.default_ttl = default_ttl
        self._clock = clock
        self._entries: dict[str, CacheEntry] = {}
        self._lock = threading.RLock()
        self.stats = {"hits": 0, "misses": 0, "sets": 0, "expirations": 0}

    def get(self, key: str, default: Any = None) -> Any:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                self.stats["misses"] += 1
                return default
            if entry.is_expired(self._clock()):
                del self._entries[key]
                self.stats["expirations"] += 1
                self.stats["misses"] += 1
                return default
            self.stats["hits"] += 1
            return entry.value

    def set(self, key: str, value: Any, ttl: Optional[float] = None) -> None:
        ttl = self.default_ttl if ttl is None else ttl
        expires_at = self._clock() + ttl if ttl is not None else None
        with self._lock:
            self._entries[key] = CacheEntry(value=value, expires_at=expires_at)
            self.stats["sets"] += 1

    def delete(self, key: str) -> bool:
        with self._lock:
            return self._entries.pop(key, None) is not None

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
