"""
Cache store for indexation check results.

Keyed by normalized domain. Default TTL is 7 days: indexation status changes
slowly, and a long TTL keeps paid API calls down.

Two interchangeable backends implement the CacheStore protocol:
- MemoryCache: volatile, in-process
- SqliteCache: durable, survives restarts (see persistent_cache)
"""

import threading
from typing import Optional, Protocol, runtime_checkable

from .config import CacheConfig
from .exceptions import PersistenceError
from .models import CacheEntry, CacheStats, CheckResult, iso_timestamp
from .persistent_cache import SqliteCache
from .scheduler import Clock, SystemClock


@runtime_checkable
class CacheStore(Protocol):
    """Protocol shared by both cache backends."""

    def get(self, domain: str) -> Optional[CheckResult]:
        """Return the cached result with ``cached_at`` set, or None on a miss."""
        ...

    def set(self, domain: str, result: CheckResult) -> None:
        """Store ``result``, replacing any entry and restarting its TTL."""
        ...

    def size(self) -> int:
        """Count of non-expired entries."""
        ...

    def evict_expired(self) -> int:
        """Remove expired entries and return how many were removed."""
        ...

    def stats(self) -> CacheStats:
        ...

    def close(self) -> None:
        ...


class MemoryCache:
    """
    In-memory TTL cache.

    An entry is a hit while ``now < expires_at``. Expired entries are removed
    lazily on read and eagerly by ``evict_expired``.
    """

    def __init__(self, ttl_seconds: int = 604_800, clock: Optional[Clock] = None) -> None:
        self._ttl = float(ttl_seconds)
        self._clock = clock or SystemClock()
        self._store: dict[str, CacheEntry] = {}
        self._lock = threading.Lock()
        self._hits = 0
        self._misses = 0

    @property
    def ttl_seconds(self) -> float:
        return self._ttl

    def get(self, domain: str) -> Optional[CheckResult]:
        now = self._clock.now()
        with self._lock:
            entry = self._store.get(domain)
            if entry is None:
                self._misses += 1
                return None

            if now >= entry.expires_at:
                del self._store[domain]
                self._misses += 1
                return None

            self._hits += 1

        return entry.result.with_cached_at(iso_timestamp(entry.created_at))

    def set(self, domain: str, result: CheckResult) -> None:
        now = self._clock.now()
        with self._lock:
            self._store[domain] = CacheEntry(
                result=result,
                created_at=now,
                expires_at=now + self._ttl,
            )

    def size(self) -> int:
        now = self._clock.now()
        with self._lock:
            return sum(1 for entry in self._store.values() if now < entry.expires_at)

    def evict_expired(self) -> int:
        now = self._clock.now()
        with self._lock:
            expired = [key for key, entry in self._store.items() if entry.expires_at <= now]
            for key in expired:
                del self._store[key]
        return len(expired)

    def stats(self) -> CacheStats:
        return CacheStats(hits=self._hits, misses=self._misses, size=self.size())

    def close(self) -> None:
        with self._lock:
            self._store.clear()


def create_cache(
    config: CacheConfig,
    logger=None,
    clock: Optional[Clock] = None,
) -> CacheStore:
    """
    Create the cache backend selected by the configuration.

    A durable SqliteCache is used when ``config.db_path`` is set. If it cannot
    be opened, a warning is logged and a MemoryCache is returned instead.

    Args:
        config: Cache configuration
        logger: Optional AuditLogger for the fallback warning
        clock: Optional time source shared with the backend

    Returns:
        A CacheStore implementation
    """
    if config.db_path:
        try:
            return SqliteCache(config.db_path, config.ttl_seconds, clock=clock)
        except PersistenceError as e:
            if logger:
                logger.warn(
                    "CacheFactory",
                    "Failed to open persistent cache, falling back to in-memory",
                    {"db_path": str(config.db_path), "error": e.message},
                )

    return MemoryCache(config.ttl_seconds, clock=clock)
