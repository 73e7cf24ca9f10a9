"""
SQLite-backed persistent cache for indexation check results.

Same interface as MemoryCache. Entries survive process restarts with their
original creation and expiry times, so the TTL countdown continues instead of
resetting.
"""

import json
import sqlite3
import threading
from pathlib import Path
from typing import Optional, Union

from .exceptions import PersistenceError
from .models import CacheStats, CheckResult, iso_timestamp
from .scheduler import Clock, SystemClock

_SCHEMA = """
CREATE TABLE IF NOT EXISTS cache (
    domain TEXT PRIMARY KEY,
    result TEXT NOT NULL,
    created_at REAL NOT NULL,
    expires_at REAL NOT NULL
)
"""


class SqliteCache:
    """
    Durable cache store on top of SQLite.

    Expired rows are filtered out by the read queries and removed by
    ``evict_expired``; reads never delete.
    """

    def __init__(
        self,
        db_path: Union[str, Path],
        ttl_seconds: int = 604_800,
        clock: Optional[Clock] = None,
    ) -> None:
        """
        Open (or create) the cache database.

        Args:
            db_path: Path of the SQLite file
            ttl_seconds: Lifetime of each entry
            clock: Time source (defaults to SystemClock)

        Raises:
            PersistenceError: If the database cannot be opened
        """
        self._db_path = Path(db_path)
        self._ttl = float(ttl_seconds)
        self._clock = clock or SystemClock()
        self._lock = threading.Lock()
        self._hits = 0
        self._misses = 0

        try:
            self._conn = sqlite3.connect(
                str(self._db_path),
                timeout=5.0,
                check_same_thread=False,
            )
            self._conn.execute("PRAGMA journal_mode = WAL")
            self._conn.execute("PRAGMA busy_timeout = 5000")
            self._conn.execute(_SCHEMA)
            self._conn.commit()
        except sqlite3.Error as e:
            raise PersistenceError(
                code="cache_open_failed",
                message=f"Failed to open cache database: {e}",
                details={"db_path": str(self._db_path)},
            ) from e

    @property
    def ttl_seconds(self) -> float:
        return self._ttl

    @property
    def db_path(self) -> Path:
        return self._db_path

    def get(self, domain: str) -> Optional[CheckResult]:
        now = self._clock.now()
        with self._lock:
            row = self._conn.execute(
                "SELECT result, created_at FROM cache WHERE domain = ? AND expires_at > ?",
                (domain, now),
            ).fetchone()

            if row is None:
                self._misses += 1
                return None

            self._hits += 1

        result = CheckResult.from_dict(json.loads(row[0]))
        return result.with_cached_at(iso_timestamp(row[1]))

    def set(self, domain: str, result: CheckResult) -> None:
        now = self._clock.now()
        payload = json.dumps(result.to_dict())
        with self._lock:
            self._conn.execute(
                "INSERT OR REPLACE INTO cache (domain, result, created_at, expires_at) "
                "VALUES (?, ?, ?, ?)",
                (domain, payload, now, now + self._ttl),
            )
            self._conn.commit()

    def size(self) -> int:
        """Count of non-expired entries."""
        with self._lock:
            row = self._conn.execute(
                "SELECT COUNT(*) FROM cache WHERE expires_at > ?",
                (self._clock.now(),),
            ).fetchone()
        return int(row[0])

    def evict_expired(self) -> int:
        """Delete all expired entries. Returns the number of rows removed."""
        with self._lock:
            cursor = self._conn.execute(
                "DELETE FROM cache WHERE expires_at <= ?",
                (self._clock.now(),),
            )
            self._conn.commit()
        return cursor.rowcount

    def stats(self) -> CacheStats:
        return CacheStats(hits=self._hits, misses=self._misses, size=self.size())

    def close(self) -> None:
        """Close the database connection."""
        with self._lock:
            self._conn.close()
