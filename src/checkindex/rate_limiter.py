"""
Rate Limiter module for the checkindex system.

Fixed-window counter per client key (typically the client IP):
- A window starts with the first request of a key and lasts ``window_seconds``
- Requests may carry a cost (e.g. the domain count of a batch)
- A request larger than the whole budget is always rejected
"""

import math
import threading
from dataclasses import dataclass
from typing import Optional

from .config import RateLimitConfig
from .exceptions import RateLimitError
from .models import RateWindowEntry
from .scheduler import Clock, SystemClock


@dataclass
class RateLimitResult:
    """Outcome of a consume call."""

    allowed: bool
    limit: int
    remaining: int
    reset_at: float  # epoch seconds

    def retry_after(self, now: float) -> int:
        """Whole seconds until the window resets, at least 1."""
        return max(math.ceil(self.reset_at - now), 1)

    def headers(self, now: float) -> dict[str, str]:
        """Response headers describing the client's budget."""
        headers = {
            "X-RateLimit-Limit": str(self.limit),
            "X-RateLimit-Remaining": str(self.remaining),
            "X-RateLimit-Reset": str(math.ceil(self.reset_at)),
        }
        if not self.allowed:
            headers["Retry-After"] = str(self.retry_after(now))
        return headers

    def to_error(self, key: str) -> RateLimitError:
        """Build the capacity error reported to a rejected client."""
        return RateLimitError(
            code="rate_limited",
            message="Too many requests",
            details={
                "key": key,
                "limit": self.limit,
                "remaining": self.remaining,
                "reset_at": self.reset_at,
            },
        )


class RateLimiter:
    """
    Fixed-window rate limiter keyed by client identity.

    Safe for concurrent use: every consume is a single locked read-modify-write.
    """

    def __init__(
        self,
        config: Optional[RateLimitConfig] = None,
        clock: Optional[Clock] = None,
    ) -> None:
        """
        Initialize the rate limiter.

        Args:
            config: Budget per window (defaults to 60 requests per 60 seconds)
            clock: Time source (defaults to SystemClock)
        """
        self._config = config or RateLimitConfig()
        self._clock = clock or SystemClock()
        self._store: dict[str, RateWindowEntry] = {}
        self._lock = threading.Lock()

    @property
    def config(self) -> RateLimitConfig:
        return self._config

    def consume(self, key: str, cost: int = 1) -> RateLimitResult:
        """
        Check and consume budget for a client key.

        Args:
            key: Client identifier
            cost: Units to consume (1 per request, domain count for a batch)

        Returns:
            RateLimitResult with the decision and the remaining budget
        """
        now = self._clock.now()
        limit = self._config.max_requests
        window = self._config.window_seconds

        with self._lock:
            entry = self._store.get(key)

            if entry is None or entry.window_start + window <= now:
                if cost > limit:
                    return RateLimitResult(
                        allowed=False,
                        limit=limit,
                        remaining=limit,
                        reset_at=now + window,
                    )

                self._store[key] = RateWindowEntry(count=cost, window_start=now)
                return RateLimitResult(
                    allowed=True,
                    limit=limit,
                    remaining=limit - cost,
                    reset_at=now + window,
                )

            reset_at = entry.window_start + window
            remaining = limit - entry.count

            if cost > remaining:
                return RateLimitResult(
                    allowed=False,
                    limit=limit,
                    remaining=remaining,
                    reset_at=reset_at,
                )

            entry.count += cost
            return RateLimitResult(
                allowed=True,
                limit=limit,
                remaining=limit - entry.count,
                reset_at=reset_at,
            )

    def evict_expired(self) -> int:
        """Drop windows that have elapsed. Returns the number removed."""
        now = self._clock.now()
        window = self._config.window_seconds
        with self._lock:
            expired = [
                key for key, entry in self._store.items()
                if entry.window_start + window <= now
            ]
            for key in expired:
                del self._store[key]
        return len(expired)

    def size(self) -> int:
        """Number of tracked client keys, expired or not."""
        with self._lock:
            return len(self._store)
