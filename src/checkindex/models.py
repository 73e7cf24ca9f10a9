"""
Data models for the checkindex system.

This module defines the value types produced by the checkers, the entries
kept by the cache and rate limiter, and the entities owned by the webhook
and bulk job subsystems.
"""

from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Any, Optional

from .enums import CheckMethod, Confidence, JobStatus, WebhookStatus


def iso_timestamp(epoch_seconds: float) -> str:
    """Format epoch seconds as an ISO-8601 UTC timestamp."""
    return datetime.fromtimestamp(epoch_seconds, tz=timezone.utc).isoformat()


@dataclass(frozen=True)
class SignalSet:
    """SEO signals used by the heuristic layer."""

    keywords_top_100: int
    traffic: float
    backlinks: int
    domain_age_years: Optional[float] = None

    def to_dict(self) -> dict:
        data: dict[str, Any] = {
            "keywords_top_100": self.keywords_top_100,
            "traffic": self.traffic,
            "backlinks": self.backlinks,
        }
        if self.domain_age_years is not None:
            data["domain_age_years"] = self.domain_age_years
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "SignalSet":
        return cls(
            keywords_top_100=int(data.get("keywords_top_100", 0)),
            traffic=float(data.get("traffic", 0)),
            backlinks=int(data.get("backlinks", 0)),
            domain_age_years=data.get("domain_age_years"),
        )


@dataclass(frozen=True)
class CheckResult:
    """
    Verdict of an indexation check.

    Immutable once produced. The cache attaches ``cached_at`` (ISO-8601, UTC)
    on read so callers can see how old a cached answer is.
    """

    indexed: bool
    confidence: Confidence
    method: CheckMethod
    indexed_pages_count: Optional[int] = None
    signals: Optional[SignalSet] = None
    cached_at: Optional[str] = None

    def with_cached_at(self, cached_at: str) -> "CheckResult":
        """Return a copy carrying the cache provenance timestamp."""
        return replace(self, cached_at=cached_at)

    def to_dict(self) -> dict:
        """Serialize to a JSON-compatible dict, omitting absent fields."""
        data: dict[str, Any] = {
            "indexed": self.indexed,
            "confidence": self.confidence.value,
            "method": self.method.value,
        }
        if self.indexed_pages_count is not None:
            data["indexed_pages_count"] = self.indexed_pages_count
        if self.signals is not None:
            data["signals"] = self.signals.to_dict()
        if self.cached_at is not None:
            data["cached_at"] = self.cached_at
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "CheckResult":
        signals = data.get("signals")
        return cls(
            indexed=bool(data["indexed"]),
            confidence=Confidence(data["confidence"]),
            method=CheckMethod(data["method"]),
            indexed_pages_count=data.get("indexed_pages_count"),
            signals=SignalSet.from_dict(signals) if signals else None,
            cached_at=data.get("cached_at"),
        )


@dataclass
class CacheEntry:
    """A cached verdict with its lifetime (epoch seconds)."""

    result: CheckResult
    created_at: float
    expires_at: float


@dataclass
class CacheStats:
    """Hit/miss counters reported by the cache backends."""

    hits: int
    misses: int
    size: int


@dataclass
class RateWindowEntry:
    """Request count of one client inside its current window."""

    count: int
    window_start: float


@dataclass
class Webhook:
    """A registered webhook endpoint."""

    id: str
    url: str
    created_at: str
    secret: Optional[str] = None
    status: WebhookStatus = WebhookStatus.ACTIVE

    def to_dict(self) -> dict:
        """Serialize without exposing the secret."""
        return {
            "id": self.id,
            "url": self.url,
            "has_secret": self.secret is not None,
            "status": self.status.value,
            "created_at": self.created_at,
        }


@dataclass(frozen=True)
class WebhookPayload:
    """Body delivered to webhook endpoints."""

    event: str
    data: Any
    timestamp: str

    def to_dict(self) -> dict:
        return {"event": self.event, "data": self.data, "timestamp": self.timestamp}


@dataclass(frozen=True)
class DeliveryAttempt:
    """One delivery attempt, as recorded in the delivery log."""

    webhook_id: str
    payload: WebhookPayload
    attempt: int
    timestamp: str
    http_status: Optional[int] = None
    error: Optional[str] = None


@dataclass
class BulkJobResult:
    """Per-domain row of a bulk job."""

    domain: str
    indexed: bool
    confidence: str
    method: str


@dataclass
class BulkJob:
    """A batch of domains processed in the background."""

    id: str
    total: int
    created_at: str
    status: JobStatus = JobStatus.PENDING
    processed: int = 0
    results: list[BulkJobResult] = field(default_factory=list)
    # Extra columns per normalized domain
    extras: dict[str, list[str]] = field(default_factory=dict)
    headers: list[str] = field(default_factory=list)
    completed_at: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "status": self.status.value,
            "total": self.total,
            "processed": self.processed,
            "created_at": self.created_at,
            "completed_at": self.completed_at,
        }
