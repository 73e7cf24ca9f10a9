"""
checkindex - Tiered search engine indexation checker.

This package decides whether a domain is indexed by a search engine using a
free heuristic layer first and a paid authoritative search API as fallback,
with TTL caching, per-client rate limiting, signed webhook notifications and
bulk CSV jobs.
"""

__version__ = "0.1.0"
__author__ = "checkindex Team"

from checkindex.exceptions import (
    CheckIndexError,
    ConfigurationError,
    NetworkError,
    SearchAPIError,
    RateLimitError,
    PersistenceError,
)
from checkindex.enums import (
    Confidence,
    CheckMethod,
    WebhookStatus,
    JobStatus,
    LogLevel,
)
from checkindex.config import (
    CacheConfig,
    RateLimitConfig,
    SearchAPIConfig,
    EnrichmentConfig,
    WebhookConfig,
    LoggingConfig,
    SystemConfig,
    load_config_from_env,
    load_config_from_file,
    save_config_to_file,
)
from checkindex.models import (
    SignalSet,
    CheckResult,
    CacheEntry,
    CacheStats,
    Webhook,
    WebhookPayload,
    DeliveryAttempt,
    BulkJob,
    BulkJobResult,
)
from checkindex.domain import normalize_domain
from checkindex.audit_logger import (
    AuditLogger,
    LogEntry,
)
from checkindex.scheduler import (
    Clock,
    SystemClock,
    Scheduler,
    ScheduledTask,
)
from checkindex.cache import (
    CacheStore,
    MemoryCache,
    create_cache,
)
from checkindex.persistent_cache import SqliteCache
from checkindex.rate_limiter import (
    RateLimiter,
    RateLimitResult,
)
from checkindex.decision_engine import DecisionEngine
from checkindex.search_client import SearchClient
from checkindex.enrichment import EnrichmentClient
from checkindex.orchestrator import CheckOrchestrator
from checkindex.webhooks import (
    DeliveryLog,
    WebhookDispatcher,
    WebhookRegistry,
    is_private_url,
    sign_payload,
    validate_webhook_url,
)
from checkindex.bulk_job import (
    BulkJobManager,
    parse_csv,
)
from checkindex.service import (
    BatchOutcome,
    CheckIndexService,
    CheckOutcome,
)

__all__ = [
    # Exceptions
    "CheckIndexError",
    "ConfigurationError",
    "NetworkError",
    "SearchAPIError",
    "RateLimitError",
    "PersistenceError",
    # Enums
    "Confidence",
    "CheckMethod",
    "WebhookStatus",
    "JobStatus",
    "LogLevel",
    # Configuration
    "CacheConfig",
    "RateLimitConfig",
    "SearchAPIConfig",
    "EnrichmentConfig",
    "WebhookConfig",
    "LoggingConfig",
    "SystemConfig",
    "load_config_from_env",
    "load_config_from_file",
    "save_config_to_file",
    # Models
    "SignalSet",
    "CheckResult",
    "CacheEntry",
    "CacheStats",
    "Webhook",
    "WebhookPayload",
    "DeliveryAttempt",
    "BulkJob",
    "BulkJobResult",
    # Domain
    "normalize_domain",
    # Audit Logger
    "AuditLogger",
    "LogEntry",
    # Scheduler
    "Clock",
    "SystemClock",
    "Scheduler",
    "ScheduledTask",
    # Cache
    "CacheStore",
    "MemoryCache",
    "SqliteCache",
    "create_cache",
    # Rate Limiter
    "RateLimiter",
    "RateLimitResult",
    # Checkers
    "DecisionEngine",
    "SearchClient",
    "EnrichmentClient",
    "CheckOrchestrator",
    # Webhooks
    "DeliveryLog",
    "WebhookDispatcher",
    "WebhookRegistry",
    "is_private_url",
    "sign_payload",
    "validate_webhook_url",
    # Bulk Jobs
    "BulkJobManager",
    "parse_csv",
    # Service
    "BatchOutcome",
    "CheckIndexService",
    "CheckOutcome",
]
