"""
Check service for the checkindex system.

The composition root: owns the cache, rate limiter, orchestrator, webhook
subsystem, bulk job manager and the maintenance scheduler, and exposes the
request-level operations a host (HTTP server, CLI) builds on.

Request flow for a single check:
rate limit -> normalize -> cache -> orchestrator -> cache set -> webhooks
"""

import asyncio
from dataclasses import asdict, dataclass, field
from typing import Optional, Union

import httpx

from .audit_logger import AuditLogger
from .bulk_job import BulkJobManager
from .cache import CacheStore, create_cache
from .config import SystemConfig
from .domain import normalize_domain
from .enrichment import EnrichmentClient
from .models import BulkJob, CheckResult, SignalSet
from .orchestrator import CheckOrchestrator
from .rate_limiter import RateLimiter, RateLimitResult
from .scheduler import Clock, Scheduler, SystemClock
from .search_client import SearchClient
from .webhooks import DeliveryLog, WebhookDispatcher, WebhookRegistry

MAX_BATCH_DOMAINS = 50
CHECK_COMPLETED_EVENT = "check.completed"


@dataclass
class CheckOutcome:
    """
    Result of a single check request.

    ``result`` is None when the request was rejected by the rate limiter or
    failed validation (``error`` is then set for the latter).
    """

    result: Optional[CheckResult]
    rate_limit: RateLimitResult
    error: Optional[str] = None

    @property
    def allowed(self) -> bool:
        return self.rate_limit.allowed


@dataclass
class BatchOutcome:
    """Result of a batch check request, keyed by normalized domain."""

    rate_limit: RateLimitResult
    results: dict[str, CheckResult] = field(default_factory=dict)

    @property
    def allowed(self) -> bool:
        return self.rate_limit.allowed


class CheckIndexService:
    """
    Owns every store of a checkindex instance.

    Independent instances share nothing, so tests and multiple hosts can
    run side by side in one process.
    """

    def __init__(
        self,
        config: Optional[SystemConfig] = None,
        cache: Optional[CacheStore] = None,
        rate_limiter: Optional[RateLimiter] = None,
        orchestrator: Optional[CheckOrchestrator] = None,
        webhooks: Optional[WebhookDispatcher] = None,
        clock: Optional[Clock] = None,
        logger: Optional[AuditLogger] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        """
        Initialize the service, building any component not supplied.

        Args:
            config: System configuration (defaults apply when omitted)
            cache: Cache backend (built by create_cache by default)
            rate_limiter: Inbound rate limiter
            orchestrator: Check orchestrator
            webhooks: Webhook dispatcher (with its registry)
            clock: Time source shared by all components
            logger: Audit logger (built from config.logging by default)
            transport: Optional httpx transport for every outbound client
        """
        self._config = config or SystemConfig()
        self._clock = clock or SystemClock()
        self._logger = logger or AuditLogger.from_config(self._config.logging)

        self._cache = cache or create_cache(
            self._config.cache, logger=self._logger, clock=self._clock
        )
        self._rate_limiter = rate_limiter or RateLimiter(
            self._config.rate_limit, clock=self._clock
        )

        if orchestrator is None:
            enrichment_client = None
            if self._config.enrichment is not None:
                enrichment_client = EnrichmentClient(
                    self._config.enrichment,
                    transport=transport,
                    logger=self._logger,
                )
            orchestrator = CheckOrchestrator(
                SearchClient(self._config.search_api, transport=transport),
                enrichment_client=enrichment_client,
                logger=self._logger,
            )
        self._orchestrator = orchestrator

        self._webhooks = webhooks or WebhookDispatcher(
            WebhookRegistry(clock=self._clock),
            log=DeliveryLog(self._config.webhooks.log_capacity),
            clock=self._clock,
            logger=self._logger,
            transport=transport,
            config=self._config.webhooks,
        )

        self._bulk_jobs = BulkJobManager(
            self._orchestrator, logger=self._logger, clock=self._clock
        )
        self._scheduler = Scheduler(clock=self._clock, logger=self._logger)

    async def __aenter__(self) -> "CheckIndexService":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.aclose()

    @property
    def config(self) -> SystemConfig:
        return self._config

    @property
    def cache(self) -> CacheStore:
        return self._cache

    @property
    def rate_limiter(self) -> RateLimiter:
        return self._rate_limiter

    @property
    def orchestrator(self) -> CheckOrchestrator:
        return self._orchestrator

    @property
    def webhooks(self) -> WebhookDispatcher:
        return self._webhooks

    @property
    def registry(self) -> WebhookRegistry:
        return self._webhooks.registry

    @property
    def bulk_jobs(self) -> BulkJobManager:
        return self._bulk_jobs

    @property
    def scheduler(self) -> Scheduler:
        return self._scheduler

    @property
    def logger(self) -> AuditLogger:
        return self._logger

    async def check(
        self,
        domain: str,
        client_key: str = "unknown",
        signals: Optional[SignalSet] = None,
        force_authoritative: bool = False,
    ) -> CheckOutcome:
        """
        Check one domain on behalf of a client.

        Args:
            domain: Domain or URL as supplied by the client
            client_key: Rate-limit identity of the client
            signals: Optional SEO signals (bypass the cache read)
            force_authoritative: Force the search API (bypasses the cache read)

        Returns:
            CheckOutcome with the result and the client's rate-limit state
        """
        rate_limit = self._rate_limiter.consume(client_key)
        if not rate_limit.allowed:
            self._log_rejected(client_key, rate_limit, cost=1)
            return CheckOutcome(result=None, rate_limit=rate_limit)

        normalized = normalize_domain(domain.strip())
        if not normalized:
            return CheckOutcome(
                result=None,
                rate_limit=rate_limit,
                error="Domain is required",
            )

        result = await self._resolve(normalized, signals, force_authoritative)
        return CheckOutcome(result=result, rate_limit=rate_limit)

    async def batch_check(
        self,
        domains: list,
        client_key: str = "unknown",
    ) -> Union[BatchOutcome, str]:
        """
        Check up to 50 domains concurrently.

        The batch costs one rate-limit unit per domain. Non-string and empty
        entries are ignored.

        Returns:
            BatchOutcome, or an error message for an empty or oversized batch
        """
        cleaned = [d.strip() for d in domains if isinstance(d, str) and d.strip()]
        if not cleaned:
            return "No valid domains provided"
        if len(cleaned) > MAX_BATCH_DOMAINS:
            return f"Too many domains (max {MAX_BATCH_DOMAINS})"

        rate_limit = self._rate_limiter.consume(client_key, cost=len(cleaned))
        if not rate_limit.allowed:
            self._log_rejected(client_key, rate_limit, cost=len(cleaned))
            return BatchOutcome(rate_limit=rate_limit)

        normalized = list(dict.fromkeys(normalize_domain(d) for d in cleaned))
        results = await asyncio.gather(
            *(self._resolve(domain, None, False) for domain in normalized)
        )
        return BatchOutcome(
            rate_limit=rate_limit,
            results=dict(zip(normalized, results)),
        )

    def create_bulk_job(self, csv_text: str) -> Union[BulkJob, str]:
        """Start a bulk job. Not charged against the rate limit."""
        return self._bulk_jobs.create_job(csv_text)

    def health(self) -> dict:
        """Liveness information for monitoring."""
        return {
            "status": "ok",
            "cache": asdict(self._cache.stats()),
            "rate_limiter_keys": self._rate_limiter.size(),
            "webhooks": len(self.registry.list()),
            "pending_deliveries": self._webhooks.pending,
            "jobs": len(self._bulk_jobs.list_jobs()),
        }

    def start(self) -> asyncio.Task:
        """
        Start the periodic eviction sweeps for the cache and rate limiter.

        Must be called from a running event loop.
        """
        interval = self._config.cache.eviction_interval_seconds
        if self._scheduler.get_task("cache-eviction") is None:
            self._scheduler.schedule("cache-eviction", interval, self._cache.evict_expired)
        if self._scheduler.get_task("rate-limit-eviction") is None:
            self._scheduler.schedule(
                "rate-limit-eviction", interval, self._rate_limiter.evict_expired
            )
        return self._scheduler.start()

    async def aclose(self) -> None:
        """Stop the sweeps, wait for in-flight webhooks and close the cache."""
        self._scheduler.stop()
        await self._webhooks.drain()
        self._cache.close()

    async def _resolve(
        self,
        domain: str,
        signals: Optional[SignalSet],
        force_authoritative: bool,
    ) -> CheckResult:
        if signals is None and not force_authoritative:
            cached = self._cache.get(domain)
            if cached is not None:
                self._logger.debug(
                    "CheckIndexService",
                    f"Cache hit for {domain}",
                    {"domain": domain, "cached_at": cached.cached_at},
                )
                return cached

        result = await self._orchestrator.check(
            domain,
            signals=signals,
            force_authoritative=force_authoritative,
        )
        self._cache.set(domain, result)

        self._webhooks.fire(
            CHECK_COMPLETED_EVENT,
            {"domain": domain, "result": result.to_dict()},
        )
        return result

    def _log_rejected(self, client_key: str, rate_limit: RateLimitResult, cost: int) -> None:
        self._logger.warn(
            "CheckIndexService",
            f"Rate limit exceeded for {client_key}",
            {
                "client_key": client_key,
                "cost": cost,
                "limit": rate_limit.limit,
                "remaining": rate_limit.remaining,
                "reset_at": rate_limit.reset_at,
            },
        )
