"""
Configuration dataclasses for the checkindex system.

This module defines all configuration structures used throughout the system
(cache, rate limiting, search API, enrichment, webhooks and logging) and the
loaders that build them from the environment or from a JSON file.
"""

import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Mapping, Optional

from dotenv import load_dotenv

from .exceptions import ConfigurationError

DEFAULT_CACHE_TTL_SECONDS = 604_800  # 7 days
DEFAULT_SEARCH_ENDPOINT = "https://www.googleapis.com/customsearch/v1"


@dataclass
class CacheConfig:
    """Cache store configuration."""

    ttl_seconds: int = DEFAULT_CACHE_TTL_SECONDS
    db_path: Optional[Path] = None  # durable backend when set
    eviction_interval_seconds: float = 3600.0


@dataclass
class RateLimitConfig:
    """Fixed-window rate limit for inbound requests."""

    max_requests: int = 60
    window_seconds: float = 60.0


@dataclass
class SearchAPIConfig:
    """Credentials and endpoint of the authoritative search API."""

    api_key: Optional[str] = None
    engine_id: Optional[str] = None
    endpoint: str = DEFAULT_SEARCH_ENDPOINT
    timeout_seconds: float = 10.0

    @property
    def has_credentials(self) -> bool:
        return bool(self.api_key and self.engine_id)


@dataclass
class EnrichmentConfig:
    """Domain-analyzer enrichment service."""

    url: str
    timeout_ms: int = 2000

    def __post_init__(self) -> None:
        self.url = self.url.rstrip("/")


@dataclass
class WebhookConfig:
    """Webhook delivery behavior."""

    retry_delays: tuple[float, ...] = (1.0, 5.0, 30.0)
    timeout_seconds: float = 10.0
    log_capacity: int = 1000


@dataclass
class LoggingConfig:
    """Logging configuration."""

    level: str = "info"
    output_format: str = "text"  # 'json', 'text', 'both'


@dataclass
class SystemConfig:
    """Main system configuration combining all sub-configurations."""

    cache: CacheConfig = field(default_factory=CacheConfig)
    rate_limit: RateLimitConfig = field(default_factory=RateLimitConfig)
    search_api: SearchAPIConfig = field(default_factory=SearchAPIConfig)
    enrichment: Optional[EnrichmentConfig] = None
    webhooks: WebhookConfig = field(default_factory=WebhookConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


def _int_env(env: Mapping[str, str], name: str, default: int) -> int:
    try:
        return int(env.get(name, str(default)))
    except (TypeError, ValueError):
        return default


def load_config_from_env(
    env: Optional[Mapping[str, str]] = None,
    dotenv_path: Optional[Path] = None,
) -> SystemConfig:
    """
    Build a configuration from environment variables.

    When ``env`` is not given, a ``.env`` file is loaded first (without
    overriding variables already set) and ``os.environ`` is used.

    Args:
        env: Explicit variable mapping, mainly for tests
        dotenv_path: Optional path of the .env file to load

    Returns:
        SystemConfig populated from the environment
    """
    if env is None:
        load_dotenv(dotenv_path)
        env = os.environ

    db_path = env.get("CACHE_DB_PATH") or None
    cache = CacheConfig(
        ttl_seconds=_int_env(env, "CACHE_TTL_SECONDS", DEFAULT_CACHE_TTL_SECONDS),
        db_path=Path(db_path) if db_path else None,
    )

    rate_limit = RateLimitConfig(
        max_requests=_int_env(env, "RATE_LIMIT_PER_MINUTE", 60),
        window_seconds=60.0,
    )

    search_api = SearchAPIConfig(
        api_key=env.get("GOOGLE_CSE_API_KEY") or None,
        engine_id=env.get("GOOGLE_CSE_CX") or None,
    )

    enrichment = None
    analyzer_url = env.get("DOMAIN_ANALYZER_URL")
    if analyzer_url:
        enrichment = EnrichmentConfig(
            url=analyzer_url,
            timeout_ms=_int_env(env, "DOMAIN_ANALYZER_TIMEOUT_MS", 2000),
        )

    logging_config = LoggingConfig(
        level=(env.get("LOG_LEVEL") or "info").lower(),
        output_format=(env.get("LOG_FORMAT") or "text").lower(),
    )

    return SystemConfig(
        cache=cache,
        rate_limit=rate_limit,
        search_api=search_api,
        enrichment=enrichment,
        logging=logging_config,
    )


def load_config_from_file(config_path: Path) -> SystemConfig:
    """
    Load configuration from a JSON file.

    Credentials are never stored in the file; they are taken from the
    environment (GOOGLE_CSE_API_KEY / GOOGLE_CSE_CX) when present.

    Raises:
        ConfigurationError: If the file cannot be read or parsed
    """
    try:
        with open(config_path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except FileNotFoundError as e:
        raise ConfigurationError(
            code="config_not_found",
            message=f"Config file not found: {config_path}",
            details={"path": str(config_path)},
        ) from e
    except (OSError, json.JSONDecodeError) as e:
        raise ConfigurationError(
            code="config_unreadable",
            message=f"Failed to load config: {e}",
            details={"path": str(config_path)},
        ) from e

    try:
        cache_data = data.get("cache", {})
        db_path = cache_data.get("db_path")
        cache = CacheConfig(
            ttl_seconds=int(cache_data.get("ttl_seconds", DEFAULT_CACHE_TTL_SECONDS)),
            db_path=Path(db_path) if db_path else None,
            eviction_interval_seconds=float(
                cache_data.get("eviction_interval_seconds", 3600.0)
            ),
        )

        rate_data = data.get("rate_limit", {})
        rate_limit = RateLimitConfig(
            max_requests=int(rate_data.get("max_requests", 60)),
            window_seconds=float(rate_data.get("window_seconds", 60.0)),
        )

        search_data = data.get("search_api", {})
        search_api = SearchAPIConfig(
            api_key=os.environ.get("GOOGLE_CSE_API_KEY") or None,
            engine_id=os.environ.get("GOOGLE_CSE_CX") or None,
            endpoint=search_data.get("endpoint", DEFAULT_SEARCH_ENDPOINT),
            timeout_seconds=float(search_data.get("timeout_seconds", 10.0)),
        )

        enrichment = None
        enrichment_data = data.get("enrichment") or {}
        if enrichment_data.get("url"):
            enrichment = EnrichmentConfig(
                url=enrichment_data["url"],
                timeout_ms=int(enrichment_data.get("timeout_ms", 2000)),
            )

        webhook_data = data.get("webhooks", {})
        webhooks = WebhookConfig(
            retry_delays=tuple(webhook_data.get("retry_delays", (1.0, 5.0, 30.0))),
            timeout_seconds=float(webhook_data.get("timeout_seconds", 10.0)),
            log_capacity=int(webhook_data.get("log_capacity", 1000)),
        )

        logging_data = data.get("logging", {})
        logging_config = LoggingConfig(
            level=logging_data.get("level", "info"),
            output_format=logging_data.get("output_format", "text"),
        )
    except (TypeError, ValueError, AttributeError) as e:
        raise ConfigurationError(
            code="config_invalid",
            message=f"Invalid config value: {e}",
            details={"path": str(config_path)},
        ) from e

    return SystemConfig(
        cache=cache,
        rate_limit=rate_limit,
        search_api=search_api,
        enrichment=enrichment,
        webhooks=webhooks,
        logging=logging_config,
    )


def config_to_dict(config: SystemConfig) -> dict:
    """Serialize a configuration, leaving out credentials."""
    return {
        "cache": {
            "ttl_seconds": config.cache.ttl_seconds,
            "db_path": str(config.cache.db_path) if config.cache.db_path else None,
            "eviction_interval_seconds": config.cache.eviction_interval_seconds,
        },
        "rate_limit": {
            "max_requests": config.rate_limit.max_requests,
            "window_seconds": config.rate_limit.window_seconds,
        },
        "search_api": {
            "endpoint": config.search_api.endpoint,
            "timeout_seconds": config.search_api.timeout_seconds,
        },
        "enrichment": {
            "url": config.enrichment.url,
            "timeout_ms": config.enrichment.timeout_ms,
        } if config.enrichment else None,
        "webhooks": {
            "retry_delays": list(config.webhooks.retry_delays),
            "timeout_seconds": config.webhooks.timeout_seconds,
            "log_capacity": config.webhooks.log_capacity,
        },
        "logging": {
            "level": config.logging.level,
            "output_format": config.logging.output_format,
        },
    }


def save_config_to_file(config: SystemConfig, config_path: Path) -> None:
    """
    Save configuration to a JSON file.

    Raises:
        ConfigurationError: If the file cannot be written
    """
    try:
        config_path.parent.mkdir(parents=True, exist_ok=True)
        with open(config_path, "w", encoding="utf-8") as f:
            json.dump(config_to_dict(config), f, indent=2, ensure_ascii=False)
    except OSError as e:
        raise ConfigurationError(
            code="config_unwritable",
            message=f"Failed to save config: {e}",
            details={"path": str(config_path)},
        ) from e
