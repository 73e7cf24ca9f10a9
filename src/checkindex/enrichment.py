"""
Domain-analyzer enrichment client.

Fetches SEO signals (keywords, traffic, backlinks, domain age) from an
external domain-analyzer service so the heuristic layer can answer checks
that arrive without signals.
"""

import math
from typing import Optional

import httpx

from .config import EnrichmentConfig
from .models import SignalSet


def _number(value) -> float:
    """Coerce an analyzer field to a number; anything invalid is 0."""
    if isinstance(value, bool):
        return float(value)
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0.0
    if math.isnan(number) or math.isinf(number):
        return 0.0
    return number


def parse_analyzer_response(data) -> Optional[SignalSet]:
    """
    Convert an analyzer response body into signals.

    Returns None when the body is not an object or carries no useful signal.
    """
    if not isinstance(data, dict):
        return None

    keywords = _number(data.get("keywords_top_100"))
    traffic = _number(data.get("traffic"))
    backlinks = _number(data.get("backlinks"))
    age = _number(data.get("domain_age_years")) or None

    if keywords == 0 and traffic == 0 and backlinks == 0 and age is None:
        return None

    return SignalSet(
        keywords_top_100=int(keywords),
        traffic=traffic,
        backlinks=int(backlinks),
        domain_age_years=age,
    )


class EnrichmentClient:
    """Async client for the domain-analyzer service. Never raises."""

    def __init__(
        self,
        config: EnrichmentConfig,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        logger=None,
    ) -> None:
        self._config = config
        self._logger = logger
        self._transport = transport

    @property
    def config(self) -> EnrichmentConfig:
        return self._config

    async def enrich(self, domain: str) -> Optional[SignalSet]:
        """
        Fetch signals for ``domain``.

        Args:
            domain: Normalized domain

        Returns:
            SignalSet, or None when the service fails or has nothing useful
        """
        url = f"{self._config.url}/analyze"

        try:
            async with httpx.AsyncClient(
                transport=self._transport,
                timeout=httpx.Timeout(self._config.timeout_ms / 1000),
            ) as client:
                response = await client.get(
                    url,
                    params={"domain": domain},
                    headers={"Accept": "application/json"},
                )
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            self._log_warn(
                f"Failed to enrich {domain}",
                {"domain": domain, "error": str(e), "error_type": type(e).__name__},
            )
            return None

        if not response.is_success:
            self._log_warn(
                f"Domain analyzer returned {response.status_code} for {domain}",
                {"domain": domain, "status_code": response.status_code},
            )
            return None

        try:
            data = response.json()
        except ValueError as e:
            self._log_warn(
                f"Domain analyzer returned invalid JSON for {domain}",
                {"domain": domain, "error": str(e)},
            )
            return None

        return parse_analyzer_response(data)

    def _log_warn(self, message: str, data: dict) -> None:
        if self._logger:
            self._logger.warn("EnrichmentClient", message, data)
