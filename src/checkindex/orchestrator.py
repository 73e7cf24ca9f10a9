"""
Check Orchestrator for the checkindex system.

This module coordinates the two-layer indexation check:
1. Heuristic classification (free, instant) from SEO signals, which are
   either supplied by the caller or fetched from the enrichment service
2. Authoritative search API (paid) for ambiguous or forced checks

Failures of the authoritative layer are never propagated: the heuristic
answer, or a safe "not indexed / low" fallback, is returned instead.
"""

from typing import Optional

from .decision_engine import DecisionEngine
from .enrichment import EnrichmentClient
from .enums import CheckMethod, Confidence
from .models import CheckResult, SignalSet
from .search_client import SearchClient


class CheckOrchestrator:
    """
    Main orchestrator for indexation checks.

    Holds no state between calls; caching and rate limiting happen in the
    service layer around it.
    """

    def __init__(
        self,
        search_client: SearchClient,
        enrichment_client: Optional[EnrichmentClient] = None,
        decision_engine: Optional[DecisionEngine] = None,
        logger=None,
    ) -> None:
        """
        Initialize the check orchestrator.

        Args:
            search_client: Authoritative search API client
            enrichment_client: Optional signal source for checks without signals
            decision_engine: Heuristic classifier (a default one is created)
            logger: Optional audit logger
        """
        self._search_client = search_client
        self._enrichment_client = enrichment_client
        self._decision_engine = decision_engine or DecisionEngine()
        self._logger = logger

    async def check(
        self,
        domain: str,
        signals: Optional[SignalSet] = None,
        force_authoritative: bool = False,
    ) -> CheckResult:
        """
        Perform an indexation check.

        Args:
            domain: Normalized domain
            signals: Optional caller-supplied SEO signals
            force_authoritative: Skip the heuristic layer entirely

        Returns:
            CheckResult; never raises on authoritative failure
        """
        if signals is None and not force_authoritative and self._enrichment_client:
            signals = await self._enrichment_client.enrich(domain)
            if signals is not None:
                self._log_info(
                    f"Enriched signals for {domain}",
                    {"domain": domain, "signals": signals.to_dict()},
                )

        heuristic_result: Optional[CheckResult] = None
        if signals is not None and not force_authoritative:
            heuristic_result = self._decision_engine.classify(signals)
            if heuristic_result.confidence != Confidence.LOW:
                return heuristic_result

        try:
            return await self._search_client.check(domain)
        except Exception as e:
            self._log_degraded(domain, e, heuristic_result is not None)
            if heuristic_result is not None:
                return heuristic_result
            return CheckResult(
                indexed=False,
                confidence=Confidence.LOW,
                method=CheckMethod.HEURISTIC,
            )

    def _log_info(self, message: str, data: dict) -> None:
        if self._logger:
            self._logger.info("CheckOrchestrator", message, data)

    def _log_degraded(self, domain: str, error: Exception, has_heuristic: bool) -> None:
        if self._logger:
            self._logger.warn(
                "CheckOrchestrator",
                f"Authoritative check failed for {domain}, degrading",
                {
                    "domain": domain,
                    "error_message": str(error),
                    "error_type": type(error).__name__,
                    "fallback": "heuristic" if has_heuristic else "default",
                },
            )
