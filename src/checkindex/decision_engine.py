"""
Decision Engine for heuristic indexation classification.

This module implements the free, instant layer of the check: a search engine
almost certainly indexes a domain that ranks for keywords or gets organic
traffic, and probably indexes an older domain with backlinks.

Classification rules, evaluated in order:
- keywords_top_100 > 0 or traffic > 0 -> indexed, high confidence
- backlinks > 0 and domain age > 1 year -> indexed, medium confidence
- anything else -> not indexed, low confidence
"""

from .enums import CheckMethod, Confidence
from .models import CheckResult, SignalSet


class DecisionEngine:
    """
    Heuristic classifier for indexation status.

    Pure and total: every SignalSet maps to exactly one CheckResult, and a
    low-confidence answer tells the orchestrator to ask the authoritative API.
    """

    def classify(self, signals: SignalSet) -> CheckResult:
        """
        Classify a domain from its SEO signals.

        Args:
            signals: Keywords, traffic, backlinks and optional domain age

        Returns:
            CheckResult with method ``heuristic`` and the signals attached
        """
        if signals.keywords_top_100 > 0 or signals.traffic > 0:
            return self._result(True, Confidence.HIGH, signals)

        # Unknown age counts as zero
        age = signals.domain_age_years or 0
        if signals.backlinks > 0 and age > 1:
            return self._result(True, Confidence.MEDIUM, signals)

        return self._result(False, Confidence.LOW, signals)

    def _result(
        self,
        indexed: bool,
        confidence: Confidence,
        signals: SignalSet,
    ) -> CheckResult:
        return CheckResult(
            indexed=indexed,
            confidence=confidence,
            method=CheckMethod.HEURISTIC,
            signals=signals,
        )
