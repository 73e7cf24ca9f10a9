"""
Property-based tests for the Check Orchestrator.

The authoritative client is replaced by a double that counts calls, so the
tests can assert exactly when the paid API is reached.
"""

from io import StringIO

from hypothesis import given, settings
from hypothesis import strategies as st

from checkindex.audit_logger import AuditLogger
from checkindex.decision_engine import DecisionEngine
from checkindex.enums import CheckMethod, Confidence, LogLevel
from checkindex.exceptions import (
    ConfigurationError,
    NetworkError,
    SearchAPIError,
)
from checkindex.models import SignalSet
from checkindex.orchestrator import CheckOrchestrator

from helpers import MockEnrichmentClient, MockSearchClient, run_async


@st.composite
def signal_set_strategy(draw) -> SignalSet:
    return SignalSet(
        keywords_top_100=draw(st.integers(min_value=0, max_value=50)),
        traffic=float(draw(st.integers(min_value=0, max_value=50))),
        backlinks=draw(st.integers(min_value=0, max_value=50)),
        domain_age_years=draw(st.one_of(st.none(), st.sampled_from([0.5, 1.0, 2.0, 10.0]))),
    )


@st.composite
def low_signal_strategy(draw) -> SignalSet:
    """Signals the decision engine can only classify with low confidence."""
    if draw(st.booleans()):
        backlinks = 0
        age = draw(st.one_of(st.none(), st.sampled_from([0.5, 1.0, 2.0, 10.0])))
    else:
        backlinks = draw(st.integers(min_value=1, max_value=50))
        age = draw(st.sampled_from([None, 0.5, 1.0]))
    return SignalSet(keywords_top_100=0, traffic=0.0, backlinks=backlinks, domain_age_years=age)


error_strategy = st.sampled_from([
    ConfigurationError(code="search_api_credentials_missing", message="missing"),
    SearchAPIError(code="search_api_http_error", message="500"),
    NetworkError(code="search_api_unreachable", message="refused"),
    RuntimeError("unexpected"),
])


class TestHeuristicShortCircuitProperty:
    """Confident heuristic answers never reach the paid API."""

    @given(signals=signal_set_strategy())
    @settings(max_examples=100)
    def test_authoritative_called_iff_heuristic_low(self, signals: SignalSet) -> None:
        """
        *For any* caller signals, the authoritative client SHALL be called
        exactly once when the heuristic is low and never otherwise.
        """
        search = MockSearchClient()
        orchestrator = CheckOrchestrator(search)

        result = run_async(orchestrator.check("example.com", signals=signals))
        heuristic = DecisionEngine().classify(signals)

        if heuristic.confidence == Confidence.LOW:
            assert search.call_count == 1
            assert result.method == CheckMethod.AUTHORITATIVE
        else:
            assert search.call_count == 0
            assert result == heuristic

    @given(signals=signal_set_strategy())
    @settings(max_examples=50)
    def test_force_skips_heuristic(self, signals: SignalSet) -> None:
        """*For any* signals, a forced check SHALL always ask the API once."""
        search = MockSearchClient()
        enrichment = MockEnrichmentClient(signals)
        orchestrator = CheckOrchestrator(search, enrichment_client=enrichment)

        result = run_async(orchestrator.check(
            "example.com", signals=signals, force_authoritative=True,
        ))

        assert search.call_count == 1
        assert enrichment.calls == []
        assert result.method == CheckMethod.AUTHORITATIVE


class TestGracefulDegradationProperty:
    """Authoritative failures never propagate."""

    @given(signals=low_signal_strategy(), error=error_strategy)
    @settings(max_examples=100)
    def test_failure_returns_heuristic_result(self, signals: SignalSet, error: Exception) -> None:
        """
        *For any* low-confidence signals and any authoritative error, the
        result SHALL be the heuristic one.
        """
        heuristic = DecisionEngine().classify(signals)
        assert heuristic.confidence == Confidence.LOW

        orchestrator = CheckOrchestrator(MockSearchClient(error=error))
        result = run_async(orchestrator.check("example.com", signals=signals))

        assert result == heuristic

    @given(error=error_strategy, force=st.booleans())
    @settings(max_examples=20)
    def test_failure_without_signals_returns_safe_fallback(
        self,
        error: Exception,
        force: bool,
    ) -> None:
        """
        *For any* authoritative error without a heuristic result, the result
        SHALL be not indexed, low confidence, heuristic method.
        """
        output = StringIO()
        logger = AuditLogger(output_format="json", output_stream=output)
        orchestrator = CheckOrchestrator(MockSearchClient(error=error), logger=logger)

        result = run_async(orchestrator.check("example.com", force_authoritative=force))

        assert result.indexed is False
        assert result.confidence == Confidence.LOW
        assert result.method == CheckMethod.HEURISTIC
        assert result.signals is None

        warnings = [e for e in logger.entries if e.level == LogLevel.WARN]
        assert len(warnings) == 1
        assert warnings[0].data["error_type"] == type(error).__name__

    def test_forced_check_with_signals_falls_back_to_default(self) -> None:
        signals = SignalSet(keywords_top_100=10, traffic=5, backlinks=0)
        orchestrator = CheckOrchestrator(MockSearchClient(error=RuntimeError("down")))

        result = run_async(orchestrator.check(
            "example.com", signals=signals, force_authoritative=True,
        ))

        assert result.indexed is False
        assert result.confidence == Confidence.LOW


class TestEnrichmentProperty:
    """Signals are fetched when the caller supplies none."""

    def test_enriched_high_confidence_skips_api(self) -> None:
        enrichment = MockEnrichmentClient(SignalSet(keywords_top_100=3, traffic=0, backlinks=0))
        search = MockSearchClient()
        orchestrator = CheckOrchestrator(search, enrichment_client=enrichment)

        result = run_async(orchestrator.check("example.com"))

        assert enrichment.calls == ["example.com"]
        assert search.call_count == 0
        assert result.confidence == Confidence.HIGH
        assert result.signals.keywords_top_100 == 3

    def test_no_enriched_signals_goes_to_api(self) -> None:
        enrichment = MockEnrichmentClient(None)
        search = MockSearchClient()
        orchestrator = CheckOrchestrator(search, enrichment_client=enrichment)

        result = run_async(orchestrator.check("example.com"))

        assert search.call_count == 1
        assert result.method == CheckMethod.AUTHORITATIVE

    def test_caller_signals_are_not_enriched(self) -> None:
        enrichment = MockEnrichmentClient(SignalSet(keywords_top_100=3, traffic=0, backlinks=0))
        orchestrator = CheckOrchestrator(MockSearchClient(), enrichment_client=enrichment)

        run_async(orchestrator.check(
            "example.com",
            signals=SignalSet(keywords_top_100=1, traffic=0, backlinks=0),
        ))

        assert enrichment.calls == []
