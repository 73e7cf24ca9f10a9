"""
Property-based tests for Decision Engine module.

Uses Hypothesis to check the heuristic classification rules.
"""

from typing import Optional

from hypothesis import given, settings, assume
from hypothesis import strategies as st

from checkindex.decision_engine import DecisionEngine
from checkindex.enums import CheckMethod, Confidence
from checkindex.models import SignalSet


@st.composite
def signal_set_strategy(
    draw,
    keywords: Optional[int] = None,
    traffic: Optional[float] = None,
) -> SignalSet:
    """Generate SignalSets, optionally pinning keywords and traffic."""
    return SignalSet(
        keywords_top_100=(
            keywords if keywords is not None
            else draw(st.integers(min_value=0, max_value=10_000))
        ),
        traffic=(
            traffic if traffic is not None
            else draw(st.floats(min_value=0.0, max_value=1e7, allow_nan=False))
        ),
        backlinks=draw(st.integers(min_value=0, max_value=10_000)),
        domain_age_years=draw(st.one_of(
            st.none(),
            st.floats(min_value=0.0, max_value=40.0, allow_nan=False),
        )),
    )


class TestHighConfidenceProperty:
    """Ranking keywords or traffic prove indexation."""

    @given(signals=signal_set_strategy())
    @settings(max_examples=100)
    def test_keywords_or_traffic_is_high(self, signals: SignalSet) -> None:
        """
        *For any* signals with keywords or traffic, the verdict SHALL be
        indexed with high confidence regardless of the other signals.
        """
        assume(signals.keywords_top_100 > 0 or signals.traffic > 0)

        result = DecisionEngine().classify(signals)

        assert result.indexed is True
        assert result.confidence == Confidence.HIGH
        assert result.method == CheckMethod.HEURISTIC
        assert result.signals == signals


class TestMediumAndLowConfidenceProperty:
    """Without keywords and traffic, backlinks on an old domain decide."""

    @given(signals=signal_set_strategy(keywords=0, traffic=0.0))
    @settings(max_examples=100)
    def test_backlinks_and_age_decide(self, signals: SignalSet) -> None:
        """
        *For any* signals without keywords and traffic, the verdict SHALL be
        indexed/medium iff backlinks > 0 and age > 1, else not indexed/low.
        """
        result = DecisionEngine().classify(signals)
        age = signals.domain_age_years or 0

        if signals.backlinks > 0 and age > 1:
            assert result.indexed is True
            assert result.confidence == Confidence.MEDIUM
        else:
            assert result.indexed is False
            assert result.confidence == Confidence.LOW
        assert result.method == CheckMethod.HEURISTIC

    def test_unknown_age_counts_as_zero(self) -> None:
        signals = SignalSet(keywords_top_100=0, traffic=0, backlinks=500)
        result = DecisionEngine().classify(signals)
        assert result.confidence == Confidence.LOW
        assert result.indexed is False

    def test_age_of_exactly_one_year_is_low(self) -> None:
        signals = SignalSet(keywords_top_100=0, traffic=0, backlinks=3, domain_age_years=1.0)
        assert DecisionEngine().classify(signals).confidence == Confidence.LOW

    def test_all_zero_is_low(self) -> None:
        result = DecisionEngine().classify(SignalSet(0, 0.0, 0, 0.0))
        assert result.indexed is False
        assert result.confidence == Confidence.LOW
        assert result.indexed_pages_count is None


class TestDeterminismProperty:
    """Classification is pure."""

    @given(signals=signal_set_strategy())
    @settings(max_examples=100)
    def test_same_signals_same_result(self, signals: SignalSet) -> None:
        """*For any* signals, classifying twice SHALL yield equal results."""
        engine = DecisionEngine()
        assert engine.classify(signals) == engine.classify(signals)
