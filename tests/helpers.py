"""
Shared test doubles for the checkindex test suite.
"""

import asyncio
from typing import Optional

from checkindex.enums import CheckMethod, Confidence
from checkindex.models import CheckResult, SignalSet


def run_async(coro):
    """Helper to run async code in tests."""
    return asyncio.run(coro)


class VirtualClock:
    """Clock whose time only moves when a test (or a sleep) advances it."""

    def __init__(self, start: float = 1_700_000_000.0) -> None:
        self.current = start
        self.sleeps: list[float] = []

    def now(self) -> float:
        return self.current

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.current += seconds
        await asyncio.sleep(0)

    def advance(self, seconds: float) -> None:
        self.current += seconds


class MockSearchClient:
    """Authoritative client double that records calls."""

    def __init__(
        self,
        result: Optional[CheckResult] = None,
        error: Optional[Exception] = None,
    ) -> None:
        self._result = result or CheckResult(
            indexed=True,
            confidence=Confidence.HIGH,
            method=CheckMethod.AUTHORITATIVE,
            indexed_pages_count=42,
        )
        self._error = error
        self.calls: list[str] = []

    @property
    def call_count(self) -> int:
        return len(self.calls)

    async def check(self, domain: str) -> CheckResult:
        self.calls.append(domain)
        await asyncio.sleep(0)
        if self._error is not None:
            raise self._error
        return self._result


class MockEnrichmentClient:
    """Enrichment double returning fixed signals."""

    def __init__(self, signals: Optional[SignalSet] = None) -> None:
        self._signals = signals
        self.calls: list[str] = []

    async def enrich(self, domain: str) -> Optional[SignalSet]:
        self.calls.append(domain)
        return self._signals
