"""
Tests for the authoritative search API client.

HTTP is mocked with httpx.MockTransport; no request leaves the process.
"""

import httpx
import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from checkindex.config import SearchAPIConfig
from checkindex.enums import CheckMethod, Confidence
from checkindex.exceptions import ConfigurationError, NetworkError, SearchAPIError
from checkindex.search_client import SearchClient

from helpers import run_async


def make_config(**overrides) -> SearchAPIConfig:
    values = {"api_key": "test-key", "engine_id": "test-cx"}
    values.update(overrides)
    return SearchAPIConfig(**values)


class RecordingTransport(httpx.MockTransport):
    """MockTransport that keeps every request it served."""

    def __init__(self, handler) -> None:
        self.requests: list[httpx.Request] = []

        def record(request: httpx.Request) -> httpx.Response:
            self.requests.append(request)
            return handler(request)

        super().__init__(record)


class TestSearchResultProperty:
    """Mapping of totalResults to a verdict."""

    @given(total=st.integers(min_value=0, max_value=10**9))
    @settings(max_examples=50)
    def test_total_results_map_to_verdict(self, total: int) -> None:
        """
        *For any* totalResults, the verdict SHALL be indexed iff total > 0,
        always with high confidence and the page count attached.
        """
        transport = RecordingTransport(lambda request: httpx.Response(
            200, json={"searchInformation": {"totalResults": str(total)}},
        ))
        client = SearchClient(make_config(), transport=transport)

        result = run_async(client.check("example.com"))

        assert result.indexed == (total > 0)
        assert result.confidence == Confidence.HIGH
        assert result.method == CheckMethod.AUTHORITATIVE
        assert result.indexed_pages_count == total

    def test_query_parameters(self) -> None:
        transport = RecordingTransport(lambda request: httpx.Response(
            200, json={"searchInformation": {"totalResults": "3"}},
        ))
        client = SearchClient(make_config(), transport=transport)

        run_async(client.check("example.com"))

        assert len(transport.requests) == 1
        params = transport.requests[0].url.params
        assert params["q"] == "site:example.com"
        assert params["num"] == "1"
        assert params["key"] == "test-key"
        assert params["cx"] == "test-cx"
        assert transport.requests[0].url.host == "www.googleapis.com"

    def test_missing_total_counts_as_zero(self) -> None:
        transport = RecordingTransport(lambda request: httpx.Response(200, json={}))
        client = SearchClient(make_config(), transport=transport)

        result = run_async(client.check("example.com"))

        assert result.indexed is False
        assert result.indexed_pages_count == 0

    @given(total=st.integers(min_value=-10**6, max_value=-1))
    @settings(max_examples=20)
    def test_negative_total_counts_as_zero(self, total: int) -> None:
        """*For any* negative totalResults, the page count SHALL be zero and not indexed."""
        transport = RecordingTransport(lambda request: httpx.Response(
            200, json={"searchInformation": {"totalResults": str(total)}},
        ))
        client = SearchClient(make_config(), transport=transport)

        result = run_async(client.check("example.com"))

        assert result.indexed is False
        assert result.indexed_pages_count == 0


class TestSearchErrorsProperty:
    """Every failure surfaces as a typed CheckIndexError."""

    @pytest.mark.parametrize("overrides", [
        {"api_key": None},
        {"engine_id": None},
        {"api_key": "", "engine_id": ""},
    ])
    def test_missing_credentials_raise_before_network(self, overrides: dict) -> None:
        transport = RecordingTransport(lambda request: httpx.Response(200, json={}))
        client = SearchClient(make_config(**overrides), transport=transport)

        with pytest.raises(ConfigurationError):
            run_async(client.check("example.com"))
        assert transport.requests == []

    @given(status=st.sampled_from([400, 401, 403, 404, 429, 500, 502, 503]))
    @settings(max_examples=20)
    def test_non_success_status_raises(self, status: int) -> None:
        """*For any* non-2xx status, the client SHALL raise SearchAPIError."""
        transport = RecordingTransport(lambda request: httpx.Response(status))
        client = SearchClient(make_config(), transport=transport)

        with pytest.raises(SearchAPIError) as exc_info:
            run_async(client.check("example.com"))

        assert exc_info.value.details["status_code"] == status
        assert str(status) in exc_info.value.message

    def test_error_object_in_body_raises(self) -> None:
        transport = RecordingTransport(lambda request: httpx.Response(
            200, json={"error": {"code": 429, "message": "Quota exceeded"}},
        ))
        client = SearchClient(make_config(), transport=transport)

        with pytest.raises(SearchAPIError) as exc_info:
            run_async(client.check("example.com"))

        assert "Quota exceeded" in exc_info.value.message
        assert exc_info.value.details["provider_code"] == 429

    def test_transport_failure_raises_network_error(self) -> None:
        def fail(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        client = SearchClient(make_config(), transport=httpx.MockTransport(fail))

        with pytest.raises(NetworkError):
            run_async(client.check("example.com"))
