"""
Search API client for authoritative indexation checks.

Queries the Custom Search JSON API with the ``site:`` operator. The API is
paid beyond a small free tier, so callers only reach it when the heuristic
layer is unsure or when a check is explicitly forced.
"""

from typing import Optional

import httpx

from .config import SearchAPIConfig
from .enums import CheckMethod, Confidence
from .exceptions import ConfigurationError, NetworkError, SearchAPIError
from .models import CheckResult


class SearchClient:
    """
    Async client for the authoritative search API.

    Every failure is raised as a CheckIndexError subclass; degrading to the
    heuristic answer is the orchestrator's job.
    """

    def __init__(
        self,
        config: SearchAPIConfig,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        """
        Initialize the search client.

        Args:
            config: API credentials, endpoint and timeout
            transport: Optional httpx transport (tests use httpx.MockTransport)
        """
        self._config = config
        self._transport = transport

    @property
    def config(self) -> SearchAPIConfig:
        return self._config

    async def check(self, domain: str) -> CheckResult:
        """
        Ask the search API how many pages of ``domain`` it has indexed.

        Args:
            domain: Normalized domain

        Returns:
            CheckResult with method ``authoritative`` and high confidence

        Raises:
            ConfigurationError: If the API key or engine id is missing
            SearchAPIError: On a non-2xx status or an error object in the body
            NetworkError: On transport failure or timeout
        """
        if not self._config.has_credentials:
            raise ConfigurationError(
                code="search_api_credentials_missing",
                message="GOOGLE_CSE_API_KEY and GOOGLE_CSE_CX must be set",
            )

        params = {
            "key": self._config.api_key,
            "cx": self._config.engine_id,
            "q": f"site:{domain}",
            "num": "1",
        }

        try:
            async with httpx.AsyncClient(
                transport=self._transport,
                timeout=httpx.Timeout(self._config.timeout_seconds),
            ) as client:
                response = await client.get(self._config.endpoint, params=params)
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            raise NetworkError(
                code="search_api_unreachable",
                message=f"Search API request failed: {e}",
                details={"domain": domain, "error_type": type(e).__name__},
            ) from e

        if not response.is_success:
            raise SearchAPIError(
                code="search_api_http_error",
                message=(
                    f"Search API error: {response.status_code} {response.reason_phrase}"
                ),
                details={
                    "domain": domain,
                    "status_code": response.status_code,
                    "reason": response.reason_phrase,
                },
            )

        try:
            data = response.json()
        except ValueError as e:
            raise SearchAPIError(
                code="search_api_invalid_response",
                message=f"Search API returned invalid JSON: {e}",
                details={"domain": domain, "status_code": response.status_code},
            ) from e

        if not isinstance(data, dict):
            raise SearchAPIError(
                code="search_api_invalid_response",
                message="Search API returned an unexpected body",
                details={"domain": domain},
            )

        error = data.get("error")
        if error:
            error_code = error.get("code") if isinstance(error, dict) else None
            error_message = error.get("message") if isinstance(error, dict) else str(error)
            raise SearchAPIError(
                code="search_api_error",
                message=f"Search API error {error_code}: {error_message}",
                details={"domain": domain, "provider_code": error_code},
            )

        total = self._parse_total(data)
        return CheckResult(
            indexed=total > 0,
            confidence=Confidence.HIGH,
            method=CheckMethod.AUTHORITATIVE,
            indexed_pages_count=total,
        )

    def _parse_total(self, data: dict) -> int:
        """Read searchInformation.totalResults; absent, unparsable or negative means zero."""
        info = data.get("searchInformation") or {}
        raw = info.get("totalResults", "0") if isinstance(info, dict) else "0"
        try:
            return max(int(raw), 0)
        except (TypeError, ValueError):
            return 0
