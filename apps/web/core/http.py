"""
Shared HTTP transport for provider adapters.

Wraps an httpx.AsyncClient with rate limiting and retry/backoff so each
adapter only deals with its provider's URLs, headers, and payloads.
"""

import asyncio
import json
import logging
from datetime import UTC, datetime
from typing import Any

import httpx

logger = logging.getLogger(__name__)


class ProviderRequestError(Exception):
    """A provider HTTP request failed (after retries, or with a 4xx)."""

    def __init__(
        self,
        message: str,
        provider: str,
        status_code: int | None = None,
        response_body: str | None = None,
        retry_after: int | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.provider = provider
        self.status_code = status_code
        self.response_body = response_body
        self.retry_after = retry_after

    def json(self) -> dict[str, Any]:
        """Best-effort parse of the provider's error body."""
        if not self.response_body:
            return {}
        try:
            data = json.loads(self.response_body)
        except ValueError:
            return {}
        return data if isinstance(data, dict) else {}


class RateLimiter:
    """Simple rate limiter for API requests."""

    def __init__(self, requests_per_second: float = 10.0) -> None:
        self.min_interval = 1.0 / requests_per_second
        self.last_request: datetime | None = None
        self._lock = asyncio.Lock()

    async def acquire(self) -> None:
        """Wait until a request can be made within rate limits."""
        async with self._lock:
            if self.last_request:
                elapsed = (datetime.now(UTC) - self.last_request).total_seconds()
                if elapsed < self.min_interval:
                    await asyncio.sleep(self.min_interval - elapsed)
            self.last_request = datetime.now(UTC)


class ProviderHTTPClient:
    """
    Rate-limited, retrying HTTP client bound to one provider base URL.

    Transport errors and 5xx responses are retried with exponential
    backoff. 4xx responses (including 429) fail immediately: they carry
    business errors such as declines that a retry cannot fix.
    """

    MAX_RETRIES = 3
    RETRY_BACKOFF_BASE = 2.0

    def __init__(
        self,
        provider: str,
        base_url: str,
        http_client: httpx.AsyncClient | None = None,
        requests_per_second: float = 10.0,
        default_headers: dict[str, str] | None = None,
    ) -> None:
        """
        Initialize the transport.

        Args:
            provider: Provider name used in errors and log lines.
            base_url: Scheme and host all request paths are joined to.
            http_client: Optional HTTP client for dependency injection (testing).
            requests_per_second: Client-side rate limit.
            default_headers: Headers sent with every request.
        """
        self.provider = provider
        self.base_url = base_url.rstrip("/")
        self._client = http_client or httpx.AsyncClient(timeout=30.0)
        self._owns_client = http_client is None
        self._rate_limiter = RateLimiter(requests_per_second)
        self._default_headers = default_headers or {}

    async def close(self) -> None:
        """Close the HTTP client if we own it."""
        if self._owns_client:
            await self._client.aclose()

    async def request(
        self,
        method: str,
        path: str,
        access_token: str,
        **kwargs: Any,
    ) -> httpx.Response:
        """
        Make an HTTP request with rate limiting and retry logic.

        Args:
            method: HTTP method (GET, POST, etc.)
            path: Path relative to the base URL, or an absolute URL.
            access_token: Bearer token for the Authorization header.
            **kwargs: Additional arguments passed to httpx

        Returns:
            HTTP response (2xx)

        Raises:
            ProviderRequestError: On a 4xx, or if the request fails after retries.
        """
        url = path if path.startswith("http") else f"{self.base_url}{path}"
        headers = {
            "Authorization": f"Bearer {access_token}",
            "Content-Type": "application/json",
            **self._default_headers,
            **kwargs.pop("headers", {}),
        }

        attempt = 0
        while True:
            await self._rate_limiter.acquire()

            try:
                response = await self._client.request(
                    method, url, headers=headers, **kwargs
                )
            except httpx.RequestError as e:
                error = ProviderRequestError(
                    f"{self.provider} request failed: {e}",
                    provider=self.provider,
                )
            else:
                if response.is_success:
                    return response

                error = ProviderRequestError(
                    f"{self.provider} API returned {response.status_code}",
                    provider=self.provider,
                    status_code=response.status_code,
                    response_body=response.text,
                    retry_after=_parse_retry_after(response),
                )
                if response.status_code < 500:
                    raise error

            attempt += 1
            if attempt >= self.MAX_RETRIES:
                error.message = (
                    f"{self.provider} API request failed after {self.MAX_RETRIES} "
                    f"attempts: {error.message}"
                )
                raise error

            backoff = self.RETRY_BACKOFF_BASE ** (attempt - 1)
            logger.warning(
                "%s API failed (attempt %d/%d), retry in %.1fs: %s",
                self.provider,
                attempt,
                self.MAX_RETRIES,
                backoff,
                error,
            )
            await asyncio.sleep(backoff)


def _parse_retry_after(response: httpx.Response) -> int | None:
    value = response.headers.get("Retry-After")
    if not value:
        return None
    try:
        return int(value)
    except ValueError:
        return None
