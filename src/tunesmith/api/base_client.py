"""
Base API Client

Rate-limited aiohttp requests with retries for the catalog clients.

Retry policy:
- transport errors, timeouts and 5xx responses are retried with exponential backoff
- 429 responses are retried after ``Retry-After`` seconds when the header is present
- any other 4xx response fails immediately
Every failure that reaches the caller is a CatalogUnavailable.
"""

import asyncio
import json
import random
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

import aiohttp
import structlog

from ..exceptions import CatalogUnavailable
from .rate_limiter import UnifiedRateLimiter

logger = structlog.get_logger(__name__)

MAX_BACKOFF_SECONDS = 60.0


class _RetryableFailure(Exception):
    """One attempt failed in a way that is worth another try."""

    def __init__(self, reason: str, status: Optional[int] = None, delay: Optional[float] = None):
        super().__init__(reason)
        self.reason = reason
        self.status = status
        self.delay = delay


class BaseAPIClient(ABC):
    """
    Base HTTP client for one upstream service.

    Use as an async context manager; the aiohttp session lives for the
    duration of the ``async with`` block.
    """

    def __init__(
        self,
        base_url: str,
        rate_limiter: UnifiedRateLimiter,
        timeout: int = 10,
        service_name: str = "api"
    ):
        """
        Args:
            base_url: Base URL for the API
            rate_limiter: Limiter shared with other clients of the same upstream
            timeout: Total timeout per HTTP request in seconds
            service_name: Service name for logging and error messages
        """
        self.base_url = base_url.rstrip('/')
        self.rate_limiter = rate_limiter
        self.timeout = timeout
        self.service_name = service_name
        self.session: Optional[aiohttp.ClientSession] = None

        self.logger = logger.bind(service=service_name, component="BaseAPIClient")

    async def __aenter__(self):
        self.session = aiohttp.ClientSession(timeout=aiohttp.ClientTimeout(total=self.timeout))
        self.logger.debug("API client session started")
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def close(self) -> None:
        if self.session:
            await self.session.close()
            self.session = None
            self.logger.debug("API client session closed")

    async def _make_request(
        self,
        endpoint: str,
        params: Optional[Dict[str, Any]] = None,
        method: str = "GET",
        headers: Optional[Dict[str, str]] = None,
        json_body: Optional[Dict[str, Any]] = None,
        retries: int = 3
    ) -> Dict[str, Any]:
        """
        Send a request, retrying according to the module's retry policy.

        Args:
            endpoint: Path relative to ``base_url``
            params: Query parameters
            method: HTTP method
            headers: Extra request headers
            json_body: JSON body for POST/PUT
            retries: Retries after the first attempt

        Returns:
            Parsed JSON body, or ``{}`` for 204 No Content

        Raises:
            CatalogUnavailable: When the request cannot be completed
        """
        if not self.session:
            raise RuntimeError(f"{self.service_name} client not initialized. Use async context manager.")

        url = f"{self.base_url}/{endpoint.lstrip('/')}" if endpoint else self.base_url
        request_headers = {'User-Agent': f'Tunesmith-{self.service_name}/1.0', **(headers or {})}

        failure: Optional[_RetryableFailure] = None
        for attempt in range(retries + 1):
            await self.rate_limiter.wait_if_needed()

            try:
                return await self._attempt(method, url, endpoint, params, json_body, request_headers, attempt)
            except _RetryableFailure as e:
                failure = e

            self.logger.warning(
                "Request attempt failed",
                endpoint=endpoint,
                attempt=attempt + 1,
                max_attempts=retries + 1,
                reason=failure.reason,
                status=failure.status
            )
            if attempt == retries:
                break
            if failure.delay is not None:
                await asyncio.sleep(failure.delay)
            else:
                await self._exponential_backoff(attempt)

        raise CatalogUnavailable(
            f"{self.service_name} request failed after {retries + 1} attempts: {failure.reason}",
            status=failure.status
        )

    async def _attempt(
        self,
        method: str,
        url: str,
        endpoint: str,
        params: Optional[Dict[str, Any]],
        json_body: Optional[Dict[str, Any]],
        headers: Dict[str, str],
        attempt: int
    ) -> Dict[str, Any]:
        """Run one HTTP exchange; raise _RetryableFailure or CatalogUnavailable on failure."""
        self.logger.debug("Making API request", method=method, endpoint=endpoint, attempt=attempt + 1)

        try:
            async with self.session.request(
                method=method,
                url=url,
                params=params,
                json=json_body,
                headers=headers
            ) as response:
                status = response.status

                if status in (200, 201):
                    data = await self._parse_response(response)
                    error_info = self._extract_api_error(data)
                    if error_info:
                        self.logger.error("API error in response body", error=error_info, endpoint=endpoint)
                        raise CatalogUnavailable(f"{self.service_name} API error: {error_info}", status=status)
                    return data

                if status == 204:
                    return {}

                if status == 429:
                    raise _RetryableFailure(
                        "rate limited",
                        status=status,
                        delay=self._calculate_backoff_time(response, attempt)
                    )

                if 400 <= status < 500:
                    self.logger.warning("HTTP client error", status=status, endpoint=endpoint)
                    raise CatalogUnavailable(f"{self.service_name} client error: {status}", status=status)

                raise _RetryableFailure(f"server error {status}", status=status)

        except asyncio.TimeoutError as e:
            raise _RetryableFailure(f"timed out after {self.timeout}s") from e
        except aiohttp.ClientError as e:
            raise _RetryableFailure(f"{type(e).__name__}: {e}") from e

    async def _parse_response(self, response: aiohttp.ClientResponse) -> Dict[str, Any]:
        """Decode a JSON body regardless of the declared content type."""
        try:
            return await response.json(content_type=None) or {}
        except (json.JSONDecodeError, aiohttp.ContentTypeError) as e:
            self.logger.error("Invalid JSON response", error=str(e))
            raise CatalogUnavailable(f"{self.service_name} returned invalid JSON") from e

    @abstractmethod
    def _extract_api_error(self, data: Dict[str, Any]) -> Optional[str]:
        """Return the upstream's error message embedded in a success body, if any."""

    def _calculate_backoff_time(self, response: aiohttp.ClientResponse, attempt: int) -> float:
        """Seconds to wait after a 429: ``Retry-After`` when parseable, else 2^attempt."""
        retry_after = response.headers.get('Retry-After')
        if retry_after:
            try:
                return float(retry_after)
            except ValueError:
                self.logger.debug("Unparseable Retry-After header", retry_after=retry_after)

        return min(2 ** attempt, MAX_BACKOFF_SECONDS)

    async def _exponential_backoff(self, attempt: int, base_delay: float = 1.0) -> None:
        """Sleep ``base_delay * 2^attempt`` plus 10-30% jitter, capped at one minute."""
        delay = base_delay * (2 ** attempt)
        total_delay = min(delay + random.uniform(0.1, 0.3) * delay, MAX_BACKOFF_SECONDS)

        self.logger.debug("Backing off before retry", attempt=attempt + 1, delay=round(total_delay, 2))
        await asyncio.sleep(total_delay)
