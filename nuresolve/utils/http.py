"""
HTTP client utilities for nuresolve.

This module provides an asynchronous HTTP client with retry logic,
concurrency control, and a response cache that keeps registry documents
fresh for a fixed number of days regardless of the registry's own cache
directives.
"""

from __future__ import annotations

import json
import httpx
import random
import asyncio
from pathlib import Path
from typing import Any, Dict, Optional, cast

from nuresolve.utils.logger import get_logger
from nuresolve.utils.cache import ResponseCache
from nuresolve.__version__ import __version__
from nuresolve.exceptions import NetworkError
from nuresolve.constants import (
    DEFAULT_TIMEOUT,
    DEFAULT_MAX_RETRIES,
    DEFAULT_MAX_CONCURRENCY,
    DEFAULT_CACHE_MAX_AGE_DAYS,
    USER_AGENT_TEMPLATE,
)

logger = get_logger("http")

_SECONDS_PER_DAY = 24 * 60 * 60
_DEFAULT_RETRY_AFTER = 1


def _retry_after_seconds(response: httpx.Response) -> int:
    """Return the ``Retry-After`` delay in seconds.

    HTTP-date and otherwise unparsable values fall back to a one second
    delay.
    """
    value = response.headers.get("Retry-After", "")
    try:
        return max(int(value), 0)
    except ValueError:
        return _DEFAULT_RETRY_AFTER


class HTTPClient:
    """Asynchronous HTTP client with retries, caching, and concurrency control.

    Args:
        timeout: Request timeout in seconds.
        max_retries: Maximum number of retry attempts.
        verify_ssl: Whether to verify SSL certificates.
        user_agent: Custom User-Agent header value.
        max_concurrency: Maximum number of concurrent requests.
        cache_max_age_days: Freshness window of cached response bodies.
        cache_dir: Optional directory persisting cached response bodies.

    Example:
        >>> async with HTTPClient() as client:
        ...     index = await client.get_json("https://api.nuget.org/v3/index.json")
    """

    def __init__(
        self,
        *,
        timeout: int = DEFAULT_TIMEOUT,
        max_retries: int = DEFAULT_MAX_RETRIES,
        verify_ssl: bool = True,
        user_agent: Optional[str] = None,
        max_concurrency: int = DEFAULT_MAX_CONCURRENCY,
        cache_max_age_days: int = DEFAULT_CACHE_MAX_AGE_DAYS,
        cache_dir: Optional[Path] = None,
    ) -> None:
        self.timeout = timeout
        self.max_retries = max_retries
        self.verify_ssl = verify_ssl
        self.user_agent = user_agent or USER_AGENT_TEMPLATE.format(version=__version__)
        self.max_concurrency = max_concurrency
        self.cache = ResponseCache(
            max_age=cache_max_age_days * _SECONDS_PER_DAY,
            cache_dir=cache_dir,
        )

        self._client: Optional[httpx.AsyncClient] = None
        self._semaphore = asyncio.Semaphore(max_concurrency)
        self._max_429_retries: int = 5

    async def __aenter__(self) -> "HTTPClient":
        await self._ensure_client()
        return self

    async def __aexit__(self, exc_type: Any, exc: Any, tb: Any) -> None:
        await self.close()

    async def _ensure_client(self) -> None:
        """Initialize the underlying httpx client if needed."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=httpx.Timeout(self.timeout),
                http2=True,
                verify=self.verify_ssl,
                follow_redirects=True,
                headers={"User-Agent": self.user_agent},
            )

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def _request_with_retry(
        self,
        method: str,
        url: str,
        **kwargs: Any,
    ) -> httpx.Response:
        """Execute an HTTP request with retry and backoff logic."""
        await self._ensure_client()
        assert self._client is not None

        last_exc: Optional[Exception] = None
        retry_429_count = 0

        for attempt in range(self.max_retries + 1):
            try:
                async with self._semaphore:
                    response = await self._client.request(method, url, **kwargs)

                if response.status_code == 429:
                    retry_429_count += 1
                    if retry_429_count > self._max_429_retries:
                        raise NetworkError(
                            f"Rate limit exceeded after {self._max_429_retries} retries",
                            url=url,
                            status_code=429,
                        )
                    retry_after = _retry_after_seconds(response)
                    logger.warning(
                        "Rate limited (429), retrying after %ds (%d/%d)",
                        retry_after,
                        retry_429_count,
                        self._max_429_retries,
                    )
                    await asyncio.sleep(retry_after)
                    continue

                if response.status_code >= 400:
                    response.raise_for_status()

                return response

            except httpx.TimeoutException as exc:
                last_exc = exc
                logger.warning(
                    "Request timeout (%d/%d): %s",
                    attempt + 1,
                    self.max_retries + 1,
                    url,
                )

            except httpx.RequestError as exc:
                # Dropped connections surface as protocol errors
                last_exc = exc
                logger.warning(
                    "Network error (%d/%d): %s",
                    attempt + 1,
                    self.max_retries + 1,
                    exc,
                )

            except httpx.HTTPStatusError as exc:
                # Client errors are final, a retry yields the same answer
                if 400 <= exc.response.status_code < 500:
                    raise NetworkError(
                        f"HTTP {exc.response.status_code} error for {url}",
                        url=url,
                        status_code=exc.response.status_code,
                        response_body=exc.response.text,
                    ) from exc
                last_exc = exc
                logger.warning(
                    "HTTP %d error (%d/%d): %s",
                    exc.response.status_code,
                    attempt + 1,
                    self.max_retries + 1,
                    url,
                )

            if attempt < self.max_retries:
                delay = (2**attempt) + random.uniform(0.0, 0.3)
                logger.debug("Retrying in %.2fs", delay)
                await asyncio.sleep(delay)

        raise NetworkError(
            f"Request failed after {self.max_retries + 1} attempts: {url}",
            url=url,
        ) from last_exc

    async def get(self, url: str, **kwargs: Any) -> httpx.Response:
        """Perform an uncached GET request with retry logic."""
        return await self._request_with_retry("GET", url, **kwargs)

    async def get_text(self, url: str, **kwargs: Any) -> str:
        """Return the body of *url*, served from the response cache if fresh.

        Raises:
            NetworkError: The request failed or returned an empty body.
        """
        cached = self.cache.get(url)
        if cached is not None:
            logger.debug("Retrieved '%s' response from local cache.", url)
            return cached

        response = await self.get(url, **kwargs)
        body = response.text
        if not body:
            raise NetworkError(
                f"Failed to get a response body from '{url}'.",
                url=url,
                status_code=response.status_code,
            )

        logger.debug("Retrieved '%s' response from remote server.", url)
        self.cache.put(url, body)
        return body

    async def get_json(self, url: str, **kwargs: Any) -> Dict[str, Any]:
        """Fetch a URL and parse the response as a JSON object."""
        body = await self.get_text(url, **kwargs)

        try:
            data = json.loads(body)
        except ValueError as exc:
            raise NetworkError(
                f"Invalid JSON response from {url}",
                url=url,
                response_body=body,
            ) from exc

        if not isinstance(data, dict):
            raise NetworkError(
                f"Expected JSON object from {url}",
                url=url,
                response_body=body,
            )

        return cast(Dict[str, Any], data)
