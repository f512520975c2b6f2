from __future__ import annotations

import httpx
import pytest
from pathlib import Path
from typing import Callable, List
from unittest.mock import AsyncMock, patch

from nuresolve.utils.http import HTTPClient
from nuresolve.exceptions import NetworkError


# ============================================================================
# Fixtures
# ============================================================================


def client_with(handler: Callable[[httpx.Request], httpx.Response], **kwargs) -> HTTPClient:
    """Create an HTTPClient whose transport is answered by *handler*."""
    client = HTTPClient(**kwargs)
    client._client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return client


class Recorder:
    """Mock transport handler replaying a list of responses."""

    def __init__(self, *responses: httpx.Response) -> None:
        self.responses: List[httpx.Response] = list(responses)
        self.urls: List[str] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.urls.append(str(request.url))
        if len(self.responses) > 1:
            return self.responses.pop(0)
        return self.responses[0]


# ============================================================================
# Test: Initialization
# ============================================================================


@pytest.mark.unit
class TestHTTPClientInit:
    """Tests for HTTPClient initialization and configuration."""

    def test_default_values(self) -> None:
        """Test HTTPClient initializes with correct default values."""
        client = HTTPClient()

        assert client.timeout == 30
        assert client.max_retries == 3
        assert client.verify_ssl is True
        assert client.max_concurrency == 10
        assert "nuresolve" in client.user_agent
        assert client.cache.max_age == 7 * 24 * 60 * 60
        assert client._client is None

    def test_custom_values(self, tmp_path: Path) -> None:
        """Test HTTPClient accepts custom configuration values."""
        client = HTTPClient(
            timeout=10,
            max_retries=5,
            user_agent="CustomAgent/1.0",
            cache_max_age_days=1,
            cache_dir=tmp_path / "cache",
        )

        assert client.timeout == 10
        assert client.max_retries == 5
        assert client.user_agent == "CustomAgent/1.0"
        assert client.cache.max_age == 24 * 60 * 60
        assert (tmp_path / "cache").is_dir()

    @pytest.mark.asyncio
    async def test_context_manager(self) -> None:
        """Test that the context manager opens and closes the httpx client."""
        async with HTTPClient() as client:
            assert client._client is not None

        assert client._client is None


# ============================================================================
# Test: Requests
# ============================================================================


@pytest.mark.unit
class TestRequests:
    """Tests for retries and error mapping."""

    @pytest.mark.asyncio
    async def test_get_text(self) -> None:
        """Test a successful text request."""
        recorder = Recorder(httpx.Response(200, text="hello"))
        client = client_with(recorder)

        assert await client.get_text("https://feed.test/a") == "hello"
        await client.close()

    @pytest.mark.asyncio
    async def test_client_error_is_not_retried(self) -> None:
        """Test that 4xx responses raise NetworkError immediately."""
        recorder = Recorder(httpx.Response(404, text="not found"))
        client = client_with(recorder)

        with pytest.raises(NetworkError) as exc_info:
            await client.get_text("https://feed.test/missing")

        assert exc_info.value.status_code == 404
        assert len(recorder.urls) == 1
        await client.close()

    @pytest.mark.asyncio
    async def test_server_error_is_retried(self) -> None:
        """Test that 5xx responses are retried until success."""
        recorder = Recorder(httpx.Response(503), httpx.Response(200, text="ok"))
        client = client_with(recorder, max_retries=2)

        with patch("nuresolve.utils.http.asyncio.sleep", new_callable=AsyncMock):
            assert await client.get_text("https://feed.test/flaky") == "ok"

        assert len(recorder.urls) == 2
        await client.close()

    @pytest.mark.asyncio
    async def test_retries_exhausted(self) -> None:
        """Test that persistent server errors end in NetworkError."""
        recorder = Recorder(httpx.Response(500))
        client = client_with(recorder, max_retries=1)

        with patch("nuresolve.utils.http.asyncio.sleep", new_callable=AsyncMock):
            with pytest.raises(NetworkError, match="after 2 attempts"):
                await client.get_text("https://feed.test/broken")

        assert len(recorder.urls) == 2
        await client.close()

    @pytest.mark.asyncio
    async def test_rate_limit_honors_retry_after(self) -> None:
        """Test that 429 responses wait for Retry-After and try again."""
        recorder = Recorder(
            httpx.Response(429, headers={"Retry-After": "3"}),
            httpx.Response(200, text="ok"),
        )
        client = client_with(recorder)

        with patch("nuresolve.utils.http.asyncio.sleep", new_callable=AsyncMock) as sleep:
            assert await client.get_text("https://feed.test/limited") == "ok"

        sleep.assert_awaited_once_with(3)
        await client.close()

    @pytest.mark.asyncio
    async def test_unparsable_retry_after_uses_default_delay(self) -> None:
        """Test that an HTTP-date Retry-After waits one second instead of failing."""
        recorder = Recorder(
            httpx.Response(429, headers={"Retry-After": "Wed, 21 Oct 2026 07:28:00 GMT"}),
            httpx.Response(200, text="ok"),
        )
        client = client_with(recorder)

        with patch("nuresolve.utils.http.asyncio.sleep", new_callable=AsyncMock) as sleep:
            assert await client.get_text("https://feed.test/limited") == "ok"

        sleep.assert_awaited_once_with(1)
        await client.close()

    @pytest.mark.asyncio
    async def test_protocol_error_becomes_network_error(self) -> None:
        """Test that a dropped connection is retried, then wrapped in NetworkError.

        Edge case: RemoteProtocolError is neither a timeout nor an
        httpx.NetworkError.
        """
        attempts: List[str] = []

        def handler(request: httpx.Request) -> httpx.Response:
            attempts.append(str(request.url))
            raise httpx.RemoteProtocolError(
                "Server disconnected without sending a response.", request=request
            )

        client = client_with(handler, max_retries=1)

        with patch("nuresolve.utils.http.asyncio.sleep", new_callable=AsyncMock):
            with pytest.raises(NetworkError) as exc_info:
                await client.get_text("https://feed.test/dropped")

        assert isinstance(exc_info.value.__cause__, httpx.RemoteProtocolError)
        assert len(attempts) == 2
        await client.close()

    @pytest.mark.asyncio
    async def test_empty_body(self) -> None:
        """Test that an empty body is an error and is not cached."""
        client = client_with(Recorder(httpx.Response(200, text="")))

        with pytest.raises(NetworkError):
            await client.get_text("https://feed.test/empty")

        assert client.cache.get("https://feed.test/empty") is None
        await client.close()


# ============================================================================
# Test: Caching and JSON
# ============================================================================


@pytest.mark.unit
class TestCachingAndJson:
    """Tests for the response cache and JSON decoding."""

    @pytest.mark.asyncio
    async def test_cached_response_is_reused(self) -> None:
        """Test that a second request for the same URL hits the cache."""
        recorder = Recorder(httpx.Response(200, text='{"a": 1}'))
        client = client_with(recorder)

        first = await client.get_json("https://feed.test/doc.json")
        second = await client.get_json("https://feed.test/doc.json")

        assert first == second == {"a": 1}
        assert len(recorder.urls) == 1
        await client.close()

    @pytest.mark.asyncio
    async def test_invalid_json(self) -> None:
        """Test that unparsable JSON raises NetworkError."""
        client = client_with(Recorder(httpx.Response(200, text="<html>")))

        with pytest.raises(NetworkError, match="Invalid JSON"):
            await client.get_json("https://feed.test/doc.json")
        await client.close()

    @pytest.mark.asyncio
    async def test_json_must_be_object(self) -> None:
        """Test that a JSON array is rejected."""
        client = client_with(Recorder(httpx.Response(200, text="[1, 2]")))

        with pytest.raises(NetworkError, match="Expected JSON object"):
            await client.get_json("https://feed.test/doc.json")
        await client.close()
