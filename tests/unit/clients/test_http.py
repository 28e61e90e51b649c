"""
Tests for the HTTP client factory and timeout clamping.
"""

import httpx
import pytest

from promptcraft_gateway.clients.http import (
    DEFAULT_TIMEOUT_SECONDS,
    USER_AGENT,
    clamp_timeout,
    create_http_client,
)


class TestClampTimeout:
    """Tests for clamp_timeout()."""

    @pytest.mark.parametrize(
        "raw, expected",
        [(None, 30.0), (0, 30.0), (-5, 30.0), (0.2, 1.0), (12, 12.0), (600, 60.0)],
    )
    def test_default_bounds(self, raw, expected):
        assert clamp_timeout(raw) == expected

    def test_custom_bounds(self):
        assert clamp_timeout(None, default=5.0, maximum=20.0) == 5.0
        assert clamp_timeout(45, default=5.0, maximum=20.0) == 20.0


class TestCreateHTTPClient:
    """Tests for create_http_client()."""

    @pytest.mark.asyncio
    async def test_returns_async_client_with_timeout(self):
        client = create_http_client(base_url="https://api.example.com/v1", timeout_seconds=7)
        try:
            assert isinstance(client, httpx.AsyncClient)
            assert client.timeout.read == 7
            assert client.timeout.connect == 7
            assert str(client.base_url) == "https://api.example.com/v1/"
        finally:
            await client.aclose()

    @pytest.mark.asyncio
    async def test_default_timeout(self):
        client = create_http_client()
        try:
            assert client.timeout.read == DEFAULT_TIMEOUT_SECONDS
        finally:
            await client.aclose()

    @pytest.mark.asyncio
    async def test_headers_merged_over_defaults(self):
        client = create_http_client(headers={"Authorization": "Bearer k"})
        try:
            assert client.headers["User-Agent"] == USER_AGENT
            assert client.headers["Authorization"] == "Bearer k"
            assert client.headers["Content-Type"] == "application/json"
        finally:
            await client.aclose()

    @pytest.mark.asyncio
    async def test_injected_transport_is_used(self):
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request.url.path)
            return httpx.Response(200, json={"ok": True})

        async with create_http_client(
            base_url="https://api.example.com/v1", transport=httpx.MockTransport(handler)
        ) as client:
            response = await client.get("/models")

        assert response.json() == {"ok": True}
        assert seen == ["/v1/models"]
