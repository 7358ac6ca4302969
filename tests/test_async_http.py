"""Tests for AsyncHTTPClient (src/utils/async_http.py).

Covers single-shot fetches, transport errors, get_json retries on 5xx and
session lifecycle.
"""

import asyncio
import sys
from pathlib import Path
from unittest.mock import AsyncMock, patch

import aiohttp
import pytest

# Add project src path for imports (matches convention used by other test files)
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT / "src"))

aioresponses_mod = pytest.importorskip("aioresponses", reason="aioresponses package not installed")
from aioresponses import aioresponses

from errors import UpstreamError
from utils.async_http import AsyncHTTPClient, HTTPResponse, DEFAULT_TIMEOUT

TEST_URL = "http://example.com/api/data"
TEST_JSON = {"status": "ok", "items": [1, 2, 3]}


class TestHTTPResponse:
    def test_ok_range(self):
        assert HTTPResponse(status=204).ok
        assert not HTTPResponse(status=404).ok

    def test_json(self):
        assert HTTPResponse(status=200, body=b'{"a": 1}').json() == {"a": 1}

    def test_invalid_json_raises(self):
        with pytest.raises(UpstreamError):
            HTTPResponse(status=200, body=b"<html>").json()

    def test_header_case_insensitive(self):
        resp = HTTPResponse(status=200, headers={"X-RateLimit-Remaining": "42"})
        assert resp.header("x-ratelimit-remaining") == "42"
        assert resp.header("missing") is None


class TestFetch:
    @pytest.mark.asyncio
    async def test_fetch_returns_status_and_body(self):
        client = AsyncHTTPClient()
        with aioresponses() as m:
            m.get(TEST_URL, status=404, payload={"message": "Not Found"})
            resp = await client.fetch(TEST_URL)
        assert resp.status == 404
        assert resp.json() == {"message": "Not Found"}
        await client.close()

    @pytest.mark.asyncio
    async def test_fetch_does_not_retry(self):
        client = AsyncHTTPClient()
        with aioresponses() as m:
            m.get(TEST_URL, status=500)
            m.get(TEST_URL, status=200, payload=TEST_JSON)
            resp = await client.fetch(TEST_URL)
        assert resp.status == 500
        await client.close()

    @pytest.mark.asyncio
    async def test_fetch_timeout_raises_upstream_error(self):
        client = AsyncHTTPClient()
        with aioresponses() as m:
            m.get(TEST_URL, exception=asyncio.TimeoutError())
            with pytest.raises(UpstreamError) as exc_info:
                await client.fetch(TEST_URL)
        assert exc_info.value.status is None
        assert exc_info.value.status_code == 502
        await client.close()

    @pytest.mark.asyncio
    async def test_fetch_client_error_raises_upstream_error(self):
        client = AsyncHTTPClient()
        with aioresponses() as m:
            m.get(TEST_URL, exception=aiohttp.ClientConnectionError("boom"))
            with pytest.raises(UpstreamError):
                await client.fetch(TEST_URL)
        await client.close()


class TestGetJson:
    @pytest.mark.asyncio
    async def test_success(self):
        client = AsyncHTTPClient()
        with aioresponses() as m:
            m.get(TEST_URL, payload=TEST_JSON)
            assert await client.get_json(TEST_URL) == TEST_JSON
        await client.close()

    @pytest.mark.asyncio
    async def test_retries_server_error(self):
        client = AsyncHTTPClient()
        with aioresponses() as m, patch("utils.async_http.asyncio.sleep", new_callable=AsyncMock):
            m.get(TEST_URL, status=503)
            m.get(TEST_URL, payload=TEST_JSON)
            assert await client.get_json(TEST_URL) == TEST_JSON
        await client.close()

    @pytest.mark.asyncio
    async def test_client_error_returns_none(self):
        client = AsyncHTTPClient()
        with aioresponses() as m:
            m.get(TEST_URL, status=403)
            assert await client.get_json(TEST_URL) is None
        await client.close()

    @pytest.mark.asyncio
    async def test_exhausted_retries_return_none(self):
        client = AsyncHTTPClient()
        with aioresponses() as m, patch("utils.async_http.asyncio.sleep", new_callable=AsyncMock):
            m.get(TEST_URL, exception=asyncio.TimeoutError())
            m.get(TEST_URL, exception=asyncio.TimeoutError())
            assert await client.get_json(TEST_URL) is None
        await client.close()


class TestLifecycle:
    def test_defaults(self):
        client = AsyncHTTPClient()
        assert client._timeout is DEFAULT_TIMEOUT
        assert client._session is None

    @pytest.mark.asyncio
    async def test_context_manager_closes_session(self):
        async with AsyncHTTPClient() as client:
            session = await client._get_session()
            assert not session.closed
        assert client._session is None
