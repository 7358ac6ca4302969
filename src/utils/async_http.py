"""Async HTTP utilities with connection pooling.

Two calling styles are offered:

- ``fetch`` issues exactly one request and hands back status, headers and
  body. Transport failures become ``UpstreamError``; status handling is left
  to the caller. The GitHub client uses this so that no retries happen
  against the rate-limited API.
- ``get_json`` retries on 5xx/timeouts and returns None on failure. Used by
  the social enrichers, which degrade rather than fail.
"""

import asyncio
import json
from dataclasses import dataclass, field
from typing import Optional, Any

import aiohttp

from errors import UpstreamError
from utils.logging_config import get_logger

logger = get_logger("async_http")

DEFAULT_TIMEOUT = aiohttp.ClientTimeout(total=30, connect=5, sock_read=20)

DEFAULT_RETRIES = 2
DEFAULT_BACKOFF_FACTOR = 0.3

USER_AGENT = "Spark-Finder/1.0"


@dataclass
class HTTPResponse:
    """Status, headers and body of a single completed request."""

    status: int
    body: bytes = b""
    headers: dict[str, str] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300

    def json(self) -> Any:
        """Decode the body as JSON.

        Raises:
            UpstreamError: If the body is not valid JSON.
        """
        try:
            return json.loads(self.body)
        except (json.JSONDecodeError, ValueError) as e:
            raise UpstreamError(f"Invalid JSON from upstream: {e}", self.status) from e

    def header(self, name: str) -> Optional[str]:
        name = name.lower()
        for key, value in self.headers.items():
            if key.lower() == name:
                return value
        return None


class AsyncHTTPClient:
    """Shared async HTTP client with connection pooling."""

    def __init__(
        self,
        concurrency_limit: int = 30,
        per_host_limit: int = 10,
        timeout: aiohttp.ClientTimeout = None,
        headers: dict = None,
    ):
        self._concurrency_limit = concurrency_limit
        self._per_host_limit = per_host_limit
        self._timeout = timeout or DEFAULT_TIMEOUT
        self._headers = headers or {"User-Agent": USER_AGENT}
        self._session: Optional[aiohttp.ClientSession] = None

    async def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            connector = aiohttp.TCPConnector(
                limit=self._concurrency_limit,
                limit_per_host=self._per_host_limit,
            )
            self._session = aiohttp.ClientSession(
                timeout=self._timeout,
                connector=connector,
                headers=self._headers,
            )
        return self._session

    async def fetch(
        self,
        url: str,
        headers: dict = None,
        params: dict = None,
    ) -> HTTPResponse:
        """Single GET without retries.

        Raises:
            UpstreamError: On timeout or connection failure.
        """
        session = await self._get_session()
        try:
            async with session.get(url, headers=headers, params=params) as resp:
                body = await resp.read()
                return HTTPResponse(status=resp.status, body=body, headers=dict(resp.headers))
        except asyncio.TimeoutError as e:
            logger.error("Timeout for %s", url)
            raise UpstreamError(f"Timed out fetching {url}") from e
        except aiohttp.ClientError as e:
            logger.error("Request error for %s: %s", url, e)
            raise UpstreamError(f"Request to {url} failed: {e}") from e

    async def get_json(
        self,
        url: str,
        headers: dict = None,
        params: dict = None,
        max_retries: int = DEFAULT_RETRIES,
        backoff_factor: float = DEFAULT_BACKOFF_FACTOR,
    ) -> Optional[Any]:
        """GET and parse JSON, retrying server errors. Returns None on failure."""
        for attempt in range(max_retries):
            try:
                resp = await self.fetch(url, headers=headers, params=params)
            except UpstreamError:
                if attempt < max_retries - 1:
                    await asyncio.sleep(backoff_factor * (2 ** attempt))
                    continue
                return None

            if resp.ok:
                try:
                    return resp.json()
                except UpstreamError as e:
                    logger.error("JSON parse error for %s: %s", url, e)
                    return None
            if resp.status >= 500 and attempt < max_retries - 1:
                wait = backoff_factor * (2 ** attempt)
                logger.warning("Server error %d for %s, retry in %.1fs", resp.status, url, wait)
                await asyncio.sleep(wait)
                continue
            logger.warning("HTTP %d for %s", resp.status, url)
            return None
        return None

    async def close(self):
        """Close the underlying session."""
        if self._session and not self._session.closed:
            await self._session.close()
            self._session = None

    async def __aenter__(self):
        return self

    async def __aexit__(self, *args):
        await self.close()
