"""GitHub REST API client.

Every call is a single request: no retries happen here, callers decide
whether to narrow scope or fail. Responses are narrowed into the records in
``models`` before they leave this module.
"""

import os
from datetime import timedelta
from typing import Optional

import aiohttp

from errors import NotFoundError, UpstreamError
from models import PER_PAGE, Entity, Page, PageOrder, TimedEvent, utcnow
from utils.async_http import AsyncHTTPClient, HTTPResponse
from utils.logging_config import get_logger

logger = get_logger("github")

DEFAULT_RATE_LIMIT_TOTAL = 5000  # standard personal access token quota
SEARCH_PER_PAGE = 50


def log_rate_limit(resp: HTTPResponse) -> Optional[int]:
    """Log the remaining API quota carried by a response.

    Returns:
        Remaining calls, or None when the header is absent or unreadable.
    """
    remaining = resp.header("x-ratelimit-remaining")
    if remaining is None:
        return None
    try:
        remaining_num = int(remaining)
        total = int(resp.header("x-ratelimit-limit") or DEFAULT_RATE_LIMIT_TOTAL)
    except ValueError:
        return None
    percentage = (remaining_num / total * 100) if total else 0
    logger.info("API tokens: %s / %s (%.0f%%)", f"{remaining_num:,}", f"{total:,}", percentage)
    return remaining_num


def _error_message(resp: HTTPResponse, fallback: str) -> str:
    try:
        data = resp.json()
    except UpstreamError:
        return fallback
    if isinstance(data, dict) and data.get("message"):
        return data["message"]
    return fallback


def resolve_token(config: dict) -> str:
    """GitHub token from config (``${VAR}`` allowed), GITHUB_TOKEN or GITHUB_PAT."""
    token = config.get("github", {}).get("token", "") or ""
    if token.startswith("${") and token.endswith("}"):
        token = os.environ.get(token[2:-1], "")
    return token or os.environ.get("GITHUB_TOKEN", "") or os.environ.get("GITHUB_PAT", "")


class GitHubAPI:
    """Thin async wrapper over the GitHub endpoints the finder needs."""

    BASE_URL = "https://api.github.com"
    API_VERSION = "2022-11-28"
    JSON_MEDIA_TYPE = "application/vnd.github.v3+json"
    STAR_MEDIA_TYPE = "application/vnd.github.star+json"
    RAW_MEDIA_TYPE = "application/vnd.github.v3.raw"

    # The stargazer listing returns the oldest stars on page 1.
    stargazer_order = PageOrder.OLDEST_FIRST

    def __init__(self, config: dict = None, http_client: AsyncHTTPClient = None):
        """Initialize the client.

        Args:
            config: Configuration dict with github settings.
            http_client: Optional shared AsyncHTTPClient instance.
        """
        self.config = config or {}
        self.token = resolve_token(self.config)
        self.headers = {"X-GitHub-Api-Version": self.API_VERSION}
        if self.token:
            self.headers["Authorization"] = f"token {self.token}"

        self._http = http_client
        self._owns_http = http_client is None
        self.calls_made = 0

    @property
    def has_token(self) -> bool:
        return bool(self.token)

    def _ensure_http(self) -> AsyncHTTPClient:
        if self._http is None:
            timeout = self.config.get("github", {}).get("timeout")
            self._http = AsyncHTTPClient(
                timeout=aiohttp.ClientTimeout(total=timeout) if timeout else None
            )
        return self._http

    async def _get(self, path: str, params: dict = None, accept: str = None) -> HTTPResponse:
        headers = {**self.headers, "Accept": accept or self.JSON_MEDIA_TYPE}
        url = f"{self.BASE_URL}{path}"
        self.calls_made += 1
        resp = await self._ensure_http().fetch(url, headers=headers, params=params)
        log_rate_limit(resp)
        return resp

    async def get_repo(self, full_name: str) -> Entity:
        """Fetch one repository.

        Raises:
            NotFoundError: If the repository does not exist.
            UpstreamError: On any other failure.
        """
        resp = await self._get(f"/repos/{full_name}")
        if resp.status == 404:
            raise NotFoundError(f"Repository not found: {full_name}")
        if not resp.ok:
            raise UpstreamError(
                _error_message(resp, "Error fetching repository data."), resp.status
            )
        return Entity.from_api(resp.json())

    async def search_created_since(
        self,
        days: int,
        page: int = 1,
        per_page: int = SEARCH_PER_PAGE,
        min_stars: int = 0,
    ) -> list[Entity]:
        """Repositories created in the last ``days`` days, most-starred first."""
        since = (utcnow() - timedelta(days=days)).strftime("%Y-%m-%d")
        query = f"created:>={since}"
        if min_stars:
            query += f" stars:>={min_stars}"
        params = {
            "q": query,
            "sort": "stars",
            "order": "desc",
            "per_page": per_page,
            "page": page,
        }

        logger.info("Searching GitHub: %s (page %d)", query, page)
        resp = await self._get("/search/repositories", params=params)
        if not resp.ok:
            raise UpstreamError(_error_message(resp, "GitHub search failed."), resp.status)

        items = resp.json().get("items", [])
        logger.info("Found %d items to analyze", len(items))
        return [Entity.from_api(item) for item in items]

    async def fetch_stargazer_page(self, full_name: str, page: int) -> Page:
        """Fetch one page of timestamped stargazers.

        A 404 on page 1 means the repository has no stargazers.
        """
        resp = await self._get(
            f"/repos/{full_name}/stargazers",
            params={"per_page": PER_PAGE, "page": page},
            accept=self.STAR_MEDIA_TYPE,
        )
        if resp.status == 404 and page == 1:
            return Page(number=page)
        if not resp.ok:
            logger.error("Error fetching page %d of %s: %d", page, full_name, resp.status)
            raise UpstreamError(
                _error_message(resp, "Error fetching stargazer data."), resp.status
            )

        items = resp.json()
        if not isinstance(items, list):
            raise UpstreamError("Unexpected stargazer payload", resp.status)
        return Page(number=page, events=tuple(TimedEvent.from_api(item) for item in items))

    def page_fetcher(self, full_name: str):
        """Bind a repository, giving an ``async (page) -> Page`` callable."""

        async def fetch(page: int) -> Page:
            return await self.fetch_stargazer_page(full_name, page)

        return fetch

    async def get_user(self, login: str) -> dict:
        resp = await self._get(f"/users/{login}")
        if resp.status == 404:
            raise NotFoundError(f"User not found: {login}")
        if not resp.ok:
            raise UpstreamError(_error_message(resp, "Error fetching profile."), resp.status)
        return resp.json()

    async def get_readme(self, full_name: str) -> Optional[str]:
        """Raw README text, or None if the repository has none."""
        resp = await self._get(f"/repos/{full_name}/readme", accept=self.RAW_MEDIA_TYPE)
        if resp.status == 404:
            return None
        if not resp.ok:
            raise UpstreamError(_error_message(resp, "Error fetching README."), resp.status)
        return resp.body.decode("utf-8", errors="replace")

    async def close(self):
        """Close the HTTP client if we own it."""
        if self._owns_http and self._http is not None:
            await self._http.close()
            self._http = None
