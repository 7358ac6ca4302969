"""X (Twitter) mention tracker using the X API v2 recent search.

Requires a bearer token (``buzz.x.bearer_token`` or X_BEARER_TOKEN); without
one the tracker returns no posts.
"""

import os

from utils.async_http import AsyncHTTPClient
from utils.logging_config import get_logger

logger = get_logger("x_tracker")


class XTracker:
    """Search recent posts on X mentioning a repository."""

    SEARCH_URL = "https://api.x.com/2/tweets/search/recent"

    def __init__(self, config: dict = None, http_client: AsyncHTTPClient = None):
        self.config = config or {}
        x_config = self.config.get("buzz", {}).get("x", {})
        self.enabled = x_config.get("enabled", True)

        token = x_config.get("bearer_token", "") or ""
        if token.startswith("${") and token.endswith("}"):
            token = os.environ.get(token[2:-1], "")
        self.bearer_token = token or os.environ.get("X_BEARER_TOKEN", "")

        # Accounts whose own posts should not count as buzz.
        self.exclude_accounts = x_config.get("exclude_accounts", [])
        self.max_results = x_config.get("max_results", 50)

        self._http = http_client
        self._owns_http = http_client is None

    async def _ensure_http(self):
        if self._http is None:
            self._http = AsyncHTTPClient()

    def build_query(self, repo: str) -> str:
        query = f'"{repo}" -is:retweet'
        for account in self.exclude_accounts:
            query += f" -from:{account}"
        return query

    async def search_mentions(self, repo: str, days: int = 7) -> list[dict]:
        """Recent posts mentioning ``repo``.

        The recent-search endpoint only covers the last seven days, so
        ``days`` is accepted for interface parity but does not widen it.

        Returns:
            List of ``{title, url, score}`` dicts; empty on any failure.
        """
        if not self.enabled:
            return []
        if not self.bearer_token:
            logger.info("X bearer token not set, skipping X search")
            return []
        await self._ensure_http()

        params = {
            "query": self.build_query(repo),
            "tweet.fields": "public_metrics",
            "max_results": self.max_results,
        }
        headers = {"Authorization": f"Bearer {self.bearer_token}"}

        try:
            data = await self._http.get_json(self.SEARCH_URL, params=params, headers=headers)
        except Exception as e:
            logger.warning("X error for '%s': %s", repo, e)
            return []

        if not data or not data.get("data"):
            logger.info("Found 0 X posts for %s", repo)
            return []

        posts = [
            {
                "title": tweet.get("text", ""),
                "url": f"https://x.com/i/status/{tweet.get('id', '')}",
                "score": tweet.get("public_metrics", {}).get("like_count", 0),
            }
            for tweet in data["data"]
        ]
        logger.info("Found %d X posts for %s", len(posts), repo)
        return posts

    async def close(self):
        if self._owns_http and self._http is not None:
            await self._http.close()
            self._http = None
