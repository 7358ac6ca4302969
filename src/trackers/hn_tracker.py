"""Hacker News mention tracker.

Uses the Algolia HN Search API (no authentication required) to find
stories that mention a repository by name.
"""

from datetime import datetime, timedelta, timezone

from utils.async_http import AsyncHTTPClient
from utils.logging_config import get_logger

logger = get_logger("hn_tracker")


class HNTracker:
    """Search Hacker News stories mentioning a repository."""

    ALGOLIA_BASE = "https://hn.algolia.com/api/v1"

    def __init__(self, config: dict = None, http_client: AsyncHTTPClient = None):
        """Initialize HN tracker.

        Args:
            config: Configuration dict with buzz.hn settings.
            http_client: Optional shared AsyncHTTPClient instance.
        """
        self.config = config or {}
        hn_config = self.config.get("buzz", {}).get("hn", {})
        self.enabled = hn_config.get("enabled", True)
        self.hits_per_page = hn_config.get("hits_per_page", 50)

        self._http = http_client
        self._owns_http = http_client is None

    async def _ensure_http(self):
        """Lazily create HTTP client if not provided."""
        if self._http is None:
            self._http = AsyncHTTPClient()

    async def search_mentions(self, repo: str, days: int = 30) -> list[dict]:
        """Stories from the last ``days`` days mentioning ``repo``.

        Returns:
            List of ``{title, url, score}`` dicts; empty on any failure.
        """
        if not self.enabled:
            return []
        await self._ensure_http()

        cutoff = datetime.now(timezone.utc) - timedelta(days=days)
        params = {
            "query": f'"{repo}"',
            "tags": "story",
            "numericFilters": f"created_at_i>{int(cutoff.timestamp())}",
            "hitsPerPage": self.hits_per_page,
        }

        try:
            data = await self._http.get_json(f"{self.ALGOLIA_BASE}/search", params=params)
        except Exception as e:
            logger.warning("HN error for '%s': %s", repo, e)
            return []

        if not data:
            return []

        posts = [
            {
                "title": (hit.get("title") or "").strip(),
                "url": f"https://news.ycombinator.com/item?id={hit.get('objectID', '')}",
                "score": hit.get("points") or 0,
            }
            for hit in data.get("hits", [])
        ]
        logger.info("Found %d HN posts for %s", len(posts), repo)
        return posts

    async def close(self):
        """Close the HTTP client if we own it."""
        if self._owns_http and self._http is not None:
            await self._http.close()
            self._http = None
