"""Reddit mention tracker.

Uses Reddit's public search JSON API (no authentication required).
"""

from utils.async_http import AsyncHTTPClient
from utils.logging_config import get_logger

logger = get_logger("reddit_tracker")


def reddit_time_filter(days: int) -> str:
    """Map a look-back period onto Reddit's coarse ``t`` search filter."""
    if days <= 1:
        return "day"
    if days <= 7:
        return "week"
    if days <= 30:
        return "month"
    if days <= 365:
        return "year"
    return "all"


class RedditTracker:
    """Search Reddit posts mentioning a repository.

    Reddit rejects requests without a descriptive User-Agent.
    """

    REDDIT_BASE = "https://www.reddit.com"
    USER_AGENT = "web:spark-finder:v1.0"

    def __init__(self, config: dict = None, http_client: AsyncHTTPClient = None):
        self.config = config or {}
        reddit_config = self.config.get("buzz", {}).get("reddit", {})
        self.enabled = reddit_config.get("enabled", True)
        self.user_agent = reddit_config.get("user_agent", self.USER_AGENT)
        self.limit = reddit_config.get("limit", 50)

        self._http = http_client
        self._owns_http = http_client is None

    async def _ensure_http(self):
        if self._http is None:
            self._http = AsyncHTTPClient()

    async def search_mentions(self, repo: str, days: int = 30) -> list[dict]:
        """Posts mentioning ``repo`` within Reddit's closest time filter.

        Returns:
            List of ``{title, url, score}`` dicts; empty on any failure.
        """
        if not self.enabled:
            return []
        await self._ensure_http()

        params = {
            "q": f'"{repo}"',
            "t": reddit_time_filter(days),
            "limit": self.limit,
            "raw_json": 1,
        }
        headers = {"User-Agent": self.user_agent}

        try:
            data = await self._http.get_json(
                f"{self.REDDIT_BASE}/search.json", params=params, headers=headers
            )
        except Exception as e:
            logger.warning("Reddit error for '%s': %s", repo, e)
            return []

        if not data:
            return []

        posts = []
        for child in data.get("data", {}).get("children", []):
            post = child.get("data", {})
            if not post:
                continue
            permalink = post.get("permalink", "")
            posts.append({
                "title": (post.get("title") or "").strip(),
                "url": f"{self.REDDIT_BASE}{permalink}" if permalink else "",
                "score": post.get("score", 0),
            })

        logger.info("Found %d Reddit posts for %s", len(posts), repo)
        return posts

    async def close(self):
        if self._owns_http and self._http is not None:
            await self._http.close()
            self._http = None
