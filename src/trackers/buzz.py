"""Social buzz: concurrent HN, Reddit and X mention lookups for one repository."""

import asyncio

from trackers.hn_tracker import HNTracker
from trackers.reddit_tracker import RedditTracker
from trackers.x_tracker import XTracker
from utils.async_http import AsyncHTTPClient
from utils.logging_config import get_logger

logger = get_logger("buzz")


class BuzzAggregator:
    """Fan out one mention query to every social source.

    A failing source contributes an empty list; the lookup itself never fails.
    """

    def __init__(self, config: dict = None, http_client: AsyncHTTPClient = None):
        self.config = config or {}
        self._http = http_client
        self._owns_http = http_client is None
        if self._http is None:
            self._http = AsyncHTTPClient()

        self.hn = HNTracker(self.config, http_client=self._http)
        self.reddit = RedditTracker(self.config, http_client=self._http)
        self.x = XTracker(self.config, http_client=self._http)

    async def fetch_all(self, repo: str, days: int = 30) -> dict:
        logger.info("Checking mentions for %s over %d days", repo, days)

        results = await asyncio.gather(
            self.hn.search_mentions(repo, days),
            self.reddit.search_mentions(repo, days),
            self.x.search_mentions(repo, days),
            return_exceptions=True,
        )

        names = ("hacker_news_posts", "reddit_posts", "twitter_posts")
        buzz = {"repo": repo, "days": days}
        for name, result in zip(names, results):
            if isinstance(result, Exception):
                logger.warning("Buzz source %s failed: %s", name, result)
                result = []
            buzz[name] = result

        buzz["counts"] = {name: len(buzz[name]) for name in names}
        buzz["total_mentions"] = sum(buzz["counts"].values())
        return buzz

    async def close(self):
        if self._owns_http and self._http is not None:
            await self._http.close()
            self._http = None
