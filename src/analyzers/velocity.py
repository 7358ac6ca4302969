"""True star velocity: stars gained in the last N days without full history.

The estimator binary-searches the stargazer listing for the page holding
the cutoff, then scans only the in-window side of the listing. Pages
already fetched by the search are reused by the scan.
"""

from datetime import datetime, timedelta
from typing import Callable, Optional

from analyzers.cutoff import CutoffLocator
from analyzers.pagination import PageFetcher, ScanState
from errors import ValidationError
from models import Entity, Page, PageOrder, VelocityResult, utcnow
from utils.cache import TTLCache, make_cache_key
from utils.logging_config import get_logger

logger = get_logger("velocity")

FAST_PATH_NOTE = "Repo is newer than scan period"


class WindowScan:
    """Linear count of in-window events, starting at the cutoff page.

    Walks away from the cutoff toward the newest end of the listing and
    stops at the last page of data (a short page) or the end of the range.
    """

    def __init__(
        self,
        fetch_page: PageFetcher,
        total_pages: int,
        order: PageOrder,
        known_pages: Optional[dict[int, Page]] = None,
    ):
        self._fetch_page = fetch_page
        self.total_pages = total_pages
        self.order = order
        self._pages = dict(known_pages or {})
        self.fetches = 0

    async def _page(self, number: int) -> Page:
        if number not in self._pages:
            self.fetches += 1
            self._pages[number] = await self._fetch_page(number)
        return self._pages[number]

    def _next(self, number: int) -> int:
        return number + 1 if self.order is PageOrder.OLDEST_FIRST else number - 1

    def _in_range(self, number: int) -> bool:
        return 1 <= number <= self.total_pages

    async def count(self, start_page: int, cutoff: datetime) -> int:
        total = 0
        number = start_page
        state = ScanState.SCANNING
        while state is ScanState.SCANNING:
            page = await self._page(number)
            total += page.count_after(cutoff)
            number = self._next(number)
            if (self.order is PageOrder.OLDEST_FIRST and page.is_short) or not self._in_range(number):
                state = ScanState.EXHAUSTED
        return total


class VelocityEstimator:
    """Stars gained by a repository over a trailing window of days."""

    def __init__(
        self,
        github,
        cache: Optional[TTLCache] = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        """Initialize the estimator.

        Args:
            github: Client exposing ``get_repo``, ``page_fetcher`` and
                ``stargazer_order`` (see ``scrapers.github.GitHubAPI``).
            cache: Optional TTL cache for results.
            clock: Returns the current UTC time.
        """
        self.github = github
        self.cache = cache
        self._clock = clock

    async def estimate(self, full_name: str, window_days: int) -> VelocityResult:
        """Count stars received strictly after ``now - window_days``.

        Raises:
            ValidationError: If ``window_days`` is not a positive integer.
            NotFoundError: If the repository does not exist.
            UpstreamError: On any API failure.
        """
        if not isinstance(window_days, int) or window_days < 1:
            raise ValidationError("checkDays must be a positive integer")

        cache_key = make_cache_key(full_name, window_days)
        if self.cache is not None:
            cached = self.cache.get(cache_key)
            if cached is not None:
                logger.info("Cache hit: returning cached velocity for %s", full_name)
                return cached

        logger.info("Starting %d-day scan for %s", window_days, full_name)
        entity = await self.github.get_repo(full_name)
        result = await self._estimate_for(entity, window_days)

        if self.cache is not None:
            self.cache.set(cache_key, result)
        return result

    async def _estimate_for(self, entity: Entity, window_days: int) -> VelocityResult:
        now = self._clock()
        age = entity.age_days(now)

        if age <= window_days:
            return VelocityResult(
                repo=entity.full_name,
                stars_in_period=entity.stars,
                days_scanned=age,
                velocity_per_day=entity.stars / age,
                note=FAST_PATH_NOTE,
                api_calls_used=1,
            )

        total_pages = entity.page_count
        cutoff = now - timedelta(days=window_days)
        order = self.github.stargazer_order
        fetch_page = self.github.page_fetcher(entity.full_name)
        logger.info("Total stars: %d, pages: %d", entity.stars, total_pages)

        stars_in_period = 0
        calls = 1  # repository lookup
        if total_pages:
            search = await CutoffLocator(fetch_page, total_pages, order).locate(cutoff)
            calls += search.probes
            if search.page is not None:
                scan = WindowScan(fetch_page, total_pages, order, known_pages=search.fetched)
                stars_in_period = await scan.count(search.page, cutoff)
                calls += scan.fetches

        logger.info(
            "Found %d stars in %d days for %s using %d API calls",
            stars_in_period, window_days, entity.full_name, calls,
        )
        return VelocityResult(
            repo=entity.full_name,
            stars_in_period=stars_in_period,
            days_scanned=window_days,
            velocity_per_day=stars_in_period / window_days,
            api_calls_used=calls,
        )
