"""Shared pytest fixtures for Spark Finder tests."""

import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

# Add project paths
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))
sys.path.insert(0, str(PROJECT_ROOT / "src"))

from errors import NotFoundError, UpstreamError
from models import PER_PAGE, Entity, Page, PageOrder, TimedEvent

NOW = datetime(2025, 10, 19, 12, 0, 0, tzinfo=timezone.utc)


def days_ago(days: float) -> datetime:
    return NOW - timedelta(days=days)


class FakeGitHub:
    """In-memory stand-in for ``scrapers.github.GitHubAPI``.

    Star timestamps are given in any order; they are sorted oldest first and
    paged according to ``order``. Every call is recorded in ``calls``.
    """

    def __init__(self, order: PageOrder = PageOrder.OLDEST_FIRST, has_token: bool = True):
        self.stargazer_order = order
        self.has_token = has_token
        self.repos: dict[str, Entity] = {}
        self.stars: dict[str, list[datetime]] = {}
        self.search_results: list[Entity] = []
        self.users: dict[str, dict] = {}
        self.readmes: dict[str, str] = {}
        self.failing_pages: set[int] = set()
        self.calls: list[tuple] = []

    def add_repo(self, full_name: str, created_at: datetime, star_times=(), stars: int = None, **kwargs):
        star_times = sorted(star_times)
        entity = Entity(
            full_name=full_name,
            created_at=created_at,
            stars=len(star_times) if stars is None else stars,
            **kwargs,
        )
        self.repos[full_name] = entity
        self.stars[full_name] = star_times
        return entity

    def page_calls(self) -> list[int]:
        return [call[2] for call in self.calls if call[0] == "page"]

    async def get_repo(self, full_name: str) -> Entity:
        self.calls.append(("repo", full_name))
        if full_name not in self.repos:
            raise NotFoundError(f"Repository not found: {full_name}")
        return self.repos[full_name]

    async def search_created_since(self, days, page=1, per_page=50, min_stars=0):
        self.calls.append(("search", days, page, per_page, min_stars))
        return [e for e in self.search_results if e.stars >= min_stars]

    async def fetch_stargazer_page(self, full_name: str, page: int) -> Page:
        self.calls.append(("page", full_name, page))
        if page in self.failing_pages:
            raise UpstreamError("Server Error", 500)
        times = list(self.stars.get(full_name, []))
        if self.stargazer_order is PageOrder.NEWEST_FIRST:
            times.reverse()
        chunk = times[(page - 1) * PER_PAGE:page * PER_PAGE]
        return Page(number=page, events=tuple(TimedEvent(t) for t in chunk))

    def page_fetcher(self, full_name: str):
        async def fetch(page: int) -> Page:
            return await self.fetch_stargazer_page(full_name, page)

        return fetch

    async def get_user(self, login: str) -> dict:
        self.calls.append(("user", login))
        if login not in self.users:
            raise NotFoundError(f"User not found: {login}")
        return self.users[login]

    async def get_readme(self, full_name: str):
        self.calls.append(("readme", full_name))
        value = self.readmes.get(full_name)
        if isinstance(value, Exception):
            raise value
        return value

    async def close(self):
        pass


def spread_stars(count: int, start_days_ago: float, end_days_ago: float) -> list[datetime]:
    """``count`` timestamps evenly spaced between two ages (in days)."""
    if count == 1:
        return [days_ago(start_days_ago)]
    step = (start_days_ago - end_days_ago) / (count - 1)
    return [days_ago(start_days_ago - i * step) for i in range(count)]


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def clock():
    return lambda: NOW


@pytest.fixture
def fake_github():
    return FakeGitHub()


@pytest.fixture
def project_root():
    """Return project root path."""
    return PROJECT_ROOT
