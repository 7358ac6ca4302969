"""Typed records for repositories, star events and derived results.

Upstream JSON is narrowed into these records once, in ``scrapers.github``;
nothing deeper than that module handles raw response dicts.
"""

import math
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from errors import UpstreamError

PER_PAGE = 100
SECONDS_PER_DAY = 86400


class PageOrder(Enum):
    """Which end of the history page 1 of a listing holds."""

    OLDEST_FIRST = "oldest_first"
    NEWEST_FIRST = "newest_first"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def parse_timestamp(value: str) -> datetime:
    """Parse an ISO-8601 timestamp as returned by GitHub (``...Z``)."""
    parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def age_in_days(created_at: datetime, now: datetime) -> int:
    """Whole days since creation, rounded up, never below 1."""
    elapsed = abs((now - created_at).total_seconds()) / SECONDS_PER_DAY
    return max(1, math.ceil(elapsed))


def page_count(total: int, per_page: int = PER_PAGE) -> int:
    if total <= 0:
        return 0
    return math.ceil(total / per_page)


@dataclass(frozen=True)
class Entity:
    """A repository as seen at request time."""

    full_name: str
    created_at: datetime
    stars: int
    repo_id: int = 0
    html_url: str = ""
    description: str = ""
    language: Optional[str] = None
    topics: tuple[str, ...] = ()
    owner: str = ""

    @classmethod
    def from_api(cls, data: dict) -> "Entity":
        """Build an Entity from a GitHub repository payload.

        Raises:
            UpstreamError: If required fields are missing or malformed.
        """
        try:
            full_name = data["full_name"]
            created_at = parse_timestamp(data["created_at"])
            stars = int(data["stargazers_count"])
        except (KeyError, TypeError, ValueError) as e:
            raise UpstreamError(f"Malformed repository payload: {e}") from e

        owner = (data.get("owner") or {}).get("login") or full_name.split("/")[0]
        return cls(
            full_name=full_name,
            created_at=created_at,
            stars=stars,
            repo_id=data.get("id") or 0,
            html_url=data.get("html_url") or f"https://github.com/{full_name}",
            description=data.get("description") or "",
            language=data.get("language"),
            topics=tuple(data.get("topics") or ()),
            owner=owner,
        )

    def age_days(self, now: Optional[datetime] = None) -> int:
        return age_in_days(self.created_at, now or utcnow())

    @property
    def page_count(self) -> int:
        return page_count(self.stars)

    def to_dict(self) -> dict:
        return {
            "id": self.repo_id,
            "full_name": self.full_name,
            "html_url": self.html_url,
            "description": self.description,
            "language": self.language,
            "topics": list(self.topics),
            "owner": self.owner,
            "stargazers_count": self.stars,
            "created_at": self.created_at.strftime("%Y-%m-%dT%H:%M:%SZ"),
        }


@dataclass(frozen=True)
class TimedEvent:
    """A single star, identified only by when it happened."""

    timestamp: datetime

    @classmethod
    def from_api(cls, item: dict) -> "TimedEvent":
        try:
            return cls(timestamp=parse_timestamp(item["starred_at"]))
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            raise UpstreamError(f"Malformed stargazer item: {e}") from e


@dataclass(frozen=True)
class Page:
    """One page of a time-ordered listing."""

    number: int
    events: tuple[TimedEvent, ...] = ()
    per_page: int = PER_PAGE

    @property
    def is_empty(self) -> bool:
        return not self.events

    @property
    def is_short(self) -> bool:
        """A page with fewer items than requested is the last page of data."""
        return len(self.events) < self.per_page

    @property
    def oldest(self) -> datetime:
        return min(self.events[0].timestamp, self.events[-1].timestamp)

    @property
    def newest(self) -> datetime:
        return max(self.events[0].timestamp, self.events[-1].timestamp)

    def count_after(self, cutoff: datetime) -> int:
        return sum(1 for event in self.events if event.timestamp > cutoff)


@dataclass
class DailyBucketSeries:
    """Per-day counts over a trailing window, oldest day first."""

    labels: list[str]
    counts: list[int]

    def __post_init__(self):
        if len(self.labels) != len(self.counts):
            raise ValueError("labels and counts must have the same length")

    @property
    def total(self) -> int:
        return sum(self.counts)

    def to_dict(self) -> dict:
        return {"labels": list(self.labels), "data": list(self.counts)}


@dataclass
class VelocityResult:
    repo: str
    stars_in_period: int
    days_scanned: int
    velocity_per_day: float
    note: Optional[str] = None
    api_calls_used: Optional[int] = None

    def to_dict(self, precision: int = 2) -> dict:
        result = {
            "repo": self.repo,
            "stars_in_period": self.stars_in_period,
            "days_scanned": self.days_scanned,
            "velocity_per_day": f"{self.velocity_per_day:.{precision}f}",
        }
        if self.note:
            result["note"] = self.note
        if self.api_calls_used is not None:
            result["api_calls_used"] = self.api_calls_used
        return result


@dataclass
class RankedRepo:
    entity: Entity
    days_old: int
    velocity_score: float
    category: str = "other"

    def to_dict(self) -> dict:
        return {
            **self.entity.to_dict(),
            "days_old": self.days_old,
            "velocity_score": self.velocity_score,
            "category": self.category,
        }


@dataclass
class Subscriber:
    email: str
    subscribed_at: str = field(default_factory=lambda: utcnow().isoformat())
