"""Day-bucketed star trajectory over a trailing window.

The full stargazer history is fetched (in bounded concurrent batches) and
each star is dropped into the bucket for the day it happened. Any failed
page aborts the whole build: a trajectory with silently missing pages would
understate growth.
"""

import math
from datetime import datetime, timedelta
from typing import Callable, Iterable, Optional

from analyzers.pagination import DEFAULT_BATCH_SIZE, BoundedConcurrencyBatcher
from models import SECONDS_PER_DAY, DailyBucketSeries, Entity, TimedEvent, utcnow
from utils.logging_config import get_logger

logger = get_logger("trajectory")

MAX_CHART_DAYS = 365
DEFAULT_CHART_DAYS = 30


def clamp_window(requested, max_days: int = MAX_CHART_DAYS, default: int = DEFAULT_CHART_DAYS) -> int:
    """Clamp a requested chart window into [1, max_days].

    Values above ``max_days`` (such as the 9999 sent for "all time") and
    non-numeric values fall back to ``default``.
    """
    try:
        days = int(requested)
    except (TypeError, ValueError):
        return default
    if days > max_days:
        return default
    return max(1, days)


def day_labels(days: int, now: datetime) -> list[str]:
    """Labels for the trailing ``days`` calendar days ending today, oldest first."""
    labels = []
    for offset in range(days - 1, -1, -1):
        day = now - timedelta(days=offset)
        labels.append(f"{day:%b} {day.day}")
    return labels


def bucket_events(events: Iterable[TimedEvent], days: int, now: datetime) -> list[int]:
    """Count events per day; index 0 is ``days - 1`` days ago, the last is today.

    Events outside the window (or in the future) are ignored.
    """
    counts = [0] * days
    for event in events:
        offset = math.floor((now - event.timestamp).total_seconds() / SECONDS_PER_DAY)
        if 0 <= offset < days:
            counts[days - 1 - offset] += 1
    return counts


class TrajectoryBuilder:
    """Build a ``DailyBucketSeries`` for one repository."""

    def __init__(
        self,
        github,
        batch_size: int = DEFAULT_BATCH_SIZE,
        max_days: int = MAX_CHART_DAYS,
        default_days: int = DEFAULT_CHART_DAYS,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.github = github
        self.batch_size = batch_size
        self.max_days = max_days
        self.default_days = default_days
        self._clock = clock

    async def build(
        self,
        entity: Entity,
        requested_days,
        age_days: Optional[int] = None,
    ) -> DailyBucketSeries:
        """Build the trajectory.

        Args:
            entity: Repository whose stars are charted.
            requested_days: Requested window (int, numeric string, or anything
                else, which falls back to the default window).
            age_days: Repository age as already known by the caller; derived
                from the entity when omitted.

        Raises:
            UpstreamError: If any page fetch fails.
        """
        now = self._clock()
        window = clamp_window(requested_days, self.max_days, self.default_days)
        age = age_days if age_days is not None else entity.age_days(now)
        days = max(1, min(window, age))

        labels = day_labels(days, now)
        total_pages = entity.page_count
        if total_pages == 0:
            return DailyBucketSeries(labels=labels, counts=[0] * days)

        logger.info(
            "Building %d-day trajectory for %s from %d pages",
            days, entity.full_name, total_pages,
        )
        batcher = BoundedConcurrencyBatcher(
            self.github.page_fetcher(entity.full_name), self.batch_size
        )
        events = await batcher.fetch_events(range(1, total_pages + 1))
        counts = bucket_events(events, days, now)

        logger.info(
            "Trajectory for %s: %d of %d stars inside the window",
            entity.full_name, sum(counts), len(events),
        )
        return DailyBucketSeries(labels=labels, counts=counts)
