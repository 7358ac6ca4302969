"""Background scanner for newly created fast-growing repositories.

Periodically searches recent repositories, scores them by stars per day,
and alerts subscribers about the ones not announced before.
"""

import asyncio
import sqlite3
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional

from analyzers.ranking import rank_entities
from db import SubscriberStore
from errors import SparkError
from models import RankedRepo, utcnow
from notifiers import EmailNotifier
from utils.logging_config import get_logger

logger = get_logger("scanner")

DEFAULT_SCANNER = {
    "enabled": False,
    "interval_minutes": 60,
    "created_within_days": 7,
    "min_stars": 50,
    "min_velocity": 20.0,
    "per_page": 100,
}


@dataclass
class ScanReport:
    candidates: int
    qualifying: int
    new_repos: list[RankedRepo]
    notified: int

    def to_dict(self) -> dict:
        return {
            "candidates": self.candidates,
            "qualifying": self.qualifying,
            "new_repos": [r.to_dict() for r in self.new_repos],
            "notified": self.notified,
        }


class TrendScanner:
    """Runs scan rounds against GitHub and dispatches alerts."""

    def __init__(
        self,
        config: dict,
        github,
        store: SubscriberStore,
        notifiers: Optional[list] = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.settings = {**DEFAULT_SCANNER, **config.get("scanner", {})}
        self.github = github
        self.store = store
        self.notifiers = notifiers or []
        self._clock = clock

    @property
    def enabled(self) -> bool:
        return bool(self.settings["enabled"])

    @property
    def interval_seconds(self) -> float:
        return float(self.settings["interval_minutes"]) * 60

    async def scan_once(self) -> ScanReport:
        """Run one scan round.

        Raises:
            UpstreamError: If the GitHub search fails.
        """
        entities = await self.github.search_created_since(
            int(self.settings["created_within_days"]),
            per_page=int(self.settings["per_page"]),
            min_stars=int(self.settings["min_stars"]),
        )
        ranked = rank_entities(entities, self._clock(), top_n=None)
        min_velocity = float(self.settings["min_velocity"])
        qualifying = [r for r in ranked if r.velocity_score >= min_velocity]

        new_repos = []
        for repo in qualifying:
            if not await asyncio.to_thread(self.store.has_alerted, repo.entity.full_name):
                new_repos.append(repo)

        notified = 0
        if new_repos:
            notified = await self._notify(new_repos)
            # Undelivered repos stay unmarked and are retried next round.
            if notified or not self.notifiers:
                for repo in new_repos:
                    await asyncio.to_thread(
                        self.store.mark_alerted,
                        repo.entity.full_name, repo.entity.stars, repo.velocity_score,
                    )
            else:
                logger.warning("No alert delivered for %d repos; will retry", len(new_repos))

        logger.info(
            "Scan round: %d candidates, %d above %.1f stars/day, %d new",
            len(entities), len(qualifying), min_velocity, len(new_repos),
        )
        return ScanReport(
            candidates=len(entities),
            qualifying=len(qualifying),
            new_repos=new_repos,
            notified=notified,
        )

    async def _notify(self, repos: list[RankedRepo]) -> int:
        subscribers = await asyncio.to_thread(self.store.list_subscribers)
        addresses = [s.email for s in subscribers]

        sent = 0
        for notifier in self.notifiers:
            if isinstance(notifier, EmailNotifier) and not addresses:
                logger.info("No subscribers; skipping email alert")
                continue
            if await asyncio.to_thread(notifier.notify, repos, addresses):
                sent += 1
        return sent

    async def run_forever(self):
        """Scan every ``interval_minutes`` until cancelled."""
        logger.info("Scanner started, interval %.0f minutes", self.interval_seconds / 60)
        while True:
            try:
                await self.scan_once()
            except (SparkError, sqlite3.Error) as e:
                logger.error("Scan round failed: %s", e)
            except Exception:
                logger.exception("Unexpected error in scan round")
            await asyncio.sleep(self.interval_seconds)
