"""Velocity ranking of recently created repositories.

One page of the upstream "most stars" ordering is fetched and re-ranked
locally by stars per day of age. This is a bounded-cost heuristic: the
result is the top of one page re-sorted, not a global top-K by velocity.
"""

import re
from datetime import datetime
from typing import Callable, Optional

from errors import ValidationError
from models import Entity, RankedRepo, utcnow
from utils.logging_config import get_logger

logger = get_logger("ranking")

SEARCH_PAGE_SIZE = 50
TOP_N = 25
ALL_TIME_DAYS = 9999

# Ordered: the first category with a matching keyword wins.
CATEGORY_KEYWORDS = {
    "ai-ml": [
        "llm", "gpt", "machine-learning", "deep-learning", "neural", "transformer",
        "diffusion", "agent", "rag", "embedding", "ai", "ml", "inference",
    ],
    "devtools": [
        "cli", "developer-tools", "devtools", "linter", "compiler", "debugger",
        "ide", "vscode", "neovim", "terminal", "sdk",
    ],
    "web": ["react", "vue", "nextjs", "frontend", "css", "web", "svelte", "browser"],
    "infra": ["kubernetes", "docker", "devops", "database", "cloud", "serverless", "observability"],
    "security": ["security", "pentest", "vulnerability", "exploit", "malware", "ctf"],
    "data": ["data", "analytics", "etl", "visualization", "dataset"],
    "mobile": ["android", "ios", "flutter", "mobile", "swift", "kotlin"],
}


def velocity_score(stars: int, days_old: int) -> float:
    return stars / days_old


def classify_category(entity: Entity) -> str:
    """Coarse category from topics, name, description and language."""
    text = " ".join(
        [entity.full_name.split("/")[-1], entity.description, " ".join(entity.topics), entity.language or ""]
    ).lower()
    for category, keywords in CATEGORY_KEYWORDS.items():
        for keyword in keywords:
            if re.search(rf"(?<![a-z0-9]){re.escape(keyword)}(?![a-z0-9])", text):
                return category
    return "other"


def rank_entities(
    entities: list[Entity],
    now: datetime,
    top_n: Optional[int] = TOP_N,
) -> list[RankedRepo]:
    """Score each entity by stars per day of age and sort, highest first."""
    ranked = []
    for entity in entities:
        days_old = entity.age_days(now)
        ranked.append(RankedRepo(
            entity=entity,
            days_old=days_old,
            velocity_score=velocity_score(entity.stars, days_old),
            category=classify_category(entity),
        ))
    ranked.sort(key=lambda r: r.velocity_score, reverse=True)
    return ranked[:top_n] if top_n is not None else ranked


def parse_window_days(value, default: Optional[int] = None, name: str = "days") -> int:
    """Parse a window parameter: a positive integer or ``"all"``.

    Raises:
        ValidationError: If the value is missing (and no default) or malformed.
    """
    if value is None or value == "":
        if default is None:
            raise ValidationError(f'Missing "{name}" query parameter.')
        return default
    if isinstance(value, str) and value.strip().lower() == "all":
        return ALL_TIME_DAYS
    try:
        days = int(value)
    except (TypeError, ValueError):
        raise ValidationError(f'"{name}" must be a positive integer or "all".')
    if days < 1:
        raise ValidationError(f'"{name}" must be a positive integer or "all".')
    return days


def suggest_velocity_window(timeframe_days: int, custom: bool = False) -> int:
    """Deep-dive velocity window to offer for a ranking timeframe.

    Presets: the 7-day list checks the last 24 hours, longer presets the last
    week. A custom timeframe checks a quarter of its length.
    """
    if custom:
        return max(1, int(timeframe_days / 4 + 0.5))
    if timeframe_days <= 7:
        return 1
    return 7


class RankingPipeline:
    """Fetch one candidate page and re-rank it by velocity."""

    def __init__(
        self,
        github,
        per_page: int = SEARCH_PAGE_SIZE,
        top_n: int = TOP_N,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.github = github
        self.per_page = per_page
        self.top_n = top_n
        self._clock = clock

    async def rank(self, window_days: int, page: int = 1) -> list[RankedRepo]:
        """Rank repositories created in the last ``window_days`` days.

        Raises:
            ValidationError: On a non-positive window or page.
            UpstreamError: If the search fails.
        """
        if window_days < 1 or page < 1:
            raise ValidationError("days and page must be positive integers")

        entities = await self.github.search_created_since(
            window_days, page=page, per_page=self.per_page
        )
        ranked = rank_entities(entities, self._clock(), self.top_n)
        logger.info("Ranked %d of %d candidates for %d days", len(ranked), len(entities), window_days)
        return ranked
