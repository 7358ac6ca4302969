"""AI-generated "why is this trending" summaries."""

import asyncio
from typing import Optional

from errors import UpstreamError
from models import Entity, utcnow
from utils.llm_client import generate_summary
from utils.logging_config import get_logger

logger = get_logger("summary")

README_EXCERPT_CHARS = 4000
MAX_BUZZ_TITLES = 10


def build_trending_prompt(
    entity: Entity,
    readme: Optional[str] = None,
    buzz: Optional[dict] = None,
) -> str:
    days_old = entity.age_days(utcnow())
    lines = [
        f"Repository: {entity.full_name}",
        f"Description: {entity.description or 'n/a'}",
        f"Language: {entity.language or 'n/a'}",
        f"Topics: {', '.join(entity.topics) or 'n/a'}",
        f"Stars: {entity.stars} in {days_old} days ({entity.stars / days_old:.1f} per day)",
    ]

    titles = []
    for posts in (buzz or {}).values():
        if isinstance(posts, list):
            titles.extend(p.get("title", "") for p in posts if p.get("title"))
    if titles:
        lines.append("")
        lines.append("Recent mentions:")
        lines.extend(f"- {t[:200]}" for t in titles[:MAX_BUZZ_TITLES])

    if readme:
        lines.append("")
        lines.append("README excerpt:")
        lines.append(readme[:README_EXCERPT_CHARS])

    lines.append("")
    lines.append("Why is this repository trending?")
    return "\n".join(lines)


async def summarize_repo(github, full_name: str, buzz: Optional[dict] = None) -> dict:
    """Summarize why a repository is trending.

    The repository lookup must succeed; a missing README only thins the
    prompt. The LLM call runs in a worker thread.

    Raises:
        NotFoundError: If the repository does not exist.
        UpstreamError: If the repository lookup fails.
    """
    entity = await github.get_repo(full_name)
    try:
        readme = await github.get_readme(full_name)
    except UpstreamError as e:
        logger.warning("README unavailable for %s: %s", full_name, e)
        readme = None

    prompt = build_trending_prompt(entity, readme, buzz)
    summary = await asyncio.to_thread(generate_summary, prompt)

    result = {"repo": full_name, "summary": summary}
    if summary is None:
        result["message"] = "AI summary unavailable: no LLM provider configured."
    return result
