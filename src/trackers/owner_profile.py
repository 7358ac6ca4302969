"""Owner profile lookup for a repository."""

from errors import UpstreamError, ValidationError
from utils.logging_config import get_logger

logger = get_logger("owner_profile")

PROFILE_FIELDS = (
    "login", "name", "type", "bio", "company", "location", "blog",
    "followers", "public_repos", "avatar_url", "html_url",
)


def split_repo(repo: str) -> tuple[str, str]:
    """Split ``owner/name``.

    Raises:
        ValidationError: If ``repo`` is not of the form ``owner/name``.
    """
    parts = (repo or "").strip().split("/")
    if len(parts) != 2 or not all(parts):
        raise ValidationError('"repo" must look like "owner/name".')
    return parts[0], parts[1]


async def fetch_owner_profile(github, repo: str) -> dict:
    """Profile of the repository owner plus their profile README.

    The profile README lives in the ``{owner}/{owner}`` repository; when it
    is missing or unreadable, ``readme_content`` is None.

    Raises:
        ValidationError: On a malformed repository name.
        NotFoundError: If the owner does not exist.
        UpstreamError: If the user lookup fails.
    """
    owner, _ = split_repo(repo)
    user = await github.get_user(owner)
    profile = {key: user.get(key) for key in PROFILE_FIELDS}

    try:
        profile["readme_content"] = await github.get_readme(f"{owner}/{owner}")
    except UpstreamError as e:
        logger.warning("Profile README unavailable for %s: %s", owner, e)
        profile["readme_content"] = None

    return profile
