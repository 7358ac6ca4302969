"""LLM access for the "why is this trending" summary.

LLM_PROVIDER selects the backend. Unset means Anthropic (ANTHROPIC_API_KEY
or LLM_API_KEY); ``openai_compatible`` means any chat-completions endpoint
configured through LLM_API_KEY, LLM_BASE_URL and LLM_MODEL.
"""

import os
from dataclasses import dataclass
from typing import Optional

from utils.logging_config import get_logger

logger = get_logger("llm_client")

DEFAULT_ANTHROPIC_MODEL = "claude-sonnet-4-5-20250929"
DEFAULT_OPENAI_MODEL = "gpt-4o-mini"
MAX_TOKENS = 600

SYSTEM_PROMPT = (
    "You are an analyst who explains why open-source repositories are gaining "
    "attention. Given repository metadata, a README excerpt and recent social "
    "mentions, explain in 3-5 sentences what the project does and why developers "
    "are starring it right now. Be concrete and do not speculate beyond the data."
)


@dataclass
class ProviderSettings:
    name: str
    api_key: str
    model: str
    base_url: Optional[str] = None


def resolve_provider(model: str = None, api_key: str = None) -> Optional[ProviderSettings]:
    """Provider settings from the environment, or None when no key is set."""
    env_model = os.environ.get("LLM_MODEL")
    if os.environ.get("LLM_PROVIDER", "").lower().strip() == "openai_compatible":
        key = api_key or os.environ.get("LLM_API_KEY")
        if not key:
            return None
        return ProviderSettings(
            name="openai_compatible",
            api_key=key,
            model=model or env_model or DEFAULT_OPENAI_MODEL,
            base_url=os.environ.get("LLM_BASE_URL"),
        )

    key = api_key or os.environ.get("LLM_API_KEY") or os.environ.get("ANTHROPIC_API_KEY")
    if not key:
        return None
    return ProviderSettings(
        name="anthropic", api_key=key, model=model or env_model or DEFAULT_ANTHROPIC_MODEL
    )


def _ask_anthropic(settings: ProviderSettings, system: str, prompt: str, max_tokens: int) -> str:
    import anthropic

    client = anthropic.Anthropic(api_key=settings.api_key)
    message = client.messages.create(
        model=settings.model,
        max_tokens=max_tokens,
        system=system,
        messages=[{"role": "user", "content": prompt}],
    )
    return message.content[0].text


def _ask_openai_compatible(
    settings: ProviderSettings, system: str, prompt: str, max_tokens: int
) -> str:
    from openai import OpenAI

    kwargs = {"api_key": settings.api_key}
    if settings.base_url:
        kwargs["base_url"] = settings.base_url
    response = OpenAI(**kwargs).chat.completions.create(
        model=settings.model,
        max_tokens=max_tokens,
        messages=[
            {"role": "system", "content": system},
            {"role": "user", "content": prompt},
        ],
    )
    return response.choices[0].message.content


_BACKENDS = {
    "anthropic": _ask_anthropic,
    "openai_compatible": _ask_openai_compatible,
}


def generate_summary(
    prompt: str,
    system: str = SYSTEM_PROMPT,
    max_tokens: int = MAX_TOKENS,
    model: str = None,
    api_key: str = None,
) -> str | None:
    """Ask the configured provider to explain why a repository is trending.

    Never raises: a missing key, a missing SDK or a provider error all yield
    None so the caller can still answer the request.
    """
    settings = resolve_provider(model, api_key)
    if settings is None:
        logger.info("No LLM API key configured, summary unavailable")
        return None

    where = settings.base_url or settings.name
    logger.info("Requesting summary from %s (%s)", where, settings.model)
    try:
        text = _BACKENDS[settings.name](settings, system, prompt, max_tokens)
    except ImportError:
        logger.warning("%s SDK not installed, run: pip install 'spark-finder[llm]'", settings.name)
        return None
    except Exception as e:
        logger.error("Summary request to %s failed: %s", where, e)
        return None

    if not text:
        return None
    text = text.strip()
    logger.info("Summary generated (%d chars)", len(text))
    return text
