"""Tests for the LLM summary client and the trending summary builder."""

import sys
from pathlib import Path
from types import SimpleNamespace
from unittest.mock import MagicMock, patch

import pytest

PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT / "src"))

from analyzers.summary import README_EXCERPT_CHARS, build_trending_prompt, summarize_repo
from errors import UpstreamError
from utils import llm_client
from utils.llm_client import generate_summary

from conftest import FakeGitHub, days_ago


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for var in ("LLM_PROVIDER", "LLM_API_KEY", "LLM_MODEL", "LLM_BASE_URL", "ANTHROPIC_API_KEY"):
        monkeypatch.delenv(var, raising=False)


class TestGenerateSummary:
    def test_no_key_returns_none(self):
        assert generate_summary("prompt") is None

    def test_anthropic(self, monkeypatch):
        monkeypatch.setenv("ANTHROPIC_API_KEY", "sk-ant")
        fake_module = MagicMock()
        fake_module.Anthropic.return_value.messages.create.return_value = SimpleNamespace(
            content=[SimpleNamespace(text="It is fast.")]
        )
        with patch.dict(sys.modules, {"anthropic": fake_module}):
            assert generate_summary("prompt") == "It is fast."

        kwargs = fake_module.Anthropic.return_value.messages.create.call_args[1]
        assert kwargs["model"] == llm_client.DEFAULT_ANTHROPIC_MODEL
        assert kwargs["system"] == llm_client.SYSTEM_PROMPT

    def test_openai_compatible(self, monkeypatch):
        monkeypatch.setenv("LLM_PROVIDER", "openai_compatible")
        monkeypatch.setenv("LLM_API_KEY", "sk-test")
        monkeypatch.setenv("LLM_BASE_URL", "https://api.example.com/v1")
        fake_module = MagicMock()
        fake_module.OpenAI.return_value.chat.completions.create.return_value = SimpleNamespace(
            choices=[SimpleNamespace(message=SimpleNamespace(content="Trending because."))]
        )
        with patch.dict(sys.modules, {"openai": fake_module}):
            assert generate_summary("prompt") == "Trending because."

        fake_module.OpenAI.assert_called_once_with(api_key="sk-test", base_url="https://api.example.com/v1")

    def test_custom_system_prompt(self, monkeypatch):
        monkeypatch.setenv("ANTHROPIC_API_KEY", "sk-ant")
        monkeypatch.setenv("LLM_MODEL", "claude-haiku")
        fake_module = MagicMock()
        fake_module.Anthropic.return_value.messages.create.return_value = SimpleNamespace(
            content=[SimpleNamespace(text="  Short.\n")]
        )
        with patch.dict(sys.modules, {"anthropic": fake_module}):
            assert generate_summary("prompt", system="Be brief.", max_tokens=50) == "Short."

        kwargs = fake_module.Anthropic.return_value.messages.create.call_args[1]
        assert kwargs["system"] == "Be brief."
        assert kwargs["max_tokens"] == 50
        assert kwargs["model"] == "claude-haiku"

    def test_missing_sdk_returns_none(self, monkeypatch):
        monkeypatch.setenv("ANTHROPIC_API_KEY", "sk-ant")
        with patch.dict(sys.modules, {"anthropic": None}):
            assert generate_summary("prompt") is None

    def test_openai_compatible_needs_its_own_key(self, monkeypatch):
        monkeypatch.setenv("LLM_PROVIDER", "openai_compatible")
        monkeypatch.setenv("ANTHROPIC_API_KEY", "sk-ant")
        assert llm_client.resolve_provider() is None

    def test_provider_error_returns_none(self, monkeypatch):
        monkeypatch.setenv("ANTHROPIC_API_KEY", "sk-ant")
        fake_module = MagicMock()
        fake_module.Anthropic.return_value.messages.create.side_effect = RuntimeError("overloaded")
        with patch.dict(sys.modules, {"anthropic": fake_module}):
            assert generate_summary("prompt") is None


class TestTrendingPrompt:
    def test_includes_metadata_buzz_and_readme(self, fake_github):
        entity = fake_github.add_repo(
            "acme/rocket", days_ago(9.5), stars=500, description="Fast builds", topics=("cli",)
        )
        buzz = {"repo": "acme/rocket", "hacker_news_posts": [{"title": "Show HN: Rocket"}], "counts": {}}

        prompt = build_trending_prompt(entity, readme="x" * (README_EXCERPT_CHARS + 500), buzz=buzz)

        assert "Repository: acme/rocket" in prompt
        assert "Fast builds" in prompt
        assert "- Show HN: Rocket" in prompt
        assert "x" * (README_EXCERPT_CHARS + 1) not in prompt


class TestSummarizeRepo:
    @pytest.mark.asyncio
    async def test_summary(self):
        github = FakeGitHub()
        github.add_repo("acme/rocket", days_ago(5), stars=100)
        github.readmes["acme/rocket"] = "# Rocket"
        with patch("analyzers.summary.generate_summary", return_value="Because.") as gen:
            result = await summarize_repo(github, "acme/rocket")
        assert result == {"repo": "acme/rocket", "summary": "Because."}
        assert "# Rocket" in gen.call_args[0][0]

    @pytest.mark.asyncio
    async def test_no_provider_message(self):
        github = FakeGitHub()
        github.add_repo("acme/rocket", days_ago(5), stars=100)
        github.readmes["acme/rocket"] = UpstreamError("boom", 500)
        with patch("analyzers.summary.generate_summary", return_value=None):
            result = await summarize_repo(github, "acme/rocket")
        assert result["summary"] is None
        assert "message" in result
