"""Upstream API clients for Spark Finder."""

from .github import GitHubAPI, log_rate_limit, resolve_token

__all__ = ["GitHubAPI", "log_rate_limit", "resolve_token"]
