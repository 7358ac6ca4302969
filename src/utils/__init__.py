"""Utility modules for Spark Finder."""

from .logging_config import get_logger, setup_logging
from .cache import TTLCache, make_cache_key, DEFAULT_TTL
from .async_http import AsyncHTTPClient, HTTPResponse, DEFAULT_TIMEOUT

__all__ = [
    "get_logger",
    "setup_logging",
    "TTLCache",
    "make_cache_key",
    "DEFAULT_TTL",
    "AsyncHTTPClient",
    "HTTPResponse",
    "DEFAULT_TIMEOUT",
]
