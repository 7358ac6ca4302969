"""In-memory TTL cache for expensive per-repository computations."""

import time
from typing import Any, Callable, Optional

from utils.logging_config import get_logger

logger = get_logger("cache")

DEFAULT_TTL = 300  # 5 minutes


class TTLCache:
    """Key-value store with passive, read-time expiry.

    Entries are never swept; an entry older than the TTL is treated as
    absent on read and overwritten by the next ``set``.
    """

    def __init__(self, ttl: float = DEFAULT_TTL, clock: Callable[[], float] = time.time):
        """Initialize cache.

        Args:
            ttl: Time-to-live in seconds.
            clock: Zero-argument callable returning the current time in seconds.
        """
        self.ttl = ttl
        self._clock = clock
        self._entries: dict[str, tuple[Any, float]] = {}

    def get(self, key: str) -> Optional[Any]:
        """Get cached value if still fresh.

        Args:
            key: Cache key.

        Returns:
            Cached value or None if not found/expired.
        """
        entry = self._entries.get(key)
        if entry is None:
            logger.debug("Cache miss: %s", key)
            return None

        value, stored_at = entry
        if self._clock() - stored_at >= self.ttl:
            logger.debug("Cache stale: %s", key)
            return None

        logger.debug("Cache hit: %s", key)
        return value

    def set(self, key: str, value: Any) -> None:
        self._entries[key] = (value, self._clock())

    def delete(self, key: str) -> bool:
        return self._entries.pop(key, None) is not None

    def clear(self) -> int:
        """Clear all cached values.

        Returns:
            Number of entries removed.
        """
        count = len(self._entries)
        self._entries.clear()
        logger.info("Cleared %d cached entries", count)
        return count

    def __len__(self) -> int:
        return len(self._entries)

    def status(self) -> dict:
        """Describe every entry with its age and remaining lifetime in seconds."""
        now = self._clock()
        entries = []
        for key, (_, stored_at) in self._entries.items():
            age = now - stored_at
            entries.append({
                "key": key,
                "age_seconds": int(age),
                "expires_in_seconds": int(self.ttl - age),
            })
        return {
            "total_entries": len(self._entries),
            "ttl_seconds": self.ttl,
            "entries": entries,
        }


def make_cache_key(repo: str, days: int) -> str:
    return f"{repo}-{days}"
