"""In-memory cache of calendars keyed by source URL."""
import logging
import time
from typing import Dict, Optional, Tuple

from processor.calendar import Calendar

logger = logging.getLogger(__name__)


class CacheFullError(Exception):
    """Raised when a new key is added to a cache already holding max_keys."""


class CalendarCache:
    """Cache with a per-entry time-to-live and a maximum number of keys."""

    def __init__(self, ttl_seconds: int, max_keys: int):
        """
        Initialize the cache.

        Args:
            ttl_seconds: Seconds an entry lives after it was last set
                (0 disables expiry)
            max_keys: Maximum number of entries (0 disables the limit)
        """
        self.ttl_seconds = ttl_seconds
        self.max_keys = max_keys
        self._entries: Dict[str, Tuple[float, Calendar]] = {}

    def _is_expired(self, expires_at: float) -> bool:
        return self.ttl_seconds > 0 and time.time() >= expires_at

    def _purge_expired(self) -> None:
        for key in [k for k, (expires_at, _) in self._entries.items()
                    if self._is_expired(expires_at)]:
            del self._entries[key]
            logger.info(f"Cache expired for {key}")

    def get(self, key: str) -> Optional[Calendar]:
        """Get a cached calendar, or None if missing or expired."""
        entry = self._entries.get(key)
        if entry is None:
            return None

        expires_at, calendar = entry
        if self._is_expired(expires_at):
            del self._entries[key]
            logger.info(f"Cache expired for {key}")
            return None
        return calendar

    def set(self, key: str, calendar: Calendar) -> None:
        """
        Store a calendar, resetting its time-to-live.

        Raises:
            CacheFullError: If the key is new and the cache is full
        """
        self._purge_expired()
        if key not in self._entries and 0 < self.max_keys <= len(self._entries):
            raise CacheFullError(f"Cache max keys amount exceeded ({self.max_keys})")

        self._entries[key] = (time.time() + self.ttl_seconds, calendar)

    def delete(self, key: str) -> None:
        self._entries.pop(key, None)

    def __len__(self) -> int:
        self._purge_expired()
        return len(self._entries)

    def __contains__(self, key: str) -> bool:
        return self.get(key) is not None
