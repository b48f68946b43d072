"""Fetching, formatting and caching of remote calendars."""
import logging
from dataclasses import dataclass
from typing import Optional, Union

import requests

from fetcher.calendar_fetcher import CalendarFetcher
from processor.calendar import Calendar, source_hash
from processor.errors import CalendarParseError, ConfigurationError, FormatterError
from processor.profiles import get_formatter
from storage.calendar_cache import CacheFullError, CalendarCache
from storage.extension_store import ExtensionStore

logger = logging.getLogger(__name__)


@dataclass
class CalendarError:
    """Failure to produce a calendar, reported to the client."""
    error: str
    details: str


CalendarResult = Union[Calendar, CalendarError]


class CalendarService:
    """Serves formatted calendars from the cache, reloading them when asked."""

    def __init__(
        self,
        fetcher: CalendarFetcher,
        cache: CalendarCache,
        extension_store: Optional[ExtensionStore] = None,
        force_reload_timeout: int = 300,
        respect_ical_refresh_interval: bool = False,
        profiles_dir: Optional[str] = None,
    ):
        self.fetcher = fetcher
        self.cache = cache
        self.extension_store = extension_store
        self.force_reload_timeout = force_reload_timeout
        self.respect_ical_refresh_interval = respect_ical_refresh_interval
        self.profiles_dir = profiles_dir

    def get_calendar(
        self,
        calendar_url: str,
        wants_reload: bool = False,
        formatter_name: Optional[str] = None,
    ) -> CalendarResult:
        """
        Get a calendar from the cache, fetching it if it is not cached.

        Args:
            calendar_url: URL of the calendar
            wants_reload: Whether the client asked for a forced reload
            formatter_name: Formatter to apply, or None for none

        Returns:
            The calendar or a CalendarError
        """
        cached = self.cache.get(calendar_url)
        if cached is None:
            return self.reload_calendar(calendar_url, formatter_name)

        if wants_reload and cached.should_reload(
            self.force_reload_timeout, self.respect_ical_refresh_interval
        ):
            return self.reload_calendar(calendar_url, formatter_name, cached)

        return cached

    def reload_calendar(
        self,
        calendar_url: str,
        formatter_name: Optional[str] = None,
        last_entry: Optional[Calendar] = None,
    ) -> CalendarResult:
        """
        Fetch a calendar and cache it if the source has changed.

        Args:
            calendar_url: URL of the calendar
            formatter_name: Formatter to apply, or None for none
            last_entry: Previously cached calendar, returned as-is if the
                source is unchanged

        Returns:
            The calendar or a CalendarError
        """
        try:
            src = self.fetcher.fetch(calendar_url)
        except requests.RequestException as e:
            logger.error(f"Failed to fetch calendar {calendar_url}: {e}")
            return CalendarError(
                error='Failed to fetch calendar from remote',
                details=f"GET from '{calendar_url}' failed: {e}",
            )

        src_uid = source_hash(src)
        if last_entry is not None and src_uid == last_entry.src_uid:
            logger.info(f"Source unchanged for {calendar_url}")
            last_entry.set_reloaded()
            return last_entry

        formatter = None
        if formatter_name is not None:
            try:
                extensions = (
                    self.extension_store.load(formatter_name)
                    if self.extension_store else None
                )
                formatter = get_formatter(formatter_name, extensions, self.profiles_dir)
            except ConfigurationError as e:
                logger.error(f"Invalid configuration for formatter {formatter_name}: {e}")
                return CalendarError(error='Failed to load extensions', details=str(e))

            if formatter is None:
                return CalendarError(
                    error='Invalid formatter name',
                    details=f"Formatter '{formatter_name}' not found",
                )

        try:
            entry = Calendar(src, src_uid)
        except CalendarParseError as e:
            logger.error(f"Failed to parse calendar {calendar_url}: {e}")
            return CalendarError(error='Failed to parse calendar', details=str(e))

        if formatter is not None:
            try:
                entry.apply_formatter(formatter)
            except Exception as e:
                if isinstance(e, FormatterError):
                    logger.error(f"Formatter {formatter_name} failed for {calendar_url}: {e}")
                else:
                    logger.exception(f"Unexpected error in formatter {formatter_name} for {calendar_url}")
                return CalendarError(
                    error=f"Failed to apply formatter {formatter_name}",
                    details=str(e),
                )

        try:
            self.cache.set(calendar_url, entry)
        except CacheFullError as e:
            logger.warning(f"Not caching {calendar_url}: {e}")

        return entry
