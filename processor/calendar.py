"""Parsed calendar with cached serialized output."""
import logging
import time
import zlib
from datetime import timedelta
from typing import Optional

import icalendar
from icalendar import vDuration

from processor.errors import CalendarParseError
from processor.formatter import Formatter
from processor.properties import get_text

logger = logging.getLogger(__name__)


def source_hash(src: str) -> int:
    """CRC32 of the source text, used to detect unchanged downloads."""
    return zlib.crc32(src.encode('utf-8'))


class Calendar:
    """Wrapper around a parsed VCALENDAR used for caching and formatting."""

    def __init__(self, src: str, src_uid: Optional[int] = None):
        """
        Parse calendar source data.

        Args:
            src: iCalendar source text
            src_uid: Identifier of the source data (defaults to its CRC32)

        Raises:
            CalendarParseError: If the source could not be parsed
        """
        self.src = src
        self.src_uid = source_hash(src) if src_uid is None else src_uid
        self.last_reload = time.time()
        self._formatted_output: Optional[str] = None

        try:
            self.root = icalendar.Calendar.from_ical(src)
        except (ValueError, IndexError) as e:
            raise CalendarParseError(f"Invalid calendar data: {e}") from e
        if self.root.name != 'VCALENDAR':
            raise CalendarParseError(f"Expected VCALENDAR, got {self.root.name}")

        self.refresh_interval = self._read_refresh_interval()

    def _read_refresh_interval(self) -> Optional[int]:
        value = get_text(self.root, 'refresh-interval')
        if value is None:
            return None
        try:
            duration = vDuration.from_ical(value)
        except ValueError:
            logger.warning(f"Ignoring invalid REFRESH-INTERVAL: {value}")
            return None
        if not isinstance(duration, timedelta):
            return None
        return int(duration.total_seconds())

    def has_refresh_interval(self) -> bool:
        return self.refresh_interval is not None

    def get_refresh_interval(self) -> int:
        """REFRESH-INTERVAL in seconds, or 0 if not set."""
        return self.refresh_interval or 0

    def set_reloaded(self) -> None:
        self.last_reload = time.time()

    def should_reload(self, external_interval: int, respect_internal_interval: bool) -> bool:
        """
        Determine whether the source data should be fetched again.

        Args:
            external_interval: Minimum seconds between reloads
            respect_internal_interval: Also require the calendar's own
                REFRESH-INTERVAL to have passed

        Returns:
            True if the calendar should be reloaded
        """
        delta = time.time() - self.last_reload
        if respect_internal_interval and delta <= self.get_refresh_interval():
            return False
        return delta > external_interval

    def apply_formatter(self, formatter: Formatter) -> None:
        """
        Apply a formatter to the calendar.

        Raises:
            FormatterError: If the formatter fails
        """
        self.root = formatter.format(self.root)
        self._formatted_output = None

    def to_ical(self) -> str:
        """Serialize the calendar, reusing the last serialization if unchanged."""
        if self._formatted_output is None:
            self._formatted_output = self.root.to_ical().decode('utf-8')
        return self._formatted_output

    def __str__(self) -> str:
        return self.to_ical()
