"""Exceptions raised while loading or formatting calendars."""


class FormatterError(Exception):
    """A formatter stage could not complete; no partial calendar is produced."""


class ConfigurationError(Exception):
    """A formatter profile or extension bundle is malformed."""


class CalendarParseError(Exception):
    """Source data could not be parsed as an iCalendar document."""
