"""Helpers for reading and writing properties on iCalendar components."""
from calendar import timegm
from datetime import date, datetime
from typing import List, Optional

from icalendar import Calendar, Event, vCategory

from processor.errors import FormatterError


def get_events(root: Calendar) -> List[Event]:
    """Return the VEVENT subcomponents directly under the calendar root."""
    return [c for c in root.subcomponents if c.name == 'VEVENT']


def replace_events(root: Calendar, events: List[Event]) -> None:
    """Replace every VEVENT under the root, keeping other subcomponents."""
    root.subcomponents = [
        c for c in root.subcomponents if c.name != 'VEVENT'
    ] + list(events)


def _first(value):
    if isinstance(value, list):
        return value[0] if value else None
    return value


def get_text(component, key: str) -> Optional[str]:
    """
    Get the first value of a property as text.

    Args:
        component: iCalendar component to read from
        key: Property name (case-insensitive)

    Returns:
        The property value as a string, or None if the property is absent
    """
    value = _first(component.get(key))
    if value is None:
        return None
    if isinstance(value, str):
        return str(value)
    encoded = value.to_ical()
    if isinstance(encoded, bytes):
        return encoded.decode('utf-8')
    return encoded


def parse_value(component, key: str, value):
    """
    Convert text to the value type iCalendar defines for a property.

    Text-valued properties are returned unchanged. Others, such as CREATED
    or GEO, are parsed with the property's own type.

    Args:
        component: Component the property belongs to
        key: Property name (case-insensitive)
        value: Property value

    Returns:
        A value accepted by ``component.add``

    Raises:
        FormatterError: If the text is not valid for the property's type
    """
    if not isinstance(value, str):
        return value
    value_type = component.types_factory.for_property(key)
    if issubclass(value_type, str) or value_type is vCategory:
        return value
    try:
        return value_type.from_ical(value)
    except (ValueError, TypeError) as e:
        raise FormatterError(f"Invalid value for property '{key.upper()}': {value}") from e


def set_value(component, key: str, value) -> None:
    """
    Replace the first instance of a property, keeping its parameters.

    The VALUE parameter is dropped since the new value may be of another
    type. Further instances of a multi-valued property are left in place.

    Raises:
        FormatterError: If the text is not valid for the property's type
    """
    existing = component.get(key)
    rest = existing[1:] if isinstance(existing, list) else []
    previous = _first(existing)
    params = dict(getattr(previous, 'params', None) or {})
    params.pop('VALUE', None)

    parsed = parse_value(component, key, value)
    # Only floating date-times keep the previous TZID
    if isinstance(parsed, date) and (
        not isinstance(parsed, datetime) or parsed.tzinfo is not None
    ):
        params.pop('TZID', None)

    component.pop(key, None)
    component.add(key, parsed, parameters=params or None)
    for item in rest:
        component.add(key, item, encode=False)


def get_start(component) -> Optional[date]:
    """Get DTSTART as a date or datetime, or None if absent."""
    value = _first(component.get('dtstart'))
    if value is None:
        return None
    return getattr(value, 'dt', None)


def to_unix_time(value: date) -> int:
    """
    Convert a DTSTART value to seconds since the Unix epoch.

    Floating date-times and plain dates are interpreted as UTC.
    """
    if isinstance(value, datetime):
        return timegm(value.utctimetuple())
    return timegm(value.timetuple())
