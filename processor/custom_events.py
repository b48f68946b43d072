"""Synthesis of custom events from extension templates."""
import logging
from datetime import date, datetime
from typing import Callable, List, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from icalendar import Calendar, Event, vDDDTypes

from processor.errors import FormatterError
from processor.models import CustomEventTemplate, ExtensionConfig, ExtractedDetails
from processor.predicates import evaluate
from processor.properties import get_events, parse_value

logger = logging.getLogger(__name__)

UidFactory = Callable[[CustomEventTemplate, ExtractedDetails], str]


def escape_special_characters(value: str) -> str:
    """Replace CRLF and LF line breaks with a literal backslash-n."""
    return value.replace('\r\n', '\\n').replace('\n', '\\n')


def conditions_met(template: CustomEventTemplate, events: List[Event]) -> bool:
    """Check that every condition of a template holds over the events."""
    return all(evaluate(condition, events) for condition in template.conditions)


def _parse_time(value: str, tzid: Optional[str]) -> date:
    try:
        parsed = vDDDTypes.from_ical(value)
    except ValueError as e:
        raise FormatterError(f"Invalid custom event timestamp '{value}': {e}") from e

    if tzid and isinstance(parsed, datetime) and parsed.tzinfo is None:
        try:
            return parsed.replace(tzinfo=ZoneInfo(tzid))
        except (ZoneInfoNotFoundError, ValueError):
            logger.warning(f"Unknown time zone '{tzid}', keeping floating time")
    return parsed


def _add_time(event: Event, key: str, value: str, tzid: Optional[str]) -> None:
    parsed = _parse_time(value, tzid)
    if tzid and isinstance(parsed, datetime) and parsed.tzinfo is None:
        event.add(key, parsed, parameters={'TZID': tzid})
    else:
        event.add(key, parsed)


def build_event(
    template: CustomEventTemplate,
    uid: str,
    escape: bool = False,
) -> Event:
    """
    Build an event component from a template.

    Args:
        template: Custom event template
        uid: UID for the new event
        escape: Whether to escape line breaks in copied property values

    Returns:
        New Event component
    """
    event = Event()
    event.add('uid', uid)
    event.add('dtstamp', _parse_time(template.dtstamp, None))
    _add_time(event, 'dtstart', template.dtstart, template.tzid)
    _add_time(event, 'dtend', template.dtend, template.tzid)

    for key, value in template.properties.items():
        if key.lower() == 'uid':
            continue
        if escape:
            value = escape_special_characters(value)
        event.add(key, parse_value(event, key, value))

    return event


def inject_custom_events(
    root: Calendar,
    extensions: ExtensionConfig,
    details: ExtractedDetails,
    uid_factory: UidFactory,
) -> Calendar:
    """
    Add every custom event whose conditions hold to the calendar.

    Conditions are evaluated against the events present before any custom
    event is added.

    Args:
        root: Calendar component to modify
        extensions: Extension bundle holding the templates
        details: Details extracted from the source calendar
        uid_factory: Computes the UID of each new event

    Returns:
        The modified calendar
    """
    existing = get_events(root)
    added = 0

    for template in extensions.custom_events:
        if not conditions_met(template, existing):
            logger.debug(f"Skipping custom event '{template.properties.get('summary', '')}'")
            continue

        event = build_event(
            template,
            uid_factory(template, details),
            escape=extensions.escape_special_characters,
        )
        root.add_component(event)
        added += 1

    logger.info(f"Added {added} of {len(extensions.custom_events)} custom events")
    return root
