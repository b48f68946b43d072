"""Evaluation of event predicates."""
import logging
import re
from typing import List

from icalendar import Event

from processor.models import ComparisonType, EventPredicate
from processor.properties import get_text

logger = logging.getLogger(__name__)


def matches_event(predicate: EventPredicate, event: Event) -> bool:
    """
    Check whether a single event satisfies a predicate.

    Args:
        predicate: Predicate to check
        event: Event component to check against

    Returns:
        True if the event's property satisfies the comparison
    """
    value = get_text(event, predicate.property_key)
    if value is None:
        return False

    method = predicate.method
    if method.type == ComparisonType.REGEX:
        # ignore_case is not honored for regular expressions
        return re.search(method.value, value) is not None

    expected = method.value
    if method.ignore_case:
        value = value.casefold()
        expected = expected.casefold()

    if method.type == ComparisonType.EQUALS:
        return value == expected
    if method.type == ComparisonType.CONTAINS:
        return expected in value
    if method.type == ComparisonType.STARTS_WITH:
        return value.startswith(expected)
    if method.type == ComparisonType.ENDS_WITH:
        return value.endswith(expected)

    raise ValueError(f"Unsupported comparison type: {method.type}")


def required_matches(predicate: EventPredicate, event_count: int) -> int:
    """Resolve the number of matching events a predicate needs."""
    if predicate.match == 'any':
        return 1
    if predicate.match == 'all':
        return event_count
    return int(predicate.match)


def evaluate(predicate: EventPredicate, events: List[Event]) -> bool:
    """
    Check whether a predicate holds across a collection of events.

    Scanning stops as soon as the threshold is reached or can no longer be
    reached with the remaining events.

    Args:
        predicate: Predicate to evaluate
        events: Events in calendar order

    Returns:
        True if at least the required number of events match
    """
    threshold = required_matches(predicate, len(events))
    matched = 0

    for index, event in enumerate(events):
        if matched >= threshold:
            break
        remaining = len(events) - index
        if remaining < threshold - matched:
            break
        if matches_event(predicate, event):
            matched += 1

    logger.debug(
        f"Predicate on '{predicate.property_key}' matched {matched} "
        f"of {threshold} required events"
    )
    return matched >= threshold
