"""Rewriting of event properties from ordered patterns."""
import logging
from typing import Dict, List

from icalendar import Calendar, Event

from processor.models import (
    EventFieldRewriterConfig,
    FunctionRewriter,
    RegexRewriter,
    Rewriter,
)
from processor.properties import get_events, get_text, set_value

logger = logging.getLogger(__name__)


def apply_rewriter(rewriter: Rewriter, value: str) -> str:
    """Apply a single rewriter to a value."""
    if isinstance(rewriter, FunctionRewriter):
        return rewriter.func(value)
    if isinstance(rewriter, RegexRewriter):
        return rewriter.pattern.sub(rewriter.replacement, value, count=rewriter.count)
    raise TypeError(f"Unsupported rewriter: {type(rewriter).__name__}")


def rewrite_event(event: Event, config: EventFieldRewriterConfig) -> None:
    """
    Apply every rewrite pattern to one event, in declaration order.

    Args:
        event: Event component, modified in place
        config: Rewrite patterns to apply
    """
    # Values as first observed during this run, keyed by property name
    original_values: Dict[str, str] = {}

    for pattern in config.patterns:
        for key in (pattern.property_key, pattern.source_key):
            if key.upper() not in original_values:
                original_values[key.upper()] = get_text(event, key) or ''

        if pattern.use_original_source_value:
            source_value = original_values[pattern.source_key.upper()]
        else:
            source_value = get_text(event, pattern.source_key) or ''

        set_value(event, pattern.property_key, apply_rewriter(pattern.rewriter, source_value))


def rewrite_event_fields(root: Calendar, config: EventFieldRewriterConfig) -> Calendar:
    """
    Rewrite fields of every event in the calendar.

    Args:
        root: Calendar component to modify
        config: Rewrite patterns to apply

    Returns:
        The modified calendar
    """
    events: List[Event] = get_events(root)
    for event in events:
        rewrite_event(event, config)

    logger.info(
        f"Rewrote {len(config.patterns)} field patterns across {len(events)} events"
    )
    return root
