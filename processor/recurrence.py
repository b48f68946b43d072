"""Collapsing of repeated single events into recurring series."""
import logging
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Dict, List, Optional

from icalendar import Calendar, Event

from processor.models import Frequency, RecurrenceCollapseConfig
from processor.properties import get_events, get_start, get_text, replace_events, to_unix_time

logger = logging.getLogger(__name__)

WEEKDAYS = ['MO', 'TU', 'WE', 'TH', 'FR', 'SA', 'SU']

PERIODS = {
    Frequency.DAILY: timedelta(days=1),
    Frequency.WEEKLY: timedelta(days=7),
}


@dataclass
class RecurrenceInProgress:
    """A series being built while walking the sorted events."""
    base_event: Event
    match_requirements: Dict[str, Optional[str]]
    next_time: date
    frequency: Frequency
    count: int = 1
    weekday: Optional[str] = None

    def to_rrule(self) -> dict:
        rule = {'FREQ': self.frequency.value.upper(), 'COUNT': self.count}
        if self.weekday:
            rule['BYDAY'] = [self.weekday]
        return rule


def _matches(series: RecurrenceInProgress, event: Event, start: date) -> bool:
    for key, expected in series.match_requirements.items():
        if get_text(event, key) != expected:
            return False
    return series.next_time == start


def collapse_events(events: List[Event], config: RecurrenceCollapseConfig) -> List[Event]:
    """
    Fold runs of equivalent single events into recurring events.

    Events that already recur are passed through untouched. Single events
    without a DTSTART are dropped. An event extends an open series only if
    every required key matches the series' first event and it starts exactly
    one period after the previous occurrence.

    Args:
        events: Event components in any order
        config: Matching keys and frequency

    Returns:
        Recurring events first, then one event per series or lone event
    """
    frequency = Frequency(config.frequency)
    period = PERIODS[frequency]

    output: List[Event] = []
    dated = []
    for event in events:
        if event.get('rrule') is not None:
            output.append(event)
            continue
        start = get_start(event)
        if start is None:
            logger.debug(f"Dropping event '{get_text(event, 'uid')}' without DTSTART")
            continue
        dated.append((start, event))

    dated.sort(key=lambda item: to_unix_time(item[0]))

    in_progress: List[RecurrenceInProgress] = []
    for start, event in dated:
        series = next((s for s in in_progress if _matches(s, event, start)), None)
        if series is not None:
            series.count += 1
            series.next_time = series.next_time + period
            continue

        in_progress.append(RecurrenceInProgress(
            base_event=event,
            match_requirements={
                key: get_text(event, key) for key in config.required_matching_keys
            },
            next_time=start + period,
            frequency=frequency,
            weekday=WEEKDAYS[start.weekday()] if frequency == Frequency.WEEKLY else None,
        ))

    collapsed = 0
    for series in in_progress:
        if series.count > 1:
            series.base_event.add('rrule', series.to_rrule())
            collapsed += 1
        output.append(series.base_event)

    logger.info(
        f"Collapsed {len(events)} events into {len(output)} "
        f"({collapsed} recurring series)"
    )
    return output


def collapse_recurrences(root: Calendar, config: RecurrenceCollapseConfig) -> Calendar:
    """Collapse the events of a calendar in place and return it."""
    replace_events(root, collapse_events(get_events(root), config))
    return root
