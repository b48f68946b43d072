"""Shared fixtures for building calendars in tests."""
from datetime import datetime, timedelta, timezone

import pytest
from icalendar import Calendar, Event


@pytest.fixture
def make_event():
    """Factory building a VEVENT with the given start and properties."""
    def _make_event(uid='event-1@example.com', start=None, duration_hours=1, **properties):
        event = Event()
        if uid is not None:
            event.add('uid', uid)
        event.add('dtstamp', datetime(2024, 1, 1, tzinfo=timezone.utc))
        if start is not None:
            event.add('dtstart', start)
            event.add('dtend', start + timedelta(hours=duration_hours))
        for key, value in properties.items():
            event.add(key, value)
        return event
    return _make_event


@pytest.fixture
def make_calendar():
    """Factory building a VCALENDAR holding the given events."""
    def _make_calendar(*events):
        calendar = Calendar()
        calendar.add('prodid', '-//Example//Timetable//EN')
        calendar.add('version', '2.0')
        for event in events:
            calendar.add_component(event)
        return calendar
    return _make_calendar
