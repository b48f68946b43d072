"""Unit tests for custom event injection."""
from datetime import datetime, timezone

import pytest

from processor.custom_events import (
    build_event,
    escape_special_characters,
    inject_custom_events,
)
from processor.errors import FormatterError
from processor.models import (
    ComparisonMethod,
    ComparisonType,
    CustomEventTemplate,
    EventPredicate,
    ExtensionConfig,
    ExtractedDetails,
)
from processor.properties import get_events

ALL_CONFIRMED = EventPredicate(
    match='all',
    property_key='status',
    method=ComparisonMethod(type=ComparisonType.EQUALS, value='CONFIRMED'),
)


def template(conditions=None, **properties):
    return CustomEventTemplate(
        dtstamp='20240101T000000Z',
        dtstart='20240301T090000',
        dtend='20240301T100000',
        tzid='Europe/London',
        properties=properties or {'summary': 'Exam'},
        conditions=conditions or [],
    )


def uid_factory(tpl, details):
    return f"{details.subject}-custom"


DETAILS = ExtractedDetails(subject='ABC123')


class TestBuildEvent:
    """Test cases for build_event."""

    def test_times_and_tzid(self):
        """Timestamps are copied and TZID is set on start and end."""
        event = build_event(template(), 'uid-1')

        assert str(event['uid']) == 'uid-1'
        assert event['dtstart'].to_ical() == b'20240301T090000'
        assert event['dtend'].to_ical() == b'20240301T100000'
        assert str(event['dtstart'].params['TZID']) == 'Europe/London'
        assert str(event['dtend'].params['TZID']) == 'Europe/London'
        assert event['dtstamp'].to_ical() == b'20240101T000000Z'

    def test_uid_property_not_copied(self):
        """A UID among the template properties is ignored."""
        event = build_event(template(uid='template-uid', summary='Exam'), 'uid-1')

        assert str(event['uid']) == 'uid-1'
        assert str(event['summary']) == 'Exam'

    def test_escape_special_characters(self):
        """Line breaks become a literal backslash-n when escaping."""
        event = build_event(template(description='a\r\nb\nc'), 'uid-1', escape=True)

        assert str(event['description']) == 'a\\nb\\nc'

    def test_no_escape_by_default(self):
        """Values are copied as-is without escaping."""
        event = build_event(template(description='a\nb'), 'uid-1')

        assert str(event['description']) == 'a\nb'

    def test_invalid_timestamp(self):
        """Unparseable timestamps abort the build."""
        bad = CustomEventTemplate(dtstamp='soon', dtstart='20240301T090000', dtend='20240301T100000')

        with pytest.raises(FormatterError):
            build_event(bad, 'uid-1')

    def test_typed_properties_copied(self):
        """Properties with non-text value types are parsed, not rejected."""
        event = build_event(
            template(summary='Exam', created='20240101T000000Z', geo='51.5;-0.1'), 'uid-1'
        )

        output = event.to_ical()
        assert b'CREATED:20240101T000000Z' in output
        assert b'GEO:51.5;-0.1' in output
        assert event['created'].dt == datetime(2024, 1, 1, tzinfo=timezone.utc)

    def test_invalid_typed_property(self):
        """A value not valid for its property type names the property."""
        with pytest.raises(FormatterError, match="GEO"):
            build_event(template(summary='Exam', geo='north'), 'uid-1')

    def test_escape_helper(self):
        assert escape_special_characters('x\r\ny\nz') == 'x\\ny\\nz'


class TestInjectCustomEvents:
    """Test cases for inject_custom_events."""

    def test_injected_when_all_confirmed(self, make_event, make_calendar):
        """The event is added when every event is confirmed."""
        root = make_calendar(
            make_event(uid='a', start=datetime(2024, 1, 1, 9), status='CONFIRMED'),
            make_event(uid='b', start=datetime(2024, 1, 2, 9), status='CONFIRMED'),
        )
        extensions = ExtensionConfig(custom_events=[template(conditions=[ALL_CONFIRMED])])

        inject_custom_events(root, extensions, DETAILS, uid_factory)

        events = get_events(root)
        assert len(events) == 3
        assert str(events[-1]['uid']) == 'ABC123-custom'

    def test_skipped_when_one_not_confirmed(self, make_event, make_calendar):
        """The event is not added when any event is not confirmed."""
        root = make_calendar(
            make_event(uid='a', start=datetime(2024, 1, 1, 9), status='CONFIRMED'),
            make_event(uid='b', start=datetime(2024, 1, 2, 9), status='CANCELLED'),
        )
        extensions = ExtensionConfig(custom_events=[template(conditions=[ALL_CONFIRMED])])

        inject_custom_events(root, extensions, DETAILS, uid_factory)

        assert len(get_events(root)) == 2

    def test_all_over_empty_calendar(self, make_calendar):
        """'all' over an empty calendar is satisfied."""
        root = make_calendar()
        extensions = ExtensionConfig(custom_events=[template(conditions=[ALL_CONFIRMED])])

        inject_custom_events(root, extensions, DETAILS, uid_factory)

        assert len(get_events(root)) == 1

    def test_every_condition_required(self, make_event, make_calendar):
        """Every condition of a template must hold."""
        root = make_calendar(make_event(uid='a', status='CONFIRMED', summary='Lecture'))
        has_exam = EventPredicate(
            match='any',
            property_key='summary',
            method=ComparisonMethod(type=ComparisonType.CONTAINS, value='exam', ignore_case=True),
        )
        extensions = ExtensionConfig(custom_events=[
            template(conditions=[ALL_CONFIRMED, has_exam]),
        ])

        inject_custom_events(root, extensions, DETAILS, uid_factory)

        assert len(get_events(root)) == 1

    def test_injected_events_do_not_gate_others(self, make_calendar):
        """Conditions see only the events present before injection."""
        root = make_calendar()
        needs_exam = EventPredicate(
            match='any',
            property_key='summary',
            method=ComparisonMethod(type=ComparisonType.EQUALS, value='Exam'),
        )
        extensions = ExtensionConfig(custom_events=[
            template(summary='Exam'),
            template(conditions=[needs_exam], summary='Revision'),
        ])

        inject_custom_events(root, extensions, DETAILS, uid_factory)

        assert [str(e['summary']) for e in get_events(root)] == ['Exam']

    def test_escaping_from_extensions(self, make_calendar):
        """The extension bundle's escaping flag is applied."""
        root = make_calendar()
        extensions = ExtensionConfig(
            custom_events=[template(summary='Exam', description='line1\nline2')],
            escape_special_characters=True,
        )

        inject_custom_events(root, extensions, DETAILS, uid_factory)

        assert str(get_events(root)[0]['description']) == 'line1\\nline2'
