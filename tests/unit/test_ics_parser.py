"""Unit tests for dashboard_calendar.ics_parser."""

from datetime import datetime, timezone

import pytest

from dashboard_calendar.exceptions import ParseError
from dashboard_calendar.ics_parser import parse_ics_events

pytestmark = pytest.mark.unit


def _calendar(*vevents: str) -> str:
    body = "".join(f"BEGIN:VEVENT\n{v.strip()}\nEND:VEVENT\n" for v in vevents)
    return f"BEGIN:VCALENDAR\nVERSION:2.0\nPRODID:-//test//EN\n{body}END:VCALENDAR\n"


def _by_uid(events):
    return {event.uid: event for event in events}


def test_parse_sample_calendar(sample_ics):
    events = _by_uid(parse_ics_events(sample_ics))

    assert set(events) == {"dentist-1", "vacation-1", "standup-1"}

    dentist = events["dentist-1"]
    assert dentist.summary == "Dentist"
    assert dentist.start == datetime(2026, 3, 10, 9)
    assert dentist.end == datetime(2026, 3, 10, 10)
    assert not dentist.all_day
    assert not dentist.is_recurring

    vacation = events["vacation-1"]
    assert vacation.all_day
    assert vacation.start == datetime(2026, 3, 10)
    assert vacation.end == datetime(2026, 3, 13)

    standup = events["standup-1"]
    assert standup.recurrence_rule.kind == "text"
    assert "FREQ=WEEKLY" in standup.recurrence_rule.value
    assert "BYDAY=TU" in standup.recurrence_rule.value
    assert standup.exception_dates == [datetime(2026, 3, 17, 9, 30)]


def test_parse_all_day_without_dtend_lasts_one_day():
    ics = _calendar("UID:a\nSUMMARY:Holiday\nDTSTART;VALUE=DATE:20260406")

    (event,) = parse_ics_events(ics)

    assert event.all_day
    assert event.end == datetime(2026, 4, 7)


def test_parse_timed_without_dtend_uses_duration():
    ics = _calendar("UID:a\nDTSTART:20260310T090000\nDURATION:PT30M")

    (event,) = parse_ics_events(ics)

    assert event.end == datetime(2026, 3, 10, 9, 30)


def test_parse_timed_without_dtend_or_duration_ends_at_start():
    ics = _calendar("UID:a\nDTSTART:20260310T090000")

    (event,) = parse_ics_events(ics)

    assert event.end == event.start


def test_parse_utc_times_are_converted_to_local():
    ics = _calendar("UID:a\nDTSTART:20260310T090000Z\nDTEND:20260310T100000Z")

    (event,) = parse_ics_events(ics)

    expected = datetime(2026, 3, 10, 9, tzinfo=timezone.utc).astimezone().replace(tzinfo=None)
    assert event.start == expected
    assert event.start.tzinfo is None


def test_parse_collects_every_exdate_property():
    ics = _calendar(
        "UID:a\n"
        "DTSTART:20260302T080000\n"
        "DTEND:20260302T083000\n"
        "RRULE:FREQ=DAILY\n"
        "EXDATE:20260303T080000,20260304T080000\n"
        "EXDATE:20260310T080000"
    )

    (event,) = parse_ics_events(ics)

    assert event.exception_dates == [
        datetime(2026, 3, 3, 8),
        datetime(2026, 3, 4, 8),
        datetime(2026, 3, 10, 8),
    ]


def test_parse_moved_instance_excluded_from_master():
    ics = _calendar(
        "UID:series\nSUMMARY:Standup\nDTSTART:20260303T093000\nDTEND:20260303T094500\nRRULE:FREQ=WEEKLY",
        "UID:series\nSUMMARY:Standup (moved)\nRECURRENCE-ID:20260317T093000\n"
        "DTSTART:20260318T140000\nDTEND:20260318T141500",
    )

    master, moved = parse_ics_events(ics)

    assert master.is_recurring
    assert datetime(2026, 3, 17, 9, 30) in master.exception_dates
    assert not moved.is_recurring
    assert moved.summary == "Standup (moved)"
    assert moved.start == datetime(2026, 3, 18, 14)


def test_parse_missing_summary_and_uid_get_defaults():
    ics = _calendar("DTSTART:20260310T090000\nDTEND:20260310T100000")

    (event,) = parse_ics_events(ics)

    assert event.summary == ""
    assert event.uid


def test_parse_event_without_dtstart_is_skipped():
    ics = _calendar("UID:broken\nSUMMARY:No start", "UID:ok\nDTSTART:20260310T090000")

    events = parse_ics_events(ics)

    assert [e.uid for e in events] == ["ok"]


def test_parse_ignores_non_event_components():
    ics = (
        "BEGIN:VCALENDAR\nVERSION:2.0\nPRODID:-//test//EN\n"
        "BEGIN:VTODO\nUID:todo\nDTSTART:20260310T090000\nEND:VTODO\n"
        "END:VCALENDAR\n"
    )

    assert parse_ics_events(ics) == []


@pytest.mark.parametrize("payload", ["", "   \n", "this is not a calendar"])
def test_parse_unreadable_payload_raises_parse_error(payload):
    with pytest.raises(ParseError):
        parse_ics_events(payload, source_url="https://example.com/bad.ics")
