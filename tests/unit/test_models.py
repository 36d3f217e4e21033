"""Unit tests for dashboard_calendar.models validation and serialization."""

from datetime import date, datetime, timedelta, timezone

import pytest
from dateutil.rrule import DAILY, rrule
from pydantic import ValidationError

from dashboard_calendar.datetime_utils import epoch_millis
from dashboard_calendar.models import CalendarSource, EventInstance, RawEvent, RecurrenceSpec

pytestmark = pytest.mark.unit


class TestRecurrenceSpec:
    def test_from_raw_when_string_then_text(self):
        spec = RecurrenceSpec.from_raw("FREQ=DAILY")

        assert spec.kind == "text"
        assert spec.value == "FREQ=DAILY"

    def test_from_raw_when_bytes_then_decoded_text(self):
        assert RecurrenceSpec.from_raw(b"FREQ=DAILY").value == "FREQ=DAILY"

    def test_from_raw_when_mapping_then_options(self):
        spec = RecurrenceSpec.from_raw({"FREQ": ["WEEKLY"]})

        assert spec.kind == "options"

    def test_from_raw_when_tagged_mapping_then_validated_as_is(self):
        spec = RecurrenceSpec.from_raw({"kind": "text", "value": "FREQ=WEEKLY"})

        assert spec == RecurrenceSpec(kind="text", value="FREQ=WEEKLY")

    def test_from_raw_when_rule_object_then_rule(self):
        rule = rrule(DAILY, dtstart=datetime(2026, 3, 1), count=2)

        spec = RecurrenceSpec.from_raw(rule)

        assert spec.kind == "rule"
        assert spec.value is rule

    def test_from_raw_when_unsupported_type_then_value_error(self):
        with pytest.raises(ValueError):
            RecurrenceSpec.from_raw(42)

    def test_kind_and_value_must_agree(self):
        with pytest.raises(ValidationError):
            RecurrenceSpec(kind="rule", value="FREQ=DAILY")


class TestRawEvent:
    def test_date_values_become_midnight(self):
        event = RawEvent(uid="x", start=date(2026, 3, 10), end=date(2026, 3, 11), all_day=True)

        assert event.start == datetime(2026, 3, 10)
        assert event.end == datetime(2026, 3, 11)

    def test_aware_values_become_local_naive(self):
        aware = datetime(2026, 3, 10, 9, 0, tzinfo=timezone.utc)

        event = RawEvent(uid="x", start=aware, end=aware + timedelta(hours=1))

        assert event.start == aware.astimezone().replace(tzinfo=None)
        assert event.start.tzinfo is None

    def test_iso_strings_are_parsed(self):
        event = RawEvent(uid="x", start="2026-03-10T09:00:00", end="2026-03-10T10:00:00")

        assert event.start == datetime(2026, 3, 10, 9)

    def test_end_before_start_is_clamped(self):
        event = RawEvent(uid="x", start=datetime(2026, 3, 10, 9), end=datetime(2026, 3, 10, 8))

        assert event.end == event.start

    def test_single_exception_date_becomes_list(self):
        event = RawEvent(
            uid="x",
            start=datetime(2026, 3, 10, 9),
            end=datetime(2026, 3, 10, 10),
            exception_dates=date(2026, 3, 17),
        )

        assert event.exception_dates == [datetime(2026, 3, 17)]

    def test_missing_exception_dates_is_empty_list(self):
        event = RawEvent(
            uid="x", start=datetime(2026, 3, 10, 9), end=datetime(2026, 3, 10, 10), exception_dates=None
        )

        assert event.exception_dates == []

    def test_recurrence_string_becomes_tagged_union(self):
        event = RawEvent(
            uid="x",
            start=datetime(2026, 3, 10, 9),
            end=datetime(2026, 3, 10, 10),
            recurrence_rule="FREQ=WEEKLY",
        )

        assert event.is_recurring
        assert event.recurrence_rule == RecurrenceSpec(kind="text", value="FREQ=WEEKLY")

    def test_blank_recurrence_means_not_recurring(self):
        event = RawEvent(
            uid="x", start=datetime(2026, 3, 10, 9), end=datetime(2026, 3, 10, 10), recurrence_rule="  "
        )

        assert not event.is_recurring

    def test_unsupported_recurrence_type_is_rejected(self):
        with pytest.raises(ValidationError):
            RawEvent(
                uid="x",
                start=datetime(2026, 3, 10, 9),
                end=datetime(2026, 3, 10, 10),
                recurrence_rule=3.5,
            )

    def test_raw_event_is_frozen(self):
        event = RawEvent(uid="x", start=datetime(2026, 3, 10, 9), end=datetime(2026, 3, 10, 10))

        with pytest.raises(ValidationError):
            event.summary = "changed"


class TestEventInstance:
    def test_build_derives_id_from_uid_and_start(self):
        start = datetime(2026, 3, 10, 9)

        instance = EventInstance.build(
            uid="abc@google.com",
            title="Dentist",
            start=start,
            end=start + timedelta(hours=1),
            all_day=False,
            calendar_name="Work",
            color="#4285f4",
        )

        assert instance.id == f"abc@google.com_{epoch_millis(start)}"
        assert not instance.multi_day

    def test_to_api_dict_for_single_day_instance(self):
        instance = EventInstance.build(
            uid="a",
            title="Dentist",
            start=datetime(2026, 3, 10, 9),
            end=datetime(2026, 3, 10, 10),
            all_day=False,
            calendar_name="Work",
            color="#4285f4",
        )

        assert instance.to_api_dict() == {
            "id": instance.id,
            "title": "Dentist",
            "start": "2026-03-10T09:00:00.000",
            "end": "2026-03-10T10:00:00.000",
            "allDay": False,
            "calendar": "Work",
            "color": "#4285f4",
        }

    def test_to_api_dict_for_multi_day_slice(self):
        instance = EventInstance.build(
            uid="a",
            title="Vacation",
            start=datetime(2026, 3, 11),
            end=datetime(2026, 3, 12),
            all_day=True,
            calendar_name="Family",
            color="#ff2d55",
            day_index=2,
            total_days=3,
        )

        data = instance.to_api_dict()

        assert data["multiDay"] is True
        assert data["dayIndex"] == 2
        assert data["totalDays"] == 3
        assert data["allDay"] is True


def test_calendar_source_defaults():
    source = CalendarSource(id="1", name="Work", url="https://x/a.ics")

    assert source.enabled is True
    assert source.color is None
    assert source.kind == "google"
