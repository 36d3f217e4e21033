"""VEVENT parsing for ICS feeds - dashboard_calendar.

Turns iCalendar text into RawEvent records for the expansion engine. Broken
individual events are skipped; an unreadable calendar raises ParseError.
"""

from __future__ import annotations

import logging
import uuid
from datetime import date, datetime, timedelta
from typing import Any, Optional

from icalendar import Calendar
from icalendar import Event as ICalEvent

from .exceptions import ParseError
from .models import RawEvent, RecurrenceSpec

logger = logging.getLogger(__name__)


def parse_ics_events(ics_content: str, source_url: Optional[str] = None) -> list[RawEvent]:
    """Parse all VEVENT components of an iCalendar document.

    Modified instances of recurring events (components with RECURRENCE-ID) are
    returned as standalone events and their original slot is added to the
    master's exception dates.

    Args:
        ics_content: Raw ICS text
        source_url: Feed URL, for log messages only

    Returns:
        Parsed events in document order

    Raises:
        ParseError: If the content is empty or not valid iCalendar data
    """
    if not ics_content or not ics_content.strip():
        raise ParseError(f"Empty calendar payload from {source_url or '<unknown>'}")

    try:
        calendar = Calendar.from_ical(ics_content)
    except Exception as e:
        raise ParseError(f"Invalid iCalendar data from {source_url or '<unknown>'}: {e}") from e

    components = list(calendar.walk("VEVENT"))

    # Original slots of moved instances, keyed by master UID
    moved_slots: dict[str, list[Any]] = {}
    for component in components:
        recurrence_id = component.get("RECURRENCE-ID")
        if recurrence_id is not None and component.get("UID") is not None:
            moved_slots.setdefault(str(component.get("UID")), []).append(recurrence_id.dt)

    events: list[RawEvent] = []
    overrides = 0
    for component in components:
        is_override = component.get("RECURRENCE-ID") is not None
        extra_exdates = [] if is_override else moved_slots.get(str(component.get("UID")), [])
        try:
            event = parse_event_component(component, extra_exdates=extra_exdates)
        except (ValueError, TypeError, KeyError) as e:
            logger.warning(
                "Skipping unparseable event %r from %s: %s",
                str(component.get("SUMMARY", "")),
                source_url or "<unknown>",
                e,
            )
            continue
        if event is None:
            continue
        if is_override:
            overrides += 1
        events.append(event)

    logger.debug(
        "Parsed %d events (%d overrides) from %s",
        len(events),
        overrides,
        source_url or "<unknown>",
    )
    return events


def parse_event_component(
    component: ICalEvent, extra_exdates: Optional[list[Any]] = None
) -> Optional[RawEvent]:
    """Convert one VEVENT into a RawEvent.

    Args:
        component: icalendar VEVENT
        extra_exdates: Additional exception instants (moved instances)

    Returns:
        RawEvent, or None if the event has no DTSTART

    Raises:
        ValueError: If the component carries invalid values
    """
    dtstart = component.get("DTSTART")
    if dtstart is None:
        logger.debug("Event %s missing DTSTART, skipping", component.get("UID"))
        return None

    start = dtstart.dt
    all_day = isinstance(start, date) and not isinstance(start, datetime)

    return RawEvent(
        uid=str(component.get("UID", uuid.uuid4())),
        summary=str(component.get("SUMMARY", "")),
        start=start,
        end=_event_end(component, start, all_day),
        all_day=all_day,
        recurrence_rule=_recurrence_spec(component.get("RRULE")),
        exception_dates=_collect_exdates(component) + list(extra_exdates or []),
    )


def _event_end(component: ICalEvent, start: Any, all_day: bool) -> Any:
    dtend = component.get("DTEND")
    if dtend is not None:
        return dtend.dt

    duration = component.get("DURATION")
    if duration is not None and isinstance(duration.dt, timedelta):
        return start + duration.dt

    # RFC 5545: a date-valued DTSTART without DTEND lasts one day
    if all_day:
        return start + timedelta(days=1)
    return start


def _recurrence_spec(rrule_prop: Any) -> Optional[RecurrenceSpec]:
    if rrule_prop is None:
        return None
    props = rrule_prop if isinstance(rrule_prop, list) else [rrule_prop]
    lines = ["RRULE:" + prop.to_ical().decode("utf-8") for prop in props]
    return RecurrenceSpec(kind="text", value="\n".join(lines))


def _collect_exdates(component: ICalEvent) -> list[Any]:
    """Collect EXDATE values from every EXDATE property of the component.

    icalendar returns a single vDDDLists for one EXDATE line and a list of
    them when the property repeats; each holds one or more values.
    """
    exdate_prop = component.get("EXDATE")
    if exdate_prop is None:
        return []

    props = exdate_prop if isinstance(exdate_prop, list) else [exdate_prop]
    values: list[Any] = []
    for prop in props:
        for entry in getattr(prop, "dts", []):
            values.append(entry.dt)
    return values
