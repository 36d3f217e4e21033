"""Expansion of raw calendar events into displayable instances.

Drives recurrence resolution, EXDATE filtering and multi-day splitting for a
single event. A broken recurrence rule never makes an event disappear: the
event is then shown as if it were not recurring.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from datetime import datetime

from .day_splitter import DaySlice, split_event_span
from .exception_filter import is_excluded
from .exceptions import RecurrenceError, WindowViolation
from .models import EventInstance, RawEvent
from .recurrence import DEFAULT_MAX_OCCURRENCES, enumerate_occurrences, resolve

logger = logging.getLogger(__name__)


def expand_event(
    event: RawEvent,
    calendar_name: str,
    color: str,
    window_start: datetime,
    window_end: datetime,
    max_occurrences: int = DEFAULT_MAX_OCCURRENCES,
) -> list[EventInstance]:
    """Expand one raw event into day-bounded instances inside the window.

    Args:
        event: Parsed calendar record
        calendar_name: Source calendar display name
        color: Display color for every produced instance
        window_start: Inclusive window start
        window_end: Inclusive window end
        max_occurrences: Safety cap for recurrence enumeration

    Returns:
        Instances in chronological order of their occurrence
    """
    if event.recurrence_rule is None:
        return _expand_single(event, calendar_name, color, window_start, window_end)

    try:
        rule = resolve(event.recurrence_rule, dtstart=event.start)
        occurrences = enumerate_occurrences(
            rule, window_start, window_end, inclusive=True, max_occurrences=max_occurrences
        )
    except RecurrenceError as e:
        logger.warning(
            "Failed to expand RRULE for %r (uid=%s): %s; treating as single event",
            event.summary,
            event.uid,
            e,
        )
        return _expand_single(
            event, calendar_name, color, window_start, window_end, keep_single_day=True
        )

    duration = event.end - event.start
    instances: list[EventInstance] = []
    skipped = 0

    for occurrence in occurrences:
        if is_excluded(occurrence, event.exception_dates):
            skipped += 1
            continue
        slices = split_event_span(
            occurrence, occurrence + duration, event.all_day, window_start, window_end
        )
        instances.extend(_build_instances(event, slices, calendar_name, color))

    logger.debug(
        "Expanded recurring %r: %d occurrences, %d excluded, %d instances",
        event.summary,
        len(occurrences),
        skipped,
        len(instances),
    )
    return instances


def expand_events(
    events: Iterable[RawEvent],
    calendar_name: str,
    color: str,
    window_start: datetime,
    window_end: datetime,
    max_occurrences: int = DEFAULT_MAX_OCCURRENCES,
) -> list[EventInstance]:
    """Expand every event of one calendar; see expand_event."""
    instances: list[EventInstance] = []
    for event in events:
        instances.extend(
            expand_event(event, calendar_name, color, window_start, window_end, max_occurrences)
        )
    return instances


def _expand_single(
    event: RawEvent,
    calendar_name: str,
    color: str,
    window_start: datetime,
    window_end: datetime,
    keep_single_day: bool = False,
) -> list[EventInstance]:
    """Expand an event as non-recurring.

    With keep_single_day set (bad-rule fallback) a single-day event is kept
    even when its original start lies outside the window.
    """
    slices = split_event_span(event.start, event.end, event.all_day, window_start, window_end)
    if keep_single_day:
        return _build_instances(event, slices, calendar_name, color)

    in_window = []
    for day_slice in slices:
        # Multi-day slices are already window-checked by the splitter
        if not day_slice.multi_day and not (window_start <= day_slice.start <= window_end):
            logger.debug(
                "%s: %r starts at %s outside window",
                WindowViolation.__name__,
                event.summary,
                day_slice.start,
            )
            continue
        in_window.append(day_slice)
    return _build_instances(event, in_window, calendar_name, color)


def _build_instances(
    event: RawEvent,
    slices: Iterable[DaySlice],
    calendar_name: str,
    color: str,
) -> list[EventInstance]:
    return [
        EventInstance.build(
            uid=event.uid,
            title=event.summary,
            start=day_slice.start,
            end=day_slice.end,
            all_day=event.all_day,
            calendar_name=calendar_name,
            color=color,
            day_index=day_slice.day_index,
            total_days=day_slice.total_days,
        )
        for day_slice in slices
    ]
