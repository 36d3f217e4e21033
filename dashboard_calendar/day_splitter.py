"""Splitting of multi-day events into one slice per calendar day."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import NamedTuple, Optional

from .datetime_utils import ONE_DAY, end_of_day, start_of_day

logger = logging.getLogger(__name__)


class DaySlice(NamedTuple):
    """Bounds of one displayed day of an event.

    day_index and total_days are None when the event fits in a single day.
    """

    start: datetime
    end: datetime
    day_index: Optional[int] = None
    total_days: Optional[int] = None

    @property
    def multi_day(self) -> bool:
        return self.day_index is not None


def span_days(start: datetime, end: datetime, all_day: bool) -> int:
    """Number of calendar-day boundaries crossed by an event.

    All-day events carry an exclusive end (midnight after the last day), so
    one day is taken off before counting.
    """
    effective_end = end - ONE_DAY if all_day else end
    return (effective_end.date() - start.date()).days


def split_event_span(
    start: datetime,
    end: datetime,
    all_day: bool,
    window_start: datetime,
    window_end: datetime,
) -> list[DaySlice]:
    """Produce one slice per calendar day covered by [start, end].

    Single-day events yield exactly one slice with the original bounds.
    For multi-day events:
    - all-day slices run from midnight to the next midnight
    - timed slices keep the original start on the first day, the original
      end on the last day, and cover 00:00:00.000-23:59:59.999 in between
    - slices whose start falls outside [window_start, window_end] are dropped

    Args:
        start: Event (or occurrence) start
        end: Event (or occurrence) end
        all_day: Whether end is an exclusive all-day boundary
        window_start: Inclusive lower bound for slice starts
        window_end: Inclusive upper bound for slice starts

    Returns:
        Slices in chronological order
    """
    days_diff = span_days(start, end, all_day)
    if days_diff <= 0:
        return [DaySlice(start, end)]

    first_day = start_of_day(start)
    total_days = days_diff + 1
    slices: list[DaySlice] = []

    for i in range(total_days):
        day = first_day + i * ONE_DAY

        if all_day:
            slice_start = day
            slice_end = day + ONE_DAY
        else:
            slice_start = start if i == 0 else day
            slice_end = end if i == days_diff else end_of_day(day)

        if not (window_start <= slice_start <= window_end):
            continue

        slices.append(DaySlice(slice_start, slice_end, i + 1, total_days))

    logger.debug(
        "Split %s - %s (all_day=%s) into %d of %d day slices",
        start,
        end,
        all_day,
        len(slices),
        total_days,
    )
    return slices
