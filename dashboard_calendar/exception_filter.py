"""EXDATE handling for recurring events."""

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime


def is_excluded(occurrence_start: datetime, exception_dates: Iterable[datetime]) -> bool:
    """Check whether an occurrence falls on the same calendar day as an exception date.

    Matching is by local calendar day, not exact timestamp: an EXDATE at any
    time of day suppresses every occurrence starting on that day.

    Args:
        occurrence_start: Original (pre-split) start of the occurrence
        exception_dates: Declared exception instants

    Returns:
        True if the occurrence must be skipped
    """
    day = occurrence_start.date()
    return any(exdate.date() == day for exdate in exception_dates)
