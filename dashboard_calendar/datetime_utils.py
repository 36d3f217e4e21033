"""DateTime helpers shared by the expansion engine.

The engine works on naive local wall-clock datetimes, the same way a browser
Date is read back in local time. Everything entering the engine goes through
``to_local_naive`` so comparisons never mix naive and aware values.
"""

from __future__ import annotations

import logging
from datetime import date, datetime, time, timedelta
from typing import Any

logger = logging.getLogger(__name__)

ONE_DAY = timedelta(days=1)
END_OF_DAY = time(23, 59, 59, 999000)


def to_local_naive(value: Any) -> datetime:
    """Convert a date/datetime (or ISO 8601 string) to a naive local datetime.

    - ``date`` becomes midnight of that day
    - aware ``datetime`` is converted to host local time, then tzinfo dropped
    - naive ``datetime`` is returned unchanged

    Raises:
        TypeError: If value is not a date, datetime or string
        ValueError: If a string cannot be parsed
    """
    if isinstance(value, str):
        from dateutil import parser as date_parser

        value = date_parser.isoparse(value)

    if isinstance(value, datetime):
        if value.tzinfo is not None:
            return value.astimezone().replace(tzinfo=None)
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)

    raise TypeError(f"Expected date or datetime, got {type(value).__name__}")


def start_of_day(dt: datetime) -> datetime:
    """Return midnight of dt's calendar day."""
    return datetime.combine(dt.date(), time.min)


def end_of_day(dt: datetime) -> datetime:
    """Return 23:59:59.999 of dt's calendar day."""
    return datetime.combine(dt.date(), END_OF_DAY)


def epoch_millis(dt: datetime) -> int:
    # Naive values are read as host local time, like Date.getTime()
    return int(round(dt.timestamp() * 1000))


def isoformat_millis(dt: datetime) -> str:
    """ISO 8601 string with millisecond precision."""
    return dt.isoformat(timespec="milliseconds")
