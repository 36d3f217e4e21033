"""Exception hierarchy for dashboard_calendar.

Errors are contained at the smallest possible scope: recurrence problems stay
with the event that caused them and fetch/parse problems stay with their
calendar source. Nothing here is fatal to an aggregation run.
"""

from typing import Optional


class CalendarError(Exception):
    """Base exception for all dashboard_calendar errors."""


class FetchError(CalendarError):
    """Network or HTTP failure while downloading one calendar feed.

    Raised when:
    - DNS resolution or the connection fails
    - The request times out
    - The server answers with a non-2xx status code

    The affected source contributes zero instances to the aggregate.
    """

    def __init__(self, message: str, url: Optional[str] = None, status_code: Optional[int] = None):
        super().__init__(message)
        self.url = url
        self.status_code = status_code


class ParseError(CalendarError):
    """Calendar payload could not be read as iCalendar data.

    Handled exactly like FetchError: the source is skipped, the rest of the
    aggregation continues.
    """


class RecurrenceError(CalendarError):
    """Recurrence rule is unparseable or self-contradictory.

    Raised when:
    - Rule text is malformed (missing FREQ, unknown parts, bad values)
    - Options cannot be turned into a rule
    - Enumeration fails (e.g. naive/aware datetime clash)

    The event expander catches it and treats the event as non-recurring.
    """


class WindowViolation(CalendarError):
    """An instance was computed outside the query window.

    Never raised to callers; such instances are dropped silently. The class
    exists so the condition has a name in logs and tests.
    """


class ConfigError(CalendarError):
    """Configuration file or values are invalid."""
