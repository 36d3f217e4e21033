"""RRULE resolution and occurrence enumeration for dashboard_calendar.

A recurrence rule may arrive as rule text, as an option mapping or as a
ready-made dateutil rule. ``resolve`` turns all three into one dateutil
``rrulebase``; ``enumerate_occurrences`` lists occurrence starts inside a
window. Only ``RecurrenceError`` leaves this module.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Mapping
from datetime import date, datetime, timezone
from typing import Any, Optional

from dateutil import parser as date_parser
from dateutil import rrule as dateutil_rrule
from dateutil.rrule import rrule, rrulebase, rrulestr

from .datetime_utils import end_of_day, to_local_naive
from .exceptions import RecurrenceError
from .models import RecurrenceSpec

logger = logging.getLogger(__name__)

DEFAULT_MAX_OCCURRENCES = 500

_UNTIL_PATTERN = re.compile(r"(UNTIL=)([0-9]{8}(?:T[0-9]{6}Z?)?)", re.IGNORECASE)

_FREQ_NAMES = ("YEARLY", "MONTHLY", "WEEKLY", "DAILY", "HOURLY", "MINUTELY", "SECONDLY")


def resolve(spec: RecurrenceSpec, dtstart: Optional[datetime] = None) -> rrulebase:
    """Normalize a recurrence spec into an enumerable dateutil rule.

    Args:
        spec: Rule in any of its three shapes
        dtstart: Event start the rule is anchored on (ignored for pre-built rules)

    Returns:
        dateutil rrule or rruleset

    Raises:
        RecurrenceError: If the rule is unparseable or self-contradictory
    """
    try:
        if spec.kind == "rule":
            return spec.value
        if spec.kind == "options":
            return _resolve_options(spec.value, dtstart)
        return _resolve_text(spec.value, dtstart)
    except RecurrenceError:
        raise
    except Exception as exc:
        raise RecurrenceError(f"Invalid recurrence rule {spec.value!r}: {exc}") from exc


def enumerate_occurrences(
    rule: rrulebase,
    window_start: datetime,
    window_end: datetime,
    inclusive: bool = True,
    max_occurrences: int = DEFAULT_MAX_OCCURRENCES,
) -> list[datetime]:
    """List occurrence starts of rule between window_start and window_end.

    Occurrences are returned in order as naive local datetimes. Enumeration
    stops after max_occurrences entries.

    Raises:
        RecurrenceError: If the rule cannot be evaluated against the window
    """
    try:
        start, end = _window_bounds_for(rule, window_start, window_end)
        occurrences: list[datetime] = []
        for occurrence in rule.xafter(start, inc=inclusive):
            if occurrence > end or (not inclusive and occurrence == end):
                break
            if len(occurrences) >= max_occurrences:
                logger.warning(
                    "Recurrence enumeration capped at %d occurrences (window %s - %s)",
                    max_occurrences,
                    window_start,
                    window_end,
                )
                break
            occurrences.append(to_local_naive(occurrence))
    except Exception as exc:
        raise RecurrenceError(f"Failed to enumerate recurrence: {exc}") from exc

    logger.debug("Enumerated %d occurrences", len(occurrences))
    return occurrences


def _window_bounds_for(
    rule: rrulebase, window_start: datetime, window_end: datetime
) -> tuple[datetime, datetime]:
    """Match window awareness to the rule so comparisons never mix naive and aware."""
    probe = next(iter(rule), None)
    if probe is not None and probe.tzinfo is not None:
        return window_start.astimezone(), window_end.astimezone()
    return window_start, window_end


def _resolve_text(text: str, dtstart: Optional[datetime]) -> rrulebase:
    lines = [line.strip() for line in text.replace("\r\n", "\n").split("\n") if line.strip()]
    # DTSTART comes from the event itself
    rule_lines = [
        _align_until_in_text(line, dtstart)
        for line in lines
        if not line.upper().startswith("DTSTART")
    ]
    if not rule_lines:
        raise RecurrenceError("Empty recurrence rule")

    return rrulestr("\n".join(rule_lines), dtstart=dtstart, forceset=len(rule_lines) > 1)


def _resolve_options(options: Mapping[str, Any], dtstart: Optional[datetime]) -> rrulebase:
    if not options:
        raise RecurrenceError("Empty recurrence options")

    if all(isinstance(key, str) and key.isupper() for key in options):
        # RFC 5545 parts, as icalendar's vRecur holds them
        from icalendar import vRecur

        text = vRecur(dict(options)).to_ical().decode("utf-8")
        return _resolve_text(text, dtstart)

    kwargs = {str(key).lower(): value for key, value in options.items()}

    freq = kwargs.pop("freq", None)
    if isinstance(freq, str):
        if freq.upper() not in _FREQ_NAMES:
            raise RecurrenceError(f"Unknown recurrence frequency {freq!r}")
        freq = getattr(dateutil_rrule, freq.upper())
    if freq is None:
        raise RecurrenceError("Recurrence options missing 'freq'")

    rule_start = kwargs.pop("dtstart", None) or dtstart
    if rule_start is not None and not isinstance(rule_start, datetime):
        rule_start = to_local_naive(rule_start)
    if kwargs.get("until") is not None:
        kwargs["until"] = _align_until(kwargs["until"], rule_start)

    return rrule(freq, dtstart=rule_start, **kwargs)


def _align_until(until: Any, dtstart: Optional[datetime]) -> datetime:
    """Give UNTIL the same awareness as dtstart.

    A naive dtstart with a UTC UNTIL (the common ICS combination) would make
    dateutil refuse the rule, so UNTIL is converted to local wall-clock time.
    """
    if isinstance(until, str):
        until = date_parser.parse(until)
    if isinstance(until, date) and not isinstance(until, datetime):
        until = end_of_day(to_local_naive(until))

    if dtstart is not None and dtstart.tzinfo is not None:
        if until.tzinfo is None:
            return until.replace(tzinfo=dtstart.tzinfo)
        return until
    return to_local_naive(until)


def _align_until_in_text(line: str, dtstart: Optional[datetime]) -> str:
    def _replace(match: re.Match) -> str:
        raw = match.group(2)
        if len(raw) == 8:
            until: Any = datetime.strptime(raw, "%Y%m%d").date()
        else:
            until = date_parser.parse(raw)
        aligned = _align_until(until, dtstart)
        if aligned.tzinfo is not None:
            formatted = aligned.astimezone(timezone.utc).strftime("%Y%m%dT%H%M%SZ")
        else:
            formatted = aligned.strftime("%Y%m%dT%H%M%S")
        return match.group(1) + formatted

    return _UNTIL_PATTERN.sub(_replace, line)
