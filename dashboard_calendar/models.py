"""Data models for calendar aggregation - dashboard_calendar."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from datetime import datetime
from enum import Enum
from typing import Any, Literal, Optional

from dateutil.rrule import rrulebase
from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator, model_validator

from .datetime_utils import epoch_millis, isoformat_millis, to_local_naive

logger = logging.getLogger(__name__)


class CalendarKind(str, Enum):
    """Supported calendar subscription providers."""

    GOOGLE = "google"
    ICLOUD = "icloud"


class CalendarSource(BaseModel):
    """A configured calendar subscription."""

    id: str = Field(..., description="Stable identifier (epoch millis at creation)")
    name: str = Field(..., description="Display name shown next to each event")
    url: str = Field(default="", description="ICS or webcal subscription URL")
    color: Optional[str] = Field(default=None, description="Display color, per-kind default if unset")
    enabled: bool = Field(default=True, description="Disabled sources are never fetched")
    kind: CalendarKind = Field(default=CalendarKind.GOOGLE, validate_default=True, description="Provider kind")

    model_config = ConfigDict(use_enum_values=True, frozen=True)


class RecurrenceSpec(BaseModel):
    """Recurrence rule in one of its three accepted shapes.

    kind:
        ``text``    RFC 5545 rule text, e.g. ``FREQ=WEEKLY;BYDAY=MO``
        ``options`` mapping of RFC parts (``{"FREQ": ["WEEKLY"]}``, as icalendar's
                    vRecur) or dateutil keyword arguments (``{"freq": WEEKLY}``)
        ``rule``    pre-built dateutil ``rrule``/``rruleset``
    """

    kind: Literal["text", "options", "rule"]
    value: Any

    model_config = ConfigDict(arbitrary_types_allowed=True, frozen=True)

    @model_validator(mode="after")
    def _check_value_matches_kind(self) -> RecurrenceSpec:
        expected = {"text": str, "options": Mapping, "rule": rrulebase}[self.kind]
        if not isinstance(self.value, expected):
            raise ValueError(
                f"RecurrenceSpec kind={self.kind!r} expects {expected.__name__}, "
                f"got {type(self.value).__name__}"
            )
        return self

    @classmethod
    def from_raw(cls, value: Any) -> RecurrenceSpec:
        """Classify a raw recurrence value into the tagged union.

        Raises:
            ValueError: If value has none of the accepted shapes
        """
        if isinstance(value, RecurrenceSpec):
            return value
        if isinstance(value, rrulebase):
            return cls(kind="rule", value=value)
        if isinstance(value, (bytes, bytearray)):
            value = value.decode("utf-8")
        if isinstance(value, str):
            return cls(kind="text", value=value)
        if isinstance(value, Mapping):
            if set(value.keys()) == {"kind", "value"}:
                return cls.model_validate(dict(value))
            return cls(kind="options", value=value)
        if hasattr(value, "to_ical"):
            return cls(kind="text", value=value.to_ical().decode("utf-8"))
        raise ValueError(f"Unsupported recurrence rule type: {type(value).__name__}")


class RawEvent(BaseModel):
    """Calendar record as produced by the ICS parser.

    All instants are stored as naive local wall-clock datetimes.
    """

    uid: str = Field(..., description="iCalendar UID")
    summary: str = Field(default="", description="Event title")
    start: datetime = Field(..., description="Start instant (local, naive)")
    end: datetime = Field(..., description="End instant; exclusive day boundary for all-day events")
    all_day: bool = Field(default=False, description="Start carried only a date component")
    recurrence_rule: Optional[RecurrenceSpec] = Field(default=None, description="RRULE if recurring")
    exception_dates: list[datetime] = Field(default_factory=list, description="EXDATE instants")

    model_config = ConfigDict(frozen=True)

    @model_validator(mode="before")
    @classmethod
    def _clamp_end_before_start(cls, data: Any) -> Any:
        if not isinstance(data, dict) or "start" not in data or "end" not in data:
            return data
        try:
            start = to_local_naive(data["start"])
            end = to_local_naive(data["end"])
        except (TypeError, ValueError):
            # Left to the field validators to report
            return data
        if end < start:
            logger.warning(
                "Event %r ends before it starts (%s < %s); using start as end",
                data.get("uid"),
                end,
                start,
            )
            data = {**data, "end": start}
        return data

    @field_validator("start", "end", mode="before")
    @classmethod
    def _normalize_instant(cls, value: Any) -> datetime:
        return to_local_naive(value)

    @field_validator("recurrence_rule", mode="before")
    @classmethod
    def _coerce_recurrence(cls, value: Any) -> Optional[RecurrenceSpec]:
        if value is None or (isinstance(value, str) and not value.strip()):
            return None
        return RecurrenceSpec.from_raw(value)

    @field_validator("exception_dates", mode="before")
    @classmethod
    def _coerce_exception_dates(cls, value: Any) -> list[datetime]:
        if value is None:
            return []
        if not isinstance(value, (list, tuple, set, frozenset)):
            value = [value]
        return [to_local_naive(v) for v in value]

    @property
    def is_recurring(self) -> bool:
        return self.recurrence_rule is not None


class EventInstance(BaseModel):
    """One displayable, day-bounded event instance."""

    id: str = Field(..., description="uid + '_' + epoch millis of start")
    title: str = Field(..., description="Event title")
    start: datetime = Field(..., description="Instance start")
    end: datetime = Field(..., description="Instance end")
    all_day: bool = Field(default=False, description="All-day flag")
    calendar_name: str = Field(..., description="Name of the source calendar")
    color: str = Field(..., description="Display color")
    multi_day: bool = Field(default=False, description="Slice of a multi-day span")
    day_index: Optional[int] = Field(default=None, description="1-based day within the span")
    total_days: Optional[int] = Field(default=None, description="Number of days in the span")

    model_config = ConfigDict(frozen=True)

    @classmethod
    def build(
        cls,
        uid: str,
        title: str,
        start: datetime,
        end: datetime,
        all_day: bool,
        calendar_name: str,
        color: str,
        day_index: Optional[int] = None,
        total_days: Optional[int] = None,
    ) -> EventInstance:
        """Create an instance, deriving its id from uid and start."""
        return cls(
            id=f"{uid}_{epoch_millis(start)}",
            title=title,
            start=start,
            end=end,
            all_day=all_day,
            calendar_name=calendar_name,
            color=color,
            multi_day=day_index is not None,
            day_index=day_index,
            total_days=total_days,
        )

    @field_serializer("start", "end")
    def serialize_datetime(self, dt: datetime) -> str:
        """Serialize datetime to ISO format."""
        return isoformat_millis(dt)

    def to_api_dict(self) -> dict[str, Any]:
        """Wire shape used by the /api/calendars endpoint."""
        data: dict[str, Any] = {
            "id": self.id,
            "title": self.title,
            "start": isoformat_millis(self.start),
            "end": isoformat_millis(self.end),
            "allDay": self.all_day,
            "calendar": self.calendar_name,
            "color": self.color,
        }
        if self.multi_day:
            data["multiDay"] = True
            data["dayIndex"] = self.day_index
            data["totalDays"] = self.total_days
        return data
