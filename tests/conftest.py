"""Shared fixtures for dashboard_calendar tests."""

from collections.abc import Generator
from datetime import datetime
from typing import Any

import pytest

from dashboard_calendar.models import CalendarSource

_DASHBOARD_ENV_VARS = [
    "DASHBOARD_CONFIG",
    "DASHBOARD_DEBUG",
    "DASHBOARD_HOST",
    "DASHBOARD_LOG_LEVEL",
    "DASHBOARD_PORT",
    "DASHBOARD_TEST_TIME",
    "PORT",
]


def pytest_configure(config: Any) -> None:
    """Register custom markers."""
    config.addinivalue_line("markers", "unit: Fast unit tests")
    config.addinivalue_line("markers", "integration: Tests wiring several modules together")


@pytest.fixture(autouse=True)
def clean_dashboard_env(monkeypatch: pytest.MonkeyPatch) -> Generator[None, Any, None]:
    """Ensure DASHBOARD_* environment variables never leak into tests."""
    for key in _DASHBOARD_ENV_VARS:
        monkeypatch.delenv(key, raising=False)
    yield


@pytest.fixture
def march_window() -> tuple[datetime, datetime]:
    """Window covering March 2026, inclusive bounds."""
    return datetime(2026, 3, 1), datetime(2026, 3, 31, 23, 59, 59, 999000)


@pytest.fixture
def google_source() -> CalendarSource:
    return CalendarSource(id="1", name="Work", url="https://calendar.example.com/work.ics", kind="google")


@pytest.fixture
def icloud_source() -> CalendarSource:
    return CalendarSource(id="2", name="Family", url="webcal://p01.icloud.example.com/family.ics", kind="icloud")


SAMPLE_ICS = """BEGIN:VCALENDAR
VERSION:2.0
PRODID:-//dashboard_calendar//tests//EN
BEGIN:VEVENT
UID:dentist-1
SUMMARY:Dentist
DTSTART:20260310T090000
DTEND:20260310T100000
END:VEVENT
BEGIN:VEVENT
UID:vacation-1
SUMMARY:Vacation
DTSTART;VALUE=DATE:20260310
DTEND;VALUE=DATE:20260313
END:VEVENT
BEGIN:VEVENT
UID:standup-1
SUMMARY:Standup
DTSTART:20260303T093000
DTEND:20260303T094500
RRULE:FREQ=WEEKLY;BYDAY=TU
EXDATE:20260317T093000
END:VEVENT
END:VCALENDAR
"""


@pytest.fixture
def sample_ics() -> str:
    """Small calendar with a timed, an all-day multi-day and a recurring event."""
    return SAMPLE_ICS
