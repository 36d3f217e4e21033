"""Query window and clock for calendar expansion."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

from dateutil.relativedelta import relativedelta

from .datetime_utils import end_of_day, start_of_day, to_local_naive

logger = logging.getLogger(__name__)

DEFAULT_LOOKBACK_DAYS = 7
DEFAULT_LOOKAHEAD_MONTHS = 2

TEST_TIME_ENV = "DASHBOARD_TEST_TIME"


def now_local() -> datetime:
    """Return the current local time as a naive datetime.

    Can be overridden for testing via the DASHBOARD_TEST_TIME environment
    variable (ISO 8601, e.g. "2026-03-10T08:00:00" or "2026-03-10T08:00:00+01:00").
    """
    test_time = os.environ.get(TEST_TIME_ENV)
    if test_time:
        try:
            return to_local_naive(test_time)
        except (TypeError, ValueError) as e:
            logger.warning("Failed to parse %s=%r: %s", TEST_TIME_ENV, test_time, e)
    return datetime.now()


@dataclass(frozen=True)
class QueryWindow:
    """Inclusive [start, end] range within which instances are kept."""

    start: datetime
    end: datetime

    def __post_init__(self) -> None:
        if self.end < self.start:
            raise ValueError(f"Window end {self.end} is before start {self.start}")

    @classmethod
    def around(
        cls,
        now: Optional[datetime] = None,
        lookback_days: int = DEFAULT_LOOKBACK_DAYS,
        lookahead_months: int = DEFAULT_LOOKAHEAD_MONTHS,
    ) -> QueryWindow:
        """Build the dashboard window: midnight N days back to end of day M months ahead."""
        reference = to_local_naive(now) if now is not None else now_local()
        start = start_of_day(reference - timedelta(days=lookback_days))
        end = end_of_day(reference + relativedelta(months=lookahead_months))
        return cls(start=start, end=end)
