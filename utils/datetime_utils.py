"""
Calendar-day utilities.

Reminders are keyed on the calendar day in one fixed timezone (Asia/Tokyo by
default). Everything that decides "what day is it" goes through ``Clock`` so
tests can pin the day.
"""

import re
from datetime import date, datetime, timezone
from typing import Callable, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from utils.exceptions import ValidationError

_DATE_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def utc_now() -> datetime:
    """Get current UTC time as timezone-aware datetime."""
    return datetime.now(timezone.utc)


class Clock:
    """Resolves the current calendar day in a fixed target timezone."""

    def __init__(
        self,
        tz_name: str = "Asia/Tokyo",
        now_func: Optional[Callable[[], datetime]] = None,
    ):
        try:
            self.tz = ZoneInfo(tz_name)
        except (ZoneInfoNotFoundError, ValueError) as e:
            raise ValueError(f"Unknown timezone: {tz_name}") from e
        self._now = now_func or utc_now

    def now(self) -> datetime:
        """Current time in the target timezone."""
        return self._now().astimezone(self.tz)

    def today(self) -> date:
        """Current calendar day in the target timezone."""
        return self.now().date()


class FixedClock(Clock):
    """Clock pinned to a given day. Used by tests and manual runs."""

    def __init__(self, day: date, tz_name: str = "Asia/Tokyo"):
        super().__init__(tz_name)
        self.day = day

    def today(self) -> date:
        return self.day


def day_distance(event_date: date, today: date) -> int:
    """Whole days from today until event_date (negative once it has passed)."""
    return (event_date - today).days


def parse_event_date(value: str) -> date:
    """
    Parse a YYYY-MM-DD string into a calendar date.

    Args:
        value: Date string supplied by the user

    Returns:
        Parsed date

    Raises:
        ValidationError: If the string is malformed or not a real calendar day
    """
    if not isinstance(value, str) or not _DATE_PATTERN.match(value.strip()):
        raise ValidationError(f"Invalid date format: {value!r} (expected YYYY-MM-DD)")

    try:
        return date.fromisoformat(value.strip())
    except ValueError as e:
        raise ValidationError(f"Invalid calendar date: {value}") from e
