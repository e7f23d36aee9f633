"""Fixed-offset calendar helpers.

Every business date in the system is a calendar day at UTC+07:00,
regardless of the offset an instant was submitted with.
"""

from __future__ import annotations

import re
from datetime import UTC, date, datetime, time, timedelta, timezone
from typing import TYPE_CHECKING

from attendance_workflow.exceptions import BadInputError

if TYPE_CHECKING:
    from collections.abc import Collection, Iterator

BUSINESS_TZ = timezone(timedelta(hours=7), name="UTC+07:00")
# Tolerated clock skew between client and server for "not in the future" checks.
CLOCK_SKEW = timedelta(seconds=60)

_DATE_KEY_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
_MONTH_KEY_RE = re.compile(r"^\d{4}-\d{2}$")
_ONE_DAY = timedelta(days=1)


def utc_now() -> datetime:
    """Return the current UTC time."""
    return datetime.now(UTC)


def to_business_time(instant: datetime) -> datetime:
    """Convert an aware instant to the business offset."""
    if instant.tzinfo is None or instant.utcoffset() is None:
        msg = "Instant must be timezone-aware"
        raise ValueError(msg)
    return instant.astimezone(BUSINESS_TZ)


def local_date(instant: datetime) -> date:
    """Calendar day of ``instant`` at the business offset."""
    return to_business_time(instant).date()


def date_key(instant: datetime) -> str:
    """``YYYY-MM-DD`` of ``instant`` at the business offset."""
    return local_date(instant).isoformat()


def parse_date_key(value: str, field: str = "date") -> date:
    """Parse a strict ``YYYY-MM-DD`` string."""
    if not isinstance(value, str) or not _DATE_KEY_RE.match(value):
        raise BadInputError(f"Invalid {field} format. Expected YYYY-MM-DD")
    try:
        return date.fromisoformat(value)
    except ValueError:
        raise BadInputError(f"Invalid {field}: {value} is not a calendar date") from None


def is_weekend(day: date) -> bool:
    return day.weekday() >= 5


def at_local_time(day: date, wall_clock: time) -> datetime:
    """The instant at which the business clock shows ``wall_clock`` on ``day``."""
    return datetime.combine(day, wall_clock, tzinfo=BUSINESS_TZ)


class DateRange:
    """Inclusive, ordered range of calendar days.

    Unlike a generator it can be iterated any number of times.
    """

    __slots__ = ("end", "start")

    def __init__(self, start: date, end: date) -> None:
        if end < start:
            msg = f"Range end {end} is before start {start}"
            raise ValueError(msg)
        self.start = start
        self.end = end

    def __iter__(self) -> Iterator[date]:
        current = self.start
        while current <= self.end:
            yield current
            current += _ONE_DAY

    def __len__(self) -> int:
        return (self.end - self.start).days + 1

    def __contains__(self, item: object) -> bool:
        return isinstance(item, date) and self.start <= item <= self.end

    def __repr__(self) -> str:
        return f"DateRange({self.start.isoformat()}, {self.end.isoformat()})"


def date_range(start: date, end: date) -> DateRange:
    return DateRange(start, end)


def count_workdays(start: date, end: date, holidays: Collection[date]) -> int:
    """Count days in ``[start, end]`` that are neither weekend nor holiday."""
    return sum(1 for day in DateRange(start, end) if not is_weekend(day) and day not in holidays)


def month_key(day: date) -> str:
    return f"{day.year:04d}-{day.month:02d}"


def month_bounds(key: str) -> tuple[date, date]:
    """Return ``(first_day, first_day_of_next_month)`` for a ``YYYY-MM`` key."""
    if not isinstance(key, str) or not _MONTH_KEY_RE.match(key.strip()):
        raise BadInputError("Month must be in YYYY-MM format (e.g., 2026-01)")
    year, month = (int(part) for part in key.strip().split("-"))
    if not 1 <= month <= 12:
        raise BadInputError("Month must be between 01 and 12")
    first = date(year, month, 1)
    following = date(year + 1, 1, 1) if month == 12 else date(year, month + 1, 1)
    return first, following
