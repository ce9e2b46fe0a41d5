"""
Calendar utilities for month decomposition and exact-window filtering.

All day arithmetic happens on UTC calendar days. Datetimes are reduced to
their UTC date before any comparison, so a request window always covers
whole days.
"""

import calendar
from datetime import date, datetime, timedelta, timezone
from typing import Iterable, Iterator, TypeVar, Union

DateLike = Union[date, datetime, str]

T = TypeVar("T")


def to_utc_day(value: DateLike) -> date:
    """
    Reduce a date, datetime or ISO string to its UTC calendar day.

    Naive datetimes are taken to be UTC already.

    Args:
        value: Date-like input

    Returns:
        UTC calendar day
    """
    if isinstance(value, str):
        value = datetime.fromisoformat(value.replace("Z", "+00:00"))

    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone(timezone.utc)
        return value.date()

    return value


def today_utc() -> date:
    """Current UTC calendar day."""
    return datetime.now(timezone.utc).date()


def month_key(day: date) -> str:
    """Format the month containing ``day`` as ``yyyy-mm``."""
    return f"{day.year:04d}-{day.month:02d}"


def parse_month_key(key: str) -> date:
    """Parse ``yyyy-mm`` into the first day of that month."""
    year, month = key.split("-")
    return date(int(year), int(month), 1)


def days_in_month(year: int, month: int) -> int:
    """Number of days in the given calendar month."""
    return calendar.monthrange(year, month)[1]


def month_bounds(day: date) -> tuple[date, date]:
    """
    First and last day of the month containing ``day``.

    Args:
        day: Any day in the month

    Returns:
        Tuple of (first_day, last_day)
    """
    first = day.replace(day=1)
    last = first.replace(day=days_in_month(first.year, first.month))
    return first, last


def months_between(start: DateLike, end: DateLike) -> list[date]:
    """
    Every calendar month intersecting ``[start, end]``, chronologically.

    Args:
        start: Range start (inclusive)
        end: Range end (inclusive)

    Returns:
        First day of each month; empty if ``end`` precedes ``start``
    """
    start_day, end_day = to_utc_day(start), to_utc_day(end)
    if end_day < start_day:
        return []

    months = []
    current = start_day.replace(day=1)
    last = end_day.replace(day=1)

    while current <= last:
        months.append(current)
        if current.month == 12:
            current = date(current.year + 1, 1, 1)
        else:
            current = date(current.year, current.month + 1, 1)

    return months


def intersect_window(month: date, start: DateLike, end: DateLike) -> tuple[date, date]:
    """
    Intersect a requested range with the bounds of one month.

    Args:
        month: Any day in the month
        start: Requested range start
        end: Requested range end

    Returns:
        Tuple of (fetch_start, fetch_end) clipped to the month
    """
    first, last = month_bounds(month)
    return max(first, to_utc_day(start)), min(last, to_utc_day(end))


def is_full_month(month: date, window_start: date, window_end: date) -> bool:
    """True when the window covers the entire month."""
    first, last = month_bounds(month)
    return window_start <= first and window_end >= last


def iter_days(start: DateLike, end: DateLike) -> Iterator[date]:
    """Yield every UTC day in ``[start, end]``."""
    current, last = to_utc_day(start), to_utc_day(end)
    while current <= last:
        yield current
        current += timedelta(days=1)


def day_iso(day: date) -> str:
    """ISO-8601 UTC instant at midnight of ``day``."""
    return f"{day.isoformat()}T00:00:00Z"


def instant_iso(day: date, hour: int = 12) -> str:
    """ISO-8601 UTC instant at ``hour``:00 of ``day``."""
    return f"{day.isoformat()}T{hour:02d}:00:00Z"


def filter_to_window(records: Iterable[T], start: DateLike, end: DateLike) -> list[T]:
    """
    Keep only records whose ``day`` falls inside ``[start, end]``.

    Args:
        records: Items exposing a ``day`` attribute
        start: Window start (inclusive)
        end: Window end (inclusive)

    Returns:
        Filtered records in their original order
    """
    start_day, end_day = to_utc_day(start), to_utc_day(end)
    return [r for r in records if start_day <= r.day <= end_day]  # type: ignore[attr-defined]
