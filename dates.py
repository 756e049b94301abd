"""
Date and time helpers shared by the API and the Python client.

Event dates and times travel as ``YYYY-MM-DD`` / ``HH:MM`` strings.
Notification times are stored as naive UTC and exposed as aware UTC.
"""
import calendar
from datetime import date, datetime, timedelta, timezone
from typing import List, Optional, Tuple, Union
from zoneinfo import ZoneInfo


def to_naive_utc(dt: datetime) -> datetime:
    """Convert an aware datetime to naive UTC. Naive input is assumed UTC."""
    if dt.tzinfo is not None:
        dt = dt.astimezone(timezone.utc).replace(tzinfo=None)
    return dt


def as_utc(dt: datetime) -> datetime:
    """Attach UTC to a naive datetime read back from storage."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def combine_date_time(date_str: str, time_str: str, tz: Optional[str] = None) -> datetime:
    """
    Combine an event date (YYYY-MM-DD) and time (HH:MM) into an aware datetime.

    The strings are read as wall-clock time in ``tz`` (UTC when omitted).
    """
    parts = time_str.split(":")
    hours = int(parts[0])
    minutes = int(parts[1]) if len(parts) > 1 and parts[1] else 0
    day = datetime.strptime(date_str, "%Y-%m-%d")
    zone = ZoneInfo(tz) if tz and tz != "UTC" else timezone.utc
    return day.replace(hour=hours, minute=minutes, tzinfo=zone)


def format_date(date_str: str) -> str:
    """'2024-05-01' -> 'May 1, 2024'"""
    d = datetime.strptime(date_str, "%Y-%m-%d")
    return f"{d.strftime('%B')} {d.day}, {d.year}"


def format_time(time_str: str) -> str:
    """'14:05' -> '2:05 PM'"""
    if not time_str:
        return ""
    hours, minutes = time_str.split(":")[:2]
    hour = int(hours)
    period = "PM" if hour >= 12 else "AM"
    return f"{hour % 12 or 12}:{minutes} {period}"


def days_in_month(year: int, month: int) -> int:
    # month is 1-based
    return calendar.monthrange(year, month)[1]


def first_weekday_of_month(year: int, month: int) -> int:
    """Weekday of the 1st of the month, Sunday = 0."""
    return (date(year, month, 1).weekday() + 1) % 7


def _previous_month(year: int, month: int) -> Tuple[int, int]:
    return (year - 1, 12) if month == 1 else (year, month - 1)


def calendar_days(year: int, month: int) -> List[Tuple[int, bool]]:
    """
    Cells of a Sunday-first month grid as (day, in_current_month) pairs.

    The grid opens with the tail of the previous month and is padded with
    the start of the next month up to a whole number of weeks.
    """
    first = first_weekday_of_month(year, month)
    count = days_in_month(year, month)
    prev_count = days_in_month(*_previous_month(year, month))

    cells = [(prev_count - first + i + 1, False) for i in range(first)]
    cells.extend((day, True) for day in range(1, count + 1))

    total = -(-(first + count) // 7) * 7
    cells.extend((i + 1, False) for i in range(total - len(cells)))
    return cells


def time_ago(value: Union[str, datetime], now: Optional[datetime] = None) -> str:
    if isinstance(value, str):
        try:
            value = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return "Invalid date"
    now = as_utc(now) if now else utcnow()
    seconds = int((now - as_utc(value)) / timedelta(seconds=1))

    minutes = seconds // 60
    hours = minutes // 60
    days = hours // 24
    if days > 0:
        return "1 day ago" if days == 1 else f"{days} days ago"
    if hours > 0:
        return "1 hour ago" if hours == 1 else f"{hours} hours ago"
    if minutes > 0:
        return "1 minute ago" if minutes == 1 else f"{minutes} minutes ago"
    return "just now" if seconds < 5 else f"{seconds} seconds ago"
