"""Utility functions for chapterly."""

from datetime import date, datetime, time, timedelta, timezone
from typing import Callable

Clock = Callable[[], datetime]


def local_now() -> datetime:
    """Current time as an aware datetime in the local timezone.

    Example:
        >>> local_now().tzinfo is not None
        True
    """
    return datetime.now().astimezone()


def start_of_day(day: date, like: datetime) -> datetime:
    """Midnight at the start of ``day`` in the timezone of ``like``.

    A fixed offset other than UTC that matches the system clock (what
    ``local_now`` gives) is treated as local time, so midnight gets its own
    offset on days when daylight saving starts or ends.

    Example:
        >>> from datetime import timezone
        >>> start_of_day(date(2025, 1, 15), datetime(2025, 1, 1, tzinfo=timezone.utc))
        datetime.datetime(2025, 1, 15, 0, 0, tzinfo=datetime.timezone.utc)
        >>> start_of_day(date(2025, 11, 2), local_now()).tzinfo is not None
        True
    """
    tz = like.tzinfo
    from_local_clock = (
        isinstance(tz, timezone)
        and tz is not timezone.utc
        and like.astimezone().utcoffset() == like.utcoffset()
    )
    if from_local_clock:
        return datetime.combine(day, time.min).astimezone()
    return datetime.combine(day, time.min, tzinfo=tz)


def day_window(now: datetime) -> tuple[datetime, datetime]:
    """[midnight today, midnight tomorrow) around ``now``."""
    start = start_of_day(now.date(), now)
    return start, start_of_day(now.date() + timedelta(days=1), now)


def elapsed_minutes(start: datetime, end: datetime) -> int:
    """Whole minutes between two datetimes, rounded down.

    Example:
        >>> elapsed_minutes(datetime(2025, 1, 1, 10, 0, 0), datetime(2025, 1, 1, 10, 2, 5))
        2
    """
    return int((end - start).total_seconds() // 60)
