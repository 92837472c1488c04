"""Reading statistics shown on the profile.

Everything here is derived on read from the library, the current streak
and the 7-day weekly view; nothing is stored.
"""

from dataclasses import dataclass
from typing import Iterable

from ..db.schemas import LibraryEntry

BOOKS_PER_LEVEL = 5

DAYS_PER_WEEK = 7


@dataclass(frozen=True)
class ReadingStats:
    """Profile statistics for one user."""

    books_read: int
    current_streak: int
    weekly_minutes: int
    daily_goal: int

    @property
    def average_daily_minutes(self) -> int:
        """Weekly minutes spread over 7 days, rounded half up."""
        return (self.weekly_minutes * 2 + DAYS_PER_WEEK) // (2 * DAYS_PER_WEEK)

    @property
    def level(self) -> int:
        """Starts at 1 and goes up every BOOKS_PER_LEVEL finished books."""
        return self.books_read // BOOKS_PER_LEVEL + 1

    @property
    def weekly_goal(self) -> int:
        return self.daily_goal * DAYS_PER_WEEK

    @property
    def weekly_remaining(self) -> int:
        return max(0, self.weekly_goal - self.weekly_minutes)

    @property
    def weekly_percent(self) -> int:
        """Share of the weekly goal reached, capped at 100."""
        if self.weekly_goal <= 0:
            return 0
        return min(100, self.weekly_minutes * 100 // self.weekly_goal)


def compute_stats(
    entries: Iterable[LibraryEntry],
    current_streak: int,
    weekly_minutes: int,
    daily_goal: int,
) -> ReadingStats:
    """Build profile statistics.

    Args:
        entries: The user's library entries
        current_streak: Length of the current streak in days
        weekly_minutes: Minutes across the 7-day weekly view
        daily_goal: Daily goal in minutes

    Returns:
        ReadingStats
    """
    return ReadingStats(
        books_read=sum(1 for entry in entries if entry.is_finished),
        current_streak=current_streak,
        weekly_minutes=weekly_minutes,
        daily_goal=daily_goal,
    )


def format_minutes(minutes: int) -> str:
    """Format minutes as ``1h 5m`` or ``45m``.

    Example:
        >>> format_minutes(65)
        '1h 5m'
        >>> format_minutes(45)
        '45m'
    """
    hours, mins = divmod(minutes, 60)
    if hours > 0:
        return f"{hours}h {mins}m"
    return f"{mins}m"
