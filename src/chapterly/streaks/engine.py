"""Daily reading streaks.

One record per user per calendar day holds the minutes read that day and
whether the daily goal was met when the record was last written. Streaks
and the weekly view are derived from those records on read; nothing else
is stored.
"""

import logging
from datetime import date, timedelta
from typing import Iterable, Optional

from ..db.mapping import streak_from_record
from ..db.schemas import DailyStreakRecord, WeekDay
from ..db.store import RemoteStore
from ..errors import NotSignedIn, PersistenceError
from ..utils import Clock, local_now

logger = logging.getLogger(__name__)

COLLECTION = "user_streaks"

# Indexed by date.weekday(), Monday first
DAY_LABELS = ["M", "T", "W", "T", "F", "S", "S"]

WEEK_LENGTH = 7


def compute_current_streak(records: Iterable[DailyStreakRecord], today: date) -> int:
    """Count consecutive goal-met days ending today or yesterday.

    Today only counts once its goal is met; until then the walk starts
    from yesterday, so an unfinished today never breaks the streak. A day
    with no record ends the streak just like a missed goal.

    Args:
        records: Daily records, in any order
        today: Current calendar date

    Returns:
        Length of the current streak, 0 if none
    """
    by_date = {record.date: record for record in records}

    day = today
    todays = by_date.get(today)
    if todays is None or not todays.goal_met:
        day = today - timedelta(days=1)

    streak = 0
    while True:
        record = by_date.get(day)
        if record is None or not record.goal_met:
            break
        streak += 1
        day -= timedelta(days=1)

    return streak


def build_weekly_view(records: Iterable[DailyStreakRecord], today: date) -> list[WeekDay]:
    """The 7 calendar days ending today, oldest first.

    Days without a record show 0 minutes and an unmet goal.
    """
    by_date = {record.date: record for record in records}

    week = []
    for offset in range(WEEK_LENGTH - 1, -1, -1):
        day = today - timedelta(days=offset)
        record = by_date.get(day)
        week.append(WeekDay(
            day_label=DAY_LABELS[day.weekday()],
            date=day,
            goal_reached=record.goal_met if record else False,
            minutes_read=record.minutes_read if record else 0,
        ))
    return week


class StreakEngine:
    """Maintains daily records and derives streak views from them."""

    def __init__(
        self,
        store: RemoteStore,
        user_id: Optional[str],
        clock: Optional[Clock] = None,
    ):
        """Initialize streak engine.

        Args:
            store: Remote store to persist through
            user_id: Signed-in user id (None when signed out)
            clock: Returns the current time; defaults to local now
        """
        self.store = store
        self.user_id = user_id
        self.clock = clock or local_now
        self._records: dict[date, DailyStreakRecord] = {}

    def today(self) -> date:
        return self.clock().date()

    # -------------------------------------------------------------------------
    # Loading
    # -------------------------------------------------------------------------

    def refresh(self) -> list[DailyStreakRecord]:
        """Reload daily records from the store, newest first.

        Load failures are logged and leave the cached records untouched.
        """
        if not self.user_id:
            self._records = {}
            return []

        try:
            rows = self.store.query(COLLECTION, {"user_id": self.user_id}, order="-date")
        except PersistenceError as e:
            logger.error(f"Error loading streaks for {self.user_id}: {e}")
            return self.records

        self._records = {}
        for row in rows:
            record = streak_from_record(row)
            self._records[record.date] = record
        return self.records

    @property
    def records(self) -> list[DailyStreakRecord]:
        """Cached daily records, newest first."""
        return sorted(self._records.values(), key=lambda r: r.date, reverse=True)

    def get_record(self, day: date) -> Optional[DailyStreakRecord]:
        return self._records.get(day)

    # -------------------------------------------------------------------------
    # Mutation
    # -------------------------------------------------------------------------

    def upsert_today(self, minutes_read: int, daily_goal: int) -> DailyStreakRecord:
        """Write today's total minutes and goal snapshot.

        The day's record is replaced, not incremented: ``minutes_read`` is
        the full total for today. ``goal_met`` is judged against the goal
        passed in now and is never revisited if the goal later changes.

        Raises:
            ValueError: If minutes_read is negative
            PersistenceError: If the store rejects the write
        """
        if minutes_read < 0:
            raise ValueError(f"Minutes read cannot be negative: {minutes_read}")
        if not self.user_id:
            raise NotSignedIn("User not authenticated")

        today = self.today()
        row = self.store.upsert(
            COLLECTION,
            {
                "user_id": self.user_id,
                "date": today.isoformat(),
                "minutes_read": minutes_read,
                "goal_met": minutes_read >= daily_goal,
            },
            on_conflict=("user_id", "date"),
        )
        record = streak_from_record(row)
        self._records[record.date] = record
        logger.info(
            f"Streak updated for {today}: {minutes_read} min, goal met={record.goal_met}"
        )

        self.refresh()
        return record

    # -------------------------------------------------------------------------
    # Derived views
    # -------------------------------------------------------------------------

    def current_streak(self) -> int:
        """Length of the current streak of goal-met days."""
        return compute_current_streak(self._records.values(), self.today())

    def weekly_view(self) -> list[WeekDay]:
        """The last 7 days, oldest first."""
        return build_weekly_view(self._records.values(), self.today())

    def today_minutes(self) -> int:
        """Minutes recorded for today, 0 if none."""
        record = self._records.get(self.today())
        return record.minutes_read if record else 0

    def weekly_minutes(self) -> int:
        """Minutes across the 7-day weekly view."""
        return sum(day.minutes_read for day in self.weekly_view())
