"""Reading session recording and time aggregation.

Sessions are append-only: once recorded they are never updated or
deleted. Aggregate reads feed informational displays only, so a failed
read degrades to zero instead of raising.
"""

import logging
from datetime import datetime, timedelta
from typing import Optional

from ..db.mapping import session_from_record, to_iso
from ..db.schemas import ReadingSessionRecord
from ..db.store import RemoteStore
from ..errors import InvalidSession, NotSignedIn, PersistenceError
from ..utils import Clock, day_window, elapsed_minutes, local_now

logger = logging.getLogger(__name__)

COLLECTION = "reading_sessions"


def validate_session(
    start_time: datetime,
    end_time: datetime,
    starting_page: int,
    ending_page: int,
) -> None:
    """Reject inverted time or page ranges.

    Raises:
        InvalidSession: If end precedes start, or pages go backwards
    """
    if end_time < start_time:
        raise InvalidSession(
            "Session cannot end before it starts",
            details={"start_time": start_time.isoformat(), "end_time": end_time.isoformat()},
        )
    if starting_page < 0:
        raise InvalidSession(
            "Starting page cannot be negative", details={"starting_page": starting_page}
        )
    if ending_page < starting_page:
        raise InvalidSession(
            "Ending page cannot be less than starting page",
            details={"starting_page": starting_page, "ending_page": ending_page},
        )


class SessionRecorder:
    """Records reading sessions and sums reading time."""

    def __init__(
        self,
        store: RemoteStore,
        user_id: Optional[str],
        clock: Optional[Clock] = None,
    ):
        """Initialize session recorder.

        Args:
            store: Remote store to persist through
            user_id: Signed-in user id (None when signed out)
            clock: Returns the current time; defaults to local now
        """
        self.store = store
        self.user_id = user_id
        self.clock = clock or local_now

    def record_session(
        self,
        book_id: str,
        start_time: datetime,
        end_time: datetime,
        starting_page: int,
        ending_page: int,
    ) -> ReadingSessionRecord:
        """Persist one finished reading session.

        Args:
            book_id: Library entry the session belongs to
            start_time: When reading started
            end_time: When reading stopped
            starting_page: Page at start
            ending_page: Page at stop

        Returns:
            The stored session, with whole elapsed minutes as its duration

        Raises:
            InvalidSession: If the time or page range is inverted
            PersistenceError: If the store rejects the write
        """
        validate_session(start_time, end_time, starting_page, ending_page)
        if not self.user_id:
            raise NotSignedIn("User not authenticated")

        row = self.store.insert(COLLECTION, {
            "user_id": self.user_id,
            "book_id": book_id,
            "start_time": to_iso(start_time),
            "end_time": to_iso(end_time),
            "duration_minutes": elapsed_minutes(start_time, end_time),
            "starting_page": starting_page,
            "ending_page": ending_page,
        })
        session = session_from_record(row)
        logger.info(
            f"Reading session saved: book={book_id} minutes={session.duration_minutes} "
            f"pages={starting_page}-{ending_page}"
        )
        return session

    def minutes_in_window(
        self,
        start_inclusive: datetime,
        end_exclusive: datetime,
        lenient: bool = True,
    ) -> int:
        """Total minutes of sessions that started in [start, end).

        With ``lenient`` (the default, for displays) a signed-out user or an
        unreadable store gives 0. Callers that write the total back must pass
        ``lenient=False`` and get ``NotSignedIn`` / ``PersistenceError``.
        """
        if not self.user_id:
            if lenient:
                return 0
            raise NotSignedIn("User not authenticated")

        try:
            rows = self.store.query(COLLECTION, {
                "user_id": self.user_id,
                "start_time__gte": to_iso(start_inclusive),
                "start_time__lt": to_iso(end_exclusive),
            })
        except PersistenceError as e:
            logger.error(f"Error getting reading time: {e}")
            if lenient:
                return 0
            raise

        return sum(row.get("duration_minutes") or 0 for row in rows)

    def minutes_today(self, lenient: bool = True) -> int:
        """Minutes read since local midnight."""
        start, end = day_window(self.clock())
        return self.minutes_in_window(start, end, lenient=lenient)

    def minutes_this_week(self) -> int:
        """Minutes read in the last 7 days (rolling, up to now)."""
        now = self.clock()
        return self.minutes_in_window(now - timedelta(days=7), now)

    def sessions_for_book(self, book_id: str) -> list[ReadingSessionRecord]:
        """Session history for one book, oldest first. Empty on failure."""
        if not self.user_id:
            return []

        try:
            rows = self.store.query(
                COLLECTION,
                {"user_id": self.user_id, "book_id": book_id},
                order="start_time",
            )
        except PersistenceError as e:
            logger.error(f"Error loading sessions for {book_id}: {e}")
            return []

        return [session_from_record(row) for row in rows]
