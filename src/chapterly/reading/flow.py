"""Finishing a reading session end to end.

Saving a session touches three records: the entry's page progress, the
session itself and today's streak record. The store offers no
multi-record transaction, so the steps run in a fixed order and a
failure after the first write raises ``IncompleteSession`` naming the
steps that did persist. Everything that can be validated is validated
before the first write.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from ..db.schemas import ReadingStatus
from ..errors import IncompleteSession, InvalidPage, PersistenceError
from ..library.ledger import LibraryLedger
from ..streaks.engine import StreakEngine
from .recorder import SessionRecorder, validate_session
from .timer import FinishedSession

logger = logging.getLogger(__name__)

STEP_PROGRESS = "progress"
STEP_SESSION = "session"
STEP_STREAK = "streak"


@dataclass
class SessionSummary:
    """What a saved session changed."""

    entry_id: str
    book_title: str
    minutes: int
    starting_page: int
    ending_page: int
    progress: int
    status: ReadingStatus
    today_minutes: int
    goal_met: bool
    current_streak: int

    @property
    def pages_read(self) -> int:
        return max(0, self.ending_page - self.starting_page)

    @property
    def finished_book(self) -> bool:
        return self.status == ReadingStatus.READ


class ReadingFlow:
    """Coordinates the ledger, recorder and streak engine for one session."""

    def __init__(
        self,
        ledger: LibraryLedger,
        recorder: SessionRecorder,
        streaks: StreakEngine,
        daily_goal: int,
    ):
        self.ledger = ledger
        self.recorder = recorder
        self.streaks = streaks
        self.daily_goal = daily_goal

    def complete_session(
        self,
        entry_id: str,
        start_time: datetime,
        end_time: datetime,
        ending_page: int,
        starting_page: Optional[int] = None,
    ) -> SessionSummary:
        """Save a finished session, its page progress and today's streak.

        Args:
            entry_id: Library entry that was read
            start_time: When reading started
            end_time: When reading stopped
            ending_page: Page reached
            starting_page: Page reading started from; defaults to the
                entry's current page

        Returns:
            SessionSummary of the saved changes

        Raises:
            EntryNotFound: If the entry is not in the library
            InvalidSession: If the time or page range is inverted
            InvalidPage: If the ending page is past the last page
            PersistenceError: If the first write fails (nothing saved)
            IncompleteSession: If a later write fails
        """
        entry = self.ledger.require_entry(entry_id)
        if starting_page is None:
            starting_page = entry.current_page

        validate_session(start_time, end_time, starting_page, ending_page)
        if ending_page > entry.total_pages:
            raise InvalidPage(
                f"Page must be between 0 and {entry.total_pages}",
                details={"page": ending_page, "total_pages": entry.total_pages},
            )

        completed: list[str] = []

        entry = self.ledger.update_progress(entry_id, ending_page)
        completed.append(STEP_PROGRESS)

        try:
            session = self.recorder.record_session(
                entry_id, start_time, end_time, starting_page, ending_page
            )
            completed.append(STEP_SESSION)

            today_minutes = self.recorder.minutes_today(lenient=False)
            record = self.streaks.upsert_today(today_minutes, self.daily_goal)
            completed.append(STEP_STREAK)
        except PersistenceError as e:
            logger.error(f"Reading session for {entry_id} only partly saved ({completed}): {e}")
            raise IncompleteSession(
                "Failed to save reading session",
                completed=completed,
                details={"entry_id": entry_id, "error": str(e)},
            )

        return SessionSummary(
            entry_id=entry.id,
            book_title=entry.title,
            minutes=session.duration_minutes,
            starting_page=starting_page,
            ending_page=ending_page,
            progress=entry.progress,
            status=entry.status,
            today_minutes=today_minutes,
            goal_met=record.goal_met,
            current_streak=self.streaks.current_streak(),
        )

    def complete(self, finished: FinishedSession) -> SessionSummary:
        """Save a session produced by ``ReadingTimer.stop``."""
        return self.complete_session(
            finished.entry_id,
            finished.start_time,
            finished.end_time,
            finished.ending_page,
            starting_page=finished.starting_page,
        )
