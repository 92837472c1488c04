"""Active reading timer.

Captures when reading started and from which page, so that stopping the
timer produces everything needed to record the session. The active
timer is persisted to a small JSON file so it survives between CLI runs.
"""

import json
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Optional

from ..db.schemas import LibraryEntry
from ..utils import Clock, elapsed_minutes, local_now


@dataclass
class ActiveSession:
    """A reading session that has started but not stopped."""

    entry_id: str
    book_title: str
    start_time: datetime
    starting_page: int = 0

    def to_dict(self) -> dict:
        """Convert to dictionary for persistence."""
        return {
            "entry_id": self.entry_id,
            "book_title": self.book_title,
            "start_time": self.start_time.isoformat(),
            "starting_page": self.starting_page,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "ActiveSession":
        """Create from dictionary."""
        return cls(
            entry_id=data["entry_id"],
            book_title=data["book_title"],
            start_time=datetime.fromisoformat(data["start_time"]),
            starting_page=data.get("starting_page", 0),
        )


@dataclass(frozen=True)
class FinishedSession:
    """A stopped session, ready to be recorded."""

    entry_id: str
    start_time: datetime
    end_time: datetime
    starting_page: int
    ending_page: int

    @property
    def duration_minutes(self) -> int:
        return elapsed_minutes(self.start_time, self.end_time)


class ReadingTimer:
    """Starts and stops the single active reading session."""

    def __init__(self, session_file: Optional[Path] = None, clock: Optional[Clock] = None):
        """Initialize the timer.

        Args:
            session_file: Where to persist the active session; None keeps it in memory
            clock: Returns the current time; defaults to local now
        """
        self.session_file = session_file
        self.clock = clock or local_now
        self._active: Optional[ActiveSession] = None
        self._load()

    def _load(self) -> None:
        """Load the active session from file if one exists."""
        if self.session_file and self.session_file.exists():
            try:
                with open(self.session_file, "r") as f:
                    self._active = ActiveSession.from_dict(json.load(f))
            except (json.JSONDecodeError, KeyError, ValueError):
                self._active = None

    def _save(self) -> None:
        """Save the active session to file, or remove the file when idle."""
        if self.session_file is None:
            return
        if self._active:
            self.session_file.parent.mkdir(parents=True, exist_ok=True)
            with open(self.session_file, "w") as f:
                json.dump(self._active.to_dict(), f)
        elif self.session_file.exists():
            self.session_file.unlink()

    @property
    def active(self) -> Optional[ActiveSession]:
        """The running session, if any."""
        return self._active

    def elapsed_minutes(self) -> int:
        """Whole minutes since the running session started, 0 when idle."""
        if not self._active:
            return 0
        return elapsed_minutes(self._active.start_time, self.clock())

    def start(self, entry: LibraryEntry) -> ActiveSession:
        """Start timing a session for ``entry`` from its current page.

        Raises:
            ValueError: If a session is already running
        """
        if self._active:
            raise ValueError(
                f"Already reading '{self._active.book_title}'. "
                "Stop the current session first."
            )

        self._active = ActiveSession(
            entry_id=entry.id,
            book_title=entry.title,
            start_time=self.clock(),
            starting_page=entry.current_page,
        )
        self._save()
        return self._active

    def snapshot(self, ending_page: int) -> Optional[FinishedSession]:
        """The running session as if it ended now, leaving the timer running.

        Returns:
            The finished session, or None if nothing was running
        """
        if not self._active:
            return None

        return FinishedSession(
            entry_id=self._active.entry_id,
            start_time=self._active.start_time,
            end_time=self.clock(),
            starting_page=self._active.starting_page,
            ending_page=ending_page,
        )

    def stop(self, ending_page: int) -> Optional[FinishedSession]:
        """Stop the running session.

        Returns:
            The finished session, or None if nothing was running
        """
        finished = self.snapshot(ending_page)
        if finished:
            self.clear()
        return finished

    def clear(self) -> None:
        """Forget the running session and its file."""
        self._active = None
        self._save()

    def cancel(self) -> bool:
        """Discard the running session without recording it."""
        if not self._active:
            return False
        self.clear()
        return True
