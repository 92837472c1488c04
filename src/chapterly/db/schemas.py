"""Pydantic schemas for the typed records the core works with.

The remote store hands back loosely shaped dict rows; these schemas are
what the library, session and streak components see after the mapping
layer has converted them.
"""

from datetime import date as Date, datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


class ReadingStatus(str, Enum):
    """Reading status of a library entry."""

    READING = "reading"
    READ = "read"
    WANT_TO_READ = "want-to-read"


# ============================================================================
# Catalog
# ============================================================================


class BookMetadata(BaseModel):
    """Book metadata as returned by the catalog client."""

    id: str = Field(..., min_length=1, description="Catalog volume id")
    title: str
    author: str
    cover_url: str = ""
    total_pages: int = Field(0, ge=0)
    description: Optional[str] = None
    published_date: Optional[str] = None
    categories: list[str] = Field(default_factory=list)
    isbn: Optional[str] = None

    model_config = {"frozen": True}


# ============================================================================
# Library
# ============================================================================


class LibraryEntry(BaseModel):
    """A user's personal record of one catalog book."""

    id: str
    user_id: str
    book_id: str = Field(..., description="Catalog volume id the entry was added from")
    title: str
    author: str
    cover_url: str = ""
    total_pages: int = Field(0, ge=0)
    description: Optional[str] = None
    published_date: Optional[str] = None
    categories: list[str] = Field(default_factory=list)
    isbn: Optional[str] = None

    status: ReadingStatus = ReadingStatus.WANT_TO_READ
    current_page: int = Field(0, ge=0)
    progress: int = Field(0, ge=0, le=100)
    notes: Optional[str] = None

    date_added: datetime
    date_started: Optional[datetime] = None
    date_finished: Optional[datetime] = None

    @property
    def pages_remaining(self) -> int:
        """Pages left until the last page."""
        return max(0, self.total_pages - self.current_page)

    @property
    def is_finished(self) -> bool:
        return self.status == ReadingStatus.READ


# ============================================================================
# Reading Sessions
# ============================================================================


class ReadingSessionRecord(BaseModel):
    """One immutable timed interval of reading."""

    id: str
    user_id: str
    book_id: str
    start_time: datetime
    end_time: datetime
    duration_minutes: int = Field(0, ge=0)
    starting_page: int = Field(0, ge=0)
    ending_page: int = Field(0, ge=0)

    model_config = {"frozen": True}

    @property
    def pages_read(self) -> int:
        return max(0, self.ending_page - self.starting_page)


# ============================================================================
# Streaks
# ============================================================================


class DailyStreakRecord(BaseModel):
    """Per-user, per-day aggregate of minutes read."""

    id: str
    user_id: str
    date: Date
    minutes_read: int = Field(0, ge=0)
    goal_met: bool = False


class WeekDay(BaseModel):
    """One day of the rolling 7-day view."""

    day_label: str
    date: Date
    goal_reached: bool = False
    minutes_read: int = 0


# ============================================================================
# Profile
# ============================================================================


class UserProfile(BaseModel):
    """The parts of a user's profile the core consumes."""

    id: str
    username: Optional[str] = None
    daily_goal_minutes: int = Field(30, ge=1)
    onboarding_completed: bool = False
