"""Remote store contract, local SQLite store and typed records."""

from .models import Profile, SessionLog, UserBook, UserStreak
from .schemas import (
    BookMetadata,
    DailyStreakRecord,
    LibraryEntry,
    ReadingSessionRecord,
    ReadingStatus,
    UserProfile,
    WeekDay,
)
from .store import RemoteStore, SqlStore, get_db, reset_db

__all__ = [
    "Profile",
    "SessionLog",
    "UserBook",
    "UserStreak",
    "BookMetadata",
    "DailyStreakRecord",
    "LibraryEntry",
    "ReadingSessionRecord",
    "ReadingStatus",
    "UserProfile",
    "WeekDay",
    "RemoteStore",
    "SqlStore",
    "get_db",
    "reset_db",
]
