"""Mapping between store rows and typed records.

Rows coming back from the store are loosely shaped dicts: timestamps are
ISO strings, optional text columns may be empty strings or missing, list
columns may be null. Everything the core sees goes through here first.
"""

from datetime import date, datetime, timezone
from enum import Enum
from typing import Any, Optional

from .schemas import (
    BookMetadata,
    DailyStreakRecord,
    LibraryEntry,
    ReadingSessionRecord,
    ReadingStatus,
    UserProfile,
)

# Field name on LibraryEntry -> column name in user_books
ENTRY_COLUMNS = {
    "book_id": "google_book_id",
    "cover_url": "cover",
}


def to_iso(value: datetime) -> str:
    """Serialize a datetime as a UTC ISO-8601 string.

    Naive datetimes are taken as local time. A fixed format keeps
    string comparison in range filters chronological.
    """
    return value.astimezone(timezone.utc).isoformat(timespec="microseconds")


def parse_iso(value: Any) -> Optional[datetime]:
    """Parse an ISO timestamp from the store; naive values are UTC."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        parsed = value
    else:
        parsed = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _text(value: Any) -> Optional[str]:
    return value if value else None


def to_store_values(values: dict[str, Any]) -> dict[str, Any]:
    """Convert typed field values into store column values."""
    result = {}
    for key, value in values.items():
        if isinstance(value, datetime):
            value = to_iso(value)
        elif isinstance(value, date):
            value = value.isoformat()
        elif isinstance(value, Enum):
            value = value.value
        result[ENTRY_COLUMNS.get(key, key)] = value
    return result


# ============================================================================
# Library
# ============================================================================


def metadata_to_values(metadata: BookMetadata) -> dict[str, Any]:
    """Catalog fields copied into a new library entry."""
    return {
        "book_id": metadata.id,
        "title": metadata.title,
        "author": metadata.author,
        "cover_url": metadata.cover_url,
        "total_pages": metadata.total_pages,
        "description": metadata.description or "",
        "published_date": metadata.published_date or "",
        "categories": list(metadata.categories),
        "isbn": metadata.isbn or "",
    }


def entry_from_record(row: dict[str, Any]) -> LibraryEntry:
    """Build a LibraryEntry from a user_books row."""
    return LibraryEntry(
        id=row["id"],
        user_id=row["user_id"],
        book_id=row["google_book_id"],
        title=row["title"],
        author=row.get("author") or "",
        cover_url=row.get("cover") or "",
        total_pages=row.get("total_pages") or 0,
        description=_text(row.get("description")),
        published_date=_text(row.get("published_date")),
        categories=row.get("categories") or [],
        isbn=_text(row.get("isbn")),
        status=ReadingStatus(row.get("status") or ReadingStatus.WANT_TO_READ.value),
        current_page=row.get("current_page") or 0,
        progress=row.get("progress") or 0,
        notes=_text(row.get("notes")),
        date_added=parse_iso(row.get("date_added") or row.get("created_at")),
        date_started=parse_iso(row.get("date_started")),
        date_finished=parse_iso(row.get("date_finished")),
    )


# ============================================================================
# Sessions, streaks, profiles
# ============================================================================


def session_from_record(row: dict[str, Any]) -> ReadingSessionRecord:
    """Build a ReadingSessionRecord from a reading_sessions row."""
    return ReadingSessionRecord(
        id=row["id"],
        user_id=row["user_id"],
        book_id=row["book_id"],
        start_time=parse_iso(row["start_time"]),
        end_time=parse_iso(row["end_time"]),
        duration_minutes=row.get("duration_minutes") or 0,
        starting_page=row.get("starting_page") or 0,
        ending_page=row.get("ending_page") or 0,
    )


def streak_from_record(row: dict[str, Any]) -> DailyStreakRecord:
    """Build a DailyStreakRecord from a user_streaks row."""
    return DailyStreakRecord(
        id=row["id"],
        user_id=row["user_id"],
        date=date.fromisoformat(str(row["date"])[:10]),
        minutes_read=row.get("minutes_read") or 0,
        goal_met=bool(row.get("goal_met")),
    )


def profile_from_record(row: dict[str, Any]) -> UserProfile:
    """Build a UserProfile from a user_profiles row."""
    return UserProfile(
        id=row["id"],
        username=_text(row.get("username")),
        daily_goal_minutes=row.get("daily_goal_minutes") or 30,
        onboarding_completed=bool(row.get("onboarding_completed")),
    )
