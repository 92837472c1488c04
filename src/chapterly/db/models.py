"""SQLAlchemy ORM models backing the local store.

Tables:
- user_profiles: Per-user settings (daily goal, onboarding)
- user_books: Library entries, one per user per catalog book
- reading_sessions: Append-only timed reading intervals
- user_streaks: One minutes-read aggregate per user per day
"""

from datetime import datetime, timezone
from typing import Optional
from uuid import uuid4

from sqlalchemy import (
    JSON,
    Boolean,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """Base class for all ORM models."""

    # Column naming the user that owns a row
    owner_column = "user_id"


def generate_uuid() -> str:
    """Generate a UUID string for primary keys."""
    return str(uuid4())


def utc_now_iso() -> str:
    """Current UTC time as an ISO-8601 string."""
    return datetime.now(timezone.utc).isoformat(timespec="microseconds")


class Profile(Base):
    """User profile model."""

    __tablename__ = "user_profiles"
    owner_column = "id"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    username: Mapped[Optional[str]] = mapped_column(String(100), unique=True)
    daily_goal_minutes: Mapped[int] = mapped_column(Integer, default=30)
    onboarding_completed: Mapped[bool] = mapped_column(Boolean, default=False)

    created_at: Mapped[str] = mapped_column(String(32), default=utc_now_iso)
    updated_at: Mapped[str] = mapped_column(
        String(32), default=utc_now_iso, onupdate=utc_now_iso
    )

    def __repr__(self) -> str:
        return f"<Profile(id={self.id}, goal={self.daily_goal_minutes})>"


class UserBook(Base):
    """Library entry model - a catalog book copied into a user's library."""

    __tablename__ = "user_books"
    __table_args__ = (
        UniqueConstraint("user_id", "google_book_id", name="uq_user_books_user_book"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_uuid)
    user_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    google_book_id: Mapped[str] = mapped_column(String(64), nullable=False)

    # Metadata copied in at add time
    title: Mapped[str] = mapped_column(String(500), nullable=False)
    author: Mapped[str] = mapped_column(String(500), default="")
    cover: Mapped[str] = mapped_column(Text, default="")
    total_pages: Mapped[int] = mapped_column(Integer, default=0)
    description: Mapped[str] = mapped_column(Text, default="")
    published_date: Mapped[str] = mapped_column(String(20), default="")
    categories: Mapped[Optional[list]] = mapped_column(JSON, default=list)
    isbn: Mapped[str] = mapped_column(String(13), default="")

    # Reading state
    status: Mapped[str] = mapped_column(String(20), default="want-to-read", index=True)
    current_page: Mapped[int] = mapped_column(Integer, default=0)
    progress: Mapped[int] = mapped_column(Integer, default=0)
    notes: Mapped[str] = mapped_column(Text, default="")

    # Dates (ISO datetimes)
    date_added: Mapped[str] = mapped_column(String(32), default=utc_now_iso)
    date_started: Mapped[Optional[str]] = mapped_column(String(32))
    date_finished: Mapped[Optional[str]] = mapped_column(String(32))

    created_at: Mapped[str] = mapped_column(String(32), default=utc_now_iso)
    updated_at: Mapped[str] = mapped_column(
        String(32), default=utc_now_iso, onupdate=utc_now_iso
    )

    def __repr__(self) -> str:
        return f"<UserBook(id={self.id}, title='{self.title}', status={self.status})>"


class SessionLog(Base):
    """Reading session model - one immutable timed reading interval.

    No foreign key to user_books: sessions outlive removed entries.
    """

    __tablename__ = "reading_sessions"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_uuid)
    user_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    book_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    start_time: Mapped[str] = mapped_column(String(32), nullable=False, index=True)
    end_time: Mapped[str] = mapped_column(String(32), nullable=False)
    duration_minutes: Mapped[int] = mapped_column(Integer, default=0)
    starting_page: Mapped[int] = mapped_column(Integer, default=0)
    ending_page: Mapped[int] = mapped_column(Integer, default=0)

    created_at: Mapped[str] = mapped_column(String(32), default=utc_now_iso)

    def __repr__(self) -> str:
        return f"<SessionLog(id={self.id}, book_id={self.book_id}, minutes={self.duration_minutes})>"


class UserStreak(Base):
    """Daily streak model - minutes read and goal snapshot for one day."""

    __tablename__ = "user_streaks"
    __table_args__ = (
        UniqueConstraint("user_id", "date", name="uq_user_streaks_user_date"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_uuid)
    user_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    date: Mapped[str] = mapped_column(String(10), nullable=False)  # ISO date
    minutes_read: Mapped[int] = mapped_column(Integer, default=0)
    goal_met: Mapped[bool] = mapped_column(Boolean, default=False)

    created_at: Mapped[str] = mapped_column(String(32), default=utc_now_iso)

    def __repr__(self) -> str:
        return f"<UserStreak(date={self.date}, minutes={self.minutes_read}, met={self.goal_met})>"


COLLECTIONS: dict[str, type[Base]] = {
    "user_profiles": Profile,
    "user_books": UserBook,
    "reading_sessions": SessionLog,
    "user_streaks": UserStreak,
}
