"""Pytest configuration and shared fixtures.

This module provides fixtures for testing chapterly: an in-memory store,
a controllable clock, the core components wired to both, and sample
catalog records.
"""

from datetime import datetime, timedelta, timezone

import pytest

from chapterly.config import reset_config
from chapterly.db.schemas import BookMetadata
from chapterly.db.store import SqlStore, reset_db
from chapterly.library import LibraryLedger
from chapterly.reading import SessionRecorder
from chapterly.streaks import StreakEngine

USER_ID = "user-1"
OTHER_USER_ID = "user-2"

# A Wednesday afternoon, UTC
FIXED_NOW = datetime(2025, 6, 18, 14, 30, tzinfo=timezone.utc)


class FakeClock:
    """Clock that only moves when told to."""

    def __init__(self, now: datetime = FIXED_NOW):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now += timedelta(**kwargs)
        return self.now


# ============================================================================
# Store and Component Fixtures
# ============================================================================


@pytest.fixture(autouse=True)
def reset_globals():
    """Reset process-wide singletons around each test."""
    reset_db()
    reset_config()
    yield
    reset_db()
    reset_config()


@pytest.fixture
def store() -> SqlStore:
    """Create an in-memory store with a signed-in user."""
    database = SqlStore(":memory:", user_id=USER_ID)
    database.create_tables()
    return database


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def ledger(store, clock) -> LibraryLedger:
    return LibraryLedger(store, USER_ID, clock)


@pytest.fixture
def recorder(store, clock) -> SessionRecorder:
    return SessionRecorder(store, USER_ID, clock)


@pytest.fixture
def streaks(store, clock) -> StreakEngine:
    return StreakEngine(store, USER_ID, clock)


# ============================================================================
# Sample Data Fixtures
# ============================================================================


@pytest.fixture
def dune() -> BookMetadata:
    """Catalog record for a full-length novel."""
    return BookMetadata(
        id="vol-dune",
        title="Dune",
        author="Frank Herbert",
        cover_url="https://books.google.com/dune.jpg",
        total_pages=412,
        description="Spice, sand and sandworms.",
        published_date="1965",
        categories=["Fiction", "Science Fiction"],
        isbn="9780441172719",
    )


@pytest.fixture
def short_book() -> BookMetadata:
    """Catalog record with only a few pages, handy for rounding checks."""
    return BookMetadata(
        id="vol-short",
        title="A Short Pamphlet",
        author="Anonymous",
        total_pages=8,
    )


@pytest.fixture
def pageless_book() -> BookMetadata:
    """Catalog record with an unknown page count."""
    return BookMetadata(
        id="vol-pageless",
        title="Untitled Zine",
        author="Unknown Author",
        total_pages=0,
    )
