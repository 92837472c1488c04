"""Tests for finishing a reading session end to end."""

from datetime import timedelta

import pytest

from chapterly.db.schemas import ReadingStatus
from chapterly.errors import (
    EntryNotFound,
    IncompleteSession,
    InvalidPage,
    InvalidSession,
    PersistenceError,
)
from chapterly.reading import ReadingFlow, ReadingTimer


@pytest.fixture
def flow(ledger, recorder, streaks) -> ReadingFlow:
    return ReadingFlow(ledger, recorder, streaks, daily_goal=30)


@pytest.fixture
def reading_entry(ledger, dune):
    entry = ledger.add_book(dune, ReadingStatus.READING)
    return ledger.update_progress(entry.id, 100)


class TestCompleteSession:
    """Tests for the happy path."""

    def test_saves_progress_session_and_streak(self, flow, ledger, store, clock, reading_entry):
        start = clock.now - timedelta(minutes=35)

        summary = flow.complete_session(reading_entry.id, start, clock.now, 150)

        assert summary.minutes == 35
        assert summary.starting_page == 100
        assert summary.ending_page == 150
        assert summary.pages_read == 50
        assert summary.progress == 36
        assert summary.status == ReadingStatus.READING
        assert summary.today_minutes == 35
        assert summary.goal_met is True
        assert summary.current_streak == 1
        assert not summary.finished_book

        assert ledger.get_entry(reading_entry.id).current_page == 150
        assert len(store.query("reading_sessions")) == 1
        assert store.query("user_streaks")[0]["minutes_read"] == 35

    def test_sessions_accumulate_into_today(self, flow, clock, reading_entry):
        flow.complete_session(reading_entry.id, clock.now - timedelta(minutes=10), clock.now, 110)
        clock.advance(hours=1)

        summary = flow.complete_session(
            reading_entry.id, clock.now - timedelta(minutes=25), clock.now, 130
        )

        assert summary.today_minutes == 35
        assert summary.goal_met is True

    def test_goal_not_met(self, flow, streaks, clock, reading_entry):
        summary = flow.complete_session(
            reading_entry.id, clock.now - timedelta(minutes=10), clock.now, 110
        )

        assert summary.goal_met is False
        assert summary.current_streak == 0
        assert streaks.today_minutes() == 10

    def test_reaching_last_page_finishes_book(self, flow, clock, reading_entry):
        summary = flow.complete_session(
            reading_entry.id, clock.now - timedelta(minutes=90), clock.now, 412
        )

        assert summary.finished_book
        assert summary.progress == 100

    def test_explicit_starting_page(self, flow, store, clock, reading_entry):
        flow.complete_session(
            reading_entry.id, clock.now - timedelta(minutes=5), clock.now, 120, starting_page=90
        )

        assert store.query("reading_sessions")[0]["starting_page"] == 90

    def test_complete_from_timer(self, flow, ledger, clock, reading_entry):
        timer = ReadingTimer(clock=clock)
        timer.start(reading_entry)
        clock.advance(minutes=40)

        summary = flow.complete(timer.stop(ending_page=140))

        assert summary.minutes == 40
        assert summary.starting_page == 100
        assert ledger.get_entry(reading_entry.id).current_page == 140


class TestValidationBeforeWrites:
    """Tests that rejected sessions change nothing."""

    def test_unknown_entry(self, flow, clock):
        with pytest.raises(EntryNotFound):
            flow.complete_session("missing", clock.now - timedelta(minutes=5), clock.now, 10)

    def test_pages_backwards(self, flow, ledger, store, clock, reading_entry):
        with pytest.raises(InvalidSession):
            flow.complete_session(reading_entry.id, clock.now - timedelta(minutes=5), clock.now, 80)

        assert ledger.get_entry(reading_entry.id).current_page == 100
        assert store.query("reading_sessions") == []
        assert store.query("user_streaks") == []

    def test_end_before_start(self, flow, store, clock, reading_entry):
        with pytest.raises(InvalidSession):
            flow.complete_session(reading_entry.id, clock.now, clock.now - timedelta(minutes=5), 120)

        assert store.query("reading_sessions") == []

    def test_page_past_end(self, flow, ledger, store, clock, reading_entry):
        with pytest.raises(InvalidPage):
            flow.complete_session(reading_entry.id, clock.now - timedelta(minutes=5), clock.now, 500)

        assert ledger.get_entry(reading_entry.id).current_page == 100
        assert store.query("reading_sessions") == []


class TestPartialFailure:
    """Tests for failures after the first write."""

    def test_session_write_fails(self, flow, recorder, ledger, store, clock, reading_entry, monkeypatch):
        def fail(*args, **kwargs):
            raise PersistenceError("timeout")

        monkeypatch.setattr(recorder, "record_session", fail)

        with pytest.raises(IncompleteSession) as exc_info:
            flow.complete_session(reading_entry.id, clock.now - timedelta(minutes=5), clock.now, 120)

        assert exc_info.value.completed == ("progress",)
        assert ledger.get_entry(reading_entry.id).current_page == 120
        assert store.query("user_streaks") == []

    def test_streak_write_fails(self, flow, streaks, store, clock, reading_entry, monkeypatch):
        def fail(*args, **kwargs):
            raise PersistenceError("timeout")

        monkeypatch.setattr(streaks, "upsert_today", fail)

        with pytest.raises(IncompleteSession) as exc_info:
            flow.complete_session(reading_entry.id, clock.now - timedelta(minutes=5), clock.now, 120)

        assert exc_info.value.completed == ("progress", "session")
        assert len(store.query("reading_sessions")) == 1

    def test_progress_write_fails_saves_nothing(self, flow, ledger, store, clock, reading_entry, monkeypatch):
        def fail(*args, **kwargs):
            raise PersistenceError("timeout")

        monkeypatch.setattr(ledger, "update_progress", fail)

        with pytest.raises(PersistenceError) as exc_info:
            flow.complete_session(reading_entry.id, clock.now - timedelta(minutes=5), clock.now, 120)

        assert not isinstance(exc_info.value, IncompleteSession)
        assert store.query("reading_sessions") == []

    def test_unreadable_total_keeps_todays_streak(
        self, flow, streaks, store, clock, reading_entry, monkeypatch
    ):
        """A failed read of today's total must not overwrite the day with 0."""
        flow.complete_session(reading_entry.id, clock.now - timedelta(minutes=40), clock.now, 120)
        clock.advance(minutes=30)

        def fail(*args, **kwargs):
            raise PersistenceError("offline")

        monkeypatch.setattr(store, "query", fail)

        with pytest.raises(IncompleteSession) as exc_info:
            flow.complete_session(reading_entry.id, clock.now - timedelta(minutes=5), clock.now, 130)

        assert exc_info.value.completed == ("progress", "session")
        monkeypatch.undo()
        record = streaks.refresh()[0]
        assert record.minutes_read == 40
        assert record.goal_met is True
        assert streaks.current_streak() == 1
