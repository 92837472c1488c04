"""Tests for the active reading timer."""

import json

import pytest

from chapterly.db.schemas import LibraryEntry, ReadingStatus
from chapterly.reading import ReadingTimer


@pytest.fixture
def entry(clock) -> LibraryEntry:
    return LibraryEntry(
        id="entry-1",
        user_id="user-1",
        book_id="vol-dune",
        title="Dune",
        author="Frank Herbert",
        total_pages=412,
        status=ReadingStatus.READING,
        current_page=40,
        progress=10,
        date_added=clock.now,
    )


@pytest.fixture
def session_file(tmp_path):
    return tmp_path / "active_session.json"


class TestReadingTimer:
    """Tests for ReadingTimer."""

    def test_start_uses_current_page(self, entry, clock):
        timer = ReadingTimer(clock=clock)

        active = timer.start(entry)

        assert active.entry_id == "entry-1"
        assert active.book_title == "Dune"
        assert active.start_time == clock.now
        assert active.starting_page == 40
        assert timer.active is active

    def test_cannot_start_twice(self, entry, clock):
        timer = ReadingTimer(clock=clock)
        timer.start(entry)

        with pytest.raises(ValueError, match="Already reading 'Dune'"):
            timer.start(entry)

    def test_elapsed_minutes(self, entry, clock):
        timer = ReadingTimer(clock=clock)
        assert timer.elapsed_minutes() == 0

        timer.start(entry)
        clock.advance(minutes=12, seconds=40)

        assert timer.elapsed_minutes() == 12

    def test_stop_returns_finished_session(self, entry, clock):
        timer = ReadingTimer(clock=clock)
        started = clock.now
        timer.start(entry)
        clock.advance(minutes=25)

        finished = timer.stop(ending_page=58)

        assert finished.start_time == started
        assert finished.end_time == clock.now
        assert finished.starting_page == 40
        assert finished.ending_page == 58
        assert finished.duration_minutes == 25
        assert timer.active is None

    def test_snapshot_keeps_timer_running(self, entry, clock):
        timer = ReadingTimer(clock=clock)
        timer.start(entry)
        clock.advance(minutes=15)

        finished = timer.snapshot(ending_page=50)

        assert finished.duration_minutes == 15
        assert finished.ending_page == 50
        assert timer.active is not None

    def test_stop_when_idle(self, clock):
        assert ReadingTimer(clock=clock).stop(10) is None

    def test_cancel(self, entry, clock):
        timer = ReadingTimer(clock=clock)
        timer.start(entry)

        assert timer.cancel() is True
        assert timer.active is None
        assert timer.cancel() is False


class TestTimerPersistence:
    """Tests for persisting the active timer between runs."""

    def test_active_session_survives_reload(self, entry, clock, session_file):
        ReadingTimer(session_file, clock).start(entry)

        reloaded = ReadingTimer(session_file, clock)

        assert reloaded.active is not None
        assert reloaded.active.entry_id == "entry-1"
        assert reloaded.active.start_time == clock.now
        assert reloaded.active.starting_page == 40

    def test_file_contents(self, entry, clock, session_file):
        ReadingTimer(session_file, clock).start(entry)

        data = json.loads(session_file.read_text())

        assert data["entry_id"] == "entry-1"
        assert data["book_title"] == "Dune"
        assert data["starting_page"] == 40

    def test_stop_removes_file(self, entry, clock, session_file):
        timer = ReadingTimer(session_file, clock)
        timer.start(entry)
        clock.advance(minutes=5)

        timer.stop(45)

        assert not session_file.exists()
        assert ReadingTimer(session_file, clock).active is None

    def test_snapshot_keeps_file(self, entry, clock, session_file):
        timer = ReadingTimer(session_file, clock)
        timer.start(entry)

        timer.snapshot(45)

        assert session_file.exists()
        assert ReadingTimer(session_file, clock).active is not None

    def test_cancel_removes_file(self, entry, clock, session_file):
        timer = ReadingTimer(session_file, clock)
        timer.start(entry)

        timer.cancel()

        assert not session_file.exists()

    def test_corrupt_file_is_ignored(self, clock, session_file):
        session_file.write_text("{not json")

        assert ReadingTimer(session_file, clock).active is None

    def test_elapsed_after_reload(self, entry, clock, session_file):
        ReadingTimer(session_file, clock).start(entry)
        clock.advance(minutes=30)

        assert ReadingTimer(session_file, clock).elapsed_minutes() == 30
