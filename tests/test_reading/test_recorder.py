"""Tests for reading session recording and time sums."""

from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock

import pytest

from chapterly.errors import InvalidSession, NotSignedIn, PersistenceError
from chapterly.reading import SessionRecorder, validate_session


def at(hour: int, minute: int = 0, second: int = 0, day: int = 18) -> datetime:
    """A time on June `day` 2025, UTC."""
    return datetime(2025, 6, day, hour, minute, second, tzinfo=timezone.utc)


class TestValidateSession:
    """Tests for session range validation."""

    def test_valid_session(self):
        validate_session(at(10), at(11), 5, 30)

    def test_zero_length_session_is_valid(self):
        validate_session(at(10), at(10), 5, 5)

    def test_end_before_start(self):
        with pytest.raises(InvalidSession, match="end before"):
            validate_session(at(11), at(10), 0, 10)

    def test_negative_starting_page(self):
        with pytest.raises(InvalidSession):
            validate_session(at(10), at(11), -1, 10)

    def test_pages_backwards(self):
        with pytest.raises(InvalidSession) as exc_info:
            validate_session(at(10), at(11), 50, 40)
        assert exc_info.value.details == {"starting_page": 50, "ending_page": 40}


class TestRecordSession:
    """Tests for recording sessions."""

    def test_duration_is_whole_minutes_rounded_down(self, recorder):
        session = recorder.record_session("entry-1", at(10), at(10, 2, 5), 10, 14)

        assert session.duration_minutes == 2
        assert session.pages_read == 4

    def test_fifty_nine_seconds_is_zero_minutes(self, recorder):
        session = recorder.record_session("entry-1", at(10), at(10, 0, 59), 10, 10)

        assert session.duration_minutes == 0

    def test_session_is_stored(self, recorder, store):
        session = recorder.record_session("entry-1", at(9), at(9, 45), 0, 30)

        rows = store.query("reading_sessions")
        assert len(rows) == 1
        assert rows[0]["id"] == session.id
        assert rows[0]["user_id"] == "user-1"
        assert rows[0]["duration_minutes"] == 45
        assert session.start_time == at(9)
        assert session.end_time == at(9, 45)

    @pytest.mark.parametrize(
        "start, end, starting_page, ending_page",
        [
            (at(11), at(10), 0, 10),
            (at(10), at(11), 20, 10),
            (at(10), at(11), -5, 10),
        ],
    )
    def test_invalid_session_writes_nothing(
        self, recorder, store, start, end, starting_page, ending_page
    ):
        with pytest.raises(InvalidSession):
            recorder.record_session("entry-1", start, end, starting_page, ending_page)

        assert store.query("reading_sessions") == []

    def test_requires_sign_in(self, store, clock):
        recorder = SessionRecorder(store, None, clock)

        with pytest.raises(NotSignedIn):
            recorder.record_session("entry-1", at(10), at(11), 0, 10)

    def test_store_failure_propagates(self, clock):
        store = MagicMock()
        store.insert.side_effect = PersistenceError("timeout")
        recorder = SessionRecorder(store, "user-1", clock)

        with pytest.raises(PersistenceError):
            recorder.record_session("entry-1", at(10), at(11), 0, 10)


class TestReadingTime:
    """Tests for summing reading time over windows."""

    def test_window_is_start_inclusive_end_exclusive(self, recorder):
        recorder.record_session("a", at(9), at(9, 10), 0, 1)
        recorder.record_session("a", at(10), at(10, 20), 1, 2)
        recorder.record_session("a", at(11), at(11, 40), 2, 3)

        assert recorder.minutes_in_window(at(9), at(11)) == 30
        assert recorder.minutes_in_window(at(9, 0, 1), at(12)) == 60

    def test_minutes_today(self, recorder, clock):
        # clock is 14:30 on the 18th
        recorder.record_session("a", at(0, 5), at(0, 35), 0, 5)
        recorder.record_session("a", at(13), at(14), 5, 25)
        recorder.record_session("a", at(23, 30, day=17), at(23, 59, day=17), 0, 5)

        assert recorder.minutes_today() == 90

    def test_minutes_today_counts_by_start_time(self, recorder):
        # Started yesterday, finished after midnight
        recorder.record_session("a", at(23, 50, day=17), at(0, 20), 0, 5)

        assert recorder.minutes_today() == 0

    def test_minutes_this_week_is_rolling(self, recorder, clock):
        six_days_ago = clock.now - timedelta(days=6)
        just_too_old = clock.now - timedelta(days=7, minutes=1)
        recorder.record_session("a", six_days_ago, six_days_ago + timedelta(minutes=15), 0, 1)
        recorder.record_session("a", just_too_old, just_too_old + timedelta(minutes=30), 0, 1)
        recorder.record_session("a", clock.now - timedelta(hours=1), clock.now, 1, 2)

        assert recorder.minutes_this_week() == 75

    def test_only_own_sessions_are_summed(self, store, clock):
        SessionRecorder(store, "user-2", clock).record_session("a", at(10), at(11), 0, 1)
        mine = SessionRecorder(store, "user-1", clock)
        mine.record_session("b", at(12), at(12, 5), 0, 1)

        assert mine.minutes_today() == 5

    def test_strict_read_raises(self, clock):
        """Totals that feed a write must not silently read as 0."""
        store = MagicMock()
        store.query.side_effect = PersistenceError("offline")
        recorder = SessionRecorder(store, "user-1", clock)

        with pytest.raises(PersistenceError):
            recorder.minutes_today(lenient=False)

    def test_strict_read_requires_sign_in(self, store, clock):
        with pytest.raises(NotSignedIn):
            SessionRecorder(store, None, clock).minutes_today(lenient=False)

    def test_store_failure_reads_as_zero(self, clock):
        store = MagicMock()
        store.query.side_effect = PersistenceError("offline")
        recorder = SessionRecorder(store, "user-1", clock)

        assert recorder.minutes_today() == 0
        assert recorder.minutes_this_week() == 0
        assert recorder.sessions_for_book("a") == []

    def test_signed_out_reads_as_zero(self, store, clock):
        recorder = SessionRecorder(store, None, clock)

        assert recorder.minutes_today() == 0
        assert recorder.sessions_for_book("a") == []


class TestSessionsForBook:
    """Tests for a book's session history."""

    def test_oldest_first(self, recorder):
        recorder.record_session("a", at(12), at(12, 30), 10, 20)
        recorder.record_session("a", at(8), at(8, 30), 0, 10)
        recorder.record_session("b", at(9), at(9, 30), 0, 10)

        sessions = recorder.sessions_for_book("a")

        assert [s.starting_page for s in sessions] == [0, 10]
