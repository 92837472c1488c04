"""Reading session recording, timing and the session-completion flow."""

from .flow import ReadingFlow, SessionSummary
from .recorder import SessionRecorder, validate_session
from .timer import ActiveSession, FinishedSession, ReadingTimer

__all__ = [
    "ReadingFlow",
    "SessionSummary",
    "SessionRecorder",
    "validate_session",
    "ActiveSession",
    "FinishedSession",
    "ReadingTimer",
]
