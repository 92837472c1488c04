"""
Exception classes shared by the library, session and streak components
"""
from typing import Any, Dict, Optional, Sequence


class ChapterlyError(Exception):
    """Base exception for all chapterly errors"""
    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)


class PersistenceError(ChapterlyError):
    """Raised when the remote store fails (network, auth, constraint)"""
    pass


class ConstraintViolation(PersistenceError):
    """Raised by the store when a uniqueness constraint is violated"""
    pass


class NotSignedIn(PersistenceError):
    """Raised when an operation needs a signed-in user and there is none"""
    pass


class IncompleteSession(PersistenceError):
    """Raised when a reading session was only partly saved

    ``completed`` lists the steps that were persisted before the failure,
    so the caller can retry the remaining ones.
    """
    def __init__(
        self,
        message: str,
        completed: Sequence[str],
        details: Optional[Dict[str, Any]] = None,
    ):
        self.completed = tuple(completed)
        super().__init__(message, details)


class DuplicateEntry(ChapterlyError):
    """Raised when a book is already in the user's library"""
    pass


class EntryNotFound(ChapterlyError):
    """Raised when a library entry id is unknown"""
    pass


class InvalidPage(ChapterlyError):
    """Raised when a page number is outside [0, total pages]"""
    pass


class InvalidSession(ChapterlyError):
    """Raised when a reading session has an inverted time or page range"""
    pass


class InvalidGoal(ChapterlyError):
    """Raised when a daily goal is outside the allowed bounds"""
    pass
