"""Library ledger: books, reading status and page progress."""

from .ledger import LibraryLedger, derive_progress, progress_for

__all__ = [
    "LibraryLedger",
    "derive_progress",
    "progress_for",
]
