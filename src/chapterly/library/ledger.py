"""Library ledger: the books a user has added and their reading state.

Owns status transitions and page progress for each library entry.
Progress is always derived from the current page, and every write goes
to the store before the local cache is touched, so a failed write leaves
the cache exactly as it was.
"""

import logging
from typing import Any, Optional

from ..db.mapping import entry_from_record, metadata_to_values, to_store_values
from ..db.schemas import BookMetadata, LibraryEntry, ReadingStatus
from ..db.store import RemoteStore
from ..errors import (
    ConstraintViolation,
    DuplicateEntry,
    EntryNotFound,
    InvalidPage,
    NotSignedIn,
    PersistenceError,
)
from ..utils import Clock, local_now

logger = logging.getLogger(__name__)

COLLECTION = "user_books"


def derive_progress(current_page: int, total_pages: int) -> int:
    """Percent complete, rounded half up and clamped to 0-100.

    Args:
        current_page: Last page read
        total_pages: Page count of the book

    Returns:
        Integer percent; 0 when the page count is unknown (0)
    """
    if total_pages <= 0:
        return 0
    # Integer arithmetic so .5 always rounds up
    percent = (current_page * 200 + total_pages) // (2 * total_pages)
    return max(0, min(100, percent))


def progress_for(status: ReadingStatus, current_page: int, total_pages: int) -> int:
    """Progress to store for an entry in ``status`` at ``current_page``."""
    if status == ReadingStatus.READ:
        return 100
    return derive_progress(current_page, total_pages)


class LibraryLedger:
    """Manages a user's library entries."""

    def __init__(
        self,
        store: RemoteStore,
        user_id: Optional[str],
        clock: Optional[Clock] = None,
    ):
        """Initialize the ledger.

        Args:
            store: Remote store to persist through
            user_id: Signed-in user id (None when signed out)
            clock: Returns the current time; defaults to local now
        """
        self.store = store
        self.user_id = user_id
        self.clock = clock or local_now
        self._entries: dict[str, LibraryEntry] = {}

    # -------------------------------------------------------------------------
    # Loading and lookup
    # -------------------------------------------------------------------------

    def refresh(self) -> list[LibraryEntry]:
        """Reload the user's entries from the store, newest first.

        Load failures are logged and leave the cached entries untouched.
        """
        if not self.user_id:
            self._entries = {}
            return []

        try:
            rows = self.store.query(COLLECTION, {"user_id": self.user_id}, order="-created_at")
        except PersistenceError as e:
            logger.error(f"Error loading library for {self.user_id}: {e}")
            return self.entries

        self._entries = {row["id"]: entry_from_record(row) for row in rows}
        logger.info(f"Loaded {len(self._entries)} library entries for {self.user_id}")
        return self.entries

    @property
    def entries(self) -> list[LibraryEntry]:
        """All cached entries in display order."""
        return list(self._entries.values())

    def get_entry(self, entry_id: str) -> Optional[LibraryEntry]:
        """Get a cached entry by id."""
        return self._entries.get(entry_id)

    def find_by_book(self, book_id: str) -> Optional[LibraryEntry]:
        """Get the entry added from catalog volume ``book_id``."""
        for entry in self._entries.values():
            if entry.book_id == book_id:
                return entry
        return None

    def list_by_status(self, status: ReadingStatus) -> list[LibraryEntry]:
        """Entries with ``status``, in the order held locally."""
        return [entry for entry in self._entries.values() if entry.status == status]

    # -------------------------------------------------------------------------
    # Mutations
    # -------------------------------------------------------------------------

    def add_book(
        self,
        metadata: BookMetadata,
        initial_status: ReadingStatus = ReadingStatus.WANT_TO_READ,
    ) -> LibraryEntry:
        """Add a catalog book to the library.

        Args:
            metadata: Catalog record; its fields are copied into the entry
            initial_status: Status the entry starts in

        Returns:
            The created entry

        Raises:
            DuplicateEntry: If the book is already in the library
            PersistenceError: If the store rejects the write
        """
        user_id = self._require_user()
        if self.find_by_book(metadata.id):
            raise DuplicateEntry(
                "This book is already in your library", details={"book_id": metadata.id}
            )

        now = self.clock()
        finished = initial_status == ReadingStatus.READ
        current_page = metadata.total_pages if finished else 0
        values: dict[str, Any] = {
            **metadata_to_values(metadata),
            "user_id": user_id,
            "status": initial_status,
            "current_page": current_page,
            "progress": progress_for(initial_status, current_page, metadata.total_pages),
            "date_added": now,
            "date_started": now if initial_status == ReadingStatus.READING else None,
            "date_finished": now if finished else None,
        }

        try:
            row = self.store.insert(COLLECTION, to_store_values(values))
        except ConstraintViolation:
            raise DuplicateEntry(
                "This book is already in your library", details={"book_id": metadata.id}
            )

        entry = entry_from_record(row)
        self._entries = {entry.id: entry, **self._entries}
        logger.info(f"Added '{entry.title}' to library as {entry.status.value}")
        return entry

    def update_status(self, entry_id: str, new_status: ReadingStatus) -> LibraryEntry:
        """Change an entry's reading status.

        Entering ``reading`` stamps the start date and entering ``read``
        stamps the finish date and jumps to the last page. Staying in the
        same status keeps the existing stamps. Moving back to
        ``want-to-read`` keeps page progress.
        """
        entry = self.require_entry(entry_id)
        now = self.clock()
        changes: dict[str, Any] = {"status": new_status}

        if new_status == ReadingStatus.READING and entry.status != ReadingStatus.READING:
            changes["date_started"] = now
        elif new_status == ReadingStatus.READ:
            if entry.status != ReadingStatus.READ or entry.date_finished is None:
                changes["date_finished"] = now
            changes["current_page"] = entry.total_pages

        current_page = changes.get("current_page", entry.current_page)
        changes["progress"] = progress_for(new_status, current_page, entry.total_pages)

        return self._apply(entry, changes)

    def update_progress(self, entry_id: str, new_current_page: int) -> LibraryEntry:
        """Record the page the user is on.

        Reaching the last page finishes the book; turning past page 0 of a
        ``want-to-read`` book starts it.

        Raises:
            InvalidPage: If the page is negative or past the last page
        """
        entry = self.require_entry(entry_id)
        if new_current_page < 0 or new_current_page > entry.total_pages:
            raise InvalidPage(
                f"Page must be between 0 and {entry.total_pages}",
                details={"page": new_current_page, "total_pages": entry.total_pages},
            )

        now = self.clock()
        status = entry.status
        changes: dict[str, Any] = {"current_page": new_current_page}

        if new_current_page >= entry.total_pages:
            status = ReadingStatus.READ
            changes["status"] = status
            changes["date_finished"] = now
        elif entry.status == ReadingStatus.WANT_TO_READ and new_current_page > 0:
            status = ReadingStatus.READING
            changes["status"] = status
            changes["date_started"] = now

        changes["progress"] = progress_for(status, new_current_page, entry.total_pages)
        return self._apply(entry, changes)

    def update_notes(self, entry_id: str, notes: Optional[str]) -> LibraryEntry:
        """Replace an entry's personal notes."""
        entry = self.require_entry(entry_id)
        return self._apply(entry, {"notes": notes or ""})

    def recalculate_progress(self, entry_id: str) -> LibraryEntry:
        """Re-derive progress from the current page, fixing drifted rows."""
        entry = self.require_entry(entry_id)
        expected = progress_for(entry.status, entry.current_page, entry.total_pages)
        if entry.progress == expected:
            return entry
        logger.warning(
            f"Progress drift on {entry.id}: stored {entry.progress}, expected {expected}"
        )
        return self._apply(entry, {"progress": expected})

    def remove_book(self, entry_id: str) -> None:
        """Hard-delete an entry. Its reading sessions are kept."""
        entry = self.require_entry(entry_id)
        deleted = self.store.delete(COLLECTION, entry.id, {"user_id": entry.user_id})
        if not deleted:
            raise PersistenceError(
                "Library entry no longer exists in the store", details={"entry_id": entry.id}
            )
        del self._entries[entry.id]
        logger.info(f"Removed '{entry.title}' from library")

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    def _require_user(self) -> str:
        if not self.user_id:
            raise NotSignedIn("User not authenticated")
        return self.user_id

    def require_entry(self, entry_id: str) -> LibraryEntry:
        """Get a cached entry by id.

        Raises:
            NotSignedIn: If no user is signed in
            EntryNotFound: If the id is not in the library
        """
        self._require_user()
        entry = self._entries.get(entry_id)
        if entry is None:
            raise EntryNotFound(f"Book not found in library: {entry_id}")
        return entry

    def _apply(self, entry: LibraryEntry, changes: dict[str, Any]) -> LibraryEntry:
        """Persist ``changes`` then mirror them into the cache."""
        updated = self.store.update(
            COLLECTION, entry.id, to_store_values(changes), {"user_id": entry.user_id}
        )
        if not updated:
            raise PersistenceError(
                "Library entry no longer exists in the store", details={"entry_id": entry.id}
            )

        entry = entry.model_copy(update=changes)
        self._entries[entry.id] = entry
        logger.debug(f"Updated {entry.id}: {sorted(changes)}")
        return entry
