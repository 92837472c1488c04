"""Remote store contract and its SQLAlchemy-backed implementation.

The core only ever talks to a ``RemoteStore``: named collections of dict
records keyed by opaque ids, with equality/range filters and a single
order column. ``SqlStore`` implements that contract over SQLite.
"""

import logging
import os
from abc import ABC, abstractmethod
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Generator, Optional, Sequence

from sqlalchemy import create_engine, inspect, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from ..errors import ConstraintViolation, PersistenceError
from .models import COLLECTIONS, Base

logger = logging.getLogger(__name__)

Record = dict[str, Any]
Filter = dict[str, Any]

_OPERATORS = {
    "eq": lambda col, value: col == value,
    "gt": lambda col, value: col > value,
    "gte": lambda col, value: col >= value,
    "lt": lambda col, value: col < value,
    "lte": lambda col, value: col <= value,
}


class RemoteStore(ABC):
    """Collection-oriented store the core components persist through.

    Filters map column names to values for equality; a ``__gte``, ``__gt``,
    ``__lte`` or ``__lt`` suffix turns an entry into a range predicate.
    ``order`` is a column name, prefixed with ``-`` for descending.
    """

    @abstractmethod
    def insert(self, collection: str, record: Record) -> Record:
        """Insert a record and return it with its assigned id.

        Raises:
            ConstraintViolation: On a uniqueness conflict
            PersistenceError: On any other store failure
        """

    @abstractmethod
    def update(
        self, collection: str, record_id: str, changes: Record, filter: Filter
    ) -> int:
        """Apply a partial update to one record; ``filter`` must name the owner."""

    @abstractmethod
    def delete(self, collection: str, record_id: str, filter: Filter) -> int:
        """Hard-delete one record; ``filter`` must name the owner."""

    @abstractmethod
    def query(
        self,
        collection: str,
        filter: Optional[Filter] = None,
        order: Optional[str] = None,
    ) -> list[Record]:
        """Return all records matching ``filter``."""

    @abstractmethod
    def upsert(
        self, collection: str, record: Record, on_conflict: Sequence[str]
    ) -> Record:
        """Insert, or replace the record whose ``on_conflict`` columns match."""

    @abstractmethod
    def current_user_id(self) -> Optional[str]:
        """Id of the signed-in user, or None when signed out."""


class SqlStore(RemoteStore):
    """RemoteStore over a SQLite database."""

    def __init__(self, db_path: Optional[str] = None, user_id: Optional[str] = None):
        """Initialize database connection.

        Args:
            db_path: Path to SQLite database file or ":memory:". If None, uses
                     CHAPTERLY_DB_PATH env var or default location.
            user_id: Signed-in user id
        """
        if db_path is None:
            db_path = os.environ.get(
                "CHAPTERLY_DB_PATH",
                str(Path.home() / ".chapterly" / "chapterly.db"),
            )

        self.db_path = Path(db_path)
        self._is_memory = str(db_path) == ":memory:"
        self._user_id = user_id

        if not self._is_memory:
            self._ensure_directory()

        # For in-memory databases, use StaticPool to reuse the same connection
        # so every session sees the same database
        if self._is_memory:
            self.engine = create_engine(
                "sqlite:///:memory:",
                echo=False,
                connect_args={"check_same_thread": False},
                poolclass=StaticPool,
            )
        else:
            self.engine = create_engine(
                f"sqlite:///{self.db_path}",
                echo=False,
                connect_args={"check_same_thread": False},
            )
        self.SessionLocal = sessionmaker(bind=self.engine, autocommit=False, autoflush=False)

    def _ensure_directory(self) -> None:
        """Ensure the database directory exists."""
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

    def create_tables(self) -> None:
        """Create all database tables."""
        Base.metadata.create_all(self.engine)

    @contextmanager
    def get_session(self) -> Generator[Session, None, None]:
        """Get a database session context manager.

        Store-level failures surface as ``ConstraintViolation`` or
        ``PersistenceError``; nothing is committed on failure.
        """
        session = self.SessionLocal()
        try:
            yield session
            session.commit()
        except IntegrityError as e:
            session.rollback()
            logger.error(f"Constraint violation: {e.orig}")
            raise ConstraintViolation("Uniqueness constraint violated", details={"error": str(e.orig)})
        except SQLAlchemyError as e:
            session.rollback()
            logger.error(f"Store operation failed: {e}")
            raise PersistenceError("Store operation failed", details={"error": str(e)})
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    # ========================================================================
    # Authentication
    # ========================================================================

    def sign_in(self, user_id: str) -> None:
        """Set the signed-in user."""
        self._user_id = user_id

    def sign_out(self) -> None:
        """Clear the signed-in user."""
        self._user_id = None

    def current_user_id(self) -> Optional[str]:
        return self._user_id

    # ========================================================================
    # Collection Operations
    # ========================================================================

    def insert(self, collection: str, record: Record) -> Record:
        model = self._model(collection)
        with self.get_session() as s:
            row = model(**self._columns_only(model, record))
            s.add(row)
            s.flush()
            result = self._to_record(row)
        logger.debug(f"Inserted {collection}/{result['id']}")
        return result

    def update(
        self, collection: str, record_id: str, changes: Record, filter: Filter
    ) -> int:
        model = self._model(collection)
        self._require_owner(model, filter)
        with self.get_session() as s:
            stmt = self._apply_filter(select(model), model, {**filter, "id": record_id})
            rows = s.execute(stmt).scalars().all()
            for row in rows:
                for key, value in self._columns_only(model, changes).items():
                    setattr(row, key, value)
        logger.debug(f"Updated {len(rows)} row(s) in {collection}/{record_id}")
        return len(rows)

    def delete(self, collection: str, record_id: str, filter: Filter) -> int:
        model = self._model(collection)
        self._require_owner(model, filter)
        with self.get_session() as s:
            stmt = self._apply_filter(select(model), model, {**filter, "id": record_id})
            rows = s.execute(stmt).scalars().all()
            for row in rows:
                s.delete(row)
        logger.debug(f"Deleted {len(rows)} row(s) from {collection}/{record_id}")
        return len(rows)

    def query(
        self,
        collection: str,
        filter: Optional[Filter] = None,
        order: Optional[str] = None,
    ) -> list[Record]:
        model = self._model(collection)
        stmt = self._apply_filter(select(model), model, filter or {})
        if order:
            descending = order.startswith("-")
            column = self._column(model, order.lstrip("-"))
            stmt = stmt.order_by(column.desc() if descending else column.asc())
        with self.get_session() as s:
            return [self._to_record(row) for row in s.execute(stmt).scalars().all()]

    def upsert(
        self, collection: str, record: Record, on_conflict: Sequence[str]
    ) -> Record:
        model = self._model(collection)
        values = self._columns_only(model, record)
        key = {column: values[column] for column in on_conflict}
        with self.get_session() as s:
            stmt = self._apply_filter(select(model), model, key)
            row = s.execute(stmt).scalar_one_or_none()
            if row is None:
                row = model(**values)
                s.add(row)
            else:
                for column, value in values.items():
                    if column != "id":
                        setattr(row, column, value)
            s.flush()
            result = self._to_record(row)
        logger.debug(f"Upserted {collection}/{result['id']}")
        return result

    # ========================================================================
    # Helpers
    # ========================================================================

    @staticmethod
    def _model(collection: str) -> type[Base]:
        try:
            return COLLECTIONS[collection]
        except KeyError:
            raise PersistenceError(f"Unknown collection: {collection}")

    @staticmethod
    def _require_owner(model: type[Base], filter: Filter) -> None:
        if not filter.get(model.owner_column):
            raise PersistenceError(
                f"Writes to {model.__tablename__} must be filtered by {model.owner_column}"
            )

    @staticmethod
    def _column(model: type[Base], name: str):
        column = model.__table__.columns.get(name)
        if column is None:
            raise PersistenceError(f"Unknown column {model.__tablename__}.{name}")
        return column

    def _apply_filter(self, stmt, model: type[Base], filter: Filter):
        for key, value in filter.items():
            name, _, op = key.partition("__")
            if op and op not in _OPERATORS:
                raise PersistenceError(f"Unsupported filter operator: {op}")
            stmt = stmt.where(_OPERATORS[op or "eq"](self._column(model, name), value))
        return stmt

    @staticmethod
    def _columns_only(model: type[Base], record: Record) -> Record:
        columns = model.__table__.columns
        return {key: value for key, value in record.items() if key in columns}

    @staticmethod
    def _to_record(row: Base) -> Record:
        return {attr.key: getattr(row, attr.key) for attr in inspect(row).mapper.column_attrs}


# Global store instance
_db: Optional[SqlStore] = None


def get_db(db_path: Optional[str] = None, user_id: Optional[str] = None) -> SqlStore:
    """Get or create the global store instance."""
    global _db
    if _db is None:
        _db = SqlStore(db_path, user_id)
        _db.create_tables()
    return _db


def reset_db() -> None:
    """Reset the global store instance. Used for testing."""
    global _db
    _db = None
