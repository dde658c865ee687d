"""Entity store: one SQLAlchemy session plus an explicit transaction boundary."""

import logging
from typing import Any

from sqlalchemy import Executable
from sqlalchemy.exc import MultipleResultsFound, SQLAlchemyError
from sqlalchemy.orm import Session, SessionTransaction

from .errors import ConflictError, InvalidArgumentError, MultipleResultsError, PersistenceError

logger = logging.getLogger(__name__)


class EntityStore:
    """
    Wraps a single Session for exactly one unit of work at a time.

    Writes staged through repositories stay buffered in the session until
    ``flush``/``save_changes``/``commit``. The session must be created with
    ``autoflush=False`` so queries do not push staged writes early.

    Not safe to share across threads or concurrently running units of work.
    """

    def __init__(self, session: Session) -> None:
        if session is None:
            raise InvalidArgumentError("EntityStore requires a session.")
        self._session = session
        self._transaction: SessionTransaction | None = None
        # Rows flushed or DML executed since the last commit or rollback.
        self._uncommitted_writes = False
        self._closed = False

    @property
    def session(self) -> Session:
        if self._closed:
            raise ConflictError("Entity store has been released.")
        return self._session

    @property
    def in_transaction(self) -> bool:
        """True while an explicit transaction opened by begin_transaction is active."""
        return self._transaction is not None

    @property
    def closed(self) -> bool:
        return self._closed

    # Statements

    def execute(self, statement: Executable, params: dict[str, Any] | None = None):
        """Execute a statement, translating driver failures into PersistenceError."""
        try:
            result = self.session.execute(statement, params or {})
        except SQLAlchemyError as exc:
            raise PersistenceError(f"Query failed: {exc}") from exc
        if getattr(statement, "is_dml", False):
            self._uncommitted_writes = True
        return result

    def scalars(self, statement: Executable, params: dict[str, Any] | None = None) -> list[Any]:
        """Execute and return all scalars as a list."""
        result = self.execute(statement, params)
        try:
            return list(result.scalars().unique())
        except SQLAlchemyError as exc:
            raise PersistenceError(f"Query failed: {exc}") from exc

    def scalar_one_or_none(self, statement: Executable, params: dict[str, Any] | None = None) -> Any:
        """Execute and return a single scalar or None; more than one row raises MultipleResultsError."""
        result = self.execute(statement, params)
        try:
            return result.scalars().unique().one_or_none()
        except MultipleResultsFound as exc:
            raise MultipleResultsError("Expected at most one result, found several.") from exc
        except SQLAlchemyError as exc:
            raise PersistenceError(f"Query failed: {exc}") from exc

    def scalar(self, statement: Executable, params: dict[str, Any] | None = None) -> Any:
        result = self.execute(statement, params)
        try:
            return result.scalar()
        except SQLAlchemyError as exc:
            raise PersistenceError(f"Query failed: {exc}") from exc

    def get(self, model: type, ident: Any) -> Any:
        try:
            return self.session.get(model, ident)
        except SQLAlchemyError as exc:
            raise PersistenceError(f"Lookup of {model.__name__} {ident!r} failed: {exc}") from exc

    # Transaction boundary

    def begin_transaction(self) -> SessionTransaction:
        """Open an explicit transaction; ConflictError if one is already open."""
        if self._transaction is not None:
            raise ConflictError("A transaction is already in progress.")
        session = self.session
        try:
            # Reads may already have autobegun a transaction; adopt it.
            self._transaction = session.get_transaction() or session.begin()
        except SQLAlchemyError as exc:
            raise PersistenceError(f"Could not begin transaction: {exc}") from exc
        return self._transaction

    def pending_count(self) -> int:
        """Number of staged inserts, modified rows and deletes not yet flushed."""
        session = self.session
        modified = [obj for obj in session.dirty if session.is_modified(obj)]
        return len(session.new) + len(modified) + len(session.deleted)

    def has_unsaved_work(self) -> bool:
        """True while an explicit transaction is open, writes are staged, or flushed rows await commit."""
        return self._transaction is not None or self._uncommitted_writes or self.pending_count() > 0

    def flush(self) -> int:
        """
        Write buffered changes inside the current transaction and return how many rows were staged.

        A failed flush leaves the session unusable, so it is rolled back before raising.
        """
        session = self.session
        affected = self.pending_count()
        if affected == 0:
            return 0
        try:
            session.flush()
        except SQLAlchemyError as exc:
            self._rollback_after_failure("flush", exc)
            raise PersistenceError(f"Saving changes failed: {exc}") from exc
        self._uncommitted_writes = True
        return affected

    def save_changes(self) -> int:
        """Flush buffered writes; commit as well when no explicit transaction is open."""
        affected = self.flush()
        if self._transaction is None:
            try:
                self.session.commit()
            except SQLAlchemyError as exc:
                self._rollback_after_failure("commit", exc)
                raise PersistenceError(f"Commit failed: {exc}") from exc
            self._uncommitted_writes = False
        return affected

    def commit(self) -> None:
        """Flush and commit; on failure roll back before raising. The handle is always cleared."""
        try:
            self.flush()
            self.session.commit()
        except SQLAlchemyError as exc:
            self._rollback_after_failure("commit", exc)
            raise PersistenceError(f"Commit failed: {exc}") from exc
        finally:
            self._transaction = None
            self._uncommitted_writes = False

    def rollback(self) -> None:
        """Discard buffered writes and end the open transaction. No-op when nothing is open."""
        if self._closed:
            return
        session = self._session
        try:
            if session.in_transaction():
                session.rollback()
            else:
                for obj in list(session.new):
                    session.expunge(obj)
        except SQLAlchemyError as exc:
            raise PersistenceError(f"Rollback failed: {exc}") from exc
        finally:
            self._transaction = None
            self._uncommitted_writes = False

    def close(self) -> None:
        """
        Release the session. Safe to call repeatedly.

        Unsaved work is rolled back first. A store that only read skips that
        rollback, so entities it returned stay loaded (detached, not expired).
        """
        if self._closed:
            return
        try:
            if self.has_unsaved_work():
                self.rollback()
        finally:
            self._session.close()
            self._closed = True

    def _rollback_after_failure(self, stage: str, exc: Exception) -> None:
        logger.warning(
            "Rolling back after failed %s",
            stage,
            extra={"stage": stage, "error_type": type(exc).__name__},
        )
        try:
            self._session.rollback()
        except SQLAlchemyError:
            logger.exception("Rollback after failed %s also failed", stage)
        finally:
            self._transaction = None
            self._uncommitted_writes = False
