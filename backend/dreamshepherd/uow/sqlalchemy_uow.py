"""
SQLAlchemy implementation of UnitOfWork for Flask.
"""

from __future__ import annotations

from sqlalchemy import event, text
from sqlalchemy.orm import Session

from dreamshepherd.core.extensions import db
from dreamshepherd.repositories import DreamerRepository, DreamRepository
from dreamshepherd.uow.base import UnitOfWork


class SQLAlchemyRepositoryContainer:
    """Provide repository instances that share a SQLAlchemy session."""

    def __init__(self, *, session: Session) -> None:
        self.session = session
        self.dreamers = DreamerRepository(session=self.session)
        self.dreams = DreamRepository(session=self.session)


class SQLAlchemyUnitOfWork(SQLAlchemyRepositoryContainer, UnitOfWork):
    """
    SQLAlchemy-backed UoW using the Flask-scoped session.

    The same session is shared across all repositories for a consistent transaction.
    """

    def __init__(self) -> None:
        super().__init__(session=db.session)

    def __enter__(self) -> SQLAlchemyUnitOfWork:
        # No-op: the session is lazily started on the first statement.
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        if exc_type is None:
            try:
                self.commit()
            except Exception:
                self.rollback()
                raise
        else:
            self.rollback()

    def commit(self) -> None:
        self.session.commit()

    def rollback(self) -> None:
        self.session.rollback()


class SQLAlchemyReadOnlyUnitOfWork(SQLAlchemyRepositoryContainer, UnitOfWork):
    """
    Read-only Unit of Work backed by the Flask-scoped SQLAlchemy session.

    This UoW:
    - Applies database-level READ ONLY when it opens the transaction and the
      dialect supports it (``SET TRANSACTION READ ONLY``).
    - Installs an ORM flush guard and always rolls back on exit.
    - Disallows ``commit()``.

    Objects loaded inside the scope are expired by the final rollback, so
    callers map them to DTOs before leaving the ``with`` block.
    """

    _READONLY_DIALECTS = ("postgresql", "mysql", "mariadb")

    def __init__(self, *, enforce_db_readonly: bool = True) -> None:
        super().__init__(session=db.session)
        self.enforce_db_readonly = enforce_db_readonly
        self._listener_installed = False
        self._guarded: Session | None = None

    def __enter__(self) -> SQLAlchemyReadOnlyUnitOfWork:
        # in_transaction() lives on the thread-local Session, not the proxy.
        owns_transaction = not db.session().in_transaction()
        self._install_listener()
        if owns_transaction and self.enforce_db_readonly:
            dialect = self.session.get_bind().dialect.name
            if dialect in self._READONLY_DIALECTS:
                self.session.execute(text("SET TRANSACTION READ ONLY"))
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        try:
            self.session.rollback()
        finally:
            self._remove_listener()

    def commit(self) -> None:
        """
        Disallow commit in read-only Unit of Work.

        :raises RuntimeError: always, to prevent accidental writes.
        """
        raise RuntimeError("Read-only UnitOfWork does not allow commit().")

    def rollback(self) -> None:
        self.session.rollback()

    # ----------------------------- Guards -----------------------------

    @staticmethod
    def _before_flush(session, flush_context, instances) -> None:
        if session.new or session.dirty or session.deleted:
            raise RuntimeError(
                "Read-only UnitOfWork: ORM flush blocked (new/dirty/deleted objects present)."
            )

    def _install_listener(self) -> None:
        if self._listener_installed:
            return
        # Thread-local Session, not the scoped_session proxy (which would guard
        # every session of the class).
        self._guarded = db.session()
        event.listen(self._guarded, "before_flush", self._before_flush)
        self._listener_installed = True

    def _remove_listener(self) -> None:
        if not self._listener_installed:
            return
        if event.contains(self._guarded, "before_flush", self._before_flush):
            event.remove(self._guarded, "before_flush", self._before_flush)
        self._guarded = None
        self._listener_installed = False
