# Overview: Transaction boundary for stock movements; row locking helper and commit/rollback handling.

from __future__ import annotations

from sqlalchemy.exc import SQLAlchemyError

from ..errors import PersistenceError
from ..extensions import db


def lock_for_update(query):
    """
    Apply row-level locking for critical operations.

    NOTE: SQLite ignores SELECT ... FOR UPDATE, but other DBs will honor it.
    """
    return query.with_for_update()


class UnitOfWork:
    """
    One database transaction per public operation.

    Services only add/flush through `session`; the unit of work is the only
    place that commits or rolls back:

        with UnitOfWork() as uow:
            reduce_stock_inner(uow.session, ...)

    - clean exit: commit (SQLAlchemyError at commit -> PersistenceError)
    - any exception: rollback, then re-raise
      (SQLAlchemyError raised by a flush is re-raised as PersistenceError)

    There is no retry loop: a failed transaction is reported and the caller
    decides whether to re-submit.

    Args:
        session: Any object with commit()/rollback() and the Session query
            API. Defaults to the Flask-SQLAlchemy scoped session.
    """

    def __init__(self, session=None):
        self.session = session if session is not None else db.session

    def __enter__(self) -> "UnitOfWork":
        return self

    def __exit__(self, exc_type, exc, tb) -> bool:
        if exc_type is not None:
            self.session.rollback()
            if isinstance(exc, SQLAlchemyError):
                raise PersistenceError(
                    f"Database error: {exc.__class__.__name__}",
                    details={"error": str(exc)},
                ) from exc
            return False

        try:
            self.session.commit()
        except SQLAlchemyError as commit_exc:
            self.session.rollback()
            raise PersistenceError(
                f"Commit failed: {commit_exc.__class__.__name__}",
                details={"error": str(commit_exc)},
            ) from commit_exc
        return False


def run_in_unit_of_work(uow: UnitOfWork | None, func, *args, **kwargs):
    """Run func(session, *args, **kwargs) inside uow (a fresh UnitOfWork when None)."""
    work = uow if uow is not None else UnitOfWork()
    with work:
        return func(work.session, *args, **kwargs)
