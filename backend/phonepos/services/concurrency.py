# Overview: Transaction boundary helpers shared by the write-side services.

from __future__ import annotations

import logging
from contextlib import contextmanager

from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from ..validation import DuplicateError, PersistenceError, ShopError

logger = logging.getLogger(__name__)


def lock_for_update(query):
    """
    Apply row-level locking for critical operations.

    NOTE: SQLite ignores SELECT ... FOR UPDATE, but other DBs will honor it.
    """
    return query.with_for_update()


@contextmanager
def write_transaction(session, *, what: str):
    """
    One unit of work: commit on success, roll back everything on any failure.

    Typed ShopErrors propagate unchanged. Driver/ORM failures are rolled back
    and surfaced as PersistenceError (IntegrityError as DuplicateError), so no
    partial state is ever left visible.
    """
    try:
        yield session
        session.commit()
    except ShopError:
        session.rollback()
        raise
    except IntegrityError as exc:
        session.rollback()
        logger.warning("Integrity violation during %s: %s", what, exc.orig)
        raise DuplicateError(f"{what} violates a uniqueness constraint") from exc
    except SQLAlchemyError as exc:
        session.rollback()
        logger.error("Store write failed during %s: %s", what, exc)
        raise PersistenceError(f"Could not {what}; nothing was saved. Please retry.") from exc
