# Overview: Row locking and retry helpers for multi-row ledger writes.

from __future__ import annotations

import logging
import time

from sqlalchemy.exc import OperationalError, SQLAlchemyError
from sqlalchemy.orm.exc import StaleDataError

from ..extensions import db

logger = logging.getLogger(__name__)


def lock_for_update(query):
    """
    Apply row-level locking for critical operations.

    Rows already in the identity map are refreshed from the locked read.

    NOTE: SQLite ignores SELECT ... FOR UPDATE; there the version_id
    columns on User, Booking and CashTransfer catch lost updates instead.
    """
    return query.with_for_update().populate_existing()


def run_with_retry(func, *, attempts: int = 3, backoff_base: float = 0.1):
    """
    Execute a DB operation with retry on concurrency-related failures.

    Retries on OperationalError (deadlocks, locks) and StaleDataError
    (optimistic locking conflicts). The session is rolled back before each
    retry, so func must redo all of its reads.
    """
    for attempt in range(attempts):
        try:
            return func()
        except (OperationalError, StaleDataError) as exc:
            db.session.rollback()
            if attempt >= attempts - 1:
                raise
            logger.warning(
                "Retrying after concurrency failure (attempt %d/%d): %s",
                attempt + 1, attempts, exc,
            )
            time.sleep(backoff_base * (2 ** attempt))


def commit_or_rollback() -> None:
    """
    Commit the request's unit of work exactly once.

    On failure the session is rolled back and the error re-raised. Flushed
    state does not survive the rollback, so the commit is never retried;
    callers that want a retry must rerun the whole service call.
    """
    try:
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        logger.warning("Commit failed; unit of work rolled back")
        raise
