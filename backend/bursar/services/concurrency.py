# Overview: Row locking and retry helpers shared by every ledger unit of work.

from __future__ import annotations

import time

from sqlalchemy.exc import OperationalError
from sqlalchemy.orm.exc import StaleDataError

from ..extensions import db


def lock_for_update(query):
    """
    Apply row-level locking for critical operations.

    NOTE: SQLite ignores SELECT ... FOR UPDATE; there the version_id
    check on FinancialObligation catches the lost update instead.
    """
    return query.with_for_update()


def run_with_retry(func, *, attempts: int = 3, backoff_base: float = 0.1, rollback: bool = True):
    """
    Execute a DB operation with retry on concurrency-related failures.

    Retries on OperationalError (deadlocks, locks) and StaleDataError
    (optimistic locking conflicts). func must be a complete unit of work:
    it re-reads everything it needs, because the session is rolled back
    before each retry. Non-retryable errors also roll back and re-raise,
    so a failed call leaves no half-applied state.

    Pass rollback=False for work done on a dedicated connection that must
    not disturb the caller's session.
    """
    last_exc = None
    for attempt in range(attempts):
        try:
            return func()
        except (OperationalError, StaleDataError) as exc:
            if rollback:
                db.session.rollback()
            last_exc = exc
            if attempt >= attempts - 1:
                raise
            time.sleep(backoff_base * (2 ** attempt))
        except Exception:
            # Any other failure aborts the unit of work as a whole
            if rollback:
                db.session.rollback()
            raise
    if last_exc:
        raise last_exc

