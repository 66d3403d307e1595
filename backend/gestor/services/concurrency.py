# Overview: Retry and locking helpers shared by every ledger transaction.

from __future__ import annotations

import time

from sqlalchemy.exc import OperationalError
from sqlalchemy.orm.exc import StaleDataError

from ..validation import ConflictError, StoreUnavailableError


def lock_for_update(query):
    """
    Apply row-level locking for critical operations.

    NOTE: SQLite ignores SELECT ... FOR UPDATE, but other DBs will honor it.
    The version_id columns still catch lost updates there.
    """
    return query.with_for_update()


def _exhausted(exc: Exception, attempts: int) -> Exception:
    if isinstance(exc, StaleDataError):
        return ConflictError(
            "Concurrent modification detected; please retry",
            details={"attempts": attempts},
        )
    return StoreUnavailableError(
        "Database unavailable; operation not applied",
        details={"attempts": attempts},
    )


def run_with_retry(func, *, session, attempts: int = 3, backoff_base: float = 0.1, on_retry=None):
    """
    Execute a DB operation with retry on concurrency-related failures.

    Retries on OperationalError (deadlocks, locks) and StaleDataError
    (optimistic locking conflicts). The session is rolled back before every
    retry so func always starts from a fresh snapshot. When attempts run
    out the failure surfaces as ConflictError or StoreUnavailableError.
    """
    attempts = max(1, attempts)
    for attempt in range(attempts):
        try:
            return func()
        except (OperationalError, StaleDataError) as exc:
            session.rollback()
            if attempt >= attempts - 1:
                raise _exhausted(exc, attempts) from exc
            if on_retry is not None:
                on_retry(attempt + 1, exc)
            time.sleep(backoff_base * (2 ** attempt))
