# Overview: Row locking and retry helpers for multi-step ledger writes.

from __future__ import annotations

import time

from flask import current_app
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm.exc import StaleDataError

from ..extensions import db


def lock_for_update(query):
    """
    Apply row-level locking for read-check-write sequences.

    NOTE: SQLite ignores SELECT ... FOR UPDATE, but other DBs will honor it.
    """
    return query.with_for_update()


def run_with_retry(func, *, attempts: int = 3, backoff_base: float = 0.1):
    """
    Execute a DB operation with retry on concurrency-related failures.

    Retries on OperationalError (locks) and StaleDataError (optimistic
    version conflicts from a concurrent writer).

    `func` must be safe to re-run from scratch: the session is rolled back
    before every retry, so nothing from the failed attempt survives.
    """
    for attempt in range(attempts):
        try:
            return func()
        except (OperationalError, StaleDataError):
            db.session.rollback()
            if attempt >= attempts - 1:
                raise
            current_app.logger.warning(
                "Database busy, retrying (attempt %d of %d)", attempt + 2, attempts
            )
            time.sleep(backoff_base * (2 ** attempt))

