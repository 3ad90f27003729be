# Overview: Locking and retry helpers for ledger writes.

from __future__ import annotations

import time

from flask import current_app
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm.exc import StaleDataError

from ..extensions import db
from ..validation import ConflictError, PersistenceError


def lock_for_update(query):
    """
    Apply row-level locking for stock mutations.

    NOTE: SQLite ignores SELECT ... FOR UPDATE; there the version_id check on
    Product is what rejects the losing writer.
    """
    return query.with_for_update()


def run_with_retry(func, *, attempts: int | None = None, backoff_base: float = 0.05):
    """
    Execute a full read-modify-write ledger operation, retrying on
    concurrency failures.

    Retries on OperationalError (deadlocks, lock timeouts) and StaleDataError
    (optimistic locking conflicts). `func` must reload everything it reads,
    since the session is rolled back between attempts. Once attempts are
    exhausted a stale version becomes ConflictError (caller may retry) and a
    lock or connection failure becomes PersistenceError.
    """
    if attempts is None:
        attempts = current_app.config.get("LEDGER_RETRY_ATTEMPTS", 3)
    attempts = max(1, attempts)

    for attempt in range(attempts):
        try:
            return func()
        except (OperationalError, StaleDataError) as exc:
            db.session.rollback()
            current_app.logger.warning(
                "Concurrent stock write detected (attempt %s/%s): %s", attempt + 1, attempts, exc
            )
            if attempt >= attempts - 1:
                if isinstance(exc, StaleDataError):
                    raise ConflictError(
                        "Stock was modified concurrently; retry the request"
                    ) from exc
                raise PersistenceError("Inventory store unavailable") from exc
            time.sleep(backoff_base * (2 ** attempt))
