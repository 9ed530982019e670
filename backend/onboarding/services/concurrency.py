# Overview: Locking and retry helpers for status writes on the request row.

from __future__ import annotations

import time

from flask import current_app
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm.exc import StaleDataError

from ..errors import Conflict
from ..extensions import db


def lock_for_update(query):
    """
    Apply row-level locking for critical operations.

    NOTE: SQLite ignores SELECT ... FOR UPDATE, but other DBs will honor it.
    The version_id compare-and-swap still protects SQLite.
    """
    return query.with_for_update()


def _default_attempts() -> int:
    try:
        return int(current_app.config.get("ONBOARDING_STATUS_RETRY_ATTEMPTS", 3))
    except RuntimeError:
        return 3


def run_with_retry(func, *, attempts: int | None = None, backoff_base: float = 0.1):
    """
    Execute a DB operation with retry on concurrency-related failures.

    Retries on OperationalError (deadlocks, locks) and StaleDataError
    (optimistic locking conflicts). Each retry starts from a rolled-back
    session, so func must re-read whatever it checks.

    A StaleDataError on the last attempt surfaces as Conflict.
    """
    attempts = attempts or _default_attempts()
    for attempt in range(attempts):
        try:
            return func()
        except StaleDataError as exc:
            db.session.rollback()
            if attempt >= attempts - 1:
                raise Conflict("Request was modified concurrently; reload and retry") from exc
        except OperationalError:
            db.session.rollback()
            if attempt >= attempts - 1:
                raise
        time.sleep(backoff_base * (2 ** attempt))
    raise Conflict("Request was modified concurrently; reload and retry")
