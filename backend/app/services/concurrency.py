# Overview: Service-layer helpers for row locking, retries and timed transactions.

from __future__ import annotations

import time
from contextlib import contextmanager

from flask import current_app
from sqlalchemy import text
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm.exc import StaleDataError

from ..extensions import db
from .errors import TransactionTimeoutError


def lock_for_update(query):
    """
    Apply row-level locking for critical operations.

    NOTE: SQLite ignores SELECT ... FOR UPDATE, but other DBs will honor it.
    """
    return query.with_for_update()


def run_with_retry(func, *, attempts: int = 3, backoff_base: float = 0.1):
    """
    Execute a DB operation with retry on concurrency-related failures.

    Retries on OperationalError (deadlocks, locks) and StaleDataError
    (optimistic locking conflicts). Any other exception rolls the session
    back and propagates unchanged, so a failed unit leaves nothing behind.
    """
    last_exc = None
    for attempt in range(attempts):
        try:
            return func()
        except (OperationalError, StaleDataError) as exc:
            db.session.rollback()
            last_exc = exc
            if attempt >= attempts - 1:
                raise
            time.sleep(backoff_base * (2 ** attempt))
        except Exception:
            db.session.rollback()
            raise
    if last_exc:
        raise last_exc


def _is_postgres() -> bool:
    return db.engine.dialect.name == "postgresql"


@contextmanager
def timed_transaction(timeout_seconds: float | None = None):
    """
    Bound one atomic unit by a timeout.

    On PostgreSQL the limit is pushed to the server with
    SET LOCAL statement_timeout. Elsewhere the elapsed time is checked when
    the block finishes, before the caller commits. Either way an overrun
    surfaces as TransactionTimeoutError.

    Usage:
        with timed_transaction(20) as unit:
            ...
            unit.check()
            db.session.commit()
    """
    if timeout_seconds is None:
        timeout_seconds = current_app.config.get("DEFAULT_TX_TIMEOUT_SECONDS", 5)

    started = time.monotonic()
    if _is_postgres():
        db.session.execute(text(f"SET LOCAL statement_timeout = {int(timeout_seconds * 1000)}"))

    guard = _TimeoutGuard(started, timeout_seconds)
    try:
        yield guard
    except OperationalError as exc:
        # PostgreSQL reports statement_timeout as "canceling statement due to statement timeout"
        if "statement timeout" in str(exc).lower():
            raise TransactionTimeoutError(
                f"Transaction exceeded {timeout_seconds:g}s timeout"
            ) from exc
        raise


class _TimeoutGuard:
    def __init__(self, started: float, timeout_seconds: float):
        self.started = started
        self.timeout_seconds = timeout_seconds

    @property
    def elapsed(self) -> float:
        return time.monotonic() - self.started

    def check(self) -> None:
        if self.elapsed > self.timeout_seconds:
            raise TransactionTimeoutError(
                f"Transaction exceeded {self.timeout_seconds:g}s timeout"
            )
