# Overview: Transaction helpers shared by every stock-changing service.

from __future__ import annotations

import time

from sqlalchemy import text
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm.exc import StaleDataError

from ..extensions import db


def begin_write_transaction() -> None:
    """
    Open the unit of work as a writer.

    SQLite has no row locks and ignores FOR UPDATE, so take the database
    write lock up front; a competing writer waits on BEGIN instead of reading
    stale stock. Other databases rely on lock_for_update().
    """
    if db.engine.dialect.name != "sqlite":
        return
    connection = db.session.connection()
    # pysqlite may already be inside an implicit transaction from earlier DML
    if not connection.connection.dbapi_connection.in_transaction:
        connection.execute(text("BEGIN IMMEDIATE"))


def lock_for_update(query):
    """
    Apply row-level locking for critical operations.

    NOTE: SQLite ignores SELECT ... FOR UPDATE, but other DBs will honor it.
    """
    return query.with_for_update()


def run_with_retry(func, *, attempts: int = 3, backoff_base: float = 0.1):
    """
    Execute a DB unit of work; on any failure the session is rolled back.

    Retries on OperationalError (deadlocks, locks) and StaleDataError
    (optimistic locking conflicts). Everything else propagates after rollback,
    so a failed operation never leaves partial effects in the session.
    """
    for attempt in range(attempts):
        try:
            return func()
        except (OperationalError, StaleDataError):
            db.session.rollback()
            if attempt >= attempts - 1:
                raise
            time.sleep(backoff_base * (2 ** attempt))
        except Exception:
            db.session.rollback()
            raise
