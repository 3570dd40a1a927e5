"""Database access layer using psycopg2.

Provides:
- get_conn(): Get a database connection from DATABASE_URL
- txn(): Context manager for short, safe transactions
- fetchone/fetchall: Query helpers
- for_update(): SELECT ... FOR UPDATE helper
"""

import os
from contextlib import contextmanager
from typing import Any, Iterator, Sequence
from urllib.parse import urlparse

import psycopg2
from psycopg2.extensions import connection as PgConnection, cursor as PgCursor


def _dsn_has_password(dsn: str) -> bool:
    if "://" in dsn:
        return urlparse(dsn).password is not None
    return any(part.startswith("password=") for part in dsn.split())


def get_conn() -> PgConnection:
    """Get a new database connection from DATABASE_URL.

    DB_PASSWORD is passed separately when the DSN itself carries no
    password (e.g. a secret mounted next to a shared connection string).

    Raises:
        RuntimeError: If DATABASE_URL is not set.
        psycopg2.Error: On connection failure.
    """
    dsn = os.environ.get("DATABASE_URL")
    if not dsn:
        raise RuntimeError("DATABASE_URL environment variable not set")
    password = os.environ.get("DB_PASSWORD")
    if password and not _dsn_has_password(dsn):
        return psycopg2.connect(dsn, password=password)
    return psycopg2.connect(dsn)


@contextmanager
def txn(conn: PgConnection | None = None) -> Iterator[PgCursor]:
    """Context manager for a short, safe transaction.

    If conn is None, creates a new connection that is closed on exit.
    Commits on successful exit, rolls back on exception.

    Example:
        with txn() as cur:
            cur.execute("UPDATE rooms SET status = %s WHERE id = %s", ("available", room_id))
    """
    owns_conn = conn is None
    if owns_conn:
        conn = get_conn()

    try:
        with conn.cursor() as cur:
            yield cur
        conn.commit()
    except Exception:
        conn.rollback()
        raise
    finally:
        if owns_conn:
            conn.close()


def fetchone(
    cur: PgCursor,
    query: str,
    params: Sequence[Any] | None = None,
) -> tuple[Any, ...] | None:
    cur.execute(query, params)
    return cur.fetchone()


def fetchall(
    cur: PgCursor,
    query: str,
    params: Sequence[Any] | None = None,
) -> list[tuple[Any, ...]]:
    cur.execute(query, params)
    return cur.fetchall()


def for_update(
    cur: PgCursor,
    query: str,
    params: Sequence[Any] | None = None,
    *,
    nowait: bool = False,
) -> tuple[Any, ...] | None:
    """Execute SELECT ... FOR UPDATE and fetch one row.

    Use within a transaction to lock the selected row until
    commit/rollback.

    Args:
        cur: Database cursor.
        query: SELECT query (without FOR UPDATE).
        params: Query parameters.
        nowait: If True, fail immediately if the row is locked.
    """
    suffix = " FOR UPDATE"
    if nowait:
        suffix += " NOWAIT"

    full_query = query.rstrip().rstrip(";") + suffix
    cur.execute(full_query, params)
    return cur.fetchone()
