"""
db/connection.py
----------------
Manages the PostgreSQL connection pool.
Uses psycopg2's SimpleConnectionPool for efficient connection reuse.

`transaction()` is the unit-of-work boundary used by the repository: every
statement issued through its cursor commits together or not at all.
"""

from contextlib import contextmanager
from typing import Iterator, Optional

import psycopg2
from psycopg2 import pool

from config import DATABASE_URL, DB_POOL_MAX, DB_POOL_MIN
from utils.errors import StorageUnavailable
from utils.logger import get_logger

logger = get_logger(__name__)

_pool: pool.SimpleConnectionPool | None = None

# Errors meaning the server is gone, not that the statement was wrong.
_UNAVAILABLE_ERRORS = (psycopg2.OperationalError, psycopg2.InterfaceError)


def init_pool(
    dsn: Optional[str] = None,
    min_conn: int = DB_POOL_MIN,
    max_conn: int = DB_POOL_MAX,
) -> None:
    """
    Initialize the database connection pool.

    Args:
        dsn: Connection string; defaults to DATABASE_URL from config.
        min_conn: Minimum number of connections to keep open.
        max_conn: Maximum number of connections allowed.

    Raises:
        StorageUnavailable: If the database is unreachable.
    """
    global _pool
    if _pool is not None:
        return
    try:
        _pool = pool.SimpleConnectionPool(min_conn, max_conn, dsn or DATABASE_URL)
        logger.info("Database connection pool initialized successfully.")
    except psycopg2.OperationalError as e:
        logger.error(f"Failed to initialize database pool: {e}")
        raise StorageUnavailable("Database is unreachable", e) from e


def get_connection():
    """
    Get a connection from the pool.

    Returns:
        A psycopg2 connection object.

    Raises:
        RuntimeError: If the pool has not been initialized.
        StorageUnavailable: If the pool is exhausted or the server is gone.
    """
    if _pool is None:
        raise RuntimeError("Database pool not initialized. Call init_pool() first.")
    try:
        return _pool.getconn()
    except pool.PoolError as e:
        logger.error(f"Connection pool exhausted: {e}")
        raise StorageUnavailable("No database connection available", e) from e
    except _UNAVAILABLE_ERRORS as e:
        logger.error(f"Failed to open database connection: {e}")
        raise StorageUnavailable("Database is unreachable", e) from e


def release_connection(conn) -> None:
    """
    Return a connection back to the pool.

    Args:
        conn: The psycopg2 connection to release.
    """
    if _pool is not None:
        _pool.putconn(conn)


def close_pool() -> None:
    """Close all connections in the pool."""
    global _pool
    if _pool is not None:
        _pool.closeall()
        _pool = None
        logger.info("Database connection pool closed.")


@contextmanager
def transaction() -> Iterator:
    """
    Run a block of statements as one atomic unit of work.

    Yields a cursor. On normal exit the transaction is committed; on any
    exception it is rolled back and the exception re-raised (connection
    failures surface as StorageUnavailable). The connection always goes
    back to the pool.
    """
    conn = get_connection()
    try:
        with conn.cursor() as cur:
            yield cur
        conn.commit()
    except _UNAVAILABLE_ERRORS as e:
        _safe_rollback(conn)
        logger.error(f"Lost database connection mid-transaction: {e}")
        raise StorageUnavailable("Database connection lost", e) from e
    except Exception:
        _safe_rollback(conn)
        raise
    finally:
        release_connection(conn)


@contextmanager
def read_cursor() -> Iterator:
    """Yield a cursor for read-only queries; the pool discards the open transaction on release."""
    conn = get_connection()
    try:
        with conn.cursor() as cur:
            yield cur
    except _UNAVAILABLE_ERRORS as e:
        logger.error(f"Lost database connection during read: {e}")
        raise StorageUnavailable("Database connection lost", e) from e
    finally:
        release_connection(conn)


def _safe_rollback(conn) -> None:
    # A dead connection cannot roll back; the server discards the transaction anyway.
    try:
        conn.rollback()
    except _UNAVAILABLE_ERRORS as e:
        logger.error(f"Rollback failed on broken connection: {e}")
