"""MySQL client for the donor pipeline.

Thread-local connection reuse over the MySQL protocol (MySQL or DoltDB).
A running job and the CLI each talk to the database from their own thread,
so every thread gets a persistent connection that reconnects on failure.
"""

import os
import threading
from contextlib import contextmanager
from functools import lru_cache
from typing import Any, Generator

import pymysql
from pymysql.cursors import DictCursor

_thread_local = threading.local()


@lru_cache(maxsize=1)
def _get_config() -> dict:
    """Get connection configuration.

    Environment variables:
        DONOR_DB_HOST: Database host (default: 127.0.0.1)
        DONOR_DB_PORT: Database port (default: 3306)
        DONOR_DB_USER: Database user (default: root)
        DONOR_DB_PASSWORD: Database password (default: empty)
        DONOR_DB_DATABASE: Database name (default: donors)
    """
    return {
        "host": os.environ.get("DONOR_DB_HOST", "127.0.0.1"),
        "port": int(os.environ.get("DONOR_DB_PORT", "3306")),
        "user": os.environ.get("DONOR_DB_USER", "root"),
        "password": os.environ.get("DONOR_DB_PASSWORD", ""),
        "database": os.environ.get("DONOR_DB_DATABASE", "donors"),
        "autocommit": True,
        "charset": "utf8mb4",
        "cursorclass": DictCursor,
    }


def get_connection() -> pymysql.Connection:
    """Get this thread's connection, reconnecting if it has gone away."""
    conn = getattr(_thread_local, "conn", None)
    if conn is not None:
        try:
            conn.ping(reconnect=False)
            return conn
        except pymysql.Error:
            close_connection()
    conn = pymysql.connect(**_get_config())
    _thread_local.conn = conn
    return conn


def close_connection() -> None:
    conn = getattr(_thread_local, "conn", None)
    _thread_local.conn = None
    if conn is not None:
        try:
            conn.close()
        except pymysql.Error:
            pass


@contextmanager
def get_cursor() -> Generator[Any, None, None]:
    """Context manager yielding a DictCursor on this thread's connection.

    A connection that fails mid-statement is dropped so the next call
    reconnects.

    Example:
        with get_cursor() as cursor:
            cursor.execute("SELECT * FROM scraping_jobs WHERE id = %s", (job_id,))
            row = cursor.fetchone()
    """
    # autocommit=True: each statement is its own transaction
    conn = get_connection()
    try:
        with conn.cursor() as cursor:
            yield cursor
    except pymysql.OperationalError:
        close_connection()
        raise


def execute_query(sql: str, params: tuple | None = None, fetch: str = "all") -> list[dict] | dict | None:
    """Execute a query and return results.

    Retried once on a fresh connection if the connection went stale between
    ping and use.

    Args:
        sql: SQL query with %s placeholders
        params: Query parameters
        fetch: 'all' for fetchall(), 'one' for fetchone(), 'none' for no fetch

    Returns:
        Query results as list of dicts, single dict, or None
    """
    try:
        return _execute(sql, params, fetch)
    except pymysql.OperationalError:
        return _execute(sql, params, fetch)


def _execute(sql: str, params: tuple | None, fetch: str) -> list[dict] | dict | None:
    with get_cursor() as cursor:
        cursor.execute(sql, params or ())

        if fetch == "all":
            return cursor.fetchall()
        elif fetch == "one":
            return cursor.fetchone()
        return None


def check_connection() -> bool:
    """Return True if the database answers a trivial query."""
    try:
        with get_cursor() as cursor:
            cursor.execute("SELECT 1")
            return True
    except pymysql.Error:
        return False
