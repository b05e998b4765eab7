"""
Vigil Database Connection Abstraction

Provides a unified interface for SQLite and PostgreSQL.
Detects the backend from the connection URL:
- ``postgresql://`` or ``postgres://`` → psycopg (PostgreSQL)
- anything else (file path, ``:memory:``) → sqlite3

Usage::

    from vigil.storage.db import connect

    conn = connect(os.environ.get("VIGIL_DATABASE_URL", "vigil.db"))
    conn.execute("UPDATE action_approvals SET status = ? WHERE id = ? AND status = ?",
                 ("approved", "apr-1", "pending"))
    claimed = conn.rowcount == 1
    conn.commit()

The ``?`` placeholder is automatically converted to ``%s`` for PostgreSQL.
"""

from __future__ import annotations

import sqlite3
import threading
from typing import Any


class DbConnection:
    """Unified database connection wrapper.

    Statements are serialized with a lock so the wrapper can be shared by
    coroutines that hop onto worker threads via ``asyncio.to_thread``.
    """

    def __init__(self, conn: Any, *, is_postgres: bool = False) -> None:
        self._conn = conn
        self._cursor: Any = None
        self.is_postgres = is_postgres
        self.lock = threading.RLock()

    def _convert_sql(self, sql: str) -> str:
        """Convert SQLite-style ``?`` placeholders to ``%s`` for PostgreSQL."""
        if not self.is_postgres:
            return sql
        return sql.replace("?", "%s")

    def execute(self, sql: str, params: tuple = ()) -> DbConnection:
        """Execute a single SQL statement. Returns self for chaining."""
        sql = self._convert_sql(sql)
        if self.is_postgres:
            self._cursor = self._conn.cursor()
            self._cursor.execute(sql, params or None)
        else:
            self._cursor = self._conn.execute(sql, params)
        return self

    def executescript(self, sql: str) -> None:
        """Execute multiple SQL statements separated by semicolons."""
        if self.is_postgres:
            cur = self._conn.cursor()
            for stmt in sql.split(";"):
                stmt = stmt.strip()
                if stmt:
                    cur.execute(stmt)
            self._conn.commit()
        else:
            self._conn.executescript(sql)

    @property
    def rowcount(self) -> int:
        """Rows affected by the last ``execute`` (-1 if unknown)."""
        if self._cursor is None:
            return -1
        return self._cursor.rowcount

    def fetchone(self) -> dict[str, Any] | None:
        """Fetch one row as a dict."""
        if self._cursor is None:
            return None
        row = self._cursor.fetchone()
        if row is None:
            return None
        return dict(row)

    def fetchall(self) -> list[dict[str, Any]]:
        """Fetch all rows as list of dicts."""
        if self._cursor is None:
            return []
        return [dict(r) for r in self._cursor.fetchall()]

    def commit(self) -> None:
        """Commit the current transaction."""
        self._conn.commit()

    def rollback(self) -> None:
        """Roll back the current transaction."""
        self._conn.rollback()

    def close(self) -> None:
        """Close the connection."""
        self._conn.close()

    def upsert(
        self,
        table: str,
        pk: str,
        columns: list[str],
        values: tuple,
    ) -> None:
        """Insert or update a row.

        Args:
            table: Table name.
            pk: Primary key column name.
            columns: All column names (including pk).
            values: Values tuple matching columns order.
        """
        col_list = ", ".join(columns)

        if self.is_postgres:
            placeholders = ", ".join(["%s"] * len(columns))
            non_pk = [c for c in columns if c != pk]
            update_clause = ", ".join(f"{c} = EXCLUDED.{c}" for c in non_pk)
            sql = (
                f"INSERT INTO {table} ({col_list}) VALUES ({placeholders}) "
                f"ON CONFLICT ({pk}) DO UPDATE SET {update_clause}"
            )
            self._cursor = self._conn.cursor()
            self._cursor.execute(sql, values)
        else:
            placeholders = ", ".join(["?"] * len(columns))
            sql = f"INSERT OR REPLACE INTO {table} ({col_list}) VALUES ({placeholders})"
            self._cursor = self._conn.execute(sql, values)


def connect(db_url: str) -> DbConnection:
    """Create a database connection from a URL or path.

    Args:
        db_url: PostgreSQL URL (``postgresql://...`` or ``postgres://...``)
                or SQLite path (file path or ``:memory:``).

    Returns:
        A unified DbConnection wrapper.
    """
    if db_url.startswith(("postgresql://", "postgres://")):
        try:
            import psycopg
            from psycopg.rows import dict_row
        except ImportError:
            raise ImportError(
                "PostgreSQL support requires psycopg. Install with: pip install 'vigil[postgres]'"
            ) from None

        conn = psycopg.connect(db_url, row_factory=dict_row, autocommit=False)
        return DbConnection(conn, is_postgres=True)

    conn = sqlite3.connect(db_url, check_same_thread=False)
    conn.row_factory = sqlite3.Row
    return DbConnection(conn, is_postgres=False)
