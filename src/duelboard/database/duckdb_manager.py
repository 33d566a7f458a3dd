"""Centralized storage manager for DuckDB + Ibis operations.

One root DuckDB connection is opened per manager. Every thread works through its
own cursor on that root (and an Ibis backend wrapping the cursor), so readers see
committed snapshots while a writer holds an open transaction.

Write transactions are serialized by a process-wide re-entrant lock. DuckDB admits
a single writing process per database file, so inside that process the lock is
what gives a transaction exclusive write scope over the rows it touches.
"""

from __future__ import annotations

import contextlib
import logging
import re
import threading
from pathlib import Path
from typing import TYPE_CHECKING, Self

import duckdb
import ibis

from duelboard.exceptions import StorageFailureError

if TYPE_CHECKING:
    from collections.abc import Iterator, Sequence

    from ibis.expr.types import Table

logger = logging.getLogger(__name__)

_IDENTIFIER_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


def quote_identifier(name: str) -> str:
    """Quote a SQL identifier, rejecting anything that is not a plain name."""
    if not _IDENTIFIER_RE.match(name):
        msg = f"Invalid identifier: {name!r}"
        raise ValueError(msg)
    return f'"{name}"'


class DuckDBStorageManager:
    """Centralized DuckDB connection + Ibis helpers.

    Manages cursors on a per-thread basis to ensure thread safety.
    """

    _write_lock = threading.RLock()

    def __init__(self, db_path: Path | None = None) -> None:
        """Initialize storage manager.

        Args:
            db_path: DuckDB database file. ``None`` keeps the database in memory.

        """
        self.db_path = db_path
        if db_path is not None:
            db_path.parent.mkdir(parents=True, exist_ok=True)
        try:
            self._root = duckdb.connect(str(db_path) if db_path else ":memory:")
        except duckdb.Error as exc:
            msg = f"Cannot open database {db_path}: {exc}"
            raise StorageFailureError(msg) from exc
        self._thread_local = threading.local()

        logger.info(
            "DuckDBStorageManager initialized (db=%s)",
            "memory" if db_path is None else db_path,
        )

    def _thread_cursor(self) -> duckdb.DuckDBPyConnection:
        conn = getattr(self._thread_local, "conn", None)
        if conn is None:
            conn = self._root.cursor()
            self._thread_local.conn = conn
            self._thread_local.depth = 0
        return conn

    @property
    def _conn(self) -> duckdb.DuckDBPyConnection:
        """Property to access the thread-local cursor."""
        return self._thread_cursor()

    @property
    def ibis_conn(self) -> ibis.BaseBackend:
        """Property to access the thread-local Ibis backend."""
        backend = getattr(self._thread_local, "ibis_conn", None)
        if backend is None:
            backend = ibis.duckdb.from_connection(self._thread_cursor())
            self._thread_local.ibis_conn = backend
        return backend

    @property
    def in_transaction(self) -> bool:
        return getattr(self._thread_local, "depth", 0) > 0

    @contextlib.contextmanager
    def transaction(self) -> Iterator[duckdb.DuckDBPyConnection]:
        """Run the enclosed block as one atomic write transaction.

        Nested calls on the same thread join the outermost transaction. Any
        failure rolls the whole transaction back; DuckDB errors are re-raised as
        ``StorageFailureError``.
        """
        with self._write_lock:
            conn = self._conn
            if self._thread_local.depth > 0:
                self._thread_local.depth += 1
                try:
                    yield conn
                finally:
                    self._thread_local.depth -= 1
                return

            conn.execute("BEGIN TRANSACTION")
            self._thread_local.depth = 1
            try:
                yield conn
            except duckdb.Error as exc:
                self._rollback(conn)
                logger.error("Transaction rolled back after storage error: %s", exc)  # noqa: TRY400
                msg = f"Storage transaction failed: {exc}"
                raise StorageFailureError(msg) from exc
            except BaseException:
                self._rollback(conn)
                raise
            else:
                try:
                    conn.execute("COMMIT")
                except duckdb.Error as exc:
                    self._rollback(conn)
                    msg = f"Storage commit failed: {exc}"
                    raise StorageFailureError(msg) from exc
            finally:
                self._thread_local.depth = 0

    def _rollback(self, conn: duckdb.DuckDBPyConnection) -> None:
        try:
            conn.execute("ROLLBACK")
        except duckdb.Error:
            # DuckDB already discarded the transaction (e.g. failed COMMIT)
            logger.debug("No active transaction to roll back")

    def execute_sql(self, sql: str, params: Sequence | None = None) -> None:
        """Execute a raw SQL statement without returning results."""
        self._conn.execute(sql, list(params or []))

    def execute_query(self, sql: str, params: Sequence | None = None) -> list[tuple]:
        """Execute a raw SQL query and return all results."""
        return self._conn.execute(sql, list(params or [])).fetchall()

    def execute_query_single(self, sql: str, params: Sequence | None = None) -> tuple | None:
        """Execute a raw SQL query and return a single result row."""
        return self._conn.execute(sql, list(params or [])).fetchone()

    def read_table(self, name: str) -> Table:
        """Read table as Ibis expression."""
        if not self.table_exists(name):
            msg = f"Table '{name}' not found in database"
            raise ValueError(msg)
        return self.ibis_conn.table(name)

    def table_exists(self, name: str) -> bool:
        """Check if table exists in database."""
        row = self.execute_query_single(
            "SELECT count(*) FROM information_schema.tables WHERE table_schema = 'main' AND table_name = ?",
            [name],
        )
        return bool(row and row[0])

    def ensure_table(self, name: str, schema: ibis.Schema) -> bool:
        """Create ``name`` from an Ibis schema unless it exists. Returns True if created."""
        if self.table_exists(name):
            return False
        self.ibis_conn.create_table(name, schema=schema)
        logger.info("Created %s table", name)
        return True

    def ensure_sequence(self, name: str, *, start: int = 1) -> None:
        """Create a sequence if it does not exist."""
        self.execute_sql(f"CREATE SEQUENCE IF NOT EXISTS {quote_identifier(name)} START {int(start)}")

    def next_sequence_value(self, sequence_name: str) -> int:
        """Return the next value from ``sequence_name``."""
        quote_identifier(sequence_name)
        row = self.execute_query_single(f"SELECT nextval('{sequence_name}')")
        if row is None:
            msg = f"Failed to fetch next value for sequence '{sequence_name}'"
            raise StorageFailureError(msg)
        return int(row[0])

    def close(self) -> None:
        """Close the root connection (and with it every thread cursor)."""
        self._root.close()
        self._thread_local = threading.local()
        logger.info("DuckDB connection closed (db=%s)", "memory" if self.db_path is None else self.db_path)

    def __enter__(self) -> Self:
        return self

    def __exit__(self, _exc_type: object, _exc_val: object, _exc_tb: object) -> None:
        self.close()


def temp_storage() -> DuckDBStorageManager:
    """Create temporary in-memory storage manager."""
    return DuckDBStorageManager(db_path=None)


__all__ = [
    "DuckDBStorageManager",
    "quote_identifier",
    "temp_storage",
]
