from __future__ import annotations

import sqlite3
import threading
from contextlib import contextmanager
from typing import Any, Iterator, Sequence

import structlog

from domain.errors import ConflictError, StorageError
from infrastructure.db.session import SqlSession
from infrastructure.db.unit_of_work import SqlUnitOfWork

logger = structlog.get_logger()

_SCHEMA = (
    """
    CREATE TABLE IF NOT EXISTS clients (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        name TEXT NOT NULL,
        email TEXT NOT NULL UNIQUE,
        phone TEXT,
        address TEXT,
        password_hash TEXT NOT NULL,
        created_at TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS coins (
        coin_id INTEGER PRIMARY KEY AUTOINCREMENT,
        bit1 INTEGER NOT NULL CHECK (bit1 BETWEEN 1 AND 10),
        bit2 INTEGER NOT NULL CHECK (bit2 BETWEEN 1 AND 10),
        bit3 INTEGER NOT NULL CHECK (bit3 BETWEEN 1 AND 10),
        value REAL NOT NULL CHECK (value > 0),
        client_id INTEGER REFERENCES clients (id),
        UNIQUE (bit1, bit2, bit3)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS transactions (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        coin_id INTEGER NOT NULL REFERENCES coins (coin_id),
        buyer_id INTEGER NOT NULL REFERENCES clients (id),
        seller_id INTEGER REFERENCES clients (id),
        amount REAL NOT NULL,
        transaction_date TEXT NOT NULL
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_transactions_coin ON transactions (coin_id, transaction_date)",
    """
    CREATE TABLE IF NOT EXISTS auth_tokens (
        token TEXT PRIMARY KEY,
        client_id INTEGER NOT NULL REFERENCES clients (id),
        email TEXT NOT NULL,
        expires_at TEXT NOT NULL
    )
    """,
)


class SqliteSession(SqlSession):
    def insert(self, sql: str, params: Sequence[Any], returning: str) -> int:
        self._cur.execute(sql, tuple(params))
        return int(self._cur.lastrowid)


class SqliteStore:
    """
    SQLite-backed `Store`.

    Holds a single connection in autocommit mode and opens every unit of
    work with `BEGIN IMMEDIATE` under a lock, so there is exactly one
    writer at a time. Works with ":memory:" as well as a file path. The
    schema is created if needed.
    """

    def __init__(self, db_path: str) -> None:
        self._db_path = db_path
        self._lock = threading.RLock()
        self._conn = sqlite3.connect(db_path, check_same_thread=False, isolation_level=None)
        self._conn.execute("PRAGMA foreign_keys = ON")
        self._ensure_schema()

    def _ensure_schema(self) -> None:
        with self._lock:
            cur = self._conn.cursor()
            for statement in _SCHEMA:
                cur.execute(statement)

    @contextmanager
    def transaction(self) -> Iterator[SqlUnitOfWork]:
        with self._lock:
            cur = self._conn.cursor()
            try:
                cur.execute("BEGIN IMMEDIATE")
            except sqlite3.Error as exc:
                raise StorageError(f"Could not start a transaction: {exc}") from exc

            try:
                yield SqlUnitOfWork(SqliteSession(cur))
            except sqlite3.IntegrityError as exc:
                self._rollback(cur)
                if "UNIQUE" in str(exc):
                    raise ConflictError(str(exc)) from exc
                raise StorageError(str(exc)) from exc
            except sqlite3.Error as exc:
                self._rollback(cur)
                raise StorageError(str(exc)) from exc
            except BaseException:
                self._rollback(cur)
                raise

            try:
                cur.execute("COMMIT")
            except sqlite3.Error as exc:
                self._rollback(cur)
                raise StorageError(f"Commit failed: {exc}") from exc

    def _rollback(self, cur: sqlite3.Cursor) -> None:
        if self._conn.in_transaction:
            cur.execute("ROLLBACK")
            logger.debug("sqlite_transaction_rolled_back", db_path=self._db_path)

    def close(self) -> None:
        with self._lock:
            self._conn.close()
