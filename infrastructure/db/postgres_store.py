from __future__ import annotations

from contextlib import contextmanager
from typing import Any, Iterator, Sequence

import psycopg2
import psycopg2.errors
import structlog
from psycopg2.extensions import ISOLATION_LEVEL_SERIALIZABLE

from domain.errors import ConflictError, StorageError
from infrastructure.db.session import SqlSession
from infrastructure.db.unit_of_work import SqlUnitOfWork

logger = structlog.get_logger()

_SCHEMA = (
    """
    CREATE TABLE IF NOT EXISTS clients (
        id SERIAL PRIMARY KEY,
        name TEXT NOT NULL,
        email TEXT NOT NULL UNIQUE,
        phone TEXT,
        address TEXT,
        password_hash TEXT NOT NULL,
        created_at TIMESTAMPTZ NOT NULL DEFAULT now()
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS coins (
        coin_id SERIAL PRIMARY KEY,
        bit1 INTEGER NOT NULL CHECK (bit1 BETWEEN 1 AND 10),
        bit2 INTEGER NOT NULL CHECK (bit2 BETWEEN 1 AND 10),
        bit3 INTEGER NOT NULL CHECK (bit3 BETWEEN 1 AND 10),
        value DOUBLE PRECISION NOT NULL CHECK (value > 0),
        client_id INTEGER REFERENCES clients (id),
        UNIQUE (bit1, bit2, bit3)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS transactions (
        id SERIAL PRIMARY KEY,
        coin_id INTEGER NOT NULL REFERENCES coins (coin_id),
        buyer_id INTEGER NOT NULL REFERENCES clients (id),
        seller_id INTEGER REFERENCES clients (id),
        amount DOUBLE PRECISION NOT NULL,
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

_CONFLICTS = (
    psycopg2.errors.SerializationFailure,
    psycopg2.errors.DeadlockDetected,
    psycopg2.errors.UniqueViolation,
)


class PostgresSession(SqlSession):
    def _sql(self, sql: str) -> str:
        return sql.replace("?", "%s")

    def insert(self, sql: str, params: Sequence[Any], returning: str) -> int:
        self._cur.execute(f"{self._sql(sql)} RETURNING {returning}", tuple(params))
        return int(self._cur.fetchone()[0])


class PostgresStore:
    """
    Postgres-backed `Store`.

    Every unit of work gets its own connection at SERIALIZABLE isolation.
    Serialization failures and unique violations surface as
    `ConflictError` so callers can retry the whole operation.
    """

    def __init__(self, db_params: dict) -> None:
        self._db_params = db_params
        self._ensure_schema()

    def _get_connection(self):
        return psycopg2.connect(**self._db_params)

    def _ensure_schema(self) -> None:
        conn = self._get_connection()
        try:
            with conn:
                with conn.cursor() as cur:
                    for statement in _SCHEMA:
                        cur.execute(statement)
        finally:
            conn.close()

    @contextmanager
    def transaction(self) -> Iterator[SqlUnitOfWork]:
        try:
            conn = self._get_connection()
        except psycopg2.Error as exc:
            raise StorageError(f"Could not connect to Postgres: {exc}") from exc

        conn.set_isolation_level(ISOLATION_LEVEL_SERIALIZABLE)
        try:
            # `with conn` commits on success and rolls back on any exception.
            with conn:
                with conn.cursor() as cur:
                    yield SqlUnitOfWork(PostgresSession(cur))
        except _CONFLICTS as exc:
            logger.info("postgres_transaction_conflict", error=str(exc))
            raise ConflictError(str(exc)) from exc
        except psycopg2.Error as exc:
            raise StorageError(str(exc)) from exc
        finally:
            conn.close()
