from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, List, Optional, Sequence, Tuple

Row = Tuple[Any, ...]


class SqlSession(ABC):
    """
    Thin wrapper around a DB-API cursor inside one open transaction.

    Repositories write their SQL with `?` placeholders; driver-specific
    subclasses translate placeholders and generated-key retrieval.
    """

    def __init__(self, cursor: Any) -> None:
        self._cur = cursor

    def _sql(self, sql: str) -> str:
        return sql

    def execute(self, sql: str, params: Sequence[Any] = ()) -> int:
        """Run a statement and return the number of affected rows."""

        self._cur.execute(self._sql(sql), tuple(params))
        return self._cur.rowcount

    def fetchone(self, sql: str, params: Sequence[Any] = ()) -> Optional[Row]:
        self._cur.execute(self._sql(sql), tuple(params))
        return self._cur.fetchone()

    def fetchall(self, sql: str, params: Sequence[Any] = ()) -> List[Row]:
        self._cur.execute(self._sql(sql), tuple(params))
        return list(self._cur.fetchall())

    @abstractmethod
    def insert(self, sql: str, params: Sequence[Any], returning: str) -> int:
        """Run an INSERT and return the generated value of column `returning`."""
