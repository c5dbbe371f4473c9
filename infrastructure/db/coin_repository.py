from __future__ import annotations

from typing import List, Optional, Tuple

from domain.models import Coin, Triple
from domain.repositories import CoinRepository
from infrastructure.db.session import Row, SqlSession

_SELECT = """
    SELECT c.coin_id, c.bit1, c.bit2, c.bit3, c.value, c.client_id, cl.name
    FROM coins c
    LEFT JOIN clients cl ON c.client_id = cl.id
"""


class SqlCoinRepository(CoinRepository):
    """SQL implementation of `CoinRepository` over the `coins` table."""

    def __init__(self, session: SqlSession) -> None:
        self._session = session

    @staticmethod
    def _to_domain(row: Row) -> Coin:
        return Coin(
            id=int(row[0]),
            bit1=int(row[1]),
            bit2=int(row[2]),
            bit3=int(row[3]),
            value=float(row[4]),
            owner_id=int(row[5]) if row[5] is not None else None,
            owner_name=row[6],
        )

    def get(self, coin_id: int) -> Optional[Coin]:
        row = self._session.fetchone(f"{_SELECT} WHERE c.coin_id = ?", (coin_id,))
        if not row:
            return None
        return self._to_domain(row)

    def all_triples(self) -> List[Triple]:
        rows = self._session.fetchall("SELECT bit1, bit2, bit3 FROM coins")
        return [(int(row[0]), int(row[1]), int(row[2])) for row in rows]

    def count(self) -> int:
        row = self._session.fetchone("SELECT COUNT(*) FROM coins")
        return int(row[0]) if row else 0

    def insert(self, triple: Triple, value: float, owner_id: Optional[int]) -> int:
        bit1, bit2, bit3 = triple
        return self._session.insert(
            """
            INSERT INTO coins (bit1, bit2, bit3, value, client_id)
            VALUES (?, ?, ?, ?, ?)
            """,
            (bit1, bit2, bit3, value, owner_id),
            returning="coin_id",
        )

    def claim(self, coin_id: int, owner_id: int) -> bool:
        affected = self._session.execute(
            """
            UPDATE coins
            SET client_id = ?
            WHERE coin_id = ? AND client_id IS NULL
            """,
            (owner_id, coin_id),
        )
        return affected == 1

    def set_owner(self, coin_id: int, owner_id: Optional[int]) -> None:
        self._session.execute(
            "UPDATE coins SET client_id = ? WHERE coin_id = ?",
            (owner_id, coin_id),
        )

    def page(self, limit: int, offset: int) -> List[Coin]:
        rows = self._session.fetchall(
            f"{_SELECT} ORDER BY c.coin_id LIMIT ? OFFSET ?",
            (limit, offset),
        )
        return [self._to_domain(row) for row in rows]

    def holdings(self, owner_id: int) -> Tuple[int, float]:
        row = self._session.fetchone(
            "SELECT COUNT(*), COALESCE(SUM(value), 0) FROM coins WHERE client_id = ?",
            (owner_id,),
        )
        if not row:
            return 0, 0.0
        return int(row[0]), float(row[1])
