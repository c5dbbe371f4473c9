from __future__ import annotations

from typing import Any, List, Optional, Tuple

from domain.models import ORIGINAL_ISSUER, Transaction, TransactionFilters
from domain.repositories import TransactionRepository
from infrastructure.db.session import Row, SqlSession

_SELECT = """
    SELECT
        t.id, t.coin_id, t.buyer_id, t.seller_id, t.amount, t.transaction_date,
        buyer.name, seller.name, c.bit1, c.bit2, c.bit3, c.value
    FROM transactions t
    JOIN clients buyer ON t.buyer_id = buyer.id
    LEFT JOIN clients seller ON t.seller_id = seller.id
    JOIN coins c ON t.coin_id = c.coin_id
"""

_COUNT = """
    SELECT COUNT(*)
    FROM transactions t
    JOIN clients buyer ON t.buyer_id = buyer.id
    LEFT JOIN clients seller ON t.seller_id = seller.id
    JOIN coins c ON t.coin_id = c.coin_id
"""


def _where(filters: TransactionFilters) -> Tuple[str, List[Any]]:
    clauses = ["1=1"]
    params: List[Any] = []

    if filters.start_date:
        clauses.append("t.transaction_date >= ?")
        params.append(filters.start_date)
    if filters.end_date:
        clauses.append("t.transaction_date <= ?")
        params.append(filters.end_date)
    if filters.min_value is not None:
        clauses.append("c.value >= ?")
        params.append(filters.min_value)
    if filters.max_value is not None:
        clauses.append("c.value <= ?")
        params.append(filters.max_value)
    if filters.buyer_name:
        clauses.append("LOWER(buyer.name) LIKE LOWER(?)")
        params.append(f"%{filters.buyer_name}%")
    if filters.seller_name:
        # Minted coins have no seller row; they match the issuer label.
        clauses.append(
            "(LOWER(seller.name) LIKE LOWER(?) OR (seller.name IS NULL AND ? = ?))"
        )
        params.extend([f"%{filters.seller_name}%", filters.seller_name, ORIGINAL_ISSUER])

    return " WHERE " + " AND ".join(clauses), params


class SqlTransactionRepository(TransactionRepository):
    """
    SQL implementation of `TransactionRepository` over `transactions`.

    Read queries join buyer/seller names and the coin's triple and value.
    """

    def __init__(self, session: SqlSession) -> None:
        self._session = session

    @staticmethod
    def _to_domain(row: Row) -> Transaction:
        return Transaction(
            id=int(row[0]),
            coin_id=int(row[1]),
            buyer_id=int(row[2]),
            seller_id=int(row[3]) if row[3] is not None else None,
            amount=float(row[4]),
            timestamp=str(row[5]),
            buyer_name=row[6],
            seller_name=row[7],
            coin_triple=(int(row[8]), int(row[9]), int(row[10])),
            coin_value=float(row[11]),
        )

    def append(
        self,
        coin_id: int,
        buyer_id: int,
        seller_id: Optional[int],
        amount: float,
        timestamp: str,
    ) -> int:
        return self._session.insert(
            """
            INSERT INTO transactions (coin_id, buyer_id, seller_id, amount, transaction_date)
            VALUES (?, ?, ?, ?, ?)
            """,
            (coin_id, buyer_id, seller_id, amount, timestamp),
            returning="id",
        )

    def for_coin(self, coin_id: int) -> List[Transaction]:
        rows = self._session.fetchall(
            f"{_SELECT} WHERE t.coin_id = ? ORDER BY t.transaction_date ASC, t.id ASC",
            (coin_id,),
        )
        return [self._to_domain(row) for row in rows]

    def for_client(self, client_id: int) -> List[Transaction]:
        rows = self._session.fetchall(
            f"{_SELECT} WHERE t.buyer_id = ? OR t.seller_id = ?"
            " ORDER BY t.transaction_date DESC, t.id DESC",
            (client_id, client_id),
        )
        return [self._to_domain(row) for row in rows]

    def count(self, filters: TransactionFilters) -> int:
        where, params = _where(filters)
        row = self._session.fetchone(_COUNT + where, params)
        return int(row[0]) if row else 0

    def page(self, filters: TransactionFilters, limit: int, offset: int) -> List[Transaction]:
        where, params = _where(filters)
        rows = self._session.fetchall(
            _SELECT + where + " ORDER BY t.transaction_date DESC, t.id DESC LIMIT ? OFFSET ?",
            params + [limit, offset],
        )
        return [self._to_domain(row) for row in rows]
