from __future__ import annotations

from typing import Optional

from domain.models import Client
from domain.repositories import ClientRepository
from infrastructure.db.session import Row, SqlSession

_COLUMNS = "id, name, email, password_hash, phone, address, created_at"


class SqlClientRepository(ClientRepository):
    """
    SQL implementation of `ClientRepository` over the `clients` table.

    Works for both the SQLite and the Postgres store; the session takes
    care of placeholder style and generated keys.
    """

    def __init__(self, session: SqlSession) -> None:
        self._session = session

    @staticmethod
    def _to_domain(row: Row) -> Client:
        return Client(
            id=int(row[0]),
            name=row[1],
            email=row[2],
            password_hash=row[3],
            phone=row[4],
            address=row[5],
            created_at=str(row[6]) if row[6] is not None else None,
        )

    def get(self, client_id: int) -> Optional[Client]:
        row = self._session.fetchone(
            f"SELECT {_COLUMNS} FROM clients WHERE id = ?",
            (client_id,),
        )
        if not row:
            return None
        return self._to_domain(row)

    def get_by_email(self, email: str) -> Optional[Client]:
        row = self._session.fetchone(
            f"SELECT {_COLUMNS} FROM clients WHERE email = ?",
            (email,),
        )
        if not row:
            return None
        return self._to_domain(row)

    def add(
        self,
        name: str,
        email: str,
        password_hash: str,
        phone: Optional[str] = None,
        address: Optional[str] = None,
    ) -> int:
        return self._session.insert(
            """
            INSERT INTO clients (name, email, phone, address, password_hash)
            VALUES (?, ?, ?, ?, ?)
            """,
            (name, email, phone, address, password_hash),
            returning="id",
        )
