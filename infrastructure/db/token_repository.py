from __future__ import annotations

from datetime import datetime
from typing import Optional

from domain.models import TokenData
from domain.repositories import TokenRepository
from infrastructure.db.session import SqlSession


class SqlTokenRepository(TokenRepository):
    """
    Session tokens in the `auth_tokens` table.

    Expiry timestamps are stored as ISO-8601 text so both backends
    compare and parse them the same way.
    """

    def __init__(self, session: SqlSession) -> None:
        self._session = session

    def set(self, token: str, data: TokenData) -> None:
        self._session.execute(
            """
            INSERT INTO auth_tokens (token, client_id, email, expires_at)
            VALUES (?, ?, ?, ?)
            """,
            (token, data.user_id, data.email, data.expires_at.isoformat()),
        )

    def get(self, token: str) -> Optional[TokenData]:
        row = self._session.fetchone(
            "SELECT client_id, email, expires_at FROM auth_tokens WHERE token = ?",
            (token,),
        )
        if not row:
            return None
        return TokenData(
            user_id=int(row[0]),
            email=row[1],
            expires_at=datetime.fromisoformat(str(row[2])),
        )

    def delete(self, token: str) -> bool:
        affected = self._session.execute(
            "DELETE FROM auth_tokens WHERE token = ?",
            (token,),
        )
        return affected > 0
