from __future__ import annotations

from infrastructure.db.client_repository import SqlClientRepository
from infrastructure.db.coin_repository import SqlCoinRepository
from infrastructure.db.session import SqlSession
from infrastructure.db.token_repository import SqlTokenRepository
from infrastructure.db.transaction_repository import SqlTransactionRepository


class SqlUnitOfWork:
    """The repositories of one storage transaction, sharing its session."""

    def __init__(self, session: SqlSession) -> None:
        self.session = session
        self.clients = SqlClientRepository(session)
        self.coins = SqlCoinRepository(session)
        self.transactions = SqlTransactionRepository(session)
        self.tokens = SqlTokenRepository(session)
