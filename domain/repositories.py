from __future__ import annotations

from typing import ContextManager, List, Optional, Protocol, Tuple

from .models import Client, Coin, TokenData, Transaction, TransactionFilters, Triple


class ClientRepository(Protocol):
    """
    Abstraction over client (user account) persistence.

    Implementations map database rows to the `Client` domain model and
    hide any SQL / driver details from the application layer.
    """

    def get(self, client_id: int) -> Optional[Client]:
        """Return the client with the given ID, or None if not found."""

        ...

    def get_by_email(self, email: str) -> Optional[Client]:
        ...

    def add(
        self,
        name: str,
        email: str,
        password_hash: str,
        phone: Optional[str] = None,
        address: Optional[str] = None,
    ) -> int:
        """Persist a new client and return its generated ID."""

        ...


class CoinRepository(Protocol):
    def get(self, coin_id: int) -> Optional[Coin]:
        ...

    def all_triples(self) -> List[Triple]:
        """Triples of every coin ever stored, owned or not."""

        ...

    def count(self) -> int:
        ...

    def insert(self, triple: Triple, value: float, owner_id: Optional[int]) -> int:
        """Insert a coin and return its generated ID."""

        ...

    def claim(self, coin_id: int, owner_id: int) -> bool:
        """
        Set the owner of an unowned coin.

        The check and the update happen in one statement, so the result is
        False if someone else claimed the coin first.
        """

        ...

    def set_owner(self, coin_id: int, owner_id: Optional[int]) -> None:
        ...

    def page(self, limit: int, offset: int) -> List[Coin]:
        """Coins ordered by ID, with owner names joined in."""

        ...

    def holdings(self, owner_id: int) -> Tuple[int, float]:
        """Return (number of coins, total value) owned by a client."""

        ...


class TransactionRepository(Protocol):
    """
    Append-only access to the ownership ledger.

    Entries are never updated or deleted.
    """

    def append(
        self,
        coin_id: int,
        buyer_id: int,
        seller_id: Optional[int],
        amount: float,
        timestamp: str,
    ) -> int:
        ...

    def for_coin(self, coin_id: int) -> List[Transaction]:
        """All transactions of a coin, oldest first, with names joined in."""

        ...

    def for_client(self, client_id: int) -> List[Transaction]:
        """Transactions where the client is buyer or seller, newest first."""

        ...

    def count(self, filters: TransactionFilters) -> int:
        ...

    def page(self, filters: TransactionFilters, limit: int, offset: int) -> List[Transaction]:
        ...


class TokenRepository(Protocol):
    def set(self, token: str, data: TokenData) -> None:
        ...

    def get(self, token: str) -> Optional[TokenData]:
        ...

    def delete(self, token: str) -> bool:
        ...


class UnitOfWork(Protocol):
    """Repositories bound to one open storage transaction."""

    clients: ClientRepository
    coins: CoinRepository
    transactions: TransactionRepository
    tokens: TokenRepository


class Store(Protocol):
    """
    Transactional storage.

    `transaction()` yields a `UnitOfWork`; leaving the block normally
    commits, leaving it through any exception rolls everything back.
    Driver errors are re-raised as `StorageError` / `ConflictError`.
    """

    def transaction(self) -> ContextManager[UnitOfWork]:
        ...


class PasswordHasher(Protocol):
    def hash(self, password: str) -> str:
        ...

    def verify(self, password: str, password_hash: str) -> bool:
        ...


class AuthVerifier(Protocol):
    def verify(self, token: str) -> Optional[TokenData]:
        """Return the requester behind `token`, or None if it is not valid."""

        ...
