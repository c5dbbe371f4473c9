from __future__ import annotations

import math
from datetime import datetime, timezone
from typing import Callable, Optional, TypeVar

import structlog

from application.cache import ResponseCache
from domain.combinations import CombinationSpace
from domain.errors import (
    AlreadyOwnedError,
    ConflictError,
    NotFoundError,
    ValidationError,
)
from domain.models import Client, CombinationAvailability, Coin
from domain.repositories import Store, UnitOfWork

logger = structlog.get_logger()

T = TypeVar("T")

DEFAULT_MAX_ATTEMPTS = 3


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def validate_value(value: float) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValidationError("Valid monetary value is required")
    if not math.isfinite(value) or value <= 0:
        raise ValidationError("Valid monetary value is required")
    return float(value)


class CoinLedger:
    """
    Owns the coin state transitions: minting (`generate`) and the first
    sale of an available coin (`buy`).

    Each transition runs in one storage transaction that both updates the
    coin row and appends to the transaction log, so the two never
    disagree. The response cache is invalidated after every commit.

    Transfers always record `seller_id = None`, for purchases too; there
    is no peer-to-peer resale path.
    """

    def __init__(
        self,
        store: Store,
        cache: Optional[ResponseCache] = None,
        space: Optional[CombinationSpace] = None,
        clock: Callable[[], datetime] = utc_now,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    ) -> None:
        self._store = store
        self._cache = cache
        self._space = space or CombinationSpace()
        self._clock = clock
        self._max_attempts = max(1, max_attempts)

    def _timestamp(self) -> str:
        return self._clock().isoformat()

    def _atomic(self, operation: str, work: Callable[[UnitOfWork], T]) -> T:
        """Run `work` in a transaction, retrying when a concurrent writer wins."""

        attempt = 1
        while True:
            try:
                with self._store.transaction() as uow:
                    return work(uow)
            except ConflictError as exc:
                if attempt >= self._max_attempts:
                    raise
                logger.warning(
                    "ledger_conflict_retry",
                    operation=operation,
                    attempt=attempt,
                    error=str(exc),
                )
                attempt += 1

    def _invalidate(self) -> None:
        if self._cache is not None:
            self._cache.invalidate_all()

    @staticmethod
    def _require_client(uow: UnitOfWork, client_id: int) -> Client:
        client = uow.clients.get(client_id)
        if client is None:
            raise NotFoundError(f"Client {client_id} not found")
        return client

    def generate(self, requester_id: int, value: float) -> Coin:
        """
        Mint a new coin owned by `requester_id`.

        Raises `ValidationError` for a non-positive value, `NotFoundError`
        for an unknown requester and `ExhaustionError` once every
        combination is taken. Nothing is written when any of them occurs.
        """

        amount = validate_value(value)

        def work(uow: UnitOfWork) -> Coin:
            owner = self._require_client(uow, requester_id)
            triple = self._space.draw_unused(uow.coins.all_triples())
            coin_id = uow.coins.insert(triple, amount, requester_id)
            uow.transactions.append(
                coin_id=coin_id,
                buyer_id=requester_id,
                seller_id=None,
                amount=amount,
                timestamp=self._timestamp(),
            )
            return Coin(
                id=coin_id,
                bit1=triple[0],
                bit2=triple[1],
                bit3=triple[2],
                value=amount,
                owner_id=requester_id,
                owner_name=owner.name,
            )

        coin = self._atomic("generate", work)
        self._invalidate()
        logger.info(
            "coin_generated",
            coin_id=coin.id,
            owner_id=requester_id,
            value=amount,
            triple=list(coin.triple),
        )
        return coin

    def buy(self, requester_id: int, coin_id: int) -> None:
        """
        Transfer an available coin to `requester_id`.

        Raises `NotFoundError` if the coin or requester does not exist and
        `AlreadyOwnedError` if the coin has an owner, including the case
        where another buyer claimed it concurrently.
        """

        def work(uow: UnitOfWork) -> float:
            coin = uow.coins.get(coin_id)
            if coin is None:
                raise NotFoundError("Coin not found")
            if coin.owner_id is not None:
                raise AlreadyOwnedError("Coin already has an owner")
            self._require_client(uow, requester_id)

            # The UPDATE only matches while the coin is still unowned.
            if not uow.coins.claim(coin_id, requester_id):
                raise AlreadyOwnedError("Coin already has an owner")

            uow.transactions.append(
                coin_id=coin_id,
                buyer_id=requester_id,
                seller_id=None,
                amount=coin.value,
                timestamp=self._timestamp(),
            )
            return coin.value

        amount = self._atomic("buy", work)
        self._invalidate()
        logger.info("coin_purchased", coin_id=coin_id, buyer_id=requester_id, amount=amount)

    def availability(self) -> CombinationAvailability:
        with self._store.transaction() as uow:
            return self._space.availability(uow.coins.all_triples())
