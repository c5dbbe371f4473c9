from __future__ import annotations

from typing import List, Optional

from domain.errors import NotFoundError
from domain.models import (
    AVAILABLE_FOR_PURCHASE,
    ORIGINAL_ISSUER,
    OwnershipEvent,
    OwnershipEventType,
)
from domain.repositories import Store

CURRENT_DATE_LABEL = "Current"


class HistoryProjector:
    """
    Rebuilds a coin's ownership timeline from the transaction log.

    Nothing about the timeline is stored; it is derived on every call.
    """

    def __init__(self, store: Store) -> None:
        self._store = store

    def project(self, coin_id: int) -> List[OwnershipEvent]:
        with self._store.transaction() as uow:
            coin = uow.coins.get(coin_id)
            if coin is None:
                raise NotFoundError("Coin not found")
            transactions = uow.transactions.for_coin(coin_id)

        events: List[OwnershipEvent] = []
        for index, tx in enumerate(transactions):
            if index == 0:
                events.append(
                    OwnershipEvent(
                        type=OwnershipEventType.GENERATED,
                        date=tx.timestamp,
                        owner_id=tx.buyer_id,
                        owner_name=tx.buyer_name,
                        amount=tx.amount,
                        previous_owner_id=None,
                        previous_owner_name=ORIGINAL_ISSUER,
                    )
                )
            else:
                events.append(
                    OwnershipEvent(
                        type=OwnershipEventType.TRANSFER,
                        date=tx.timestamp,
                        owner_id=tx.buyer_id,
                        owner_name=tx.buyer_name,
                        amount=tx.amount,
                        previous_owner_id=tx.seller_id,
                        previous_owner_name=(
                            tx.seller_name if tx.seller_id is not None else ORIGINAL_ISSUER
                        ),
                    )
                )

        previous_id: Optional[int] = None
        previous_name: Optional[str] = None
        if events:
            previous_id = events[-1].owner_id
            previous_name = events[-1].owner_name

        events.append(
            OwnershipEvent(
                type=OwnershipEventType.CURRENT,
                date=CURRENT_DATE_LABEL,
                owner_id=coin.owner_id,
                owner_name=coin.owner_name if coin.owner_id is not None else AVAILABLE_FOR_PURCHASE,
                amount=None,
                previous_owner_id=previous_id,
                previous_owner_name=previous_name,
            )
        )
        return events
