from __future__ import annotations

from domain.models import (
    AVAILABLE_FOR_PURCHASE,
    ORIGINAL_ISSUER,
    Coin,
    OwnershipEvent,
    OwnershipEventType,
    Transaction,
)


def short_identity(identity: str, width: int = 12) -> str:
    return identity[:width]


def format_coin_line(coin: Coin) -> str:
    """
    Format: #{id} {identity} ({b1},{b2},{b3}) value={value} owner={owner}
    """

    owner = coin.owner_name or (
        AVAILABLE_FOR_PURCHASE if coin.is_available else f"client {coin.owner_id}"
    )
    bit1, bit2, bit3 = coin.triple
    return (
        f"#{coin.id} {short_identity(coin.identity)} ({bit1},{bit2},{bit3}) "
        f"value={coin.value:,.2f} owner={owner}"
    )


def format_transaction_line(tx: Transaction) -> str:
    seller = tx.seller_name if tx.seller_id is not None else ORIGINAL_ISSUER
    buyer = tx.buyer_name or f"client {tx.buyer_id}"
    return f"{tx.timestamp[:19]} coin #{tx.coin_id}: {seller} -> {buyer} ({tx.amount:,.2f})"


def format_history_line(event: OwnershipEvent) -> str:
    if event.type is OwnershipEventType.CURRENT:
        return f"Current owner: {event.owner_name} (previously {event.previous_owner_name or '-'})"
    verb = "generated by" if event.type is OwnershipEventType.GENERATED else "transferred to"
    return (
        f"{event.date[:19]} {verb} {event.owner_name} "
        f"from {event.previous_owner_name} for {event.amount:,.2f}"
    )
