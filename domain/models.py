from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Generic, List, Optional, Tuple, TypeVar

from .identity import compute_bitslow

Triple = Tuple[int, int, int]

T = TypeVar("T")

ORIGINAL_ISSUER = "Original Issuer"
AVAILABLE_FOR_PURCHASE = "Available for Purchase"


@dataclass
class Client:
    """
    A registered marketplace user.

    Only the parts the coin ledger needs are modelled here; everything
    else about a client is presentation concern.
    """

    id: int
    name: str
    email: str
    password_hash: str
    phone: Optional[str] = None
    address: Optional[str] = None
    created_at: Optional[str] = None


@dataclass
class Coin:
    """
    A BitSlow coin.

    `owner_id` is None while the coin is available for purchase. The
    display identity is never stored; it is recomputed from the triple.
    """

    id: int
    bit1: int
    bit2: int
    bit3: int
    value: float
    owner_id: Optional[int] = None
    owner_name: Optional[str] = None

    @property
    def triple(self) -> Triple:
        return (self.bit1, self.bit2, self.bit3)

    @property
    def identity(self) -> str:
        return compute_bitslow(self.bit1, self.bit2, self.bit3)

    @property
    def is_available(self) -> bool:
        return self.owner_id is None


@dataclass
class Transaction:
    """
    One immutable entry in the ownership ledger.

    `seller_id` is None for coins minted by issuance. The name and coin
    fields are only populated by read queries that join them in.
    """

    id: int
    coin_id: int
    buyer_id: int
    seller_id: Optional[int]
    amount: float
    timestamp: str
    buyer_name: Optional[str] = None
    seller_name: Optional[str] = None
    coin_triple: Optional[Triple] = None
    coin_value: Optional[float] = None

    @property
    def coin_identity(self) -> Optional[str]:
        if self.coin_triple is None:
            return None
        return compute_bitslow(*self.coin_triple)


class OwnershipEventType(str, Enum):
    GENERATED = "generated"
    TRANSFER = "transfer"
    CURRENT = "current"


@dataclass
class OwnershipEvent:
    """One entry of a coin's reconstructed ownership timeline."""

    type: OwnershipEventType
    date: str
    owner_id: Optional[int]
    owner_name: Optional[str]
    amount: Optional[float]
    previous_owner_id: Optional[int]
    previous_owner_name: Optional[str]


@dataclass
class TokenData:
    user_id: int
    email: str
    expires_at: datetime


@dataclass
class CombinationAvailability:
    available: bool
    used: int
    total: int


@dataclass
class TransactionFilters:
    """Optional filters for the transaction listing. None means unfiltered."""

    start_date: Optional[str] = None
    end_date: Optional[str] = None
    min_value: Optional[float] = None
    max_value: Optional[float] = None
    buyer_name: Optional[str] = None
    seller_name: Optional[str] = None


@dataclass
class Page(Generic[T]):
    items: List[T] = field(default_factory=list)
    total: int = 0
    page: int = 1
    page_size: int = 15
