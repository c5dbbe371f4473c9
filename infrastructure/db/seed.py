from __future__ import annotations

import random
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional

import structlog

from domain.combinations import MAX_COMBINATIONS, CombinationSpace
from domain.repositories import PasswordHasher, Store

logger = structlog.get_logger()

_FIRST_NAMES = [
    "Ana", "Bogdan", "Carla", "Dan", "Elena", "Florin", "Gabriela", "Horia",
    "Ioana", "Mihai", "Nora", "Radu", "Sorina", "Tudor", "Vlad",
]
_LAST_NAMES = [
    "Popescu", "Ionescu", "Dumitru", "Stan", "Marin", "Tudose", "Georgescu", "Rusu",
]

DEMO_PASSWORD = "password123"


@dataclass
class SeedSummary:
    clients: int
    coins: int
    transactions: int


def seed_database(
    store: Store,
    hasher: PasswordHasher,
    client_count: int = 30,
    coin_count: int = 20,
    transaction_count: int = 50,
    available_ratio: float = 0.3,
    rng: Optional[random.Random] = None,
) -> SeedSummary:
    """
    Fill an empty store with demo clients, coins and ownership chains.

    Roughly `available_ratio` of the coins are left without an owner so
    they can be bought. Every owned coin gets a chain of transactions that
    starts with a mint (no seller) and continues with transfers between
    random clients; the coin's owner is the last buyer of its chain.
    All demo clients share the password `DEMO_PASSWORD`. A store that
    already holds coins is left untouched.
    """

    rng = rng or random.Random()
    space = CombinationSpace(rng)
    coin_count = min(coin_count, MAX_COMBINATIONS)
    now = datetime.now(timezone.utc)

    with store.transaction() as uow:
        if uow.coins.count() > 0:
            logger.info("database_seed_skipped", reason="store already has coins")
            return SeedSummary(clients=0, coins=0, transactions=0)

        client_ids: List[int] = []
        for index in range(client_count):
            first = rng.choice(_FIRST_NAMES)
            last = rng.choice(_LAST_NAMES)
            client_ids.append(
                uow.clients.add(
                    name=f"{first} {last}",
                    email=f"{first.lower()}.{last.lower()}{index}@example.com",
                    password_hash=hasher.hash(DEMO_PASSWORD),
                    phone=f"07{rng.randint(10000000, 99999999)}",
                )
            )

        taken = uow.coins.all_triples()
        coins: Dict[int, float] = {}
        owned: List[int] = []
        for _ in range(coin_count):
            triple = space.draw_unused(taken)
            taken.append(triple)
            value = float(rng.randint(1000, 100000))
            coin_id = uow.coins.insert(triple, value, None)
            coins[coin_id] = value
            if client_ids and rng.random() >= available_ratio:
                owned.append(coin_id)

        # One mint per owned coin, the remainder spread as transfers.
        chains: Dict[int, int] = {coin_id: 1 for coin_id in owned}
        for _ in range(max(0, transaction_count - len(owned))):
            if not owned or len(client_ids) < 2:
                break
            chains[rng.choice(owned)] += 1

        written = 0
        for coin_id, length in chains.items():
            moment = now - timedelta(days=rng.randint(30, 365))
            owner: Optional[int] = None
            for _ in range(length):
                candidates = [c for c in client_ids if c != owner]
                buyer = rng.choice(candidates)
                uow.transactions.append(
                    coin_id=coin_id,
                    buyer_id=buyer,
                    seller_id=owner,
                    amount=coins[coin_id],
                    timestamp=moment.isoformat(),
                )
                written += 1
                owner = buyer
                moment += timedelta(hours=rng.randint(1, 72))
            uow.coins.set_owner(coin_id, owner)

    summary = SeedSummary(clients=len(client_ids), coins=len(coins), transactions=written)
    logger.info(
        "database_seeded",
        clients=summary.clients,
        coins=summary.coins,
        transactions=summary.transactions,
    )
    return summary
