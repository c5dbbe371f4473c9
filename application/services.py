from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional

import structlog

from application.auth import TokenManager
from application.cache import ResponseCache
from application.history import HistoryProjector
from application.ledger import CoinLedger
from domain.errors import (
    AlreadyOwnedError,
    AuthenticationError,
    ConflictError,
    EmailInUseError,
    ExhaustionError,
    NotFoundError,
    StorageError,
    ValidationError,
)
from domain.models import (
    Client,
    CombinationAvailability,
    Coin,
    OwnershipEvent,
    Page,
    TokenData,
    Transaction,
    TransactionFilters,
)
from domain.repositories import AuthVerifier, PasswordHasher, Store, UnitOfWork

logger = structlog.get_logger()

DEFAULT_PAGE_SIZE = 15
MAX_PAGE_SIZE = 100


@dataclass
class OperationResult:
    """Generic result type for simple operations."""

    success: bool
    error_message: Optional[str] = None


@dataclass
class RegistrationResult:
    success: bool
    error_message: Optional[str] = None
    user_id: Optional[int] = None


@dataclass
class LoginResult:
    success: bool
    error_message: Optional[str] = None
    token: Optional[str] = None
    client: Optional[Client] = None


@dataclass
class CoinResult:
    """Result of generating or buying a coin."""

    success: bool
    error_message: Optional[str] = None
    coin: Optional[Coin] = None


@dataclass
class HistoryResult:
    success: bool
    error_message: Optional[str] = None
    coin_id: Optional[int] = None
    history: List[OwnershipEvent] = field(default_factory=list)


@dataclass
class DashboardResult:
    """Everything the client's own overview shows."""

    success: bool
    error_message: Optional[str] = None
    client: Optional[Client] = None
    coin_count: int = 0
    monetary_value: float = 0.0
    transactions: List[Transaction] = field(default_factory=list)


def authenticate(token: Optional[str], verifier: AuthVerifier) -> TokenData:
    """Resolve a session token, raising `AuthenticationError` when it is unusable."""

    data = verifier.verify(token) if token else None
    if data is None:
        raise AuthenticationError("Invalid or expired token")
    return data


def verify_credentials(
    email: str, password: str, store: Store, hasher: PasswordHasher
) -> Client:
    with store.transaction() as uow:
        client = uow.clients.get_by_email(email)
    if client is None or not hasher.verify(password, client.password_hash):
        raise AuthenticationError("Invalid email or password")
    return client


def ensure_email_available(uow: UnitOfWork, email: str) -> None:
    if uow.clients.get_by_email(email) is not None:
        raise EmailInUseError("Email already in use")


def _normalize_paging(page: int, page_size: int) -> tuple[int, int]:
    valid_page = page if page > 0 else 1
    valid_page_size = page_size if 0 < page_size <= MAX_PAGE_SIZE else DEFAULT_PAGE_SIZE
    return valid_page, valid_page_size


def register_client(
    name: str,
    email: str,
    password: str,
    store: Store,
    hasher: PasswordHasher,
    phone: Optional[str] = None,
    address: Optional[str] = None,
) -> RegistrationResult:
    """
    Create a client account.

    The email must not be in use already; the password is stored hashed.
    """

    if not name or not email or not password:
        return RegistrationResult(
            success=False,
            error_message="Name, email, and password are required",
        )

    try:
        try:
            with store.transaction() as uow:
                ensure_email_available(uow, email)
                user_id = uow.clients.add(
                    name=name,
                    email=email,
                    password_hash=hasher.hash(password),
                    phone=phone or None,
                    address=address or None,
                )
        except ConflictError as exc:
            # Lost a race with a concurrent registration of the same email.
            raise EmailInUseError("Email already in use") from exc
    except EmailInUseError as exc:
        logger.info("registration_rejected", email=email)
        return RegistrationResult(success=False, error_message=str(exc))
    except StorageError:
        logger.error("registration_failed", email=email, exc_info=True)
        return RegistrationResult(
            success=False,
            error_message="Server error during registration",
        )

    logger.info("client_registered", user_id=user_id)
    return RegistrationResult(success=True, user_id=user_id)


def login(
    email: str,
    password: str,
    store: Store,
    hasher: PasswordHasher,
    tokens: TokenManager,
) -> LoginResult:
    if not email or not password:
        return LoginResult(success=False, error_message="Email and password are required")

    try:
        client = verify_credentials(email, password, store, hasher)
    except AuthenticationError as exc:
        logger.info("login_rejected", email=email)
        return LoginResult(success=False, error_message=str(exc))

    token = tokens.create_token(client.id, client.email)
    return LoginResult(success=True, token=token, client=client)


def logout(token: Optional[str], tokens: TokenManager) -> OperationResult:
    if not token:
        return OperationResult(success=False, error_message="No token provided")
    if not tokens.remove(token):
        return OperationResult(success=False, error_message="Token not found")
    return OperationResult(success=True)


def generate_coin(
    token: Optional[str],
    value: float,
    verifier: AuthVerifier,
    ledger: CoinLedger,
) -> CoinResult:
    """Mint a coin for the authenticated requester."""

    try:
        requester = authenticate(token, verifier)
    except AuthenticationError as exc:
        return CoinResult(success=False, error_message=str(exc))

    try:
        coin = ledger.generate(requester.user_id, value)
    except ValidationError as exc:
        return CoinResult(success=False, error_message=str(exc))
    except ExhaustionError:
        logger.info("coin_generation_exhausted", user_id=requester.user_id)
        return CoinResult(
            success=False,
            error_message="No combinations left: every BitSlow coin has been generated",
        )
    except NotFoundError as exc:
        return CoinResult(success=False, error_message=str(exc))
    except StorageError:
        logger.error("coin_generation_failed", user_id=requester.user_id, exc_info=True)
        return CoinResult(success=False, error_message="Server error during coin generation")

    return CoinResult(success=True, coin=coin)


def buy_coin(
    token: Optional[str],
    coin_id: int,
    verifier: AuthVerifier,
    ledger: CoinLedger,
) -> OperationResult:
    """Buy an available coin for the authenticated requester."""

    try:
        requester = authenticate(token, verifier)
    except AuthenticationError as exc:
        return OperationResult(success=False, error_message=str(exc))

    try:
        ledger.buy(requester.user_id, coin_id)
    except (NotFoundError, AlreadyOwnedError) as exc:
        logger.info(
            "coin_purchase_rejected",
            coin_id=coin_id,
            buyer_id=requester.user_id,
            reason=str(exc),
        )
        return OperationResult(success=False, error_message=str(exc))
    except StorageError:
        logger.error("coin_purchase_failed", coin_id=coin_id, exc_info=True)
        return OperationResult(success=False, error_message="Server error during purchase")

    return OperationResult(success=True)


def coin_history(coin_id: int, projector: HistoryProjector) -> HistoryResult:
    try:
        events = projector.project(coin_id)
    except NotFoundError as exc:
        return HistoryResult(success=False, error_message=str(exc), coin_id=coin_id)
    except StorageError:
        logger.error("coin_history_failed", coin_id=coin_id, exc_info=True)
        return HistoryResult(
            success=False,
            error_message="Error fetching coin history",
            coin_id=coin_id,
        )
    return HistoryResult(success=True, coin_id=coin_id, history=events)


def available_combinations(ledger: CoinLedger) -> CombinationAvailability:
    return ledger.availability()


def list_coins(
    page: int,
    page_size: int,
    store: Store,
    cache: ResponseCache,
) -> Page[Coin]:
    """One page of coins ordered by ID, served from the cache when fresh."""

    page, page_size = _normalize_paging(page, page_size)
    key = ResponseCache.make_key("coins", page=page, page_size=page_size)

    def load() -> Page[Coin]:
        with store.transaction() as uow:
            total = uow.coins.count()
            coins = uow.coins.page(page_size, (page - 1) * page_size)
        return Page(items=coins, total=total, page=page, page_size=page_size)

    return cache.get_or_compute(key, load)


def list_transactions(
    page: int,
    page_size: int,
    store: Store,
    cache: ResponseCache,
    filters: Optional[TransactionFilters] = None,
) -> Page[Transaction]:
    """One page of transactions, newest first, filtered and cached."""

    page, page_size = _normalize_paging(page, page_size)
    filters = filters or TransactionFilters()
    key = ResponseCache.make_key(
        "transactions",
        page=page,
        page_size=page_size,
        filters=vars(filters),
    )

    def load() -> Page[Transaction]:
        with store.transaction() as uow:
            total = uow.transactions.count(filters)
            transactions = uow.transactions.page(filters, page_size, (page - 1) * page_size)
        return Page(items=transactions, total=total, page=page, page_size=page_size)

    return cache.get_or_compute(key, load)


def client_dashboard(
    token: Optional[str],
    verifier: AuthVerifier,
    store: Store,
) -> DashboardResult:
    try:
        requester = authenticate(token, verifier)
    except AuthenticationError as exc:
        return DashboardResult(success=False, error_message=str(exc))

    with store.transaction() as uow:
        client = uow.clients.get(requester.user_id)
        if client is None:
            return DashboardResult(success=False, error_message="User not found")
        coin_count, monetary_value = uow.coins.holdings(client.id)
        transactions = uow.transactions.for_client(client.id)

    return DashboardResult(
        success=True,
        client=client,
        coin_count=coin_count,
        monetary_value=monetary_value,
        transactions=transactions,
    )
