from __future__ import annotations

import secrets
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

import structlog

from domain.models import TokenData
from domain.repositories import AuthVerifier, Store

logger = structlog.get_logger()

DEFAULT_TOKEN_TTL = timedelta(hours=6)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class TokenManager(AuthVerifier):
    """
    Issues, verifies and revokes session tokens.

    Tokens are 32 random bytes in hex, persisted in the store with the
    client's ID, email and an expiry. Expired tokens are deleted the
    first time they fail verification.
    """

    def __init__(
        self,
        store: Store,
        ttl: timedelta = DEFAULT_TOKEN_TTL,
        clock: Callable[[], datetime] = _utc_now,
    ) -> None:
        self._store = store
        self._ttl = ttl
        self._clock = clock

    def create_token(self, user_id: int, email: str) -> str:
        token = secrets.token_hex(32)
        with self._store.transaction() as uow:
            uow.tokens.set(
                token,
                TokenData(user_id=user_id, email=email, expires_at=self._clock() + self._ttl),
            )
        logger.info("token_issued", user_id=user_id)
        return token

    def verify(self, token: str) -> Optional[TokenData]:
        if not token:
            return None

        with self._store.transaction() as uow:
            data = uow.tokens.get(token)
            if data is None:
                return None
            if self._clock() > data.expires_at:
                uow.tokens.delete(token)
                logger.info("token_expired", user_id=data.user_id)
                return None
            return data

    def remove(self, token: str) -> bool:
        with self._store.transaction() as uow:
            return uow.tokens.delete(token)
