from __future__ import annotations

import hashlib
import hmac

from domain.repositories import PasswordHasher


class Sha256PasswordHasher(PasswordHasher):
    """Hex SHA-256 password digests, compatible with existing client rows."""

    def hash(self, password: str) -> str:
        return hashlib.sha256(password.encode("utf-8")).hexdigest()

    def verify(self, password: str, password_hash: str) -> bool:
        return hmac.compare_digest(self.hash(password), password_hash)
