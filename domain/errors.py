from __future__ import annotations


class MarketplaceError(Exception):
    """Base class for every error raised by the marketplace core."""


class ValidationError(MarketplaceError):
    """Bad input, rejected before any state change."""


class ExhaustionError(MarketplaceError):
    """No unused (bit1, bit2, bit3) combination is left."""


class NotFoundError(MarketplaceError):
    """A referenced coin or client does not exist."""


class AlreadyOwnedError(MarketplaceError):
    """The coin already has an owner and cannot be bought."""


class AuthenticationError(MarketplaceError):
    """Invalid credentials, or a missing/expired token."""


class EmailInUseError(MarketplaceError):
    """Registration with an email that belongs to another client."""


class StorageError(MarketplaceError):
    """The storage layer failed; the surrounding transaction was rolled back."""


class ConflictError(StorageError):
    """
    A concurrent writer won a race at commit time (unique violation,
    serialization failure). Safe to retry the whole operation.
    """
