from __future__ import annotations

import json
import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

import structlog

logger = structlog.get_logger()

DEFAULT_TTL_SECONDS = 120.0


@dataclass
class _Entry:
    value: Any
    stored_at: float


class ResponseCache:
    """
    Short-lived memo for paginated read queries.

    Entries expire `ttl_seconds` after they were stored. Any mutation of
    coins or transactions must call `invalidate_all()`; there is no
    partial invalidation.
    """

    def __init__(
        self,
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._ttl = ttl_seconds
        self._clock = clock
        self._entries: Dict[str, _Entry] = {}
        self._generation = 0
        self._lock = threading.Lock()

    @staticmethod
    def make_key(namespace: str, **params: Any) -> str:
        """Build a key from `params`; argument order does not matter."""

        return f"{namespace}-{json.dumps(params, sort_keys=True, default=str)}"

    def get(self, key: str) -> Optional[Any]:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            if self._clock() - entry.stored_at >= self._ttl:
                del self._entries[key]
                return None
            return entry.value

    def put(self, key: str, value: Any) -> None:
        with self._lock:
            self._entries[key] = _Entry(value=value, stored_at=self._clock())

    def get_or_compute(self, key: str, compute: Callable[[], Any]) -> Any:
        """
        Serve `key` from the cache or store the result of `compute()`.

        A result is not stored when `invalidate_all()` ran while it was
        being computed, since it may predate that mutation.
        """

        cached = self.get(key)
        if cached is not None:
            logger.debug("response_cache_hit", key=key)
            return cached
        with self._lock:
            generation = self._generation
        value = compute()
        with self._lock:
            if generation == self._generation:
                self._entries[key] = _Entry(value=value, stored_at=self._clock())
            else:
                logger.debug("response_cache_store_skipped", key=key)
        return value

    def invalidate_all(self) -> None:
        with self._lock:
            dropped = len(self._entries)
            self._entries.clear()
            self._generation += 1
        logger.debug("response_cache_invalidated", dropped=dropped)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
