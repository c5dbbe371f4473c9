from __future__ import annotations

import hashlib
from functools import lru_cache
from typing import Dict, Optional, Tuple


def _md5(text: str) -> str:
    return hashlib.md5(text.encode("utf-8")).hexdigest()


def compute_bitslow(bit1: int, bit2: int, bit3: int) -> str:
    """
    Return the canonical BitSlow identity for a coin's three components.

    Each component is hashed on its own, the three digests are
    concatenated, and the concatenation is hashed again. Components are
    expected to be validated by the caller.
    """

    return _md5(_md5(str(bit1)) + _md5(str(bit2)) + _md5(str(bit3)))


@lru_cache(maxsize=1)
def _identity_index() -> Dict[str, Tuple[int, int, int]]:
    # Imported lazily: combinations depends on errors/models, not on us.
    from .combinations import all_triples

    return {compute_bitslow(*triple): triple for triple in all_triples()}


def decode_bitslow(identity: str) -> Optional[Tuple[int, int, int]]:
    """Return the triple that encodes to `identity`, or None if there is none."""

    return _identity_index().get(identity.strip().lower())
