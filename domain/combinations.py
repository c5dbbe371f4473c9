from __future__ import annotations

import random
from typing import Iterable, List, Optional

from .errors import ExhaustionError, ValidationError
from .models import CombinationAvailability, Triple

BIT_MIN = 1
BIT_MAX = 10
MAX_COMBINATIONS = (BIT_MAX - BIT_MIN + 1) ** 3


def all_triples() -> List[Triple]:
    """Every triple in the combination space, in lexicographic order."""

    bits = range(BIT_MIN, BIT_MAX + 1)
    return [(b1, b2, b3) for b1 in bits for b2 in bits for b3 in bits]


def validate_triple(triple: Triple) -> Triple:
    if len(triple) != 3:
        raise ValidationError(f"A coin needs exactly three components, got {triple!r}.")
    for bit in triple:
        if isinstance(bit, bool) or not isinstance(bit, int):
            raise ValidationError(f"Coin components must be integers, got {bit!r}.")
        if not BIT_MIN <= bit <= BIT_MAX:
            raise ValidationError(
                f"Coin components must be between {BIT_MIN} and {BIT_MAX}, got {bit}."
            )
    return tuple(triple)  # type: ignore[return-value]


class CombinationSpace:
    """
    The bounded set of (bit1, bit2, bit3) triples a coin can take.

    Draws enumerate the unused triples and pick one uniformly, so the
    worst case stays bounded even when the space is nearly full.
    """

    def __init__(self, rng: Optional[random.Random] = None) -> None:
        self._rng = rng or random.Random()

    @staticmethod
    def is_exhausted(existing: Iterable[Triple]) -> bool:
        return len(set(existing)) >= MAX_COMBINATIONS

    @staticmethod
    def unused(existing: Iterable[Triple]) -> List[Triple]:
        taken = set(existing)
        return [triple for triple in all_triples() if triple not in taken]

    def draw_unused(self, existing: Iterable[Triple]) -> Triple:
        candidates = self.unused(existing)
        if not candidates:
            raise ExhaustionError(
                f"All {MAX_COMBINATIONS} coin combinations are already in use."
            )
        return self._rng.choice(candidates)

    @classmethod
    def availability(cls, existing: Iterable[Triple]) -> CombinationAvailability:
        taken = set(existing)
        return CombinationAvailability(
            available=not cls.is_exhausted(taken),
            used=len(taken),
            total=MAX_COMBINATIONS,
        )
