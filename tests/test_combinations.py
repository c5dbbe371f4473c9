import random
import unittest

from domain.combinations import (
    MAX_COMBINATIONS,
    CombinationSpace,
    all_triples,
    validate_triple,
)
from domain.errors import ExhaustionError, ValidationError


class CombinationSpaceTests(unittest.TestCase):
    def setUp(self) -> None:
        self.space = CombinationSpace(random.Random(42))

    def test_space_holds_one_thousand_triples_in_range(self):
        triples = all_triples()
        self.assertEqual(len(triples), MAX_COMBINATIONS)
        self.assertEqual(len(set(triples)), MAX_COMBINATIONS)
        for triple in triples:
            for bit in triple:
                self.assertTrue(1 <= bit <= 10)

    def test_is_exhausted_only_when_full(self):
        triples = all_triples()
        self.assertFalse(self.space.is_exhausted([]))
        self.assertFalse(self.space.is_exhausted(triples[:-1]))
        self.assertTrue(self.space.is_exhausted(triples))

    def test_draw_never_returns_an_existing_triple(self):
        existing = set(random.Random(7).sample(all_triples(), 900))
        for _ in range(200):
            self.assertNotIn(self.space.draw_unused(existing), existing)

    def test_draw_returns_the_last_free_triple(self):
        triples = all_triples()
        last = triples.pop(123)
        self.assertEqual(self.space.draw_unused(triples), last)

    def test_draw_on_full_space_raises_exhaustion(self):
        with self.assertRaises(ExhaustionError):
            self.space.draw_unused(all_triples())

    def test_draws_are_spread_over_the_space(self):
        draws = {self.space.draw_unused([]) for _ in range(200)}
        self.assertGreater(len(draws), 100)

    def test_availability_counts_used_triples(self):
        availability = self.space.availability([(1, 1, 1), (1, 1, 2)])
        self.assertTrue(availability.available)
        self.assertEqual(availability.used, 2)
        self.assertEqual(availability.total, 1000)

        self.assertFalse(self.space.availability(all_triples()).available)

    def test_availability_follows_exhaustion(self):
        triples = all_triples()
        for existing in (triples[:-1], triples):
            availability = self.space.availability(iter(existing))
            self.assertEqual(availability.used, len(existing))
            self.assertEqual(availability.available, not self.space.is_exhausted(existing))

    def test_validate_triple(self):
        self.assertEqual(validate_triple((1, 5, 10)), (1, 5, 10))
        for bad in [(0, 1, 1), (1, 11, 1), (1, 1), (1.5, 2, 3), (True, 2, 3)]:
            with self.assertRaises(ValidationError):
                validate_triple(bad)


if __name__ == "__main__":
    unittest.main()
