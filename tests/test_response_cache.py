import unittest

from application.cache import ResponseCache


class FakeClock:
    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


class ResponseCacheTests(unittest.TestCase):
    def setUp(self) -> None:
        self.clock = FakeClock()
        self.cache = ResponseCache(ttl_seconds=120, clock=self.clock)

    def test_missing_key_returns_none(self):
        self.assertIsNone(self.cache.get("coins-1"))

    def test_entry_is_served_until_ttl_expires(self):
        self.cache.put("coins-1", {"total": 3})
        self.clock.now += 119
        self.assertEqual(self.cache.get("coins-1"), {"total": 3})

        self.clock.now += 1
        self.assertIsNone(self.cache.get("coins-1"))
        self.assertEqual(len(self.cache), 0)

    def test_invalidate_all_clears_every_entry(self):
        self.cache.put("coins-1", 1)
        self.cache.put("transactions-1", 2)
        self.cache.invalidate_all()
        self.assertIsNone(self.cache.get("coins-1"))
        self.assertIsNone(self.cache.get("transactions-1"))

    def test_make_key_is_independent_of_argument_order(self):
        first = ResponseCache.make_key("transactions", page=1, page_size=15, filters={"a": 1, "b": None})
        second = ResponseCache.make_key("transactions", filters={"b": None, "a": 1}, page_size=15, page=1)
        self.assertEqual(first, second)

    def test_make_key_distinguishes_parameters(self):
        self.assertNotEqual(
            ResponseCache.make_key("coins", page=1, page_size=15),
            ResponseCache.make_key("coins", page=2, page_size=15),
        )
        self.assertNotEqual(
            ResponseCache.make_key("coins", page=1),
            ResponseCache.make_key("transactions", page=1),
        )

    def test_get_or_compute_only_computes_on_miss(self):
        calls = []

        def compute():
            calls.append(1)
            return "page"

        self.assertEqual(self.cache.get_or_compute("k", compute), "page")
        self.assertEqual(self.cache.get_or_compute("k", compute), "page")
        self.assertEqual(len(calls), 1)

        self.clock.now += 500
        self.cache.get_or_compute("k", compute)
        self.assertEqual(len(calls), 2)

    def test_page_loaded_before_an_invalidation_is_not_stored(self):
        loads = []

        def load_then_mutate():
            loads.append(1)
            if len(loads) == 1:
                # A mutation commits after the page was read.
                self.cache.invalidate_all()
            return f"page-{len(loads)}"

        self.assertEqual(self.cache.get_or_compute("coins-1", load_then_mutate), "page-1")
        self.assertIsNone(self.cache.get("coins-1"))
        self.assertEqual(self.cache.get_or_compute("coins-1", load_then_mutate), "page-2")
        self.assertEqual(self.cache.get("coins-1"), "page-2")


if __name__ == "__main__":
    unittest.main()
