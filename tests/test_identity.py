import hashlib
import unittest

from domain.combinations import all_triples
from domain.identity import compute_bitslow, decode_bitslow
from domain.models import Coin


def _md5(text: str) -> str:
    return hashlib.md5(text.encode("utf-8")).hexdigest()


class IdentityCodecTests(unittest.TestCase):
    def test_identity_is_md5_of_concatenated_component_hashes(self):
        expected = _md5(_md5("3") + _md5("7") + _md5("10"))
        self.assertEqual(compute_bitslow(3, 7, 10), expected)

    def test_identity_is_deterministic(self):
        self.assertEqual(compute_bitslow(4, 4, 9), compute_bitslow(4, 4, 9))

    def test_identity_is_32_lowercase_hex_chars(self):
        identity = compute_bitslow(1, 1, 1)
        self.assertEqual(len(identity), 32)
        self.assertEqual(identity, identity.lower())
        int(identity, 16)

    def test_component_order_matters(self):
        self.assertNotEqual(compute_bitslow(1, 2, 3), compute_bitslow(3, 2, 1))

    def test_every_triple_has_a_distinct_identity(self):
        identities = {compute_bitslow(*triple) for triple in all_triples()}
        self.assertEqual(len(identities), 1000)

    def test_decode_returns_the_original_triple(self):
        for triple in [(1, 1, 1), (10, 10, 10), (2, 9, 5)]:
            self.assertEqual(decode_bitslow(compute_bitslow(*triple)), triple)

    def test_decode_ignores_case_and_whitespace(self):
        identity = compute_bitslow(6, 1, 8)
        self.assertEqual(decode_bitslow(f"  {identity.upper()} "), (6, 1, 8))

    def test_decode_unknown_identity_returns_none(self):
        self.assertIsNone(decode_bitslow("not-a-bitslow"))

    def test_coin_identity_is_recomputed_from_triple(self):
        coin = Coin(id=1, bit1=2, bit2=3, bit3=4, value=10.0)
        self.assertEqual(coin.identity, compute_bitslow(2, 3, 4))
        self.assertEqual(coin.identity, coin.identity)


if __name__ == "__main__":
    unittest.main()
