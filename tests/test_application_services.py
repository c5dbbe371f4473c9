import unittest

from application.auth import TokenManager
from application.cache import ResponseCache
from application.history import HistoryProjector
from application.ledger import CoinLedger
from application.services import (
    authenticate,
    available_combinations,
    buy_coin,
    client_dashboard,
    coin_history,
    ensure_email_available,
    generate_coin,
    list_coins,
    list_transactions,
    login,
    logout,
    register_client,
    verify_credentials,
)
from domain.combinations import CombinationSpace
from domain.errors import AuthenticationError, EmailInUseError
from domain.models import OwnershipEventType, TransactionFilters
from infrastructure.db.sqlite_store import SqliteStore
from infrastructure.security import Sha256PasswordHasher
from interfaces.discord.formatting import format_coin_line


class ApplicationServicesTests(unittest.TestCase):
    def setUp(self) -> None:
        self.store = SqliteStore(":memory:")
        self.hasher = Sha256PasswordHasher()
        self.cache = ResponseCache()
        self.ledger = CoinLedger(self.store, self.cache)
        self.projector = HistoryProjector(self.store)
        self.tokens = TokenManager(self.store)

    def tearDown(self) -> None:
        self.store.close()

    def _register_and_login(self, name: str, email: str) -> str:
        registered = register_client(name, email, "secret", self.store, self.hasher)
        self.assertTrue(registered.success)
        result = login(email, "secret", self.store, self.hasher, self.tokens)
        self.assertTrue(result.success)
        return result.token

    def _add_available_coin(self, value: float) -> int:
        with self.store.transaction() as uow:
            triple = CombinationSpace.unused(uow.coins.all_triples())[0]
            return uow.coins.insert(triple, value, None)

    def test_register_stores_hashed_password(self):
        result = register_client(
            "John Doe", "john@example.com", "secret", self.store, self.hasher, phone="0700"
        )
        self.assertTrue(result.success)

        with self.store.transaction() as uow:
            client = uow.clients.get(result.user_id)
        self.assertEqual(client.name, "John Doe")
        self.assertEqual(client.phone, "0700")
        self.assertNotEqual(client.password_hash, "secret")
        self.assertTrue(self.hasher.verify("secret", client.password_hash))

    def test_register_requires_fields_and_unique_email(self):
        missing = register_client("", "john@example.com", "secret", self.store, self.hasher)
        self.assertFalse(missing.success)
        self.assertEqual(missing.error_message, "Name, email, and password are required")

        register_client("John", "john@example.com", "secret", self.store, self.hasher)
        duplicate = register_client("Other", "john@example.com", "pw", self.store, self.hasher)
        self.assertFalse(duplicate.success)
        self.assertEqual(duplicate.error_message, "Email already in use")

    def test_login_rejects_bad_credentials(self):
        register_client("John", "john@example.com", "secret", self.store, self.hasher)

        wrong = login("john@example.com", "nope", self.store, self.hasher, self.tokens)
        unknown = login("jane@example.com", "secret", self.store, self.hasher, self.tokens)

        self.assertFalse(wrong.success)
        self.assertEqual(wrong.error_message, "Invalid email or password")
        self.assertFalse(unknown.success)

    def test_logout_revokes_token(self):
        token = self._register_and_login("John", "john@example.com")

        self.assertTrue(logout(token, self.tokens).success)
        self.assertFalse(logout(token, self.tokens).success)
        result = generate_coin(token, 100, self.tokens, self.ledger)
        self.assertFalse(result.success)
        self.assertEqual(result.error_message, "Invalid or expired token")

    def test_taken_email_raises_and_rolls_back(self):
        register_client("John", "john@example.com", "secret", self.store, self.hasher)

        with self.assertRaises(EmailInUseError):
            with self.store.transaction() as uow:
                ensure_email_available(uow, "john@example.com")
        with self.store.transaction() as uow:
            ensure_email_available(uow, "jane@example.com")
            self.assertEqual(uow.clients.get_by_email("john@example.com").name, "John")

    def test_bad_credentials_and_tokens_raise_authentication_error(self):
        token = self._register_and_login("John", "john@example.com")

        client = verify_credentials("john@example.com", "secret", self.store, self.hasher)
        self.assertEqual(client.name, "John")
        with self.assertRaises(AuthenticationError):
            verify_credentials("john@example.com", "nope", self.store, self.hasher)

        self.assertEqual(authenticate(token, self.tokens).email, "john@example.com")
        for bad in (None, "", "not-a-token"):
            with self.assertRaises(AuthenticationError):
                authenticate(bad, self.tokens)

    def test_generated_coin_line_names_the_owner(self):
        alice = self._register_and_login("Alice", "alice@example.com")
        generated = generate_coin(alice, 500, self.tokens, self.ledger)
        self.assertIn("owner=Alice", format_coin_line(generated.coin))

    def test_generate_then_buy_by_other_user_is_rejected(self):
        alice = self._register_and_login("Alice", "alice@example.com")
        bob = self._register_and_login("Bob", "bob@example.com")

        generated = generate_coin(alice, 500, self.tokens, self.ledger)
        self.assertTrue(generated.success)
        self.assertEqual(generated.coin.value, 500.0)

        bought = buy_coin(bob, generated.coin.id, self.tokens, self.ledger)
        self.assertFalse(bought.success)
        self.assertEqual(bought.error_message, "Coin already has an owner")

    def test_generate_rejects_invalid_value(self):
        alice = self._register_and_login("Alice", "alice@example.com")
        result = generate_coin(alice, -1, self.tokens, self.ledger)
        self.assertFalse(result.success)
        self.assertEqual(result.error_message, "Valid monetary value is required")

    def test_buy_available_coin_and_read_history(self):
        bob = self._register_and_login("Bob", "bob@example.com")
        coin_id = self._add_available_coin(75.0)

        self.assertTrue(buy_coin(bob, coin_id, self.tokens, self.ledger).success)

        history = coin_history(coin_id, self.projector)
        self.assertTrue(history.success)
        self.assertEqual(history.history[-1].type, OwnershipEventType.CURRENT)
        self.assertEqual(history.history[-1].owner_name, "Bob")

    def test_buy_and_history_of_unknown_coin(self):
        bob = self._register_and_login("Bob", "bob@example.com")
        self.assertEqual(
            buy_coin(bob, 999, self.tokens, self.ledger).error_message,
            "Coin not found",
        )
        self.assertFalse(coin_history(999, self.projector).success)

    def test_dashboard_totals_owned_coins(self):
        alice = self._register_and_login("Alice", "alice@example.com")
        generate_coin(alice, 100, self.tokens, self.ledger)
        generate_coin(alice, 250.5, self.tokens, self.ledger)

        result = client_dashboard(alice, self.tokens, self.store)

        self.assertTrue(result.success)
        self.assertEqual(result.client.name, "Alice")
        self.assertEqual(result.coin_count, 2)
        self.assertAlmostEqual(result.monetary_value, 350.5)
        self.assertEqual(len(result.transactions), 2)
        self.assertFalse(client_dashboard(None, self.tokens, self.store).success)

    def test_list_coins_is_cached_until_a_mutation(self):
        alice = self._register_and_login("Alice", "alice@example.com")
        generate_coin(alice, 100, self.tokens, self.ledger)

        first = list_coins(1, 15, self.store, self.cache)
        self.assertEqual(first.total, 1)

        # Written behind the ledger's back: the cached page stays stale.
        self._add_available_coin(10.0)
        self.assertIs(list_coins(1, 15, self.store, self.cache), first)

        generate_coin(alice, 100, self.tokens, self.ledger)
        refreshed = list_coins(1, 15, self.store, self.cache)
        self.assertEqual(refreshed.total, 3)
        self.assertEqual([c.id for c in refreshed.items], sorted(c.id for c in refreshed.items))

    def test_list_coins_normalizes_paging(self):
        page = list_coins(0, 500, self.store, self.cache)
        self.assertEqual(page.page, 1)
        self.assertEqual(page.page_size, 15)

    def test_list_transactions_filters(self):
        alice = self._register_and_login("Alice", "alice@example.com")
        bob = self._register_and_login("Bob", "bob@example.com")
        generate_coin(alice, 100, self.tokens, self.ledger)
        coin_id = self._add_available_coin(900.0)
        buy_coin(bob, coin_id, self.tokens, self.ledger)

        everything = list_transactions(1, 15, self.store, self.cache)
        self.assertEqual(everything.total, 2)
        # Newest first.
        self.assertEqual(everything.items[0].buyer_name, "Bob")
        self.assertIsNotNone(everything.items[0].coin_identity)

        by_buyer = list_transactions(
            1, 15, self.store, self.cache, TransactionFilters(buyer_name="ali")
        )
        self.assertEqual([tx.buyer_name for tx in by_buyer.items], ["Alice"])

        by_value = list_transactions(
            1, 15, self.store, self.cache, TransactionFilters(min_value=500)
        )
        self.assertEqual([tx.coin_id for tx in by_value.items], [coin_id])

        issuer = list_transactions(
            1, 15, self.store, self.cache, TransactionFilters(seller_name="Original Issuer")
        )
        self.assertEqual(issuer.total, 2)

        nobody = list_transactions(
            1, 15, self.store, self.cache, TransactionFilters(seller_name="Zed")
        )
        self.assertEqual(nobody.total, 0)

    def test_available_combinations(self):
        alice = self._register_and_login("Alice", "alice@example.com")
        generate_coin(alice, 100, self.tokens, self.ledger)
        availability = available_combinations(self.ledger)
        self.assertEqual((availability.used, availability.total), (1, 1000))


if __name__ == "__main__":
    unittest.main()
