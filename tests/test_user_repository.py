"""Tests for UserRepository lookups."""

import unittest

from staybook.models import User
from staybook.repositories.errors import PersistenceError
from staybook.repositories.users import UserRepository

from support import TempDatabase, seed_booking, seed_user


class TestUserRepository(unittest.TestCase):
    def setUp(self) -> None:
        self.db = TempDatabase()
        self.alice_id = seed_user(self.db, "Alice@Example.com", username="alice")
        self.bob_id = seed_user(self.db, "bob@example.com")
        seed_booking(self.db, self.alice_id, "RSV-1001")
        seed_booking(self.db, self.alice_id, "RSV-1002")
        self.store = self.db.store()
        self.repo = UserRepository(self.store)

    def tearDown(self) -> None:
        self.store.close()
        self.db.close()

    def test_get_by_email_is_case_insensitive(self) -> None:
        self.assertEqual(self.repo.get_by_email("alice@example.COM").id, self.alice_id)
        self.assertEqual(self.repo.get_by_email("  bob@example.com ").id, self.bob_id)
        self.assertIsNone(self.repo.get_by_email("carol@example.com"))

    def test_blank_input_returns_none_or_false(self) -> None:
        self.assertIsNone(self.repo.get_by_email(""))
        self.assertIsNone(self.repo.get_by_email(None))
        self.assertIsNone(self.repo.get_by_username("   "))
        self.assertIsNone(self.repo.validate_credentials("bob@example.com", ""))
        self.assertIsNone(self.repo.find_by_reservation("", "RSV-1001"))
        self.assertFalse(self.repo.email_exists(""))
        self.assertFalse(self.repo.username_exists(None))

    def test_get_by_username(self) -> None:
        self.assertEqual(self.repo.get_by_username("alice").id, self.alice_id)
        self.assertIsNone(self.repo.get_by_username("bob"))

    def test_get_with_bookings(self) -> None:
        user = self.repo.get_with_bookings(self.alice_id)
        self.assertEqual([b.reservation_number for b in user.bookings], ["RSV-1001", "RSV-1002"])
        self.assertIsNone(self.repo.get_with_bookings(99))

    def test_get_with_reviews(self) -> None:
        self.assertEqual(self.repo.get_with_reviews(self.bob_id).reviews, [])

    def test_validate_credentials_matches_stored_hash_exactly(self) -> None:
        stored = self.repo.get_by_id(self.bob_id).password_hash
        self.assertEqual(self.repo.validate_credentials("BOB@example.com", stored).id, self.bob_id)
        self.assertIsNone(self.repo.validate_credentials("bob@example.com", stored + "x"))

    def test_find_by_reservation(self) -> None:
        self.assertEqual(self.repo.find_by_reservation("alice@example.com", "RSV-1002").id, self.alice_id)
        self.assertIsNone(self.repo.find_by_reservation("bob@example.com", "RSV-1002"))
        self.assertIsNone(self.repo.find_by_reservation("alice@example.com", "RSV-9999"))

    def test_email_and_username_exists(self) -> None:
        self.assertTrue(self.repo.email_exists("ALICE@example.com"))
        self.assertFalse(self.repo.email_exists("zoe@example.com"))
        self.assertTrue(self.repo.username_exists("alice"))
        self.assertFalse(self.repo.username_exists("zoe"))

    def test_email_unique_regardless_of_case(self) -> None:
        self.repo.add(User(email="ALICE@example.com", password_hash="h"))
        with self.assertRaises(PersistenceError):
            self.store.save_changes()
        self.repo.add(User(email="carol@example.com", password_hash="h"))
        self.assertEqual(self.store.save_changes(), 1)


if __name__ == "__main__":
    unittest.main()
