"""Tests for RoleRepository: assignment rows, the legacy admin flag and concurrent grants."""

import unittest

from sqlalchemy import text

from staybook.models import Role, RoleAssignment
from staybook.repositories.errors import InvalidArgumentError, NotFoundError

from support import TempDatabase, count_rows, seed_user


class RoleRepositoryTestCase(unittest.TestCase):
    def setUp(self) -> None:
        self.db = TempDatabase()
        self.uow = self.db.uow()

    def tearDown(self) -> None:
        self.uow.dispose()
        self.db.close()

    def stored_admin_flag(self, user_id: int) -> bool:
        """is_admin as committed, read through a fresh unit of work."""
        with self.db.uow() as fresh:
            return bool(fresh.users.get_by_id(user_id).is_admin)


class TestAssignRole(RoleRepositoryTestCase):
    def test_assign_persists_row(self) -> None:
        user_id = seed_user(self.db, "staff@example.com")
        assignment = self.uow.roles.assign_role_to_user(user_id, Role.CLEANING_STAFF)
        self.assertIsNotNone(assignment.id)
        self.assertEqual(assignment.role, int(Role.CLEANING_STAFF))
        self.assertIsNotNone(assignment.assigned_date)
        self.uow.dispose()
        self.assertEqual(count_rows(self.db, RoleAssignment), 1)

    def test_assign_is_idempotent(self) -> None:
        user_id = seed_user(self.db, "partner@example.com")
        first = self.uow.roles.assign_role_to_user(user_id, Role.PARTNER)
        second = self.uow.roles.assign_role_to_user(user_id, "Partner")
        self.assertEqual(first.id, second.id)
        self.uow.dispose()
        self.assertEqual(count_rows(self.db, RoleAssignment), 1)

    def test_assign_admin_sets_legacy_flag(self) -> None:
        user_id = seed_user(self.db, "admin@example.com")
        self.uow.roles.assign_role_to_user(user_id, Role.ADMIN)
        self.uow.dispose()
        self.assertTrue(self.stored_admin_flag(user_id))

    def test_assign_other_role_leaves_flag_alone(self) -> None:
        user_id = seed_user(self.db, "flagged@example.com", is_admin=True)
        self.uow.roles.assign_role_to_user(user_id, Role.PARTNER)
        self.uow.dispose()
        self.assertTrue(self.stored_admin_flag(user_id))

    def test_assign_to_unknown_user_raises_not_found(self) -> None:
        with self.assertRaises(NotFoundError) as ctx:
            self.uow.roles.assign_role_to_user(404, Role.PARTNER)
        self.assertEqual(ctx.exception.entity_id, 404)

    def test_guest_cannot_be_assigned(self) -> None:
        user_id = seed_user(self.db, "guest@example.com")
        with self.assertRaises(InvalidArgumentError):
            self.uow.roles.assign_role_to_user(user_id, Role.GUEST)

    def test_invalid_role_value_is_rejected(self) -> None:
        user_id = seed_user(self.db, "guest@example.com")
        with self.assertRaises(InvalidArgumentError):
            self.uow.roles.assign_role_to_user(user_id, 55)
        with self.assertRaises(InvalidArgumentError):
            self.uow.roles.assign_role_to_user(user_id, "Janitor")

    def test_concurrent_grant_is_treated_as_success(self) -> None:
        user_id = seed_user(self.db, "race@example.com")
        with self.db.uow() as winner:
            winner.begin_transaction()
            winning = winner.roles.assign_role_to_user(user_id, Role.PARTNER)
            winner.commit_transaction()

        roles = self.uow.roles
        real_lookup = roles.get_role_assignment
        calls = []

        def stale_then_real(*args, **kwargs):
            # The first lookup runs before the winner's row is visible to this writer.
            calls.append(args)
            if len(calls) == 1:
                return None
            return real_lookup(*args, **kwargs)

        roles.get_role_assignment = stale_then_real
        self.uow.begin_transaction()
        assignment = roles.assign_role_to_user(user_id, Role.PARTNER)
        self.uow.commit_transaction()

        self.assertEqual(assignment.id, winning.id)
        self.assertEqual(len(calls), 2)
        self.uow.dispose()
        self.assertEqual(count_rows(self.db, RoleAssignment), 1)


class TestRemoveRole(RoleRepositoryTestCase):
    def test_remove_existing_role(self) -> None:
        user_id = seed_user(self.db, "partner@example.com", roles=(Role.PARTNER,))
        self.assertTrue(self.uow.roles.remove_role_from_user(user_id, Role.PARTNER))
        self.uow.dispose()
        self.assertEqual(count_rows(self.db, RoleAssignment), 0)

    def test_remove_missing_role_is_noop(self) -> None:
        user_id = seed_user(self.db, "plain@example.com")
        self.assertFalse(self.uow.roles.remove_role_from_user(user_id, Role.PARTNER))
        self.assertFalse(self.uow.roles.remove_role_from_user(999, Role.ADMIN))

    def test_remove_admin_row_clears_flag(self) -> None:
        user_id = seed_user(self.db, "admin@example.com", is_admin=True, roles=(Role.ADMIN,))
        self.assertTrue(self.uow.roles.remove_role_from_user(user_id, Role.ADMIN))
        self.uow.dispose()
        self.assertFalse(self.stored_admin_flag(user_id))

    def test_row_deleted_by_another_remover_reports_false(self) -> None:
        user_id = seed_user(self.db, "admin@example.com", is_admin=True, roles=(Role.ADMIN,))
        roles = self.uow.roles
        real_lookup = roles.get_role_assignment

        def lookup_then_vanish(*args, **kwargs):
            found = real_lookup(*args, **kwargs)
            # The row disappears between this lookup and the DELETE.
            roles.session.execute(
                text("DELETE FROM user_role_assignments WHERE id = :id"), {"id": found.id}
            )
            return found

        roles.get_role_assignment = lookup_then_vanish
        self.assertFalse(roles.remove_role_from_user(user_id, Role.ADMIN))
        self.assertTrue(self.uow.users.get_by_id(user_id).is_admin)

    def test_flag_without_row_cannot_be_removed_as_role(self) -> None:
        user_id = seed_user(self.db, "legacy@example.com", is_admin=True)
        self.assertFalse(self.uow.roles.remove_role_from_user(user_id, Role.ADMIN))
        self.assertTrue(self.uow.roles.user_has_role(user_id, Role.ADMIN))

    def test_revoke_legacy_admin(self) -> None:
        user_id = seed_user(self.db, "legacy@example.com", is_admin=True)
        self.assertTrue(self.uow.roles.revoke_legacy_admin(user_id))
        self.assertFalse(self.uow.roles.revoke_legacy_admin(user_id))
        self.assertFalse(self.uow.roles.revoke_legacy_admin(999))
        self.assertFalse(self.uow.roles.user_has_role(user_id, Role.ADMIN))


class TestRoleQueries(RoleRepositoryTestCase):
    def setUp(self) -> None:
        super().setUp()
        self.guest_id = seed_user(self.db, "guest@example.com")
        self.legacy_id = seed_user(self.db, "legacy@example.com", is_admin=True)
        self.admin_id = seed_user(self.db, "admin@example.com", is_admin=True, roles=(Role.ADMIN,))
        self.super_id = seed_user(self.db, "super@example.com", roles=(Role.SUPER_ADMIN, Role.PARTNER))
        self.staff_id = seed_user(self.db, "staff@example.com", roles=(Role.CLEANING_STAFF,))

    def test_every_user_holds_guest(self) -> None:
        for user_id in (self.guest_id, self.legacy_id, self.super_id):
            self.assertTrue(self.uow.roles.user_has_role(user_id, Role.GUEST))
            self.assertIn(Role.GUEST, self.uow.roles.get_user_roles(user_id))
        users = self.uow.roles.get_users_in_role(Role.GUEST)
        self.assertEqual(len(users), 5)

    def test_legacy_flag_counts_as_admin(self) -> None:
        self.assertTrue(self.uow.roles.user_has_role(self.legacy_id, Role.ADMIN))
        self.assertEqual(self.uow.roles.get_user_roles(self.legacy_id), [Role.GUEST, Role.ADMIN])
        self.assertEqual(self.uow.roles.get_user_highest_role(self.legacy_id), Role.ADMIN)

    def test_users_in_admin_role_include_flag_holders(self) -> None:
        ids = [u.id for u in self.uow.roles.get_users_in_role(Role.ADMIN)]
        self.assertEqual(ids, [self.legacy_id, self.admin_id])

    def test_users_in_role_by_row(self) -> None:
        ids = [u.id for u in self.uow.roles.get_users_in_role("CleaningStaff")]
        self.assertEqual(ids, [self.staff_id])
        self.assertEqual(self.uow.roles.get_users_in_role(Role.PARTNER)[0].id, self.super_id)

    def test_roles_are_sorted_and_highest_wins(self) -> None:
        self.assertEqual(
            self.uow.roles.get_user_roles(self.super_id),
            [Role.GUEST, Role.PARTNER, Role.SUPER_ADMIN],
        )
        self.assertEqual(self.uow.roles.get_user_highest_role(self.super_id), Role.SUPER_ADMIN)
        self.assertEqual(self.uow.roles.get_user_highest_role(self.guest_id), Role.GUEST)

    def test_has_role_is_exact_membership(self) -> None:
        self.assertFalse(self.uow.roles.user_has_role(self.super_id, Role.ADMIN))
        self.assertFalse(self.uow.roles.user_has_role(self.staff_id, Role.PARTNER))

    def test_unknown_user(self) -> None:
        self.assertEqual(self.uow.roles.get_user_roles(999), [])
        self.assertEqual(self.uow.roles.get_user_highest_role(999), Role.GUEST)
        self.assertTrue(self.uow.roles.user_has_role(999, Role.GUEST))
        self.assertFalse(self.uow.roles.user_has_role(999, Role.ADMIN))

    def test_get_user_role_assignments_ordered_by_role(self) -> None:
        rows = self.uow.roles.get_user_role_assignments(self.super_id)
        self.assertEqual([r.role for r in rows], [int(Role.PARTNER), int(Role.SUPER_ADMIN)])


class TestHighestRole(RoleRepositoryTestCase):
    def test_legacy_flag_short_circuits_to_admin(self) -> None:
        user_id = seed_user(self.db, "boss@example.com", is_admin=True, roles=(Role.SUPER_ADMIN,))
        self.assertEqual(self.uow.roles.get_user_highest_role(user_id), Role.ADMIN)
        self.assertIn(Role.SUPER_ADMIN, self.uow.roles.get_user_roles(user_id))

    def test_without_flag_the_highest_row_wins(self) -> None:
        user_id = seed_user(self.db, "super@example.com", roles=(Role.PARTNER, Role.SUPER_ADMIN))
        self.assertEqual(self.uow.roles.get_user_highest_role(user_id), Role.SUPER_ADMIN)


class TestPromotionScenario(RoleRepositoryTestCase):
    """A plain user is promoted to admin, gains staff duties, then loses admin again."""

    def test_promote_then_demote(self) -> None:
        user_id = seed_user(self.db, "seven@example.com", user_id=7)
        roles = self.uow.roles
        self.assertEqual(roles.get_user_roles(user_id), [Role.GUEST])

        roles.assign_role_to_user(user_id, Role.ADMIN)
        roles.assign_role_to_user(user_id, Role.CLEANING_STAFF)
        self.assertEqual(roles.get_user_roles(user_id), [Role.GUEST, Role.CLEANING_STAFF, Role.ADMIN])
        self.assertEqual(roles.get_user_highest_role(user_id), Role.ADMIN)
        self.assertTrue(self.uow.users.get_by_id(user_id).is_admin)

        self.assertTrue(roles.remove_role_from_user(user_id, Role.ADMIN))
        self.assertEqual(roles.get_user_roles(user_id), [Role.GUEST, Role.CLEANING_STAFF])
        self.assertEqual(roles.get_user_highest_role(user_id), Role.CLEANING_STAFF)
        self.assertFalse(roles.user_has_role(user_id, Role.ADMIN))

        self.uow.dispose()
        self.assertFalse(self.stored_admin_flag(user_id))
        self.assertEqual(count_rows(self.db, RoleAssignment), 1)

    def test_admin_grant_and_revoke_for_user_seven(self) -> None:
        user_id = seed_user(self.db, "seven@example.com", user_id=7)
        roles = self.uow.roles

        assignment = roles.assign_role_to_user(7, Role.ADMIN)
        self.assertEqual(assignment.user_id, 7)
        self.assertEqual(assignment.role, int(Role.ADMIN))
        self.assertEqual(roles.get_role_assignment(7, Role.ADMIN).id, assignment.id)
        self.assertTrue(self.stored_admin_flag(user_id))
        self.assertEqual(roles.get_user_highest_role(7), Role.ADMIN)

        self.assertTrue(roles.remove_role_from_user(7, Role.ADMIN))
        self.assertFalse(self.stored_admin_flag(user_id))
        self.assertIsNone(roles.get_role_assignment(7, Role.ADMIN))
        self.assertEqual(roles.get_user_highest_role(7), Role.GUEST)
        self.assertEqual(count_rows(self.db, RoleAssignment), 0)


if __name__ == "__main__":
    unittest.main()
