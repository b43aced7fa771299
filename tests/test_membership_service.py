"""Tests for MembershipService."""

from __future__ import annotations

import unittest
from unittest.mock import patch

from google.api_core import exceptions as google_exceptions

from flashplan.errors import (
    CannotRemoveOwnerError,
    InvalidCodeError,
    NotFoundError,
    NotMemberError,
    StoreUnavailableError,
    ValidationError,
)
from flashplan.group.services import MembershipService
from tests.conftest import (
    FailingBatch,
    MockArrayRemove,
    MockArrayUnion,
    make_mock_db,
)

OWNER_ID = "owner"
BOB_ID = "bob"
CAROL_ID = "carol"


class MembershipServiceTestCase(unittest.TestCase):
    def setUp(self) -> None:
        self.db = make_mock_db()
        patchers = [
            patch("firebase_admin.firestore.ArrayUnion", MockArrayUnion),
            patch("firebase_admin.firestore.ArrayRemove", MockArrayRemove),
        ]
        for p in patchers:
            p.start()
            self.addCleanup(p.stop)

        self.service = MembershipService(self.db)
        self.group_id = self.service.create_group("Hikers", OWNER_ID, "Olive")

    def _group(self):
        return self.service.get_group(self.group_id)

    def _linked(self, uid: str) -> bool:
        return self.service.users.user_group_ref(uid, self.group_id).get().exists

    def _make_member(self, uid: str, name: str = "Bob") -> None:
        self.service.request_to_join(self.group_id, uid, name)
        self.service.approve_request(self.group_id, uid, name)


class TestCreateGroup(MembershipServiceTestCase):
    def test_creator_is_owner_admin_and_member(self) -> None:
        group = self._group()

        self.assertEqual(group.name, "Hikers")
        self.assertEqual(group.created_by, OWNER_ID)
        self.assertEqual(group.member_ids, [OWNER_ID])
        self.assertEqual(group.admins, [OWNER_ID])
        self.assertEqual(group.join_requests, [])
        self.assertEqual(group.theme_key, "default")

        member = self.service.get_member(self.group_id, OWNER_ID)
        self.assertIsNotNone(member)
        if member:
            self.assertTrue(member.is_owner)
            self.assertEqual(member.name, "Olive")
        self.assertTrue(self._linked(OWNER_ID))

    def test_invite_code_is_six_uppercase_characters(self) -> None:
        code = self._group().invite_code

        self.assertIsNotNone(code)
        if code:
            self.assertEqual(len(code), 6)
            self.assertEqual(code, code.upper())
            self.assertTrue(code.isalnum())

    def test_blank_name_is_rejected(self) -> None:
        with self.assertRaises(ValidationError):
            self.service.create_group("   ", OWNER_ID, "Olive")

    def test_missing_group_raises_not_found(self) -> None:
        with self.assertRaises(NotFoundError):
            self.service.get_group("nope")

    def test_groups_for_user(self) -> None:
        self.assertEqual(
            [g.id for g in self.service.groups_for_user(OWNER_ID)], [self.group_id]
        )
        self.assertEqual(self.service.groups_for_user(BOB_ID), [])

        self._make_member(BOB_ID)
        self.assertEqual(
            [g.id for g in self.service.groups_for_user(BOB_ID)], [self.group_id]
        )


class TestJoinRequests(MembershipServiceTestCase):
    def test_request_makes_user_pending_not_member(self) -> None:
        self.service.request_to_join(self.group_id, BOB_ID, "Bob")

        group = self._group()
        self.assertTrue(group.is_pending(BOB_ID))
        self.assertFalse(group.is_member(BOB_ID))
        member = self.service.get_member(self.group_id, BOB_ID)
        self.assertIsNotNone(member)
        if member:
            self.assertTrue(member.is_pending)

    def test_request_is_idempotent(self) -> None:
        self.service.request_to_join(self.group_id, BOB_ID, "Bob")
        self.service.request_to_join(self.group_id, BOB_ID, "Bob")

        self.assertEqual(self._group().join_requests, [BOB_ID])

    def test_request_from_member_changes_nothing(self) -> None:
        self.service.request_to_join(self.group_id, OWNER_ID, "Olive")

        group = self._group()
        self.assertEqual(group.join_requests, [])
        self.assertEqual(group.member_ids, [OWNER_ID])

    def test_approve_moves_pending_to_member(self) -> None:
        self.service.request_to_join(self.group_id, BOB_ID, "Bob")
        self.service.approve_request(self.group_id, BOB_ID, "Bob")

        group = self._group()
        self.assertTrue(group.is_member(BOB_ID))
        self.assertFalse(group.is_pending(BOB_ID))
        member = self.service.get_member(self.group_id, BOB_ID)
        self.assertIsNotNone(member)
        if member:
            self.assertEqual(member.role, "member")
        self.assertTrue(self._linked(BOB_ID))

    def test_approve_twice_is_a_no_op(self) -> None:
        self._make_member(BOB_ID)
        self.service.approve_request(self.group_id, BOB_ID, "Bob")

        self.assertEqual(self._group().member_ids, [OWNER_ID, BOB_ID])

    def test_approve_without_request_raises_not_member(self) -> None:
        with self.assertRaises(NotMemberError):
            self.service.approve_request(self.group_id, CAROL_ID, "Carol")

    def test_deny_clears_request_and_record(self) -> None:
        self.service.request_to_join(self.group_id, BOB_ID, "Bob")
        self.service.deny_request(self.group_id, BOB_ID)

        group = self._group()
        self.assertFalse(group.is_pending(BOB_ID))
        self.assertFalse(group.is_member(BOB_ID))
        self.assertIsNone(self.service.get_member(self.group_id, BOB_ID))

    def test_deny_never_removes_a_member(self) -> None:
        self._make_member(BOB_ID)
        self.service.deny_request(self.group_id, BOB_ID)

        self.assertTrue(self._group().is_member(BOB_ID))
        self.assertIsNotNone(self.service.get_member(self.group_id, BOB_ID))

    def test_deny_without_request_is_a_no_op(self) -> None:
        self.service.deny_request(self.group_id, CAROL_ID)

        self.assertEqual(self._group().join_requests, [])

    def test_failed_commit_leaves_group_unchanged(self) -> None:
        self.db.batch = lambda: FailingBatch(
            self.db, google_exceptions.ServiceUnavailable("backend down")
        )

        with self.assertRaises(StoreUnavailableError):
            self.service.request_to_join(self.group_id, BOB_ID, "Bob")

        self.assertEqual(self._group().join_requests, [])
        self.assertIsNone(self.service.get_member(self.group_id, BOB_ID))


class TestInviteCodes(MembershipServiceTestCase):
    def test_join_with_code_is_case_and_space_insensitive(self) -> None:
        code = self._group().invite_code or ""

        joined = self.service.join_with_code(f"  {code.lower()} ", BOB_ID, "Bob")

        self.assertEqual(joined, self.group_id)
        self.assertTrue(self._group().is_member(BOB_ID))
        self.assertTrue(self._linked(BOB_ID))

    def test_join_with_code_twice_is_a_no_op(self) -> None:
        code = self._group().invite_code or ""
        self.service.join_with_code(code, BOB_ID, "Bob")
        self.service.join_with_code(code, BOB_ID, "Bob")

        self.assertEqual(self._group().member_ids, [OWNER_ID, BOB_ID])

    def test_join_with_code_clears_pending_request(self) -> None:
        self.service.request_to_join(self.group_id, BOB_ID, "Bob")
        self.service.join_with_code(self._group().invite_code or "", BOB_ID, "Bob")

        group = self._group()
        self.assertTrue(group.is_member(BOB_ID))
        self.assertFalse(group.is_pending(BOB_ID))

    def test_unknown_code_is_rejected(self) -> None:
        with self.assertRaises(InvalidCodeError):
            self.service.join_with_code("ZZZZZZ-not-a-code", BOB_ID, "Bob")
        with self.assertRaises(InvalidCodeError):
            self.service.join_with_code("   ", BOB_ID, "Bob")

    def test_regenerated_code_retires_old_one(self) -> None:
        old_code = self._group().invite_code or ""

        new_code = self.service.regenerate_invite_code(self.group_id)

        self.assertNotEqual(new_code, old_code)
        self.assertEqual(self._group().invite_code, new_code)
        with self.assertRaises(InvalidCodeError):
            self.service.join_with_code(old_code, BOB_ID, "Bob")
        joined = self.service.join_with_code(new_code, BOB_ID, "Bob")
        self.assertEqual(joined, self.group_id)


class TestRoles(MembershipServiceTestCase):
    def test_promote_and_demote(self) -> None:
        self._make_member(BOB_ID)

        self.service.promote(self.group_id, BOB_ID)
        self.assertTrue(self._group().is_admin(BOB_ID))
        member = self.service.get_member(self.group_id, BOB_ID)
        self.assertEqual(member.role if member else None, "admin")

        self.service.demote(self.group_id, BOB_ID)
        self.assertFalse(self._group().is_admin(BOB_ID))
        self.assertTrue(self._group().is_member(BOB_ID))
        member = self.service.get_member(self.group_id, BOB_ID)
        self.assertEqual(member.role if member else None, "member")

    def test_promote_is_idempotent(self) -> None:
        self._make_member(BOB_ID)
        self.service.promote(self.group_id, BOB_ID)
        self.service.promote(self.group_id, BOB_ID)

        self.assertEqual(self._group().admins, [OWNER_ID, BOB_ID])

    def test_owner_role_never_changes(self) -> None:
        self.service.demote(self.group_id, OWNER_ID)
        self.service.promote(self.group_id, OWNER_ID)

        self.assertEqual(self._group().admins, [OWNER_ID])
        member = self.service.get_member(self.group_id, OWNER_ID)
        self.assertTrue(member is not None and member.is_owner)

    def test_promote_non_member_raises(self) -> None:
        with self.assertRaises(NotMemberError):
            self.service.promote(self.group_id, CAROL_ID)

    def test_promote_pending_user_raises(self) -> None:
        self.service.request_to_join(self.group_id, CAROL_ID, "Carol")
        with self.assertRaises(NotMemberError):
            self.service.promote(self.group_id, CAROL_ID)


class TestRemoval(MembershipServiceTestCase):
    def test_remove_member_clears_every_trace(self) -> None:
        self._make_member(BOB_ID)
        self.service.promote(self.group_id, BOB_ID)

        self.service.remove(self.group_id, BOB_ID)

        group = self._group()
        self.assertFalse(group.is_member(BOB_ID))
        self.assertFalse(group.is_admin(BOB_ID))
        self.assertIsNone(self.service.get_member(self.group_id, BOB_ID))
        self.assertFalse(self._linked(BOB_ID))

    def test_remove_pending_user_clears_request(self) -> None:
        self.service.request_to_join(self.group_id, CAROL_ID, "Carol")

        self.service.remove(self.group_id, CAROL_ID)

        self.assertFalse(self._group().is_pending(CAROL_ID))

    def test_member_can_leave(self) -> None:
        self._make_member(BOB_ID)

        self.service.leave(self.group_id, BOB_ID)

        self.assertEqual(self._group().member_ids, [OWNER_ID])

    def test_owner_cannot_be_removed_or_leave(self) -> None:
        with self.assertRaises(CannotRemoveOwnerError):
            self.service.remove(self.group_id, OWNER_ID)
        with self.assertRaises(CannotRemoveOwnerError):
            self.service.leave(self.group_id, OWNER_ID)

        self.assertTrue(self._group().is_member(OWNER_ID))

    def test_unlink_failure_does_not_fail_removal(self) -> None:
        self._make_member(BOB_ID)

        with patch.object(
            self.service.users, "user_group_ref", side_effect=RuntimeError("boom")
        ):
            self.service.remove(self.group_id, BOB_ID)

        self.assertFalse(self._group().is_member(BOB_ID))


class TestGroupSettings(MembershipServiceTestCase):
    def test_invite_user(self) -> None:
        self.service.invite_user(self.group_id, CAROL_ID)
        self.service.invite_user(self.group_id, CAROL_ID)

        self.assertEqual(self._group().invites, [CAROL_ID])

    def test_set_theme(self) -> None:
        self.service.set_theme(self.group_id, "ocean")

        self.assertEqual(self._group().theme_key, "ocean")

    def test_unknown_theme_is_rejected(self) -> None:
        with self.assertRaises(ValidationError):
            self.service.set_theme(self.group_id, "neon")


if __name__ == "__main__":
    unittest.main()
