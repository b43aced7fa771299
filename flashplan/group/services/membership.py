"""Business logic for group membership and roles."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Callable

from firebase_admin import firestore

from flashplan.constants import (
    GROUP_LIST_LIMIT,
    DEFAULT_THEME_KEY,
    GROUPS_COLLECTION,
    INVITE_CODE_ATTEMPTS,
    MEMBERS_COLLECTION,
    ROLE_ADMIN,
    ROLE_MEMBER,
    ROLE_OWNER,
    ROLE_PENDING,
    THEME_KEYS,
)
from flashplan.core import Subscription, store_call, subscribe
from flashplan.errors import (
    CannotRemoveOwnerError,
    InvalidCodeError,
    NotFoundError,
    NotMemberError,
    ValidationError,
)
from flashplan.group.models import Group, Member
from flashplan.user.services import UsersService
from flashplan.utils import generate_invite_code, normalize_invite_code

if TYPE_CHECKING:
    from google.cloud.firestore_v1.client import Client
    from google.cloud.firestore_v1.collection import CollectionReference
    from google.cloud.firestore_v1.document import DocumentReference

logger = logging.getLogger(__name__)


class MembershipService:
    """Applies role transitions and admission to groups.

    Every transition is idempotent: applying it to a user already in the
    target state changes nothing. Writes touching more than one document go
    through a single write batch. Permission checks are the caller's job.
    """

    def __init__(self, db: Client, users: UsersService | None = None) -> None:
        self.db = db
        self.users = users or UsersService(db)

    # References

    def group_ref(self, group_id: str) -> DocumentReference:
        return self.db.collection(GROUPS_COLLECTION).document(group_id)

    def members_ref(self, group_id: str) -> CollectionReference:
        return self.group_ref(group_id).collection(MEMBERS_COLLECTION)

    def member_ref(self, group_id: str, user_id: str) -> DocumentReference:
        return self.members_ref(group_id).document(user_id)

    # Reads

    def get_group(self, group_id: str) -> Group:
        """Fetch a group.

        Raises:
            NotFoundError: If the group does not exist.
        """
        with store_call("loading group"):
            doc = self.group_ref(group_id).get()
        if not doc.exists:
            raise NotFoundError("Group not found.")
        return Group.from_snapshot(doc)

    def get_member(self, group_id: str, user_id: str) -> Member | None:
        with store_call("loading member"):
            doc = self.member_ref(group_id, user_id).get()
        return Member.from_snapshot(doc) if doc.exists else None

    def get_members(self, group_id: str) -> list[Member]:
        with store_call("loading members"):
            docs = list(self.members_ref(group_id).stream())
        return [Member.from_snapshot(doc) for doc in docs if doc.exists]

    def groups_for_user(
        self, user_id: str, limit: int = GROUP_LIST_LIMIT
    ) -> list[Group]:
        """Fetch the groups ``user_id`` is a member of."""
        with store_call("listing groups"):
            docs = list(self._groups_query(user_id, limit).stream())
        return [Group.from_snapshot(doc) for doc in docs if doc.exists]

    def find_group_by_code(self, code: str) -> Group | None:
        """Look up the group whose current invite code is ``code``."""
        normalized = normalize_invite_code(code)
        if not normalized:
            return None
        query = (
            self.db.collection(GROUPS_COLLECTION)
            .where(filter=firestore.FieldFilter("inviteCode", "==", normalized))
            .limit(1)
        )
        with store_call("looking up invite code"):
            docs = [doc for doc in query.stream() if doc.exists]
        return Group.from_snapshot(docs[0]) if docs else None

    def _groups_query(self, user_id: str, limit: int) -> Any:
        return (
            self.db.collection(GROUPS_COLLECTION)
            .where(filter=firestore.FieldFilter("memberIds", "array_contains", user_id))
            .limit(limit)
        )

    # Subscriptions

    def subscribe_group(
        self, group_id: str, callback: Callable[[Group | None], None]
    ) -> Subscription:
        """Listen to a group document; ``callback`` gets None once it is gone."""

        def on_snapshot(groups: list[Group]) -> None:
            callback(groups[0] if groups else None)

        return subscribe(self.group_ref(group_id), on_snapshot, Group.from_snapshot)

    def subscribe_members(
        self, group_id: str, callback: Callable[[list[Member]], None]
    ) -> Subscription:
        return subscribe(self.members_ref(group_id), callback, Member.from_snapshot)

    def subscribe_user_groups(
        self,
        user_id: str,
        callback: Callable[[list[Group]], None],
        limit: int = GROUP_LIST_LIMIT,
    ) -> Subscription:
        return subscribe(
            self._groups_query(user_id, limit), callback, Group.from_snapshot
        )

    # Transitions

    def create_group(
        self, name: str, creator_id: str, creator_display_name: str
    ) -> str:
        """Create a group owned by ``creator_id`` and return its id.

        Raises:
            ValidationError: If the name is blank.
        """
        name = (name or "").strip()
        if not name:
            raise ValidationError("Group name is required.")

        with store_call("creating group"):
            invite_code = self._fresh_invite_code()
            group_ref = self.db.collection(GROUPS_COLLECTION).document()
            batch = self.db.batch()
            batch.set(
                group_ref,
                {
                    "name": name,
                    "createdBy": creator_id,
                    "createdAt": firestore.SERVER_TIMESTAMP,
                    "memberIds": [creator_id],
                    "admins": [creator_id],
                    "joinRequests": [],
                    "invites": [],
                    "inviteCode": invite_code,
                    "themeKey": DEFAULT_THEME_KEY,
                },
            )
            batch.set(
                group_ref.collection(MEMBERS_COLLECTION).document(creator_id),
                self._member_data(creator_display_name, ROLE_OWNER),
            )
            self.users.link_group(batch, creator_id, group_ref.id, ROLE_OWNER, name)
            batch.commit()

        logger.info(f"User {creator_id} created group {group_ref.id}")
        return group_ref.id

    def request_to_join(self, group_id: str, user_id: str, display_name: str) -> None:
        """Move a non-member to pending.

        Raises:
            NotFoundError: If the group does not exist.
        """
        group = self.get_group(group_id)
        if group.is_member(user_id) or group.is_pending(user_id):
            return

        with store_call("requesting to join"):
            batch = self.db.batch()
            batch.update(
                self.group_ref(group_id),
                {"joinRequests": firestore.ArrayUnion([user_id])},
            )
            batch.set(
                self.member_ref(group_id, user_id),
                self._member_data(display_name, ROLE_PENDING),
                merge=True,
            )
            batch.commit()
        logger.info(f"User {user_id} requested to join group {group_id}")

    def approve_request(self, group_id: str, user_id: str, display_name: str) -> None:
        """Move a pending user to member.

        Raises:
            NotFoundError: If the group does not exist.
            NotMemberError: If the user has no pending request.
        """
        group = self.get_group(group_id)
        if group.is_member(user_id) and not group.is_pending(user_id):
            return
        if not group.is_pending(user_id) and not group.is_member(user_id):
            raise NotMemberError("No pending request for this user.")

        self._admit(group, user_id, display_name)
        logger.info(f"Approved user {user_id} into group {group_id}")

    def deny_request(self, group_id: str, user_id: str) -> None:
        """Drop a pending request. Members are never touched."""
        group = self.get_group(group_id)
        member = self.get_member(group_id, user_id)
        member_pending = member is not None and member.is_pending
        if not group.is_pending(user_id) and not member_pending:
            return

        with store_call("denying join request"):
            batch = self.db.batch()
            batch.update(
                self.group_ref(group_id),
                {"joinRequests": firestore.ArrayRemove([user_id])},
            )
            if member is None or member_pending:
                batch.delete(self.member_ref(group_id, user_id))
            batch.commit()
        logger.info(f"Denied join request from {user_id} for group {group_id}")

    def join_with_code(self, code: str, user_id: str, display_name: str) -> str:
        """Join the group whose current invite code matches ``code``.

        Returns the group id.

        Raises:
            InvalidCodeError: If no group uses the code.
        """
        group = self.find_group_by_code(code)
        if group is None:
            raise InvalidCodeError()
        if group.is_member(user_id) and not group.is_pending(user_id):
            return group.id

        self._admit(group, user_id, display_name)
        logger.info(f"User {user_id} joined group {group.id} with an invite code")
        return group.id

    def promote(self, group_id: str, user_id: str) -> None:
        """Make a member an admin. The owner is left unchanged."""
        self._set_admin(group_id, user_id, True)

    def demote(self, group_id: str, user_id: str) -> None:
        """Make an admin a plain member. The owner is left unchanged."""
        self._set_admin(group_id, user_id, False)

    def remove(self, group_id: str, user_id: str) -> None:
        """Remove a user from the group whatever their role.

        Raises:
            NotFoundError: If the group does not exist.
            CannotRemoveOwnerError: If the user owns the group.
        """
        group = self.get_group(group_id)
        member = self.get_member(group_id, user_id)
        if user_id == group.created_by or (member is not None and member.is_owner):
            raise CannotRemoveOwnerError()

        with store_call("removing member"):
            batch = self.db.batch()
            batch.update(
                self.group_ref(group_id),
                {
                    "memberIds": firestore.ArrayRemove([user_id]),
                    "admins": firestore.ArrayRemove([user_id]),
                    "joinRequests": firestore.ArrayRemove([user_id]),
                },
            )
            if member is not None:
                batch.delete(self.member_ref(group_id, user_id))
            batch.commit()

        self.users.unlink_group(user_id, group_id)
        logger.info(f"Removed user {user_id} from group {group_id}")

    def leave(self, group_id: str, user_id: str) -> None:
        """Remove yourself from a group. Owners cannot leave."""
        self.remove(group_id, user_id)

    def regenerate_invite_code(self, group_id: str) -> str:
        """Replace the group's invite code; the old one stops working at once."""
        self.get_group(group_id)
        with store_call("regenerating invite code"):
            code = self._fresh_invite_code()
            self.group_ref(group_id).update({"inviteCode": code})
        logger.info(f"Regenerated invite code for group {group_id}")
        return code

    def invite_user(self, group_id: str, user_id: str) -> None:
        """Record a direct invitation for ``user_id``."""
        self.get_group(group_id)
        with store_call("inviting user"):
            self.group_ref(group_id).update(
                {"invites": firestore.ArrayUnion([user_id])}
            )

    def set_theme(self, group_id: str, theme_key: str) -> None:
        """Change the group's theme.

        Raises:
            ValidationError: If ``theme_key`` is not a known theme.
        """
        if theme_key not in THEME_KEYS:
            raise ValidationError(f"Unknown theme: {theme_key}.")
        self.get_group(group_id)
        with store_call("updating theme"):
            self.group_ref(group_id).update({"themeKey": theme_key})

    # Helpers

    @staticmethod
    def _member_data(display_name: str, role: str) -> dict[str, Any]:
        return {
            "name": display_name,
            "joinedAt": firestore.SERVER_TIMESTAMP,
            "role": role,
        }

    def _admit(self, group: Group, user_id: str, display_name: str) -> None:
        """Make ``user_id`` a member, clearing any pending request, atomically."""
        with store_call("admitting member"):
            batch = self.db.batch()
            batch.update(
                self.group_ref(group.id),
                {
                    "joinRequests": firestore.ArrayRemove([user_id]),
                    "memberIds": firestore.ArrayUnion([user_id]),
                },
            )
            batch.set(
                self.member_ref(group.id, user_id),
                self._member_data(display_name, ROLE_MEMBER),
                merge=True,
            )
            self.users.link_group(batch, user_id, group.id, ROLE_MEMBER, group.name)
            batch.commit()

    def _set_admin(self, group_id: str, user_id: str, make_admin: bool) -> None:
        group = self.get_group(group_id)
        member = self.get_member(group_id, user_id)
        if member is None or member.is_pending:
            raise NotMemberError()
        if member.is_owner or user_id == group.created_by:
            logger.info(f"Ignoring role change for owner {user_id} of {group_id}")
            return

        role = ROLE_ADMIN if make_admin else ROLE_MEMBER
        admins_update = (
            firestore.ArrayUnion([user_id])
            if make_admin
            else firestore.ArrayRemove([user_id])
        )
        with store_call("changing role"):
            batch = self.db.batch()
            batch.update(self.group_ref(group_id), {"admins": admins_update})
            batch.set(self.member_ref(group_id, user_id), {"role": role}, merge=True)
            batch.commit()
        logger.info(f"Set role of {user_id} in group {group_id} to {role}")

    def _fresh_invite_code(self) -> str:
        """Draw a code not currently used by another group.

        Uniqueness is best effort: a bounded number of lookups, and two
        concurrent draws of the same code are not detected.
        """
        code = generate_invite_code()
        for _ in range(INVITE_CODE_ATTEMPTS):
            if self.find_group_by_code(code) is None:
                return code
            logger.warning(f"Invite code collision on {code}, drawing again")
            code = generate_invite_code()
        return code
