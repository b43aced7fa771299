"""Service layer for user profile documents."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, cast

from firebase_admin import firestore

from flashplan.constants import USER_GROUPS_COLLECTION, USERS_COLLECTION
from flashplan.core import store_call

if TYPE_CHECKING:
    from google.cloud.firestore_v1.batch import WriteBatch
    from google.cloud.firestore_v1.client import Client
    from google.cloud.firestore_v1.document import DocumentReference

    from flashplan.core.types import FirestoreDocument

logger = logging.getLogger(__name__)


class UsersService:
    """Keeps a minimal profile per user so one user can be linked to many groups."""

    def __init__(self, db: Client) -> None:
        self.db = db

    def user_ref(self, uid: str) -> DocumentReference:
        return self.db.collection(USERS_COLLECTION).document(uid)

    def user_group_ref(self, uid: str, group_id: str) -> DocumentReference:
        return (
            self.user_ref(uid).collection(USER_GROUPS_COLLECTION).document(group_id)
        )

    def ensure_user_document(
        self, uid: str, display_name: str | None, email: str | None
    ) -> None:
        """Create or refresh the profile document for ``uid``."""
        ref = self.user_ref(uid)
        with store_call("ensuring user document"):
            is_new_user = not ref.get().exists
            data: dict[str, Any] = {"updatedAt": firestore.SERVER_TIMESTAMP}
            if is_new_user:
                data["createdAt"] = firestore.SERVER_TIMESTAMP
            if display_name:
                data["displayName"] = display_name
            if email:
                data["email"] = email
            ref.set(data, merge=True)
        if is_new_user:
            logger.info(f"Created profile for user {uid}")

    def get_user(self, uid: str) -> FirestoreDocument | None:
        """Fetch a profile document, or None if it does not exist."""
        with store_call("loading user"):
            doc = self.user_ref(uid).get()
        if not doc.exists:
            return None
        data = doc.to_dict() or {}
        data["id"] = doc.id
        return cast("FirestoreDocument", data)

    def link_group(
        self,
        batch: WriteBatch,
        uid: str,
        group_id: str,
        role: str,
        group_name: str | None,
    ) -> None:
        """Queue a write linking ``group_id`` into the user's profile."""
        data: dict[str, Any] = {"role": role, "linkedAt": firestore.SERVER_TIMESTAMP}
        if group_name:
            data["groupName"] = group_name
        batch.set(self.user_group_ref(uid, group_id), data, merge=True)

    def unlink_group(self, uid: str, group_id: str) -> bool:
        """Remove a group link from the user's profile.

        Best effort: failures are logged and reported as False.
        """
        try:
            self.user_group_ref(uid, group_id).delete()
            return True
        except Exception as e:
            logger.warning(f"Error unlinking group {group_id} from user {uid}: {e}")
            return False
