"""Service layer for plans and votes."""

from __future__ import annotations

import datetime
import logging
from typing import TYPE_CHECKING, Callable, Iterable

from firebase_admin import firestore

from flashplan.constants import PLAN_LIST_LIMIT, PLANS_COLLECTION, VOTES_COLLECTION
from flashplan.core import Subscription, store_call, subscribe
from flashplan.errors import NotFoundError, ValidationError

from .models import Plan, PlanVote, Vote, VoteTally

if TYPE_CHECKING:
    from google.cloud.firestore_v1.client import Client
    from google.cloud.firestore_v1.collection import CollectionReference
    from google.cloud.firestore_v1.document import DocumentReference

logger = logging.getLogger(__name__)


def tally(votes: Iterable[PlanVote]) -> VoteTally:
    """Count yes, maybe and no votes."""
    counts = {Vote.YES: 0, Vote.MAYBE: 0, Vote.NO: 0}
    for vote in votes:
        counts[vote.vote] += 1
    return VoteTally(yes=counts[Vote.YES], maybe=counts[Vote.MAYBE], no=counts[Vote.NO])


def my_vote(votes: Iterable[PlanVote], user_id: str) -> Vote | None:
    """Return the vote cast by ``user_id``, if any."""
    for vote in votes:
        if vote.id == user_id:
            return vote.vote
    return None


class PlanService:
    """Handles plan documents and their votes."""

    def __init__(self, db: Client) -> None:
        self.db = db

    def plan_ref(self, plan_id: str) -> DocumentReference:
        return self.db.collection(PLANS_COLLECTION).document(plan_id)

    def votes_ref(self, plan_id: str) -> CollectionReference:
        return self.plan_ref(plan_id).collection(VOTES_COLLECTION)

    def _plans_query(self, limit: int):
        return (
            self.db.collection(PLANS_COLLECTION)
            .order_by("createdAt", direction=firestore.Query.DESCENDING)
            .limit(limit)
        )

    def create_plan(
        self,
        title: str,
        when: datetime.datetime,
        location: str,
        notes: str,
        creator_id: str,
    ) -> str:
        """Create a plan and return its id.

        Raises:
            ValidationError: If the title is blank or ``when`` is not a datetime.
        """
        title = (title or "").strip()
        if not title:
            raise ValidationError("Plan title is required.")
        if not isinstance(when, datetime.datetime):
            raise ValidationError("Plan time must be a date and time.")

        plan_ref = self.db.collection(PLANS_COLLECTION).document()
        with store_call("creating plan"):
            plan_ref.set(
                {
                    "title": title,
                    "when": when,
                    "location": (location or "").strip(),
                    "notes": notes or "",
                    "createdBy": creator_id,
                    "createdAt": firestore.SERVER_TIMESTAMP,
                }
            )
        logger.info(f"User {creator_id} created plan {plan_ref.id}")
        return plan_ref.id

    def get_plan(self, plan_id: str) -> Plan:
        """Fetch a plan.

        Raises:
            NotFoundError: If the plan does not exist.
        """
        with store_call("loading plan"):
            doc = self.plan_ref(plan_id).get()
        if not doc.exists:
            raise NotFoundError("Plan not found.")
        return Plan.from_snapshot(doc)

    def list_plans(self, limit: int = PLAN_LIST_LIMIT) -> list[Plan]:
        """Latest plans first."""
        with store_call("listing plans"):
            docs = list(self._plans_query(limit).stream())
        return [Plan.from_snapshot(doc) for doc in docs if doc.exists]

    def get_votes(self, plan_id: str) -> list[PlanVote]:
        with store_call("loading votes"):
            docs = list(self.votes_ref(plan_id).stream())
        return [PlanVote.from_snapshot(doc) for doc in docs if doc.exists]

    def set_vote(
        self, plan_id: str, user_id: str, display_name: str, vote: Vote | str
    ) -> Vote:
        """Record ``user_id``'s vote, replacing any earlier one.

        Raises:
            ValidationError: If ``vote`` is not yes, maybe or no.
            NotFoundError: If the plan does not exist.
        """
        parsed = Vote.parse(vote)
        if parsed is None:
            raise ValidationError(f"Invalid vote: {vote!r}.")
        self.get_plan(plan_id)

        with store_call("saving vote"):
            self.votes_ref(plan_id).document(user_id).set(
                {
                    "name": display_name,
                    "vote": parsed.value,
                    "updatedAt": firestore.SERVER_TIMESTAMP,
                },
                merge=True,
            )
        logger.info(f"User {user_id} voted {parsed.value} on plan {plan_id}")
        return parsed

    def subscribe_plans(
        self, callback: Callable[[list[Plan]], None], limit: int = PLAN_LIST_LIMIT
    ) -> Subscription:
        return subscribe(self._plans_query(limit), callback, Plan.from_snapshot)

    def subscribe_plan(
        self, plan_id: str, callback: Callable[[Plan | None], None]
    ) -> Subscription:
        def on_snapshot(plans: list[Plan]) -> None:
            callback(plans[0] if plans else None)

        return subscribe(self.plan_ref(plan_id), on_snapshot, Plan.from_snapshot)

    def subscribe_votes(
        self, plan_id: str, callback: Callable[[list[PlanVote]], None]
    ) -> Subscription:
        return subscribe(self.votes_ref(plan_id), callback, PlanVote.from_snapshot)
