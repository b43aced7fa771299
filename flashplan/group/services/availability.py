"""Free-date aggregation for groups and across a user's groups."""

from __future__ import annotations

import logging
import threading
from collections import Counter
from typing import TYPE_CHECKING, Callable, Iterable, Mapping

from flashplan.constants import AVAILABILITY_COLLECTION, GROUPS_COLLECTION
from flashplan.core import Subscription, store_call, subscribe
from flashplan.errors import NotFoundError
from flashplan.group.models import Availability, Consensus, Group
from flashplan.utils import canonical_date

if TYPE_CHECKING:
    import datetime

    from google.cloud.firestore_v1.client import Client
    from google.cloud.firestore_v1.collection import CollectionReference
    from google.cloud.firestore_v1.document import DocumentReference

    from .membership import MembershipService

logger = logging.getLogger(__name__)

Histogram = dict[str, int]


def group_histogram(
    records: Iterable[Availability], member_ids: Iterable[str] | None = None
) -> Histogram:
    """Count how many distinct members are free on each date.

    When ``member_ids`` is given, records from anyone else are ignored.
    """
    allowed = set(member_ids) if member_ids is not None else None
    free_by_member: dict[str, frozenset[str]] = {}
    for record in records:
        if allowed is not None and record.id not in allowed:
            continue
        free_by_member[record.id] = record.free_dates

    counts: Counter[str] = Counter()
    for free_dates in free_by_member.values():
        counts.update(free_dates)
    return dict(counts)


def classify(date: str, histogram: Mapping[str, int], member_count: int) -> Consensus:
    """Classify a date by the share of members free on it."""
    count = histogram.get(date, 0)
    if member_count <= 0:
        return Consensus.MINORITY
    if count == member_count:
        return Consensus.UNANIMOUS
    if count * 2 > member_count:
        return Consensus.MAJORITY
    return Consensus.MINORITY


def top_dates(histogram: Mapping[str, int], limit: int) -> list[str]:
    """Most popular dates first; ties go to the earliest date."""
    if limit <= 0:
        return []
    ranked = sorted(histogram.items(), key=lambda item: (-item[1], item[0]))
    return [date for date, _ in ranked[:limit]]


def union_across_groups(
    records_by_group: Mapping[str, Iterable[Availability]],
) -> Histogram:
    """Merge availability from several groups into one histogram.

    Each (group, member, date) triple contributes exactly once, so a member
    free on the same date in two groups counts twice, once per group.
    """
    entries: set[tuple[str, str, str]] = set()
    for group_id, records in records_by_group.items():
        for record in records:
            for date in record.free_dates:
                entries.add((group_id, record.id, date))

    counts: Counter[str] = Counter(date for _, _, date in entries)
    return dict(counts)


class AvailabilityService:
    """Reads and writes per-member free dates."""

    def __init__(self, db: Client) -> None:
        self.db = db

    def availability_ref(self, group_id: str) -> CollectionReference:
        return (
            self.db.collection(GROUPS_COLLECTION)
            .document(group_id)
            .collection(AVAILABILITY_COLLECTION)
        )

    def record_ref(self, group_id: str, user_id: str) -> DocumentReference:
        return self.availability_ref(group_id).document(user_id)

    def _get_group(self, group_id: str) -> Group:
        with store_call("loading group"):
            doc = self.db.collection(GROUPS_COLLECTION).document(group_id).get()
        if not doc.exists:
            raise NotFoundError("Group not found.")
        return Group.from_snapshot(doc)

    def set_availability(
        self,
        group_id: str,
        user_id: str,
        display_name: str,
        free_dates: Iterable[str | datetime.date],
    ) -> frozenset[str]:
        """Replace the member's free dates with ``free_dates``.

        Returns the stored set in canonical form.

        Raises:
            ValidationError: If any entry is not a calendar date.
            NotFoundError: If the group does not exist.
        """
        dates = frozenset(canonical_date(value) for value in free_dates)
        self._get_group(group_id)
        with store_call("saving availability"):
            self.record_ref(group_id, user_id).set(
                {"name": display_name, "freeDates": sorted(dates)}
            )
        logger.info(
            f"Saved {len(dates)} free dates for {user_id} in group {group_id}"
        )
        return dates

    def get_availability(self, group_id: str) -> list[Availability]:
        with store_call("loading availability"):
            docs = list(self.availability_ref(group_id).stream())
        return [Availability.from_snapshot(doc) for doc in docs if doc.exists]

    def group_histogram(self, group_id: str) -> tuple[Group, Histogram]:
        """Histogram of the group's current members, with the group itself."""
        group = self._get_group(group_id)
        records = self.get_availability(group_id)
        return group, group_histogram(records, group.member_ids)

    def calendar_histogram(self, groups: Iterable[Group]) -> Histogram:
        """Union histogram over every member of every group in ``groups``."""
        records_by_group = {}
        for group in groups:
            records = self.get_availability(group.id)
            records_by_group[group.id] = [
                record for record in records if group.is_member(record.id)
            ]
        return union_across_groups(records_by_group)

    def subscribe_availability(
        self, group_id: str, callback: Callable[[list[Availability]], None]
    ) -> Subscription:
        return subscribe(
            self.availability_ref(group_id), callback, Availability.from_snapshot
        )


class CalendarWatcher:
    """Keeps a cross-group histogram live by listening to every group.

    Each group gets two listeners: one on its availability records and one on
    the group document. A group's records count only once its document has
    arrived, and only for users in its current ``memberIds``, matching
    ``AvailabilityService.calendar_histogram``. Every snapshot replaces that
    group's state and the union is recomputed from scratch.
    """

    def __init__(
        self,
        service: AvailabilityService,
        membership: MembershipService,
        on_change: Callable[[Histogram], None],
    ) -> None:
        self.service = service
        self.membership = membership
        self.on_change = on_change
        self._lock = threading.Lock()
        self._wanted: set[str] = set()
        self._records: dict[str, list[Availability]] = {}
        self._groups: dict[str, Group | None] = {}
        self._subscriptions: dict[str, list[Subscription]] = {}

    @property
    def group_ids(self) -> list[str]:
        with self._lock:
            return list(self._subscriptions)

    def histogram(self) -> Histogram:
        with self._lock:
            records_by_group = {}
            for gid, records in self._records.items():
                group = self._groups.get(gid)
                if group is None:
                    continue
                records_by_group[gid] = [
                    record for record in records if group.is_member(record.id)
                ]
        return union_across_groups(records_by_group)

    def watch(self, group_ids: Iterable[str]) -> None:
        """Listen to exactly ``group_ids``, dropping groups no longer listed."""
        wanted = list(dict.fromkeys(group_ids))
        with self._lock:
            self._wanted = set(wanted)
            stale = [gid for gid in self._subscriptions if gid not in self._wanted]
            new = [gid for gid in wanted if gid not in self._subscriptions]
            dropped = [self._subscriptions.pop(gid) for gid in stale]
            for gid in stale:
                self._records.pop(gid, None)
                self._groups.pop(gid, None)

        for subscriptions in dropped:
            for subscription in subscriptions:
                subscription.cancel()
        for gid in new:
            subscriptions = [
                self.membership.subscribe_group(gid, self._group_updater(gid)),
                self.service.subscribe_availability(gid, self._records_updater(gid)),
            ]
            with self._lock:
                if gid in self._wanted:
                    self._subscriptions[gid] = subscriptions
                    subscriptions = []
            # Dropped by a concurrent watch() while subscribing.
            for subscription in subscriptions:
                subscription.cancel()
        if stale:
            self._publish()

    def cancel(self) -> None:
        """Stop every listener."""
        with self._lock:
            self._wanted = set()
            subscriptions = [
                sub for subs in self._subscriptions.values() for sub in subs
            ]
            self._subscriptions.clear()
            self._records.clear()
            self._groups.clear()
        for subscription in subscriptions:
            subscription.cancel()

    def _group_updater(self, group_id: str) -> Callable[[Group | None], None]:
        def update(group: Group | None) -> None:
            with self._lock:
                if group_id not in self._wanted:
                    return
                self._groups[group_id] = group
            self._publish()

        return update

    def _records_updater(
        self, group_id: str
    ) -> Callable[[list[Availability]], None]:
        def update(records: list[Availability]) -> None:
            with self._lock:
                if group_id not in self._wanted:
                    return
                self._records[group_id] = records
            self._publish()

        return update

    def _publish(self) -> None:
        self.on_change(self.histogram())
