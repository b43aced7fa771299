"""Services for group membership and availability."""

from .availability import (
    AvailabilityService,
    CalendarWatcher,
    classify,
    group_histogram,
    top_dates,
    union_across_groups,
)
from .membership import MembershipService

__all__ = [
    "AvailabilityService",
    "CalendarWatcher",
    "MembershipService",
    "classify",
    "group_histogram",
    "top_dates",
    "union_across_groups",
]
