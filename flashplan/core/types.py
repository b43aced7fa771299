"""Core data types for the flashplan application."""

import datetime
from typing import Any, Optional, TypedDict


class _FirestoreDocumentBase(TypedDict):
    id: str
    createdAt: Any


class FirestoreDocument(_FirestoreDocumentBase, total=False):
    """Generic Firestore document structure."""

    path: str
    updatedAt: Any


def as_datetime(value: Any) -> Optional[datetime.datetime]:
    """Return a stored timestamp as a datetime, or None for sentinels and gaps."""
    if isinstance(value, datetime.datetime):
        return value
    return None
