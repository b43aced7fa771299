"""Core module for the flashplan application."""

from .store import store_call
from .subscriptions import Subscription, subscribe
from .types import FirestoreDocument, as_datetime

__all__ = [
    "FirestoreDocument",
    "Subscription",
    "as_datetime",
    "store_call",
    "subscribe",
]
