"""Cancellable wrappers around Firestore snapshot listeners."""

from __future__ import annotations

import threading
from typing import Any, Callable

SnapshotCallback = Callable[[list[Any]], None]


class Subscription:
    """A live listener on a document, collection or query.

    The callback receives the full list of document snapshots on every change,
    never a diff. Once ``cancel`` returns, the callback is not invoked again.
    """

    def __init__(self, ref: Any, callback: SnapshotCallback) -> None:
        """Register ``callback`` against ``ref``."""
        self._callback = callback
        self._lock = threading.RLock()
        self._active = True
        self._watch = ref.on_snapshot(self._deliver)

    @property
    def active(self) -> bool:
        """Whether snapshots are still being delivered."""
        return self._active

    def _deliver(self, snapshots: Any, changes: Any, read_time: Any) -> None:
        with self._lock:
            if not self._active:
                return
            self._callback(list(snapshots))

    def cancel(self) -> None:
        """Stop delivering snapshots. Safe to call more than once."""
        with self._lock:
            if not self._active:
                return
            self._active = False
        self._watch.unsubscribe()


def subscribe(
    ref: Any,
    callback: Callable[[list[Any]], None],
    transform: Callable[[Any], Any] | None = None,
) -> Subscription:
    """Subscribe to ``ref``, optionally mapping each snapshot through ``transform``."""
    if transform is None:
        return Subscription(ref, callback)

    def on_snapshot(snapshots: list[Any]) -> None:
        callback([transform(snap) for snap in snapshots if snap.exists])

    return Subscription(ref, on_snapshot)
