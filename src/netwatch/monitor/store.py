"""Snapshot store — owns the one current snapshot."""

from __future__ import annotations

import logging
import threading

from netwatch.errors import SourceUnavailable
from netwatch.monitor.models import Snapshot

logger = logging.getLogger(__name__)


class SnapshotStore:
    """Holds the current snapshot behind an atomic reference swap.

    Only the scheduler publishes. Readers take the reference returned by
    current() and keep using it; a concurrent publish replaces the store's
    reference, never the snapshot a reader already holds.
    """

    def __init__(self) -> None:
        self._current: Snapshot | None = None
        self._publish_lock = threading.Lock()

    def publish(self, snapshot: Snapshot) -> Snapshot | None:
        """Make ``snapshot`` current. Returns the snapshot it replaced."""
        with self._publish_lock:
            previous = self._current
            if previous is not None and snapshot.sequence <= previous.sequence:
                raise ValueError(
                    f"Snapshot {snapshot.sequence} is not newer than "
                    f"current snapshot {previous.sequence}"
                )
            self._current = snapshot
        logger.debug(
            "Published snapshot %d (%d connections)", snapshot.sequence, len(snapshot)
        )
        return previous

    def current(self) -> Snapshot | None:
        return self._current

    def require_current(self) -> Snapshot:
        """Like current(), but raises SourceUnavailable before the first publish."""
        snapshot = self._current
        if snapshot is None:
            raise SourceUnavailable()
        return snapshot

    @property
    def next_sequence(self) -> int:
        snapshot = self._current
        return 1 if snapshot is None else snapshot.sequence + 1

    def clear(self) -> None:
        """Drop the current snapshot (used on monitor shutdown)."""
        with self._publish_lock:
            self._current = None
