"""Change detection between successive snapshots, and the bounded change log."""

from __future__ import annotations

import collections
import logging
import threading
from collections.abc import Iterable

from netwatch.monitor.models import (
    ChangeEvent,
    ChangeKind,
    Connection,
    Snapshot,
)

logger = logging.getLogger(__name__)

DEFAULT_LOG_SIZE = 200


def diff(previous: Snapshot | None, current: Snapshot) -> list[ChangeEvent]:
    """Return the events that turn ``previous`` into ``current``.

    With no previous snapshot this is the first poll: every connection in
    ``current`` is reported as new (see initial_events).

    Events come out as all ``new``, then all ``changed``, then all
    ``closed``; within a group by capture time, then identity.
    """
    if previous is None:
        return initial_events(current)

    before = previous.by_identity()
    after = current.by_identity()
    timestamp = current.captured_at

    opened = [conn for ident, conn in after.items() if ident not in before]
    closed = [conn for ident, conn in before.items() if ident not in after]
    changed: list[tuple[Connection, Connection]] = []
    for ident, conn in after.items():
        old = before.get(ident)
        if old is not None and (old.state != conn.state or old.risk != conn.risk):
            changed.append((old, conn))

    events = [_new_event(conn, timestamp) for conn in _ordered(opened)]
    changed.sort(key=lambda pair: (pair[1].captured_at, pair[1].identity))
    events.extend(_changed_event(old, new, timestamp) for old, new in changed)
    events.extend(_closed_event(conn, timestamp) for conn in _ordered(closed))
    return events


def initial_events(current: Snapshot) -> list[ChangeEvent]:
    """First poll: one ``new`` event per connection."""
    return [_new_event(conn, current.captured_at) for conn in _ordered(current.connections)]


def _ordered(conns: Iterable[Connection]) -> list[Connection]:
    return sorted(conns, key=lambda c: (c.captured_at, c.identity))


def _endpoint(conn: Connection) -> str:
    return f"{conn.remote_addr}:{conn.remote_port}"


def _new_event(conn: Connection, timestamp: int) -> ChangeEvent:
    if conn.state == "LISTENING":
        message = f"New listener: {conn.process_name} on port {conn.local_port}"
    else:
        message = f"New connection: {conn.process_name} → {_endpoint(conn)}"
        if conn.protocol == "UDP":
            message += " (UDP)"
    return ChangeEvent(
        kind=ChangeKind.NEW,
        identity=conn.identity,
        message=message,
        timestamp=timestamp,
        process_name=conn.process_name,
    )


def _closed_event(conn: Connection, timestamp: int) -> ChangeEvent:
    if conn.state == "LISTENING":
        message = f"Listener closed: {conn.process_name} on port {conn.local_port}"
    else:
        message = f"Connection closed: {conn.process_name} → {_endpoint(conn)}"
    return ChangeEvent(
        kind=ChangeKind.CLOSED,
        identity=conn.identity,
        message=message,
        timestamp=timestamp,
        process_name=conn.process_name,
    )


def _changed_event(old: Connection, new: Connection, timestamp: int) -> ChangeEvent:
    parts: list[str] = []
    if old.state != new.state:
        parts.append(f"State change: {new.process_name} {old.state} → {new.state}")
    if old.risk != new.risk:
        parts.append(
            f"Risk change: {new.process_name} {old.risk.value} → {new.risk.value}"
        )
    return ChangeEvent(
        kind=ChangeKind.CHANGED,
        identity=new.identity,
        message="; ".join(parts),
        timestamp=timestamp,
        process_name=new.process_name,
    )


class ChangeLog:
    """Bounded, thread-safe ring of change events.

    The scheduler thread appends; any thread reads via recent(). When full,
    the oldest events are evicted first.
    """

    def __init__(self, maxlen: int = DEFAULT_LOG_SIZE) -> None:
        if maxlen <= 0:
            raise ValueError("Change log size must be positive")
        self._events: collections.deque[ChangeEvent] = collections.deque(maxlen=maxlen)
        self._lock = threading.Lock()

    @property
    def maxlen(self) -> int:
        return self._events.maxlen or 0

    def append(self, events: Iterable[ChangeEvent]) -> None:
        """Append events in emission order (called from the scheduler thread)."""
        with self._lock:
            self._events.extend(events)

    def recent(self, limit: int | None = None) -> list[ChangeEvent]:
        """Return up to ``limit`` events, most recent first."""
        with self._lock:
            events = list(self._events)
        events.reverse()
        if limit is not None:
            events = events[: max(0, limit)]
        return events

    def clear(self) -> None:
        with self._lock:
            self._events.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._events)
