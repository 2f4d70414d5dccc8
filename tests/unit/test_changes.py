"""Tests for snapshot diffing and the bounded change log."""

from __future__ import annotations

import random

import pytest
from conftest import make_raw

from netwatch.capture.base import RawConnection
from netwatch.monitor.changes import ChangeLog, diff, initial_events
from netwatch.monitor.models import (
    ChangeEvent,
    ChangeKind,
    Connection,
    ConnectionIdentity,
    Snapshot,
)
from netwatch.risk.models import RiskLevel


def _conn(raw: RawConnection, risk: RiskLevel = RiskLevel.LOW, captured_at: int = 1000) -> Connection:
    return Connection.from_raw(raw, risk, (), captured_at)


def _snap(sequence: int, *conns: Connection, captured_at: int = 1000) -> Snapshot:
    return Snapshot(sequence=sequence, captured_at=captured_at, connections=tuple(conns))


def _event(message: str = "x", timestamp: int = 0) -> ChangeEvent:
    identity = ConnectionIdentity("TCP", "10.0.0.1", 1, "10.0.0.2", 2, 1)
    return ChangeEvent(ChangeKind.NEW, identity, message, timestamp, "proc")


class TestDiff:
    def test_first_poll_reports_everything_new(self):
        a = _conn(make_raw(remote_port=443))
        b = _conn(make_raw(remote_port=80, local_port=50000))

        events = diff(None, _snap(1, a, b))
        assert [e.kind for e in events] == [ChangeKind.NEW, ChangeKind.NEW]
        assert {e.identity for e in events} == {a.identity, b.identity}
        assert [e.message for e in events] == [
            e.message for e in initial_events(_snap(1, a, b))
        ]

    def test_identical_snapshots_produce_nothing(self):
        a = _conn(make_raw())
        assert diff(_snap(1, a), _snap(2, a, captured_at=2000)) == []

    def test_new_changed_closed(self):
        kept = make_raw(remote_port=443)
        gone = make_raw(remote_port=80, local_port=50001)
        added = make_raw(remote_port=8443, local_port=50002)

        before = _snap(1, _conn(kept), _conn(gone))
        after = _snap(
            2,
            _conn(kept._replace(state="CLOSE_WAIT"), captured_at=2000),
            _conn(added, captured_at=2000),
            captured_at=2000,
        )

        events = diff(before, after)
        assert [e.kind for e in events] == [ChangeKind.NEW, ChangeKind.CHANGED, ChangeKind.CLOSED]
        assert events[0].message == "New connection: firefox → 93.184.216.34:8443"
        assert events[1].message == "State change: firefox ESTABLISHED → CLOSE_WAIT"
        assert events[2].message == "Connection closed: firefox → 93.184.216.34:80"
        assert all(e.timestamp == 2000 for e in events)

    def test_risk_change_is_reported(self):
        raw = make_raw()
        events = diff(
            _snap(1, _conn(raw, RiskLevel.LOW)),
            _snap(2, _conn(raw, RiskLevel.HIGH)),
        )
        assert len(events) == 1
        assert events[0].kind == ChangeKind.CHANGED
        assert events[0].message == "Risk change: firefox low → high"

    def test_state_and_risk_change_share_one_event(self):
        raw = make_raw()
        events = diff(
            _snap(1, _conn(raw, RiskLevel.LOW)),
            _snap(2, _conn(raw._replace(state="FIN_WAIT1"), RiskLevel.MEDIUM)),
        )
        assert len(events) == 1
        assert events[0].message == (
            "State change: firefox ESTABLISHED → FIN_WAIT1; Risk change: firefox low → medium"
        )

    def test_listener_and_udp_messages(self):
        listener = make_raw(
            "0.0.0.0", 0, process_name="node", state="LISTENING",
            local_addr="127.0.0.1", local_port=3000,
        )
        udp = make_raw("8.8.8.8", 53, protocol="UDP", local_port=60000)

        opened = diff(_snap(1), _snap(2, _conn(listener), _conn(udp)))
        messages = sorted(e.message for e in opened)
        assert messages == [
            "New connection: firefox → 8.8.8.8:53 (UDP)",
            "New listener: node on port 3000",
        ]

        closed = diff(_snap(2, _conn(listener)), _snap(3))
        assert closed[0].message == "Listener closed: node on port 3000"

    def test_pid_is_part_of_identity(self):
        first = make_raw(pid=100)
        reused = make_raw(pid=200, process_name="curl")

        events = diff(_snap(1, _conn(first)), _snap(2, _conn(reused)))
        assert [e.kind for e in events] == [ChangeKind.NEW, ChangeKind.CLOSED]

    def test_ordering_within_group_is_by_identity(self):
        raws = [make_raw(remote_port=port, local_port=40000 + port) for port in (9003, 9001, 9002)]
        events = diff(_snap(1), _snap(2, *(_conn(r) for r in raws)))
        assert [e.identity.remote_port for e in events] == [9001, 9002, 9003]

    def test_random_snapshots_diff_consistently(self):
        rng = random.Random(1234)
        pool = [
            make_raw(
                remote_addr=f"10.0.{i // 8}.{i % 8}",
                remote_port=rng.choice([22, 80, 443, 4444, 50000]),
                local_port=30000 + i,
                pid=rng.randint(1, 5),
            )
            for i in range(40)
        ]
        states = ["ESTABLISHED", "CLOSE_WAIT", "TIME_WAIT"]
        risks = list(RiskLevel)

        previous = None
        for seq in range(1, 30):
            chosen = rng.sample(pool, rng.randint(0, len(pool)))
            conns = tuple(
                _conn(raw._replace(state=rng.choice(states)), rng.choice(risks), seq)
                for raw in chosen
            )
            current = _snap(seq, *conns, captured_at=seq)
            events = diff(previous, current)

            before = previous.by_identity() if previous else {}
            after = current.by_identity()
            new = {e.identity for e in events if e.kind == ChangeKind.NEW}
            closed = {e.identity for e in events if e.kind == ChangeKind.CLOSED}
            changed = {e.identity for e in events if e.kind == ChangeKind.CHANGED}

            assert new == set(after) - set(before)
            assert closed == set(before) - set(after)
            assert changed == {
                ident
                for ident in set(after) & set(before)
                if (after[ident].state, after[ident].risk)
                != (before[ident].state, before[ident].risk)
            }
            assert len(events) == len(new) + len(closed) + len(changed)

            kinds = [e.kind for e in events]
            order = [ChangeKind.NEW, ChangeKind.CHANGED, ChangeKind.CLOSED]
            assert kinds == sorted(kinds, key=order.index)
            previous = current


class TestChangeLog:
    def test_recent_is_most_recent_first(self):
        log = ChangeLog(10)
        log.append([_event("a"), _event("b")])
        log.append([_event("c")])
        assert [e.message for e in log.recent()] == ["c", "b", "a"]
        assert [e.message for e in log.recent(2)] == ["c", "b"]
        assert log.recent(0) == []

    def test_oldest_evicted_first(self):
        log = ChangeLog(3)
        log.append(_event(str(i)) for i in range(5))
        assert len(log) == 3
        assert log.maxlen == 3
        assert [e.message for e in log.recent()] == ["4", "3", "2"]

    def test_clear(self):
        log = ChangeLog()
        log.append([_event()])
        log.clear()
        assert len(log) == 0
        assert log.recent() == []

    @pytest.mark.parametrize("size", [0, -1])
    def test_size_must_be_positive(self, size: int):
        with pytest.raises(ValueError):
            ChangeLog(size)

    def test_event_ids_are_unique(self):
        ids = {_event().id for _ in range(100)}
        assert len(ids) == 100
