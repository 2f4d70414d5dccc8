"""Monitor data models — connections, snapshots, change events, and summaries."""

from __future__ import annotations

import enum
import hashlib
import uuid
from dataclasses import dataclass, field
from typing import NamedTuple

from netwatch.capture.base import LOOPBACK_ADDRS, RawConnection
from netwatch.risk.models import RiskLevel


class ConnectionIdentity(NamedTuple):
    """Diff key of a connection. Reused by the OS after closure (see DESIGN.md)."""

    protocol: str
    local_addr: str
    local_port: int
    remote_addr: str
    remote_port: int
    pid: int

    @property
    def digest(self) -> str:
        text = "|".join(str(part) for part in self)
        return hashlib.sha1(text.encode("utf-8")).hexdigest()[:12]


@dataclass(frozen=True)
class Connection:
    """A single classified socket, captured at one poll tick."""

    id: str
    process_name: str
    pid: int
    protocol: str
    local_addr: str
    local_port: int
    remote_addr: str
    remote_port: int
    state: str
    risk: RiskLevel
    risk_reasons: tuple[str, ...]
    captured_at: int  # Unix milliseconds

    @classmethod
    def from_raw(
        cls,
        raw: RawConnection,
        risk: RiskLevel,
        risk_reasons: tuple[str, ...],
        captured_at: int,
    ) -> Connection:
        identity = ConnectionIdentity(
            raw.protocol,
            raw.local_addr,
            raw.local_port,
            raw.remote_addr,
            raw.remote_port,
            raw.pid,
        )
        return cls(
            id=identity.digest,
            process_name=raw.process_name,
            pid=raw.pid,
            protocol=raw.protocol,
            local_addr=raw.local_addr,
            local_port=raw.local_port,
            remote_addr=raw.remote_addr,
            remote_port=raw.remote_port,
            state=raw.state,
            risk=risk,
            risk_reasons=tuple(risk_reasons),
            captured_at=captured_at,
        )

    @property
    def identity(self) -> ConnectionIdentity:
        return ConnectionIdentity(
            self.protocol,
            self.local_addr,
            self.local_port,
            self.remote_addr,
            self.remote_port,
            self.pid,
        )

    @property
    def is_localhost(self) -> bool:
        return (
            self.local_addr in LOOPBACK_ADDRS
            or self.remote_addr in LOOPBACK_ADDRS
            or self.remote_addr == "0.0.0.0"
        )


@dataclass(frozen=True)
class Snapshot:
    """All connections captured atomically at one poll tick.

    Identities are unique within a snapshot.
    """

    sequence: int
    captured_at: int  # Unix milliseconds
    connections: tuple[Connection, ...] = ()

    def __len__(self) -> int:
        return len(self.connections)

    def by_identity(self) -> dict[ConnectionIdentity, Connection]:
        return {conn.identity: conn for conn in self.connections}


class ChangeKind(enum.Enum):
    """What happened to a connection between two snapshots."""

    NEW = "new"
    CHANGED = "changed"
    CLOSED = "closed"


@dataclass(frozen=True)
class ChangeEvent:
    """One entry of the recent-changes log."""

    kind: ChangeKind
    identity: ConnectionIdentity
    message: str
    timestamp: int  # Unix milliseconds of the snapshot that produced it
    process_name: str
    id: str = field(default_factory=lambda: uuid.uuid4().hex[:12])


@dataclass(frozen=True)
class ProcessSummary:
    """Connections grouped by owning pid."""

    key: int
    display_name: str
    connection_count: int
    max_risk: RiskLevel


@dataclass(frozen=True)
class PortSummary:
    """Connections grouped by remote port."""

    key: int
    display_name: str
    connection_count: int
    max_risk: RiskLevel
    protocol: str = "TCP"


@dataclass(frozen=True)
class ConnectionStats:
    """Headline counts shown above the connection table."""

    active_connections: int = 0
    unique_remote_addrs: int = 0
    established_tcp: int = 0
    listening_ports: int = 0
    high_risk: int = 0
    medium_risk: int = 0
    low_risk: int = 0
