"""Risk data models — immutable dataclasses used across the entire codebase."""

from __future__ import annotations

import enum
from collections.abc import Callable, Iterable
from dataclasses import dataclass

from netwatch.capture.base import RawConnection


class RiskLevel(enum.Enum):
    """How risky a connection looks. Totally ordered: low < medium < high."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"

    @property
    def rank(self) -> int:
        return _RANKS[self]

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, RiskLevel):
            return NotImplemented
        return self.rank < other.rank

    def __le__(self, other: object) -> bool:
        if not isinstance(other, RiskLevel):
            return NotImplemented
        return self.rank <= other.rank

    def __gt__(self, other: object) -> bool:
        if not isinstance(other, RiskLevel):
            return NotImplemented
        return self.rank > other.rank

    def __ge__(self, other: object) -> bool:
        if not isinstance(other, RiskLevel):
            return NotImplemented
        return self.rank >= other.rank

    @classmethod
    def max_of(cls, levels: Iterable[RiskLevel]) -> RiskLevel:
        """Highest level in ``levels``; LOW when empty."""
        return max(levels, key=lambda level: level.rank, default=cls.LOW)


_RANKS = {RiskLevel.LOW: 0, RiskLevel.MEDIUM: 1, RiskLevel.HIGH: 2}


@dataclass(frozen=True)
class Rule:
    """A single heuristic: when ``predicate`` holds, request ``floor`` and explain.

    ``reason`` is a ``str.format`` template over the raw connection's fields,
    e.g. ``"Known malware port {remote_port}"``.
    """

    name: str
    floor: RiskLevel
    predicate: Callable[[RawConnection], bool]
    reason: str

    def explain(self, conn: RawConnection) -> str:
        return self.reason.format(**conn._asdict())


@dataclass(frozen=True)
class NetworkTag:
    """A CIDR range with a human-readable label."""

    cidr: str
    label: str


DEFAULT_MALWARE_PORTS = frozenset({4444, 1337, 31337, 6667, 12345, 54321})
DEFAULT_HIGH_RISK_PORTS = frozenset({23, 445, 3389, 5900, 3306, 27017})
DEFAULT_ADMIN_PORTS = frozenset({21, 22, 25, 110, 143, 993, 995})
DEFAULT_HIGH_PORT_THRESHOLD = 10000

DEFAULT_FLAGGED_NETWORKS: tuple[NetworkTag, ...] = (
    NetworkTag("185.220.100.0/22", "Tor exit relays"),
    NetworkTag("45.9.148.0/24", "Known botnet C2 range"),
)

# Major cloud providers and CDNs
DEFAULT_KNOWN_NETWORKS: tuple[NetworkTag, ...] = (
    NetworkTag("104.16.0.0/12", "Cloudflare"),
    NetworkTag("172.64.0.0/13", "Cloudflare"),
    NetworkTag("162.158.0.0/15", "Cloudflare"),
    NetworkTag("151.101.0.0/16", "Fastly"),
    NetworkTag("142.250.0.0/15", "Google"),
    NetworkTag("172.217.0.0/16", "Google"),
    NetworkTag("34.0.0.0/9", "Google Cloud"),
    NetworkTag("13.64.0.0/11", "Microsoft Azure"),
    NetworkTag("20.0.0.0/11", "Microsoft Azure"),
    NetworkTag("52.0.0.0/11", "Amazon AWS"),
    NetworkTag("3.0.0.0/9", "Amazon AWS"),
    NetworkTag("17.0.0.0/8", "Apple Inc."),
)


@dataclass(frozen=True)
class RiskProfile:
    """Tunable inputs of the default rule set."""

    malware_ports: frozenset[int] = DEFAULT_MALWARE_PORTS
    high_risk_ports: frozenset[int] = DEFAULT_HIGH_RISK_PORTS
    admin_ports: frozenset[int] = DEFAULT_ADMIN_PORTS
    high_port_threshold: int = DEFAULT_HIGH_PORT_THRESHOLD
    suspicious_processes: frozenset[str] = frozenset()
    flagged_networks: tuple[NetworkTag, ...] = DEFAULT_FLAGGED_NETWORKS
    known_networks: tuple[NetworkTag, ...] = DEFAULT_KNOWN_NETWORKS
