"""The default heuristic rule set, built from a RiskProfile.

Each rule is a plain ``Rule`` record. Order matters only for the order of
reasons in the output; the final level is the highest floor requested.
"""

from __future__ import annotations

import ipaddress
from collections.abc import Callable

from netwatch.capture.base import RawConnection
from netwatch.risk.models import NetworkTag, RiskLevel, RiskProfile, Rule

_UNKNOWN_NAMES = frozenset({"", "unknown", "?"})


def build_rules(profile: RiskProfile | None = None) -> tuple[Rule, ...]:
    """Return the ordered default rules for ``profile`` (defaults when None)."""
    profile = profile or RiskProfile()
    suspicious = frozenset(name.lower() for name in profile.suspicious_processes)

    rules: list[Rule] = [
        Rule(
            name="malware-port",
            floor=RiskLevel.HIGH,
            predicate=lambda c: c.remote_port in profile.malware_ports,
            reason="Known malware port {remote_port}",
        ),
        Rule(
            name="high-risk-port",
            floor=RiskLevel.HIGH,
            predicate=_external_established(lambda c: c.remote_port in profile.high_risk_ports),
            reason="Connection to known high-risk port {remote_port}",
        ),
        Rule(
            name="admin-port",
            floor=RiskLevel.MEDIUM,
            predicate=_external_established(lambda c: c.remote_port in profile.admin_ports),
            reason="Connection to administrative port {remote_port}",
        ),
        Rule(
            name="unknown-process",
            floor=RiskLevel.MEDIUM,
            predicate=lambda c: c.pid == 0 or c.process_name.strip().lower() in _UNKNOWN_NAMES,
            reason="Unable to identify owning process",
        ),
        Rule(
            name="untrusted-process",
            floor=RiskLevel.HIGH,
            predicate=lambda c: c.process_name.lower() in suspicious,
            reason="Untrusted process {process_name}",
        ),
        Rule(
            name="non-standard-port",
            floor=RiskLevel.MEDIUM,
            predicate=_external_established(
                lambda c: c.remote_port > profile.high_port_threshold
            ),
            reason="Connection to non-standard high port",
        ),
    ]

    for tag in profile.flagged_networks:
        rules.append(
            Rule(
                name=f"flagged-network:{tag.label}",
                floor=RiskLevel.HIGH,
                predicate=_in_network(tag),
                reason=f"Connection to flagged network ({_escape(tag.label)})",
            )
        )

    for tag in profile.known_networks:
        rules.append(
            Rule(
                name=f"known-network:{tag.label}",
                floor=RiskLevel.LOW,
                predicate=_in_network(tag),
                reason=f"Known CDN ({_escape(tag.label)})",
            )
        )

    rules.append(
        Rule(
            name="loopback",
            floor=RiskLevel.LOW,
            predicate=lambda c: c.is_loopback,
            reason="Localhost connection",
        )
    )
    rules.append(
        Rule(
            name="listening",
            floor=RiskLevel.LOW,
            predicate=lambda c: c.state == "LISTENING",
            reason="Listening socket",
        )
    )
    return tuple(rules)


def _external_established(
    check: Callable[[RawConnection], bool],
) -> Callable[[RawConnection], bool]:
    """Restrict a port heuristic to established connections leaving the host."""

    def predicate(conn: RawConnection) -> bool:
        return conn.state == "ESTABLISHED" and not conn.is_loopback and check(conn)

    return predicate


def _in_network(tag: NetworkTag) -> Callable[[RawConnection], bool]:
    network = ipaddress.ip_network(tag.cidr, strict=False)

    def predicate(conn: RawConnection) -> bool:
        if not conn.has_remote:
            return False
        try:
            addr = ipaddress.ip_address(conn.remote_addr)
        except ValueError:
            return False
        # Mixed families never match
        return addr.version == network.version and addr in network

    return predicate


def _escape(text: str) -> str:
    return text.replace("{", "{{").replace("}", "}}")
