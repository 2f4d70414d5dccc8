"""Per-process and per-port summaries, recomputed from scratch per snapshot."""

from __future__ import annotations

from netwatch.monitor.models import (
    ConnectionStats,
    PortSummary,
    ProcessSummary,
    Snapshot,
)
from netwatch.risk.models import RiskLevel

# Display names for the remote ports people recognise on sight
_PORT_NAMES = {
    21: "FTP",
    22: "SSH",
    23: "Telnet",
    25: "SMTP",
    53: "DNS",
    80: "HTTP",
    110: "POP3",
    143: "IMAP",
    443: "HTTPS",
    445: "SMB",
    993: "IMAPS",
    995: "POP3S",
    3306: "MySQL",
    3389: "RDP",
    5900: "VNC",
    27017: "MongoDB",
}


def summarize_by_process(snapshot: Snapshot) -> list[ProcessSummary]:
    """Group connections by pid. The name is the first one seen for that pid."""
    names: dict[int, str] = {}
    counts: dict[int, int] = {}
    risks: dict[int, RiskLevel] = {}

    for conn in snapshot.connections:
        pid = conn.pid
        names.setdefault(pid, conn.process_name)
        counts[pid] = counts.get(pid, 0) + 1
        risks[pid] = max(risks.get(pid, RiskLevel.LOW), conn.risk)

    summaries = [
        ProcessSummary(
            key=pid,
            display_name=names[pid],
            connection_count=counts[pid],
            max_risk=risks[pid],
        )
        for pid in counts
    ]
    summaries.sort(key=lambda s: (-s.connection_count, s.key))
    return summaries


def summarize_by_port(snapshot: Snapshot) -> list[PortSummary]:
    """Group connections by remote port, skipping sockets without one."""
    protocols: dict[int, str] = {}
    counts: dict[int, int] = {}
    risks: dict[int, RiskLevel] = {}

    for conn in snapshot.connections:
        port = conn.remote_port
        if not port:
            continue
        protocols.setdefault(port, conn.protocol)
        counts[port] = counts.get(port, 0) + 1
        risks[port] = max(risks.get(port, RiskLevel.LOW), conn.risk)

    summaries = [
        PortSummary(
            key=port,
            display_name=_port_display_name(port),
            connection_count=counts[port],
            max_risk=risks[port],
            protocol=protocols[port],
        )
        for port in counts
    ]
    summaries.sort(key=lambda s: (-s.connection_count, s.key))
    return summaries


def summarize_stats(snapshot: Snapshot) -> ConnectionStats:
    """Headline counts for the dashboard cards."""
    conns = snapshot.connections
    remote_addrs = {c.remote_addr for c in conns if c.remote_port and c.remote_addr}
    by_risk = {level: 0 for level in RiskLevel}
    for conn in conns:
        by_risk[conn.risk] += 1

    return ConnectionStats(
        active_connections=len(conns),
        unique_remote_addrs=len(remote_addrs),
        established_tcp=sum(
            1 for c in conns if c.protocol == "TCP" and c.state == "ESTABLISHED"
        ),
        listening_ports=sum(1 for c in conns if c.state == "LISTENING"),
        high_risk=by_risk[RiskLevel.HIGH],
        medium_risk=by_risk[RiskLevel.MEDIUM],
        low_risk=by_risk[RiskLevel.LOW],
    )


def _port_display_name(port: int) -> str:
    service = _PORT_NAMES.get(port)
    return f"{port} ({service})" if service else str(port)
