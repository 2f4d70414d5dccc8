"""Connection table filtering — search, protocol, state, and risk selectors."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass

from netwatch.monitor.models import Connection
from netwatch.risk.models import RiskLevel


@dataclass(frozen=True)
class ConnectionFilter:
    """Selectors for the connection table. ``None`` means "all"."""

    search: str = ""
    protocol: str | None = None
    state: str | None = None
    risk: RiskLevel | None = None
    hide_localhost: bool = False
    only_established: bool = False

    @property
    def is_empty(self) -> bool:
        return self == ConnectionFilter()


def apply_filters(
    connections: Iterable[Connection],
    filters: ConnectionFilter | None = None,
) -> list[Connection]:
    """Return the connections matching every selector, in their original order."""
    if filters is None or filters.is_empty:
        return list(connections)
    return [conn for conn in connections if _matches(conn, filters)]


def _matches(conn: Connection, f: ConnectionFilter) -> bool:
    if f.search:
        searchable = (
            f"{conn.process_name} {conn.pid} "
            f"{conn.local_addr}:{conn.local_port} "
            f"{conn.remote_addr}:{conn.remote_port}"
        ).lower()
        if f.search.lower() not in searchable:
            return False

    if f.protocol and conn.protocol != f.protocol.upper():
        return False

    if f.state and conn.state != f.state.upper():
        return False

    if f.risk is not None and conn.risk != f.risk:
        return False

    if f.hide_localhost and conn.is_localhost:
        return False

    if f.only_established and conn.state != "ESTABLISHED":
        return False

    return True
