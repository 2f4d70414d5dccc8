"""Unprivileged connection source using psutil to list the host's sockets."""

from __future__ import annotations

import logging
import socket
from dataclasses import dataclass, field

import psutil

from netwatch.capture.base import RawConnection
from netwatch.errors import SourceError

logger = logging.getLogger(__name__)

# Socket type constants from psutil
_PROTO_MAP = {
    socket.SOCK_STREAM: "TCP",
    socket.SOCK_DGRAM: "UDP",
}

# psutil status names that differ from the displayed ones
_STATE_MAP = {
    psutil.CONN_LISTEN: "LISTENING",
}


@dataclass
class PsutilSource:
    """Lists every inet socket on the host via psutil.net_connections().

    Process names are cached per pid for the lifetime of the source; a pid
    that disappears between the socket listing and the name lookup is
    reported as "unknown" rather than failing the whole poll.
    """

    kind: str = "inet"
    _names: dict[int, str] = field(default_factory=dict)

    def fetch(self) -> list[RawConnection]:
        try:
            conns = psutil.net_connections(kind=self.kind)
        except psutil.AccessDenied as exc:
            raise SourceError(f"Access denied listing sockets: {exc}") from exc
        except OSError as exc:
            raise SourceError(f"Failed to list sockets: {exc}") from exc

        live_pids: set[int] = set()
        result: list[RawConnection] = []
        for conn in conns:
            pid = conn.pid or 0
            live_pids.add(pid)

            local_addr = conn.laddr.ip if conn.laddr else ""
            local_port = conn.laddr.port if conn.laddr else 0
            remote_addr = conn.raddr.ip if conn.raddr else ""
            remote_port = conn.raddr.port if conn.raddr else 0
            proto = _PROTO_MAP.get(conn.type, "TCP")

            result.append(
                RawConnection(
                    protocol=proto,
                    local_addr=local_addr,
                    local_port=local_port,
                    remote_addr=remote_addr,
                    remote_port=remote_port,
                    state=_normalize_state(proto, conn.status, bool(conn.raddr)),
                    pid=pid,
                    process_name=self._process_name(pid),
                )
            )

        # Forget departed pids so a reused pid gets its new name
        for stale in set(self._names) - live_pids:
            del self._names[stale]

        logger.debug("psutil reported %d sockets across %d pids", len(result), len(live_pids))
        return result

    def _process_name(self, pid: int) -> str:
        if pid == 0:
            return "system"
        cached = self._names.get(pid)
        if cached is not None:
            return cached
        try:
            name = psutil.Process(pid).name()
        except (psutil.NoSuchProcess, psutil.AccessDenied, psutil.ZombieProcess):
            # Not cached: the next poll may be able to see it
            return "unknown"
        self._names[pid] = name
        return name


def _normalize_state(proto: str, status: str, has_remote: bool) -> str:
    if proto == "UDP" or not status or status == psutil.CONN_NONE:
        return "ESTABLISHED" if has_remote else "LISTENING"
    return _STATE_MAP.get(status, status)
