"""ConnectionSource protocol — all source implementations must satisfy this."""

from __future__ import annotations

from typing import NamedTuple, Protocol, runtime_checkable

LOOPBACK_ADDRS = frozenset({"127.0.0.1", "::1", "localhost"})


class RawConnection(NamedTuple):
    """One socket as reported by a source, before classification."""

    protocol: str
    local_addr: str
    local_port: int
    remote_addr: str
    remote_port: int
    state: str
    pid: int
    process_name: str

    @property
    def is_loopback(self) -> bool:
        return self.remote_addr in LOOPBACK_ADDRS or self.remote_addr.startswith("127.")

    @property
    def has_remote(self) -> bool:
        return bool(self.remote_addr) and self.remote_addr not in ("0.0.0.0", "::") and self.remote_port != 0


@runtime_checkable
class ConnectionSource(Protocol):
    """Protocol for connection table sources."""

    def fetch(self) -> list[RawConnection]:
        """Return every socket currently open on the host.

        May raise SourceError on a transient failure. A shorter list than
        the previous call is a valid, complete answer.
        """
        ...
