"""Load RiskProfile objects from YAML files."""

from __future__ import annotations

import ipaddress
from pathlib import Path

import yaml

from netwatch.risk.models import NetworkTag, RiskProfile

_PORT_KEYS = ("malware_ports", "high_risk_ports", "admin_ports")
_NETWORK_KEYS = ("flagged_networks", "known_networks")


def load_profile(path: str | Path) -> RiskProfile:
    """Load a risk profile from a YAML file path."""
    text = Path(path).read_text(encoding="utf-8")
    return load_profile_from_string(text)


def load_profile_from_string(text: str) -> RiskProfile:
    """Parse a YAML string into a RiskProfile.

    Lists extend the built-in defaults unless ``extends_defaults: false``.
    An empty document yields the default profile.
    """
    data = yaml.safe_load(text)
    if data is None:
        return RiskProfile()
    if not isinstance(data, dict):
        raise ValueError("Risk profile YAML must be a mapping")
    return _build_profile(data)


def _build_profile(data: dict) -> RiskProfile:
    base = RiskProfile()
    extend = bool(data.get("extends_defaults", True))

    values: dict = {}
    for key in _PORT_KEYS:
        ports = _parse_ports(data.get(key, ()), key)
        values[key] = (getattr(base, key) | ports) if extend else ports

    for key in _NETWORK_KEYS:
        tags = _parse_networks(data.get(key, ()), key)
        values[key] = (getattr(base, key) + tags) if extend else tags

    names = data.get("suspicious_processes", ())
    if isinstance(names, str):
        names = [names]
    values["suspicious_processes"] = frozenset(str(n) for n in names)

    threshold = data.get("high_port_threshold", base.high_port_threshold)
    values["high_port_threshold"] = int(threshold)

    return RiskProfile(**values)


def _parse_ports(raw: object, key: str) -> frozenset[int]:
    if isinstance(raw, int):
        raw = (raw,)
    if not isinstance(raw, (list, tuple)):
        raise ValueError(f"'{key}' must be a port or a list of ports")
    ports = frozenset(int(p) for p in raw)
    for port in ports:
        if not 0 < port < 65536:
            raise ValueError(f"'{key}' contains invalid port {port}")
    return ports


def _parse_networks(raw: object, key: str) -> tuple[NetworkTag, ...]:
    if not isinstance(raw, (list, tuple)):
        raise ValueError(f"'{key}' must be a list of {{cidr, label}} entries")
    tags: list[NetworkTag] = []
    for entry in raw:
        if isinstance(entry, str):
            entry = {"cidr": entry}
        if not isinstance(entry, dict) or "cidr" not in entry:
            raise ValueError(f"'{key}' entries need a 'cidr', got {entry!r}")
        cidr = str(entry["cidr"])
        try:
            ipaddress.ip_network(cidr, strict=False)
        except ValueError as exc:
            raise ValueError(f"'{key}' contains invalid network {cidr!r}") from exc
        tags.append(NetworkTag(cidr=cidr, label=str(entry.get("label", cidr))))
    return tuple(tags)
