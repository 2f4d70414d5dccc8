"""Stable serializable views of monitor data, and JSON/CSV snapshot export.

Keys are camelCase so the JSON mirrors the Connection shape the dashboard
consumes. CSV carries the same fields, one row per connection, with a
header row and RFC 4180 quoting. The riskReasons cell holds a JSON array.
"""

from __future__ import annotations

import csv
import io
import json
import logging
import time
from collections.abc import Iterable
from dataclasses import asdict
from pathlib import Path

from netwatch.monitor.models import (
    ChangeEvent,
    Connection,
    ConnectionStats,
    PortSummary,
    ProcessSummary,
    Snapshot,
)
from netwatch.risk.models import RiskLevel

logger = logging.getLogger(__name__)

EXPORT_FORMATS = ("json", "csv")

CSV_FIELDS = (
    "id",
    "processName",
    "pid",
    "protocol",
    "localAddr",
    "localPort",
    "remoteAddr",
    "remotePort",
    "state",
    "risk",
    "riskReasons",
    "capturedAt",
)

def connection_to_dict(conn: Connection) -> dict:
    return {
        "id": conn.id,
        "processName": conn.process_name,
        "pid": conn.pid,
        "protocol": conn.protocol,
        "localAddr": conn.local_addr,
        "localPort": conn.local_port,
        "remoteAddr": conn.remote_addr,
        "remotePort": conn.remote_port,
        "state": conn.state,
        "risk": conn.risk.value,
        "riskReasons": list(conn.risk_reasons),
        "capturedAt": conn.captured_at,
    }


def connection_from_dict(data: dict) -> Connection:
    return Connection(
        id=str(data["id"]),
        process_name=str(data["processName"]),
        pid=int(data["pid"]),
        protocol=str(data["protocol"]),
        local_addr=str(data["localAddr"]),
        local_port=int(data["localPort"]),
        remote_addr=str(data["remoteAddr"]),
        remote_port=int(data["remotePort"]),
        state=str(data["state"]),
        risk=RiskLevel(data["risk"]),
        risk_reasons=tuple(data.get("riskReasons", ())),
        captured_at=int(data["capturedAt"]),
    )


def event_to_dict(event: ChangeEvent) -> dict:
    return {
        "id": event.id,
        "type": event.kind.value,
        "message": event.message,
        "timestamp": event.timestamp,
        "processName": event.process_name,
        "connectionId": event.identity.digest,
    }


def process_summary_to_dict(summary: ProcessSummary) -> dict:
    return {
        "pid": summary.key,
        "name": summary.display_name,
        "count": summary.connection_count,
        "maxRisk": summary.max_risk.value,
    }


def port_summary_to_dict(summary: PortSummary) -> dict:
    return {
        "port": summary.key,
        "name": summary.display_name,
        "protocol": summary.protocol,
        "count": summary.connection_count,
        "maxRisk": summary.max_risk.value,
    }


def stats_to_dict(stats: ConnectionStats) -> dict:
    return _camel(asdict(stats))


def snapshot_to_json(snapshot: Snapshot, exported_at: int | None = None) -> str:
    """Pretty-printed JSON document for a snapshot."""
    document = {
        "sequence": snapshot.sequence,
        "capturedAt": snapshot.captured_at,
        "connections": [connection_to_dict(c) for c in snapshot.connections],
        "exportedAt": int(time.time()) if exported_at is None else exported_at,
    }
    return json.dumps(document, indent=2)


def connections_to_csv(connections: Iterable[Connection]) -> str:
    buf = io.StringIO()
    writer = csv.DictWriter(buf, fieldnames=CSV_FIELDS)
    writer.writeheader()
    for conn in connections:
        row = connection_to_dict(conn)
        # One cell holding a JSON array of reasons
        row["riskReasons"] = json.dumps(list(conn.risk_reasons))
        writer.writerow(row)
    return buf.getvalue()


def connections_from_csv(text: str) -> list[Connection]:
    """Parse CSV produced by connections_to_csv back into Connection records."""
    reader = csv.DictReader(io.StringIO(text, newline=""))
    missing = set(CSV_FIELDS) - set(reader.fieldnames or ())
    if missing:
        raise ValueError(f"CSV is missing columns: {', '.join(sorted(missing))}")

    conns: list[Connection] = []
    for row in reader:
        reasons = row["riskReasons"]
        row_data: dict = dict(row)
        try:
            row_data["riskReasons"] = tuple(json.loads(reasons)) if reasons else ()
        except json.JSONDecodeError as exc:
            raise ValueError(f"Bad riskReasons cell: {reasons!r}") from exc
        conns.append(connection_from_dict(row_data))
    return conns


def render_export(snapshot: Snapshot, fmt: str) -> str:
    """Serialize ``snapshot`` in ``fmt`` (json or csv)."""
    fmt = fmt.lower()
    if fmt == "json":
        return snapshot_to_json(snapshot)
    if fmt == "csv":
        return connections_to_csv(snapshot.connections)
    raise ValueError(f"Unsupported export format: {fmt}")


def write_export(snapshot: Snapshot, fmt: str, directory: str | Path) -> Path:
    """Write ``snapshot`` to a timestamped file in ``directory``.

    Returns the path written.
    """
    text = render_export(snapshot, fmt)
    out_dir = Path(directory)
    out_dir.mkdir(parents=True, exist_ok=True)
    path = out_dir / f"netwatch_connections_{int(time.time())}.{fmt.lower()}"
    path.write_text(text, encoding="utf-8", newline="")
    logger.info("Exported %d connections to %s", len(snapshot), path)
    return path


def _camel(data: dict) -> dict:
    out: dict = {}
    for key, value in data.items():
        head, *rest = key.split("_")
        out[head + "".join(part.capitalize() for part in rest)] = value
    return out
