"""CLI command: netwatch snapshot — print the current connection table."""

from __future__ import annotations

import click
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from netwatch.cli.common import build_monitor, console, poll_once, risk_text
from netwatch.monitor.filters import ConnectionFilter
from netwatch.monitor.models import Connection
from netwatch.risk.models import RiskLevel

out = Console()


@click.command()
@click.option("--search", "-s", default="", help="Substring of process, pid, or address.")
@click.option(
    "--protocol",
    type=click.Choice(["tcp", "udp"], case_sensitive=False),
    default=None,
    help="Only this protocol.",
)
@click.option("--state", default=None, help="Only this socket state (e.g. ESTABLISHED).")
@click.option(
    "--risk",
    type=click.Choice([level.value for level in RiskLevel], case_sensitive=False),
    default=None,
    help="Only this risk level.",
)
@click.option("--hide-localhost", is_flag=True, help="Hide loopback and wildcard sockets.")
@click.option("--established", is_flag=True, help="Only established connections.")
@click.pass_context
def snapshot(
    ctx: click.Context,
    search: str,
    protocol: str | None,
    state: str | None,
    risk: str | None,
    hide_localhost: bool,
    established: bool,
) -> None:
    """Poll once and print every connection with its risk."""
    monitor = build_monitor(ctx)
    poll_once(monitor)

    filters = ConnectionFilter(
        search=search,
        protocol=protocol,
        state=state,
        risk=RiskLevel(risk.lower()) if risk else None,
        hide_localhost=hide_localhost,
        only_established=established,
    )
    total = len(monitor.snapshot())
    conns = monitor.get_connections(filters)
    monitor.stop()

    if not conns:
        console.print(f"[dim]No connections match ({total} total).[/dim]")
        return

    out.print(_connections_table(conns))
    console.print(f"[dim]{len(conns)} of {total} connections[/dim]")


def _connections_table(conns: list[Connection]) -> Table:
    table = Table(show_header=True, header_style="bold", box=None, padding=(0, 1))
    table.add_column("Process", no_wrap=True)
    table.add_column("PID", justify="right")
    table.add_column("Proto", width=5)
    table.add_column("Local", no_wrap=True)
    table.add_column("Remote", no_wrap=True)
    table.add_column("State")
    table.add_column("Risk")
    table.add_column("Reasons")

    for conn in conns:
        remote = f"{conn.remote_addr}:{conn.remote_port}" if conn.remote_port else "—"
        table.add_row(
            escape(conn.process_name),
            str(conn.pid),
            conn.protocol,
            f"{conn.local_addr}:{conn.local_port}",
            remote,
            conn.state,
            risk_text(conn.risk),
            escape(", ".join(conn.risk_reasons)),
        )
    return table
