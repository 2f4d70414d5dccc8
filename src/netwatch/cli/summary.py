"""CLI command: netwatch summary — per-process and per-port rollups."""

from __future__ import annotations

import click
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from netwatch.cli.common import build_monitor, poll_once, risk_text

out = Console()


@click.command()
@click.option("--top", "-n", type=int, default=10, show_default=True, help="Rows per table.")
@click.pass_context
def summary(ctx: click.Context, top: int) -> None:
    """Poll once and summarize connections by process and remote port."""
    monitor = build_monitor(ctx)
    poll_once(monitor)

    stats = monitor.get_stats()
    processes = monitor.get_process_summaries()[:top]
    ports = monitor.get_port_summaries()[:top]
    monitor.stop()

    totals = Table(show_header=False, box=None, padding=(0, 2))
    totals.add_column(style="dim")
    totals.add_column()
    totals.add_row("Active connections", str(stats.active_connections))
    totals.add_row("Unique remote IPs", str(stats.unique_remote_addrs))
    totals.add_row("Established TCP", str(stats.established_tcp))
    totals.add_row("Listening ports", str(stats.listening_ports))
    totals.add_row(
        "By risk",
        f"[bold red]{stats.high_risk} high[/bold red]  "
        f"[yellow]{stats.medium_risk} medium[/yellow]  "
        f"[green]{stats.low_risk} low[/green]",
    )
    out.print("[bold]Totals[/bold]")
    out.print(totals)

    proc_table = Table(title="Processes", title_justify="left", box=None, padding=(0, 1))
    proc_table.add_column("PID", justify="right")
    proc_table.add_column("Process")
    proc_table.add_column("Connections", justify="right")
    proc_table.add_column("Max risk")
    for proc in processes:
        proc_table.add_row(
            str(proc.key),
            escape(proc.display_name),
            str(proc.connection_count),
            risk_text(proc.max_risk),
        )
    out.print()
    out.print(proc_table)

    port_table = Table(title="Remote ports", title_justify="left", box=None, padding=(0, 1))
    port_table.add_column("Port")
    port_table.add_column("Proto")
    port_table.add_column("Connections", justify="right")
    port_table.add_column("Max risk")
    for port in ports:
        port_table.add_row(
            port.display_name,
            port.protocol,
            str(port.connection_count),
            risk_text(port.max_risk),
        )
    out.print()
    out.print(port_table)
