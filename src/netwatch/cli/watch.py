"""CLI command: netwatch watch — stream connection changes as they happen."""

from __future__ import annotations

import signal
import time

import click
from rich.markup import escape
from rich.table import Table

from netwatch.cli.common import build_monitor, console, risk_text
from netwatch.monitor.models import ChangeKind
from netwatch.monitor.scheduler import CycleResult
from netwatch.risk.models import RiskLevel

_KIND_STYLES = {
    ChangeKind.NEW: ("green", "+"),
    ChangeKind.CHANGED: ("yellow", "~"),
    ChangeKind.CLOSED: ("dim", "-"),
}


@click.command()
@click.option(
    "--interval",
    "-i",
    type=float,
    default=None,
    help="Seconds between polls (default: 2.0 or NETWATCH_POLL_INTERVAL).",
)
@click.option(
    "--quiet-start",
    is_flag=True,
    help="Do not list the connections already open at startup.",
)
@click.pass_context
def watch(ctx: click.Context, interval: float | None, quiet_start: bool) -> None:
    """Poll continuously and print new, closed, and changed connections."""
    counts = {"polls": 0, "events": 0, "high": 0}

    def on_cycle(result: CycleResult) -> None:
        counts["polls"] += 1
        first_poll = result.previous is None
        if first_poll:
            console.print(
                f"  [dim]{len(result.snapshot)} connections open at start[/dim]"
            )
            if quiet_start:
                return

        by_id = {conn.identity: conn for conn in result.snapshot.connections}
        for event in result.events:
            counts["events"] += 1
            color, mark = _KIND_STYLES[event.kind]
            ts = time.strftime("%H:%M:%S", time.localtime(event.timestamp / 1000))
            line = f"  [dim]{ts}[/dim] [{color}]{mark}[/{color}] {escape(event.message)}"
            conn = by_id.get(event.identity)
            if conn is not None and event.kind != ChangeKind.CLOSED:
                line += f"  {risk_text(conn.risk)}"
                if conn.risk_reasons and conn.risk > RiskLevel.LOW:
                    line += f" [dim]({escape(', '.join(conn.risk_reasons))})[/dim]"
                if conn.risk == RiskLevel.HIGH:
                    counts["high"] += 1
            console.print(line)

    monitor = build_monitor(ctx, on_cycle=on_cycle)
    config = monitor.config
    if interval is not None:
        config.poll_interval = interval

    console.print(
        f"[bold]NetWatch[/bold] polling every {config.poll_interval:.1f}s"
        + (f" with rules [cyan]{config.rules_path}[/cyan]" if config.rules_path else "")
    )
    console.print("  Press Ctrl+C to stop.\n")

    def _signal_handler(signum: int, frame: object) -> None:
        console.print("\n[dim]Stopping...[/dim]")
        monitor.scheduler.stop()

    signal.signal(signal.SIGINT, _signal_handler)
    signal.signal(signal.SIGTERM, _signal_handler)

    try:
        monitor.scheduler.run(config.poll_interval)
    except KeyboardInterrupt:
        pass
    finally:
        last_error = monitor.scheduler.last_error
        monitor.stop()

    console.print("\n[bold]Watch Summary[/bold]")
    table = Table(show_header=False, box=None, padding=(0, 2))
    table.add_column(style="dim")
    table.add_column()
    table.add_row("Polls", str(counts["polls"]))
    table.add_row("Changes", str(counts["events"]))
    table.add_row("High-risk changes", str(counts["high"]))
    if last_error:
        table.add_row("Last error", escape(last_error))
    console.print(table)
