"""CLI command: netwatch export — write the connection table to JSON or CSV."""

from __future__ import annotations

import click

from netwatch.cli.common import build_monitor, console, poll_once
from netwatch.export import EXPORT_FORMATS


@click.command()
@click.option(
    "--format",
    "fmt",
    type=click.Choice(EXPORT_FORMATS, case_sensitive=False),
    default="json",
    show_default=True,
    help="Output format.",
)
@click.option(
    "--output",
    "-o",
    type=click.Path(file_okay=False),
    default=None,
    help="Directory to write into (default: the data dir's exports/).",
)
@click.pass_context
def export(ctx: click.Context, fmt: str, output: str | None) -> None:
    """Poll once and export the connection table."""
    monitor = build_monitor(ctx)
    poll_once(monitor)
    try:
        path = monitor.export_snapshot(fmt, output)
    except OSError as e:
        console.print(f"[red]Export failed:[/red] {e}")
        raise SystemExit(1)
    finally:
        monitor.stop()

    click.echo(str(path))
