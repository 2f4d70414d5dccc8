"""CLI command: netwatch server — serve the monitoring API."""

from __future__ import annotations

import click
from rich.console import Console

from netwatch.cli.common import load_config

console = Console(stderr=True)


@click.command()
@click.option(
    "--port",
    type=int,
    default=None,
    help="Port to listen on (default: 8471).",
)
@click.pass_context
def server(ctx: click.Context, port: int | None) -> None:
    """Start the NetWatch HTTP API."""
    try:
        import uvicorn
    except ImportError:
        console.print(
            "[red]Web dependencies not installed.[/red]\n"
            "Install with: pip install netwatch[web]"
        )
        raise SystemExit(1)

    config = load_config(ctx)
    if port is not None:
        config.web_port = port

    console.print(
        f"[bold]NetWatch[/bold] API starting on "
        f"[cyan]http://{config.web_host}:{config.web_port}/api[/cyan]"
    )
    console.print("  [dim]Bound to 127.0.0.1 only[/dim]\n")

    from netwatch.web.app import create_app

    app = create_app(config)
    uvicorn.run(
        app,
        host=config.web_host,
        port=config.web_port,
        log_level="debug" if config.verbose else "info",
    )
