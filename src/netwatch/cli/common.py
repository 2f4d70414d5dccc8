"""Helpers shared by the CLI commands."""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path

import click
from rich.console import Console

from netwatch.config import NetWatchConfig
from netwatch.monitor.scheduler import CycleResult, PollOutcome
from netwatch.monitor.service import NetWatchMonitor, create_monitor
from netwatch.risk.models import RiskLevel

console = Console(stderr=True)

RISK_STYLES = {
    RiskLevel.LOW: "green",
    RiskLevel.MEDIUM: "yellow",
    RiskLevel.HIGH: "bold red",
}


def load_config(ctx: click.Context) -> NetWatchConfig:
    """Environment config, with the --rules option taking priority."""
    config = NetWatchConfig.load()
    rules_path = ctx.obj.get("rules_path") if ctx.obj else None
    if rules_path:
        config.rules_path = Path(rules_path)
    config.verbose = bool(ctx.obj.get("verbose")) if ctx.obj else False
    return config


def build_monitor(
    ctx: click.Context,
    on_cycle: Callable[[CycleResult], None] | None = None,
) -> NetWatchMonitor:
    config = load_config(ctx)
    try:
        return create_monitor(config, on_cycle=on_cycle)
    except (OSError, ValueError) as exc:
        console.print(f"[red]Failed to load risk profile:[/red] {exc}")
        raise SystemExit(1)


def poll_once(monitor: NetWatchMonitor) -> None:
    """Run a single poll, exiting with status 1 if the source failed."""
    outcome = monitor.refresh()
    if outcome != PollOutcome.PUBLISHED:
        error = monitor.scheduler.last_error or outcome.value
        console.print(f"[red]Could not read the connection table:[/red] {error}")
        monitor.stop()
        raise SystemExit(1)


def risk_text(risk: RiskLevel) -> str:
    style = RISK_STYLES[risk]
    return f"[{style}]{risk.value}[/{style}]"
