"""CLI entry point — Click group with global options."""

from __future__ import annotations

import logging

import click

from netwatch import __version__


@click.group()
@click.version_option(version=__version__, prog_name="netwatch")
@click.option(
    "--rules",
    "-r",
    type=click.Path(exists=True, dir_okay=False),
    help="Path to a YAML risk profile.",
)
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output.")
@click.pass_context
def main(ctx: click.Context, rules: str | None, verbose: bool) -> None:
    """NetWatch — watch this host's network connections and flag risky ones."""
    ctx.ensure_object(dict)
    ctx.obj["rules_path"] = rules
    ctx.obj["verbose"] = verbose

    level = logging.DEBUG if verbose else logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )


def _register_commands() -> None:
    from netwatch.cli.export import export  # noqa: F811
    from netwatch.cli.server import server  # noqa: F811
    from netwatch.cli.snapshot import snapshot  # noqa: F811
    from netwatch.cli.summary import summary  # noqa: F811
    from netwatch.cli.watch import watch  # noqa: F811

    main.add_command(snapshot)
    main.add_command(summary)
    main.add_command(export)
    main.add_command(watch)
    main.add_command(server)


_register_commands()
