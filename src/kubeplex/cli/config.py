"""
CLI: ``kube-plex-ctl config`` — configuration inspection.
"""

from __future__ import annotations

import typer

from kubeplex.cli.utils import console, fail

app = typer.Typer(no_args_is_help=True)


@app.command("show")
def show_config(
    format: str = typer.Option("table", "--format", "-f", help="Output format: table, json, env"),
) -> None:
    """Show the settings resolved from the environment."""
    from kubeplex.core.config import load_settings
    from kubeplex.core.errors import ConfigError

    try:
        settings = load_settings()
    except ConfigError as e:
        raise fail(e) from e

    if format == "json":
        console.print_json(settings.model_dump_json())
        return

    names = settings.env_names()
    values = settings.model_dump()

    if format == "env":
        for key in sorted(values):
            value = values[key]
            console.print(f"{names[key]}={'' if value is None else value}")
        return

    from rich.table import Table

    table = Table(title="kube-plex settings")
    table.add_column("Setting")
    table.add_column("Variable")
    table.add_column("Value")
    for key in values:
        value = values[key]
        table.add_row(key, names[key], "[dim]unset[/dim]" if value is None else str(value))
    console.print(table)
