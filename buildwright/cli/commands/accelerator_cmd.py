"""``buildwright accelerator`` — manage the compilation accelerator client.

Subcommands: ``auth`` (download if needed, then log in), ``status``
(installed vs. pinned bundle, last login), ``logout`` (forget the cached
login time so the next build re-checks).
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import typer
from rich.table import Table

from buildwright.cli import output
from buildwright.core.errors import BuildToolsError

accelerator_app = typer.Typer(
    name="accelerator",
    help="Manage the compilation accelerator client.",
    no_args_is_help=True,
)

_CONFIG_OPTION = typer.Option(
    None,
    "--config",
    "-c",
    help="Path to the build configuration JSON file.",
)


@accelerator_app.command(name="auth", help="Log in to the accelerator cluster.")
def auth_cmd(config_path: Optional[Path] = _CONFIG_OPTION) -> None:
    try:
        context = output.load_context(config_path)
        if not context.accelerator.is_supported:
            output.console.print("[yellow]Goma is not supported on this platform.[/yellow]")
            raise typer.Exit(code=1)
        context.accelerator.authenticate()
    except BuildToolsError as exc:
        output.fatal(exc)
    output.console.print("[green]Goma is authenticated.[/green]")


@accelerator_app.command(name="status", help="Show the accelerator client state.")
def status_cmd(config_path: Optional[Path] = _CONFIG_OPTION) -> None:
    try:
        context = output.load_context(config_path)
    except BuildToolsError as exc:
        output.fatal(exc)

    status = context.accelerator.status()
    table = Table(title="Goma")
    table.add_column("Field", style="cyan")
    table.add_column("Value")
    for key, value in status.items():
        if isinstance(value, bool):
            shown = "[green]Yes[/green]" if value else "[yellow]No[/yellow]"
        elif value is None:
            shown = "[dim]-[/dim]"
        else:
            shown = str(value)
        table.add_row(key.replace("_", " "), shown)
    output.console.print(table)


@accelerator_app.command(name="logout", help="Forget the cached login time.")
def logout_cmd(config_path: Optional[Path] = _CONFIG_OPTION) -> None:
    try:
        context = output.load_context(config_path)
    except BuildToolsError as exc:
        output.fatal(exc)
    context.accelerator.clear_login_time()
    output.console.print("[dim]Cleared last known Goma login.[/dim]")
