"""Main Typer application — imports and registers all CLI commands.

Entry point: ``buildwright`` (configured via pyproject.toml scripts).

Commands: build, load-sdk, accelerator {auth,status,logout}.
"""

from __future__ import annotations

import typer

from buildwright import __version__
from buildwright.cli import output
from buildwright.cli.commands.accelerator_cmd import accelerator_app
from buildwright.cli.commands.build import build_cmd
from buildwright.cli.commands.load_sdk import load_sdk_cmd
from buildwright.config import config

app = typer.Typer(
    name="buildwright",
    help="buildwright: build wrapper around gn, ninja, goma and Xcode.",
    no_args_is_help=True,
    rich_markup_mode="rich",
    add_completion=False,
)


def _version_callback(value: bool) -> None:
    if value:
        output.console.print(f"buildwright {__version__}")
        raise typer.Exit()


@app.callback()
def main_callback(
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Log at DEBUG level."
    ),
    version: bool = typer.Option(
        False,
        "--version",
        callback=_version_callback,
        is_eager=True,
        help="Show the version and exit.",
    ),
) -> None:
    """Configure logging before any command runs."""
    level = "DEBUG" if verbose or config.debug else config.log_level
    output.configure_logging(level)


# Register subcommands
app.command(
    name="build",
    help="Build Electron and other targets.",
    context_settings={"allow_extra_args": True, "ignore_unknown_options": True},
)(build_cmd)
app.command(name="load-sdk", help="Install and activate the expected Xcode.")(load_sdk_cmd)
app.add_typer(accelerator_app, name="accelerator")


def main() -> None:
    """CLI entry point."""
    app()


if __name__ == "__main__":
    main()
