"""Shared CLI plumbing: consoles, logging set-up, context loading, fatal sink."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import NoReturn

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape

from buildwright.config import ToolsConfig, config
from buildwright.core.context import ToolContext
from buildwright.core.errors import BuildToolsError

console = Console()
err_console = Console(stderr=True)


def configure_logging(level: str) -> None:
    """Route all ``buildwright`` loggers through a Rich handler on stderr."""
    handler = RichHandler(
        console=err_console,
        show_time=False,
        show_path=False,
        markup=False,
    )
    root = logging.getLogger("buildwright")
    root.handlers[:] = [handler]
    root.setLevel(level.upper())


def load_context(
    config_path: Path | None = None, settings: ToolsConfig | None = None
) -> ToolContext:
    """Build the per-invocation ``ToolContext`` from settings and the build file."""
    return ToolContext.from_config(settings or config, config_path)


def fatal(exc: BuildToolsError) -> NoReturn:
    """Print one colored error line and exit with the error's code."""
    err_console.print(f"[bold red]ERROR[/bold red] {escape(str(exc))}", highlight=False)
    raise typer.Exit(code=exc.exit_code)
