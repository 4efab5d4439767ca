"""``buildwright load-sdk`` — install and activate the SDK the checkout expects."""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import typer

from buildwright.cli import output
from buildwright.core.errors import BuildToolsError


def load_sdk_cmd(
    quiet: bool = typer.Option(
        False,
        "--quiet",
        "-q",
        help="Only print when something changed.",
    ),
    config_path: Optional[Path] = typer.Option(
        None,
        "--config",
        "-c",
        help="Path to the build configuration JSON file.",
    ),
) -> None:
    """Download, verify, extract and activate the expected Xcode."""
    try:
        context = output.load_context(config_path)
        if not context.environment.is_macos:
            if not quiet:
                output.console.print("[dim]Xcode is only managed on macOS.[/dim]")
            return
        changed = context.sdk.ensure()
    except BuildToolsError as exc:
        output.fatal(exc)

    if changed or not quiet:
        output.console.print(
            f"[green]Xcode ready:[/green] {context.sdk.active_path}", highlight=False
        )
