"""``buildwright build [TARGET] [NINJA_ARGS...]`` — build a target.

Regenerates the build files when the arguments changed (or ``--gen`` is
given), prepares the compilation accelerator unless ``--no-accelerator``,
ensures the SDK on macOS, and runs the executor.  Unknown options pass
straight through to ninja.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import typer

from buildwright.cli import output
from buildwright.core.errors import BuildToolsError


def build_cmd(
    ctx: typer.Context,
    target: Optional[str] = typer.Argument(
        None,
        help="Target alias (see --list-targets) or a ninja argument.",
    ),
    ninja_args: Optional[list[str]] = typer.Argument(
        None,
        help="Extra arguments passed to ninja.",
    ),
    list_targets: bool = typer.Option(
        False,
        "--list-targets",
        help="Show all supported build targets.",
    ),
    gen: bool = typer.Option(
        False,
        "--gen",
        help="Force a re-run of `gn gen` before building.",
    ),
    forced_target: Optional[str] = typer.Option(
        None,
        "--target",
        "-t",
        help="Force a specific ninja target.",
    ),
    accelerator: bool = typer.Option(
        True,
        "--accelerator/--no-accelerator",
        help="Build through the compilation accelerator.",
    ),
    config_path: Optional[Path] = typer.Option(
        None,
        "--config",
        "-c",
        help="Path to the build configuration JSON file.",
    ),
) -> None:
    """Build Electron and other targets."""
    try:
        context = output.load_context(config_path)

        if list_targets:
            targets = context.build_config.targets
            for alias in sorted(targets):
                output.console.print(
                    f"{alias} --> [cyan]{targets[alias]}[/cyan]", highlight=False, emoji=False
                )
            return

        extra = list(ninja_args or []) + list(ctx.args)
        context.builder.build(
            target,
            extra,
            forced_target=forced_target,
            force_gen=gen,
            use_accelerator=accelerator,
        )
    except BuildToolsError as exc:
        output.fatal(exc)
