"""buildwright CLI — Typer-based command-line interface.

Provides the ``buildwright`` command with subcommands for building targets,
loading the SDK and managing the compilation accelerator.

All output uses Rich for formatted terminal display.
"""
