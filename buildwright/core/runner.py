"""Pluggable process-spawning backend.

Every component that calls an external tool receives a ``CommandRunner``
instead of calling :mod:`subprocess` directly, so pipeline stages can be
exercised against a fake runner that returns canned results.
"""

from __future__ import annotations

import logging
import os
import subprocess
from collections.abc import Mapping, Sequence
from pathlib import Path
from typing import Protocol, runtime_checkable

from pydantic import BaseModel, ConfigDict

from buildwright.core.errors import SubprocessFailure

logger = logging.getLogger(__name__)

# Exit status reported when the executable cannot be spawned at all.
SPAWN_FAILURE_STATUS = 127


class CommandResult(BaseModel):
    """Outcome of one external command."""

    model_config = ConfigDict(frozen=True)

    cmd: tuple[str, ...] = ()
    returncode: int = 0
    stdout: str = ""
    stderr: str = ""

    @property
    def ok(self) -> bool:
        return self.returncode == 0

    def check(self, what: str = "") -> CommandResult:
        """Return self, or raise ``SubprocessFailure`` on a non-zero exit."""
        if self.ok:
            return self
        label = what or " ".join(self.cmd)
        message = f"Failed to run command: {label}\n Exit Code: \"{self.returncode}\""
        if self.stderr.strip():
            message += f"\n {self.stderr.strip()}"
        raise SubprocessFailure(message, returncode=self.returncode)


@runtime_checkable
class CommandRunner(Protocol):
    """Protocol for process-spawning backends.

    Any object with a matching ``run`` method satisfies this protocol.
    """

    def run(
        self,
        cmd: Sequence[str],
        *,
        cwd: Path | None = None,
        env: Mapping[str, str] | None = None,
        capture: bool = True,
    ) -> CommandResult:
        """Run *cmd* to completion.

        Parameters
        ----------
        cmd:
            Executable followed by its arguments.
        cwd:
            Working directory, or the current one.
        env:
            Variables merged over the current process environment.
        capture:
            Capture stdout/stderr when True; inherit stdio otherwise.
        """
        ...


class SubprocessRunner:
    """Default runner backed by :func:`subprocess.run`."""

    def run(
        self,
        cmd: Sequence[str],
        *,
        cwd: Path | None = None,
        env: Mapping[str, str] | None = None,
        capture: bool = True,
    ) -> CommandResult:
        argv = tuple(str(part) for part in cmd)
        merged_env = None
        if env:
            merged_env = {**os.environ, **{k: str(v) for k, v in env.items()}}

        logger.debug("Running %s (cwd=%s)", " ".join(argv), cwd or ".")
        try:
            completed = subprocess.run(
                argv,
                cwd=cwd,
                env=merged_env,
                capture_output=capture,
                text=True,
            )
        except OSError as exc:
            logger.debug("Could not spawn %s: %s", argv[0], exc)
            return CommandResult(
                cmd=argv, returncode=SPAWN_FAILURE_STATUS, stderr=str(exc)
            )

        return CommandResult(
            cmd=argv,
            returncode=completed.returncode,
            stdout=completed.stdout or "",
            stderr=completed.stderr or "",
        )
