"""Generator and executor orchestration for one checkout.

``build()`` is the whole ``buildwright build`` flow:

    resolve target -> ensure SDK (macOS) -> [accelerator: prepare, auth,
    start] -> regenerate if forced or stale -> run the executor

Every external tool blocks until it exits; a non-zero exit stops the flow
with the tool's own exit code.
"""

from __future__ import annotations

import logging
import os
import re
from collections.abc import Sequence
from pathlib import Path

from pydantic import BaseModel, ConfigDict

from buildwright.core.accelerator import Accelerator
from buildwright.core.regen_gate import RegenerationGate
from buildwright.core.runner import CommandRunner
from buildwright.core.sdk import SdkManager
from buildwright.models.build import AcceleratorMode, BuildConfig, DesiredArgs
from buildwright.models.environment import Environment

logger = logging.getLogger(__name__)

_JOBS_ARG_RE = re.compile(r"^-j[0-9]+$")


class ResolvedTarget(BaseModel):
    """Executor target plus the arguments that precede it."""

    model_config = ConfigDict(frozen=True)

    target: str
    executor_args: list[str]


def resolve_target(
    targets: dict[str, str],
    target: str | None,
    executor_args: Sequence[str],
    forced_target: str | None = None,
) -> ResolvedTarget:
    """Work out which executor target the user meant.

    A forced target wins and the positional target becomes an executor
    argument.  A positional target naming a known alias resolves to it.
    Anything else is an executor argument and the ``default`` alias is used.
    """
    args = list(executor_args)
    if forced_target:
        if target:
            args.insert(0, target)
        return ResolvedTarget(target=forced_target, executor_args=args)
    if target in targets:
        return ResolvedTarget(target=targets[target], executor_args=args)
    if target:
        args.insert(0, target)
    return ResolvedTarget(target=targets["default"], executor_args=args)


def has_jobs_arg(args: Sequence[str]) -> bool:
    return "-j" in args or any(_JOBS_ARG_RE.match(arg.strip()) for arg in args)


class Builder:
    """Drives the generator (gn) and executor (ninja) for a checkout.

    Parameters
    ----------
    build:
        The checkout's build configuration.
    environment:
        Host description.
    runner:
        Runs gn, ninja and the accelerator scripts.
    gate:
        Decides whether gn must run again.
    accelerator:
        The accelerator client, used when the build asks for it.
    sdk:
        The SDK manager, used on macOS for non-Chromium targets.
    depot_tools_dir:
        Optional directory holding the gn/ninja wrappers.
    default_jobs:
        Parallelism passed to ninja when the accelerator is in use.
    """

    def __init__(
        self,
        build: BuildConfig,
        environment: Environment,
        runner: CommandRunner,
        gate: RegenerationGate,
        accelerator: Accelerator,
        sdk: SdkManager,
        *,
        depot_tools_dir: Path | None = None,
        default_jobs: int = 200,
    ) -> None:
        self._build = build
        self._env = environment
        self._runner = runner
        self._gate = gate
        self._accelerator = accelerator
        self._sdk = sdk
        self._depot_tools_dir = depot_tools_dir
        self._default_jobs = default_jobs

    @property
    def out_dir(self) -> Path:
        return self._build.out_dir

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _tool(self, name: str) -> str:
        executable = self._env.executable(name, windows_suffix=".bat")
        if self._depot_tools_dir is not None:
            return str(self._depot_tools_dir / executable)
        return executable

    def _tool_env(self, extra: dict[str, str] | None = None) -> dict[str, str]:
        env: dict[str, str] = {}
        if self._depot_tools_dir is not None:
            env["PATH"] = os.pathsep.join(
                [str(self._depot_tools_dir), os.environ.get("PATH", "")]
            )
        env.update(extra or {})
        return env

    def desired_args(self) -> DesiredArgs:
        return DesiredArgs.from_config(
            self._build,
            newline=self._env.newline,
            accelerator_gn_file=self._accelerator.gn_file,
        )

    # ------------------------------------------------------------------
    # Generator
    # ------------------------------------------------------------------

    def run_gn_gen(self) -> None:
        """Run ``gn gen`` for the configured output directory."""
        args = self.desired_args()
        logger.info("Running gn gen for out/%s", self._build.out)
        self._runner.run(
            [self._tool("gn"), "gen", f"out/{self._build.out}", f"--args={args.as_cli_value()}"],
            cwd=self._build.src_dir,
            env=self._tool_env(),
            capture=False,
        ).check("gn gen")

    def ensure_gn_gen(self) -> bool:
        """Run ``gn gen`` only if the gate says so.  Returns True if it ran."""
        if not self._gate.check(self.desired_args()):
            return False
        self.run_gn_gen()
        return True

    # ------------------------------------------------------------------
    # Executor
    # ------------------------------------------------------------------

    def run_ninja(self, target: str, use_accelerator: bool, executor_args: Sequence[str]) -> None:
        """Build *target*, going through the accelerator when requested."""
        args = list(executor_args)
        extra_env: dict[str, str] = {}
        if use_accelerator and self._build.accelerator is not AcceleratorMode.NONE:
            self._accelerator.prepare()
            if self._build.accelerator is AcceleratorMode.CLUSTER:
                self._accelerator.authenticate()
            self._accelerator.ensure_started()
            if not has_jobs_arg(args):
                args.extend(["-j", str(self._default_jobs)])
        else:
            logger.info("Building %s with Goma disabled", target)
            use_accelerator = False

        self.ensure_gn_gen()

        if not use_accelerator:
            extra_env["GOMA_DISABLED"] = "true"
        self._runner.run(
            [self._tool("ninja"), *args, target],
            cwd=self.out_dir,
            env=self._tool_env(extra_env),
            capture=False,
        ).check(f"ninja {target}")

    def build(
        self,
        target: str | None = None,
        executor_args: Sequence[str] = (),
        *,
        forced_target: str | None = None,
        force_gen: bool = False,
        use_accelerator: bool = True,
    ) -> ResolvedTarget:
        """Full build flow.  Returns the resolved target."""
        targets = self._build.targets
        resolved = resolve_target(targets, target, executor_args, forced_target)

        if self._env.is_macos and resolved.target != targets.get("chromium"):
            self._sdk.ensure()

        if force_gen:
            self.run_gn_gen()

        self.run_ninja(resolved.target, use_accelerator, resolved.executor_args)
        return resolved
