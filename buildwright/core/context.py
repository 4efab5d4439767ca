"""Wires one Environment, runner and config into every component.

The CLI builds a single ``ToolContext`` per invocation; tests build one
around a fake runner and transport.
"""

from __future__ import annotations

from pathlib import Path

from buildwright.config import ToolsConfig
from buildwright.core.accelerator import Accelerator
from buildwright.core.artifact_cache import ArtifactCacheStore
from buildwright.core.builder import Builder
from buildwright.core.downloader import Transport, VerifiedDownloader, make_transport
from buildwright.core.installer import ArchiveInstaller
from buildwright.core.regen_gate import RegenerationGate
from buildwright.core.runner import CommandRunner, SubprocessRunner
from buildwright.core.sdk import SdkManager
from buildwright.models.build import BuildConfig, load_build_config
from buildwright.models.environment import Environment


class ToolContext:
    """Owns the components for one invocation.

    Parameters
    ----------
    config:
        Tool-wide settings.
    build:
        The checkout's build configuration.
    environment:
        Host description; detected from the running host when omitted.
    runner:
        Process backend; ``SubprocessRunner`` when omitted.
    transport:
        Download backend; chosen by ``config.download_tool`` when omitted.
    """

    def __init__(
        self,
        config: ToolsConfig,
        build: BuildConfig,
        *,
        environment: Environment | None = None,
        runner: CommandRunner | None = None,
        transport: Transport | None = None,
    ) -> None:
        self.config = config
        self.build_config = build
        self.environment = environment or Environment.detect(ci=config.ci)
        self.runner = runner or SubprocessRunner()

        self.cache = ArtifactCacheStore(force_redownload=config.force_redownload)
        self.downloader = VerifiedDownloader(
            transport or make_transport(config.download_tool, self.runner)
        )
        self.installer = ArchiveInstaller(self.runner, self.environment)
        self.gate = RegenerationGate(newline=self.environment.newline)

        self.accelerator = Accelerator(
            config.third_party_root,
            self.environment,
            self.runner,
            self.cache,
            self.downloader,
            self.installer,
            base_url=config.accelerator_base_url,
            source=build.accelerator_source,
        )
        self.sdk = SdkManager(
            config.third_party_root,
            build.root,
            self.environment,
            self.runner,
            self.cache,
            self.downloader,
            self.installer,
            base_url=config.sdk_base_url,
        )
        self.builder = Builder(
            build,
            self.environment,
            self.runner,
            self.gate,
            self.accelerator,
            self.sdk,
            depot_tools_dir=config.depot_tools_dir,
            default_jobs=config.default_jobs,
        )

    @classmethod
    def from_config(
        cls,
        config: ToolsConfig,
        build_config_path: Path | None = None,
        **kwargs: object,
    ) -> ToolContext:
        """Load the build configuration file and wire everything."""
        build = load_build_config(build_config_path or config.build_config_path)
        return cls(config, build, **kwargs)  # type: ignore[arg-type]
