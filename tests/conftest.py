"""Shared test fixtures for buildwright.

No test touches the network or a real external tool: processes go through
``FakeRunner`` and downloads through ``FakeTransport``.
"""

from __future__ import annotations

import json
from collections.abc import Callable
from pathlib import Path

import pytest

from buildwright.config import ToolsConfig
from buildwright.core.artifact_cache import ArtifactCacheStore
from buildwright.core.context import ToolContext
from buildwright.core.downloader import VerifiedDownloader
from buildwright.core.installer import ArchiveInstaller
from buildwright.models.build import BuildConfig
from buildwright.models.environment import Environment
from fakes import FakeRunner, FakeTransport


# ---------------------------------------------------------------------------
# Environments
# ---------------------------------------------------------------------------


@pytest.fixture
def linux_env() -> Environment:
    return Environment(os_family="linux", arch="x64", os_version="6.5.0", cpu_count=4)


@pytest.fixture
def mac_env() -> Environment:
    return Environment(os_family="darwin", arch="arm64", os_version="14.2.1", cpu_count=10)


@pytest.fixture
def win_env() -> Environment:
    return Environment(os_family="win32", arch="x64", os_version="10", cpu_count=8)


# ---------------------------------------------------------------------------
# Components
# ---------------------------------------------------------------------------


@pytest.fixture
def runner() -> FakeRunner:
    return FakeRunner()


@pytest.fixture
def transport() -> FakeTransport:
    return FakeTransport(payload=b"archive-bytes")


@pytest.fixture
def third_party(tmp_path: Path) -> Path:
    path = tmp_path / "third_party"
    path.mkdir()
    return path


@pytest.fixture
def cache() -> ArtifactCacheStore:
    return ArtifactCacheStore()


@pytest.fixture
def downloader(transport: FakeTransport) -> VerifiedDownloader:
    return VerifiedDownloader(transport)


@pytest.fixture
def installer(runner: FakeRunner, linux_env: Environment) -> ArchiveInstaller:
    return ArchiveInstaller(runner, linux_env)


@pytest.fixture
def checkout(tmp_path: Path) -> Path:
    """An empty checkout root with a ``src/`` directory."""
    root = tmp_path / "checkout"
    (root / "src").mkdir(parents=True)
    return root


@pytest.fixture
def tools_config(tmp_path: Path, third_party: Path) -> ToolsConfig:
    return ToolsConfig(
        third_party_root=third_party,
        build_config_path=tmp_path / "build.json",
        ci=False,
        force_redownload=False,
    )


@pytest.fixture
def build_config_file(tmp_path: Path, checkout: Path) -> Path:
    path = tmp_path / "build.json"
    path.write_text(json.dumps({"root": str(checkout)}), encoding="utf-8")
    return path


@pytest.fixture
def make_context(
    tools_config: ToolsConfig,
    checkout: Path,
    runner: FakeRunner,
    transport: FakeTransport,
    linux_env: Environment,
) -> Callable[..., ToolContext]:
    """Factory fixture: a ToolContext around the fakes."""

    def _factory(environment: Environment | None = None, **build_overrides: object) -> ToolContext:
        build = BuildConfig(root=checkout, **build_overrides)
        return ToolContext(
            tools_config,
            build,
            environment=environment or linux_env,
            runner=runner,
            transport=transport,
        )

    return _factory
