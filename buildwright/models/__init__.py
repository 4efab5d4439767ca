"""buildwright data models — all Pydantic v2, all frozen (immutable)."""

from buildwright.models.artifacts import (
    ArchiveKind,
    ArtifactSpec,
    ChecksumAlgorithm,
    DownloadAttempt,
    InstallMarker,
)
from buildwright.models.build import (
    AcceleratorMode,
    AcceleratorSource,
    BuildConfig,
    DesiredArgs,
    load_build_config,
)
from buildwright.models.environment import Environment

__all__ = [
    # artifacts
    "ArchiveKind",
    "ArtifactSpec",
    "ChecksumAlgorithm",
    "DownloadAttempt",
    "InstallMarker",
    # build
    "AcceleratorMode",
    "AcceleratorSource",
    "BuildConfig",
    "DesiredArgs",
    "load_build_config",
    # environment
    "Environment",
]
