"""Downloadable artifact models: what to fetch, how to verify it, where it lives."""

from __future__ import annotations

import re
from enum import Enum
from pathlib import Path

from pydantic import BaseModel, ConfigDict, field_validator, model_validator

_HEX_RE = re.compile(r"^[0-9a-f]+$")


class ArchiveKind(str, Enum):
    """Container format of a downloaded artifact."""

    ZIP = "zip"
    TAR_GZIP = "tar-gzip"

    @classmethod
    def from_filename(cls, filename: str) -> ArchiveKind:
        if filename.endswith((".tgz", ".tar.gz")):
            return cls.TAR_GZIP
        if filename.endswith(".zip"):
            return cls.ZIP
        raise ValueError(f"Unable to guess archive type of {filename!r}")


class ChecksumAlgorithm(str, Enum):
    """Digest family used to verify an artifact.

    Each artifact declares its own; the accelerator table ships SHA-256
    digests while the SDK table ships MD5.
    """

    MD5 = "md5"
    SHA256 = "sha256"

    @property
    def hex_length(self) -> int:
        return {ChecksumAlgorithm.MD5: 32, ChecksumAlgorithm.SHA256: 64}[self]


class ArtifactSpec(BaseModel):
    """Identifies one installable artifact.

    ``expected_checksum`` is normalized to lowercase hex and must have the
    length of ``checksum_algorithm``'s digest.
    """

    model_config = ConfigDict(frozen=True)

    name: str
    platform_key: str
    expected_checksum: str
    checksum_algorithm: ChecksumAlgorithm = ChecksumAlgorithm.SHA256
    source_url: str
    archive_kind: ArchiveKind
    install_dir: Path
    marker_name: str = ".sha"

    @field_validator("expected_checksum")
    @classmethod
    def _lowercase_hex(cls, value: str) -> str:
        value = value.strip().lower()
        if not _HEX_RE.match(value):
            raise ValueError(f"expected_checksum is not a hex digest: {value!r}")
        return value

    @model_validator(mode="after")
    def _digest_length_matches_algorithm(self) -> ArtifactSpec:
        if len(self.expected_checksum) != self.checksum_algorithm.hex_length:
            raise ValueError(
                f"{self.name}: {self.checksum_algorithm.value} digest must be "
                f"{self.checksum_algorithm.hex_length} hex characters, "
                f"got {len(self.expected_checksum)}"
            )
        return self

    @property
    def marker_path(self) -> Path:
        """Location of the install marker: ``<install_dir>/<marker_name>``."""
        return self.install_dir / self.marker_name

    @property
    def filename(self) -> str:
        """Last path segment of ``source_url``."""
        return self.source_url.rstrip("/").rsplit("/", 1)[-1]


class InstallMarker(BaseModel):
    """On-disk record of what is currently installed for an artifact."""

    model_config = ConfigDict(frozen=True)

    value: str
    path: Path


class DownloadAttempt(BaseModel):
    """A verified download waiting in its temp file.

    Produced by the downloader only after the digest matched.  The caller
    either commits it to ``dest_path`` or hands ``temp_path`` to the
    installer.
    """

    model_config = ConfigDict(frozen=True)

    url: str
    temp_path: Path
    dest_path: Path
    checksum: str
    algorithm: ChecksumAlgorithm
