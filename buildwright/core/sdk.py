"""Platform SDK (Xcode) management for macOS builds.

Directory layout::

    {third_party}/Xcode/
        Xcode.app            — symlink to the active versioned install
        Xcode-<version>.app  — versioned installs, kept for fast switching
        Xcode.zip            — download in flight (removed after install)
        .version             — install marker (active version)

The desired version is read from the checkout's CI configuration; when it
cannot be determined, or is unusable on this host, the highest known
version is used instead.
"""

from __future__ import annotations

import logging
import re
from pathlib import Path

from pydantic import BaseModel, ConfigDict

from buildwright.core.artifact_cache import ArtifactCacheStore
from buildwright.core.downloader import VerifiedDownloader
from buildwright.core.installer import ArchiveInstaller, remove_path
from buildwright.core.runner import CommandRunner
from buildwright.core.version_resolver import (
    CandidateSource,
    PlatformConstraint,
    VersionResolver,
    minimum_major_constraint,
    regex_extractor,
)
from buildwright.models.artifacts import ArchiveKind, ArtifactSpec, ChecksumAlgorithm
from buildwright.models.environment import Environment

logger = logging.getLogger(__name__)

SDK_NAME = "Xcode"


class SdkRelease(BaseModel):
    """One downloadable SDK archive."""

    model_config = ConfigDict(frozen=True)

    file_name: str
    md5: str


SDK_VERSIONS: dict[str, SdkRelease] = {
    "9.4.1": SdkRelease(file_name="Xcode-9.4.1.zip", md5="84be26baae0ce613e64306e0c39162ae"),
    "10.3.0": SdkRelease(file_name="Xcode-10.3.0.zip", md5="df587e65d9243fc87b22db617e23c376"),
    "11.1.0": SdkRelease(file_name="Xcode-11.1.zip", md5="f24c258035ed1513afc96eaa9a2500c0"),
    "11.5.0": SdkRelease(file_name="Xcode-11.5.zip", md5="2665cc451d86e58bac68dcced0a22945"),
    "12.0.0-UA": SdkRelease(file_name="Xcode-12.0.0-UA.zip", md5="28c3f8a906be53361260b01fa5792baa"),
    "12.2.0": SdkRelease(file_name="Xcode-12.2.0.zip", md5="d1bfc9b5bc829ec81b999b78c5795508"),
    "12.4.0": SdkRelease(file_name="Xcode-12.4.0.zip", md5="20828f7208e67f99928cc88aaafca00c"),
    "13.2.1": SdkRelease(file_name="Xcode-13.2.1.zip", md5="cb1193a5a23eeeb4e9c5fd87557be8ce"),
    "13.3.0": SdkRelease(file_name="Xcode-13.3.0.zip", md5="b216a27212fdd0be922d83687aad22bf"),
    "14.1.0": SdkRelease(file_name="Xcode-14.1.0.zip", md5="3dc1a4d8bc6abd5448be4f2d96a04f62"),
    "14.3.0": SdkRelease(file_name="Xcode-14.3.0.zip", md5="4bc9043b275625568f81d9727ad6aef8"),
}

# macOS 13 (Ventura) and newer only run Xcode 14 and newer.
_MIN_SDK_MAJOR_FROM_OS = (13, 14)

_LEGACY_VERSION_RE = r'xcode: "?(\d+\.\d+\.\d+)"?'
_PARAMETER_VERSION_RE = r'description: "xcode version"\n[\S\s]+?default: (\d+\.\d+\.\d+)\n'


def extract_sdk_version(text: str) -> str | None:
    """Pull the SDK version out of a CI configuration file.

    Tries the legacy ``xcode: "x.y.z"`` key first, then the pipeline
    parameter whose description is ``"xcode version"``.
    """
    for pattern in (_LEGACY_VERSION_RE, _PARAMETER_VERSION_RE):
        version = regex_extractor(pattern, re.MULTILINE)(text)
        if version is not None:
            return version
    return None


class SdkManager:
    """Downloads, installs and activates the SDK a checkout asks for.

    Parameters
    ----------
    third_party_root:
        Directory that will hold ``Xcode/``.
    checkout_root:
        Root of the checkout whose CI config names the SDK version.
    environment:
        Host description; supplies the OS version constraint.
    runner:
        Runs ``defaults`` to read an installed SDK's version.
    cache, downloader, installer:
        The download-verify-extract pipeline.
    base_url:
        URL prefix the archive file name is appended to.
    """

    def __init__(
        self,
        third_party_root: Path,
        checkout_root: Path,
        environment: Environment,
        runner: CommandRunner,
        cache: ArtifactCacheStore,
        downloader: VerifiedDownloader,
        installer: ArchiveInstaller,
        *,
        base_url: str,
    ) -> None:
        self._dir = Path(third_party_root) / SDK_NAME
        self._checkout_root = Path(checkout_root)
        self._env = environment
        self._runner = runner
        self._cache = cache
        self._downloader = downloader
        self._installer = installer
        self._base_url = base_url
        self._resolver = VersionResolver(SDK_VERSIONS, label=SDK_NAME)

    # ------------------------------------------------------------------
    # Paths
    # ------------------------------------------------------------------

    @property
    def dir(self) -> Path:
        return self._dir

    @property
    def active_path(self) -> Path:
        return self._dir / f"{SDK_NAME}.app"

    @property
    def archive_path(self) -> Path:
        return self._dir / f"{SDK_NAME}.zip"

    def versioned_path(self, version: str) -> Path:
        return self._dir / f"{SDK_NAME}-{version}.app"

    # ------------------------------------------------------------------
    # Version resolution
    # ------------------------------------------------------------------

    def candidate_sources(self) -> list[CandidateSource]:
        """CI config files naming the SDK version, highest priority first."""
        circleci = self._checkout_root / "src" / "electron" / ".circleci"
        return [
            CandidateSource(path=circleci / "build_config.yml", extract=extract_sdk_version),
            CandidateSource(path=circleci / "config.yml", extract=extract_sdk_version),
            CandidateSource(path=circleci / "config" / "base.yml", extract=extract_sdk_version),
        ]

    def platform_constraints(self) -> list[PlatformConstraint]:
        from_os, min_major = _MIN_SDK_MAJOR_FROM_OS
        return [
            minimum_major_constraint(
                self._env.os_major if self._env.is_macos else None,
                from_os_major=from_os,
                min_version_major=min_major,
                os_label="macOS",
            )
        ]

    def expected_version(self) -> str:
        return self._resolver.resolve(self.candidate_sources(), self.platform_constraints())

    def installed_version(self, app_path: Path | None = None) -> str:
        """Version of the SDK bundle at *app_path*, or ``"unknown"``."""
        plist = (app_path or self.active_path) / "Contents" / "Info.plist"
        result = self._runner.run(["defaults", "read", str(plist), "CFBundleShortVersionString"])
        if not result.ok:
            return "unknown"
        version = result.stdout.strip()
        if len(version.split(".")) == 2:
            return f"{version}.0"
        return version

    def spec(self, version: str) -> ArtifactSpec:
        release = SDK_VERSIONS[version]
        return ArtifactSpec(
            name=SDK_NAME,
            platform_key=self._env.os_family,
            expected_checksum=release.md5,
            checksum_algorithm=ChecksumAlgorithm.MD5,
            source_url=f"{self._base_url}{release.file_name}",
            archive_kind=ArchiveKind.ZIP,
            install_dir=self._dir,
            marker_name=".version",
        )

    # ------------------------------------------------------------------
    # Install
    # ------------------------------------------------------------------

    def fix_bad_versioned_103(self) -> None:
        """Repair the ``Xcode-10.3.app`` name older releases installed under."""
        bad = self._dir / f"{SDK_NAME}-10.3.app"
        good = self.versioned_path("10.3.0")
        if not bad.exists():
            return
        if good.exists():
            remove_path(bad)
        else:
            bad.rename(good)

    def _aside_path(self, link: Path) -> Path:
        return self.versioned_path(self.installed_version(link))

    def ensure(self) -> bool:
        """Install and activate the expected SDK.  Returns True if anything changed."""
        expected = self.expected_version()
        self.fix_bad_versioned_103()
        spec = self.spec(expected)

        if self.active_path.exists() and self._cache.is_installed(spec, expected):
            remove_path(self.archive_path)
            return False

        self._dir.mkdir(parents=True, exist_ok=True)
        versioned = self.versioned_path(expected)

        if not versioned.exists():
            self._download_and_extract(spec, versioned)

        logger.info("Updating active Xcode version to %s", expected)
        self._installer.activate(versioned, self.active_path, self._aside_path)
        self._cache.record_installed(spec, expected)
        remove_path(self.archive_path)
        return True

    def _download_and_extract(self, spec: ArtifactSpec, versioned: Path) -> None:
        archive = self.archive_path
        if archive.exists():
            if self._downloader.matches(archive, spec.expected_checksum, spec.checksum_algorithm):
                logger.info("Reusing existing %s", archive)
            else:
                logger.warning(
                    "Existing %s does not match %s, redownloading Xcode",
                    archive,
                    spec.expected_checksum,
                )
                remove_path(archive)

        if not archive.exists():
            attempt = self._downloader.download_artifact(spec, archive)
            self._downloader.commit(attempt)

        self._installer.install(
            archive, spec.archive_kind, versioned, payload_name=f"{SDK_NAME}.app"
        )
