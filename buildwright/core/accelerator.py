"""Compilation accelerator (goma) client: fetch, authenticate, start.

Directory layout::

    {third_party}/
        goma.gn                  — gn import enabling the accelerator
        goma/                    — extracted client bundle
            .sha                 — install marker (bundle checksum)
            last-known-login     — millisecond timestamp of the last login
            goma_ctl.py
            goma_auth.py
            gomacc[.exe]

Bundles are pinned per platform by SHA-256.  Every operation is a no-op on
platforms without a pinned bundle.
"""

from __future__ import annotations

import logging
import re
from datetime import datetime, timedelta, timezone
from pathlib import Path

from buildwright.core.artifact_cache import ArtifactCacheStore
from buildwright.core.downloader import VerifiedDownloader
from buildwright.core.installer import ArchiveInstaller, remove_path
from buildwright.core.runner import CommandRunner
from buildwright.models.artifacts import ArchiveKind, ArtifactSpec, ChecksumAlgorithm
from buildwright.models.build import AcceleratorSource
from buildwright.models.environment import Environment

logger = logging.getLogger(__name__)

ACCELERATOR_NAME = "goma"

ACCELERATOR_CHECKSUMS: dict[AcceleratorSource, dict[str, str]] = {
    AcceleratorSource.DEFAULT: {
        "darwin": "adf8a01f08dce16f335389d0e427867a4282a9fa03d2e436f2f96527ab606f76",
        "darwin-arm64": "81347e9557f2dc805317f59ac23b56d97570a21be0f197c458615f4c78052db8",
        "linux": "f94f784f58b414f3556da9f03baf911588ce45e9a6ed35e26fb5ee21a632863e",
        "linux-arm64": "d04746105c7fd2ffcbb8e398481d5235708380b512a4995626993965ca9dc5dc",
        "win32": "dfa5b12dbdeedb8c0c411a0e5521495ce8ef9907abdef99748ef4685e1a77f3e",
    },
    AcceleratorSource.MSFT: {
        "darwin": "dac2881cf5f7565fa432f32bc4635a9752e56984966b5fe43f7b37892b4d4553",
        "darwin-arm64": "d8006830527a37cce19ea03a37fd43db2e0a7c65e90e8d1eac7874ea08e16d45",
        "linux": "ee0199542ced43908f1d60c67872ec1d4925d0d97200ff214eaf6cbf18f2a92b",
        "linux-arm64": "486bd5da5ac16919cb6a7e33c3c29aa35ca345364fb6e2f2438348e6a6d07222",
        "win32": "a54dd1f574f92fa8a6bc81a939d9415fa2dc8f36cea9ea64eb43736dd3ecac4b",
    },
}

ACCELERATOR_FILENAMES: dict[str, str] = {
    "darwin": "goma-mac.tgz",
    "darwin-arm64": "goma-mac-arm64.tgz",
    "linux": "goma-linux.tgz",
    "linux-arm64": "goma-linux-arm64.tgz",
    "win32": "goma-win.zip",
}

LOGIN_VALIDITY = timedelta(hours=12)
_LOGGED_IN_RE = re.compile(r"^Login as (\w+\s\w+)$")


class Accelerator:
    """Manages the accelerator client bundle under *third_party_root*.

    Parameters
    ----------
    third_party_root:
        Directory holding ``goma/`` and ``goma.gn``.
    environment:
        Host description; selects the bundle.
    runner:
        Runs the client's control scripts.
    cache, downloader, installer:
        The download-verify-extract pipeline.
    base_url:
        Bundle URL prefix; the checksum and file name are appended.
    source:
        Which checksum table to pin against.
    """

    def __init__(
        self,
        third_party_root: Path,
        environment: Environment,
        runner: CommandRunner,
        cache: ArtifactCacheStore,
        downloader: VerifiedDownloader,
        installer: ArchiveInstaller,
        *,
        base_url: str,
        source: AcceleratorSource = AcceleratorSource.DEFAULT,
        python: str = "python3",
    ) -> None:
        self._root = Path(third_party_root)
        self._env = environment
        self._runner = runner
        self._cache = cache
        self._downloader = downloader
        self._installer = installer
        self._base_url = base_url.rstrip("/")
        self._source = source
        self._python = python

    # ------------------------------------------------------------------
    # Paths and artifact identity
    # ------------------------------------------------------------------

    @property
    def dir(self) -> Path:
        return self._root / ACCELERATOR_NAME

    @property
    def gn_file(self) -> Path:
        return self._root / f"{ACCELERATOR_NAME}.gn"

    @property
    def login_file(self) -> Path:
        return self.dir / "last-known-login"

    @property
    def is_supported(self) -> bool:
        return self._env.accelerator_platform_key in ACCELERATOR_FILENAMES

    def spec(self) -> ArtifactSpec | None:
        """The bundle pinned for this host, or None if unsupported."""
        key = self._env.accelerator_platform_key
        if key is None or key not in ACCELERATOR_FILENAMES:
            return None
        sha = ACCELERATOR_CHECKSUMS[self._source][key]
        filename = ACCELERATOR_FILENAMES[key]
        return ArtifactSpec(
            name=ACCELERATOR_NAME,
            platform_key=key,
            expected_checksum=sha,
            checksum_algorithm=ChecksumAlgorithm.SHA256,
            source_url=f"{self._base_url}/{sha}/{filename}",
            archive_kind=ArchiveKind.from_filename(filename),
            install_dir=self.dir,
            marker_name=".sha",
        )

    # ------------------------------------------------------------------
    # Download and install
    # ------------------------------------------------------------------

    def write_gn_file(self) -> bool:
        """Write ``goma.gn`` if it is missing or stale.  Returns True if written."""
        contents = f'goma_dir = "{self.dir.as_posix()}"\nuse_goma = true'
        if self.gn_file.is_file() and self.gn_file.read_text(encoding="utf-8") == contents:
            return False
        logger.info("Writing new goma.gn file %s", self.gn_file)
        self.gn_file.parent.mkdir(parents=True, exist_ok=True)
        self.gn_file.write_text(contents, encoding="utf-8")
        return True

    def prepare(self) -> str | None:
        """Make sure the pinned bundle is installed.  Returns its checksum."""
        spec = self.spec()
        if spec is None:
            logger.debug("No accelerator bundle for %s", self._env.accelerator_platform_key)
            return None

        self._root.mkdir(parents=True, exist_ok=True)
        self.write_gn_file()

        if self._cache.is_installed(spec, spec.expected_checksum):
            return spec.expected_checksum

        self._stop_running_client()

        archive = self._root / spec.filename
        remove_path(archive)

        attempt = self._downloader.download_artifact(spec, archive)
        self._installer.install(attempt.temp_path, spec.archive_kind, self.dir)
        self._cache.record_installed(spec, spec.expected_checksum)
        return spec.expected_checksum

    def _stop_running_client(self) -> None:
        if not (self.dir / "goma_ctl.py").exists():
            return
        result = self._runner.run([self._python, "goma_ctl.py", "stop"], cwd=self.dir)
        if not result.ok:
            logger.warning(
                "Stopping the running goma client exited with %s, continuing",
                result.returncode,
            )

    # ------------------------------------------------------------------
    # Authentication
    # ------------------------------------------------------------------

    def last_known_login(self) -> datetime | None:
        if not self.login_file.is_file():
            return None
        raw = self.login_file.read_text(encoding="utf-8").strip()
        try:
            millis = int(raw)
        except ValueError:
            logger.debug("Ignoring unreadable login timestamp %r", raw)
            return None
        return datetime.fromtimestamp(millis / 1000, tz=timezone.utc)

    def record_login_time(self, now: datetime | None = None) -> None:
        moment = now or datetime.now(timezone.utc)
        self.login_file.parent.mkdir(parents=True, exist_ok=True)
        self.login_file.write_text(str(int(moment.timestamp() * 1000)), encoding="utf-8")

    def clear_login_time(self) -> None:
        self.login_file.unlink(missing_ok=True)

    def is_authenticated(self, now: datetime | None = None) -> bool:
        """True if a recent login is cached or the client reports a login."""
        if not self.is_supported:
            return False
        moment = now or datetime.now(timezone.utc)
        last = self.last_known_login()
        if last is not None and moment - last < LOGIN_VALIDITY:
            return True

        result = self._runner.run([self._python, "goma_auth.py", "info"], cwd=self.dir)
        if not result.ok:
            return False
        return bool(_LOGGED_IN_RE.match(result.stdout.strip()))

    def authenticate(self) -> None:
        """Log in through the client unless already authenticated."""
        if not self.is_supported:
            return
        self.prepare()
        if self.is_authenticated():
            return
        self._runner.run(
            [self._python, "goma_auth.py", "login"],
            cwd=self.dir,
            env={"AGREE_NOTGOMA_TOS": "1"},
            capture=False,
        ).check("goma_auth.py login")
        self.record_login_time()

    # ------------------------------------------------------------------
    # Runtime
    # ------------------------------------------------------------------

    def env(self) -> dict[str, str]:
        """Extra environment for the client's control script."""
        if self._env.ci:
            # Restart the compiler proxy automatically when it dies in CI.
            return {"GOMA_START_COMPILER_PROXY": "true"}
        return {}

    def ensure_started(self) -> None:
        """Start the compiler proxy unless ``gomacc`` reports it running."""
        gomacc = self.dir / self._env.executable("gomacc")
        if self._runner.run([str(gomacc), "port", "2"]).ok:
            return

        env = self.env()
        if self._env.is_macos:
            cpus = str(self._env.cpu_count)
            env.update({"GOMA_MAX_SUBPROCS": cpus, "GOMA_MAX_SUBPROCS_LOW": cpus})

        # ensure_start never terminates on Windows unless stdio is inherited
        self._runner.run(
            [self._python, "goma_ctl.py", "ensure_start"],
            cwd=self.dir,
            env=env,
            capture=not self._env.is_windows,
        ).check("goma_ctl.py ensure_start")

    def status(self) -> dict[str, object]:
        """Summary used by ``buildwright accelerator status``."""
        spec = self.spec()
        marker = self._cache.read_marker(spec) if spec else None
        return {
            "platform": self._env.accelerator_platform_key or "unsupported",
            "supported": spec is not None,
            "pinned": spec.expected_checksum if spec else None,
            "installed": marker.value if marker else None,
            "up_to_date": bool(spec and marker and marker.value == spec.expected_checksum),
            "last_login": self.last_known_login(),
        }
