"""Tests for the goma accelerator client: install, login cache, start-up."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

from buildwright.core.accelerator import (
    ACCELERATOR_CHECKSUMS,
    LOGIN_VALIDITY,
    Accelerator,
)
from buildwright.core.artifact_cache import ArtifactCacheStore
from buildwright.core.downloader import VerifiedDownloader
from buildwright.core.errors import ChecksumMismatch, SubprocessFailure
from buildwright.core.installer import ArchiveInstaller
from buildwright.models.artifacts import ArchiveKind, ChecksumAlgorithm
from buildwright.models.build import AcceleratorSource
from buildwright.models.environment import Environment
from fakes import FakeRunner, FakeTransport, extract_into, sha256_of

BASE_URL = "https://cdn.invalid/goma-clients"
PAYLOAD = b"archive-bytes"
NOW = datetime(2026, 10, 18, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def pinned(monkeypatch: pytest.MonkeyPatch) -> str:
    """Pin every default-table bundle to the fake transport's payload."""
    sha = sha256_of(PAYLOAD)
    for key in ACCELERATOR_CHECKSUMS[AcceleratorSource.DEFAULT]:
        monkeypatch.setitem(ACCELERATOR_CHECKSUMS[AcceleratorSource.DEFAULT], key, sha)
    return sha


@pytest.fixture
def make_accelerator(
    third_party: Path,
    runner: FakeRunner,
    cache: ArtifactCacheStore,
    downloader: VerifiedDownloader,
    linux_env: Environment,
):
    def _factory(environment: Environment | None = None, **kwargs) -> Accelerator:
        env = environment or linux_env
        return Accelerator(
            third_party,
            env,
            runner,
            kwargs.pop("cache", cache),
            downloader,
            ArchiveInstaller(runner, env),
            base_url=BASE_URL,
            **kwargs,
        )

    return _factory


@pytest.fixture
def accelerator(make_accelerator, runner: FakeRunner) -> Accelerator:
    runner.on("tar", effect=extract_into({"goma/goma_ctl.py": "ctl", "goma/goma_auth.py": "auth"}))
    return make_accelerator()


class TestSpec:
    def test_linux_bundle(self, accelerator: Accelerator):
        spec = accelerator.spec()
        sha = ACCELERATOR_CHECKSUMS[AcceleratorSource.DEFAULT]["linux"]
        assert spec.source_url == f"{BASE_URL}/{sha}/goma-linux.tgz"
        assert spec.archive_kind is ArchiveKind.TAR_GZIP
        assert spec.checksum_algorithm is ChecksumAlgorithm.SHA256
        assert spec.marker_path == accelerator.dir / ".sha"

    def test_windows_bundle_is_zip(self, make_accelerator, win_env: Environment):
        spec = make_accelerator(win_env).spec()
        assert spec.filename == "goma-win.zip"
        assert spec.archive_kind is ArchiveKind.ZIP

    def test_msft_source_uses_its_own_table(self, make_accelerator, mac_env: Environment):
        spec = make_accelerator(mac_env, source=AcceleratorSource.MSFT).spec()
        assert spec.expected_checksum == ACCELERATOR_CHECKSUMS[AcceleratorSource.MSFT]["darwin-arm64"]

    def test_unsupported_platform_is_a_no_op(self, make_accelerator, runner: FakeRunner):
        accel = make_accelerator(Environment(os_family="freebsd", arch="x64"))
        assert accel.is_supported is False
        assert accel.spec() is None
        assert accel.prepare() is None
        assert accel.is_authenticated() is False
        accel.authenticate()
        assert runner.calls == []


class TestGnFile:
    def test_written_once(self, accelerator: Accelerator):
        assert accelerator.write_gn_file() is True
        text = accelerator.gn_file.read_text(encoding="utf-8")
        assert text == f'goma_dir = "{accelerator.dir.as_posix()}"\nuse_goma = true'
        assert accelerator.write_gn_file() is False


class TestPrepare:
    def test_downloads_installs_and_records(
        self, accelerator: Accelerator, transport: FakeTransport, pinned: str
    ):
        assert accelerator.prepare() == pinned
        assert (accelerator.dir / "goma_ctl.py").exists()
        assert (accelerator.dir / ".sha").read_text(encoding="utf-8") == pinned
        assert accelerator.gn_file.exists()
        assert transport.fetched == [f"{BASE_URL}/{pinned}/goma-linux.tgz"]
        # Neither the archive nor scratch space outlives the install.
        leftovers = [p.name for p in accelerator.dir.parent.iterdir()]
        assert sorted(leftovers) == ["goma", "goma.gn"]

    def test_second_prepare_skips_download(
        self, accelerator: Accelerator, transport: FakeTransport, pinned: str
    ):
        accelerator.prepare()
        accelerator.prepare()
        assert len(transport.fetched) == 1

    def test_forced_redownload(self, make_accelerator, runner: FakeRunner, transport, pinned):
        runner.on("tar", effect=extract_into({"goma/goma_ctl.py": "ctl"}))
        make_accelerator().prepare()
        make_accelerator(cache=ArtifactCacheStore(force_redownload=True)).prepare()
        assert len(transport.fetched) == 2

    def test_stale_install_stops_client_first(
        self, accelerator: Accelerator, runner: FakeRunner, pinned: str, caplog
    ):
        accelerator.dir.mkdir(parents=True)
        (accelerator.dir / "goma_ctl.py").write_text("old", encoding="utf-8")
        (accelerator.dir / ".sha").write_text("0" * 64, encoding="utf-8")
        runner.on("python3", "goma_ctl.py", "stop", returncode=1)

        with caplog.at_level(logging.WARNING, logger="buildwright"):
            accelerator.prepare()

        (stop,) = runner.called("python3", "goma_ctl.py", "stop")
        assert stop.cwd == accelerator.dir
        assert "continuing" in caplog.text
        assert (accelerator.dir / "goma_ctl.py").read_text(encoding="utf-8") == "ctl"

    def test_checksum_mismatch_leaves_previous_install(
        self, accelerator: Accelerator, transport: FakeTransport
    ):
        accelerator.dir.mkdir(parents=True)
        (accelerator.dir / ".sha").write_text("old", encoding="utf-8")
        with pytest.raises(ChecksumMismatch):
            accelerator.prepare()
        assert (accelerator.dir / ".sha").read_text(encoding="utf-8") == "old"
        assert not list(accelerator.dir.parent.glob("*.part"))


class TestAuthentication:
    def test_recent_login_is_trusted(self, accelerator: Accelerator, runner: FakeRunner):
        accelerator.record_login_time(NOW - timedelta(hours=1))
        assert accelerator.is_authenticated(NOW) is True
        assert runner.called("python3", "goma_auth.py") == []

    def test_expired_login_asks_the_client(self, accelerator: Accelerator, runner: FakeRunner):
        accelerator.record_login_time(NOW - LOGIN_VALIDITY - timedelta(minutes=1))
        runner.on("python3", "goma_auth.py", "info", stdout="Login as Jane Doe\n")
        assert accelerator.is_authenticated(NOW) is True

    def test_client_without_login(self, accelerator: Accelerator, runner: FakeRunner):
        runner.on("python3", "goma_auth.py", "info", stdout="Not logged in\n")
        assert accelerator.is_authenticated(NOW) is False

    def test_client_failure_means_not_authenticated(
        self, accelerator: Accelerator, runner: FakeRunner
    ):
        runner.on("python3", "goma_auth.py", "info", returncode=1, stdout="Login as Jane Doe")
        assert accelerator.is_authenticated(NOW) is False

    def test_unreadable_login_file_ignored(self, accelerator: Accelerator):
        accelerator.login_file.parent.mkdir(parents=True)
        accelerator.login_file.write_text("yesterday", encoding="utf-8")
        assert accelerator.last_known_login() is None

    def test_authenticate_logs_in_and_records_time(
        self, accelerator: Accelerator, runner: FakeRunner, pinned: str
    ):
        accelerator.authenticate()
        (login,) = runner.called("python3", "goma_auth.py", "login")
        assert login.env == {"AGREE_NOTGOMA_TOS": "1"}
        assert login.capture is False
        assert accelerator.last_known_login() is not None

    def test_authenticate_skips_login_when_recent(
        self, accelerator: Accelerator, runner: FakeRunner, pinned: str
    ):
        accelerator.prepare()
        accelerator.record_login_time()
        accelerator.authenticate()
        assert runner.called("python3", "goma_auth.py", "login") == []

    def test_failed_login_propagates_exit_code(
        self, accelerator: Accelerator, runner: FakeRunner, pinned: str
    ):
        runner.on("python3", "goma_auth.py", "login", returncode=3)
        with pytest.raises(SubprocessFailure) as excinfo:
            accelerator.authenticate()
        assert excinfo.value.exit_code == 3
        assert accelerator.last_known_login() is None

    def test_clear_login_time(self, accelerator: Accelerator):
        accelerator.record_login_time(NOW)
        accelerator.clear_login_time()
        assert accelerator.last_known_login() is None
        accelerator.clear_login_time()


class TestStartup:
    def test_running_proxy_is_left_alone(self, accelerator: Accelerator, runner: FakeRunner):
        accelerator.ensure_started()
        assert runner.called("python3", "goma_ctl.py", "ensure_start") == []
        (port,) = runner.called("gomacc", "port", "2")
        assert Path(port.argv[0]).parent == accelerator.dir

    def test_starts_proxy_when_not_running(self, accelerator: Accelerator, runner: FakeRunner):
        runner.on("gomacc", "port", returncode=1)
        accelerator.ensure_started()
        (start,) = runner.called("python3", "goma_ctl.py", "ensure_start")
        assert start.cwd == accelerator.dir
        assert start.capture is True
        assert "GOMA_MAX_SUBPROCS" not in start.env

    def test_macos_limits_subprocesses(
        self, make_accelerator, runner: FakeRunner, mac_env: Environment
    ):
        runner.on("gomacc", "port", returncode=1)
        make_accelerator(mac_env).ensure_started()
        (start,) = runner.called("python3", "goma_ctl.py", "ensure_start")
        assert start.env["GOMA_MAX_SUBPROCS"] == "10"
        assert start.env["GOMA_MAX_SUBPROCS_LOW"] == "10"

    def test_windows_inherits_stdio(self, make_accelerator, runner: FakeRunner, win_env):
        runner.on("gomacc.exe", "port", returncode=1)
        make_accelerator(win_env).ensure_started()
        (start,) = runner.called("python3", "goma_ctl.py", "ensure_start")
        assert start.capture is False

    def test_ci_auto_restarts_proxy(self, make_accelerator, runner: FakeRunner):
        ci_env = Environment(os_family="linux", arch="x64", ci=True)
        runner.on("gomacc", "port", returncode=1)
        make_accelerator(ci_env).ensure_started()
        (start,) = runner.called("python3", "goma_ctl.py", "ensure_start")
        assert start.env["GOMA_START_COMPILER_PROXY"] == "true"

    def test_start_failure_raises(self, accelerator: Accelerator, runner: FakeRunner):
        runner.on("gomacc", "port", returncode=1)
        runner.on("python3", "goma_ctl.py", "ensure_start", returncode=5)
        with pytest.raises(SubprocessFailure) as excinfo:
            accelerator.ensure_started()
        assert excinfo.value.exit_code == 5


class TestStatus:
    def test_fresh_status(self, accelerator: Accelerator):
        status = accelerator.status()
        assert status["platform"] == "linux"
        assert status["supported"] is True
        assert status["installed"] is None
        assert status["up_to_date"] is False
        assert status["last_login"] is None

    def test_status_after_prepare(self, accelerator: Accelerator, pinned: str):
        accelerator.prepare()
        status = accelerator.status()
        assert status["installed"] == pinned
        assert status["up_to_date"] is True
