"""Verified downloads: transfer to a temp file, hash, compare, hand off.

A download never lands directly on its destination.  Bytes go to a temp
file beside the destination; only after the digest matches does the caller
receive the temp path.  Any failure removes the temp file before the error
propagates.  There are no retries at this layer.
"""

from __future__ import annotations

import logging
import os
import shutil
import tempfile
import urllib.error
import urllib.request
from pathlib import Path
from typing import Protocol, runtime_checkable

from buildwright.core.errors import ChecksumMismatch, ConfigError, TransferFailure
from buildwright.core.hasher import digests_match, file_digest
from buildwright.core.runner import CommandRunner
from buildwright.models.artifacts import ArtifactSpec, ChecksumAlgorithm, DownloadAttempt

logger = logging.getLogger(__name__)

_CHUNK_SIZE = 1024 * 1024


# ---------------------------------------------------------------------------
# Transports
# ---------------------------------------------------------------------------


@runtime_checkable
class Transport(Protocol):
    """Protocol for the transfer step of a download.

    Implementations write the body of *url* to *dest* and raise
    ``TransferFailure`` on any error.
    """

    def fetch(self, url: str, dest: Path) -> None:
        ...


class UrllibTransport:
    """Plain HTTPS GET through :mod:`urllib.request`, streamed in chunks."""

    def __init__(self, timeout: float | None = None) -> None:
        self._timeout = timeout

    def fetch(self, url: str, dest: Path) -> None:
        try:
            with urllib.request.urlopen(url, timeout=self._timeout) as stream, open(
                dest, "wb"
            ) as f:
                shutil.copyfileobj(stream, f, _CHUNK_SIZE)
        except urllib.error.HTTPError as exc:
            raise TransferFailure(
                f"Failure while downloading {url} (code: {exc.code})"
            ) from exc
        except urllib.error.URLError as exc:
            raise TransferFailure(
                f"Failure while downloading {url} (reason: {exc.reason})"
            ) from exc
        except OSError as exc:
            raise TransferFailure(f"Failure while downloading {url}: {exc}") from exc


class CommandTransport:
    """Delegates the transfer to ``curl`` through a ``CommandRunner``."""

    def __init__(self, runner: CommandRunner, executable: str = "curl") -> None:
        self._runner = runner
        self._executable = executable

    def fetch(self, url: str, dest: Path) -> None:
        result = self._runner.run(
            [self._executable, "-fsSL", "-o", str(dest), url], capture=True
        )
        if not result.ok:
            detail = result.stderr.strip() or f"exit code {result.returncode}"
            raise TransferFailure(f"Failure while downloading {url}: {detail}")


def make_transport(kind: str, runner: CommandRunner) -> Transport:
    """Pick a transport by its configured name (``urllib`` or ``curl``)."""
    kind = kind.strip().lower()
    if kind == "urllib":
        return UrllibTransport()
    if kind == "curl":
        return CommandTransport(runner)
    raise ConfigError(
        f"Unknown download tool: {kind!r} (expected 'urllib' or 'curl')"
    )


# ---------------------------------------------------------------------------
# Downloader
# ---------------------------------------------------------------------------


class VerifiedDownloader:
    """Downloads a URL and verifies its digest before anyone can use it.

    Parameters
    ----------
    transport:
        The transfer backend.
    """

    def __init__(self, transport: Transport) -> None:
        self._transport = transport

    @staticmethod
    def _temp_path_for(dest_path: Path) -> Path:
        dest_path.parent.mkdir(parents=True, exist_ok=True)
        fd, name = tempfile.mkstemp(
            prefix=f".{dest_path.name}.", suffix=".part", dir=dest_path.parent
        )
        os.close(fd)
        return Path(name)

    def download(
        self,
        url: str,
        expected_checksum: str,
        dest_path: Path,
        *,
        algorithm: ChecksumAlgorithm = ChecksumAlgorithm.SHA256,
    ) -> DownloadAttempt:
        """Download *url* and verify it against *expected_checksum*.

        Returns the verified attempt; its ``temp_path`` sits beside
        *dest_path* and is now owned by the caller.

        Raises
        ------
        TransferFailure
            The transfer step failed.  The temp file is removed.
        ChecksumMismatch
            The digest differs.  The temp file is removed.
        """
        dest_path = Path(dest_path)
        temp_path = self._temp_path_for(dest_path)
        logger.info("Downloading %s into %s", url, dest_path)

        try:
            self._transport.fetch(url, temp_path)
        except TransferFailure:
            temp_path.unlink(missing_ok=True)
            raise
        except OSError as exc:
            temp_path.unlink(missing_ok=True)
            raise TransferFailure(f"Failure while downloading {url}: {exc}") from exc
        except BaseException:
            temp_path.unlink(missing_ok=True)
            raise

        logger.info("Calculating hash for %s", temp_path)
        try:
            computed = file_digest(temp_path, algorithm)
            if not digests_match(computed, expected_checksum):
                raise ChecksumMismatch(computed, expected_checksum.lower(), source=url)
        except BaseException:
            temp_path.unlink(missing_ok=True)
            raise

        return DownloadAttempt(
            url=url,
            temp_path=temp_path,
            dest_path=dest_path,
            checksum=computed,
            algorithm=algorithm,
        )

    def download_artifact(self, spec: ArtifactSpec, dest_path: Path) -> DownloadAttempt:
        """``download`` driven by an ``ArtifactSpec``."""
        return self.download(
            spec.source_url,
            spec.expected_checksum,
            dest_path,
            algorithm=spec.checksum_algorithm,
        )

    @staticmethod
    def commit(attempt: DownloadAttempt) -> Path:
        """Move a verified temp file onto its destination."""
        os.replace(attempt.temp_path, attempt.dest_path)
        return attempt.dest_path

    @staticmethod
    def matches(path: Path, expected_checksum: str, algorithm: ChecksumAlgorithm) -> bool:
        """True if an existing file at *path* already has the expected digest."""
        if not Path(path).is_file():
            return False
        logger.info("Calculating hash for %s", path)
        return digests_match(file_digest(path, algorithm), expected_checksum)
