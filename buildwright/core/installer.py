"""Archive extraction and swap-into-place.

Extraction always targets a scratch directory beside the install location,
never the install location itself.  Only a fully extracted payload is moved
into place, by rename or by repointing a symlink.

The installer owns the archive it is given: the archive is deleted when
``install`` returns or raises.  A failed extraction leaves the scratch
directory behind for inspection; the next run clears it before extracting.
"""

from __future__ import annotations

import logging
import shutil
import zipfile
from collections.abc import Callable
from pathlib import Path

from buildwright.core.errors import ExtractionFailure
from buildwright.core.runner import CommandRunner
from buildwright.models.artifacts import ArchiveKind
from buildwright.models.environment import Environment

logger = logging.getLogger(__name__)


def remove_path(path: Path) -> None:
    """Delete a file, symlink or directory tree if it exists."""
    if path.is_symlink() or path.is_file():
        path.unlink()
    elif path.is_dir():
        shutil.rmtree(path)


class ArchiveInstaller:
    """Extracts zip and gzip-tar archives and swaps the result into place.

    Parameters
    ----------
    runner:
        Runs the external ``tar`` / ``unzip`` tools.
    environment:
        Host description; Windows extracts zips in-process.
    """

    def __init__(self, runner: CommandRunner, environment: Environment) -> None:
        self._runner = runner
        self._env = environment

    @staticmethod
    def scratch_dir_for(target: Path) -> Path:
        """Scratch location used while extracting an install for *target*."""
        return target.parent / f".{target.name}.extract"

    # ------------------------------------------------------------------
    # Extraction
    # ------------------------------------------------------------------

    def extract(self, archive_path: Path, archive_kind: ArchiveKind, scratch_dir: Path) -> None:
        """Extract *archive_path* into *scratch_dir*.

        Raises
        ------
        ExtractionFailure
            If the extraction tool exits non-zero or the zip is unreadable.
        """
        scratch_dir.mkdir(parents=True, exist_ok=True)
        logger.info("Extracting %s into %s", archive_path, scratch_dir)

        if archive_kind is ArchiveKind.ZIP and self._env.is_windows:
            try:
                with zipfile.ZipFile(archive_path) as zf:
                    zf.extractall(scratch_dir)
            except (zipfile.BadZipFile, OSError) as exc:
                raise ExtractionFailure(f"Failed to extract {archive_path}: {exc}") from exc
            return

        if archive_kind is ArchiveKind.ZIP:
            cmd = ["unzip", "-q", "-o", str(archive_path), "-d", str(scratch_dir)]
        else:
            cmd = ["tar", "-xzf", str(archive_path), "-C", str(scratch_dir)]

        result = self._runner.run(cmd, capture=True)
        if not result.ok:
            raise ExtractionFailure(
                f"Failed to extract {archive_path.name} "
                f"(exit code {result.returncode}); scratch left at {scratch_dir}",
                returncode=result.returncode,
            )

    @staticmethod
    def _payload_root(scratch_dir: Path, payload_name: str | None) -> Path:
        if payload_name is not None:
            payload = scratch_dir / payload_name
            if not payload.exists():
                raise ExtractionFailure(
                    f"Archive did not contain {payload_name}; scratch left at {scratch_dir}"
                )
            return payload
        entries = list(scratch_dir.iterdir())
        if len(entries) == 1 and entries[0].is_dir() and not entries[0].is_symlink():
            return entries[0]
        return scratch_dir

    # ------------------------------------------------------------------
    # Install
    # ------------------------------------------------------------------

    def install(
        self,
        archive_path: Path,
        archive_kind: ArchiveKind,
        target_dir: Path,
        *,
        payload_name: str | None = None,
    ) -> Path:
        """Extract *archive_path* and replace *target_dir* with the result.

        The payload is *payload_name* inside the archive, or the archive's
        single top-level directory, or the whole archive.  Returns
        *target_dir*.
        """
        scratch = self.scratch_dir_for(target_dir)
        try:
            remove_path(scratch)
            self.extract(archive_path, archive_kind, scratch)
            payload = self._payload_root(scratch, payload_name)
            self.replace(payload, target_dir)
            remove_path(scratch)
        finally:
            archive_path.unlink(missing_ok=True)
        return target_dir

    @staticmethod
    def replace(payload: Path, target: Path) -> None:
        """Move *payload* to *target*, discarding what was there.

        A symlink at *target* is unlinked without touching what it points
        at.  A real directory is first renamed aside, so *target* is never
        half-populated.
        """
        target.parent.mkdir(parents=True, exist_ok=True)
        if target.is_symlink():
            target.unlink()
        elif target.exists():
            previous = target.with_name(f".{target.name}.previous")
            remove_path(previous)
            target.rename(previous)
            payload.rename(target)
            remove_path(previous)
            logger.info("Replaced %s", target)
            return
        payload.rename(target)
        logger.info("Installed %s", target)

    @staticmethod
    def activate(
        versioned_dir: Path,
        link: Path,
        aside_path_for: Callable[[Path], Path],
    ) -> None:
        """Point *link* at *versioned_dir*, keeping a real install as history.

        If *link* is a symlink only the link is removed.  If it is a real
        directory it is renamed to ``aside_path_for(link)``; when that name
        is already taken the stale copy is removed instead.
        """
        if link.is_symlink():
            link.unlink()
        elif link.exists():
            aside = aside_path_for(link)
            if aside.exists():
                logger.info("Removing stale %s, %s already exists", link, aside)
                remove_path(link)
            else:
                logger.info("Keeping previous install as %s", aside)
                link.rename(aside)
        link.parent.mkdir(parents=True, exist_ok=True)
        link.symlink_to(versioned_dir, target_is_directory=True)
