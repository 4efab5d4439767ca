"""Install markers for downloaded artifacts.

Storage layout: ``{install_dir}/{marker_name}`` holding a single line — a
checksum (``.sha``) or a version string (``.version``) depending on the
artifact.  The marker is written only as the last step of a successful
install, so its presence means the install completed.
"""

from __future__ import annotations

import logging

from buildwright.models.artifacts import ArtifactSpec, InstallMarker

logger = logging.getLogger(__name__)


class ArtifactCacheStore:
    """Answers "is the locally installed artifact already the one we want?".

    Parameters
    ----------
    force_redownload:
        When True, ``is_installed`` reports False for every artifact so the
        pipeline refreshes it without deleting state first.
    """

    def __init__(self, *, force_redownload: bool = False) -> None:
        self._force_redownload = force_redownload

    @property
    def force_redownload(self) -> bool:
        return self._force_redownload

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------

    def read_marker(self, spec: ArtifactSpec) -> InstallMarker | None:
        """Return the current marker, or None if none was ever written."""
        path = spec.marker_path
        if not path.is_file():
            return None
        return InstallMarker(value=path.read_text(encoding="utf-8").strip(), path=path)

    def is_installed(self, spec: ArtifactSpec, desired_marker_value: str) -> bool:
        """True iff the marker exists and equals *desired_marker_value*."""
        if self._force_redownload:
            logger.debug("Forced redownload requested for %s", spec.name)
            return False
        marker = self.read_marker(spec)
        if marker is None:
            return False
        return marker.value == desired_marker_value

    # ------------------------------------------------------------------
    # Write
    # ------------------------------------------------------------------

    def record_installed(self, spec: ArtifactSpec, marker_value: str) -> InstallMarker:
        """Overwrite the marker with *marker_value*.

        Call only after every earlier pipeline step has succeeded.
        """
        path = spec.marker_path
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(marker_value, encoding="utf-8")
        logger.debug("Recorded %s marker %s at %s", spec.name, marker_value, path)
        return InstallMarker(value=marker_value, path=path)

    def clear_marker(self, spec: ArtifactSpec) -> None:
        """Remove the marker so the next check reports not installed."""
        spec.marker_path.unlink(missing_ok=True)
