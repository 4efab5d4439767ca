"""Desired-version resolution from an ordered list of candidate sources.

Each candidate pairs a file with an extractor.  Candidates are tried in
priority order; the first file that exists and whose content the extractor
accepts wins.  Platform constraints may veto the winner.  Whenever nothing
usable is found the resolver falls back to the highest known version and
logs a warning; detection failure is never fatal.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Callable, Iterable, Sequence
from pathlib import Path

from pydantic import BaseModel, ConfigDict

from buildwright.core.errors import ConfigDetectionFailure

logger = logging.getLogger(__name__)

# Returns the extracted version, or None when the text has no match.
Extractor = Callable[[str], "str | None"]
# Returns a rejection reason, or None when the version is acceptable.
PlatformConstraint = Callable[[str], "str | None"]

_SEMVER_RE = re.compile(r"(\d+)(?:\.(\d+))?(?:\.(\d+))?")


class CandidateSource(BaseModel):
    """One place a version may be declared."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    path: Path
    extract: Callable[[str], str | None]


class DetectedVersion(BaseModel):
    """A version found in a candidate source."""

    model_config = ConfigDict(frozen=True)

    version: str
    source: Path


def regex_extractor(pattern: str, flags: int = 0) -> Extractor:
    """Build an extractor returning the first group of *pattern*."""
    compiled = re.compile(pattern, flags)

    def _extract(text: str) -> str | None:
        match = compiled.search(text)
        return match.group(1) if match else None

    return _extract


def semver_key(version: str) -> tuple[int, int, int]:
    """Coerce *version* to a ``(major, minor, patch)`` sort key.

    Anything after the first ``x.y.z`` run is ignored, so ``12.0.0-UA``
    sorts as ``12.0.0``.  Strings without digits sort lowest.
    """
    match = _SEMVER_RE.search(version)
    if not match:
        return (-1, -1, -1)
    return tuple(int(part) if part else 0 for part in match.groups())  # type: ignore[return-value]


def highest_version(versions: Iterable[str]) -> str:
    """Deterministic fallback: the highest version by semantic comparison.

    Ties on the coerced key are broken by the string itself so the result
    never depends on iteration order.
    """
    ordered = sorted(versions, key=lambda v: (semver_key(v), v), reverse=True)
    if not ordered:
        raise ValueError("no known versions to fall back to")
    return ordered[0]


def minimum_major_constraint(
    os_major: int | None, *, from_os_major: int, min_version_major: int, os_label: str = "this OS"
) -> PlatformConstraint:
    """Reject versions below *min_version_major* on OS majors >= *from_os_major*."""

    def _check(version: str) -> str | None:
        if os_major is None or os_major < from_os_major:
            return None
        if semver_key(version)[0] < min_version_major:
            return f"{version} is not supported on {os_label} {os_major}"
        return None

    return _check


class VersionResolver:
    """Resolves the desired artifact version against a known-version table.

    Parameters
    ----------
    known_versions:
        Every version the artifact table can install.
    label:
        Human name used in warnings (e.g. ``"Xcode"``).
    """

    def __init__(self, known_versions: Iterable[str], *, label: str = "artifact") -> None:
        self._known = list(known_versions)
        self._label = label

    @property
    def fallback_version(self) -> str:
        return highest_version(self._known)

    def detect(self, candidates: Sequence[CandidateSource]) -> DetectedVersion:
        """Return the first candidate match in priority order.

        Raises
        ------
        ConfigDetectionFailure
            When no candidate exists and matches.
        """
        for candidate in candidates:
            if not candidate.path.is_file():
                logger.debug("Candidate %s does not exist", candidate.path)
                continue
            version = candidate.extract(candidate.path.read_text(encoding="utf-8"))
            if version is None:
                logger.debug("Candidate %s has no %s version", candidate.path, self._label)
                continue
            return DetectedVersion(version=version, source=candidate.path)
        raise ConfigDetectionFailure(
            f"failed to automatically identify the required version of {self._label}"
        )

    def resolve(
        self,
        candidates: Sequence[CandidateSource],
        constraints: Sequence[PlatformConstraint] = (),
    ) -> str:
        """Resolve the desired version, falling back when detection fails."""
        fallback = self.fallback_version
        try:
            detected = self.detect(candidates)
        except ConfigDetectionFailure as exc:
            logger.warning("%s, falling back to default of %s", exc, fallback)
            return fallback

        for constraint in constraints:
            reason = constraint(detected.version)
            if reason is not None:
                logger.warning(
                    "%s %s, falling back to default of %s", self._label, reason, fallback
                )
                return fallback

        if detected.version not in self._known:
            logger.warning(
                "automatically detected an unknown version of %s %s, "
                "falling back to default of %s",
                self._label,
                detected.version,
                fallback,
            )
            return fallback

        logger.debug("Resolved %s %s from %s", self._label, detected.version, detected.source)
        return detected.version
