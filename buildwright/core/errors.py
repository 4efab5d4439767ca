"""Error taxonomy for the download, install and build pipeline.

Every error carries the process exit code the CLI should use when it
surfaces the failure.  Library code raises; only the CLI turns an error into
a colored error line and a non-zero exit.

``ConfigDetectionFailure`` is the one recoverable kind: the version resolver
catches it and falls back to a default.
"""

from __future__ import annotations


class BuildToolsError(RuntimeError):
    """Base class for every fatal buildwright error."""

    exit_code: int = 1


class ConfigError(BuildToolsError):
    """Raised when the build configuration file is missing or invalid."""


class TransferFailure(BuildToolsError):
    """Raised when the transfer step of a download fails."""


class ChecksumMismatch(BuildToolsError):
    """Raised when downloaded bytes do not match the expected digest.

    Parameters
    ----------
    computed:
        The digest of the bytes that were actually downloaded.
    expected:
        The digest the artifact table promised.
    """

    def __init__(self, computed: str, expected: str, *, source: str = "") -> None:
        self.computed = computed
        self.expected = expected
        self.source = source
        where = f" for {source}" if source else ""
        super().__init__(
            f"Got hash {computed}{where} which did not match {expected}. Halting now"
        )


class ExtractionFailure(BuildToolsError):
    """Raised when the archive extraction tool exits non-zero."""

    def __init__(self, message: str, *, returncode: int | None = None) -> None:
        self.returncode = returncode
        super().__init__(message)


class ConfigDetectionFailure(BuildToolsError):
    """Raised when no candidate source yields a version.  Non-fatal."""


class SubprocessFailure(BuildToolsError):
    """Raised when a wrapped external tool exits non-zero.

    The tool's own exit code becomes the process exit code.
    """

    def __init__(self, message: str, *, returncode: int) -> None:
        self.returncode = returncode
        self.exit_code = returncode if returncode > 0 else 1
        super().__init__(message)
