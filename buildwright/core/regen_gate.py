"""Regeneration gate: does the generator need to run again?

The generator leaves two files in the output directory: ``build.ninja``
(checked for existence only) and ``args.gn`` (compared in full against the
desired arguments).  The gate only decides *whether* to regenerate; the
caller decides what regenerating means.
"""

from __future__ import annotations

import logging
from pathlib import Path

from buildwright.models.build import DesiredArgs

logger = logging.getLogger(__name__)

BUILD_MANIFEST = "build.ninja"
ARGS_FILE = "args.gn"


def normalize_newlines(text: str, newline: str) -> str:
    """Rewrite every line ending in *text* as *newline* and trim."""
    unified = text.replace("\r\n", "\n").replace("\r", "\n")
    return unified.replace("\n", newline).strip()


class RegenerationGate:
    """Compares a persisted ``args.gn`` with the desired argument text.

    Parameters
    ----------
    newline:
        The platform's native line ending; both sides are normalized to it
        before comparison.
    """

    def __init__(self, newline: str = "\n") -> None:
        self._newline = newline

    def needs_regeneration(self, out_dir: Path, desired_args_text: str) -> bool:
        """True when nothing was generated yet or the arguments changed."""
        if not (out_dir / BUILD_MANIFEST).exists():
            logger.debug("No %s in %s", BUILD_MANIFEST, out_dir)
            return True
        args_file = out_dir / ARGS_FILE
        if not args_file.exists():
            logger.debug("No %s in %s", ARGS_FILE, out_dir)
            return True
        persisted = normalize_newlines(
            args_file.read_text(encoding="utf-8"), self._newline
        )
        desired = normalize_newlines(desired_args_text, self._newline)
        if persisted != desired:
            logger.info("Arguments in %s changed, regenerating", args_file)
            return True
        return False

    def check(self, desired: DesiredArgs) -> bool:
        """``needs_regeneration`` for a ``DesiredArgs`` value."""
        return self.needs_regeneration(desired.out_dir, desired.text)

    def write_args(self, out_dir: Path, args_text: str) -> Path:
        """Persist *args_text* as ``args.gn`` with native line endings."""
        out_dir.mkdir(parents=True, exist_ok=True)
        args_file = out_dir / ARGS_FILE
        body = normalize_newlines(args_text, self._newline) + self._newline
        args_file.write_bytes(body.encode("utf-8"))
        return args_file
