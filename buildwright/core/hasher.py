"""Streaming digest helpers for downloaded archives."""

from __future__ import annotations

import hashlib
from pathlib import Path

from buildwright.models.artifacts import ChecksumAlgorithm

_CHUNK_SIZE = 1024 * 1024


def file_digest(path: Path, algorithm: ChecksumAlgorithm) -> str:
    """Return the lowercase hex digest of the file at *path*.

    The file is read in chunks; SDK archives run to several gigabytes.
    """
    digest = hashlib.new(algorithm.value)
    with open(path, "rb") as f:
        for chunk in iter(lambda: f.read(_CHUNK_SIZE), b""):
            digest.update(chunk)
    return digest.hexdigest()


def digests_match(computed: str, expected: str) -> bool:
    """Compare two hex digests case-insensitively."""
    return computed.strip().lower() == expected.strip().lower()
