"""Tests for streaming digests and the error taxonomy's exit codes."""

from __future__ import annotations

import hashlib
from pathlib import Path

from buildwright.core.errors import (
    BuildToolsError,
    ChecksumMismatch,
    ConfigError,
    ExtractionFailure,
    SubprocessFailure,
)
from buildwright.core.hasher import digests_match, file_digest
from buildwright.models.artifacts import ChecksumAlgorithm


class TestFileDigest:
    def test_sha256_of_large_file(self, tmp_path: Path):
        data = b"x" * (3 * 1024 * 1024 + 17)
        path = tmp_path / "blob"
        path.write_bytes(data)
        assert file_digest(path, ChecksumAlgorithm.SHA256) == hashlib.sha256(data).hexdigest()

    def test_md5(self, tmp_path: Path):
        path = tmp_path / "blob"
        path.write_bytes(b"")
        assert file_digest(path, ChecksumAlgorithm.MD5) == "d41d8cd98f00b204e9800998ecf8427e"

    def test_digests_match_ignores_case_and_whitespace(self):
        assert digests_match("ABCDEF", " abcdef\n")
        assert not digests_match("abcdef", "abcdee")


class TestErrors:
    def test_default_exit_code(self):
        assert ConfigError("x").exit_code == 1
        assert ExtractionFailure("x", returncode=2).exit_code == 1
        assert isinstance(ChecksumMismatch("a", "b"), BuildToolsError)

    def test_subprocess_failure_carries_tool_code(self):
        assert SubprocessFailure("x", returncode=42).exit_code == 42
        assert SubprocessFailure("x", returncode=0).exit_code == 1

    def test_checksum_mismatch_message(self):
        exc = ChecksumMismatch("aa", "bb", source="https://cdn.invalid/x.zip")
        assert str(exc) == (
            "Got hash aa for https://cdn.invalid/x.zip which did not match bb. Halting now"
        )
