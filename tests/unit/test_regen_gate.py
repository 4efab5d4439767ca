"""Tests for RegenerationGate."""

from __future__ import annotations

from pathlib import Path

import pytest

from buildwright.core.regen_gate import RegenerationGate, normalize_newlines
from buildwright.models.build import DesiredArgs

ARGS = 'import("//electron/build/args/testing.gn")\nis_debug = false'


@pytest.fixture
def out_dir(tmp_path: Path) -> Path:
    path = tmp_path / "out" / "Testing"
    path.mkdir(parents=True)
    return path


def _generated(out_dir: Path, args_text: str, newline: str = "\n") -> None:
    (out_dir / "build.ninja").write_text("rule cc\n", encoding="utf-8")
    RegenerationGate(newline).write_args(out_dir, args_text)


class TestRegenerationGate:
    def test_missing_manifest_needs_regeneration(self, out_dir: Path):
        (out_dir / "args.gn").write_text(ARGS, encoding="utf-8")
        assert RegenerationGate().needs_regeneration(out_dir, ARGS) is True

    def test_missing_args_file_needs_regeneration(self, out_dir: Path):
        (out_dir / "build.ninja").write_text("", encoding="utf-8")
        assert RegenerationGate().needs_regeneration(out_dir, ARGS) is True

    def test_missing_out_dir_needs_regeneration(self, tmp_path: Path):
        assert RegenerationGate().needs_regeneration(tmp_path / "nope", ARGS) is True

    @pytest.mark.parametrize("newline", ["\n", "\r\n"])
    @pytest.mark.parametrize(
        "text",
        [ARGS, "", "single_line = 1", 'a = 1\n\nb = "two"\n', "  padded = true  \n"],
    )
    def test_write_then_check_is_stable(self, out_dir: Path, text: str, newline: str):
        _generated(out_dir, text, newline)
        gate = RegenerationGate(newline)
        assert gate.needs_regeneration(out_dir, text) is False

    def test_changed_args_need_regeneration(self, out_dir: Path):
        _generated(out_dir, ARGS)
        assert RegenerationGate().needs_regeneration(out_dir, ARGS + "\nuse_goma = true") is True

    def test_line_endings_do_not_matter(self, out_dir: Path):
        (out_dir / "build.ninja").write_text("", encoding="utf-8")
        (out_dir / "args.gn").write_bytes(ARGS.replace("\n", "\r\n").encode("utf-8"))
        assert RegenerationGate("\n").needs_regeneration(out_dir, ARGS) is False

    def test_write_args_uses_native_newline(self, out_dir: Path):
        path = RegenerationGate("\r\n").write_args(out_dir, ARGS)
        assert path.read_bytes() == (ARGS.replace("\n", "\r\n") + "\r\n").encode("utf-8")

    def test_check_accepts_desired_args(self, out_dir: Path):
        _generated(out_dir, ARGS)
        gate = RegenerationGate()
        assert gate.check(DesiredArgs(out_dir=out_dir, text=ARGS)) is False
        assert gate.check(DesiredArgs(out_dir=out_dir, text="other")) is True


def test_normalize_newlines():
    assert normalize_newlines("a\r\nb\rc\n", "\n") == "a\nb\nc"
    assert normalize_newlines("a\nb", "\r\n") == "a\r\nb"
