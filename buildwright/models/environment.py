"""Host environment snapshot, built once per invocation by the entry point."""

from __future__ import annotations

import os
import platform
import sys

from pydantic import BaseModel, ConfigDict

_ACCELERATOR_PLATFORM_KEYS: dict[tuple[str, str], str] = {
    ("darwin", "x64"): "darwin",
    ("darwin", "arm64"): "darwin-arm64",
    ("linux", "x64"): "linux",
    ("linux", "arm64"): "linux-arm64",
    ("win32", "x64"): "win32",
    ("win32", "arm64"): "win32",
}

_MACHINE_ALIASES: dict[str, str] = {
    "x86_64": "x64",
    "amd64": "x64",
    "x64": "x64",
    "arm64": "arm64",
    "aarch64": "arm64",
}


class Environment(BaseModel):
    """OS family, architecture and CI flag of the host.

    Passed explicitly into every resolver, cache and installer call; never
    recomputed mid-pipeline.
    """

    model_config = ConfigDict(frozen=True)

    os_family: str  # "darwin" | "linux" | "win32"
    arch: str  # "x64" | "arm64" | raw machine name
    os_version: str = ""
    ci: bool = False
    cpu_count: int = 1

    @classmethod
    def detect(cls, *, ci: bool = False) -> Environment:
        """Inspect the running interpreter's host."""
        if sys.platform.startswith("linux"):
            os_family = "linux"
        elif sys.platform in ("win32", "cygwin"):
            os_family = "win32"
        else:
            os_family = sys.platform

        machine = platform.machine().lower()
        arch = _MACHINE_ALIASES.get(machine, machine)

        if os_family == "darwin":
            os_version = platform.mac_ver()[0]
        else:
            os_version = platform.release()

        return cls(
            os_family=os_family,
            arch=arch,
            os_version=os_version,
            ci=ci,
            cpu_count=os.cpu_count() or 1,
        )

    @property
    def is_windows(self) -> bool:
        return self.os_family == "win32"

    @property
    def is_macos(self) -> bool:
        return self.os_family == "darwin"

    @property
    def newline(self) -> str:
        """Native line ending of the host."""
        return "\r\n" if self.is_windows else "\n"

    @property
    def os_major(self) -> int | None:
        """Leading integer of ``os_version``, if it has one."""
        head = self.os_version.split(".", 1)[0]
        return int(head) if head.isdigit() else None

    @property
    def accelerator_platform_key(self) -> str | None:
        """Key into the accelerator bundle table, or None when unsupported."""
        return _ACCELERATOR_PLATFORM_KEYS.get((self.os_family, self.arch))

    def executable(self, name: str, *, windows_suffix: str = ".exe") -> str:
        """Platform spelling of an executable name."""
        return f"{name}{windows_suffix}" if self.is_windows else name
