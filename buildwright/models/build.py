"""Per-checkout build configuration and the generator arguments derived from it."""

from __future__ import annotations

import json
from enum import Enum
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from buildwright.core.errors import ConfigError

DEFAULT_TARGETS: dict[str, str] = {
    "breakpad": "third_party/breakpad:dump_syms",
    "chromedriver": "electron:electron_chromedriver_zip",
    "chromium": "chrome",
    "default": "electron",
    "electron": "electron",
    "electron:dist": "electron:electron_dist_zip",
    "mksnapshot": "electron:electron_mksnapshot_zip",
    "node:headers": "third_party/electron_node:headers",
}


class AcceleratorMode(str, Enum):
    """How the build executor uses the compilation accelerator."""

    NONE = "none"
    CACHE_ONLY = "cache-only"
    CLUSTER = "cluster"


class AcceleratorSource(str, Enum):
    """Which checksum table the accelerator bundle is pinned against."""

    DEFAULT = "default"
    MSFT = "msft"


class BuildConfig(BaseModel):
    """Configuration of one checkout, loaded from a JSON file.

    Examples
    --------
    >>> cfg = BuildConfig(root=Path("/src/electron-gn"))
    >>> cfg.out_dir
    PosixPath('/src/electron-gn/src/out/Testing')
    """

    model_config = ConfigDict(frozen=True)

    root: Path
    out: str = "Testing"
    gen_args: list[str] = Field(
        default_factory=lambda: ['import("//electron/build/args/testing.gn")']
    )
    accelerator: AcceleratorMode = AcceleratorMode.NONE
    accelerator_source: AcceleratorSource = AcceleratorSource.DEFAULT
    targets: dict[str, str] = Field(default_factory=lambda: dict(DEFAULT_TARGETS))

    @field_validator("targets")
    @classmethod
    def _has_default_target(cls, value: dict[str, str]) -> dict[str, str]:
        if "default" not in value:
            raise ValueError("targets must define a 'default' entry")
        return value

    @property
    def src_dir(self) -> Path:
        return self.root / "src"

    @property
    def out_dir(self) -> Path:
        return self.src_dir / "out" / self.out

    @property
    def accelerator_enabled(self) -> bool:
        return self.accelerator is not AcceleratorMode.NONE


class DesiredArgs(BaseModel):
    """Generator argument text for one output directory.

    The text is opaque: it is compared as a whole against the persisted
    ``args.gn`` and never parsed into key/value pairs.
    """

    model_config = ConfigDict(frozen=True)

    out_dir: Path
    text: str

    @classmethod
    def from_config(
        cls,
        build: BuildConfig,
        *,
        newline: str = "\n",
        accelerator_gn_file: Path | None = None,
    ) -> DesiredArgs:
        """Join ``build.gen_args`` with *newline*.

        When the accelerator is enabled and no line imports its gn file yet,
        an import line for *accelerator_gn_file* is appended.
        """
        lines = list(build.gen_args)
        if build.accelerator_enabled and accelerator_gn_file is not None:
            gn_import = f'import("{accelerator_gn_file.as_posix()}")'
            if not any(accelerator_gn_file.name in line for line in lines):
                lines.append(gn_import)
        return cls(out_dir=build.out_dir, text=newline.join(lines))

    def as_cli_value(self) -> str:
        """Arguments collapsed to one line for ``gn gen --args=``."""
        return " ".join(line.strip() for line in self.text.splitlines() if line.strip())


def load_build_config(path: Path) -> BuildConfig:
    """Read and validate a build configuration JSON file.

    Raises
    ------
    ConfigError
        If the file is missing, is not JSON, or fails validation.
    """
    path = Path(path)
    if not path.is_file():
        raise ConfigError(f"Build config not found: {path}")
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise ConfigError(f"Build config {path} is not valid JSON: {exc}") from exc
    try:
        return BuildConfig.model_validate(data)
    except ValidationError as exc:
        raise ConfigError(f"Build config {path} is invalid:\n{exc}") from exc
