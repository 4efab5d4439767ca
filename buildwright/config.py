"""Tool configuration — env-driven.

Centralized settings using pydantic-settings.  Reads from a ``.env`` file and
``BUILDWRIGHT_*`` environment variables; the CI flag comes from the bare
``CI`` variable that CI providers export.
"""

from __future__ import annotations

from pathlib import Path

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

_FALSY_CI = frozenset({"", "0", "false", "no", "off"})


class ToolsConfig(BaseSettings):
    """Tool-wide settings with environment variable overrides.

    Examples
    --------
    Override via environment::

        export BUILDWRIGHT_LOG_LEVEL=DEBUG
        export BUILDWRIGHT_FORCE_REDOWNLOAD=1
        export BUILDWRIGHT_THIRD_PARTY_ROOT=/opt/buildwright/third_party

    Or via .env file::

        BUILDWRIGHT_DOWNLOAD_TOOL=curl
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="BUILDWRIGHT_",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    # Runtime
    log_level: str = "INFO"
    debug: bool = False

    # Storage paths
    third_party_root: Path = Path(".buildwright/third_party")
    build_config_path: Path = Path(".buildwright/build.json")
    depot_tools_dir: Path | None = None

    # Download policy
    force_redownload: bool = False
    download_tool: str = "urllib"  # "urllib" | "curl"
    accelerator_base_url: str = "https://dev-cdn.electronjs.org/goma-clients"
    sdk_base_url: str = "https://dev-cdn.electronjs.org/xcode/"

    # Build executor
    default_jobs: int = 200

    # Set by CI providers; changes the accelerator's auto-start policy.
    ci: bool = Field(
        default=False,
        validation_alias=AliasChoices("BUILDWRIGHT_CI", "CI"),
    )

    @field_validator("ci", mode="before")
    @classmethod
    def _ci_from_provider(cls, value: object) -> object:
        """Accept provider names (``CI=woodpecker``) as well as booleans."""
        if isinstance(value, str):
            return value.strip().lower() not in _FALSY_CI
        return value


# Module-level singleton — import as `from buildwright.config import config`
config = ToolsConfig()
