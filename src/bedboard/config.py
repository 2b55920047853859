"""Configuration models for Bedboard."""

from __future__ import annotations

import tomllib
from datetime import UTC, tzinfo
from pathlib import Path
from typing import Any, Literal
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import BaseModel, Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from bedboard.errors import ConfigError
from bedboard.paths import BEDBOARD_DIR, CONFIG_FILE, HISTORY_DB_FILE

DEFAULT_BED_COUNT = 20


class BoardSettings(BaseModel):
    """Bed board configuration."""

    beds: list[str] = Field(
        default_factory=lambda: [str(i) for i in range(1, DEFAULT_BED_COUNT + 1)],
        description="Known bed identifiers",
    )
    statuses: list[str] = Field(
        default=["available", "occupied", "cleaning"],
        description="Allowed statuses (empty list accepts any status)",
    )
    initial_status: str = Field(
        default="available",
        description="Status every bed starts in",
    )

    @field_validator("beds")
    @classmethod
    def _unique_beds(cls, beds: list[str]) -> list[str]:
        if len(set(beds)) != len(beds):
            raise ValueError("bed identifiers must be unique")
        return beds

    @model_validator(mode="after")
    def _initial_status_allowed(self) -> BoardSettings:
        if self.statuses and self.initial_status not in self.statuses:
            raise ValueError(f"initial_status {self.initial_status!r} is not in statuses")
        return self

    def initial_snapshot(self) -> dict[str, str]:
        """Every configured bed at the initial status."""
        return {bed: self.initial_status for bed in self.beds}


class HistorySettings(BaseModel):
    """History log and undo configuration."""

    max_entries: int | None = Field(
        default=100,
        ge=1,
        description="Keep at most this many entries (None disables the cap)",
    )
    max_age_ms: int | None = Field(
        default=None,
        ge=1,
        description="Drop entries older than this many milliseconds",
    )
    preserve_initial_entry: bool = Field(
        default=False,
        description="Undo never removes the oldest remaining entry",
    )
    seed_initial_entry: bool = Field(
        default=False,
        description="Record the initial board as the first entry on an empty log",
    )
    merge_strategy: Literal["overlay", "replace"] = Field(
        default="overlay",
        description="How update payloads combine with the current state",
    )


class DisplaySettings(BaseModel):
    """Human-readable time rendering."""

    timezone: str = Field(
        default="UTC",
        description="IANA timezone for display times",
    )
    time_format: str = Field(
        default="%Y-%m-%d %H:%M:%S",
        description="strftime format for display times",
    )

    @field_validator("timezone")
    @classmethod
    def _known_timezone(cls, value: str) -> str:
        if value.upper() == "UTC":
            return value
        try:
            ZoneInfo(value)
        except (ZoneInfoNotFoundError, ValueError) as e:
            raise ValueError(f"unknown timezone: {value}") from e
        return value

    def tzinfo(self) -> tzinfo:
        """Resolve the configured timezone."""
        if self.timezone.upper() == "UTC":
            return UTC
        return ZoneInfo(self.timezone)


class StorageSettings(BaseModel):
    """Durable storage configuration."""

    enabled: bool = Field(
        default=True,
        description="Persist the history log to DuckDB",
    )
    path: str = Field(
        default=f"{BEDBOARD_DIR}/{HISTORY_DB_FILE}",
        description="History database path (relative to project root)",
    )


class BoardConfig(BaseSettings):
    """Main Bedboard configuration."""

    model_config = SettingsConfigDict(
        env_prefix="BEDBOARD_",
        env_nested_delimiter="__",
        extra="ignore",
    )

    version: str = Field(default="1.0", description="Config version")
    board: BoardSettings = Field(default_factory=BoardSettings)
    history: HistorySettings = Field(default_factory=HistorySettings)
    display: DisplaySettings = Field(default_factory=DisplaySettings)
    storage: StorageSettings = Field(default_factory=StorageSettings)

    @classmethod
    def load(cls, config_path: Path | None = None) -> BoardConfig:
        """Load configuration from file and environment.

        The first file found wins:
        1. Provided config file path
        2. .bedboard.toml in current directory
        3. .bedboard.toml in home directory

        Keys absent from the file come from BEDBOARD_* environment
        variables, then built-in defaults.

        Raises:
            ConfigError: If the file cannot be parsed or fails validation
        """
        config_data: dict[str, Any] = {}

        locations = []
        if config_path:
            locations.append(config_path)
        locations.extend(
            [
                Path.cwd() / CONFIG_FILE,
                Path.home() / CONFIG_FILE,
            ]
        )

        for loc in locations:
            if loc.exists():
                try:
                    with open(loc, "rb") as f:
                        config_data = tomllib.load(f)
                except tomllib.TOMLDecodeError as e:
                    raise ConfigError(f"Invalid config file {loc}: {e}", path=str(loc)) from e
                break

        # The [bedboard] table mirrors top-level keys
        config_data.update(config_data.pop("bedboard", {}))

        try:
            return cls(**config_data)
        except ValueError as e:
            raise ConfigError(f"Invalid configuration: {e}") from e

    def storage_path(self, root: Path | str = ".") -> Path:
        """Resolve the history database path against a project root."""
        path = Path(self.storage.path)
        if path.is_absolute():
            return path
        return Path(root).resolve() / path


def get_default_config_toml() -> str:
    """Generate default .bedboard.toml content."""
    beds = ", ".join(f'"{i}"' for i in range(1, DEFAULT_BED_COUNT + 1))
    return f"""# Bedboard Configuration

[bedboard]
version = "1.0"

[board]
beds = [{beds}]
statuses = ["available", "occupied", "cleaning"]  # [] accepts any status
initial_status = "available"

[history]
max_entries = 100  # Oldest entries beyond this are pruned
# max_age_ms = 86400000  # Also prune entries older than 24 hours
preserve_initial_entry = false  # true: undo never empties the log
seed_initial_entry = false  # true: record the initial board on first start
merge_strategy = "overlay"  # overlay | replace

[display]
timezone = "UTC"
time_format = "%Y-%m-%d %H:%M:%S"

[storage]
enabled = true
path = "{BEDBOARD_DIR}/{HISTORY_DB_FILE}"
"""


__all__ = [
    "BoardConfig",
    "BoardSettings",
    "HistorySettings",
    "DisplaySettings",
    "StorageSettings",
    "get_default_config_toml",
]
