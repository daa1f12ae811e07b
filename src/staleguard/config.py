"""Configuration model and loader for the staleguard engine.

Settings live in an optional ``staleguard.yaml`` file.  The file is parsed with
PyYAML and validated into :class:`StaleguardConfig`; unknown keys are rejected
so typos surface immediately instead of silently falling back to defaults.
"""

from __future__ import annotations

import logging
from enum import Enum
from pathlib import Path
from typing import List, Optional

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .errors import ConfigurationError

DEFAULT_CONFIG_NAME = "staleguard.yaml"
DEFAULT_CACHE_DIRNAME = ".coverage"
DEFAULT_SKIP_ANNOUNCEMENT = "[ Staleguard - Skipping clean test ]"

LOGGER = logging.getLogger(__name__)

__all__ = [
    "DEFAULT_CACHE_DIRNAME",
    "DEFAULT_CONFIG_NAME",
    "DEFAULT_SKIP_ANNOUNCEMENT",
    "CoverageSettings",
    "MissingFilePolicy",
    "StaleguardConfig",
    "find_config",
    "load_config",
]


class SettingsModel(BaseModel):
    """Base Pydantic model with strict field handling."""

    model_config = ConfigDict(extra="forbid", frozen=True)


class MissingFilePolicy(str, Enum):
    """How the dirtiness check treats recorded files that no longer exist."""

    DIRTY = "dirty"
    ERROR = "error"


class CoverageSettings(SettingsModel):
    """Options forwarded to coverage.py when measuring a test."""

    include: List[str] = Field(default_factory=list)
    omit: List[str] = Field(default_factory=list)


class StaleguardConfig(SettingsModel):
    """Top-level engine configuration."""

    cache_dirname: str = DEFAULT_CACHE_DIRNAME
    missing_files: MissingFilePolicy = MissingFilePolicy.DIRTY
    skip_announcement: str = DEFAULT_SKIP_ANNOUNCEMENT
    coverage: CoverageSettings = Field(default_factory=CoverageSettings)

    @field_validator("cache_dirname")
    @classmethod
    def _single_segment(cls, value: str) -> str:
        cleaned = value.strip()
        if not cleaned or "/" in cleaned or "\\" in cleaned or cleaned in {".", ".."}:
            raise ValueError("cache_dirname must be a single directory name")
        return cleaned


def find_config(start: Path | str | None = None) -> Optional[Path]:
    """Return the nearest ``staleguard.yaml`` at or above ``start``."""

    current = Path(start or Path.cwd()).resolve()
    for directory in (current, *current.parents):
        candidate = directory / DEFAULT_CONFIG_NAME
        if candidate.is_file():
            return candidate
    return None


def load_config(config_path: Path | str | None = None) -> StaleguardConfig:
    """Load and validate a configuration file, or return defaults for ``None``."""

    if config_path is None:
        return StaleguardConfig()

    path = Path(config_path)
    if not path.exists():
        raise ConfigurationError(f"Config file not found: {path}")

    try:
        with path.open("r", encoding="utf-8") as handle:
            data = yaml.safe_load(handle) or {}
    except (OSError, yaml.YAMLError) as error:
        raise ConfigurationError(f"Failed to parse config {path}: {error}") from error

    if not isinstance(data, dict):
        raise ConfigurationError(f"Configuration in {path} must be a mapping at the top level.")

    try:
        config = StaleguardConfig.model_validate(data)
    except ValidationError as error:
        raise ConfigurationError(f"Invalid configuration in {path}: {error}") from error

    LOGGER.debug("Loaded staleguard configuration from %s", path)
    return config
