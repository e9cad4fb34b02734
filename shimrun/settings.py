"""Settings for the CLI and the loader.

Two layers:
- ``SettingsManager`` reads the scoped settings.yaml files the CLI starts from:
  user (~/.shimrun/settings.yaml), project (.shimrun/settings.yaml) and
  local (.shimrun/settings.local.yaml).
- ``LoaderSettings`` is what a supervised child sees. The CLI turns the merged
  settings into environment variables and the child reads them back with
  ``LoaderSettings.from_env``.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel
from pydantic import Field

logger = logging.getLogger(__name__)

ENV_ALIAS_CONFIG = "SHIMRUN_ALIAS_CONFIG"
ENV_DISABLE_CACHE = "SHIMRUN_DISABLE_CACHE"
ENV_TRANSFORMER = "SHIMRUN_TRANSFORMER"
ENV_TRANSFORM_COMMAND = "SHIMRUN_TRANSFORM_COMMAND"
ENV_IPC_FD = "SHIMRUN_IPC_FD"

_TRUTHY = ("1", "true", "yes", "on")


class TransformSettings(BaseModel):
    """Which transform service to use."""

    transformer: str | None = Field(None, description="'passthrough' or 'package.module:function'")
    command: str | None = Field(None, description="External transform command (JSON over stdio)")
    cache: bool = Field(True, description="Allow the transform service to cache results")


class WatchSettings(BaseModel):
    """Watch mode defaults."""

    include: list[str] = Field(default_factory=list, description="Extra paths to watch")
    exclude: list[str] = Field(default_factory=list, description="Extra directory names to ignore")
    clear_screen: bool = Field(True, description="Clear the terminal before each restart")


class ShimrunSettings(BaseModel):
    """Merged settings.yaml contents."""

    aliases: str | None = Field(None, description="Path to the alias configuration file")
    transform: TransformSettings = Field(default_factory=TransformSettings)
    watch: WatchSettings = Field(default_factory=WatchSettings)


class LoaderSettings(BaseModel):
    """Loader configuration for one process."""

    alias_config: str | None = None
    disable_cache: bool = False
    transformer: str | None = None
    transform_command: str | None = None

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> LoaderSettings:
        env = os.environ if environ is None else environ
        return cls(
            alias_config=env.get(ENV_ALIAS_CONFIG) or None,
            disable_cache=env.get(ENV_DISABLE_CACHE, "").lower() in _TRUTHY,
            transformer=env.get(ENV_TRANSFORMER) or None,
            transform_command=env.get(ENV_TRANSFORM_COMMAND) or None,
        )

    @classmethod
    def from_settings(cls, settings: ShimrunSettings) -> LoaderSettings:
        return cls(
            alias_config=settings.aliases,
            disable_cache=not settings.transform.cache,
            transformer=settings.transform.transformer,
            transform_command=settings.transform.command,
        )

    def to_env(self) -> dict[str, str]:
        """Environment variables that reproduce these settings in a child."""
        env: dict[str, str] = {}
        if self.alias_config:
            env[ENV_ALIAS_CONFIG] = str(Path(self.alias_config).resolve())
        if self.disable_cache:
            env[ENV_DISABLE_CACHE] = "1"
        if self.transformer:
            env[ENV_TRANSFORMER] = self.transformer
        if self.transform_command:
            env[ENV_TRANSFORM_COMMAND] = self.transform_command
        return env


def deep_merge(base: dict[str, Any], overlay: dict[str, Any]) -> dict[str, Any]:
    """Recursively merge overlay into a copy of base. Overlay wins on conflicts."""
    result = base.copy()
    for key, value in overlay.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = deep_merge(result[key], value)
        else:
            result[key] = value
    return result


class SettingsManager:
    """Reads settings across user/project/local scopes."""

    def __init__(self, shimrun_dir: Path | None = None, home: Path | None = None):
        """Initialize settings manager with standard paths.

        Args:
            shimrun_dir: Base directory for project/local settings (for testing).
                         If None, uses .shimrun in current directory.
            home: Home directory override (for testing)
        """
        if shimrun_dir is None:
            shimrun_dir = Path(".shimrun")
        home = home or Path.home()

        self.user_settings_file = home / ".shimrun" / "settings.yaml"
        self.project_settings_file = shimrun_dir / "settings.yaml"
        self.local_settings_file = shimrun_dir / "settings.local.yaml"

    def get_merged_settings(self) -> dict[str, Any]:
        """Get merged settings from all scopes.

        Merge order (later overrides earlier):
        1. User settings
        2. Project settings
        3. Local settings
        """
        merged: dict[str, Any] = {}
        for path in (self.user_settings_file, self.project_settings_file, self.local_settings_file):
            settings = self._read_settings(path)
            if settings:
                merged = deep_merge(merged, settings)
        return merged

    def load(self) -> ShimrunSettings:
        """Merged settings validated into a ShimrunSettings."""
        return ShimrunSettings.model_validate(self.get_merged_settings())

    def _read_settings(self, path: Path) -> dict[str, Any] | None:
        """Read settings from a YAML file. Returns None when absent or unreadable."""
        if not path.exists():
            return None

        try:
            with open(path, encoding="utf-8") as f:
                data = yaml.safe_load(f)
        except (OSError, yaml.YAMLError) as e:
            logger.warning(f"Failed to read {path}: {e}")
            return None

        if data is not None and not isinstance(data, dict):
            logger.warning(f"Ignoring {path}: expected a mapping")
            return None
        return data
