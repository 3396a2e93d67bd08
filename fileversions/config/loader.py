"""Configuration loader for fileversions.

Handles loading and merging configuration from multiple sources.
"""

from __future__ import annotations

import hashlib
import json
import os
from pathlib import Path
from typing import Any

from ..utils.env import get_global_storage_dir, get_global_versions_dir, log_debug
from .types import RepositoryConfig, StorageMode, VersionsConfig


PROJECT_DIR_NAME = ".versions"
CONFIG_NAME = "config.json"


def _load_json_object(path: Path) -> dict[str, Any]:
    try:
        with open(path, encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        log_debug(f"Ignoring unreadable config {path}: {e}")
        return {}
    return data if isinstance(data, dict) else {}


class ConfigLoader:
    """Loads and manages fileversions configuration."""

    def __init__(self, project_root: Path | str | None = None):
        """Initialize config loader.

        Args:
            project_root: Project root directory (defaults to cwd)
        """
        self.project_root = Path(project_root) if project_root else Path.cwd()
        self._config: VersionsConfig | None = None

    @property
    def config(self) -> VersionsConfig:
        """Get loaded configuration, loading if necessary."""
        if self._config is None:
            self._config = self.load()
        return self._config

    @property
    def global_config_path(self) -> Path:
        return get_global_versions_dir() / CONFIG_NAME

    @property
    def project_config_path(self) -> Path:
        return self.project_root / PROJECT_DIR_NAME / CONFIG_NAME

    def load(self) -> VersionsConfig:
        """Load configuration from all sources.

        Priority (highest to lowest):
        1. Project-local config (.versions/config.json)
        2. Global config (~/.versions/config.json)
        3. Default values

        Returns:
            Merged VersionsConfig
        """
        merged: dict[str, Any] = {}

        if self.global_config_path.exists():
            merged = self._deep_merge(merged, _load_json_object(self.global_config_path))

        if self.project_config_path.exists():
            merged = self._deep_merge(merged, _load_json_object(self.project_config_path))

        return VersionsConfig.from_dict(merged)

    def repository_root(self) -> Path:
        """Resolve the repository directory for the current storage mode."""
        if self.config.storage_mode == StorageMode.GLOBAL:
            return get_global_storage_dir() / self._project_hash()
        return self.project_root / PROJECT_DIR_NAME

    def repository_config(self, repository_root: Path | str | None = None) -> RepositoryConfig:
        """Build the explicit repository configuration for the engine.

        Args:
            repository_root: Override for the resolved repository directory
        """
        config = self.config
        root = Path(repository_root) if repository_root else self.repository_root()
        return RepositoryConfig(
            repository_root=root,
            hash_algorithm=config.hash_algorithm,
            lock_timeout_seconds=config.lock_timeout_seconds,
            verify_on_get=config.verify_on_get,
            fsync=config.fsync,
        )

    def save_config(self, config: VersionsConfig, scope: str = "project") -> Path:
        """Save configuration to file.

        Args:
            config: Configuration to save
            scope: "project" or "global"

        Returns:
            Path where config was saved
        """
        if scope == "global":
            config_path = self.global_config_path
        elif scope == "project":
            config_path = self.project_config_path
        else:
            raise ValueError(f"Unknown config scope: {scope!r}")

        config_path.parent.mkdir(parents=True, exist_ok=True)
        with open(config_path, "w", encoding="utf-8") as f:
            json.dump(config.to_dict(), f, indent=2)

        self._config = None
        return config_path

    def _project_hash(self) -> str:
        return hashlib.sha256(os.fsencode(self.project_root.resolve())).hexdigest()[:16]

    @staticmethod
    def _deep_merge(base: dict, override: dict) -> dict:
        """Deep merge two dictionaries.

        Args:
            base: Base dictionary
            override: Dictionary to merge (takes precedence)

        Returns:
            Merged dictionary
        """
        result = base.copy()
        for key, value in override.items():
            if key in result and isinstance(result[key], dict) and isinstance(value, dict):
                result[key] = ConfigLoader._deep_merge(result[key], value)
            else:
                result[key] = value
        return result
