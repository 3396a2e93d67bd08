"""Configuration schemas for fileversions.

Defines dataclasses for all configuration structures.
"""

from __future__ import annotations

import hashlib
from dataclasses import dataclass
from enum import Enum
from pathlib import Path


DEFAULT_HASH_ALGORITHM = "sha256"


class StorageMode(str, Enum):
    """Where repositories are stored."""
    PROJECT = "project"  # .versions/ in project root
    GLOBAL = "global"    # ~/.versions/storage/


def _coerce_algorithm(val: object) -> str:
    # shake_* digests have no fixed length
    if isinstance(val, str) and val.lower() in hashlib.algorithms_guaranteed and not val.lower().startswith("shake"):
        return val.lower()
    return DEFAULT_HASH_ALGORITHM


def _coerce_timeout(val: object) -> float | None:
    if isinstance(val, bool):
        return None
    if isinstance(val, (int, float)) and val >= 0:
        return float(val)
    return None


def _coerce_bool(val: object, default: bool) -> bool:
    return val if isinstance(val, bool) else default


@dataclass
class VersionsConfig:
    """Main fileversions configuration (as read from config.json)."""
    storage_mode: StorageMode = StorageMode.PROJECT
    hash_algorithm: str = DEFAULT_HASH_ALGORITHM
    lock_timeout_seconds: float | None = None
    verify_on_get: bool = True
    fsync: bool = True

    @classmethod
    def from_dict(cls, data: dict) -> VersionsConfig:
        """Create VersionsConfig from dictionary.

        Invalid values fall back to defaults.
        """
        storage_data = data.get("storage", {})
        mode_str = storage_data.get("mode", "project") if isinstance(storage_data, dict) else "project"

        return cls(
            storage_mode=StorageMode(mode_str) if mode_str in ("project", "global") else StorageMode.PROJECT,
            hash_algorithm=_coerce_algorithm(data.get("hashAlgorithm")),
            lock_timeout_seconds=_coerce_timeout(data.get("lockTimeoutSeconds")),
            verify_on_get=_coerce_bool(data.get("verifyOnGet"), True),
            fsync=_coerce_bool(data.get("fsync"), True),
        )

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "storage": {"mode": self.storage_mode.value},
            "hashAlgorithm": self.hash_algorithm,
            "lockTimeoutSeconds": self.lock_timeout_seconds,
            "verifyOnGet": self.verify_on_get,
            "fsync": self.fsync,
        }


@dataclass(frozen=True)
class RepositoryConfig:
    """Explicit repository location and tunables handed to the engine."""
    repository_root: Path
    hash_algorithm: str = DEFAULT_HASH_ALGORITHM
    lock_timeout_seconds: float | None = None
    verify_on_get: bool = True
    fsync: bool = True

    BLOBS_DIR = "blobs"
    LOG_NAME = "versions.db"
    LOCK_NAME = "lock"

    @property
    def blobs_dir(self) -> Path:
        return Path(self.repository_root) / self.BLOBS_DIR

    @property
    def log_path(self) -> Path:
        return Path(self.repository_root) / self.LOG_NAME

    @property
    def lock_path(self) -> Path:
        return Path(self.repository_root) / self.LOCK_NAME
