"""Configuration management for fileversions."""

from .types import (
    StorageMode,
    RepositoryConfig,
    VersionsConfig,
)
from .loader import ConfigLoader

__all__ = [
    "StorageMode",
    "RepositoryConfig",
    "VersionsConfig",
    "ConfigLoader",
]
