"""Utility modules for fileversions."""

from .fs import ContentChangedError, atomic_copy, ensure_dir, fsync_dir, is_regular_file
from .env import (
    get_home_dir,
    get_global_versions_dir,
    get_global_storage_dir,
    is_debug_mode,
    log_debug,
)

__all__ = [
    "atomic_copy",
    "ensure_dir",
    "fsync_dir",
    "is_regular_file",
    "ContentChangedError",
    "get_home_dir",
    "get_global_versions_dir",
    "get_global_storage_dir",
    "is_debug_mode",
    "log_debug",
]
