"""Environment utilities for fileversions."""

from __future__ import annotations

import os
import sys
from pathlib import Path


DEBUG_ENV_VAR = "VERSIONS_DEBUG"


def is_debug_mode() -> bool:
    """Check if debug mode is enabled.

    Returns:
        True if VERSIONS_DEBUG is set to a truthy value
    """
    val = os.environ.get(DEBUG_ENV_VAR, "").lower()
    return val in ("1", "true", "yes", "on")


def log_debug(message: str) -> None:
    """Log debug message to stderr.

    Only outputs if VERSIONS_DEBUG is set.
    """
    if is_debug_mode():
        print(f"[versions] {message}", file=sys.stderr)


def get_home_dir() -> Path:
    """Get user home directory.

    Returns:
        Path to home directory
    """
    return Path.home()


def get_global_versions_dir() -> Path:
    """Get global versions directory (~/.versions).

    Returns:
        Path to global config directory
    """
    return get_home_dir() / ".versions"


def get_global_storage_dir() -> Path:
    """Get global storage directory (~/.versions/storage).

    Returns:
        Path to global repository storage
    """
    return get_global_versions_dir() / "storage"
