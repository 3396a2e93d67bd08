"""File system utilities for fileversions.

Provides atomic copies, directory creation, and safe file checks.
"""

from __future__ import annotations

import hashlib
import os
import tempfile
from pathlib import Path


COPY_CHUNK_SIZE = 1024 * 1024


class ContentChangedError(OSError):
    """Raised when copied bytes do not hash to the expected digest."""


def atomic_copy(
    source: Path | str,
    destination: Path | str,
    fsync: bool = True,
    expected_digest: str | None = None,
    algorithm: str | None = None,
) -> None:
    """Copy a file atomically using tempfile + rename pattern.

    The destination either holds the complete source content or is left
    untouched; a partially written temp file never survives a failure.

    Args:
        source: File to copy from
        destination: Target file path
        fsync: Flush file and directory to disk before returning
        expected_digest: Hex digest the copied bytes must hash to
        algorithm: hashlib algorithm for expected_digest
    """
    dst = Path(destination)
    dst.parent.mkdir(parents=True, exist_ok=True)
    h = hashlib.new(algorithm) if expected_digest and algorithm else None

    # Create temp file in same directory for atomic rename
    fd, tmp_path = tempfile.mkstemp(
        dir=dst.parent,
        prefix=f".{dst.name}.",
        suffix=".tmp"
    )

    try:
        with os.fdopen(fd, "wb") as out, open(source, "rb") as src:
            while True:
                chunk = src.read(COPY_CHUNK_SIZE)
                if not chunk:
                    break
                if h is not None:
                    h.update(chunk)
                out.write(chunk)
            out.flush()
            if h is not None and h.hexdigest() != expected_digest:
                raise ContentChangedError(
                    f"{source} changed while copying (expected {expected_digest}, got {h.hexdigest()})"
                )
            if fsync:
                os.fsync(out.fileno())
        os.replace(tmp_path, dst)
    except BaseException:
        # Clean up temp file on failure
        try:
            os.unlink(tmp_path)
        except OSError:
            pass
        raise

    if fsync:
        fsync_dir(dst.parent)


def fsync_dir(dir_path: Path | str) -> None:
    """Flush a directory entry to disk (no-op where unsupported)."""
    try:
        fd = os.open(dir_path, os.O_RDONLY)
    except OSError:
        return
    try:
        os.fsync(fd)
    except OSError:
        pass
    finally:
        os.close(fd)


def ensure_dir(dir_path: Path | str) -> Path:
    """Ensure directory exists, creating it if necessary.

    Args:
        dir_path: Directory path to create

    Returns:
        Path object for the directory
    """
    path = Path(dir_path)
    path.mkdir(parents=True, exist_ok=True)
    return path


def is_regular_file(file_path: Path | str) -> bool:
    """Check if path exists and is a regular file (symlinks are followed)."""
    return Path(file_path).is_file()

