"""Content hashing for deduplication."""

from __future__ import annotations

import hashlib
from pathlib import Path

from ..config.types import DEFAULT_HASH_ALGORITHM


HASH_CHUNK_SIZE = 1024 * 1024


class HashError(OSError):
    """Raised when a file cannot be hashed."""


class Hasher:
    """Streams a file through a fixed-length hashlib digest."""

    def __init__(self, algorithm: str = DEFAULT_HASH_ALGORITHM) -> None:
        if algorithm not in hashlib.algorithms_available or algorithm.startswith("shake"):
            raise ValueError(f"Unsupported hash algorithm: {algorithm}")
        self.algorithm = algorithm
        self.digest_size_hex = hashlib.new(algorithm).digest_size * 2

    def hash_file(self, path: Path | str) -> str:
        """Return the lowercase hex digest of a regular file's content."""
        file_path = Path(path)
        if not file_path.is_file():
            raise HashError(f"Not a regular file: {file_path}")

        h = hashlib.new(self.algorithm)
        try:
            with open(file_path, "rb") as f:
                while True:
                    chunk = f.read(HASH_CHUNK_SIZE)
                    if not chunk:
                        break
                    h.update(chunk)
        except OSError as e:
            raise HashError(f"Failed to hash {file_path}: {e}") from e
        return h.hexdigest()

    def is_digest(self, value: str) -> bool:
        """Check that value looks like a digest produced by this hasher."""
        return len(value) == self.digest_size_hex and all(c in "0123456789abcdef" for c in value)


def hash_file(path: Path | str, algorithm: str = DEFAULT_HASH_ALGORITHM) -> str:
    return Hasher(algorithm).hash_file(path)
