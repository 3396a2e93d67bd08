"""Content-addressed blob storage for fileversions.

One file per distinct digest under the blob directory. The file name is the
digest itself; the content is the raw bytes of the snapshot.
"""

from __future__ import annotations

import re
from pathlib import Path
from typing import Iterator

from ..utils.env import log_debug
from ..utils.fs import atomic_copy


_DIGEST_RE = re.compile(r"^[0-9a-f]+$")


class BlobStoreError(Exception):
    """Raised when a blob cannot be written or read."""


class BlobNotFoundError(BlobStoreError):
    """Raised when no blob exists for a digest."""


class BlobStore:
    """Stores each distinct content exactly once, keyed by digest."""

    def __init__(self, blobs_dir: Path | str, fsync: bool = True, algorithm: str | None = None):
        """Initialize blob store.

        Args:
            blobs_dir: Directory holding one file per digest
            fsync: Flush blobs to disk before reporting success
            algorithm: hashlib algorithm used to check copied bytes against
                their digest; None stores without checking
        """
        self.blobs_dir = Path(blobs_dir)
        self.fsync = fsync
        self.algorithm = algorithm

    def path_for(self, digest: str) -> Path:
        """Return the blob path for a digest.

        Raises:
            ValueError: If digest is not a lowercase hex string
        """
        if not isinstance(digest, str) or not _DIGEST_RE.match(digest):
            raise ValueError(f"Invalid digest: {digest!r}")
        return self.blobs_dir / digest

    def exists(self, digest: str) -> bool:
        return self.path_for(digest).is_file()

    def store(self, digest: str, source: Path | str) -> bool:
        """Copy source content into the store under digest.

        Storing a digest that is already present is a successful no-op.

        Returns:
            True if a new blob was written, False if it already existed

        Raises:
            BlobStoreError: If the copy cannot complete or the copied bytes do
                not hash to digest; no partial blob remains
        """
        blob_path = self.path_for(digest)
        if blob_path.is_file():
            log_debug(f"Blob {digest[:12]} already stored")
            return False

        try:
            atomic_copy(
                source,
                blob_path,
                fsync=self.fsync,
                expected_digest=digest if self.algorithm else None,
                algorithm=self.algorithm,
            )
        except OSError as e:
            raise BlobStoreError(f"Failed to store blob {digest}: {e}") from e

        log_debug(f"Stored blob {digest[:12]} from {source}")
        return True

    def retrieve(self, digest: str, destination: Path | str) -> Path:
        """Copy a stored blob to destination.

        Returns:
            The destination path

        Raises:
            BlobNotFoundError: If no blob exists for digest
            BlobStoreError: If the destination cannot be written
        """
        blob_path = self.path_for(digest)
        if not blob_path.is_file():
            raise BlobNotFoundError(f"Blob not found: {digest}")

        dst = Path(destination)
        try:
            atomic_copy(blob_path, dst, fsync=self.fsync)
        except FileNotFoundError as e:
            if not blob_path.exists():
                raise BlobNotFoundError(f"Blob not found: {digest}") from e
            raise BlobStoreError(f"Failed to retrieve blob {digest}: {e}") from e
        except OSError as e:
            raise BlobStoreError(f"Failed to retrieve blob {digest}: {e}") from e

        log_debug(f"Retrieved blob {digest[:12]} to {dst}")
        return dst

    def iter_digests(self) -> Iterator[str]:
        """Yield the digests of all stored blobs (temp files excluded)."""
        if not self.blobs_dir.is_dir():
            return
        for entry in sorted(self.blobs_dir.iterdir()):
            if entry.is_file() and _DIGEST_RE.match(entry.name):
                yield entry.name

    def count(self) -> int:
        return sum(1 for _ in self.iter_digests())
