"""Core modules for fileversions."""

from .blob_store import BlobNotFoundError, BlobStore, BlobStoreError
from .engine import (
    AddError,
    AddResult,
    GetError,
    GetResult,
    ListError,
    ListResult,
    VersionEngine,
)
from .hasher import HashError, Hasher, hash_file
from .lock import LockTimeoutError, RepositoryLock
from .version_log import RecordScan, VersionLog, VersionLogError, VersionRecord

__all__ = [
    "AddError",
    "AddResult",
    "BlobNotFoundError",
    "BlobStore",
    "BlobStoreError",
    "GetError",
    "GetResult",
    "HashError",
    "Hasher",
    "ListError",
    "ListResult",
    "LockTimeoutError",
    "RecordScan",
    "RepositoryLock",
    "VersionEngine",
    "VersionLog",
    "VersionLogError",
    "VersionRecord",
    "hash_file",
]
