"""Version engine - main orchestrator.

Coordinates the hasher, blob store and version log for add/get/list.
The one ordering rule it enforces: a blob is stored before any record that
references it is appended, so the log never points at missing content.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Callable

from ..config.types import RepositoryConfig
from ..utils.env import log_debug
from ..utils.fs import ensure_dir, is_regular_file
from .blob_store import BlobNotFoundError, BlobStore, BlobStoreError
from .hasher import HashError, Hasher
from .lock import LockTimeoutError, RepositoryLock
from .version_log import VersionLog, VersionLogError, VersionRecord


class AddError(str, Enum):
    """Why an add did not produce a new record."""
    INVALID_FILE = "invalid_file"
    HASH_FAILED = "hash_failed"
    ALREADY_EXISTS = "already_exists"
    STORE_FAILED = "store_failed"
    LOG_FAILED = "log_failed"
    LOCK_FAILED = "lock_failed"


class GetError(str, Enum):
    """Why a get did not restore a version."""
    NOT_FOUND = "not_found"
    CORRUPT_STORE = "corrupt_store"
    RETRIEVE_FAILED = "retrieve_failed"
    LOG_UNAVAILABLE = "log_unavailable"


class ListError(str, Enum):
    """Why a list could not be produced."""
    LOG_UNAVAILABLE = "log_unavailable"


@dataclass
class AddResult:
    """Result of an add operation.

    On ALREADY_EXISTS, record is the existing record for the same content.
    """
    success: bool
    record: VersionRecord | None = None
    error: AddError | None = None
    message: str | None = None


@dataclass
class GetResult:
    """Result of a get operation."""
    success: bool
    path: Path | None = None
    record: VersionRecord | None = None
    error: GetError | None = None
    message: str | None = None


@dataclass
class ListResult:
    """Result of a list operation."""
    success: bool
    records: tuple[VersionRecord, ...] = ()
    error: ListError | None = None
    message: str | None = None


@dataclass
class RepositoryStatus:
    """Status of a repository."""
    initialized: bool
    repository_root: str
    record_count: int
    blob_count: int
    hash_algorithm: str


def _utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class VersionEngine:
    """Adds, lists and restores versions of individual files."""

    def __init__(
        self,
        config: RepositoryConfig,
        hasher: Hasher | None = None,
        clock: Callable[[], str] | None = None,
    ):
        """Initialize engine.

        Args:
            config: Repository location and tunables
            hasher: Content hasher (defaults to config.hash_algorithm)
            clock: Returns the timestamp string stamped on new records
        """
        self.config = config
        self.hasher = hasher or Hasher(config.hash_algorithm)
        self.blobs = BlobStore(config.blobs_dir, fsync=config.fsync, algorithm=self.hasher.algorithm)
        self.log = VersionLog(config.log_path, fsync=config.fsync)
        self._clock = clock or _utc_now_iso

    @property
    def repository_root(self) -> Path:
        return Path(self.config.repository_root)

    def init(self) -> Path:
        """Create the repository layout if missing."""
        ensure_dir(self.config.blobs_dir)
        return self.repository_root

    def is_initialized(self) -> bool:
        return self.config.blobs_dir.is_dir()

    def add(self, filename: str | Path, comment: str = "") -> AddResult:
        """Register the current content of filename as a new version.

        The whole operation runs under the repository lock.
        """
        name = str(filename)
        try:
            self.init()
        except OSError as e:
            return AddResult(
                success=False,
                error=AddError.STORE_FAILED,
                message=f"Unable to create repository {self.repository_root}: {e}",
            )

        try:
            with RepositoryLock(self.config.lock_path, timeout=self.config.lock_timeout_seconds):
                return self._add_locked(name, comment)
        except LockTimeoutError as e:
            return AddResult(success=False, error=AddError.LOCK_FAILED, message=str(e))
        except OSError as e:
            return AddResult(
                success=False,
                error=AddError.LOCK_FAILED,
                message=f"Unable to lock repository {self.repository_root}: {e}",
            )

    def _add_locked(self, filename: str, comment: str) -> AddResult:
        if not filename or not is_regular_file(filename):
            return AddResult(
                success=False,
                error=AddError.INVALID_FILE,
                message=f"Not a regular file: {filename}",
            )

        try:
            digest = self.hasher.hash_file(filename)
        except HashError as e:
            return AddResult(success=False, error=AddError.HASH_FAILED, message=str(e))

        try:
            existing = self.log.find_by_content(filename, digest)
            if existing is not None:
                return AddResult(
                    success=False,
                    record=existing,
                    error=AddError.ALREADY_EXISTS,
                    message=f"{filename} already has this content as version {existing.version}",
                )
            version = self.log.next_version(filename)
            sequence = self.log.next_sequence()
        except VersionLogError as e:
            return AddResult(success=False, error=AddError.LOG_FAILED, message=str(e))

        try:
            self.blobs.store(digest, filename)
        except BlobStoreError as e:
            return AddResult(success=False, error=AddError.STORE_FAILED, message=str(e))

        record = VersionRecord(
            filename=filename,
            digest=digest,
            comment=comment,
            version=version,
            sequence=sequence,
            timestamp=self._clock(),
        )

        try:
            self.log.append(record)
        except VersionLogError as e:
            return AddResult(success=False, error=AddError.LOG_FAILED, message=str(e))

        log_debug(f"Added {filename} version {version} ({digest[:12]})")
        return AddResult(success=True, record=record)

    def get(
        self,
        filename: str | Path,
        version: int,
        destination: str | Path | None = None,
    ) -> GetResult:
        """Restore a version of filename.

        Args:
            filename: Logical file name as recorded by add
            version: 1-based version number for that file
            destination: Output path (defaults to filename itself)
        """
        name = str(filename)
        if isinstance(version, bool) or not isinstance(version, int) or version < 1:
            return GetResult(
                success=False,
                error=GetError.NOT_FOUND,
                message=f"Invalid version: {version}",
            )

        try:
            record = self.log.find_by_version(name, version)
        except VersionLogError as e:
            return GetResult(success=False, error=GetError.LOG_UNAVAILABLE, message=str(e))

        if record is None:
            return GetResult(
                success=False,
                error=GetError.NOT_FOUND,
                message=f"No version {version} of {name}",
            )

        corrupt = self._check_blob(record)
        if corrupt is not None:
            return GetResult(success=False, record=record, error=GetError.CORRUPT_STORE, message=corrupt)

        target = Path(destination) if destination else Path(record.filename)
        try:
            path = self.blobs.retrieve(record.digest, target)
        except BlobNotFoundError as e:
            return GetResult(success=False, record=record, error=GetError.CORRUPT_STORE, message=str(e))
        except BlobStoreError as e:
            return GetResult(success=False, record=record, error=GetError.RETRIEVE_FAILED, message=str(e))

        return GetResult(success=True, path=path, record=record)

    def _check_blob(self, record: VersionRecord) -> str | None:
        """Return a description of the inconsistency, or None if the blob is sound."""
        try:
            blob_path = self.blobs.path_for(record.digest)
        except ValueError:
            return f"Record {record.sequence} has an invalid digest: {record.digest!r}"

        if not blob_path.is_file():
            return f"Blob {record.digest} for {record.filename} version {record.version} is missing"

        if not self.config.verify_on_get:
            return None
        if not self.hasher.is_digest(record.digest):
            log_debug(f"Skipping verification of {record.digest[:12]}: not a {self.hasher.algorithm} digest")
            return None

        try:
            actual = self.hasher.hash_file(blob_path)
        except HashError as e:
            return f"Blob {record.digest} is unreadable: {e}"
        if actual != record.digest:
            return f"Blob {record.digest} content does not match its digest (found {actual})"
        return None

    def list(self, filename: str | Path | None = None) -> ListResult:
        """List records for filename in append order, or all records if None."""
        name = str(filename) if filename is not None else None
        try:
            records = tuple(self.log.list_by_filename(name))
        except VersionLogError as e:
            return ListResult(success=False, error=ListError.LOG_UNAVAILABLE, message=str(e))
        return ListResult(success=True, records=records)

    def status(self) -> RepositoryStatus:
        """Summarize the repository.

        Raises:
            VersionLogError: If the log cannot be read
        """
        return RepositoryStatus(
            initialized=self.is_initialized(),
            repository_root=str(self.repository_root),
            record_count=self.log.count(),
            blob_count=self.blobs.count(),
            hash_algorithm=self.hasher.algorithm,
        )
