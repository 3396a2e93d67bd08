"""Append-only version log for fileversions.

The log is a JSON Lines file (versions.db). Each complete line is one
version record. A record becomes visible to readers only once its trailing
newline is on disk, so a crash mid-append leaves at most a torn tail that
readers skip and the next append truncates away.
"""

from __future__ import annotations

import json
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterator

from ..utils.env import log_debug


class VersionLogError(Exception):
    """Raised when the version log cannot be read or appended."""


@dataclass(frozen=True, slots=True)
class VersionRecord:
    """One registered snapshot of a file."""

    filename: str
    digest: str
    comment: str
    version: int  # 1-based ordinal among this filename's records
    sequence: int  # position in the whole log, strictly increasing
    timestamp: str

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "sequence": self.sequence,
            "version": self.version,
            "filename": self.filename,
            "digest": self.digest,
            "comment": self.comment,
            "timestamp": self.timestamp,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> VersionRecord:
        """Create from dictionary.

        Raises:
            ValueError: If required fields are missing or mistyped
        """
        try:
            record = cls(
                filename=data["filename"],
                digest=data["digest"],
                comment=data.get("comment", ""),
                version=data["version"],
                sequence=data["sequence"],
                timestamp=data.get("timestamp", ""),
            )
        except KeyError as e:
            raise ValueError(f"Missing field {e}") from e

        if not isinstance(record.filename, str) or not record.filename:
            raise ValueError("filename must be a non-empty string")
        if not isinstance(record.digest, str) or not record.digest:
            raise ValueError("digest must be a non-empty string")
        if not isinstance(record.comment, str) or not isinstance(record.timestamp, str):
            raise ValueError("comment and timestamp must be strings")
        for field_name in ("version", "sequence"):
            val = getattr(record, field_name)
            if isinstance(val, bool) or not isinstance(val, int) or val < 1:
                raise ValueError(f"{field_name} must be a positive integer")
        return record


class RecordScan:
    """Lazy, restartable view over log records.

    Every iteration re-opens the log and yields matching records in append
    order, so two iterations with no append in between produce the same
    sequence.
    """

    def __init__(self, log: VersionLog, filename: str | None = None):
        self._log = log
        self.filename = filename

    def __iter__(self) -> Iterator[VersionRecord]:
        for record in self._log.iter_records():
            if self.filename is None or record.filename == self.filename:
                yield record


class VersionLog:
    """Durable, ordered record of all versions ever added."""

    def __init__(self, log_path: Path | str, fsync: bool = True):
        """Initialize version log.

        Args:
            log_path: Path to the JSON Lines log file
            fsync: Flush appends to disk before reporting success
        """
        self.log_path = Path(log_path)
        self.fsync = fsync

    def append(self, record: VersionRecord) -> None:
        """Append one record at the end of the log.

        Raises:
            VersionLogError: On I/O failure. The log is truncated back to its
                previous length so no half-written record remains.
        """
        try:
            line = self._encode(record)
        except UnicodeEncodeError as e:
            raise VersionLogError(f"Cannot encode record for {record.filename!r}: {e}") from e

        try:
            self.log_path.parent.mkdir(parents=True, exist_ok=True)
            start = self._last_complete_line_end()
            with open(self.log_path, "ab", buffering=0) as f:
                if os.fstat(f.fileno()).st_size > start:
                    log_debug(f"Dropping torn tail of {self.log_path} at offset {start}")
                    os.ftruncate(f.fileno(), start)
                try:
                    view = memoryview(line)
                    while view:
                        written = f.write(view)
                        view = view[written:]
                    if self.fsync:
                        os.fsync(f.fileno())
                except OSError:
                    os.ftruncate(f.fileno(), start)
                    raise
        except OSError as e:
            raise VersionLogError(f"Failed to append to {self.log_path}: {e}") from e

        log_debug(f"Logged {record.filename} v{record.version} (seq {record.sequence})")

    def iter_records(self) -> Iterator[VersionRecord]:
        """Yield every record in append order.

        Raises:
            VersionLogError: If the log exists but cannot be read
        """
        for line_no, line in enumerate(self._iter_complete_lines(), 1):
            if not line.strip():
                continue
            try:
                data = json.loads(line.decode("utf-8", errors="surrogateescape"))
                if not isinstance(data, dict):
                    raise ValueError("record is not an object")
                yield VersionRecord.from_dict(data)
            except ValueError as e:
                # includes json.JSONDecodeError
                log_debug(f"Skipping malformed record at {self.log_path}:{line_no}: {e}")

    def list_by_filename(self, filename: str | None = None) -> RecordScan:
        """Records for filename in append order, or all records if None."""
        return RecordScan(self, filename)

    def find_by_content(self, filename: str, digest: str) -> VersionRecord | None:
        for record in self.list_by_filename(filename):
            if record.digest == digest:
                return record
        return None

    def find_by_version(self, filename: str, version: int) -> VersionRecord | None:
        if version < 1:
            return None
        for record in self.list_by_filename(filename):
            if record.version == version:
                return record
        return None

    def latest(self, filename: str) -> VersionRecord | None:
        last = None
        for record in self.list_by_filename(filename):
            last = record
        return last

    def next_sequence(self) -> int:
        """Sequence number for the next append. Call while holding the lock."""
        highest = 0
        for record in self.iter_records():
            highest = max(highest, record.sequence)
        return highest + 1

    def next_version(self, filename: str) -> int:
        """Version number for filename's next append. Call while holding the lock."""
        highest = 0
        for record in self.list_by_filename(filename):
            highest = max(highest, record.version)
        return highest + 1

    def count(self) -> int:
        return sum(1 for _ in self.iter_records())

    @staticmethod
    def _encode(record: VersionRecord) -> bytes:
        # Filenames undecodable as UTF-8 carry surrogate escapes (os.fsdecode);
        # they are written back as their original bytes.
        text = json.dumps(record.to_dict(), ensure_ascii=False, separators=(",", ":"))
        return (text + "\n").encode("utf-8", errors="surrogateescape")

    def _iter_complete_lines(self) -> Iterator[bytes]:
        try:
            with open(self.log_path, "rb") as f:
                for line in f:
                    if not line.endswith(b"\n"):
                        # Torn tail from an interrupted append.
                        return
                    yield line
        except FileNotFoundError:
            return
        except OSError as e:
            raise VersionLogError(f"Unable to read {self.log_path}: {e}") from e

    def _last_complete_line_end(self) -> int:
        """Return the file offset immediately after the last complete line."""
        try:
            size = os.path.getsize(self.log_path)
        except FileNotFoundError:
            return 0
        if size == 0:
            return 0

        with open(self.log_path, "rb") as f:
            f.seek(size - 1)
            if f.read(1) == b"\n":
                return size

            # Otherwise scan backwards in chunks to find the final newline.
            chunk_size = 64 * 1024
            pos = size
            while pos > 0:
                read_size = min(chunk_size, pos)
                pos -= read_size
                f.seek(pos)
                chunk = f.read(read_size)
                idx = chunk.rfind(b"\n")
                if idx != -1:
                    return pos + idx + 1

        # No newline at all; the whole file is one torn record.
        return 0
