"""Tests for the append-only version log."""

import os

import pytest

from fileversions.core.version_log import VersionLog, VersionLogError, VersionRecord


def _record(filename="report.txt", digest="aa", version=1, sequence=1, comment=""):
    return VersionRecord(
        filename=filename,
        digest=digest,
        comment=comment,
        version=version,
        sequence=sequence,
        timestamp="2026-01-01T00:00:00+00:00",
    )


@pytest.fixture
def log(tmp_path):
    return VersionLog(tmp_path / "repo" / "versions.db")


class TestVersionLog:
    def test_empty_log(self, log):
        assert list(log.list_by_filename()) == []
        assert log.next_sequence() == 1
        assert log.next_version("report.txt") == 1
        assert log.count() == 0

    def test_append_and_list_in_order(self, log):
        log.append(_record(digest="aa", sequence=1))
        log.append(_record(filename="notes.md", digest="bb", sequence=2))
        log.append(_record(digest="cc", version=2, sequence=3))

        all_records = list(log.list_by_filename(None))
        assert [r.sequence for r in all_records] == [1, 2, 3]

        report = list(log.list_by_filename("report.txt"))
        assert [r.digest for r in report] == ["aa", "cc"]

    def test_scan_is_restartable(self, log):
        log.append(_record())
        scan = log.list_by_filename("report.txt")

        assert list(scan) == list(scan)

        log.append(_record(digest="bb", version=2, sequence=2))
        assert len(list(scan)) == 2

    def test_find_by_content(self, log):
        log.append(_record(digest="aa"))

        assert log.find_by_content("report.txt", "aa") == _record(digest="aa")
        assert log.find_by_content("report.txt", "bb") is None
        assert log.find_by_content("other.txt", "aa") is None

    def test_find_by_version(self, log):
        log.append(_record(digest="aa"))
        log.append(_record(digest="bb", version=2, sequence=2))

        assert log.find_by_version("report.txt", 2).digest == "bb"
        assert log.find_by_version("report.txt", 3) is None
        assert log.find_by_version("report.txt", 0) is None
        assert log.latest("report.txt").digest == "bb"

    def test_next_numbers(self, log):
        log.append(_record(digest="aa"))
        log.append(_record(filename="notes.md", digest="bb", sequence=2))

        assert log.next_sequence() == 3
        assert log.next_version("report.txt") == 2
        assert log.next_version("notes.md") == 2
        assert log.next_version("new.txt") == 1

    def test_records_are_json_lines(self, log):
        log.append(_record(comment="first"))

        lines = log.log_path.read_text(encoding="utf-8").splitlines()
        assert len(lines) == 1
        assert '"comment":"first"' in lines[0]

    def test_torn_tail_is_invisible_and_repaired(self, log):
        log.append(_record(digest="aa"))
        with open(log.log_path, "ab") as f:
            f.write(b'{"sequence":2,"version":2,"filename":"rep')

        assert [r.digest for r in log.list_by_filename()] == ["aa"]

        log.append(_record(digest="bb", version=2, sequence=2))

        assert [r.digest for r in log.list_by_filename()] == ["aa", "bb"]
        assert log.log_path.read_bytes().count(b"\n") == 2

    def test_malformed_line_skipped(self, log):
        log.append(_record(digest="aa"))
        with open(log.log_path, "ab") as f:
            f.write(b"not json\n")
            f.write(b'{"filename": "x"}\n')
        log.append(_record(digest="bb", version=2, sequence=2))

        assert [r.digest for r in log.list_by_filename()] == ["aa", "bb"]

    def test_failed_append_leaves_no_partial_record(self, log, monkeypatch):
        log.append(_record(digest="aa"))
        size_before = log.log_path.stat().st_size

        def fail_fsync(fd):
            raise OSError(5, "Input/output error")

        with monkeypatch.context() as m:
            m.setattr(os, "fsync", fail_fsync)
            with pytest.raises(VersionLogError):
                log.append(_record(digest="bb", version=2, sequence=2))

        assert log.log_path.stat().st_size == size_before
        assert [r.digest for r in log.list_by_filename()] == ["aa"]

    def test_non_utf8_filename_round_trips(self, log):
        name = os.fsdecode(b"r\xe9port.txt")
        log.append(_record(filename=name, digest="aa"))
        log.append(_record(digest="bb", sequence=2))

        assert b"r\xe9port.txt" in log.log_path.read_bytes()
        assert log.find_by_version(name, 1).digest == "aa"
        assert [r.filename for r in log.list_by_filename()] == [name, "report.txt"]

    def test_unencodable_record_raises_and_leaves_log_unchanged(self, log):
        log.append(_record(digest="aa"))
        before = log.log_path.read_bytes()

        with pytest.raises(VersionLogError, match="Cannot encode"):
            log.append(_record(digest="bb", version=2, sequence=2, comment="\ud800"))

        assert log.log_path.read_bytes() == before
        assert log.next_sequence() == 2

    def test_unreadable_log_raises(self, tmp_path):
        log_dir = tmp_path / "versions.db"
        log_dir.mkdir()

        with pytest.raises(VersionLogError):
            list(VersionLog(log_dir).list_by_filename())


class TestVersionRecord:
    def test_round_trip_dict(self):
        record = _record(comment="x")

        assert VersionRecord.from_dict(record.to_dict()) == record

    def test_rejects_missing_fields(self):
        with pytest.raises(ValueError):
            VersionRecord.from_dict({"filename": "a"})

    def test_rejects_bad_numbers(self):
        data = _record().to_dict()
        data["version"] = 0

        with pytest.raises(ValueError):
            VersionRecord.from_dict(data)
