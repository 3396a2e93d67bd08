"""Tests for the content-addressed blob store."""

import os

import pytest

from fileversions.core.blob_store import BlobNotFoundError, BlobStore, BlobStoreError
from fileversions.core.hasher import Hasher


@pytest.fixture
def blobs(tmp_path):
    return BlobStore(tmp_path / "blobs")


@pytest.fixture
def source(tmp_path):
    path = tmp_path / "report.txt"
    path.write_bytes(b"v1")
    return path


class TestBlobStore:
    def test_store_and_exists(self, blobs, source):
        digest = Hasher().hash_file(source)

        assert not blobs.exists(digest)
        assert blobs.store(digest, source) is True
        assert blobs.exists(digest)
        assert (blobs.blobs_dir / digest).read_bytes() == b"v1"

    def test_store_is_idempotent(self, blobs, source, tmp_path):
        digest = Hasher().hash_file(source)
        blobs.store(digest, source)

        other = tmp_path / "other.txt"
        other.write_bytes(b"v1")

        assert blobs.store(digest, other) is False
        assert blobs.count() == 1

    def test_retrieve_copies_content(self, blobs, source, tmp_path):
        digest = Hasher().hash_file(source)
        blobs.store(digest, source)

        out = blobs.retrieve(digest, tmp_path / "out" / "copy.txt")

        assert out.read_bytes() == b"v1"

    def test_retrieve_missing_raises_not_found(self, blobs, tmp_path):
        with pytest.raises(BlobNotFoundError):
            blobs.retrieve("ab" * 32, tmp_path / "out.txt")
        assert not (tmp_path / "out.txt").exists()

    def test_invalid_digest_rejected(self, blobs):
        with pytest.raises(ValueError):
            blobs.path_for("../escape")
        with pytest.raises(ValueError):
            blobs.path_for("")

    def test_failed_write_leaves_no_partial_blob(self, blobs, source, monkeypatch):
        digest = Hasher().hash_file(source)

        def fail_fsync(fd):
            raise OSError(28, "No space left on device")

        with monkeypatch.context() as m:
            m.setattr(os, "fsync", fail_fsync)
            with pytest.raises(BlobStoreError):
                blobs.store(digest, source)

        assert not blobs.exists(digest)
        assert list(blobs.blobs_dir.iterdir()) == []

    def test_content_not_matching_digest_is_rejected(self, tmp_path, source):
        blobs = BlobStore(tmp_path / "blobs", algorithm="sha256")
        stale_digest = "ab" * 32

        with pytest.raises(BlobStoreError, match="changed while copying"):
            blobs.store(stale_digest, source)

        assert not blobs.exists(stale_digest)
        assert list(blobs.blobs_dir.iterdir()) == []

    def test_content_matching_digest_is_stored(self, tmp_path, source):
        blobs = BlobStore(tmp_path / "blobs", algorithm="sha256")
        digest = Hasher("sha256").hash_file(source)

        assert blobs.store(digest, source) is True
        assert blobs.path_for(digest).read_bytes() == b"v1"

    def test_failed_rename_leaves_no_partial_blob(self, blobs, source, monkeypatch):
        digest = Hasher().hash_file(source)

        def fail_replace(src, dst):
            raise PermissionError(13, "Permission denied")

        monkeypatch.setattr(os, "replace", fail_replace)

        with pytest.raises(BlobStoreError):
            blobs.store(digest, source)

        assert list(blobs.blobs_dir.iterdir()) == []

    def test_iter_digests_skips_temp_files(self, blobs, source):
        digest = Hasher().hash_file(source)
        blobs.store(digest, source)
        (blobs.blobs_dir / f".{digest}.abc.tmp").write_bytes(b"junk")

        assert list(blobs.iter_digests()) == [digest]

    def test_count_on_missing_dir(self, tmp_path):
        assert BlobStore(tmp_path / "nope").count() == 0
