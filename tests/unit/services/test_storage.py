"""
Unit tests for blob storage.
"""

from unittest.mock import patch

import pytest

from imgvault.error_handling import StorageError
from imgvault.services.storage import BlobStorage, get_blob_storage

DIGEST = "ab" * 32


class TestBlobStorage:
    """Test cases for BlobStorage."""

    def test_init_creates_root(self, temp_dir):
        storage = BlobStorage(temp_dir / "a" / "b")
        assert storage.root.is_dir()

    def test_init_failure(self, temp_dir):
        blocker = temp_dir / "file"
        blocker.write_bytes(b"x")

        with pytest.raises(StorageError) as exc_info:
            BlobStorage(blocker / "images")

        assert exc_info.value.code == "storage_init_failed"

    def test_write_and_read(self, blob_storage):
        path = blob_storage.write(DIGEST, "jpg", b"data")

        assert path.name == f"{DIGEST}.jpg"
        assert blob_storage.read(DIGEST, "jpg") == b"data"
        assert blob_storage.exists(DIGEST, "jpg")

    def test_write_leaves_no_temporary_files(self, blob_storage):
        blob_storage.write(DIGEST, "jpg", b"data")
        blob_storage.write(DIGEST, "jpg", b"data")

        assert [p.name for p in blob_storage.root.iterdir()] == [f"{DIGEST}.jpg"]

    def test_write_failure_cleans_up(self, blob_storage):
        with patch("imgvault.services.storage.os.replace", side_effect=OSError("disk full")):
            with pytest.raises(StorageError) as exc_info:
                blob_storage.write(DIGEST, "jpg", b"data")

        assert exc_info.value.code == "blob_write_failed"
        assert list(blob_storage.root.iterdir()) == []

    def test_path_stays_inside_root(self, blob_storage):
        path = blob_storage.path_for("../../etc/passwd", "x")
        assert path.parent == blob_storage.root

    def test_read_missing(self, blob_storage):
        with pytest.raises(StorageError) as exc_info:
            blob_storage.read(DIGEST, "jpg")

        assert exc_info.value.code == "blob_missing"

    def test_delete(self, blob_storage):
        blob_storage.write(DIGEST, "jpg", b"data")

        assert blob_storage.delete(DIGEST, "jpg") is True
        assert not blob_storage.exists(DIGEST, "jpg")

    def test_delete_missing_returns_false(self, blob_storage):
        assert blob_storage.delete(DIGEST, "jpg") is False

    def test_extension_is_part_of_the_name(self, blob_storage):
        blob_storage.write(DIGEST, "jpg", b"one")
        blob_storage.write(DIGEST, "png", b"one")

        blob_storage.delete(DIGEST, "jpg")

        assert blob_storage.exists(DIGEST, "png")


def test_get_blob_storage_uses_configuration(tmp_path):
    storage = get_blob_storage()
    assert storage.root == tmp_path / "env" / "images"
