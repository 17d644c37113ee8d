"""Blob storage on the local file system.

One file per record at ``{storage_root}/{digest}.{extension}``. Files are
written to a temporary name and renamed into place, so concurrent uploads of
the same content never expose a partially written blob.
"""

import os
import tempfile
from pathlib import Path

from ..config import get_storage_root
from ..error_handling import StorageError
from ..logging_config import get_logger

logger = get_logger(__name__)


class BlobStorage:
    """Content-addressed file storage for uploaded image bytes."""

    def __init__(self, root: str | Path) -> None:
        """
        Initialize the storage service.

        Args:
            root: Directory holding the blobs. Created if missing.

        Raises:
            StorageError: If the directory cannot be created
        """
        self.root = Path(root)
        try:
            self.root.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise StorageError(
                f"Failed to create storage directory '{self.root}': {e}",
                code="storage_init_failed",
                details={"root": str(self.root)},
                original_exception=e,
            ) from e

        logger.info("blob_storage_initialized", root=str(self.root))

    def path_for(self, digest: str, extension: str) -> Path:
        """
        Resolve the blob path for a digest/extension pair.

        ``Path.name`` keeps a crafted value from escaping the storage root.
        """
        return self.root / Path(f"{digest}.{extension}").name

    def write(self, digest: str, extension: str, data: bytes) -> Path:
        """
        Persist ``data``. Overwriting an existing blob is harmless: equal
        digests mean equal bytes.

        Returns:
            Path of the stored blob

        Raises:
            StorageError: If the write fails
        """
        target = self.path_for(digest, extension)
        existed = target.exists()
        tmp_path: str | None = None
        try:
            fd, tmp_path = tempfile.mkstemp(dir=self.root, prefix=".upload-", suffix=".tmp")
            with os.fdopen(fd, "wb") as f:
                f.write(data)
            os.replace(tmp_path, target)
            tmp_path = None
        except OSError as e:
            raise StorageError(
                f"Failed to write blob '{target.name}': {e}",
                code="blob_write_failed",
                details={"path": str(target), "size": len(data)},
                original_exception=e,
            ) from e
        finally:
            if tmp_path is not None and os.path.exists(tmp_path):
                os.unlink(tmp_path)

        logger.info("blob_written", path=str(target), size=len(data), was_overwrite=existed)
        return target

    def read(self, digest: str, extension: str) -> bytes:
        """
        Read a stored blob.

        Raises:
            StorageError: If the blob is missing or unreadable
        """
        target = self.path_for(digest, extension)
        try:
            return target.read_bytes()
        except FileNotFoundError as e:
            raise StorageError(
                f"Blob '{target.name}' is missing",
                code="blob_missing",
                details={"path": str(target)},
                original_exception=e,
            ) from e
        except OSError as e:
            raise StorageError(
                f"Failed to read blob '{target.name}': {e}",
                code="blob_read_failed",
                details={"path": str(target)},
                original_exception=e,
            ) from e

    def delete(self, digest: str, extension: str) -> bool:
        """
        Remove a blob.

        Returns:
            True if a file was removed, False if it was already gone

        Raises:
            StorageError: If the file exists but cannot be removed
        """
        target = self.path_for(digest, extension)
        try:
            target.unlink()
        except FileNotFoundError:
            logger.warning("blob_missing_on_delete", path=str(target))
            return False
        except OSError as e:
            raise StorageError(
                f"Failed to delete blob '{target.name}': {e}",
                code="blob_delete_failed",
                details={"path": str(target)},
                original_exception=e,
            ) from e

        logger.info("blob_deleted", path=str(target))
        return True

    def exists(self, digest: str, extension: str) -> bool:
        return self.path_for(digest, extension).exists()


def get_blob_storage(root: str | Path | None = None) -> BlobStorage:
    """Create blob storage rooted at ``root`` or at ``IMAGE_STORAGE_PATH``."""
    return BlobStorage(root if root is not None else get_storage_root())
