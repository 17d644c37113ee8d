"""
Ownership-scoped image metadata in DuckDB.

Every query takes the owner as a bound parameter: there is no way to address
a record by hash alone. Uniqueness of (hash, owner) is enforced by the
table's primary key, and a duplicate insert is reported as
``InsertOutcome.CONFLICT`` rather than as a failure.
"""

from enum import Enum

import duckdb

from ..error_handling import DatabaseError
from ..logging_config import get_logger, log_user_action
from ..models.database import DatabaseManager, is_duplicate_key_error
from ..models.image import IMAGE_COLUMNS, ImageKey, ImageRecord

logger = get_logger(__name__)

_COLUMN_LIST = ", ".join(IMAGE_COLUMNS)
_PLACEHOLDERS = ", ".join("?" for _ in IMAGE_COLUMNS)


class InsertOutcome(Enum):
    INSERTED = "inserted"
    CONFLICT = "conflict"


class ImageRecordStore:
    """Persist, list, fetch and delete image records for one owner at a time."""

    def __init__(self, db_manager: DatabaseManager) -> None:
        self.db_manager = db_manager

    def insert(self, record: ImageRecord) -> InsertOutcome:
        """
        Insert a new record.

        Returns:
            INSERTED, or CONFLICT when the owner already has this hash

        Raises:
            DatabaseError: For any other database failure
        """
        try:
            self.db_manager.execute_query(
                f"INSERT INTO images ({_COLUMN_LIST}) VALUES ({_PLACEHOLDERS})",
                record.to_row(),
            )
        except (duckdb.ConstraintException, duckdb.TransactionException) as e:
            # A racing writer's duplicate may only surface at commit time
            if not is_duplicate_key_error(e):
                raise DatabaseError(
                    f"Failed to insert image record: {e}",
                    code="image_insert_failed",
                    details={"hash": record.hash, "owner": record.owner},
                    original_exception=e,
                ) from e
            logger.info("image_record_conflict", hash=record.hash, owner=record.owner)
            return InsertOutcome.CONFLICT
        except duckdb.Error as e:
            raise DatabaseError(
                f"Failed to insert image record: {e}",
                code="image_insert_failed",
                details={"hash": record.hash, "owner": record.owner},
                original_exception=e,
            ) from e

        log_user_action(record.owner, "image_record_saved", hash=record.hash, extension=record.extension)
        return InsertOutcome.INSERTED

    def list_hashes(self, owner: str) -> list[str]:
        """
        Hashes owned by ``owner``, newest ``created_at`` first.

        Raises:
            DatabaseError: If the query fails
        """
        try:
            rows = self.db_manager.execute_query(
                "SELECT hash FROM images WHERE owner = ? ORDER BY created_at DESC, hash",
                (owner,),
            )
        except duckdb.Error as e:
            raise DatabaseError(
                f"Failed to list image hashes: {e}",
                code="image_list_failed",
                details={"owner": owner},
                original_exception=e,
            ) from e

        return [row[0] for row in rows]

    def get(self, key: ImageKey) -> ImageRecord | None:
        """
        Fetch one record.

        Returns:
            The record, or None if ``key.owner`` has no image with ``key.hash``

        Raises:
            DatabaseError: If the query fails
        """
        try:
            rows = self.db_manager.execute_query(
                f"SELECT {_COLUMN_LIST} FROM images WHERE hash = ? AND owner = ?",
                (key.hash, key.owner),
            )
        except duckdb.Error as e:
            raise DatabaseError(
                f"Failed to get image record: {e}",
                code="image_get_failed",
                details={"hash": key.hash, "owner": key.owner},
                original_exception=e,
            ) from e

        if not rows:
            return None
        return ImageRecord.from_row(rows[0])

    def delete(self, key: ImageKey) -> bool:
        """
        Delete one record.

        Returns:
            True iff a row was removed

        Raises:
            DatabaseError: If the statement fails
        """
        try:
            rows = self.db_manager.execute_query(
                "DELETE FROM images WHERE hash = ? AND owner = ? RETURNING hash",
                (key.hash, key.owner),
            )
        except duckdb.Error as e:
            raise DatabaseError(
                f"Failed to delete image record: {e}",
                code="image_delete_failed",
                details={"hash": key.hash, "owner": key.owner},
                original_exception=e,
            ) from e

        deleted = len(rows) > 0
        if deleted:
            log_user_action(key.owner, "image_record_deleted", hash=key.hash)
        else:
            logger.warning("image_record_not_found_for_delete", hash=key.hash, owner=key.owner)
        return deleted

    def reference_count(self, content_hash: str, extension: str) -> int:
        """
        Number of records, across all owners, whose blob is ``{hash}.{extension}``.

        Only a count is returned; this never exposes another owner's record.
        Used to decide whether a blob can be removed after a delete.
        """
        try:
            rows = self.db_manager.execute_query(
                "SELECT COUNT(*) FROM images WHERE hash = ? AND extension = ?",
                (content_hash, extension),
            )
        except duckdb.Error as e:
            raise DatabaseError(
                f"Failed to count blob references: {e}",
                details={"hash": content_hash, "extension": extension},
                original_exception=e,
            ) from e
        return rows[0][0] if rows else 0

    def count(self, owner: str) -> int:
        """Number of records owned by ``owner``."""
        try:
            rows = self.db_manager.execute_query("SELECT COUNT(*) FROM images WHERE owner = ?", (owner,))
        except duckdb.Error as e:
            raise DatabaseError(f"Failed to count images: {e}", details={"owner": owner}, original_exception=e) from e
        return rows[0][0] if rows else 0
