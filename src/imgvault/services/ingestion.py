"""
Image ingestion and retrieval for authenticated owners.

Upload runs hash -> GPS extraction -> blob write -> record insert. The blob
always lands before the record, so a record is never visible without its
bytes. Delete runs in the opposite order: the row goes first, because the
database decides whether an image exists, then the blob is removed on a best
effort basis once no record points at it.

The blob write plus insert and the reference count plus unlink both run under
a lock picked by digest, so a delete never removes a blob that a concurrent
upload of the same bytes has just committed a record for. The locks are per
process.

Each public method returns an ``Outcome`` and never raises. This is the one
place where internal results and errors become client-facing status codes.
"""

import base64
import binascii
import re
import threading
import time
from dataclasses import dataclass
from datetime import datetime

from ..config import DEFAULT_MAX_UPLOAD_BYTES
from ..error_handling import NotFoundError, Outcome, ValidationError, outcome_from_exception
from ..logging_config import get_logger, log_performance, log_user_action
from ..models.image import ImageKey, ImageRecord
from .exif import MetadataExtractor
from .hashing import digest, is_digest
from .records import ImageRecordStore, InsertOutcome
from .storage import BlobStorage

logger = get_logger(__name__)

EXTENSION_RE = re.compile(r"^[a-z0-9]{1,16}$")
MAX_IMAGE_NAME_LENGTH = 255
BLOB_LOCK_STRIPES = 64


@dataclass
class UploadRequest:
    """Upload payload as received from the client."""

    content: str
    extension: str | None
    image_name: str | None = None
    created_at: datetime | None = None
    modified_at: datetime | None = None


class IngestionService:
    """Upload, list, fetch and delete images on behalf of an authenticated owner."""

    def __init__(
        self,
        records: ImageRecordStore,
        storage: BlobStorage,
        extractor: MetadataExtractor | None = None,
        max_upload_bytes: int = DEFAULT_MAX_UPLOAD_BYTES,
    ) -> None:
        self.records = records
        self.storage = storage
        self.extractor = extractor or MetadataExtractor()
        self.max_upload_bytes = max_upload_bytes
        self._blob_locks = [threading.Lock() for _ in range(BLOB_LOCK_STRIPES)]

    def upload(self, owner: str, request: UploadRequest) -> Outcome:
        """
        Store an image for ``owner``.

        Args:
            owner: Subject of the verified session token
            request: Client payload

        Returns:
            201 ``{hash}`` on success, 409 with the existing record when the
            owner already has these bytes, 400/413 for bad input, 500 otherwise
        """
        start_time = time.perf_counter()
        try:
            extension = self._validate_extension(request.extension)
            image_name = self._validate_image_name(request.image_name)
            data = self._decode_content(request.content)

            content_hash = digest(data)
            coordinates = self.extractor.extract_gps(data)
            record = ImageRecord.create_new(
                hash=content_hash,
                extension=extension,
                owner=owner,
                display_name=image_name,
                latitude=coordinates.latitude,
                longitude=coordinates.longitude,
                created_at=request.created_at,
                modified_at=request.modified_at,
            )

            with self._blob_lock(content_hash):
                self.storage.write(content_hash, extension, data)
                insert_outcome = self.records.insert(record)
                if insert_outcome is InsertOutcome.CONFLICT:
                    existing = self.records.get(record.key)
                    # The blob just written only belongs to the existing record if the extensions match
                    if existing is None or existing.extension != extension:
                        self._discard_unreferenced_blob(content_hash, extension)

            if insert_outcome is InsertOutcome.CONFLICT:
                log_user_action(owner, "image_upload_duplicate", hash=content_hash)
                return Outcome(
                    409,
                    {
                        "hash": content_hash,
                        "message": "Image already exists",
                        "image": existing.to_dict() if existing else None,
                    },
                )
        except Exception as e:
            return outcome_from_exception(e, {"operation": "upload", "owner": owner})

        log_user_action(
            owner,
            "image_uploaded",
            hash=content_hash,
            extension=extension,
            size=len(data),
            has_gps=not coordinates.is_empty,
        )
        log_performance("image_upload", time.perf_counter() - start_time, owner=owner, size=len(data))
        return Outcome(201, {"hash": content_hash})

    def list_hashes(self, owner: str) -> Outcome:
        """200 ``{hashes}``, newest first."""
        try:
            hashes = self.records.list_hashes(owner)
        except Exception as e:
            return outcome_from_exception(e, {"operation": "list_hashes", "owner": owner})
        return Outcome(200, {"hashes": hashes})

    def get_image(self, owner: str, content_hash: str) -> Outcome:
        """
        200 with the record and base64 content, or 404 when ``owner`` has no
        such image. Another owner's image is indistinguishable from a missing one.
        """
        try:
            record = self._require_record(owner, content_hash)
            data = self.storage.read(record.hash, record.extension)
        except Exception as e:
            return outcome_from_exception(e, {"operation": "get_image", "owner": owner, "hash": content_hash})

        body = record.to_dict()
        body["content"] = base64.b64encode(data).decode("ascii")
        return Outcome(200, body)

    def delete_image(self, owner: str, content_hash: str) -> Outcome:
        """200 ``{success, message}`` or 404 when ``owner`` has no such image."""
        try:
            record = self._require_record(owner, content_hash)
            if not self.records.delete(record.key):
                raise NotFoundError("Image was deleted concurrently", details={"hash": content_hash})
        except Exception as e:
            return outcome_from_exception(e, {"operation": "delete_image", "owner": owner, "hash": content_hash})

        self._remove_blob(record)
        log_user_action(owner, "image_deleted", hash=record.hash)
        return Outcome(200, {"success": True, "message": "Image deleted"})

    def _require_record(self, owner: str, content_hash: str) -> ImageRecord:
        if not is_digest(content_hash):
            raise NotFoundError("Malformed image hash", details={"hash": content_hash})

        record = self.records.get(ImageKey(hash=content_hash, owner=owner))
        if record is None:
            raise NotFoundError("Image not found", details={"hash": content_hash, "owner": owner})
        return record

    def _blob_lock(self, content_hash: str) -> threading.Lock:
        return self._blob_locks[int(content_hash[:8], 16) % len(self._blob_locks)]

    def _remove_blob(self, record: ImageRecord) -> None:
        """Delete the blob unless another owner's record still points at it."""
        with self._blob_lock(record.hash):
            self._discard_unreferenced_blob(record.hash, record.extension)

    def _discard_unreferenced_blob(self, content_hash: str, extension: str) -> None:
        """Caller holds the digest lock. Failures are logged, never raised."""
        try:
            if self.records.reference_count(content_hash, extension) > 0:
                logger.info("blob_still_referenced", hash=content_hash, extension=extension)
                return
            self.storage.delete(content_hash, extension)
        except Exception as e:
            # No record points at the file, so a leftover is only a leak
            logger.warning(
                "blob_cleanup_failed",
                hash=content_hash,
                extension=extension,
                error_type=type(e).__name__,
                error=str(e),
            )

    @staticmethod
    def _validate_extension(extension: str | None) -> str:
        if extension is None or not extension.strip():
            raise ValidationError("File extension is required", code="missing_extension")

        normalized = extension.strip().lstrip(".").lower()
        if not EXTENSION_RE.match(normalized):
            raise ValidationError(
                "File extension must be 1-16 letters or digits",
                code="invalid_extension",
                details={"extension": extension},
            )
        return normalized

    @staticmethod
    def _validate_image_name(image_name: str | None) -> str | None:
        if image_name is None:
            return None
        image_name = image_name.strip()
        if len(image_name) > MAX_IMAGE_NAME_LENGTH:
            raise ValidationError(
                f"Image name must be at most {MAX_IMAGE_NAME_LENGTH} characters",
                code="invalid_image_name",
            )
        return image_name or None

    def _decode_content(self, content: str) -> bytes:
        try:
            data = base64.b64decode(content, validate=True)
        except (binascii.Error, ValueError) as e:
            raise ValidationError(
                "Content is not valid base64",
                code="invalid_content",
                original_exception=e,
            ) from e

        if not data:
            raise ValidationError("Content is empty", code="empty_content")

        if len(data) > self.max_upload_bytes:
            raise ValidationError(
                f"Content exceeds {self.max_upload_bytes} bytes",
                code="payload_too_large",
                details={"size": len(data), "max_size": self.max_upload_bytes},
                status_code=413,
            )
        return data
