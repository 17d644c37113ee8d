"""
Image record model for imgvault.

An ``ImageRecord`` is the metadata row stored for one uploaded blob. Records
are addressed only through an ``ImageKey``, the (content hash, owner) pair.
"""

from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any


def to_utc(value: datetime) -> datetime:
    """Return ``value`` as an aware UTC datetime. Naive values are taken to be UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def to_db_timestamp(value: datetime) -> datetime:
    """DuckDB ``TIMESTAMP`` columns hold naive UTC values."""
    return to_utc(value).replace(tzinfo=None)


def _parse_timestamp(value: datetime | str) -> datetime:
    if isinstance(value, str):
        value = datetime.fromisoformat(value)
    return to_utc(value)


@dataclass(frozen=True)
class ImageKey:
    """Composite identity of an image record."""

    hash: str
    owner: str


@dataclass
class ImageRecord:
    """
    Metadata for one image owned by one user.

    ``display_name`` is the client supplied image name. Coordinates are
    signed decimal degrees and are None when the upload carried no GPS data.
    """

    hash: str
    extension: str
    owner: str
    created_at: datetime
    modified_at: datetime
    display_name: str | None = None
    longitude: float | None = None
    latitude: float | None = None

    @property
    def key(self) -> ImageKey:
        return ImageKey(hash=self.hash, owner=self.owner)

    @property
    def filename(self) -> str:
        """Blob filename: ``{hash}.{extension}``."""
        return f"{self.hash}.{self.extension}"

    @classmethod
    def create_new(
        cls,
        hash: str,
        extension: str,
        owner: str,
        display_name: str | None = None,
        latitude: float | None = None,
        longitude: float | None = None,
        created_at: datetime | None = None,
        modified_at: datetime | None = None,
    ) -> "ImageRecord":
        """
        Create a new record, defaulting both timestamps to now.

        Returns:
            New ImageRecord instance
        """
        now = datetime.now(UTC)
        created = to_utc(created_at) if created_at else now
        return cls(
            hash=hash,
            extension=extension,
            owner=owner,
            display_name=display_name,
            latitude=latitude,
            longitude=longitude,
            created_at=created,
            modified_at=to_utc(modified_at) if modified_at else created,
        )

    def to_dict(self) -> dict[str, Any]:
        """
        Convert to a JSON-ready dictionary.

        Returns:
            Dictionary representation of the record
        """
        return {
            "hash": self.hash,
            "extension": self.extension,
            "owner": self.owner,
            "image_name": self.display_name,
            "longitude": self.longitude,
            "latitude": self.latitude,
            "created_at": self.created_at.isoformat(),
            "modified_at": self.modified_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ImageRecord":
        """
        Create an ImageRecord from a dictionary produced by ``to_dict``.

        Returns:
            ImageRecord instance
        """
        return cls(
            hash=data["hash"],
            extension=data["extension"],
            owner=data["owner"],
            display_name=data.get("image_name"),
            longitude=data.get("longitude"),
            latitude=data.get("latitude"),
            created_at=_parse_timestamp(data["created_at"]),
            modified_at=_parse_timestamp(data["modified_at"]),
        )

    @classmethod
    def from_row(cls, row: tuple) -> "ImageRecord":
        """Build a record from a row selected in ``IMAGE_COLUMNS`` order."""
        return cls(
            hash=row[0],
            extension=row[1],
            owner=row[2],
            display_name=row[3],
            longitude=row[4],
            latitude=row[5],
            created_at=_parse_timestamp(row[6]),
            modified_at=_parse_timestamp(row[7]),
        )

    def to_row(self) -> tuple:
        """Values in ``IMAGE_COLUMNS`` order, ready for a parameterized insert."""
        return (
            self.hash,
            self.extension,
            self.owner,
            self.display_name,
            self.longitude,
            self.latitude,
            to_db_timestamp(self.created_at),
            to_db_timestamp(self.modified_at),
        )


IMAGE_COLUMNS = (
    "hash",
    "extension",
    "owner",
    "image_name",
    "longitude",
    "latitude",
    "created_at",
    "modified_at",
)
