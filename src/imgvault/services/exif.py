"""GPS extraction from embedded image metadata.

Extraction is best effort: whatever goes wrong while reading the container,
the caller gets ``GpsCoordinates(None, None)`` and the upload proceeds.
"""

import io
import math
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any

from PIL import ExifTags, Image
from pillow_heif import register_heif_opener

from ..logging_config import get_logger

register_heif_opener()

logger = get_logger(__name__)


@dataclass(frozen=True)
class GpsCoordinates:
    """Signed decimal degrees. Each axis is None when it could not be read."""

    latitude: float | None = None
    longitude: float | None = None

    def __iter__(self):
        return iter((self.latitude, self.longitude))

    @property
    def is_empty(self) -> bool:
        return self.latitude is None and self.longitude is None


def dms_to_decimal(degrees: float, minutes: float, seconds: float) -> float:
    """Convert degrees/minutes/seconds to unsigned decimal degrees."""
    return degrees + minutes / 60.0 + seconds / 3600.0


class MetadataExtractor:
    """Reads the EXIF GPS IFD of JPEG, TIFF, PNG, WebP and HEIC images."""

    # (value tag, reference tag, default reference, negative reference)
    LATITUDE_TAGS = (ExifTags.GPS.GPSLatitude, ExifTags.GPS.GPSLatitudeRef, "N", "S")
    LONGITUDE_TAGS = (ExifTags.GPS.GPSLongitude, ExifTags.GPS.GPSLongitudeRef, "E", "W")

    def extract_gps(self, image_data: bytes) -> GpsCoordinates:
        """
        Extract latitude and longitude from embedded EXIF data.

        Args:
            image_data: Raw image data as bytes

        Returns:
            GpsCoordinates, with None for every axis that is missing or malformed
        """
        try:
            with Image.open(io.BytesIO(image_data)) as image:
                gps_ifd = dict(image.getexif().get_ifd(ExifTags.IFD.GPSInfo))
        except Exception as e:
            logger.debug("gps_metadata_unreadable", error_type=type(e).__name__, error=str(e))
            return GpsCoordinates()

        if not gps_ifd:
            logger.debug("gps_metadata_not_found")
            return GpsCoordinates()

        coordinates = GpsCoordinates(
            latitude=self._read_axis(gps_ifd, *self.LATITUDE_TAGS),
            longitude=self._read_axis(gps_ifd, *self.LONGITUDE_TAGS),
        )
        logger.debug("gps_metadata_extracted", latitude=coordinates.latitude, longitude=coordinates.longitude)
        return coordinates

    def _read_axis(
        self,
        gps_ifd: dict[int, Any],
        value_tag: int,
        ref_tag: int,
        default_ref: str,
        negative_ref: str,
    ) -> float | None:
        decimal = self._rationals_to_decimal(gps_ifd.get(value_tag))
        if decimal is None:
            return None

        reference = self._normalize_ref(gps_ifd.get(ref_tag)) or default_ref
        return -decimal if reference == negative_ref else decimal

    @staticmethod
    def _rationals_to_decimal(value: Any) -> float | None:
        if not isinstance(value, Sequence) or isinstance(value, (str, bytes)) or len(value) < 3:
            return None

        try:
            degrees, minutes, seconds = (float(part) for part in value[:3])
        except (TypeError, ValueError, ZeroDivisionError):
            return None

        decimal = dms_to_decimal(degrees, minutes, seconds)
        if not math.isfinite(decimal):
            return None
        return decimal

    @staticmethod
    def _normalize_ref(value: Any) -> str | None:
        if isinstance(value, bytes):
            value = value.decode("ascii", errors="ignore")
        if not isinstance(value, str):
            return None
        value = value.strip("\x00 ").upper()
        return value[:1] or None


_metadata_extractor = MetadataExtractor()


def extract_gps(image_data: bytes) -> GpsCoordinates:
    """Module-level shortcut for ``MetadataExtractor().extract_gps``."""
    return _metadata_extractor.extract_gps(image_data)
