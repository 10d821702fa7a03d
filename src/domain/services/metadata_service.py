"""Best-effort EXIF reading for uploaded photos.

Only capture time and GPS position are of interest. Every failure degrades to
defaults: the capture time becomes "now" and coordinates stay absent.
"""
from __future__ import annotations

import logging
import math
from datetime import UTC, datetime
from io import BytesIO
from typing import Any

from PIL import ExifTags, Image
from pillow_heif import register_heif_opener

from src.domain.entities.image import DEFAULT_IMAGE_TYPE
from src.domain.entities.image_metadata import ExtractedMetadata, MetadataSource

# HEIC originals carry their EXIF through Image.open once the opener is registered
register_heif_opener()

logger = logging.getLogger(__name__)

EXIF_DATETIME_FORMAT = "%Y:%m:%d %H:%M:%S"


class MetadataService:
    @staticmethod
    def _rational_to_float(value: Any) -> float | None:
        """Convert an EXIF rational, or None when it carries no number.

        Receivers without a fix write 0/0, which Pillow reads as NaN.
        """
        # Pillow gives IFDRational, older files sometimes carry (num, den) tuples
        if isinstance(value, tuple) and len(value) == 2:
            num, den = value
            if not den:
                return None
            result = float(num) / float(den)
        else:
            result = float(value)
        return result if math.isfinite(result) else None

    @classmethod
    def _dms_to_decimal(cls, dms: Any, ref: Any) -> float | None:
        if dms is None or ref is None:
            return None
        if isinstance(ref, bytes):
            ref = ref.decode("ascii", errors="ignore")
        ref = str(ref).strip().upper()
        parts = [cls._rational_to_float(v) for v in dms]
        if len(parts) != 3 or None in parts:
            return None
        decimal = parts[0] + parts[1] / 60.0 + parts[2] / 3600.0
        if ref in ("S", "W"):
            decimal = -decimal
        return round(decimal, 7)

    @staticmethod
    def _text(value: Any) -> str:
        if isinstance(value, bytes):
            value = value.decode("ascii", errors="ignore")
        return str(value).strip().rstrip("\x00").strip()

    @classmethod
    def _parse_datetime(cls, value: Any, offset: Any = None) -> datetime | None:
        """Parse an EXIF timestamp into an aware UTC datetime.

        EXIF stores camera wall-clock time. With an OffsetTime* tag the value
        is shifted to UTC; without one the wall-clock time is taken as UTC.
        """
        if not value:
            return None
        text = cls._text(value)
        try:
            naive = datetime.strptime(text, EXIF_DATETIME_FORMAT)
        except ValueError:
            return None
        if offset:
            try:
                local = datetime.strptime(f"{text}{cls._text(offset)}", f"{EXIF_DATETIME_FORMAT}%z")
                return local.astimezone(UTC)
            except ValueError:
                logger.debug("Ignoring malformed EXIF time offset %r", offset)
        return naive.replace(tzinfo=UTC)

    @classmethod
    def _read(cls, data: bytes) -> tuple[datetime | None, float | None, float | None]:
        with Image.open(BytesIO(data)) as img:
            exif = img.getexif()
        exif_ifd = exif.get_ifd(ExifTags.IFD.Exif)
        gps_ifd = exif.get_ifd(ExifTags.IFD.GPSInfo)

        original = exif_ifd.get(ExifTags.Base.DateTimeOriginal)
        if original:
            taken_at = cls._parse_datetime(original, exif_ifd.get(ExifTags.Base.OffsetTimeOriginal))
        else:
            taken_at = cls._parse_datetime(
                exif.get(ExifTags.Base.DateTime), exif_ifd.get(ExifTags.Base.OffsetTime)
            )
        latitude = cls._dms_to_decimal(
            gps_ifd.get(ExifTags.GPS.GPSLatitude), gps_ifd.get(ExifTags.GPS.GPSLatitudeRef)
        )
        longitude = cls._dms_to_decimal(
            gps_ifd.get(ExifTags.GPS.GPSLongitude), gps_ifd.get(ExifTags.GPS.GPSLongitudeRef)
        )
        if latitude is None or longitude is None:
            # a lone coordinate is not a position
            latitude = longitude = None
        return taken_at, latitude, longitude

    @classmethod
    def extract(cls, data: bytes, now: datetime | None = None) -> ExtractedMetadata:
        """Extract capture time and GPS position. Never raises."""
        now = now or datetime.now(UTC)
        try:
            taken_at, latitude, longitude = cls._read(data)
        except Exception as exc:
            logger.debug("EXIF extraction failed, using defaults: %s", exc)
            return ExtractedMetadata(
                source=MetadataSource.DEFAULTED,
                taken_at=now,
                type=DEFAULT_IMAGE_TYPE,
                error=str(exc),
            )

        if taken_at is None and latitude is None:
            return ExtractedMetadata(source=MetadataSource.DEFAULTED, taken_at=now, type=DEFAULT_IMAGE_TYPE)

        return ExtractedMetadata(
            source=MetadataSource.EXTRACTED,
            taken_at=taken_at or now,
            latitude=latitude,
            longitude=longitude,
            type=DEFAULT_IMAGE_TYPE,
        )
