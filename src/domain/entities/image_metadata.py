from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum

from src.domain.entities.image import DEFAULT_IMAGE_TYPE, ImageType


class MetadataSource(str, Enum):
    EXTRACTED = "extracted"  # at least one embedded tag was read
    DEFAULTED = "defaulted"  # parser failed or found nothing usable


@dataclass(frozen=True)
class ExtractedMetadata:
    source: MetadataSource
    taken_at: datetime
    latitude: float | None = None
    longitude: float | None = None
    location_name: str | None = None
    location_address: str | None = None
    type: ImageType = DEFAULT_IMAGE_TYPE
    error: str | None = None  # parser failure message when source is DEFAULTED

    @property
    def has_coordinates(self) -> bool:
        return self.latitude is not None and self.longitude is not None
