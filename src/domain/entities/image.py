from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum


class ImageType(str, Enum):
    LANDSCAPE = "landscape"
    SINGLE = "single"
    COUPLE = "couple"

    @classmethod
    def parse(cls, value: str | None, default: ImageType | None = None) -> ImageType:
        """Map a raw tag to an ImageType, falling back to the default on unknown values."""
        fallback = default or DEFAULT_IMAGE_TYPE
        if not value:
            return fallback
        try:
            return cls(value.strip().lower())
        except ValueError:
            return fallback


DEFAULT_IMAGE_TYPE = ImageType.COUPLE


@dataclass(frozen=True)
class ImageAsset:
    id: str  # uuid4, also the name of the asset directory
    couple_id: str
    created_by_user_id: str
    original_format: str  # lowercase extension token, e.g. "heic"
    # paths relative to the media root: {id}/original.{ext}, {id}/image.jpg, ...
    original_path: str
    jpg_path: str
    thumb_big_path: str
    thumb_small_path: str
    taken_at: datetime
    created_at: datetime
    type: ImageType = DEFAULT_IMAGE_TYPE
    latitude: float | None = None
    longitude: float | None = None
    location_name: str | None = None
    location_address: str | None = None
    description: str | None = None
    memory_id: str | None = None

    @property
    def paths(self) -> tuple[str, str, str, str]:
        return (self.original_path, self.jpg_path, self.thumb_big_path, self.thumb_small_path)
