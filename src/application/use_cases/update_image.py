from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from src.domain.entities.image import ImageAsset, ImageType
from src.infrastructure.database.repositories.image_repository import ImageRepository


@dataclass
class UpdateImageUseCase:
    image_repo: ImageRepository

    def execute(self, couple_id: str, image_id: str, changes: dict[str, Any]) -> ImageAsset:
        """Edit metadata fields of an asset. Concurrent edits: last write wins."""
        asset = self.image_repo.get(image_id)
        if asset is None or asset.couple_id != couple_id:
            raise ValueError("Image not found")

        fields = dict(changes)
        if "taken_at" in fields and fields["taken_at"] is None:
            raise ValueError("taken_at cannot be cleared")
        if "type" in fields:
            # null and unknown tags keep the current classification
            fields["type"] = ImageType.parse(fields["type"], default=asset.type)
        if ("latitude" in fields) != ("longitude" in fields):
            raise ValueError("latitude and longitude must be updated together")

        updated = self.image_repo.update(image_id, fields)
        if updated is None:
            raise ValueError("Image not found")
        return updated
