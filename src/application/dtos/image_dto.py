from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field

from src.domain.entities.image import ImageAsset, ImageType


class ImageFiles(BaseModel):
    """Download URLs for the stored variants of an image."""
    original: str = Field(..., description="Original upload, in its source format")
    image: str = Field(..., description="Normalized JPEG")
    thumb_big: str = Field(..., description="JPEG derivative, longest side at most 400px")
    thumb_small: str = Field(..., description="JPEG derivative, longest side at most 200px")


class ImageMetadata(BaseModel):
    """Metadata of a persisted image asset."""
    id: str = Field(..., description="Unique identifier of the image", example="3f2b1c9e-8f0a-4e0b-9a57-1d3c2e4f5a6b")
    couple_id: str = Field(..., description="Couple that owns the image")
    created_by_user_id: str = Field(..., description="User who uploaded the image")
    memory_id: str | None = Field(None, description="Memory the image is grouped under, if any")
    original_format: str = Field(..., description="Source format token", example="heic")
    original_path: str = Field(..., description="Storage path of the original file", example="3f2b.../original.heic")
    jpg_path: str = Field(..., description="Storage path of the normalized JPEG")
    thumb_big_path: str = Field(..., description="Storage path of the large thumbnail")
    thumb_small_path: str = Field(..., description="Storage path of the small thumbnail")
    taken_at: datetime = Field(..., description="Capture time from EXIF, or upload time when unavailable")
    latitude: float | None = Field(None, description="GPS latitude in decimal degrees, absent when unknown", example=45.46)
    longitude: float | None = Field(None, description="GPS longitude in decimal degrees, absent when unknown", example=9.19)
    location_name: str | None = Field(None, description="Free-text place name")
    location_address: str | None = Field(None, description="Free-text address")
    description: str | None = Field(None, description="Free-text caption")
    type: ImageType = Field(..., description="Classification tag", example="couple")
    created_at: datetime = Field(..., description="ISO timestamp when the image was stored")
    files: ImageFiles = Field(..., description="Download URLs for every stored variant")

    @classmethod
    def from_entity(cls, asset: ImageAsset) -> ImageMetadata:
        base = f"/images/{asset.id}/files"
        return cls(
            id=asset.id,
            couple_id=asset.couple_id,
            created_by_user_id=asset.created_by_user_id,
            memory_id=asset.memory_id,
            original_format=asset.original_format,
            original_path=asset.original_path,
            jpg_path=asset.jpg_path,
            thumb_big_path=asset.thumb_big_path,
            thumb_small_path=asset.thumb_small_path,
            taken_at=asset.taken_at,
            latitude=asset.latitude,
            longitude=asset.longitude,
            location_name=asset.location_name,
            location_address=asset.location_address,
            description=asset.description,
            type=asset.type,
            created_at=asset.created_at,
            files=ImageFiles(
                original=f"{base}/original",
                image=f"{base}/image",
                thumb_big=f"{base}/thumb_big",
                thumb_small=f"{base}/thumb_small",
            ),
        )


class UploadImageResponse(BaseModel):
    """Response model for a successful upload."""
    image: ImageMetadata = Field(..., description="Metadata of the ingested image")


class ListImagesResponse(BaseModel):
    """Paginated list of a couple's images."""
    images: list[ImageMetadata] = Field(..., description="List of image metadata objects")
    total: int = Field(..., description="Total number of images available", example=150, ge=0)
    limit: int = Field(..., description="Maximum number of images returned in this response", example=20, ge=1, le=100)
    offset: int = Field(..., description="Number of images skipped from the beginning", example=0, ge=0)


class UpdateImageRequest(BaseModel):
    """Editable metadata fields. Omitted fields are left unchanged."""
    type: str | None = Field(
        None, description="Classification tag; unknown values keep the current tag", example="landscape"
    )
    memory_id: str | None = Field(None, description="Memory to group the image under")
    description: str | None = Field(None, max_length=2000)
    location_name: str | None = Field(None, max_length=255)
    location_address: str | None = Field(None, max_length=500)
    latitude: float | None = Field(None, ge=-90, le=90)
    longitude: float | None = Field(None, ge=-180, le=180)
    taken_at: datetime | None = Field(None, description="Corrected capture time; cannot be cleared")


class DeleteImageResponse(BaseModel):
    """Response model for image deletion."""
    ok: bool = Field(True, description="Indicates whether the deletion was successful")
