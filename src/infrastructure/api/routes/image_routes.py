from __future__ import annotations

import logging
from datetime import datetime

from fastapi import APIRouter, Depends, File, Form, HTTPException, Path, Query, UploadFile, status
from fastapi.responses import FileResponse

from src.application.dtos.image_dto import (
    DeleteImageResponse,
    ImageMetadata,
    ListImagesResponse,
    UpdateImageRequest,
    UploadImageResponse,
)
from src.application.use_cases.delete_image import DeleteImageUseCase
from src.application.use_cases.ingest_image import IngestImageUseCase, IngestRequest
from src.application.use_cases.update_image import UpdateImageUseCase
from src.domain.entities.image import ImageAsset
from src.domain.entities.profile import ProfileEntity
from src.domain.errors import IngestionError
from src.domain.services.processing_service import ProcessingService
from src.infrastructure.api.dependencies import (
    get_current_profile,
    get_image_repo,
    get_storage,
    require_couple_member,
)
from src.infrastructure.config import Settings, get_settings
from src.infrastructure.database.repositories.image_repository import ImageRepository
from src.infrastructure.storage.media_storage import MediaStorage

logger = logging.getLogger(__name__)

router = APIRouter(
    tags=["Images"],
    responses={
        401: {"description": "Unauthorized - Invalid or missing authentication token"},
        404: {"description": "Not Found - Image does not exist or user doesn't have access"},
        422: {"description": "Validation Error - Invalid request format"},
    },
)

UPLOAD_CHUNK_SIZE = 64 * 1024

_MEDIA_TYPES = {
    "jpg": "image/jpeg",
    "jpeg": "image/jpeg",
    "png": "image/png",
    "gif": "image/gif",
    "heic": "image/heic",
    "heif": "image/heif",
}


def _load_owned(images: ImageRepository, image_id: str, profile: ProfileEntity) -> ImageAsset:
    asset = images.get(image_id)
    if asset is None or profile.couple_id is None or asset.couple_id != profile.couple_id:
        raise HTTPException(status_code=404, detail="Image not found or access denied")
    return asset


def _parse_taken_at(raw: str | None) -> datetime | None:
    if not raw:
        return None
    try:
        return datetime.fromisoformat(raw)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=f"Invalid taken_at: {raw!r}") from exc


async def _spool_upload(file: UploadFile, storage: MediaStorage, ext: str, max_bytes: int):
    """Stream the upload into the temp area, enforcing the size ceiling."""
    temp_path = storage.new_temp_path(ext)
    size = 0
    try:
        with open(temp_path, "wb") as buffer:
            while chunk := await file.read(UPLOAD_CHUNK_SIZE):
                size += len(chunk)
                if size > max_bytes:
                    raise HTTPException(
                        status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
                        detail=f"File exceeds the {max_bytes // (1024 * 1024)}MB limit",
                    )
                buffer.write(chunk)
    except BaseException:
        temp_path.unlink(missing_ok=True)
        raise
    if size == 0:
        temp_path.unlink(missing_ok=True)
        raise HTTPException(status_code=400, detail="Uploaded file is empty")
    return temp_path


@router.post(
    "/couples/{couple_id}/images",
    response_model=UploadImageResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Upload Image",
    description="""
    Upload one photo for a couple.

    **Supported formats**: JPG, JPEG, PNG, GIF, HEIC/HEIF
    **Maximum file size**: 15MB by default (MAX_UPLOAD_BYTES)
    **Authentication required**: Yes (Bearer token)

    The uploaded image will be:
    - Stored as-is alongside a normalized JPEG
    - Reduced to two JPEG thumbnails (400px and 200px, never enlarged)
    - Scanned for EXIF capture time and GPS position
    - Recorded only after every file has been written
    """,
    response_description="Metadata of the ingested image",
    responses={
        400: {"description": "Bad Request - Missing file, unsupported extension or invalid field"},
        403: {"description": "Forbidden - User does not belong to this couple"},
        413: {"description": "Payload Too Large - File size exceeds limit"},
    },
)
async def upload_image(
    couple_id: str = Path(..., description="Couple that will own the image"),
    file: UploadFile | None = File(None, description="Image file to upload"),
    memory_id: str | None = Form(None, description="Memory to attach the image to"),
    type: str | None = Form(None, description="Classification tag: landscape, single or couple"),
    taken_at: str | None = Form(None, description="ISO date overriding the EXIF capture time"),
    profile: ProfileEntity = Depends(get_current_profile),
    settings: Settings = Depends(get_settings),
    storage: MediaStorage = Depends(get_storage),
    images: ImageRepository = Depends(get_image_repo),
):
    """Upload a photo and run it through the ingestion pipeline."""
    require_couple_member(profile, couple_id)
    if file is None or not file.filename:
        raise HTTPException(status_code=400, detail="No file uploaded")
    try:
        fmt = ProcessingService.detect_format(file.filename, file.content_type)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    override = _parse_taken_at(taken_at)

    temp_path = await _spool_upload(file, storage, fmt, settings.max_upload_bytes)
    uc = IngestImageUseCase(storage=storage, image_repo=images)
    try:
        asset = await uc.execute(
            IngestRequest(
                temp_path=temp_path,
                original_filename=file.filename,
                content_type=file.content_type,
                couple_id=couple_id,
                user_id=profile.id,
                memory_id=memory_id or None,
                image_type=type,
                taken_at=override,
            )
        )
    except IngestionError as exc:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(exc)) from exc
    return UploadImageResponse(image=ImageMetadata.from_entity(asset))


@router.get(
    "/couples/{couple_id}/images",
    response_model=ListImagesResponse,
    summary="List Couple Images",
    description="""
    Retrieve a paginated list of the couple's images, newest first.

    Only fully ingested images are ever listed.

    **Authentication required**: Yes (Bearer token)
    """,
    response_description="Paginated list of images with metadata",
)
async def list_images(
    couple_id: str,
    profile: ProfileEntity = Depends(get_current_profile),
    images: ImageRepository = Depends(get_image_repo),
    memory_id: str | None = Query(None, description="Only images attached to this memory"),
    limit: int = Query(20, ge=1, le=100, description="Maximum number of images to return (1-100)"),
    offset: int = Query(0, ge=0, description="Number of images to skip from the beginning"),
):
    """Get a page of the couple's images."""
    require_couple_member(profile, couple_id)
    items = images.list_by_couple(couple_id, memory_id=memory_id)
    page = items[offset : offset + limit]
    return ListImagesResponse(
        images=[ImageMetadata.from_entity(it) for it in page],
        total=len(items),
        limit=limit,
        offset=offset,
    )


@router.get(
    "/images/{image_id}",
    response_model=ImageMetadata,
    summary="Get Image Metadata",
    response_description="Complete metadata for the requested image",
)
async def get_image(
    image_id: str,
    profile: ProfileEntity = Depends(get_current_profile),
    images: ImageRepository = Depends(get_image_repo),
):
    """Get metadata for a specific image."""
    return ImageMetadata.from_entity(_load_owned(images, image_id, profile))


@router.get(
    "/images/{image_id}/files/{variant}",
    summary="Download Image File",
    description="""
    Download one stored variant of an image.

    **Variants**: `original`, `image` (normalized JPEG), `thumb_big`, `thumb_small`
    **Authentication required**: Yes (Bearer token)
    """,
    response_description="Binary image file data",
    responses={200: {"content": {"image/*": {}}, "description": "Image file content"}},
)
async def download_image(
    image_id: str,
    variant: str,
    profile: ProfileEntity = Depends(get_current_profile),
    images: ImageRepository = Depends(get_image_repo),
    storage: MediaStorage = Depends(get_storage),
):
    """Stream the requested variant from media storage."""
    asset = _load_owned(images, image_id, profile)
    paths = dict(zip(MediaStorage.VARIANTS, asset.paths))
    if variant not in paths:
        raise HTTPException(status_code=404, detail=f"Unknown variant '{variant}'")
    rel_path = paths[variant]
    if not storage.exists(rel_path):
        logger.error("Asset %s references missing file %s", asset.id, rel_path)
        raise HTTPException(status_code=404, detail="Image file not found")
    media_type = _MEDIA_TYPES.get(asset.original_format, "application/octet-stream")
    if variant != "original":
        media_type = ProcessingService.CANONICAL_MIME
    return FileResponse(storage.resolve(rel_path), media_type=media_type)


@router.patch(
    "/images/{image_id}",
    response_model=ImageMetadata,
    summary="Update Image Metadata",
    description="""
    Edit the classification, memory association, caption or location of an
    image. Stored files are never touched. Concurrent edits: last write wins.
    """,
)
async def update_image(
    image_id: str,
    body: UpdateImageRequest,
    profile: ProfileEntity = Depends(get_current_profile),
    images: ImageRepository = Depends(get_image_repo),
):
    """Update editable metadata fields."""
    asset = _load_owned(images, image_id, profile)
    changes = body.model_dump(exclude_unset=True)
    try:
        updated = UpdateImageUseCase(image_repo=images).execute(asset.couple_id, image_id, changes)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return ImageMetadata.from_entity(updated)


@router.delete(
    "/images/{image_id}",
    response_model=DeleteImageResponse,
    summary="Delete Image",
    description="""
    Permanently delete an image.

    **This operation will:**
    - Remove the four stored files
    - Remove the image's storage directory
    - Delete the database row
    - Cannot be undone
    """,
    response_description="Confirmation of successful deletion",
)
async def delete_image(
    image_id: str,
    profile: ProfileEntity = Depends(get_current_profile),
    images: ImageRepository = Depends(get_image_repo),
    storage: MediaStorage = Depends(get_storage),
):
    """Permanently delete an image and its files."""
    asset = _load_owned(images, image_id, profile)
    ok = DeleteImageUseCase(storage=storage, image_repo=images).execute(asset.couple_id, image_id)
    return DeleteImageResponse(ok=ok)
