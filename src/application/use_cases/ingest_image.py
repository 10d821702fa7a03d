from __future__ import annotations

import asyncio
import logging
import uuid
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from pathlib import Path

from src.domain.entities.image import ImageAsset, ImageType
from src.domain.errors import IngestionError
from src.domain.services.metadata_service import MetadataService
from src.domain.services.processing_service import ProcessingService
from src.infrastructure.database.repositories.image_repository import ImageRepository
from src.infrastructure.storage.media_storage import MediaStorage

logger = logging.getLogger(__name__)


class IngestionStage(str, Enum):
    RECEIVED = "received"
    ORIGINAL_WRITTEN = "original_written"
    NORMALIZED_WRITTEN = "normalized_written"
    DERIVATIVES_WRITTEN = "derivatives_written"
    PERSISTED = "persisted"
    FAILED = "failed"


@dataclass
class IngestRequest:
    temp_path: Path  # upload artifact; always removed by the use case
    original_filename: str
    couple_id: str
    user_id: str
    content_type: str | None = None
    memory_id: str | None = None
    image_type: str | None = None  # raw tag, unknown values fall back to the default
    taken_at: datetime | None = None  # explicit override of the EXIF capture time


@dataclass
class _Attempt:
    asset_id: str
    stage: IngestionStage = IngestionStage.RECEIVED
    dir_created: bool = False
    written: list[str] = field(default_factory=list)

    def advance(self, stage: IngestionStage) -> None:
        logger.debug("Asset %s: %s -> %s", self.asset_id, self.stage.value, stage.value)
        self.stage = stage


@dataclass
class IngestImageUseCase:
    storage: MediaStorage
    image_repo: ImageRepository
    processing: ProcessingService = field(default_factory=ProcessingService)
    metadata: MetadataService = field(default_factory=MetadataService)

    async def execute(self, request: IngestRequest) -> ImageAsset:
        """
        Turn one uploaded file into a persisted ImageAsset.

        Files are written first (original, normalized JPEG, both thumbnails)
        and the row is inserted last, so a row never points at missing files.
        Any failure removes whatever was written and raises IngestionError.
        The temp upload is deleted on every path.
        """
        try:
            # ValueError here is a validation failure: nothing written, no rollback
            fmt = self.processing.detect_format(request.original_filename, request.content_type)
            attempt = _Attempt(asset_id=str(uuid.uuid4()))
            try:
                return await self._run(request, fmt, attempt)
            except Exception as exc:
                failed_at = attempt.stage
                attempt.advance(IngestionStage.FAILED)
                logger.warning(
                    "Ingestion of %s failed at stage %s (%s: %s); rolling back asset %s",
                    request.original_filename,
                    failed_at.value,
                    type(exc).__name__,
                    exc,
                    attempt.asset_id,
                )
                await asyncio.to_thread(self._rollback, attempt)
                raise IngestionError(stage=failed_at.value) from exc
        finally:
            await asyncio.to_thread(self._discard_temp, request.temp_path)

    async def _run(self, request: IngestRequest, fmt: str, attempt: _Attempt) -> ImageAsset:
        original = await asyncio.to_thread(request.temp_path.read_bytes)
        meta = await asyncio.to_thread(self.metadata.extract, original)
        logger.debug("Asset %s metadata %s", attempt.asset_id, meta.source.value)

        layout = self.storage.layout(attempt.asset_id, fmt)

        await asyncio.to_thread(self.storage.create_asset_dir, attempt.asset_id)
        attempt.dir_created = True
        await self._write(attempt, layout.original, original)
        attempt.advance(IngestionStage.ORIGINAL_WRITTEN)

        normalized = await asyncio.to_thread(self.processing.normalize, original, fmt)
        await self._write(attempt, layout.image, normalized)
        attempt.advance(IngestionStage.NORMALIZED_WRITTEN)

        # independent of each other; held in memory until both succeed
        thumb_big, thumb_small = await asyncio.gather(
            asyncio.to_thread(self.processing.make_thumb_big, normalized),
            asyncio.to_thread(self.processing.make_thumb_small, normalized),
        )
        await self._write(attempt, layout.thumb_big, thumb_big)
        await self._write(attempt, layout.thumb_small, thumb_small)
        attempt.advance(IngestionStage.DERIVATIVES_WRITTEN)

        now = datetime.now(UTC)
        asset = ImageAsset(
            id=attempt.asset_id,
            couple_id=request.couple_id,
            created_by_user_id=request.user_id,
            memory_id=request.memory_id,
            original_format=fmt,
            original_path=layout.original,
            jpg_path=layout.image,
            thumb_big_path=layout.thumb_big,
            thumb_small_path=layout.thumb_small,
            taken_at=request.taken_at or meta.taken_at,
            latitude=meta.latitude,
            longitude=meta.longitude,
            location_name=meta.location_name,
            location_address=meta.location_address,
            type=ImageType.parse(request.image_type, default=meta.type),
            created_at=now,
        )
        persisted = await asyncio.to_thread(self.image_repo.create, asset)
        attempt.advance(IngestionStage.PERSISTED)
        logger.info(
            "Ingested asset %s for couple %s (%s, metadata %s)",
            persisted.id,
            persisted.couple_id,
            fmt,
            meta.source.value,
        )
        return persisted

    async def _write(self, attempt: _Attempt, rel_path: str, data: bytes) -> None:
        # record before writing so a half-written file is still cleaned up
        attempt.written.append(rel_path)
        await asyncio.to_thread(self.storage.write_bytes, rel_path, data)

    def _rollback(self, attempt: _Attempt) -> None:
        if not attempt.dir_created:
            return
        leftovers = self.storage.delete_files(attempt.written)
        try:
            if leftovers:
                self.storage.purge_asset_dir(attempt.asset_id)
            else:
                self.storage.remove_asset_dir(attempt.asset_id)
        except OSError:
            logger.exception("Rollback of asset %s left files behind", attempt.asset_id)

    @staticmethod
    def _discard_temp(temp_path: Path) -> None:
        try:
            temp_path.unlink(missing_ok=True)
        except OSError:
            logger.exception("Could not remove temporary upload %s", temp_path)
