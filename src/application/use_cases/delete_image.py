from __future__ import annotations

import logging
from dataclasses import dataclass

from src.infrastructure.database.repositories.image_repository import ImageRepository
from src.infrastructure.storage.media_storage import MediaStorage

logger = logging.getLogger(__name__)


@dataclass
class DeleteImageUseCase:
    storage: MediaStorage
    image_repo: ImageRepository

    def execute(self, couple_id: str, image_id: str) -> bool:
        """
        Delete an asset: its four files, then its directory, then its row.

        Filesystem state goes first so that a failure part way through leaves
        orphaned files (picked up by the orphan sweep) rather than a row that
        points at files which no longer exist. Once any file may be gone the
        row is removed even if some other file or the directory resisted.
        """
        asset = self.image_repo.get(image_id)
        if asset is None or asset.couple_id != couple_id:
            raise ValueError("Image not found")

        leftovers = self.storage.delete_files(asset.paths)
        if leftovers:
            logger.error("Asset %s: %d file(s) could not be deleted: %s", image_id, len(leftovers), leftovers)
        else:
            try:
                self.storage.remove_asset_dir(image_id)
            except OSError as exc:
                logger.error("Asset %s: directory could not be removed: %s", image_id, exc)

        try:
            deleted = self.image_repo.delete(image_id)
        except Exception:
            logger.exception("Asset %s: files removed but row deletion failed", image_id)
            raise
        if not deleted:
            logger.warning("Asset %s: row already gone at delete time", image_id)
        logger.info("Deleted asset %s of couple %s", image_id, couple_id)
        return deleted
