from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field

from src.infrastructure.database.repositories.image_repository import ImageRepository
from src.infrastructure.storage.media_storage import MediaStorage

logger = logging.getLogger(__name__)


@dataclass
class SweepReport:
    removed_dirs: list[str] = field(default_factory=list)
    removed_temp_files: list[str] = field(default_factory=list)
    skipped_recent: list[str] = field(default_factory=list)


@dataclass
class SweepOrphansUseCase:
    """Reclaim storage left behind by aborted uploads and failed deletions.

    An asset directory is an orphan when no row carries its id. Only entries
    older than ``grace_seconds`` are touched so uploads still in flight are
    left alone.
    """

    storage: MediaStorage
    image_repo: ImageRepository
    grace_seconds: int = 3600

    def execute(self, now: float | None = None, dry_run: bool = False) -> SweepReport:
        now = time.time() if now is None else now
        cutoff = now - self.grace_seconds
        report = SweepReport()

        known = self.image_repo.list_ids()
        for asset_id in self.storage.list_asset_ids():
            if asset_id in known:
                continue
            try:
                mtime = self.storage.asset_dir(asset_id).stat().st_mtime
            except FileNotFoundError:
                # removed by a concurrent rollback or delete since the listing
                continue
            if mtime > cutoff:
                report.skipped_recent.append(asset_id)
                continue
            if not dry_run:
                self.storage.purge_asset_dir(asset_id)
            report.removed_dirs.append(asset_id)

        for temp_file in self.storage.list_temp_files():
            try:
                if temp_file.stat().st_mtime > cutoff:
                    continue
            except FileNotFoundError:
                continue
            if not dry_run:
                temp_file.unlink(missing_ok=True)
            report.removed_temp_files.append(temp_file.name)

        logger.info(
            "Orphan sweep%s: %d dir(s), %d temp file(s) removed, %d recent dir(s) skipped",
            " (dry run)" if dry_run else "",
            len(report.removed_dirs),
            len(report.removed_temp_files),
            len(report.skipped_recent),
        )
        return report
