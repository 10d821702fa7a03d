from __future__ import annotations

import logging
import shutil
import uuid
from dataclasses import dataclass
from pathlib import Path

logger = logging.getLogger(__name__)

TEMP_DIR_NAME = "temp"


@dataclass(frozen=True)
class AssetLayout:
    """Relative paths of the four files that make up one stored asset."""

    original: str
    image: str
    thumb_big: str
    thumb_small: str

    def as_tuple(self) -> tuple[str, str, str, str]:
        return (self.original, self.image, self.thumb_big, self.thumb_small)


class MediaStorage:
    """Local filesystem storage rooted at an explicit media directory.

    Each asset lives in ``<root>/<asset_id>/``. Paths handed out and accepted
    by this class are relative to the root so the root can move without a
    data migration.
    """

    VARIANTS = ("original", "image", "thumb_big", "thumb_small")

    def __init__(self, root: Path | str) -> None:
        self.root = Path(root)
        self.root.mkdir(parents=True, exist_ok=True)

    @property
    def temp_dir(self) -> Path:
        return self.root / TEMP_DIR_NAME

    # The only place that maps an asset id to a storage location.
    def asset_dir(self, asset_id: str) -> Path:
        if not asset_id or "/" in asset_id or "\\" in asset_id or asset_id in (".", "..", TEMP_DIR_NAME):
            raise ValueError(f"Invalid asset id: {asset_id!r}")
        return self.root / asset_id

    def layout(self, asset_id: str, original_ext: str) -> AssetLayout:
        ext = original_ext.lower().lstrip(".")
        return AssetLayout(
            original=f"{asset_id}/original.{ext}",
            image=f"{asset_id}/image.jpg",
            thumb_big=f"{asset_id}/thumb_big.jpg",
            thumb_small=f"{asset_id}/thumb_small.jpg",
        )

    def resolve(self, rel_path: str) -> Path:
        full = (self.root / rel_path).resolve()
        if self.root.resolve() not in full.parents:
            raise ValueError(f"Path escapes media root: {rel_path!r}")
        return full

    def new_temp_path(self, ext: str) -> Path:
        self.temp_dir.mkdir(parents=True, exist_ok=True)
        return self.temp_dir / f"{uuid.uuid4()}.{ext.lower().lstrip('.')}"

    def create_asset_dir(self, asset_id: str) -> Path:
        directory = self.asset_dir(asset_id)
        directory.mkdir(parents=True, exist_ok=False)
        return directory

    def write_bytes(self, rel_path: str, data: bytes) -> Path:
        full = self.resolve(rel_path)
        full.write_bytes(data)
        return full

    def read_bytes(self, rel_path: str) -> bytes:
        return self.resolve(rel_path).read_bytes()

    def exists(self, rel_path: str) -> bool:
        try:
            return self.resolve(rel_path).is_file()
        except ValueError:
            return False

    def delete_files(self, rel_paths: list[str] | tuple[str, ...]) -> list[str]:
        """Delete each file; return the paths that could not be removed."""
        failed: list[str] = []
        for rel_path in rel_paths:
            try:
                self.resolve(rel_path).unlink(missing_ok=True)
            except (OSError, ValueError) as exc:
                logger.error("Failed to delete file %s: %s", rel_path, exc)
                failed.append(rel_path)
        return failed

    def remove_asset_dir(self, asset_id: str) -> None:
        directory = self.asset_dir(asset_id)
        if directory.exists():
            # rmdir, not rmtree: an unexpected leftover file must surface as an error
            directory.rmdir()

    def purge_asset_dir(self, asset_id: str) -> None:
        """Remove an asset directory and anything left inside it."""
        directory = self.asset_dir(asset_id)
        if directory.exists():
            shutil.rmtree(directory)

    def list_asset_ids(self) -> list[str]:
        return sorted(
            entry.name for entry in self.root.iterdir() if entry.is_dir() and entry.name != TEMP_DIR_NAME
        )

    def list_temp_files(self) -> list[Path]:
        if not self.temp_dir.exists():
            return []
        return sorted(p for p in self.temp_dir.iterdir() if p.is_file())
