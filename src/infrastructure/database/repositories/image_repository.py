from __future__ import annotations

from dataclasses import asdict, replace
from datetime import UTC, datetime
from typing import Any

from supabase import Client

from src.domain.entities.image import ImageAsset, ImageType
from src.infrastructure.database.postgres_client import PostgresClient

# module-level in-memory store for disabled mode
_MEM_IMAGES: dict[str, ImageAsset] = {}

_COLUMNS = (
    "id",
    "couple_id",
    "created_by_user_id",
    "memory_id",
    "original_format",
    "original_path",
    "jpg_path",
    "thumb_big_path",
    "thumb_small_path",
    "taken_at",
    "latitude",
    "longitude",
    "location_name",
    "location_address",
    "description",
    "type",
    "created_at",
)

# fields an edit may touch; paths and ownership are immutable
EDITABLE_FIELDS = frozenset(
    {"type", "memory_id", "description", "location_name", "location_address", "latitude", "longitude", "taken_at"}
)


def _parse_ts(value: Any) -> datetime:
    # PostgreSQL returns datetime objects, Supabase returns ISO strings
    if isinstance(value, str):
        return datetime.fromisoformat(value)
    return value


class ImageRepository:
    """Persistence for ImageAsset rows.

    Backed by PostgreSQL when a ``PostgresClient`` is given, by Supabase when a
    client is given, and by a process-local dict otherwise.
    """

    def __init__(self, client: Client | None, pg_client: PostgresClient | None = None) -> None:
        self.client = client
        self.pg_client = pg_client

    @property
    def in_memory(self) -> bool:
        return self.pg_client is None and self.client is None

    def _row_to_entity(self, row: dict) -> ImageAsset:
        return ImageAsset(
            id=str(row["id"]),
            couple_id=str(row["couple_id"]),
            created_by_user_id=str(row["created_by_user_id"]),
            memory_id=str(row["memory_id"]) if row.get("memory_id") is not None else None,
            original_format=row["original_format"],
            original_path=row["original_path"],
            jpg_path=row["jpg_path"],
            thumb_big_path=row["thumb_big_path"],
            thumb_small_path=row["thumb_small_path"],
            taken_at=_parse_ts(row["taken_at"]),
            latitude=row.get("latitude"),
            longitude=row.get("longitude"),
            location_name=row.get("location_name"),
            location_address=row.get("location_address"),
            description=row.get("description"),
            type=ImageType.parse(row.get("type")),
            created_at=_parse_ts(row["created_at"]),
        )

    @staticmethod
    def _entity_to_row(entity: ImageAsset) -> dict[str, Any]:
        data = asdict(entity)
        data["type"] = entity.type.value
        return data

    def create(self, asset: ImageAsset) -> ImageAsset:
        """Insert one row. ``created_at`` is stamped here and never changed."""
        asset = replace(asset, created_at=datetime.now(UTC))

        # PostgreSQL mode
        if self.pg_client is not None:
            row = self._entity_to_row(asset)
            placeholders = ", ".join(["%s"] * len(_COLUMNS))
            query = f"INSERT INTO images ({', '.join(_COLUMNS)}) VALUES ({placeholders}) RETURNING *"
            try:
                inserted = self.pg_client.execute_insert(query, tuple(row[c] for c in _COLUMNS))
            except Exception as exc:
                raise RuntimeError(f"PostgreSQL insert image failed: {exc}") from exc
            return self._row_to_entity(inserted)

        # In-memory mode
        if self.client is None:
            if asset.id in _MEM_IMAGES:
                raise RuntimeError(f"DB insert image failed: duplicate id {asset.id}")
            _MEM_IMAGES[asset.id] = asset
            return asset

        # Supabase mode
        try:  # pragma: no cover - network
            data = self._entity_to_row(asset)
            data["taken_at"] = asset.taken_at.isoformat()
            data["created_at"] = asset.created_at.isoformat()
            res = self.client.table("images").insert(data).execute()
            return self._row_to_entity(res.data[0])
        except Exception as exc:  # pragma: no cover
            raise RuntimeError(f"DB insert image failed: {exc}") from exc

    def get(self, image_id: str) -> ImageAsset | None:
        if self.pg_client is not None:
            row = self.pg_client.execute_one("SELECT * FROM images WHERE id = %s", (image_id,))
            return self._row_to_entity(row) if row else None

        if self.client is None:
            return _MEM_IMAGES.get(image_id)

        try:  # pragma: no cover - network
            res = self.client.table("images").select("*").eq("id", image_id).limit(1).execute()
            rows = res.data or []
            return self._row_to_entity(rows[0]) if rows else None
        except Exception as exc:  # pragma: no cover
            raise RuntimeError(f"DB get image failed: {exc}") from exc

    def list_by_couple(self, couple_id: str, memory_id: str | None = None) -> list[ImageAsset]:
        """Newest first."""
        if self.pg_client is not None:
            if memory_id is None:
                rows = self.pg_client.execute_many(
                    "SELECT * FROM images WHERE couple_id = %s ORDER BY created_at DESC", (couple_id,)
                )
            else:
                rows = self.pg_client.execute_many(
                    "SELECT * FROM images WHERE couple_id = %s AND memory_id = %s ORDER BY created_at DESC",
                    (couple_id, memory_id),
                )
            return [self._row_to_entity(row) for row in rows]

        if self.client is None:
            items = [
                img
                for img in _MEM_IMAGES.values()
                if img.couple_id == couple_id and (memory_id is None or img.memory_id == memory_id)
            ]
            return sorted(items, key=lambda img: img.created_at, reverse=True)

        try:  # pragma: no cover - network
            query = self.client.table("images").select("*").eq("couple_id", couple_id)
            if memory_id is not None:
                query = query.eq("memory_id", memory_id)
            res = query.order("created_at", desc=True).execute()
            return [self._row_to_entity(row) for row in res.data or []]
        except Exception as exc:  # pragma: no cover
            raise RuntimeError(f"DB list images failed: {exc}") from exc

    def list_ids(self) -> set[str]:
        """Every persisted asset id, used to tell orphan directories apart."""
        if self.pg_client is not None:
            return {str(row["id"]) for row in self.pg_client.execute_many("SELECT id FROM images")}

        if self.client is None:
            return set(_MEM_IMAGES)

        try:  # pragma: no cover - network
            res = self.client.table("images").select("id").execute()
            return {str(row["id"]) for row in res.data or []}
        except Exception as exc:  # pragma: no cover
            raise RuntimeError(f"DB list image ids failed: {exc}") from exc

    def update(self, image_id: str, fields: dict[str, Any]) -> ImageAsset | None:
        """Plain last-write-wins update of metadata fields."""
        unknown = set(fields) - EDITABLE_FIELDS
        if unknown:
            raise ValueError(f"Fields not editable: {', '.join(sorted(unknown))}")
        if "type" in fields and isinstance(fields["type"], ImageType):
            fields = {**fields, "type": fields["type"].value}
        if not fields:
            return self.get(image_id)

        if self.pg_client is not None:
            assignments = ", ".join(f"{name} = %s" for name in fields)
            query = f"UPDATE images SET {assignments} WHERE id = %s RETURNING *"
            try:
                row = self.pg_client.execute_one(query, (*fields.values(), image_id))
            except Exception as exc:
                raise RuntimeError(f"PostgreSQL update image failed: {exc}") from exc
            return self._row_to_entity(row) if row else None

        if self.client is None:
            current = _MEM_IMAGES.get(image_id)
            if current is None:
                return None
            changes = dict(fields)
            if "type" in changes:
                changes["type"] = ImageType.parse(changes["type"])
            updated = replace(current, **changes)
            _MEM_IMAGES[image_id] = updated
            return updated

        try:  # pragma: no cover - network
            data = {k: (v.isoformat() if isinstance(v, datetime) else v) for k, v in fields.items()}
            res = self.client.table("images").update(data).eq("id", image_id).execute()
            rows = res.data or []
            return self._row_to_entity(rows[0]) if rows else None
        except Exception as exc:  # pragma: no cover
            raise RuntimeError(f"DB update image failed: {exc}") from exc

    def delete(self, image_id: str) -> bool:
        if self.pg_client is not None:
            return self.pg_client.execute_update("DELETE FROM images WHERE id = %s", (image_id,)) > 0

        if self.client is None:
            return _MEM_IMAGES.pop(image_id, None) is not None

        try:  # pragma: no cover - network
            res = self.client.table("images").delete().eq("id", image_id).execute()
            return bool(res.data)
        except Exception as exc:  # pragma: no cover
            raise RuntimeError(f"DB delete image failed: {exc}") from exc
