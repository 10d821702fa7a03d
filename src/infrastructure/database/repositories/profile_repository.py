from __future__ import annotations

from dataclasses import replace
from datetime import UTC, datetime

from supabase import Client

from src.domain.entities.profile import ProfileEntity
from src.infrastructure.database.postgres_client import PostgresClient

# module-level in-memory store for disabled mode
_MEM_PROFILES: dict[str, ProfileEntity] = {}


class ProfileRepository:
    def __init__(self, client: Client | None, pg_client: PostgresClient | None = None) -> None:
        self.client = client
        self.pg_client = pg_client

    def _row_to_entity(self, row: dict) -> ProfileEntity:
        created_at = row.get("created_at")
        if isinstance(created_at, str):
            created_at = datetime.fromisoformat(created_at)
        couple_id = row.get("couple_id")
        return ProfileEntity(
            id=str(row["id"]),
            email=row.get("email"),
            created_at=created_at,
            display_name=row.get("display_name"),
            couple_id=str(couple_id) if couple_id is not None else None,
        )

    def get(self, user_id: str) -> ProfileEntity | None:
        if self.pg_client is not None:
            row = self.pg_client.execute_one("SELECT * FROM profiles WHERE id = %s", (user_id,))
            return self._row_to_entity(row) if row else None

        if self.client is None:
            return _MEM_PROFILES.get(user_id)

        try:  # pragma: no cover - network
            res = self.client.table("profiles").select("*").eq("id", user_id).limit(1).execute()
            rows = res.data or []
            return self._row_to_entity(rows[0]) if rows else None
        except Exception as exc:  # pragma: no cover
            raise RuntimeError(f"DB get profile failed: {exc}") from exc

    def upsert(self, user_id: str, email: str | None) -> ProfileEntity:
        # PostgreSQL mode
        if self.pg_client is not None:
            query = """
                INSERT INTO profiles (id, email, created_at)
                VALUES (%s, %s, CURRENT_TIMESTAMP)
                ON CONFLICT (id) DO UPDATE SET email = COALESCE(EXCLUDED.email, profiles.email)
                RETURNING *
            """
            try:
                return self._row_to_entity(self.pg_client.execute_insert(query, (user_id, email)))
            except Exception as exc:
                raise RuntimeError(f"PostgreSQL upsert profile failed: {exc}") from exc

        # In-memory mode
        if self.client is None:
            current = _MEM_PROFILES.get(user_id)
            if current is None:
                entity = ProfileEntity(id=user_id, email=email, created_at=datetime.now(UTC))
            else:
                entity = replace(current, email=email or current.email)
            _MEM_PROFILES[user_id] = entity
            return entity

        # Supabase mode
        try:  # pragma: no cover - network
            data = {"id": user_id, "email": email}
            self.client.table("profiles").upsert(data, on_conflict="id").execute()
            res = self.client.table("profiles").select("*").eq("id", user_id).single().execute()
            return self._row_to_entity(res.data)
        except Exception as exc:  # pragma: no cover
            raise RuntimeError(f"DB upsert profile failed: {exc}") from exc

    def set_couple(self, user_id: str, couple_id: str | None) -> ProfileEntity:
        if self.pg_client is not None:
            query = "UPDATE profiles SET couple_id = %s WHERE id = %s RETURNING *"
            try:
                return self._row_to_entity(self.pg_client.execute_insert(query, (couple_id, user_id)))
            except Exception as exc:
                raise RuntimeError(f"PostgreSQL update profile failed: {exc}") from exc

        if self.client is None:
            current = _MEM_PROFILES.get(user_id) or ProfileEntity(
                id=user_id, email=None, created_at=datetime.now(UTC)
            )
            updated = replace(current, couple_id=couple_id)
            _MEM_PROFILES[user_id] = updated
            return updated

        try:  # pragma: no cover - network
            self.client.table("profiles").update({"couple_id": couple_id}).eq("id", user_id).execute()
            res = self.client.table("profiles").select("*").eq("id", user_id).single().execute()
            return self._row_to_entity(res.data)
        except Exception as exc:  # pragma: no cover
            raise RuntimeError(f"DB update profile failed: {exc}") from exc
