from __future__ import annotations

from typing import Annotated

from fastapi import Depends, HTTPException, Security, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from src.domain.entities.profile import ProfileEntity
from src.infrastructure.config import Settings, get_settings
from src.infrastructure.database.postgres_client import PostgresClient, get_postgres_client
from src.infrastructure.database.repositories.image_repository import ImageRepository
from src.infrastructure.database.repositories.profile_repository import ProfileRepository
from src.infrastructure.database.supabase_client import (
    SupabaseAuthAdapter,
    UserInfo,
    get_supabase_client,
)
from src.infrastructure.storage.media_storage import MediaStorage

_bearer_scheme = HTTPBearer(auto_error=False)

SettingsDep = Annotated[Settings, Depends(get_settings)]


def get_auth_adapter(settings: SettingsDep) -> SupabaseAuthAdapter:
    return SupabaseAuthAdapter(settings, get_supabase_client(settings))


def get_current_user(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Security(_bearer_scheme)] = None,
    auth: Annotated[SupabaseAuthAdapter, Depends(get_auth_adapter)] = None,
) -> UserInfo:
    if not credentials or not credentials.scheme or credentials.scheme.lower() != "bearer":
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Missing bearer token")
    token = credentials.credentials
    if not token:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Missing bearer token")
    try:
        return auth.validate_token(token)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=str(exc))


def _pg_client(settings: Settings) -> PostgresClient | None:
    return get_postgres_client(settings.postgres) if settings.use_local_db else None


def get_storage(settings: SettingsDep) -> MediaStorage:
    return MediaStorage(settings.media_root)


def get_image_repo(settings: SettingsDep) -> ImageRepository:
    return ImageRepository(get_supabase_client(settings), _pg_client(settings))


def get_profile_repo(settings: SettingsDep) -> ProfileRepository:
    return ProfileRepository(get_supabase_client(settings), _pg_client(settings))


def get_current_profile(
    user: Annotated[UserInfo, Depends(get_current_user)],
    profiles: Annotated[ProfileRepository, Depends(get_profile_repo)],
) -> ProfileEntity:
    return profiles.get(user.id) or profiles.upsert(user.id, user.email)


def require_couple_member(profile: ProfileEntity, couple_id: str) -> None:
    """Raise 403 unless the profile belongs to the given couple."""
    if profile.couple_id is None or profile.couple_id != couple_id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN, detail="Not a member of this couple"
        )
