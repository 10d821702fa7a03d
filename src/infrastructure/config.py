"""Process configuration.

Environment variables are read here and nowhere else. The resulting
``Settings`` is handed to storage, repositories and use cases explicitly.
"""
from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path


def _flag(name: str, default: str = "0") -> bool:
    return os.getenv(name, default) == "1"


@dataclass(frozen=True)
class PostgresSettings:
    host: str = "localhost"
    port: int = 5432
    database: str = "couple_media"
    user: str = "couple_media"
    password: str = "couple_media_dev_password"


@dataclass(frozen=True)
class Settings:
    media_root: Path
    max_upload_bytes: int = 15 * 1024 * 1024
    orphan_grace_seconds: int = 3600
    env: str = "development"
    log_level: str = "INFO"
    supabase_disabled: bool = False
    supabase_url: str | None = None
    supabase_anon_key: str | None = None
    use_local_db: bool = False
    postgres: PostgresSettings = PostgresSettings()

    @classmethod
    def from_env(cls) -> Settings:
        return cls(
            media_root=Path(os.getenv("MEDIA_ROOT", "media")),
            max_upload_bytes=int(os.getenv("MAX_UPLOAD_BYTES", str(15 * 1024 * 1024))),
            orphan_grace_seconds=int(os.getenv("ORPHAN_GRACE_SECONDS", "3600")),
            env=os.getenv("ENV", "development"),
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
            supabase_disabled=_flag("SUPABASE_DISABLED"),
            supabase_url=os.getenv("SUPABASE_URL"),
            supabase_anon_key=os.getenv("SUPABASE_ANON_KEY"),
            use_local_db=_flag("USE_LOCAL_DB"),
            postgres=PostgresSettings(
                host=os.getenv("POSTGRES_HOST", "localhost"),
                port=int(os.getenv("POSTGRES_PORT", "5432")),
                database=os.getenv("POSTGRES_DB", "couple_media"),
                user=os.getenv("POSTGRES_USER", "couple_media"),
                password=os.getenv("POSTGRES_PASSWORD", "couple_media_dev_password"),
            ),
        )


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings.from_env()
