from __future__ import annotations

import hashlib
from dataclasses import dataclass

from supabase import Client, create_client

from src.infrastructure.config import Settings


@dataclass(slots=True)
class UserInfo:
    id: str
    email: str | None


class SupabaseAuthAdapter:
    """Validates bearer tokens against Supabase Auth.

    With ``supabase_disabled`` set, any non-empty token maps to a stable fake
    user so the service can run without network access.
    """

    def __init__(self, settings: Settings, client: Client | None = None) -> None:
        self.disabled = settings.supabase_disabled
        self._client = client
        if self._client is None and not self.disabled and settings.supabase_url and settings.supabase_anon_key:
            self._client = create_client(settings.supabase_url, settings.supabase_anon_key)

    def validate_token(self, token: str) -> UserInfo:
        if not token:
            raise ValueError("Missing access token")
        if self.disabled or self._client is None:
            # deterministic across processes, unlike hash()
            digest = hashlib.sha256(token.encode("utf-8")).hexdigest()[:12]
            return UserInfo(id=f"fake-{digest}", email=None)
        try:  # pragma: no cover - network path
            res = self._client.auth.get_user(token)
            user = res.user if res else None
        except Exception as exc:  # pragma: no cover
            raise ValueError(f"Invalid access token: {exc}") from exc
        if not user:  # pragma: no cover
            raise ValueError("Invalid access token")
        return UserInfo(id=user.id, email=user.email)  # pragma: no cover


_CLIENT_SINGLETON: Client | None = None


def get_supabase_client(settings: Settings) -> Client | None:
    """Shared Supabase client, or None when running disabled or unconfigured."""
    global _CLIENT_SINGLETON
    if settings.supabase_disabled or not settings.supabase_url or not settings.supabase_anon_key:
        return None
    if _CLIENT_SINGLETON is None:
        _CLIENT_SINGLETON = create_client(settings.supabase_url, settings.supabase_anon_key)
    return _CLIENT_SINGLETON
