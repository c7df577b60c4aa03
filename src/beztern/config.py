"""Application configuration."""

import os
from datetime import timedelta

from pydantic_settings import BaseSettings, SettingsConfigDict

_ENVIRONMENT = os.getenv("ENVIRONMENT", "local")


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    supabase_url: str | None = None
    # service-role key; the auth admin API (sign-out, user updates) requires it
    supabase_key: str | None = None
    storage_bucket: str = "employee-photos"
    avatar_bucket: str = "avatars"
    site_url: str = "http://localhost:5173"
    admin_allowlist: str | None = None
    profile_fetch_timeout_seconds: float = 10.0
    camera_preferences_path: str = ".beztern/camera_preferences.json"
    geolocation_url: str = "https://ipapi.co/json/"
    otp_ttl_minutes: int = 30
    log_level: str = "INFO"
    environment: str = _ENVIRONMENT

    model_config = SettingsConfigDict(
        env_file=(f".env.{_ENVIRONMENT}", ".env"),
        extra="ignore",
    )

    @property
    def otp_ttl(self) -> timedelta:
        return timedelta(minutes=self.otp_ttl_minutes)


def parse_admin_allowlist(raw: str | None) -> frozenset[str]:
    """Parse identity ids that receive a fallback admin profile."""
    if raw is None:
        return frozenset()
    ids: set[str] = set()
    for chunk in raw.split(","):
        value = chunk.strip()
        if value and value != "*":
            ids.add(value)
    return frozenset(ids)
