"""Supabase repository for user preferences."""

from dataclasses import dataclass
from datetime import UTC, datetime

from supabase import Client

from beztern.domain.models import UserPreferences
from beztern.services.profiles import PreferencesRepository


@dataclass
class SupabasePreferencesRepository(PreferencesRepository):
    """Supabase implementation for ``user_preferences``."""

    client: Client

    def get_preferences(self, user_id: str) -> UserPreferences | None:
        response = (
            self.client.table("user_preferences")
            .select("email_notifications, dark_mode, language")
            .eq("user_id", user_id)
            .limit(1)
            .execute()
        )
        if not response.data:
            return None
        row = response.data[0]
        email_notifications = row.get("email_notifications")
        dark_mode = row.get("dark_mode")
        return UserPreferences(
            email_notifications=True
            if email_notifications is None
            else bool(email_notifications),
            dark_mode=bool(dark_mode) if dark_mode is not None else False,
            language=row.get("language") or "english",
        )

    def upsert_preferences(self, user_id: str, preferences: UserPreferences) -> None:
        self.client.table("user_preferences").upsert(
            {
                "user_id": user_id,
                "email_notifications": preferences.email_notifications,
                "dark_mode": preferences.dark_mode,
                "language": preferences.language,
                "updated_at": datetime.now(tz=UTC).isoformat(),
            },
            on_conflict="user_id",
        ).execute()
