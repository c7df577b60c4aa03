"""Supabase-backed profile repository."""

from dataclasses import dataclass
from datetime import UTC, datetime

from supabase import Client

from beztern.domain.models import Profile, Role
from beztern.services.profiles import ProfileRepository

PROFILE_COLUMNS = (
    "id, email, full_name, username, phone, role, active, bio, avatar_url, created_at"
)


@dataclass
class SupabaseProfileRepository(ProfileRepository):
    """Supabase implementation for ``profiles`` rows."""

    client: Client

    def get_profile(self, user_id: str) -> Profile | None:
        """Return the profile for an identity, if present."""
        response = (
            self.client.table("profiles")
            .select(PROFILE_COLUMNS)
            .eq("id", user_id)
            .limit(1)
            .execute()
        )
        if not response.data:
            return None
        return parse_profile(response.data[0])

    def find_email(self, identifier: str) -> str | None:
        """Return the email registered for a username or phone number."""
        value = _quote(identifier)
        response = (
            self.client.table("profiles")
            .select("email")
            .or_(f"username.eq.{value},phone.eq.{value}")
            .limit(1)
            .execute()
        )
        if not response.data:
            return None
        return response.data[0].get("email") or None

    def create_profile(self, profile: Profile) -> Profile:
        """Insert a profile row and return it."""
        created_at = profile.created_at or datetime.now(tz=UTC)
        response = (
            self.client.table("profiles")
            .insert(
                {
                    "id": profile.id,
                    "email": profile.email,
                    "full_name": profile.full_name,
                    "username": profile.username,
                    "phone": profile.phone,
                    "avatar_url": profile.avatar_url,
                    "role": profile.role.value,
                    "active": profile.active,
                    "created_at": created_at.isoformat(),
                }
            )
            .execute()
        )
        if not response.data:
            raise RuntimeError("Failed to create profile in Supabase")
        return parse_profile(response.data[0])

    def update_profile(self, user_id: str, changes: dict[str, object]) -> None:
        """Apply a partial update and bump ``updated_at``."""
        self.client.table("profiles").update(
            {**changes, "updated_at": datetime.now(tz=UTC).isoformat()}
        ).eq("id", user_id).execute()


def _quote(value: str) -> str:
    escaped = value.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


def parse_profile(row: dict[str, object]) -> Profile:
    created_raw = row.get("created_at")
    return Profile(
        id=str(row["id"]),
        role=Role.parse(row.get("role")),
        email=row.get("email"),
        full_name=row.get("full_name"),
        username=row.get("username"),
        phone=row.get("phone"),
        active=row.get("active") is not False,
        bio=row.get("bio"),
        avatar_url=row.get("avatar_url"),
        created_at=(
            datetime.fromisoformat(created_raw)
            if isinstance(created_raw, str) and created_raw
            else None
        ),
    )
