"""Supabase repository for admin dashboard data."""

from dataclasses import dataclass
from datetime import UTC, datetime

from supabase import Client

from beztern.services.admin import AdminRepository


@dataclass
class SupabaseAdminRepository(AdminRepository):
    """Supabase implementation for admin queries; no paging or server filters."""

    client: Client

    def list_profiles(self) -> list[dict[str, object]]:
        return self._list("profiles")

    def list_attendance(self) -> list[dict[str, object]]:
        return self._list("attendance")

    def list_shop_visits(self) -> list[dict[str, object]]:
        return self._list("shop_visits")

    def update_profile(
        self, profile_id: str, changes: dict[str, object]
    ) -> dict[str, object]:
        """Update a profile row and return it."""
        response = (
            self.client.table("profiles")
            .update({**changes, "updated_at": datetime.now(tz=UTC).isoformat()})
            .eq("id", profile_id)
            .execute()
        )
        if not response.data:
            raise RuntimeError("Failed to update profile")
        return response.data[0]

    def delete_profile(self, profile_id: str) -> None:
        self.client.table("profiles").delete().eq("id", profile_id).execute()

    def _list(self, table: str) -> list[dict[str, object]]:
        response = (
            self.client.table(table)
            .select("*")
            .order("created_at", desc=True)
            .execute()
        )
        return list(response.data or [])
