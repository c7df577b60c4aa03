"""Supabase-backed shop visit repository."""

from dataclasses import dataclass
from datetime import date, datetime

from supabase import Client

from beztern.adapters.supabase_attendance_repository import parse_coordinates
from beztern.domain.records import ShopVisitRecord
from beztern.services.shop_visits import ShopVisitRepository


@dataclass
class SupabaseShopVisitRepository(ShopVisitRepository):
    """Supabase implementation for ``shop_visits`` rows."""

    client: Client

    def create_shop_visit(self, record: ShopVisitRecord) -> ShopVisitRecord:
        """Insert a shop visit row and return it as stored."""
        response = (
            self.client.table("shop_visits")
            .insert(
                {
                    "user_id": record.user_id,
                    "shop_name": record.shop_name,
                    "location": record.location,
                    "coordinates": record.coordinates.as_dict()
                    if record.coordinates
                    else None,
                    "photos": list(record.photos),
                    "notes": record.notes,
                    "visit_date": record.visit_date.isoformat(),
                    "created_at": record.created_at.isoformat(),
                }
            )
            .execute()
        )
        if not response.data:
            raise RuntimeError("Failed to create shop visit")
        return parse_shop_visit(response.data[0])

    def list_shop_visits(self, user_id: str, limit: int) -> list[ShopVisitRecord]:
        response = (
            self.client.table("shop_visits")
            .select("*")
            .eq("user_id", user_id)
            .order("created_at", desc=True)
            .limit(limit)
            .execute()
        )
        return [parse_shop_visit(row) for row in response.data or []]


def parse_shop_visit(row: dict[str, object]) -> ShopVisitRecord:
    created_raw = row.get("created_at")
    created_at = (
        datetime.fromisoformat(created_raw)
        if isinstance(created_raw, str) and created_raw
        else datetime.min
    )
    visit_raw = row.get("visit_date")
    visit_date = (
        date.fromisoformat(visit_raw[:10])
        if isinstance(visit_raw, str) and visit_raw
        else created_at.date()
    )
    photos = row.get("photos")
    return ShopVisitRecord(
        id=str(row["id"]) if row.get("id") is not None else None,
        user_id=str(row.get("user_id")),
        shop_name=str(row.get("shop_name") or ""),
        location=str(row.get("location") or ""),
        coordinates=parse_coordinates(row.get("coordinates")),
        notes=str(row.get("notes") or ""),
        visit_date=visit_date,
        created_at=created_at,
        photos=[str(url) for url in photos] if isinstance(photos, list) else [],
    )
