"""Supabase-backed attendance repository."""

from dataclasses import dataclass
from datetime import datetime

from supabase import Client

from beztern.domain.location import Coordinates
from beztern.domain.records import AttendanceRecord, AttendanceType
from beztern.services.attendance import AttendanceRepository


@dataclass
class SupabaseAttendanceRepository(AttendanceRepository):
    """Supabase implementation for ``attendance`` rows."""

    client: Client

    def create_attendance(self, record: AttendanceRecord) -> AttendanceRecord:
        """Insert an attendance row and return it as stored."""
        response = (
            self.client.table("attendance")
            .insert(
                {
                    "user_id": record.user_id,
                    "type": record.type.value,
                    "location": record.location,
                    "coordinates": record.coordinates.as_dict()
                    if record.coordinates
                    else None,
                    "photo_url": record.photo_url,
                    "notes": record.notes,
                    "created_at": record.created_at.isoformat(),
                }
            )
            .execute()
        )
        if not response.data:
            raise RuntimeError("Failed to create attendance record")
        return parse_attendance(response.data[0])

    def list_attendance(self, user_id: str, limit: int) -> list[AttendanceRecord]:
        response = (
            self.client.table("attendance")
            .select("*")
            .eq("user_id", user_id)
            .order("created_at", desc=True)
            .limit(limit)
            .execute()
        )
        return [parse_attendance(row) for row in response.data or []]


def parse_coordinates(raw: object) -> Coordinates | None:
    if not isinstance(raw, dict):
        return None
    try:
        return Coordinates(
            latitude=float(raw["latitude"]), longitude=float(raw["longitude"])
        )
    except (KeyError, TypeError, ValueError):
        return None


def parse_attendance(row: dict[str, object]) -> AttendanceRecord:
    created_raw = row.get("created_at")
    kind = row.get("type")
    return AttendanceRecord(
        id=str(row["id"]) if row.get("id") is not None else None,
        user_id=str(row.get("user_id")),
        type=AttendanceType.CHECK_OUT
        if kind == AttendanceType.CHECK_OUT.value
        else AttendanceType.CHECK_IN,
        location=str(row.get("location") or ""),
        coordinates=parse_coordinates(row.get("coordinates")),
        photo_url=row.get("photo_url"),
        notes=str(row.get("notes") or ""),
        created_at=datetime.fromisoformat(created_raw)
        if isinstance(created_raw, str) and created_raw
        else datetime.min,
    )
