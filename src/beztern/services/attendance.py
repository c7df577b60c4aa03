"""Attendance check-in submission."""

import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Protocol

from beztern.domain.errors import NotificationError
from beztern.domain.records import AttendanceRecord, AttendanceType
from beztern.services.forms import AttendanceForm, parse_form
from beztern.services.photos import PhotoStorage, store_photo

logger = logging.getLogger(__name__)


class AttendanceRepository(Protocol):
    """Persistence interface for ``attendance`` rows."""

    def create_attendance(self, record: AttendanceRecord) -> AttendanceRecord:
        """Insert a record and return it as stored."""

    def list_attendance(self, user_id: str, limit: int) -> list[AttendanceRecord]:
        """Return a user's most recent records, newest first."""


def _utcnow() -> datetime:
    return datetime.now(tz=UTC)


def attendance_photo_path(user_id: str, at: datetime) -> str:
    millis = int(at.timestamp() * 1000)
    return f"attendance/{user_id}/attendance_{user_id}_{millis}.jpg"


@dataclass
class AttendanceService:
    """Validate, upload and record an attendance check-in."""

    repository: AttendanceRepository
    storage: PhotoStorage
    bucket: str = "employee-photos"
    clock: Callable[[], datetime] = _utcnow

    def submit(
        self, user_id: str, display_name: str, payload: object
    ) -> AttendanceRecord:
        """Record a check-in; validation runs before any upload or insert."""
        form = parse_form(AttendanceForm, payload)
        now = self.clock()
        photo_url = store_photo(
            self.storage, self.bucket, attendance_photo_path(user_id, now), form.photo
        )
        coordinates = form.location.to_coordinates()
        record = AttendanceRecord(
            id=None,
            user_id=user_id,
            type=AttendanceType.CHECK_IN,
            location=coordinates.format_location(),
            coordinates=coordinates,
            photo_url=photo_url,
            notes=f"Bike reading: {form.kilometers} km. Employee: {display_name}",
            created_at=now,
        )
        try:
            stored = self.repository.create_attendance(record)
        except Exception as exc:
            logger.exception("Failed to save attendance", extra={"user_id": user_id})
            raise NotificationError("Failed to submit attendance") from exc
        logger.info("Attendance submitted", extra={"user_id": user_id})
        return stored

    def recent(self, user_id: str, limit: int = 10) -> list[AttendanceRecord]:
        try:
            return self.repository.list_attendance(user_id, limit)
        except Exception as exc:
            logger.exception("Failed to load attendance", extra={"user_id": user_id})
            raise NotificationError("Failed to load attendance") from exc
