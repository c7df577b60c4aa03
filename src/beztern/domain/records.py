"""Domain models for attendance and shop visit events."""

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum

from beztern.domain.location import Coordinates


class AttendanceType(str, Enum):
    """Attendance event kinds."""

    CHECK_IN = "check_in"
    CHECK_OUT = "check_out"

    @property
    def label(self) -> str:
        return "Check In" if self is AttendanceType.CHECK_IN else "Check Out"


@dataclass(frozen=True)
class AttendanceRecord:
    """Represents a persisted attendance event."""

    id: str | None
    user_id: str
    type: AttendanceType
    location: str
    coordinates: Coordinates | None
    photo_url: str | None
    notes: str
    created_at: datetime


@dataclass(frozen=True)
class ShopVisitRecord:
    """Represents a persisted shop visit."""

    id: str | None
    user_id: str
    shop_name: str
    location: str
    coordinates: Coordinates | None
    notes: str
    visit_date: date
    created_at: datetime
    photos: list[str] = field(default_factory=list)
