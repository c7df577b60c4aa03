"""Geolocation domain models."""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum


class LocationErrorKind(str, Enum):
    """Buckets used to pick a geolocation failure message."""

    PERMISSION_DENIED = "permission_denied"
    POSITION_UNAVAILABLE = "position_unavailable"
    TIMEOUT = "timeout"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class Coordinates:
    """A latitude/longitude pair."""

    latitude: float
    longitude: float

    def format_location(self) -> str:
        """Render the free-text location stored next to records."""
        return f"Lat: {self.latitude}, Lng: {self.longitude}"

    def as_dict(self) -> dict[str, float]:
        return {"latitude": self.latitude, "longitude": self.longitude}


@dataclass(frozen=True)
class LocationFix:
    """A resolved position with its reported accuracy in metres."""

    coordinates: Coordinates
    accuracy: float | None
    captured_at: datetime
