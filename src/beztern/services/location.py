"""Retry-bounded wrapper around a one-shot geolocation query."""

import logging
from dataclasses import dataclass, field
from typing import Protocol

from beztern.domain.errors import LocationError, NotificationError
from beztern.domain.location import Coordinates, LocationErrorKind, LocationFix

logger = logging.getLogger(__name__)

MAX_RETRIES = 3
MAX_RETRIES_MESSAGE = (
    "Maximum retry attempts reached. Please check your settings and try again later."
)
UNSUPPORTED_MESSAGE = (
    "Geolocation is not supported by your browser. Please use a modern browser."
)
INSECURE_CONTEXT_MESSAGE = (
    "Location services require HTTPS on mobile devices. "
    "Please use a secure connection."
)


class GeolocationProvider(Protocol):
    """Interface for a platform position query."""

    async def current_position(
        self, *, high_accuracy: bool, timeout: float, maximum_age: float
    ) -> LocationFix:
        """Return the current position or raise ``LocationError``."""


def error_message(kind: LocationErrorKind, mobile: bool) -> str:
    """Pick the user-facing message for a failure bucket."""
    if kind is LocationErrorKind.PERMISSION_DENIED:
        if mobile:
            return (
                "Location access denied. Please enable location permissions in "
                "your browser settings and refresh the page."
            )
        return "Location access denied. Please allow location access and try again."
    if kind is LocationErrorKind.POSITION_UNAVAILABLE:
        if mobile:
            return (
                "Location unavailable. Please check your GPS settings and ensure "
                "you have a good signal."
            )
        return (
            "Location information unavailable. Please check your network connection."
        )
    if kind is LocationErrorKind.TIMEOUT:
        return "Location request timed out. Please try again or check your connection."
    return "An unknown error occurred while getting your location."


def accuracy_label(accuracy: float | None) -> str:
    """Describe a reported accuracy radius in metres."""
    if not accuracy:
        return "Unknown"
    if accuracy < 10:  # noqa: PLR2004
        return "Very High"
    if accuracy < 50:  # noqa: PLR2004
        return "High"
    if accuracy < 100:  # noqa: PLR2004
        return "Medium"
    return "Low"


@dataclass
class LocationFetcher:
    """Fetch the device position with a bounded number of manual retries.

    ``fetch`` is the automatic first attempt (and any explicit refresh);
    ``retry`` is the user-initiated path and is refused after
    ``MAX_RETRIES`` calls until a fix succeeds. Failures never propagate:
    callers get ``None`` and read ``last_error`` for the message.
    """

    provider: GeolocationProvider | None
    mobile: bool = False
    secure_context: bool = True
    retries_used: int = field(default=0, init=False)
    last_fix: LocationFix | None = field(default=None, init=False)
    last_error: str | None = field(default=None, init=False)
    last_error_kind: LocationErrorKind | None = field(default=None, init=False)

    @property
    def timeout(self) -> float:
        return 20.0 if self.mobile else 15.0

    @property
    def maximum_age(self) -> float:
        return 30.0 if self.mobile else 60.0

    @property
    def retries_left(self) -> int:
        return max(MAX_RETRIES - self.retries_used, 0)

    async def fetch(self) -> Coordinates | None:
        """Query the provider once and return coordinates or ``None``."""
        self.last_error = None
        self.last_error_kind = None
        if self.provider is None:
            self.last_error = UNSUPPORTED_MESSAGE
            return None
        if self.mobile and not self.secure_context:
            self.last_error = INSECURE_CONTEXT_MESSAGE
            return None
        try:
            fix = await self.provider.current_position(
                high_accuracy=True,
                timeout=self.timeout,
                maximum_age=self.maximum_age,
            )
        except LocationError as exc:
            logger.warning(
                "Geolocation failed",
                extra={"kind": exc.kind.value, "retries_used": self.retries_used},
            )
            self.last_error_kind = exc.kind
            self.last_error = error_message(exc.kind, self.mobile)
            return None
        self.last_fix = fix
        self.retries_used = 0
        return fix.coordinates

    async def retry(self) -> Coordinates | None:
        """Run a user-initiated retry; refused once the budget is spent."""
        if self.retries_used >= MAX_RETRIES:
            raise NotificationError(MAX_RETRIES_MESSAGE)
        self.retries_used += 1
        return await self.fetch()
