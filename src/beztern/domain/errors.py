"""Error types surfaced to API callers."""

from beztern.domain.location import LocationErrorKind


class BezternError(Exception):
    """Base class for application errors."""


class FormValidationError(BezternError):
    """Field-level validation failure; nothing was sent to the backend."""

    def __init__(self, errors: dict[str, str]) -> None:
        super().__init__(errors)
        self.errors = errors

    def __str__(self) -> str:
        return "; ".join(f"{name}: {message}" for name, message in self.errors.items())


class NotificationError(BezternError):
    """User-facing failure shown as an error notification."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class AuthenticationError(NotificationError):
    """Sign-in, sign-up or session failure."""


class CameraError(NotificationError):
    """Camera stream could not be acquired or used."""


class LocationError(NotificationError):
    """Geolocation request failed."""

    def __init__(self, kind: LocationErrorKind, message: str) -> None:
        super().__init__(message)
        self.kind = kind


class GuardRedirect(BezternError):
    """Route guard decided the caller belongs on another page."""

    def __init__(self, location: str) -> None:
        super().__init__(location)
        self.location = location
