"""IP geolocation provider backed by an HTTP lookup service."""

from dataclasses import dataclass
from datetime import UTC, datetime

import httpx

from beztern.domain.errors import LocationError
from beztern.domain.location import Coordinates, LocationErrorKind, LocationFix
from beztern.services.location import GeolocationProvider, error_message

_DENIED_STATUSES = {401, 403}


@dataclass
class HttpxGeolocationClient(GeolocationProvider):
    """Resolve an approximate position from the caller's network address.

    ``high_accuracy`` and ``maximum_age`` have no effect on an IP lookup;
    ``timeout`` bounds the request.
    """

    url: str
    http_client: httpx.AsyncClient

    @classmethod
    def create(cls, url: str) -> "HttpxGeolocationClient":
        """Create a client with a managed httpx session."""
        return cls(url=url, http_client=httpx.AsyncClient())

    async def current_position(
        self, *, high_accuracy: bool, timeout: float, maximum_age: float
    ) -> LocationFix:
        try:
            response = await self.http_client.get(self.url, timeout=timeout)
        except httpx.TimeoutException as exc:
            raise _error(LocationErrorKind.TIMEOUT) from exc
        except httpx.HTTPError as exc:
            raise _error(LocationErrorKind.POSITION_UNAVAILABLE) from exc
        if response.status_code in _DENIED_STATUSES:
            raise _error(LocationErrorKind.PERMISSION_DENIED)
        if response.is_error:
            raise _error(LocationErrorKind.POSITION_UNAVAILABLE)
        try:
            payload = response.json()
        except ValueError as exc:
            raise _error(LocationErrorKind.UNKNOWN) from exc
        if not isinstance(payload, dict):
            raise _error(LocationErrorKind.UNKNOWN)
        latitude = payload.get("latitude", payload.get("lat"))
        longitude = payload.get("longitude", payload.get("lon"))
        if latitude is None or longitude is None:
            raise _error(LocationErrorKind.POSITION_UNAVAILABLE)
        accuracy = payload.get("accuracy")
        try:
            coordinates = Coordinates(
                latitude=float(latitude), longitude=float(longitude)
            )
            radius = float(accuracy) if accuracy is not None else None
        except (TypeError, ValueError) as exc:
            raise _error(LocationErrorKind.POSITION_UNAVAILABLE) from exc
        return LocationFix(
            coordinates=coordinates,
            accuracy=radius,
            captured_at=datetime.now(tz=UTC),
        )

    async def close(self) -> None:
        """Close the underlying HTTP session."""
        await self.http_client.aclose()


def _error(kind: LocationErrorKind) -> LocationError:
    return LocationError(kind, error_message(kind, mobile=False))
