"""Domain models for camera capture."""

from dataclasses import dataclass
from enum import Enum

from beztern.domain.location import Coordinates


class FacingMode(str, Enum):
    """Physical camera sensor requested from the platform."""

    USER = "user"
    ENVIRONMENT = "environment"

    def flipped(self) -> "FacingMode":
        if self is FacingMode.USER:
            return FacingMode.ENVIRONMENT
        return FacingMode.USER

    @property
    def label(self) -> str:
        return "Front Camera" if self is FacingMode.USER else "Back Camera"


class CaptureState(str, Enum):
    """States of a capture session."""

    IDLE = "idle"
    REQUESTING = "requesting"
    STREAMING = "streaming"
    CAPTURED = "captured"
    ERROR = "error"


@dataclass(frozen=True)
class Range:
    """Resolution hint in the shape of a media track constraint."""

    ideal: int
    min: int | None = None
    max: int | None = None


@dataclass(frozen=True)
class StreamConstraints:
    """Video constraints sent with a camera stream request.

    ``width``/``height``/``aspect_ratio`` are ``None`` for the minimal
    fallback request that only names the facing mode.
    """

    facing_mode: FacingMode
    width: Range | None = None
    height: Range | None = None
    aspect_ratio: float | None = None
    exact_facing: bool = True

    @property
    def is_minimal(self) -> bool:
        return self.width is None and self.height is None

    @classmethod
    def for_device(cls, facing_mode: FacingMode, mobile: bool) -> "StreamConstraints":
        """Resolution hints tuned lower on mobile than on desktop."""
        if mobile:
            return cls(
                facing_mode=facing_mode,
                width=Range(ideal=720, max=1280),
                height=Range(ideal=480, max=720),
                aspect_ratio=4 / 3,
                exact_facing=False,
            )
        return cls(
            facing_mode=facing_mode,
            width=Range(ideal=1920, min=1280),
            height=Range(ideal=1080, min=720),
            aspect_ratio=16 / 9,
        )

    @classmethod
    def minimal(cls, facing_mode: FacingMode) -> "StreamConstraints":
        return cls(facing_mode=facing_mode)


@dataclass(frozen=True)
class PhotoMetadata:
    """Descriptive data attached to a captured still; never mutated."""

    timestamp: str
    camera_type: FacingMode
    orientation: int
    resolution: str
    file_path: str
    original_size: int
    compressed_size: int
    coordinates: Coordinates | None = None

    def as_dict(self) -> dict[str, object]:
        payload: dict[str, object] = {
            "timestamp": self.timestamp,
            "camera_type": self.camera_type.value,
            "orientation": self.orientation,
            "resolution": self.resolution,
            "file_path": self.file_path,
            "original_size": self.original_size,
            "compressed_size": self.compressed_size,
        }
        if self.coordinates is not None:
            payload["latitude"] = self.coordinates.latitude
            payload["longitude"] = self.coordinates.longitude
        return payload


@dataclass(frozen=True)
class CapturedPhoto:
    """Encoded still image handed back to the owning form."""

    data_url: str
    metadata: PhotoMetadata
