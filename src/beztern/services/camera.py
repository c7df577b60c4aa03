"""Camera acquisition state machine for photo capture."""

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from types import TracebackType
from typing import Protocol

from PIL import Image

from beztern.domain.capture import (
    CapturedPhoto,
    CaptureState,
    FacingMode,
    PhotoMetadata,
    StreamConstraints,
)
from beztern.domain.errors import CameraError
from beztern.domain.location import Coordinates
from beztern.services.exports import photo_metadata_csv
from beztern.services.images import compress_jpeg, encode_jpeg, to_data_url

logger = logging.getLogger(__name__)

ACCESS_DENIED_MESSAGE = (
    "Camera access denied or not available. "
    "Please check permissions and ensure you're using HTTPS."
)
INSECURE_CONTEXT_MESSAGE = "Camera requires HTTPS for security."
START_VIBRATION = [50]
CAPTURE_VIBRATION = [100, 50, 100]


class MediaTrack(Protocol):
    """A single track of a live media stream."""

    def stop(self) -> None:
        """Release the underlying device."""


class MediaStream(Protocol):
    """A live camera stream handed out by the platform."""

    @property
    def tracks(self) -> list[MediaTrack]:
        """Return all tracks of the stream."""

    async def grab_frame(self) -> Image.Image:
        """Return the current video frame at native resolution."""


class MediaDevices(Protocol):
    """Platform entry point for camera streams."""

    async def get_user_media(self, constraints: StreamConstraints) -> MediaStream:
        """Request a stream; raise when denied or unavailable."""


class PreferenceStore(Protocol):
    """Local persistent storage for the last used facing mode."""

    def load_facing_mode(self) -> FacingMode | None:
        """Return the stored facing mode, if any."""

    def save_facing_mode(self, facing_mode: FacingMode) -> None:
        """Persist the facing mode for the next session."""


class Haptics(Protocol):
    """Vibration support where the platform has it."""

    def vibrate(self, pattern: list[int]) -> bool:
        """Vibrate with the given on/off pattern in milliseconds."""


class LocationSource(Protocol):
    """Anything that can resolve current coordinates without raising."""

    async def fetch(self) -> Coordinates | None:
        """Return coordinates or ``None``."""


def _no_orientation() -> int:
    return 0


@dataclass
class CaptureSession:
    """Owns at most one camera stream from start to teardown.

    idle -> requesting -> streaming -> captured, with error reachable from
    requesting and streaming. Every path that leaves ``streaming`` stops
    all tracks, and ``close`` releases whatever is still held. A stream that
    arrives after ``stop``/``close`` or after a newer request is stopped on
    arrival instead of being kept.
    """

    devices: MediaDevices
    preferences: PreferenceStore
    mobile: bool = False
    secure_context: bool = True
    haptics: Haptics | None = None
    location: LocationSource | None = None
    orientation: Callable[[], int] = _no_orientation
    state: CaptureState = field(default=CaptureState.IDLE, init=False)
    facing_mode: FacingMode = field(default=FacingMode.ENVIRONMENT, init=False)
    captured: CapturedPhoto | None = field(default=None, init=False)
    error_message: str | None = field(default=None, init=False)
    last_coordinates: Coordinates | None = field(default=None, init=False)
    metadata_log: list[PhotoMetadata] = field(default_factory=list, init=False)
    _stream: MediaStream | None = field(default=None, init=False, repr=False)
    _location_task: asyncio.Task | None = field(default=None, init=False, repr=False)
    _busy: bool = field(default=False, init=False, repr=False)
    _generation: int = field(default=0, init=False, repr=False)

    def __post_init__(self) -> None:
        try:
            stored = self.preferences.load_facing_mode()
        except (OSError, ValueError):
            logger.exception("Failed to read camera preferences")
            stored = None
        if stored is not None:
            self.facing_mode = stored

    @property
    def active_stream(self) -> MediaStream | None:
        return self._stream

    async def start(self) -> None:
        """Request a stream for the current facing mode."""
        if self.state is CaptureState.STREAMING or self._busy:
            return
        if self.state is CaptureState.CAPTURED:
            raise CameraError("Retake or keep the current photo first.")
        if not self.secure_context:
            self._fail(INSECURE_CONTEXT_MESSAGE)
            raise CameraError(INSECURE_CONTEXT_MESSAGE)
        self._request_location()
        self.state = CaptureState.REQUESTING
        self._busy = True
        try:
            acquired = await self._acquire(self.facing_mode)
        except CameraError as exc:
            self._fail(exc.message)
            raise
        finally:
            self._busy = False
        if not acquired:
            return
        self.state = CaptureState.STREAMING
        self.error_message = None
        self._vibrate(START_VIBRATION)
        logger.info("Camera started", extra={"facing_mode": self.facing_mode.value})

    async def switch_facing(self) -> None:
        """Flip between front and rear sensors, remembering the choice."""
        if self._busy:
            return
        if self.state is CaptureState.CAPTURED:
            raise CameraError("Retake or keep the current photo first.")
        previous = self.facing_mode
        target = previous.flipped()
        self._busy = True
        self.state = CaptureState.REQUESTING
        try:
            acquired = await self._acquire(target)
        except CameraError:
            logger.warning(
                "Camera switch failed, restoring previous sensor",
                extra={"facing_mode": previous.value},
            )
            try:
                restored = await self._acquire(previous)
            except CameraError as exc:
                self._fail(exc.message)
            else:
                if restored:
                    self.state = CaptureState.STREAMING
            raise CameraError("Failed to switch camera") from None
        finally:
            self._busy = False
        if not acquired:
            return
        self.facing_mode = target
        self.state = CaptureState.STREAMING
        self.error_message = None
        try:
            self.preferences.save_facing_mode(target)
        except OSError:
            logger.exception("Failed to persist camera preferences")
        logger.info("Camera switched", extra={"facing_mode": target.value})

    async def capture(self) -> CapturedPhoto:
        """Encode the current frame, attach metadata and release the stream."""
        stream = self._stream
        if self.state is not CaptureState.STREAMING or stream is None:
            raise CameraError("Camera is not running.")
        if self._busy:
            raise CameraError("Capture already in progress.")
        self._busy = True
        generation = self._generation
        try:
            frame = await stream.grab_frame()
            original = await asyncio.to_thread(encode_jpeg, frame)
            compressed = await asyncio.to_thread(compress_jpeg, original)
        except Exception as exc:
            logger.exception("Failed to capture photo")
            self._fail("Failed to capture photo")
            raise CameraError("Failed to capture photo") from exc
        finally:
            self._busy = False
        if generation != self._generation:
            raise CameraError("Camera is not running.")

        now = datetime.now(tz=UTC)
        width, height = frame.size
        metadata = PhotoMetadata(
            timestamp=now.isoformat(),
            camera_type=self.facing_mode,
            orientation=self.orientation(),
            resolution=f"{width}x{height}",
            file_path=f"photo_{int(now.timestamp() * 1000)}.jpg",
            original_size=len(original),
            compressed_size=len(compressed),
            coordinates=self.last_coordinates,
        )
        photo = CapturedPhoto(
            data_url=to_data_url(compressed, "image/jpeg"), metadata=metadata
        )
        self._vibrate(CAPTURE_VIBRATION)
        self.metadata_log.append(metadata)
        self.captured = photo
        self._release()
        self.state = CaptureState.CAPTURED
        logger.info(
            "Photo captured",
            extra={"resolution": metadata.resolution, "bytes": len(compressed)},
        )
        return photo

    def retake(self) -> None:
        """Discard the captured photo and its metadata."""
        if self.state is not CaptureState.CAPTURED:
            return
        if self.captured is not None and self.captured.metadata in self.metadata_log:
            self.metadata_log.remove(self.captured.metadata)
        self.captured = None
        self.state = CaptureState.IDLE

    def stop(self) -> None:
        """Turn the camera off without capturing."""
        self._generation += 1
        self._release()
        if self.state is not CaptureState.CAPTURED:
            self.state = CaptureState.IDLE

    def close(self) -> None:
        """Teardown: release every held resource, including pending requests."""
        self._generation += 1
        self._release()
        if self._location_task is not None and not self._location_task.done():
            self._location_task.cancel()
        self._location_task = None
        self.state = CaptureState.IDLE

    def export_metadata_csv(self) -> str:
        return photo_metadata_csv(self.metadata_log)

    async def __aenter__(self) -> "CaptureSession":
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        traceback: TracebackType | None,
    ) -> None:
        self.close()

    async def _acquire(self, facing_mode: FacingMode) -> bool:
        """Open a stream; False when the request was superseded while pending."""
        self._release()
        self._generation += 1
        generation = self._generation
        constraints = StreamConstraints.for_device(facing_mode, self.mobile)
        try:
            stream = await self.devices.get_user_media(constraints)
        except Exception as exc:
            logger.warning(
                "Camera request failed",
                extra={"facing_mode": facing_mode.value, "error": str(exc)},
            )
            if generation != self._generation:
                return False
            if not self.mobile:
                raise CameraError(ACCESS_DENIED_MESSAGE) from exc
        else:
            return self._adopt(stream, generation)
        try:
            stream = await self.devices.get_user_media(
                StreamConstraints.minimal(facing_mode)
            )
        except Exception as exc:
            logger.warning("Fallback camera request failed", extra={"error": str(exc)})
            if generation != self._generation:
                return False
            raise CameraError(ACCESS_DENIED_MESSAGE) from exc
        return self._adopt(stream, generation)

    def _adopt(self, stream: MediaStream, generation: int) -> bool:
        if generation != self._generation:
            for track in stream.tracks:
                track.stop()
            logger.info("Discarded camera stream opened after teardown")
            return False
        self._stream = stream
        return True

    def _release(self) -> None:
        stream, self._stream = self._stream, None
        if stream is None:
            return
        for track in stream.tracks:
            track.stop()

    def _fail(self, message: str) -> None:
        self._release()
        self.state = CaptureState.ERROR
        self.error_message = message

    def _request_location(self) -> None:
        if self.location is None or self._location_task is not None:
            return
        self._location_task = asyncio.get_running_loop().create_task(
            self._resolve_location()
        )

    async def _resolve_location(self) -> None:
        try:
            coordinates = await self.location.fetch()
        except Exception:
            logger.exception("Best-effort location lookup failed")
            return
        if coordinates is not None:
            self.last_coordinates = coordinates

    def _vibrate(self, pattern: list[int]) -> None:
        if self.haptics is None:
            return
        try:
            self.haptics.vibrate(pattern)
        except Exception:
            logger.debug("Haptic feedback unavailable", exc_info=True)
