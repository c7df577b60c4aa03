"""Upload captured photos to object storage."""

import logging
from pathlib import PurePosixPath
from typing import Protocol

from beztern.domain.errors import NotificationError
from beztern.services.images import (
    decode_data_url,
    detect_mime_type,
    extension_for,
    is_image_data_url,
)

logger = logging.getLogger(__name__)

UPLOAD_FAILED_MESSAGE = "Failed to upload image"


class PhotoStorage(Protocol):
    """Interface for a public object storage bucket."""

    def upload(
        self,
        bucket: str,
        path: str,
        data: bytes,
        content_type: str,
        upsert: bool = False,
    ) -> None:
        """Store ``data`` at ``path`` inside ``bucket``."""

    def public_url(self, bucket: str, path: str) -> str:
        """Return the public URL for a stored object."""


def store_photo(
    storage: PhotoStorage,
    bucket: str,
    path: str,
    photo: str,
) -> str:
    """Upload a data URL photo and return its public URL.

    The declared image type sets the content type and the file extension of
    ``path``. Values that are not image data URLs are assumed to already be
    hosted and are returned as-is.
    """
    if not is_image_data_url(photo):
        return photo
    try:
        mime_type, data = decode_data_url(photo)
        if mime_type == "image/jpeg":
            mime_type = detect_mime_type(data)
        path = str(PurePosixPath(path).with_suffix(f".{extension_for(mime_type)}"))
        storage.upload(bucket, path, data, mime_type)
        url = storage.public_url(bucket, path)
    except Exception as exc:
        logger.exception("Photo upload failed", extra={"bucket": bucket, "path": path})
        raise NotificationError(UPLOAD_FAILED_MESSAGE) from exc
    logger.info("Photo uploaded", extra={"bucket": bucket, "path": path})
    return url
