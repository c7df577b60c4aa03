"""JPEG encoding, compression and data URL helpers built on Pillow."""

import base64
import binascii
import io

from PIL import Image

JPEG_QUALITY = 90
COMPRESSED_QUALITY = 85
MIN_QUALITY = 40
MAX_DIMENSION = 2048
MAX_BYTES = 2 * 1024 * 1024
IMAGE_EXTENSIONS = {"image/jpeg": "jpg", "image/png": "png", "image/webp": "webp"}


def encode_jpeg(image: Image.Image, quality: int = JPEG_QUALITY) -> bytes:
    """Encode a frame as JPEG at its native pixel dimensions."""
    if image.mode not in {"RGB", "L"}:
        image = image.convert("RGB")
    buffer = io.BytesIO()
    image.save(buffer, format="JPEG", quality=quality)
    return buffer.getvalue()


def compress_jpeg(
    data: bytes,
    max_dimension: int = MAX_DIMENSION,
    max_bytes: int = MAX_BYTES,
    quality: int = COMPRESSED_QUALITY,
) -> bytes:
    """Downscale and re-encode ``data`` when it exceeds the size limits.

    Returns the input unchanged when it already fits.
    """
    with Image.open(io.BytesIO(data)) as source:
        image = source.copy()
    oversized = max(image.size) > max_dimension
    if not oversized and len(data) <= max_bytes:
        return data
    if oversized:
        image.thumbnail((max_dimension, max_dimension))
    compressed = encode_jpeg(image, quality)
    while len(compressed) > max_bytes and quality > MIN_QUALITY:
        quality -= 10
        compressed = encode_jpeg(image, quality)
    return compressed


def to_data_url(data: bytes, mime_type: str | None = None) -> str:
    """Convert bytes to a base64 data URL."""
    resolved = mime_type or detect_mime_type(data)
    encoded = base64.b64encode(data).decode("utf-8")
    return f"data:{resolved};base64,{encoded}"


def is_image_data_url(value: str | None) -> bool:
    return bool(value) and value.startswith("data:image/")


def decode_data_url(data_url: str) -> tuple[str, bytes]:
    """Split a base64 data URL into its MIME type and raw bytes."""
    header, _, payload = data_url.partition(",")
    if not header.startswith("data:") or ";base64" not in header or not payload:
        raise ValueError("Not a base64 data URL")
    mime_type = header[len("data:") :].split(";", maxsplit=1)[0] or "image/jpeg"
    try:
        return mime_type, base64.b64decode(payload, validate=True)
    except binascii.Error as exc:
        raise ValueError("Invalid base64 payload") from exc


def extension_for(mime_type: str) -> str:
    return IMAGE_EXTENSIONS.get(mime_type, "jpg")


def detect_mime_type(data: bytes) -> str:
    """Infer a basic image MIME type from file signatures."""
    if data.startswith(b"\xff\xd8\xff"):
        return "image/jpeg"
    if data.startswith(b"\x89PNG\r\n\x1a\n"):
        return "image/png"
    if data[:4] == b"RIFF" and data[8:12] == b"WEBP":
        return "image/webp"
    return "image/jpeg"
