"""Helpers for image payloads passed around as base64 or data URLs."""

import base64
import binascii
import re

_DATA_URL_PREFIX = re.compile(r"^data:(?P<mime>[\w.+-]+/[\w.+-]+);base64,")

_EXTENSIONS = {
    "image/jpeg": "jpg",
    "image/png": "png",
    "image/webp": "webp",
    "image/gif": "gif",
    "image/heic": "heic",
}


def to_data_url(image_bytes: bytes, mime_type: str | None = None) -> str:
    """Convert bytes to a base64 data URL for image input."""
    resolved = mime_type or detect_mime_type(image_bytes)
    encoded = base64.b64encode(image_bytes).decode("utf-8")
    return f"data:{resolved};base64,{encoded}"


def decode_base64_image(value: str) -> bytes:
    """Decode a bare base64 string or a base64 data URL.

    Raises:
        ValueError: If the payload is empty or not valid base64.
    """
    encoded = _DATA_URL_PREFIX.sub("", value.strip(), count=1)
    if not encoded:
        raise ValueError("Image data is empty")
    try:
        return base64.b64decode(encoded, validate=True)
    except binascii.Error as exc:
        raise ValueError("Image data is not valid base64") from exc


def to_image_reference(image: str) -> str:
    """Return a URL the model can fetch: http(s) and data URLs pass through."""
    cleaned = image.strip()
    if cleaned.startswith(("http://", "https://", "data:")):
        return cleaned
    return to_data_url(decode_base64_image(cleaned))


def detect_mime_type(image_bytes: bytes) -> str:
    """Infer a basic image MIME type from file signatures."""
    if image_bytes.startswith(b"\xff\xd8\xff"):
        return "image/jpeg"
    if image_bytes.startswith(b"\x89PNG\r\n\x1a\n"):
        return "image/png"
    if image_bytes[:4] == b"RIFF" and image_bytes[8:12] == b"WEBP":
        return "image/webp"
    if image_bytes.startswith((b"GIF87a", b"GIF89a")):
        return "image/gif"
    if is_heic(image_bytes):
        return "image/heic"
    return "image/jpeg"


def is_heic(image_bytes: bytes) -> bool:
    """Return true for HEIC/HEIF containers."""
    return image_bytes[4:8] == b"ftyp" and image_bytes[8:12] in {
        b"heic",
        b"heix",
        b"hevc",
        b"heim",
        b"heis",
        b"mif1",
        b"msf1",
    }


def extension_for(mime_type: str) -> str:
    """Return the file extension used when storing an image."""
    return _EXTENSIONS.get(mime_type, "png")
