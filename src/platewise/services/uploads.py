"""Client-side preparation of meal photos before upload."""

import io
import mimetypes
from dataclasses import dataclass
from pathlib import PurePath

from PIL import Image, UnidentifiedImageError
from pillow_heif import register_heif_opener

from platewise.domain.errors import InvalidRequestError
from platewise.services.images import is_heic, to_data_url

MAX_UPLOAD_BYTES = 10 * 1024 * 1024
HEIC_EXTENSIONS = {".heic", ".heif"}
HEIC_MIME_TYPES = {"image/heic", "image/heif"}


class UploadRejectedError(InvalidRequestError):
    """The selected file cannot be uploaded."""


@dataclass(frozen=True)
class PreparedImage:
    """Image ready to send to the meals endpoint."""

    content_type: str
    data: bytes
    data_url: str


def prepare_meal_image(
    data: bytes,
    filename: str | None = None,
    content_type: str | None = None,
    max_bytes: int = MAX_UPLOAD_BYTES,
) -> PreparedImage:
    """Validate a picked file and encode it for upload.

    HEIC/HEIF photos are converted to JPEG. Browsers often report an empty
    type for them, so the extension and file signature are checked too.
    """
    resolved_type = content_type or _guess_type(filename)
    heic = _is_heic_upload(data, filename, resolved_type)
    if not heic and not (resolved_type or "").startswith("image/"):
        raise UploadRejectedError(
            "Invalid file type", "Please upload an image file (JPEG, PNG, etc.)"
        )
    if len(data) > max_bytes:
        limit_mb = max_bytes // (1024 * 1024)
        raise UploadRejectedError(
            "File too large", f"Please upload an image smaller than {limit_mb}MB"
        )
    if not data:
        raise UploadRejectedError("Empty file", "The selected file has no content")

    if heic:
        data = convert_to_jpeg(data)
        resolved_type = "image/jpeg"
    final_type = resolved_type or "image/jpeg"
    return PreparedImage(
        content_type=final_type,
        data=data,
        data_url=to_data_url(data, final_type),
    )


def convert_to_jpeg(image_data: bytes, quality: int = 90) -> bytes:
    """Convert any Pillow-readable image, HEIC included, to JPEG."""
    register_heif_opener()
    try:
        with Image.open(io.BytesIO(image_data)) as image:
            rgb_image = image.convert("RGB")
    except (UnidentifiedImageError, OSError) as exc:
        raise UploadRejectedError(
            "Could not convert image", "The photo could not be read"
        ) from exc
    output = io.BytesIO()
    rgb_image.save(output, format="JPEG", quality=quality)
    return output.getvalue()


def _guess_type(filename: str | None) -> str | None:
    if not filename:
        return None
    guessed, _ = mimetypes.guess_type(filename)
    return guessed


def _is_heic_upload(
    data: bytes, filename: str | None, content_type: str | None
) -> bool:
    if content_type in HEIC_MIME_TYPES:
        return True
    if filename and PurePath(filename).suffix.lower() in HEIC_EXTENSIONS:
        return True
    return is_heic(data)
