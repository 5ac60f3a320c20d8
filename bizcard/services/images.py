"""Upload pre-flight: type/size checks and downscaling with Pillow."""
from __future__ import annotations

import io
from dataclasses import dataclass

from PIL import Image, ImageOps, UnidentifiedImageError

from bizcard.domain.errors import ValidationFailedError

MAX_UPLOAD_BYTES = 5 * 1024 * 1024
MAX_BATCH_FILES = 10
MAX_IMAGE_SIZE = (1600, 1600)

JPEG_MAGIC = b"\xFF\xD8\xFF"
PNG_MAGIC = b"\x89PNG\r\n\x1a\n"

EXTENSIONS = {
    "image/jpeg": "jpg",
    "image/png": "png",
    "image/gif": "gif",
    "image/webp": "webp",
}
_TYPE_ALIASES = {"image/jpg": "image/jpeg", "image/pjpeg": "image/jpeg"}


@dataclass(frozen=True)
class UploadedFile:
    filename: str
    content_type: str
    data: bytes


def _has_valid_signature(data: bytes, content_type: str) -> bool:
    if content_type == "image/jpeg":
        return data.startswith(JPEG_MAGIC)
    if content_type == "image/png":
        return data.startswith(PNG_MAGIC)
    if content_type == "image/gif":
        return data[:6] in (b"GIF87a", b"GIF89a")
    if content_type == "image/webp":
        return data[:4] == b"RIFF" and data[8:12] == b"WEBP"
    return False


def _downscale(data: bytes, fmt: str) -> bytes:
    try:
        image = Image.open(io.BytesIO(data))
        image.load()
    except (UnidentifiedImageError, OSError) as exc:
        raise ValueError("unreadable image") from exc
    image = ImageOps.exif_transpose(image)
    if image.width <= MAX_IMAGE_SIZE[0] and image.height <= MAX_IMAGE_SIZE[1]:
        return data
    image.thumbnail(MAX_IMAGE_SIZE, Image.LANCZOS)
    buffer = io.BytesIO()
    if fmt == "JPEG":
        image.convert("RGB").save(buffer, format="JPEG", quality=85, optimize=True)
    else:
        image.save(buffer, format="PNG", optimize=True)
    return buffer.getvalue()


def prepare_image(upload: UploadedFile, field_name: str) -> tuple[bytes, str, str]:
    """
    Check one upload and return (data, content_type, extension).

    Raises ValidationFailedError keyed by ``field_name`` when the file is
    empty, too large, of an unsupported type or unreadable.
    """
    content_type = (upload.content_type or "").lower()
    content_type = _TYPE_ALIASES.get(content_type, content_type)
    name = upload.filename or "file"
    if not upload.data:
        raise ValidationFailedError({field_name: f"{name} is empty"})
    if len(upload.data) > MAX_UPLOAD_BYTES:
        raise ValidationFailedError({field_name: f"{name} is larger than 5 MB"})
    if content_type not in EXTENSIONS or not _has_valid_signature(upload.data, content_type):
        raise ValidationFailedError({field_name: f"{name} is not a JPEG, PNG, GIF or WebP image"})
    data = upload.data
    if content_type in ("image/jpeg", "image/png"):
        try:
            data = _downscale(upload.data, "JPEG" if content_type == "image/jpeg" else "PNG")
        except ValueError:
            raise ValidationFailedError({field_name: f"{name} could not be read as an image"})
    return data, content_type, EXTENSIONS[content_type]
