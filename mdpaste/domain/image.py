"""Image domain models."""

from datetime import datetime

from pydantic import BaseModel

DEFAULT_MIME_TYPE = "image/png"

EXTENSION_TO_MIME_TYPE = {
    ".png": "image/png",
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".gif": "image/gif",
    ".webp": "image/webp",
    ".svg": "image/svg+xml",
    ".bmp": "image/bmp",
}

MIME_TYPE_TO_EXTENSION = {
    "image/png": ".png",
    "image/jpeg": ".jpg",
    "image/gif": ".gif",
    "image/webp": ".webp",
    "image/svg+xml": ".svg",
    "image/bmp": ".bmp",
}

SUPPORTED_EXTENSIONS = tuple(EXTENSION_TO_MIME_TYPE)
SUPPORTED_MIME_TYPES = tuple(MIME_TYPE_TO_EXTENSION)

_MIME_TYPE_ALIASES = {
    "image/jpg": "image/jpeg",
    "image/svg": "image/svg+xml",
    "image/x-ms-bmp": "image/bmp",
}


def _canonical_mime_type(mime_type: str | None) -> str:
    if not mime_type:
        return ""
    key = mime_type.split(";", 1)[0].strip().lower()
    return _MIME_TYPE_ALIASES.get(key, key)


def is_supported_mime_type(mime_type: str | None) -> bool:
    """Check whether a mime type (or one of its aliases) is a supported image type."""
    return _canonical_mime_type(mime_type) in MIME_TYPE_TO_EXTENSION


def normalize_mime_type(mime_type: str | None) -> str:
    """Map a mime type onto the supported set, defaulting to PNG."""
    canonical = _canonical_mime_type(mime_type)
    if canonical not in MIME_TYPE_TO_EXTENSION:
        return DEFAULT_MIME_TYPE
    return canonical


def mime_type_for_extension(extension: str) -> str:
    """Get the mime type for a file extension such as ``.png``. Unknown extensions map to PNG."""
    return EXTENSION_TO_MIME_TYPE.get(extension.lower(), DEFAULT_MIME_TYPE)


def extension_for_mime_type(mime_type: str | None) -> str:
    """Get the canonical file extension for a mime type. Unknown types map to ``.png``."""
    return MIME_TYPE_TO_EXTENSION[normalize_mime_type(mime_type)]


class ImageRecord(BaseModel):
    """Metadata for one stored image.

    Attributes:
        id: Store-issued ID of the image.
        mime_type: One of the supported image mime types.
        size: Size of the stored payload in bytes.
        created_at: When the image was stored (UTC).
    """

    id: str
    mime_type: str
    size: int
    created_at: datetime


class LoadedImage(BaseModel):
    """Payload and mime type of an image loaded from a store."""

    data: bytes
    mime_type: str
