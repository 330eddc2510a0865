"""Image format detection for pasted bytes."""

import io

from loguru import logger
from PIL import Image, UnidentifiedImageError

from mdpaste.domain.image import DEFAULT_MIME_TYPE, is_supported_mime_type, normalize_mime_type

_SVG_SNIFF_BYTES = 1024


def sniff_mime_type(data: bytes) -> str | None:
    """Detect a supported image format from the leading bytes of a payload.

    Returns None if the payload is not recognizably one of the supported formats.
    """
    if data.startswith(b"\x89PNG\r\n\x1a\n"):
        return "image/png"
    if data.startswith(b"\xff\xd8\xff"):
        return "image/jpeg"
    if data.startswith((b"GIF87a", b"GIF89a")):
        return "image/gif"
    if data[:4] == b"RIFF" and data[8:12] == b"WEBP":
        return "image/webp"
    if data.startswith(b"BM"):
        return "image/bmp"

    head = data[:_SVG_SNIFF_BYTES].lstrip(b"\xef\xbb\xbf \t\r\n").lower()
    if head.startswith(b"<svg") or (head.startswith(b"<?xml") and b"<svg" in head):
        return "image/svg+xml"
    return None


def convert_to_png(data: bytes) -> bytes | None:
    """Re-encode any image Pillow can decode as PNG. Returns None if it can't."""
    try:
        with io.BytesIO(data) as buffer:
            img = Image.open(buffer)
            img.load()
            if img.mode not in ("RGB", "RGBA", "L", "LA", "P"):
                img = img.convert("RGBA")
            out_buffer = io.BytesIO()
            img.save(out_buffer, format="PNG")
            return out_buffer.getvalue()
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError, ValueError) as e:
        logger.debug(f"Could not convert pasted bytes to PNG: {e}")
        return None


def prepare_image(data: bytes, mime_type: str | None = None) -> tuple[bytes, str]:
    """Pick the bytes and mime type to store for a pasted image.

    Order of precedence:
    1. A supported mime type hint is trusted as is
    2. The format sniffed from the leading bytes
    3. Conversion to PNG for other formats Pillow can decode (TIFF, DIB, ...)
    4. Otherwise the bytes are stored unchanged and labelled PNG
    """
    if is_supported_mime_type(mime_type):
        return data, normalize_mime_type(mime_type)

    sniffed = sniff_mime_type(data)
    if sniffed is not None:
        return data, sniffed

    converted = convert_to_png(data)
    if converted is not None:
        logger.info(f"Converted pasted image ({mime_type or 'unknown format'}) to PNG")
        return converted, DEFAULT_MIME_TYPE

    logger.warning(f"Unknown pasted image format ({mime_type or 'no hint'}), storing as PNG")
    return data, DEFAULT_MIME_TYPE
