"""Markdown references to pasted images.

A managed image is embedded in markdown as::

    ![pasted image](indexeddb://clipboard-images/<id>)
    ![pasted image](indexeddb://clipboard-images/<id> =<width>x<height>)

The scheme is the same whichever store holds the bytes. Changing it breaks
every previously pasted image, so it must stay stable.
"""

import re
from typing import List

from pydantic import BaseModel, ConfigDict, Field, PositiveInt

REFERENCE_SCHEME = "indexeddb"
REFERENCE_HOST = "clipboard-images"
REFERENCE_PREFIX = f"{REFERENCE_SCHEME}://{REFERENCE_HOST}/"

DEFAULT_ALT_TEXT = "pasted image"

_SRC_PATTERN = re.compile(
    rf"^\s*{re.escape(REFERENCE_PREFIX)}(?P<id>[A-Za-z0-9_-]+)(?:\s+(?P<suffix>.*?))?\s*$"
)
_SIZE_PATTERN = re.compile(r"^=(\d+)x(\d+)$")
_IMAGE_NODE_PATTERN = re.compile(
    r"!\[(?P<alt>[^\]]*)\]\("
    rf"(?P<src>{re.escape(REFERENCE_PREFIX)}[A-Za-z0-9_-]+(?:[ \t]+[^)\n]*)?)"
    r"\)"
)


class Reference(BaseModel):
    """Pointer from a markdown document to a stored image.

    Attributes:
        id: ID of the stored image.
        dimensions: Optional (width, height) display hint.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(pattern=r"^[A-Za-z0-9_-]+$")
    dimensions: tuple[PositiveInt, PositiveInt] | None = None


class ReferenceMatch(BaseModel):
    """A managed image node found in a markdown document."""

    alt: str
    reference: Reference
    start: int
    end: int


def _parse_dimensions(suffix: str | None) -> tuple[int, int] | None:
    if not suffix:
        return None
    match = _SIZE_PATTERN.match(suffix.strip())
    if match is None:
        return None
    width, height = int(match.group(1)), int(match.group(2))
    if width <= 0 or height <= 0:
        return None
    return width, height


def format_reference(reference: Reference) -> str:
    """Format a reference as an image ``src``, including the sizing suffix if any."""
    src = f"{REFERENCE_PREFIX}{reference.id}"
    if reference.dimensions is not None:
        width, height = reference.dimensions
        src += f" ={width}x{height}"
    return src


def parse_reference(src: str) -> Reference | None:
    """Parse an image ``src`` into a Reference.

    Returns None when the src is not a managed image reference. A malformed
    sizing suffix only drops the sizing hint, it never rejects the reference.
    """
    match = _SRC_PATTERN.match(src)
    if match is None:
        return None
    return Reference(id=match.group("id"), dimensions=_parse_dimensions(match.group("suffix")))


def is_reference(src: str) -> bool:
    """Check whether an image ``src`` points at a managed image."""
    return _SRC_PATTERN.match(src) is not None


def format_image_markdown(reference: Reference, alt_text: str = DEFAULT_ALT_TEXT) -> str:
    """Render a markdown image node for a reference."""
    return f"![{alt_text}]({format_reference(reference)})"


def find_references(content: str) -> List[ReferenceMatch]:
    """Find all managed image nodes in markdown content, in document order.

    Ordinary images (relative paths, http URLs, data URLs) are ignored.
    """
    matches = []
    for match in _IMAGE_NODE_PATTERN.finditer(content):
        reference = parse_reference(match.group("src"))
        if reference is None:
            continue
        matches.append(
            ReferenceMatch(
                alt=match.group("alt"),
                reference=reference,
                start=match.start(),
                end=match.end(),
            )
        )
    return matches
