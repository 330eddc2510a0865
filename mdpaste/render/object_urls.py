"""Short-lived URLs over in-memory image bytes."""

import base64
import uuid
from typing import Dict, Optional

from loguru import logger

from mdpaste.domain.image import LoadedImage

OBJECT_URL_PREFIX = "blob:mdpaste/"


class _Entry:
    def __init__(self, image: LoadedImage, refs: int) -> None:
        self.image = image
        self.refs = refs


class ObjectUrlRegistry:
    """Hands out reference-counted object URLs for loaded images.

    A URL stays live until every holder has released it. Each holder must
    release exactly once.
    """

    def __init__(self, prefix: str = OBJECT_URL_PREFIX) -> None:
        self._prefix = prefix
        self._entries: Dict[str, _Entry] = {}

    def create(self, data: bytes, mime_type: str, refs: int = 1) -> str:
        """Create a URL for the given bytes, held by ``refs`` holders."""
        if refs < 1:
            raise ValueError("An object URL needs at least one holder")
        url = f"{self._prefix}{uuid.uuid4()}"
        self._entries[url] = _Entry(LoadedImage(data=data, mime_type=mime_type), refs)
        logger.debug(f"Created object URL {url} ({len(data)} bytes, {refs} holders)")
        return url

    def retain(self, url: str) -> bool:
        """Add a holder to a live URL. Returns False if the URL is unknown or revoked."""
        entry = self._entries.get(url)
        if entry is None:
            logger.warning(f"Retain of unknown object URL {url}")
            return False
        entry.refs += 1
        return True

    def release(self, url: str) -> bool:
        """Drop one holder of a URL. Returns True when the URL was revoked."""
        entry = self._entries.get(url)
        if entry is None:
            logger.warning(f"Release of unknown object URL {url}")
            return False
        entry.refs -= 1
        if entry.refs > 0:
            return False
        del self._entries[url]
        logger.debug(f"Revoked object URL {url}")
        return True

    def get(self, url: str) -> Optional[LoadedImage]:
        """Get the image behind a live URL."""
        entry = self._entries.get(url)
        return entry.image if entry else None

    def to_data_url(self, url: str) -> Optional[str]:
        """Inline the image behind a live URL as a ``data:`` URL."""
        image = self.get(url)
        if image is None:
            return None
        return f"data:{image.mime_type};base64,{base64.b64encode(image.data).decode('ascii')}"

    def __contains__(self, url: object) -> bool:
        return url in self._entries

    def __len__(self) -> int:
        return len(self._entries)
