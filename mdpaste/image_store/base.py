from typing import List, Optional, Protocol

from mdpaste.domain.image import ImageRecord, LoadedImage
from mdpaste.errors import SizeLimitExceeded


class ImageStore(Protocol):
    """Protocol for image storage backends.

    Every backend offers the same four operations, so callers never need to
    know which medium holds the bytes.
    """

    async def save(self, data: bytes, mime_type: str | None) -> str:
        """Store a new image and return its ID.

        Raises SizeLimitExceeded before writing anything if the payload is over
        the store's size cap, and StorageWriteError if the medium fails.
        """
        ...

    async def load(self, image_id: str) -> Optional[LoadedImage]:
        """Load an image by its ID. Returns None if no such image exists."""
        ...

    async def delete(self, image_id: str) -> bool:
        """Delete an image. Returns False if no such image exists."""
        ...

    async def list_images(self) -> List[ImageRecord]:
        """List metadata for all stored images, oldest first."""
        ...


def check_size(data: bytes, max_size: int | None) -> None:
    """Raise SizeLimitExceeded if a payload is larger than ``max_size``."""
    if max_size is not None and len(data) > max_size:
        raise SizeLimitExceeded(size=len(data), limit=max_size)
