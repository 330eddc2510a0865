"""Errors raised by image stores."""


class ImageStoreError(Exception):
    """Base class for image store failures."""


class SizeLimitExceeded(ImageStoreError):
    """Raised by save() when the payload is larger than the store's size cap."""

    def __init__(self, size: int, limit: int) -> None:
        self.size = size
        self.limit = limit
        super().__init__(f"Image of {size} bytes exceeds the limit of {limit} bytes")


class StorageWriteError(ImageStoreError):
    """Raised when the storage medium rejects a write (disk full, quota exceeded)."""


class StorageReadError(ImageStoreError):
    """Raised when the storage medium fails while reading an existing record."""
