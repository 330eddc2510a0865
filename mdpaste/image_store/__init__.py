from loguru import logger

from mdpaste.config import Settings
from mdpaste.image_store.base import ImageStore
from mdpaste.image_store.blob_store import MAX_BLOB_IMAGE_BYTES, BlobImageStore
from mdpaste.image_store.file_store import FileImageStore

__all__ = [
    "BlobImageStore",
    "FileImageStore",
    "ImageStore",
    "MAX_BLOB_IMAGE_BYTES",
    "create_image_store",
]


def create_image_store(settings: Settings) -> ImageStore:
    """Create the image store selected by the settings.

    Called once at startup, the result is passed to everything that stores or
    resolves images.
    """
    if settings.storage_backend == "blob":
        logger.info(f"Using blob image store at {settings.blob_store_path or '<memory>'}")
        return BlobImageStore(
            filepath=settings.blob_store_path,
            max_size=settings.blob_max_image_bytes,
            quota_bytes=settings.blob_quota_bytes,
        )

    logger.info(f"Using file image store in {settings.clipboard_images_dir}")
    return FileImageStore(
        directory=settings.clipboard_images_dir,
        max_size=settings.file_max_image_bytes,
    )
