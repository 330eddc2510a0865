import asyncio
import os
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, List, Optional

from loguru import logger

from mdpaste.domain.image import (
    SUPPORTED_EXTENSIONS,
    ImageRecord,
    LoadedImage,
    extension_for_mime_type,
    mime_type_for_extension,
    normalize_mime_type,
)
from mdpaste.errors import StorageReadError, StorageWriteError
from mdpaste.ids import is_valid_id, new_id
from mdpaste.image_store.base import ImageStore, check_size


class FileImageStore(ImageStore):
    """Image store that keeps each image as ``{id}{extension}`` in a directory.

    The mime type is derived from the file extension alone, there are no
    metadata files next to the images.
    """

    def __init__(
        self,
        directory: str | Path,
        max_size: int | None = None,
        id_factory: Callable[[], str] = new_id,
    ) -> None:
        """Initialize FileImageStore.

        Args:
            directory: Directory holding the images. Created on the first save.
            max_size: Optional size cap in bytes for saved images.
            id_factory: Function generating new image IDs.
        """
        self._directory = Path(directory)
        self._max_size = max_size
        self._new_id = id_factory

    @property
    def directory(self) -> Path:
        return self._directory

    def path_for(self, image_id: str) -> Optional[Path]:
        """Get the file holding an image, or None if there is no such image."""
        if not is_valid_id(image_id):
            return None
        if not self._directory.is_dir():
            return None
        # Extensions match case-insensitively, as in listing
        for candidate in sorted(self._directory.glob(f"{image_id}.*")):
            if (
                candidate.stem == image_id
                and candidate.suffix.lower() in SUPPORTED_EXTENSIONS
                and candidate.is_file()
            ):
                return candidate
        return None

    def _write_new(self, data: bytes, extension: str) -> tuple[str, Path]:
        """Write the data under a fresh ID. An existing image is never overwritten."""
        self._directory.mkdir(parents=True, exist_ok=True)
        while True:
            image_id = self._new_id()
            if self.path_for(image_id) is not None:
                logger.debug(f"Image ID {image_id} is taken, generating another")
                continue
            path = self._directory / f"{image_id}{extension}"
            tmp_path = path.with_name(f".{path.name}.tmp")
            try:
                with open(tmp_path, "wb") as f:
                    f.write(data)
                # Fails instead of replacing when the name was taken in between
                os.link(tmp_path, path)
            except FileExistsError:
                continue
            finally:
                tmp_path.unlink(missing_ok=True)
            return image_id, path

    async def save(self, data: bytes, mime_type: str | None) -> str:
        """Write the image to a new file and return its ID."""
        check_size(data, self._max_size)
        mime_type = normalize_mime_type(mime_type)

        extension = extension_for_mime_type(mime_type)
        try:
            image_id, path = await asyncio.to_thread(self._write_new, data, extension)
        except OSError as e:
            logger.error(f"Failed to write image to {self._directory}: {e}")
            raise StorageWriteError(f"Could not write image to {self._directory}: {e}") from e

        logger.info(f"Saved image {image_id} ({mime_type}, {len(data)} bytes) to {path}")
        return image_id

    async def load(self, image_id: str) -> Optional[LoadedImage]:
        """Read an image file. Returns None if there is no file for the ID."""
        path = self.path_for(image_id)
        if path is None:
            logger.debug(f"Image {image_id} not found in {self._directory}")
            return None

        try:
            data = await asyncio.to_thread(path.read_bytes)
        except FileNotFoundError:
            # Deleted between lookup and read
            return None
        except OSError as e:
            raise StorageReadError(f"Could not read image {image_id}: {e}") from e

        return LoadedImage(data=data, mime_type=mime_type_for_extension(path.suffix))

    async def delete(self, image_id: str) -> bool:
        """Delete an image file. Returns False if there is no file for the ID."""
        path = self.path_for(image_id)
        if path is None:
            return False

        try:
            await asyncio.to_thread(path.unlink)
        except FileNotFoundError:
            return False
        except OSError as e:
            raise StorageWriteError(f"Could not delete image {image_id}: {e}") from e

        logger.info(f"Deleted image {image_id}")
        return True

    def _scan(self) -> List[ImageRecord]:
        if not self._directory.is_dir():
            return []

        records = []
        for path in self._directory.iterdir():
            extension = path.suffix.lower()
            if extension not in SUPPORTED_EXTENSIONS or not path.is_file():
                continue
            if not is_valid_id(path.stem):
                continue
            try:
                stats = path.stat()
            except FileNotFoundError:
                continue
            created = getattr(stats, "st_birthtime", stats.st_mtime)
            records.append(
                ImageRecord(
                    id=path.stem,
                    mime_type=mime_type_for_extension(extension),
                    size=stats.st_size,
                    created_at=datetime.fromtimestamp(created, tz=timezone.utc),
                )
            )
        return sorted(records, key=lambda record: (record.created_at, record.id))

    async def list_images(self) -> List[ImageRecord]:
        """List all images in the directory, oldest first."""
        try:
            return await asyncio.to_thread(self._scan)
        except OSError as e:
            raise StorageReadError(f"Could not list images in {self._directory}: {e}") from e
