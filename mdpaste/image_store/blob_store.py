import asyncio
import base64
import json
import os
from datetime import datetime, timezone
from pathlib import Path
from typing import Annotated, Callable, Dict, List, Optional

from loguru import logger
from pydantic import BaseModel, BeforeValidator, PlainSerializer, ValidationError

from mdpaste.domain.image import ImageRecord, LoadedImage, normalize_mime_type
from mdpaste.errors import StorageReadError, StorageWriteError
from mdpaste.ids import new_id
from mdpaste.image_store.base import ImageStore, check_size

MAX_BLOB_IMAGE_BYTES = 2 * 1024 * 1024


class StoredBlob(BaseModel):
    """One key/value entry of the blob store.

    Attributes:
        id: The key of the entry.
        mime_type: The MIME type of the image.
        size: Size of the content in bytes.
        created_at: When the entry was written (UTC).
        content: The image content, encoded as base64 when serialized.
    """

    id: str
    mime_type: str
    size: int
    created_at: datetime
    content: Annotated[
        bytes,
        BeforeValidator(lambda x: base64.b64decode(x) if isinstance(x, str) else x),
        PlainSerializer(lambda x: base64.b64encode(x).decode(), return_type=str),
    ]

    def to_record(self) -> ImageRecord:
        return ImageRecord(
            id=self.id, mime_type=self.mime_type, size=self.size, created_at=self.created_at
        )


class BlobImageStore(ImageStore):
    """Key/value image store with a hard size cap, persisted to a JSON file."""

    def __init__(
        self,
        filepath: str | Path | None = None,
        max_size: int | None = MAX_BLOB_IMAGE_BYTES,
        quota_bytes: int | None = None,
        id_factory: Callable[[], str] = new_id,
    ) -> None:
        """Initialize BlobImageStore.

        Args:
            filepath: Path to the store file. If provided and exists, will auto-load.
                     If provided and doesn't exist, it is created on the first write.
                     If not provided, the store lives in memory only.
            max_size: Size cap in bytes for a single image.
            quota_bytes: Optional cap on the total bytes held by the store.
            id_factory: Function generating new image IDs.
        """
        self._filepath = Path(filepath) if filepath else None
        self._max_size = max_size
        self._quota_bytes = quota_bytes
        self._new_id = id_factory
        self._lock = asyncio.Lock()

        if self._filepath and self._filepath.exists():
            try:
                with open(self._filepath, "r") as f:
                    data = json.load(f)
                self._blobs: Dict[str, StoredBlob] = {
                    blob_id: StoredBlob(**blob_data)
                    for blob_id, blob_data in data["images"].items()
                }
            except (OSError, ValueError, KeyError, ValidationError) as e:
                raise StorageReadError(f"Could not load blob store {self._filepath}: {e}") from e
        else:
            self._blobs = {}

    @property
    def used_bytes(self) -> int:
        return sum(blob.size for blob in self._blobs.values())

    def _write_file(self, path: Path, payload: dict) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = path.with_name(f".{path.name}.tmp")
        try:
            with open(tmp_path, "w") as f:
                json.dump(payload, f)
            os.replace(tmp_path, path)
        except OSError:
            tmp_path.unlink(missing_ok=True)
            raise

    async def _persist(self, blobs: Dict[str, StoredBlob]) -> None:
        if self._filepath is None:
            return
        payload = {
            "images": {blob_id: blob.model_dump(mode="json") for blob_id, blob in blobs.items()}
        }
        await asyncio.to_thread(self._write_file, self._filepath, payload)

    def _unused_id(self) -> str:
        blob_id = self._new_id()
        while blob_id in self._blobs:
            blob_id = self._new_id()
        return blob_id

    async def save(self, data: bytes, mime_type: str | None) -> str:
        """Store an image entry and return its key."""
        check_size(data, self._max_size)

        async with self._lock:
            if self._quota_bytes is not None and self.used_bytes + len(data) > self._quota_bytes:
                raise StorageWriteError(
                    f"Storage quota of {self._quota_bytes} bytes exceeded "
                    f"({self.used_bytes} used, {len(data)} requested)"
                )

            blob = StoredBlob(
                id=self._unused_id(),
                mime_type=normalize_mime_type(mime_type),
                size=len(data),
                created_at=datetime.now(timezone.utc),
                content=data,
            )
            try:
                await self._persist({**self._blobs, blob.id: blob})
            except OSError as e:
                logger.error(f"Failed to persist image {blob.id}: {e}")
                raise StorageWriteError(f"Could not write blob store {self._filepath}: {e}") from e
            self._blobs[blob.id] = blob

        logger.info(f"Saved image {blob.id} ({blob.mime_type}, {blob.size} bytes) to blob store")
        return blob.id

    async def load(self, image_id: str) -> Optional[LoadedImage]:
        """Get an image entry by its key. Returns None if there is no such entry."""
        blob = self._blobs.get(image_id)
        if blob is None:
            logger.debug(f"Image {image_id} not found in blob store")
            return None
        return LoadedImage(data=blob.content, mime_type=blob.mime_type)

    async def delete(self, image_id: str) -> bool:
        """Delete an image entry. Returns False if there is no such entry."""
        async with self._lock:
            if image_id not in self._blobs:
                return False
            remaining = {key: blob for key, blob in self._blobs.items() if key != image_id}
            try:
                await self._persist(remaining)
            except OSError as e:
                raise StorageWriteError(f"Could not write blob store {self._filepath}: {e}") from e
            self._blobs = remaining

        logger.info(f"Deleted image {image_id} from blob store")
        return True

    async def list_images(self) -> List[ImageRecord]:
        """List metadata of all entries, oldest first."""
        blobs = sorted(self._blobs.values(), key=lambda blob: (blob.created_at, blob.id))
        return [blob.to_record() for blob in blobs]
