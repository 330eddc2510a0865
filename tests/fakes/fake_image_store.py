from datetime import datetime, timezone
from typing import Dict, List, Optional, Set

from mdpaste.domain.image import ImageRecord, LoadedImage, normalize_mime_type
from mdpaste.errors import StorageReadError, StorageWriteError
from mdpaste.image_store.base import ImageStore, check_size


class FakeImageStore(ImageStore):
    """Fake image store for testing that records calls."""

    def __init__(
        self,
        images: Dict[str, LoadedImage] | None = None,
        max_size: int | None = None,
    ) -> None:
        self._images = images or {}
        self._max_size = max_size
        self._counter = 0
        self.load_calls: List[str] = []
        self.unreadable_ids: Set[str] = set()
        self.fail_writes = False

    async def save(self, data: bytes, mime_type: str | None) -> str:
        check_size(data, self._max_size)
        if self.fail_writes:
            raise StorageWriteError("disk full")
        self._counter += 1
        image_id = f"img{self._counter}"
        self._images[image_id] = LoadedImage(data=data, mime_type=normalize_mime_type(mime_type))
        return image_id

    async def load(self, image_id: str) -> Optional[LoadedImage]:
        self.load_calls.append(image_id)
        if image_id in self.unreadable_ids:
            raise StorageReadError(f"cannot read {image_id}")
        return self._images.get(image_id)

    async def delete(self, image_id: str) -> bool:
        return self._images.pop(image_id, None) is not None

    async def list_images(self) -> List[ImageRecord]:
        return [
            ImageRecord(
                id=image_id,
                mime_type=image.mime_type,
                size=len(image.data),
                created_at=datetime(2024, 1, 1, tzinfo=timezone.utc),
            )
            for image_id, image in sorted(self._images.items())
        ]
