"""Turns pasted clipboard content into stored images and markdown references."""

import asyncio
from pathlib import Path
from typing import List, Optional, Protocol

from loguru import logger
from pydantic import BaseModel, PositiveInt

from mdpaste.domain.image import SUPPORTED_EXTENSIONS, mime_type_for_extension
from mdpaste.domain.reference import DEFAULT_ALT_TEXT, Reference, format_image_markdown
from mdpaste.errors import SizeLimitExceeded, StorageWriteError
from mdpaste.image_store.base import ImageStore
from mdpaste.paste.formats import prepare_image


class Editor(Protocol):
    """The markdown editor receiving pasted content."""

    def insert_text(self, text: str) -> None:
        """Insert text at the caret, replacing the selection if any."""
        ...


class Notifier(Protocol):
    """Shows failures to the user."""

    def notify_error(self, message: str) -> None:
        """Show an error message."""
        ...


class PasteEvent(BaseModel):
    """Content of a paste.

    Attributes:
        image_data: Raw image bytes from the clipboard, if any.
        mime_type: Format hint for ``image_data``.
        file_paths: Files copied in a file manager, if any.
        dimensions: Display size (width, height) declared by the source, if any.
        text: Plain text content, not handled here.
    """

    image_data: Optional[bytes] = None
    mime_type: Optional[str] = None
    file_paths: List[Path] = []
    dimensions: Optional[tuple[PositiveInt, PositiveInt]] = None
    text: Optional[str] = None


class PasteResult(BaseModel):
    """Outcome of handling a paste.

    Attributes:
        handled: False when the paste was not an image paste and the editor
            should run its default paste handling.
        inserted: References inserted into the editor.
        failed: Number of images that could not be stored.
    """

    handled: bool
    inserted: List[Reference] = []
    failed: int = 0


class _ImageSource(BaseModel):
    data: Optional[bytes] = None
    mime_type: Optional[str] = None
    path: Optional[Path] = None
    dimensions: Optional[tuple[int, int]] = None

    @property
    def label(self) -> str:
        return self.path.name if self.path else "clipboard image"


def filter_image_paths(paths: List[Path]) -> List[Path]:
    """Keep the paths that exist and have a supported image extension."""
    images = []
    for path in paths:
        if path.suffix.lower() not in SUPPORTED_EXTENSIONS:
            logger.debug(f"Skipping pasted file with unsupported extension: {path}")
            continue
        if not path.is_file():
            logger.debug(f"Skipping pasted file that does not exist: {path}")
            continue
        images.append(path)
    return images


class PasteCapturePipeline:
    """Stores pasted images and inserts markdown references into the editor."""

    def __init__(
        self,
        *,
        image_store: ImageStore,
        editor: Editor,
        notifier: Notifier,
        alt_text: str = DEFAULT_ALT_TEXT,
    ) -> None:
        """Initialize the pipeline.

        Args:
            image_store: Store receiving the pasted images
            editor: Editor to insert references into
            notifier: Receives a message for each image that could not be stored
            alt_text: Alt text of inserted image nodes
        """
        self.image_store = image_store
        self.editor = editor
        self.notifier = notifier
        self.alt_text = alt_text

    def classify(self, event: PasteEvent) -> List[_ImageSource]:
        """Work out which images a paste contains.

        Raw image bytes take priority over file paths. An empty list means the
        paste is not an image paste.
        """
        if event.image_data:
            return [
                _ImageSource(
                    data=event.image_data,
                    mime_type=event.mime_type,
                    dimensions=event.dimensions,
                )
            ]
        return [_ImageSource(path=path) for path in filter_image_paths(event.file_paths)]

    async def handle_paste(self, event: PasteEvent) -> PasteResult:
        """Store every image in the paste and insert a reference for each one stored.

        Images are handled independently, a failing image does not stop the others.
        """
        sources = self.classify(event)
        if not sources:
            return PasteResult(handled=False)

        inserted: List[Reference] = []
        await asyncio.gather(*(self._paste_one(source, inserted) for source in sources))

        logger.info(f"Pasted {len(inserted)} of {len(sources)} images")
        return PasteResult(handled=True, inserted=inserted, failed=len(sources) - len(inserted))

    async def _read_source(self, source: _ImageSource) -> tuple[bytes, str | None]:
        if source.path is None:
            return source.data or b"", source.mime_type
        data = await asyncio.to_thread(source.path.read_bytes)
        return data, mime_type_for_extension(source.path.suffix)

    async def _paste_one(self, source: _ImageSource, inserted: List[Reference]) -> None:
        try:
            raw, hint = await self._read_source(source)
            data, mime_type = await asyncio.to_thread(prepare_image, raw, hint)
            image_id = await self.image_store.save(data, mime_type)
        except SizeLimitExceeded as e:
            logger.warning(f"Pasted image {source.label} too large: {e}")
            self.notifier.notify_error(
                f"Image is too large ({e.size} bytes, the limit is {e.limit} bytes). "
                "Please use a smaller image."
            )
            return
        except StorageWriteError as e:
            logger.error(f"Failed to store pasted image {source.label}: {e}")
            self.notifier.notify_error(f"Could not save the pasted image: {e}")
            return
        except OSError as e:
            logger.error(f"Failed to read pasted file {source.path}: {e}")
            self.notifier.notify_error(f"Could not read the pasted file {source.label}")
            return

        reference = Reference(id=image_id, dimensions=source.dimensions)
        markdown = format_image_markdown(reference, alt_text=self.alt_text)
        if inserted:
            markdown = "\n" + markdown
        self.editor.insert_text(markdown)
        inserted.append(reference)
