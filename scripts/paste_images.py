"""CLI for pasting image files into a markdown document, as if copied from a file manager"""

import argparse
import asyncio
import sys
from pathlib import Path

from loguru import logger

from mdpaste.config import settings
from mdpaste.image_store import create_image_store
from mdpaste.paste.pipeline import PasteCapturePipeline, PasteEvent


class DocumentEditor:
    """Editor that appends pasted text to the end of a markdown file."""

    def __init__(self, document: Path) -> None:
        self.document = document
        self.inserted: list[str] = []

    def insert_text(self, text: str) -> None:
        self.inserted.append(text)

    def flush(self) -> None:
        if not self.inserted:
            return
        existing = self.document.read_text() if self.document.exists() else ""
        if existing and not existing.endswith("\n"):
            existing += "\n"
        self.document.write_text(existing + "".join(self.inserted) + "\n")
        self.inserted = []


class LogNotifier:
    def notify_error(self, message: str) -> None:
        logger.error(message)


async def main(document: str, images: list[str]) -> int:
    editor = DocumentEditor(Path(document))
    pipeline = PasteCapturePipeline(
        image_store=create_image_store(settings),
        editor=editor,
        notifier=LogNotifier(),
        alt_text=settings.pasted_image_alt_text,
    )
    result = await pipeline.handle_paste(PasteEvent(file_paths=[Path(p) for p in images]))
    if not result.handled:
        logger.warning("None of the given files is an existing image")
        return 1

    editor.flush()
    logger.info(f"Inserted {len(result.inserted)} images into {document}")
    return 1 if result.failed else 0


if __name__ == "__main__":
    parser = argparse.ArgumentParser()
    parser.add_argument("--document", type=str, required=True, help="Markdown file to paste into")
    parser.add_argument(
        "--image", type=str, action="append", required=True, help="Image file to paste"
    )

    args = parser.parse_args()

    sys.exit(asyncio.run(main(document=args.document, images=args.image)))
