"""CLI for resolving pasted image references into self-contained data URLs"""

import argparse
import asyncio
from pathlib import Path

from loguru import logger

from mdpaste.config import settings
from mdpaste.image_store import create_image_store
from mdpaste.render.document import RenderedDocument
from mdpaste.render.resolver import ResolutionState, UrlResolver


async def render(content: str, resolver: UrlResolver) -> str:
    """Render markdown with every pasted image inlined as a data URL."""
    document = RenderedDocument(resolver)
    nodes = document.update(content)
    await document.settled()

    for node in nodes:
        if node.state is ResolutionState.RESOLVED and node.url is not None:
            node.src = resolver.object_urls.to_data_url(node.url)
        elif node.state is ResolutionState.FAILED:
            logger.warning(f"Missing image {node.reference.id}")

    rendered = document.render()
    document.close()
    return rendered


async def main(in_file: str, out_file: str) -> None:
    resolver = UrlResolver(create_image_store(settings))
    rendered = await render(Path(in_file).read_text(), resolver)
    Path(out_file).write_text(rendered)
    logger.info(f"Rendered {in_file} to {out_file}")


if __name__ == "__main__":
    parser = argparse.ArgumentParser()
    parser.add_argument("--in-file", type=str, required=True, help="Markdown file to render")
    parser.add_argument("--out-file", type=str, required=True, help="Output markdown file")

    args = parser.parse_args()

    asyncio.run(main(in_file=args.in_file, out_file=args.out_file))
