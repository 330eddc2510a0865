from typing import Dict, List, Tuple

from mdpaste.domain.reference import ReferenceMatch, find_references
from mdpaste.render.resolver import ImageNode, UrlResolver


class RenderedDocument:
    """Keeps the image nodes of a rendered markdown document in sync with its text.

    Nodes are matched across edits by image ID and occurrence, so an image that
    stays in the document keeps its node and its object URL. Nodes whose
    reference disappears are detached.
    """

    def __init__(self, resolver: UrlResolver) -> None:
        self._resolver = resolver
        self._content = ""
        self._matches: List[ReferenceMatch] = []
        self._nodes: Dict[Tuple[str, int], ImageNode] = {}

    @property
    def nodes(self) -> List[ImageNode]:
        """Image nodes in document order."""
        return list(self._nodes.values())

    def update(self, content: str) -> List[ImageNode]:
        """Replace the document text, attaching and detaching nodes as needed."""
        matches = find_references(content)
        occurrences: Dict[str, int] = {}
        nodes: Dict[Tuple[str, int], ImageNode] = {}

        for match in matches:
            image_id = match.reference.id
            key = (image_id, occurrences.get(image_id, 0))
            occurrences[image_id] = key[1] + 1

            node = self._nodes.pop(key, None)
            if node is None:
                node = ImageNode(match.reference, match.alt)
                self._resolver.attach(node)
            else:
                node.reference = match.reference
                node.alt = match.alt
            nodes[key] = node

        for stale in self._nodes.values():
            self._resolver.detach(stale)

        self._content = content
        self._matches = matches
        self._nodes = nodes
        return self.nodes

    def render(self) -> str:
        """Get the document text with each managed image pointing at its current source."""
        parts = []
        position = 0
        for match, node in zip(self._matches, self._nodes.values()):
            src = node.src or ""
            if node.reference.dimensions is not None:
                width, height = node.reference.dimensions
                src += f" ={width}x{height}"
            parts.append(self._content[position : match.start])
            parts.append(f"![{node.alt}]({src})")
            position = match.end
        parts.append(self._content[position:])
        return "".join(parts)

    async def settled(self) -> None:
        """Wait until no image of the document is still loading."""
        await self._resolver.settled()

    def close(self) -> None:
        """Detach every node, releasing all object URLs held by the document."""
        for node in self._nodes.values():
            self._resolver.detach(node)
        self._nodes = {}
        self._matches = []
        self._content = ""
