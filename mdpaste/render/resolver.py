"""Resolves image references to renderable URLs at render time."""

import asyncio
from enum import Enum
from typing import Dict, List, Optional, Set

from loguru import logger

from mdpaste.domain.reference import DEFAULT_ALT_TEXT, Reference
from mdpaste.errors import StorageReadError
from mdpaste.image_store.base import ImageStore
from mdpaste.render.object_urls import ObjectUrlRegistry

PENDING_IMAGE_SRC = (
    "data:image/svg+xml,%3Csvg%20xmlns='http://www.w3.org/2000/svg'"
    "%20width='16'%20height='16'/%3E"
)
MISSING_IMAGE_SRC = (
    "data:image/svg+xml,%3Csvg%20xmlns='http://www.w3.org/2000/svg'"
    "%20width='16'%20height='16'%3E%3Cpath%20d='M2%202L14%2014M14%202L2%2014'"
    "%20stroke='red'/%3E%3C/svg%3E"
)


class ResolutionState(str, Enum):
    PENDING = "pending"
    RESOLVED = "resolved"
    FAILED = "failed"


class ImageNode:
    """A rendered image whose source is a managed reference."""

    def __init__(self, reference: Reference, alt: str = DEFAULT_ALT_TEXT) -> None:
        self.reference = reference
        self.alt = alt
        self.state = ResolutionState.PENDING
        self.src: Optional[str] = None
        self.url: Optional[str] = None
        self.disposed = False
        self._attached = False

    def __repr__(self) -> str:
        return f"ImageNode(id={self.reference.id!r}, state={self.state.value})"


class _PendingLoad:
    def __init__(self) -> None:
        self.nodes: List[ImageNode] = []
        self.task: Optional["asyncio.Task[None]"] = None


class UrlResolver:
    """Turns image nodes into renderable images.

    Each attached node starts pending and ends either resolved, with an object
    URL over the loaded bytes, or failed, showing the missing-image placeholder.
    Nodes attached for the same ID while a load is in flight share that load
    and its object URL.
    """

    def __init__(
        self,
        image_store: ImageStore,
        object_urls: ObjectUrlRegistry | None = None,
        *,
        pending_src: str = PENDING_IMAGE_SRC,
        missing_src: str = MISSING_IMAGE_SRC,
    ) -> None:
        self.image_store = image_store
        self.object_urls = object_urls if object_urls is not None else ObjectUrlRegistry()
        self.pending_src = pending_src
        self.missing_src = missing_src
        self._pending: Dict[str, _PendingLoad] = {}
        self._nodes: Set[ImageNode] = set()

    @property
    def pending_ids(self) -> List[str]:
        """IDs with a load in flight."""
        return list(self._pending)

    @property
    def nodes(self) -> List[ImageNode]:
        """Attached nodes that have not been detached."""
        return list(self._nodes)

    def attach(self, node: ImageNode) -> "asyncio.Future[None]":
        """Start resolving a node. Must be called from a running event loop.

        Returns a future that completes once the node's load has settled.
        """
        if node._attached:
            raise ValueError(f"{node!r} is already attached")
        node._attached = True
        node.state = ResolutionState.PENDING
        node.src = self.pending_src
        self._nodes.add(node)

        image_id = node.reference.id
        pending = self._pending.get(image_id)
        if pending is None:
            pending = _PendingLoad()
            self._pending[image_id] = pending
            pending.task = asyncio.get_running_loop().create_task(self._load(image_id, pending))
        pending.nodes.append(node)
        return asyncio.shield(pending.task)

    def detach(self, node: ImageNode) -> None:
        """Remove a node from the render tree, releasing its object URL if it has one.

        Detaching a node twice does nothing.
        """
        if node.disposed:
            return
        node.disposed = True
        self._nodes.discard(node)
        if node.state is ResolutionState.RESOLVED and node.url is not None:
            self.object_urls.release(node.url)

    async def resolve(self, reference: Reference, alt: str = DEFAULT_ALT_TEXT) -> ImageNode:
        """Attach a new node for a reference and wait until it settles."""
        node = ImageNode(reference, alt)
        await self.attach(node)
        return node

    async def settled(self) -> None:
        """Wait for every load in flight."""
        tasks = [pending.task for pending in self._pending.values() if pending.task is not None]
        if tasks:
            await asyncio.gather(*(asyncio.shield(task) for task in tasks))

    async def aclose(self) -> None:
        """Detach all nodes and wait for loads in flight, discarding their results."""
        for node in list(self._nodes):
            self.detach(node)
        await self.settled()

    async def _load(self, image_id: str, pending: _PendingLoad) -> None:
        image = None
        try:
            image = await self.image_store.load(image_id)
        except StorageReadError as e:
            logger.error(f"Failed to read image {image_id}: {e}")
        except Exception as e:
            logger.exception(f"Unexpected error loading image {image_id}: {e}")
        finally:
            # Nodes attached from here on start a fresh load
            if self._pending.get(image_id) is pending:
                del self._pending[image_id]

        live = [node for node in pending.nodes if not node.disposed]
        if image is None:
            if live:
                logger.info(f"Image {image_id} not found, showing missing placeholder")
            for node in live:
                node.state = ResolutionState.FAILED
                node.src = self.missing_src
            return

        if not live:
            logger.debug(f"Discarding image {image_id}, all nodes were detached while loading")
            return

        url = self.object_urls.create(image.data, image.mime_type, refs=len(live))
        for node in live:
            node.state = ResolutionState.RESOLVED
            node.url = url
            node.src = url
