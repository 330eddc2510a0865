import asyncio

from fastapi import APIRouter, HTTPException, Request
from fastapi.responses import Response
from loguru import logger
from pydantic import PositiveInt

from mdpaste.config import settings
from mdpaste.domain.reference import Reference, format_image_markdown
from mdpaste.errors import SizeLimitExceeded, StorageReadError, StorageWriteError
from mdpaste.image_store import ImageStore
from mdpaste.paste.formats import prepare_image


def _create_upload_endpoint(image_store: ImageStore):
    """Create the image upload endpoint handler."""

    async def upload_image(
        request: Request,
        width: PositiveInt | None = None,
        height: PositiveInt | None = None,
    ):
        body = await request.body()
        if not body:
            raise HTTPException(status_code=400, detail="No image data provided")

        data, mime_type = await asyncio.to_thread(
            prepare_image, body, request.headers.get("content-type")
        )
        try:
            image_id = await image_store.save(data, mime_type)
        except SizeLimitExceeded as e:
            logger.warning(f"Rejected upload: {e}")
            raise HTTPException(status_code=413, detail=str(e)) from e
        except StorageWriteError as e:
            logger.error(f"Error storing uploaded image: {e}")
            raise HTTPException(status_code=507, detail="Could not store image") from e

        dimensions = (width, height) if width and height else None
        reference = Reference(id=image_id, dimensions=dimensions)
        return {
            "id": image_id,
            "mime_type": mime_type,
            "markdown": format_image_markdown(reference, settings.pasted_image_alt_text),
        }

    return upload_image


def _create_image_endpoint(image_store: ImageStore):
    """Create the image endpoint handler."""

    async def get_image(image_id: str):
        try:
            image = await image_store.load(image_id)
        except StorageReadError as e:
            logger.error(f"Error reading image {image_id}: {e}")
            raise HTTPException(status_code=404, detail="Image not found") from e

        if image is None:
            logger.warning(f"Image not found: {image_id}")
            raise HTTPException(status_code=404, detail="Image not found")

        return Response(
            content=image.data,
            media_type=image.mime_type,
            headers={
                "Cache-Control": "public, max-age=31536000, immutable",
                "ETag": f'"{image_id}"',
            },
        )

    return get_image


def _create_delete_endpoint(image_store: ImageStore):
    """Create the image delete endpoint handler."""

    async def delete_image(image_id: str):
        try:
            deleted = await image_store.delete(image_id)
        except StorageWriteError as e:
            logger.error(f"Error deleting image {image_id}: {e}")
            raise HTTPException(status_code=500, detail="Could not delete image") from e
        return {"deleted": deleted}

    return delete_image


def _create_list_endpoint(image_store: ImageStore):
    """Create the image listing endpoint handler."""

    async def list_images():
        try:
            records = await image_store.list_images()
        except StorageReadError as e:
            logger.error(f"Error listing images: {e}")
            raise HTTPException(status_code=500, detail="Could not list images") from e
        return [record.model_dump(mode="json") for record in records]

    return list_images


def get_endpoints_router(*, image_store: ImageStore) -> APIRouter:
    router = APIRouter()

    @router.get("/health")
    async def health_check():
        return {"status": "healthy"}

    router.get("/api/clipboard-images")(_create_list_endpoint(image_store))
    router.post("/api/clipboard-images")(_create_upload_endpoint(image_store))
    router.get("/api/clipboard-images/{image_id}")(_create_image_endpoint(image_store))
    router.delete("/api/clipboard-images/{image_id}")(_create_delete_endpoint(image_store))

    return router
