from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from mdpaste.api.endpoints import get_endpoints_router
from mdpaste.image_store import ImageStore


def create_app(*, image_store: ImageStore) -> FastAPI:
    """Create FastAPI app."""
    app = FastAPI()

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(router=get_endpoints_router(image_store=image_store))

    return app
