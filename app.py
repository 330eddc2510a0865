import sys

from loguru import logger

from mdpaste.api import create_app
from mdpaste.config import settings
from mdpaste.image_store import create_image_store

logger.configure(handlers=[{"sink": sys.stderr, "level": settings.log_level}])

logger.info(f"Initializing clipboard image service with the {settings.storage_backend} backend")
image_store = create_image_store(settings)
app = create_app(image_store=image_store)
