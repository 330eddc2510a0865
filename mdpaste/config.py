from pathlib import Path
from typing import Literal

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Storage backend, chosen once per process
    storage_backend: Literal["file", "blob"] = "file"

    # File backend settings
    clipboard_images_dir: Path = Path("data/clipboard-images")
    file_max_image_bytes: int | None = None

    # Blob store backend settings
    blob_store_path: str | None = "data/clipboard-images.json"
    blob_max_image_bytes: int = 2 * 1024 * 1024
    blob_quota_bytes: int | None = None

    # Paste settings
    pasted_image_alt_text: str = "pasted image"

    log_level: str = "INFO"  # Can be DEBUG, INFO, WARNING, ERROR, CRITICAL


settings = Settings()
