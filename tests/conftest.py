from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from mdpaste.api import create_app
from mdpaste.domain.image import LoadedImage
from mdpaste.image_store import BlobImageStore, FileImageStore, ImageStore
from tests.fakes import FakeEditor, FakeImageStore, FakeNotifier, encode_image


@pytest.fixture
def png_bytes() -> bytes:
    return encode_image("PNG")


@pytest.fixture
def jpeg_bytes() -> bytes:
    return encode_image("JPEG")


@pytest.fixture
def images_dir(tmp_path: Path) -> Path:
    """Directory for the file store, not created yet."""
    return tmp_path / "clipboard-images"


@pytest.fixture
def file_store(images_dir: Path) -> FileImageStore:
    return FileImageStore(directory=images_dir)


@pytest.fixture
def blob_store() -> BlobImageStore:
    return BlobImageStore()


@pytest.fixture(params=["file", "blob"])
def image_store(request: pytest.FixtureRequest, images_dir: Path) -> ImageStore:
    """Each backend in turn, for tests of the shared contract."""
    if request.param == "file":
        return FileImageStore(directory=images_dir)
    return BlobImageStore()


@pytest.fixture
def fake_image_store(png_bytes: bytes) -> FakeImageStore:
    return FakeImageStore({"existing": LoadedImage(data=png_bytes, mime_type="image/png")})


@pytest.fixture
def editor() -> FakeEditor:
    return FakeEditor()


@pytest.fixture
def notifier() -> FakeNotifier:
    return FakeNotifier()


@pytest.fixture
def test_client(blob_store: BlobImageStore) -> TestClient:
    """Create test client backed by an in-memory blob store."""
    app = create_app(image_store=blob_store)
    return TestClient(app)
