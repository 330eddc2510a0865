"""Tests for FileImageStore."""

import asyncio
import os
from pathlib import Path

import pytest

from mdpaste.domain.reference import Reference
from mdpaste.errors import SizeLimitExceeded, StorageReadError, StorageWriteError
from mdpaste.image_store import FileImageStore
from mdpaste.render.resolver import MISSING_IMAGE_SRC, ResolutionState, UrlResolver


def test_directory_is_created_on_first_save(images_dir: Path) -> None:
    store = FileImageStore(directory=images_dir)
    assert not images_dir.exists(), "Directory should not be created before a save"

    image_id = asyncio.run(store.save(b"png data", "image/png"))

    assert images_dir.is_dir()
    assert (images_dir / f"{image_id}.png").read_bytes() == b"png data"


@pytest.mark.parametrize(
    "mime_type,extension",
    [
        ("image/png", ".png"),
        ("image/jpeg", ".jpg"),
        ("image/gif", ".gif"),
        ("image/webp", ".webp"),
        ("image/svg+xml", ".svg"),
        ("image/bmp", ".bmp"),
        (None, ".png"),
    ],
)
def test_file_is_named_after_id_and_mime_type(
    file_store: FileImageStore, images_dir: Path, mime_type: str | None, extension: str
) -> None:
    image_id = asyncio.run(file_store.save(b"data", mime_type))

    assert [p.name for p in images_dir.iterdir()] == [f"{image_id}{extension}"]
    assert file_store.path_for(image_id) == images_dir / f"{image_id}{extension}"


def test_mime_type_is_read_from_extension(images_dir: Path) -> None:
    """Test that files placed in the directory are loaded by extension alone."""
    images_dir.mkdir()
    (images_dir / "photo.jpeg").write_bytes(b"jpeg bytes")
    (images_dir / "drawing.svg").write_bytes(b"<svg/>")
    store = FileImageStore(directory=images_dir)

    async def scenario():
        return await store.load("drawing"), await store.list_images()

    drawing, records = asyncio.run(scenario())

    assert drawing is not None
    assert drawing.mime_type == "image/svg+xml"
    assert {r.id: r.mime_type for r in records} == {
        "photo": "image/jpeg",
        "drawing": "image/svg+xml",
    }


def test_list_ignores_non_image_files(images_dir: Path) -> None:
    images_dir.mkdir()
    (images_dir / "notes.txt").write_text("not an image")
    (images_dir / ".abc.png.tmp").write_bytes(b"partial")
    (images_dir / "nested.png").mkdir()
    (images_dir / "kept.gif").write_bytes(b"gif")
    store = FileImageStore(directory=images_dir)

    records = asyncio.run(store.list_images())

    assert [r.id for r in records] == ["kept"]


def test_list_of_missing_directory_is_empty(images_dir: Path) -> None:
    store = FileImageStore(directory=images_dir)
    assert asyncio.run(store.list_images()) == []


def test_list_is_ordered_by_creation_time(images_dir: Path) -> None:
    images_dir.mkdir()
    for name, mtime in [("b", 300), ("a", 100), ("c", 200)]:
        path = images_dir / f"{name}.png"
        path.write_bytes(b"x")
        os.utime(path, (mtime, mtime))
    store = FileImageStore(directory=images_dir)

    records = asyncio.run(store.list_images())

    if not hasattr(os.stat(images_dir / "a.png"), "st_birthtime"):
        assert [r.id for r in records] == ["a", "c", "b"]
    assert sorted(records, key=lambda r: (r.created_at, r.id)) == records


def test_invalid_ids_never_touch_the_filesystem(tmp_path: Path) -> None:
    """Test that IDs with path separators do not escape the store directory."""
    images_dir = tmp_path / "images"
    (tmp_path / "secret.png").write_bytes(b"outside")
    store = FileImageStore(directory=images_dir)

    async def scenario():
        return await store.load("../secret"), await store.delete("../secret")

    loaded, deleted = asyncio.run(scenario())

    assert loaded is None
    assert deleted is False
    assert (tmp_path / "secret.png").exists()
    assert store.path_for("../secret") is None


def test_optional_size_cap(images_dir: Path) -> None:
    store = FileImageStore(directory=images_dir, max_size=10)

    async def scenario():
        ok = await store.save(b"x" * 10, "image/png")
        with pytest.raises(SizeLimitExceeded):
            await store.save(b"x" * 11, "image/png")
        return ok

    image_id = asyncio.run(scenario())
    assert [p.name for p in images_dir.iterdir()] == [f"{image_id}.png"]


def test_write_failure_leaves_nothing_behind(tmp_path: Path) -> None:
    """Test that a medium failure raises StorageWriteError and writes no file."""
    blocker = tmp_path / "blocker"
    blocker.write_text("a file where the directory should be")
    store = FileImageStore(directory=blocker / "images")

    with pytest.raises(StorageWriteError):
        asyncio.run(store.save(b"data", "image/png"))

    assert asyncio.run(store.list_images()) == []


def test_custom_id_factory(images_dir: Path) -> None:
    store = FileImageStore(directory=images_dir, id_factory=lambda: "fixed")
    assert asyncio.run(store.save(b"data", "image/bmp")) == "fixed"
    assert (images_dir / "fixed.bmp").exists()


def test_colliding_ids_never_overwrite_an_image(images_dir: Path) -> None:
    """Test that an ID already on disk, under any extension, is regenerated."""
    ids = iter(["same", "same", "other", "same", "third"])
    store = FileImageStore(directory=images_dir, id_factory=lambda: next(ids))

    async def scenario():
        saved = [
            await store.save(b"first", "image/png"),
            await store.save(b"second", "image/png"),
            await store.save(b"third", "image/jpeg"),
        ]
        return saved, await store.load("same"), await store.list_images()

    saved, loaded, records = asyncio.run(scenario())

    assert saved == ["same", "other", "third"]
    assert loaded is not None
    assert loaded.data == b"first", "The first image should survive an ID collision"
    assert len(records) == 3
    assert not list(images_dir.glob(".*.tmp")), "No temporary files should be left behind"


def test_uppercase_extensions_are_loaded_and_deleted(images_dir: Path) -> None:
    """Test that every listed image can also be loaded and deleted."""
    images_dir.mkdir()
    (images_dir / "shot.PNG").write_bytes(b"png bytes")
    (images_dir / "photo.Jpeg").write_bytes(b"jpeg bytes")
    store = FileImageStore(directory=images_dir)

    async def scenario():
        listed = [r.id for r in await store.list_images()]
        loaded = {image_id: await store.load(image_id) for image_id in listed}
        deleted = [await store.delete(image_id) for image_id in listed]
        return listed, loaded, deleted, await store.list_images()

    listed, loaded, deleted, remaining = asyncio.run(scenario())

    assert sorted(listed) == ["photo", "shot"]
    assert loaded["shot"] is not None
    assert loaded["shot"].data == b"png bytes"
    assert loaded["shot"].mime_type == "image/png"
    assert loaded["photo"] is not None
    assert loaded["photo"].mime_type == "image/jpeg"
    assert deleted == [True, True]
    assert remaining == []


def test_unreadable_file_raises_read_error(
    images_dir: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    images_dir.mkdir()
    (images_dir / "locked.png").write_bytes(b"png bytes")
    store = FileImageStore(directory=images_dir)

    def read_bytes(self: Path) -> bytes:
        raise PermissionError(13, "Permission denied", str(self))

    monkeypatch.setattr(Path, "read_bytes", read_bytes)

    with pytest.raises(StorageReadError):
        asyncio.run(store.load("locked"))


def test_unreadable_directory_raises_read_error(
    images_dir: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    images_dir.mkdir()
    store = FileImageStore(directory=images_dir)

    def iterdir(self: Path):
        raise PermissionError(13, "Permission denied", str(self))

    monkeypatch.setattr(Path, "iterdir", iterdir)

    with pytest.raises(StorageReadError):
        asyncio.run(store.list_images())


def test_unreadable_file_resolves_as_missing(
    images_dir: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    images_dir.mkdir()
    (images_dir / "locked.png").write_bytes(b"png bytes")
    resolver = UrlResolver(FileImageStore(directory=images_dir))

    def read_bytes(self: Path) -> bytes:
        raise PermissionError(13, "Permission denied", str(self))

    monkeypatch.setattr(Path, "read_bytes", read_bytes)

    node = asyncio.run(resolver.resolve(Reference(id="locked")))

    assert node.state is ResolutionState.FAILED
    assert node.src == MISSING_IMAGE_SRC
    assert len(resolver.object_urls) == 0
