from tests.fakes.fake_editor import FakeEditor
from tests.fakes.fake_image_store import FakeImageStore
from tests.fakes.fake_notifier import FakeNotifier
from tests.fakes.images import encode_image

__all__ = ["FakeEditor", "FakeImageStore", "FakeNotifier", "encode_image"]
