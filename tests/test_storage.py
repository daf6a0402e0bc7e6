import io
import os

import pytest
from PIL import Image

from services.storage import LocalFileStore
from services.file_processing import compress_image
from utils.file_handler import resolve_inside, build_storage_name, upload_owner


def _noisy_jpeg(width, height):
    img = Image.frombytes("RGB", (width, height), os.urandom(width * height * 3))
    out = io.BytesIO()
    img.save(out, "JPEG", quality=95)
    return out.getvalue()


@pytest.fixture
def store(app, tmp_path):
    return LocalFileStore(str(tmp_path / "store"))


def test_upload_is_idempotent(store, tmp_path):
    first = store.upload_file(b"%PDF-1.4 plan", "application/pdf", "plan.pdf", 7, "private")
    second = store.upload_file(b"%PDF-1.4 plan", "application/pdf", "plan.pdf", 7, "private")

    assert first == second
    assert first.startswith("/uploads/private/7/")
    assert first.endswith("_plan.pdf")
    with open(store.path_for_url(first), "rb") as f:
        assert f.read() == b"%PDF-1.4 plan"


def test_different_content_gets_different_url(store):
    first = store.upload_file(b"one", "application/pdf", "plan.pdf", 7, "public")
    second = store.upload_file(b"two", "application/pdf", "plan.pdf", 7, "public")
    assert first != second


def test_upload_rejects_unknown_visibility(store):
    with pytest.raises(ValueError):
        store.upload_file(b"x", "application/pdf", "plan.pdf", 7, "shared")


def test_large_images_are_downscaled(app, store):
    app.config["IMAGE_COMPRESS_MIN_BYTES"] = 0
    data = _noisy_jpeg(2400, 1600)

    url = store.upload_file(data, "image/jpeg", "photo.jpg", 3, "public")

    path = store.path_for_url(url)
    assert os.path.getsize(path) < len(data)
    with Image.open(path) as img:
        assert max(img.size) <= app.config["IMAGE_MAX_DIMENSION"]


def test_small_images_are_stored_untouched(app):
    data = _noisy_jpeg(40, 40)
    assert compress_image(data, "image/jpeg") == data


def test_non_images_are_not_compressed(app):
    assert compress_image(b"%PDF-1.4", "application/pdf") == b"%PDF-1.4"


def test_corrupt_image_falls_back_to_original(app):
    app.config["IMAGE_COMPRESS_MIN_BYTES"] = 0
    assert compress_image(b"not really a png", "image/png") == b"not really a png"


def test_delete_file(store):
    url = store.upload_file(b"bye", "application/pdf", "old.pdf", 1, "private")
    assert store.delete_file(url) is True
    assert store.delete_file(url) is False
    assert store.delete_file("/uploads/../../etc/passwd") is False
    assert store.delete_file("https://elsewhere.example/file.pdf") is False


def test_resolve_inside_blocks_traversal(tmp_path):
    base = str(tmp_path)
    assert resolve_inside(base, "public/1/a.txt") == os.path.join(base, "public", "1", "a.txt")
    assert resolve_inside(base, "../outside.txt") is None
    assert resolve_inside(base, "public/../../outside.txt") is None


def test_storage_name_is_content_addressed():
    assert build_storage_name(b"abc", "My Photo.JPG") == build_storage_name(b"abc", "My Photo.JPG")
    assert build_storage_name(b"abc", "My Photo.JPG").endswith("_My_Photo.JPG")
    assert build_storage_name(b"abc", "../../").endswith("_upload")


def test_upload_owner_reads_owner_segment():
    assert upload_owner("/uploads/private/7/abc_plan.pdf") == "7"
    assert upload_owner("/uploads/public/7/nested/abc.pdf") is None
    assert upload_owner("https://elsewhere.example/uploads/public/7/a.pdf") is None
    assert upload_owner(None) is None
