from pathlib import Path

import pytest
from PIL import Image

from ateleslie.exceptions import BadRequestError, InternalServerError
from ateleslie.services.images import StagedUpload

from conftest import image_bytes


def stage(service, data, filename="upload.png", content_type="image/png"):
    path = service.staging_dir / filename
    path.write_bytes(data)
    return StagedUpload(
        path=path,
        filename=filename,
        original_name=filename,
        content_type=content_type,
        size=len(data),
    )


def test_generates_proportional_thumbnails(image_service):
    info = image_service.process_image(stage(image_service, image_bytes(800, 600)))

    original = info["original"]
    assert original["filename"] == "original_upload.png"
    assert (original["width"], original["height"]) == (800, 600)
    assert Path(original["path"]).exists()

    expected = {"small": (100, 75), "medium": (300, 225), "large": (600, 450)}
    for size, (width, height) in expected.items():
        thumb = info["thumbnails"][size]
        assert thumb["filename"] == f"{size}_upload.jpg"
        assert (thumb["width"], thumb["height"]) == (width, height)
        with Image.open(thumb["path"]) as img:
            assert img.format == "JPEG"
            assert img.size == (width, height)


def test_thumbnail_height_is_rounded(image_service):
    info = image_service.process_image(stage(image_service, image_bytes(700, 333)))
    # 100 * 333 / 700 = 47.57
    assert info["thumbnails"]["small"]["height"] == 48


@pytest.mark.parametrize("width,height", [(250, 188), (1000, 750)])
def test_breakpoints_wider_than_image_reuse_original(image_service, width, height):
    info = image_service.process_image(stage(image_service, image_bytes(width, height)))

    for size, target_width in image_service.thumbnail_sizes.items():
        thumb = info["thumbnails"][size]
        if target_width >= width:
            assert thumb["path"] == info["original"]["path"]
            assert not (image_service.thumbnails_dir / f"{size}_upload.jpg").exists()
        else:
            assert thumb["path"] != info["original"]["path"]
            assert thumb["width"] == target_width


def test_staged_file_is_moved(image_service):
    staged = stage(image_service, image_bytes(300, 300))
    image_service.process_image(staged)
    assert not staged.path.exists()


def test_rejects_non_image(image_service):
    staged = stage(image_service, b"definitely not an image")
    with pytest.raises(BadRequestError):
        image_service.process_image(staged)
    assert not staged.path.exists()


def test_rejects_unsupported_format(image_service):
    staged = stage(image_service, image_bytes(50, 50, fmt="GIF"), filename="anim.gif")
    with pytest.raises(BadRequestError) as exc_info:
        image_service.process_image(staged)
    assert "Invalid file type" in exc_info.value.message


def test_rejects_missing_file(image_service):
    with pytest.raises(BadRequestError):
        image_service.process_image(None)


def test_rejects_oversized_dimensions(image_service):
    image_service.max_dimension = 500
    with pytest.raises(BadRequestError):
        image_service.process_image(stage(image_service, image_bytes(600, 400)))


def test_rejects_oversized_file(image_service):
    data = image_bytes(100, 100)
    image_service.max_bytes = len(data) - 1
    with pytest.raises(BadRequestError):
        image_service.process_image(stage(image_service, data))


def test_failed_thumbnail_removes_created_files(image_service, monkeypatch):
    calls = {"count": 0}
    original_save = Image.Image.save

    def flaky_save(self, *args, **kwargs):
        calls["count"] += 1
        if calls["count"] == 2:
            raise OSError("disk full")
        return original_save(self, *args, **kwargs)

    monkeypatch.setattr(Image.Image, "save", flaky_save)

    with pytest.raises(InternalServerError):
        image_service.process_image(stage(image_service, image_bytes(800, 600)))

    assert list(image_service.original_dir.iterdir()) == []
    assert list(image_service.thumbnails_dir.iterdir()) == []


def test_delete_image_removes_each_path_once(image_service):
    info = image_service.process_image(stage(image_service, image_bytes(200, 100)))

    paths = image_service.delete_image(info)

    # original + small thumbnail; medium/large alias the original
    assert len(paths) == 2
    assert all(not Path(p).exists() for p in paths)


def test_delete_image_ignores_missing_files(image_service):
    info = image_service.process_image(stage(image_service, image_bytes(400, 200)))
    image_service.delete_image(info)
    assert len(image_service.delete_image(info)) == 3
    assert image_service.delete_image(None) == []
