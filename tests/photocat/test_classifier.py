"""
PhotoCat - Image Classifier Tests
"""
import pytest

from src.photocat.discovery.classifier import RAW_EXTENSIONS, is_raw, is_supported_image


class TestImageClassifier:

    @pytest.mark.parametrize("name", ["a.jpg", "b.JPEG", "c.Png", "d.gif", "dir.with.dots/e.JPG"])
    def test_supported(self, name):
        assert is_supported_image(name)

    @pytest.mark.parametrize("name", ["a.bmp", "b.webp", "c.tiff", "README", "archive.jpg.zip", ".jpg"])
    def test_unsupported(self, name):
        assert not is_supported_image(name)

    def test_raw_formats_are_recognised_not_supported(self):
        assert len(RAW_EXTENSIONS) == 23
        for ext in RAW_EXTENSIONS:
            name = f"IMG_0001{ext.upper()}"
            assert is_raw(name)
            assert not is_supported_image(name)

    def test_regular_image_is_not_raw(self):
        assert not is_raw("photo.jpg")
