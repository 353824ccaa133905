"""Tests for image loading functionality."""

import numpy as np
import pytest
from PIL import Image

from multicrop.errors import CannotLoadImage, MultiCropError
from multicrop.pipeline import detect
from multicrop.preprocessing.loader import ImageMetadata, load_image


def test_load_rgb_png(tmp_path):
    """Test loading an 8-bit RGB PNG."""
    pixels = np.zeros((30, 40, 3), dtype=np.uint8)
    pixels[:, :20] = (255, 128, 0)
    path = tmp_path / "scan.png"
    Image.fromarray(pixels).save(path)

    image, metadata = load_image(path)

    assert isinstance(image, np.ndarray), "Image should be numpy array"
    assert image.dtype == np.float32, "Image should be float32"
    assert image.shape == (30, 40, 3), "Image should be (H, W, 3)"
    assert image.min() >= 0.0 and image.max() <= 1.0
    np.testing.assert_allclose(image[0, 0], [1.0, 128 / 255, 0.0], atol=1e-6)

    assert isinstance(metadata, ImageMetadata)
    assert metadata.original_size == (40, 30), "Original size should be (width, height)"
    assert metadata.format == "PNG"
    assert metadata.bit_depth == 8


def test_load_grayscale_png(tmp_path):
    """Single-channel scans come back as 3-channel RGB."""
    path = tmp_path / "gray.png"
    Image.fromarray(np.full((10, 12), 200, dtype=np.uint8)).save(path)

    image, _ = load_image(str(path))

    assert image.shape == (10, 12, 3)
    np.testing.assert_allclose(image, 200 / 255, atol=1e-6)


def test_load_rgba_png(tmp_path):
    """Transparent pixels become white, opaque pixels keep their color."""
    pixels = np.zeros((30, 40, 4), dtype=np.uint8)  # transparent black
    pixels[10:20, 10:30] = (30, 30, 30, 255)
    path = tmp_path / "alpha.png"
    Image.fromarray(pixels).save(path)

    image, metadata = load_image(path)

    assert image.shape == (30, 40, 3)
    assert metadata.bit_depth == 8
    np.testing.assert_allclose(image[0, 0], 1.0, atol=1e-6)
    np.testing.assert_allclose(image[15, 20], 30 / 255, atol=1e-6)


def test_transparent_background_scan_detects_print(tmp_path):
    pixels = np.zeros((300, 400, 4), dtype=np.uint8)
    pixels[75:225, 100:300] = (40, 40, 40, 255)
    path = tmp_path / "cutout.png"
    Image.fromarray(pixels).save(path)

    photos = detect(path)

    assert len(photos) == 1
    w, h = photos[0].size
    assert w / h == pytest.approx(200 / 150, abs=0.05)


def test_load_16bit_grayscale_png(tmp_path):
    """16-bit samples are scaled by their full range, not clipped to 8 bits."""
    pixels = np.full((300, 400), 65535, dtype=np.uint16)
    pixels[75:225, 100:300] = 12000
    path = tmp_path / "scan16.png"
    Image.fromarray(pixels).save(path)

    image, metadata = load_image(path)

    assert image.shape == (300, 400, 3)
    assert image.dtype == np.float32
    assert metadata.bit_depth == 16
    np.testing.assert_allclose(image[0, 0], 1.0, atol=1e-6)
    np.testing.assert_allclose(image[150, 200], 12000 / 65535, atol=1e-6)


def test_16bit_scan_detects_print(tmp_path):
    pixels = np.full((300, 400), 65535, dtype=np.uint16)
    pixels[75:225, 100:300] = 12000
    path = tmp_path / "scan16.png"
    Image.fromarray(pixels).save(path)

    photos = detect(path)

    assert len(photos) == 1
    assert photos[0].image.mean() < 0.25


def test_load_jpeg(tmp_path):
    path = tmp_path / "scan.JPG"
    Image.fromarray(np.full((16, 24, 3), 90, dtype=np.uint8)).save(path, format="JPEG")

    image, metadata = load_image(path)

    assert image.shape == (16, 24, 3)
    assert metadata.format == "JPG"
    assert abs(float(image.mean()) - 90 / 255) < 0.02


def test_missing_file(tmp_path):
    with pytest.raises(CannotLoadImage) as exc_info:
        load_image(tmp_path / "nope.jpg")
    assert "not found" in str(exc_info.value)


def test_unsupported_extension(tmp_path):
    path = tmp_path / "notes.xyz"
    path.write_bytes(b"hello")

    with pytest.raises(CannotLoadImage, match="unsupported"):
        load_image(path)


def test_corrupt_file(tmp_path):
    path = tmp_path / "broken.jpg"
    path.write_bytes(b"definitely not a jpeg")

    with pytest.raises(MultiCropError) as exc_info:
        load_image(path)
    assert isinstance(exc_info.value, CannotLoadImage)
    assert exc_info.value.path == str(path)


def test_oversized_image_is_load_error(tmp_path, monkeypatch):
    """Pillow's decompression-bomb guard surfaces as a load failure."""
    path = tmp_path / "huge.png"
    Image.fromarray(np.full((300, 400, 3), 255, dtype=np.uint8)).save(path)
    monkeypatch.setattr(Image, "MAX_IMAGE_PIXELS", 1000)

    with pytest.raises(CannotLoadImage):
        load_image(path)
