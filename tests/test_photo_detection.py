"""Tests for end-to-end photo detection on synthetic scans."""

import math
import threading

import cv2
import numpy as np
import pytest

from multicrop.errors import Cancelled
from multicrop.photo_detection.detector import (
    detect_photos,
    draw_photo_detections,
    reorder_photos,
    select_photos,
)


def _blank_scan(width: int, height: int) -> np.ndarray:
    """White flatbed background, float32 RGB [0, 1]."""
    return np.ones((height, width, 3), dtype=np.float32)


def _rotated_rect_corners(cx, cy, width, height, degrees):
    """Corners of a rectangle turned counter-clockwise as seen on screen (pixel y down)."""
    a = math.radians(degrees)
    corners = []
    for sx, sy in [(-1, 1), (1, 1), (1, -1), (-1, -1)]:
        x, y = sx * width / 2, sy * height / 2  # y up
        rx = x * math.cos(a) - y * math.sin(a)
        ry = x * math.sin(a) + y * math.cos(a)
        corners.append([cx + rx, cy - ry])
    return np.array(corners, dtype=np.float64)


class TestThreeSquares:
    """Three separate black squares on a 1000x1000 white scan."""

    SQUARES = [(100, 100), (500, 100), (300, 600)]  # (x, y) of each top-left corner

    @pytest.fixture(scope="class")
    def scan(self):
        image = _blank_scan(1000, 1000)
        for x, y in self.SQUARES:
            image[y:y + 100, x:x + 100] = 0.0
        return image

    @pytest.fixture(scope="class")
    def photos(self, scan):
        return detect_photos(scan, sensitivity=0.5, min_relative_size=0.001)

    def test_finds_three(self, photos):
        assert len(photos) == 3

    def test_quads_match_squares(self, photos):
        """Equal areas keep scan order: top row left to right, then the lower square."""
        for photo, (x, y) in zip(photos, self.SQUARES):
            q = photo.quad
            assert q.top_left == pytest.approx((x / 1000, 1 - y / 1000), abs=0.003)
            assert q.bottom_right == pytest.approx(((x + 100) / 1000, 1 - (y + 100) / 1000), abs=0.003)

    def test_quad_roles(self, photos):
        for photo in photos:
            q = photo.quad
            assert q.top_left[1] == pytest.approx(q.top_right[1], abs=1e-6)
            assert q.bottom_left[1] == pytest.approx(q.bottom_right[1], abs=1e-6)
            assert q.top_left[1] > q.bottom_left[1]
            assert q.top_left[0] < q.top_right[0]
            assert q.bottom_left[0] < q.bottom_right[0]

    def test_crops_are_dark_squares(self, photos):
        for photo in photos:
            h, w = photo.image.shape[:2]
            assert abs(w - h) <= 1
            assert 90 <= w <= 100
            assert photo.image.mean() < 0.05
            assert photo.rotation == 0

    def test_area_within_window(self, photos):
        total = 1000 * 1000
        for photo in photos:
            assert int(total * 0.001) <= photo.area <= int(total * 0.5)

    def test_deterministic(self, scan, photos):
        again = detect_photos(scan, sensitivity=0.5, min_relative_size=0.001)

        assert [p.quad for p in again] == [p.quad for p in photos]
        for a, b in zip(again, photos):
            np.testing.assert_array_equal(a.image, b.image)


class TestRotatedRectangle:
    """A single black rectangle turned 15 degrees."""

    @pytest.fixture(scope="class")
    def scan_and_photos(self):
        image = _blank_scan(800, 800)
        corners = _rotated_rect_corners(400, 400, 400, 200, 15)
        cv2.fillPoly(image, [np.rint(corners).astype(np.int32)], (0.0, 0.0, 0.0))
        return image, detect_photos(image)

    def test_single_detection(self, scan_and_photos):
        _, photos = scan_and_photos
        assert len(photos) == 1

    def test_quad_edge_angle(self, scan_and_photos):
        _, photos = scan_and_photos
        q = photos[0].quad
        dx = (q.top_right[0] - q.top_left[0]) * 800
        dy = (q.top_right[1] - q.top_left[1]) * 800
        assert math.degrees(math.atan2(dy, dx)) == pytest.approx(15.0, abs=1.5)

    def test_crop_is_axis_aligned(self, scan_and_photos):
        """After rectification the dark content fills the crop edge to edge."""
        _, photos = scan_and_photos
        crop = photos[0].image
        h, w = crop.shape[:2]

        assert w / h == pytest.approx(2.0, abs=0.1)
        assert crop.mean() < 0.05
        for edge in (crop[0], crop[-1], crop[:, 0], crop[:, -1]):
            assert edge.mean() < 0.15


class TestEdgeCases:
    """Empty scans, touching prints and filtering."""

    def test_blank_scan_returns_empty(self):
        assert detect_photos(_blank_scan(400, 400)) == []

    def test_touching_squares_merge(self):
        image = _blank_scan(400, 400)
        image[100:200, 100:200] = 0.0
        image[100:200, 200:300] = 0.0

        photos = detect_photos(image)

        assert len(photos) == 1
        q = photos[0].quad
        assert q.top_left[0] == pytest.approx(0.25, abs=0.005)
        assert q.top_right[0] == pytest.approx(0.75, abs=0.005)
        h, w = photos[0].image.shape[:2]
        assert w / h == pytest.approx(2.0, abs=0.1)

    def test_small_region_filtered(self):
        image = _blank_scan(400, 400)
        image[50:250, 50:250] = 0.0   # 25% of the scan
        image[300:310, 300:310] = 0.0  # well below 4%

        photos = detect_photos(image)

        assert len(photos) == 1
        assert photos[0].area == 200 * 200

    def test_line_component_skipped(self):
        """A one-pixel line passes the size window but has no area to fit a rectangle to."""
        image = _blank_scan(400, 400)
        image[50:150, 50:150] = 0.0
        image[300, 50:350] = 0.0  # 300 px, collinear hull

        photos = detect_photos(image, sensitivity=1.0, min_relative_size=0.001)

        assert len(photos) == 1
        assert photos[0].area == 100 * 100

    def test_oversized_region_filtered(self):
        image = _blank_scan(400, 400)
        image[20:380, 20:380] = 0.0  # 81% of the scan

        assert detect_photos(image, max_relative_size=0.5) == []

    def test_sorted_by_area_and_capped(self):
        image = _blank_scan(600, 600)
        sizes = [60, 120, 80, 100]
        for i, size in enumerate(sizes):
            x = 20 + i * 145
            image[50:50 + size, x:x + size] = 0.0

        photos = detect_photos(image, min_relative_size=0.005, max_count=3)

        assert len(photos) == 3
        assert [p.area for p in photos] == [120 * 120, 100 * 100, 80 * 80]

    def test_gray_photo_needs_higher_sensitivity(self):
        """A light print (gray 225) is only seen once the cutoff rises above it."""
        image = _blank_scan(400, 400)
        image[100:300, 100:300] = 225 / 255

        assert detect_photos(image, sensitivity=0.1) == []
        assert len(detect_photos(image, sensitivity=0.9)) == 1

    def test_photo_with_bright_content_is_one_region(self):
        """Bright areas inside a print are filled, not split into separate photos."""
        image = _blank_scan(400, 400)
        image[100:300, 100:300] = 0.0
        image[130:270, 130:270] = 1.0  # bright sky inside the print

        photos = detect_photos(image)

        assert len(photos) == 1
        assert photos[0].area == 200 * 200

    def test_downscales_large_scan(self):
        image = _blank_scan(2000, 1000)
        image[200:600, 300:900] = 0.0

        photos = detect_photos(image)

        assert len(photos) == 1
        h, w = photos[0].image.shape[:2]
        assert w == pytest.approx(600, abs=20)
        assert h == pytest.approx(400, abs=20)


class TestCancellation:
    """Cooperative cancellation."""

    def test_cancel_before_start(self):
        image = _blank_scan(200, 200)
        image[50:150, 50:150] = 0.0
        event = threading.Event()
        event.set()

        with pytest.raises(Cancelled):
            detect_photos(image, cancel_event=event)

    def test_cancel_inside_component_loop_returns_nothing(self):
        """Cancelling after the first photo still aborts instead of returning one photo."""

        class SetAfter(threading.Event):
            def __init__(self, checks):
                super().__init__()
                self.remaining = checks

            def is_set(self):
                self.remaining -= 1
                return self.remaining < 0

        image = _blank_scan(400, 400)
        image[50:150, 50:150] = 0.0
        image[250:350, 250:350] = 0.0

        # downscale, morphology, components and the first component pass
        event = SetAfter(4)

        with pytest.raises(Cancelled) as exc_info:
            detect_photos(image, cancel_event=event)
        assert exc_info.value.stage.startswith("component ")


class TestSelection:
    """Tests for count override, reordering and overlay drawing."""

    @pytest.fixture(scope="class")
    def photos(self):
        image = _blank_scan(400, 400)
        image[40:160, 40:160] = 0.0
        image[250:350, 250:350] = 0.0
        image[40:120, 250:330] = 0.0
        return detect_photos(image, min_relative_size=0.01)

    def test_select_count(self, photos):
        assert len(photos) == 3
        assert select_photos(photos, 0) == photos
        assert select_photos(photos, 2) == photos[:2]
        assert select_photos(photos, 10) == photos

    def test_select_negative(self, photos):
        with pytest.raises(ValueError):
            select_photos(photos, -1)

    def test_reorder(self, photos):
        reordered = reorder_photos(photos, [3, 1, 2])
        assert reordered == [photos[2], photos[0], photos[1]]

    def test_reorder_rejects_bad_permutation(self, photos):
        with pytest.raises(ValueError, match="permutation"):
            reorder_photos(photos, [1, 1, 2])

    def test_draw_detections(self, photos):
        image = _blank_scan(400, 400)

        overlay = draw_photo_detections(image, photos)

        assert overlay.shape == image.shape
        assert overlay.dtype == np.float32
        assert not np.array_equal(overlay, image)
