"""Photo splitting, turning fitted rectangles into perspective-corrected crops."""

import dataclasses
import logging
import math
from typing import Optional, Tuple

import numpy as np

from multicrop.geometry.hull import polygon_area
from multicrop.geometry.perspective import output_dimensions, warp_perspective
from multicrop.photo_detection.models import DetectedPhoto, NormalizedQuad

logger = logging.getLogger(__name__)

_MIN_TRIM_PX = 2


def normalize_rect(rect: np.ndarray, width: int, height: int) -> NormalizedQuad:
    """Convert rectangle corners in working pixels to a role-labelled normalized quad.

    Corners are divided by the bitmap size and y is flipped so it points up.
    The two corners with the largest y become the top pair and the other two
    the bottom pair; each pair is ordered left to right. The result does not
    depend on the order the corners were found in.

    Args:
        rect: (4, 2) corners in working-bitmap pixels, y down
        width: Working bitmap width
        height: Working bitmap height

    Returns:
        NormalizedQuad in [0, 1] with y up
    """
    corners = [
        (float(x) / width, 1.0 - float(y) / height)
        for x, y in np.asarray(rect, dtype=np.float64)
    ]
    by_height = sorted(corners, key=lambda p: p[1], reverse=True)
    top = sorted(by_height[:2], key=lambda p: p[0])
    bottom = sorted(by_height[2:], key=lambda p: p[0])

    return NormalizedQuad(
        top_left=top[0],
        top_right=top[1],
        bottom_left=bottom[0],
        bottom_right=bottom[1],
    )


def quad_to_pixels(quad: NormalizedQuad, width: int, height: int) -> np.ndarray:
    """Map a normalized quad onto an image of the given size.

    Args:
        quad: Normalized corners, y up
        width: Target image width in pixels
        height: Target image height in pixels

    Returns:
        (4, 2) pixel corners as [TL, TR, BR, BL], y down
    """
    pts = quad.as_array()
    return np.column_stack([pts[:, 0] * width, (1.0 - pts[:, 1]) * height])


def rectify(
    rect: np.ndarray,
    working_size: Tuple[int, int],
    full_image: np.ndarray,
    trim_factor: float = 0.02,
    area: int = 0,
) -> Optional[DetectedPhoto]:
    """Extract one photo from the full-resolution image.

    Args:
        rect: (4, 2) rectangle corners in working-bitmap pixels
        working_size: (width, height) of the working bitmap
        full_image: Full-resolution source, float32 RGB [0, 1]
        trim_factor: Fraction of the shorter side trimmed from every edge
        area: Component area to record on the result

    Returns:
        DetectedPhoto, or None if the quad is degenerate or trimming leaves nothing
    """
    work_w, work_h = working_size
    quad = normalize_rect(rect, work_w, work_h)

    full_h, full_w = full_image.shape[:2]
    corners = quad_to_pixels(quad, full_w, full_h)

    if abs(polygon_area([tuple(p) for p in corners])) < 1.0:
        logger.debug("Skipping degenerate quad with zero area")
        return None

    out_w, out_h = output_dimensions(corners)
    # Half-up, so a 2.9 px margin trims 3 px
    trim = max(_MIN_TRIM_PX, int(math.floor(trim_factor * min(out_w, out_h) + 0.5)))
    if out_w - 2 * trim <= 0 or out_h - 2 * trim <= 0:
        logger.debug(f"Skipping {out_w}x{out_h} crop, trim of {trim}px leaves nothing")
        return None

    try:
        warped = warp_perspective(full_image, corners, (out_w, out_h))
    except (np.linalg.LinAlgError, ValueError) as e:
        logger.debug(f"Skipping quad, perspective transform failed: {e}")
        return None

    cropped = np.ascontiguousarray(warped[trim:out_h - trim, trim:out_w - trim])

    return DetectedPhoto(quad=quad, image=cropped, rotation=0, area=area)


def rotate(photo: DetectedPhoto, degrees: int) -> DetectedPhoto:
    """Return a copy of ``photo`` turned by a multiple of 90 degrees.

    Positive values turn counter-clockwise. The base crop is shared, only the
    rotation changes; the turned pixels come from ``display_image``.

    Args:
        photo: Photo to rotate
        degrees: Rotation in degrees, a multiple of 90

    Returns:
        New DetectedPhoto with the rotation normalized to [0, 360)

    Raises:
        ValueError: If ``degrees`` is not a multiple of 90
    """
    if degrees % 90 != 0:
        raise ValueError(f"Rotation must be a multiple of 90 degrees, got {degrees}")
    return dataclasses.replace(photo, rotation=(photo.rotation + int(degrees)) % 360)


def rotate_cw90(photo: DetectedPhoto) -> DetectedPhoto:
    """Rotate right by a quarter turn."""
    return rotate(photo, -90)
