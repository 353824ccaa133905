"""Perspective correction via homographic transform.

Takes four corner points of a (possibly skewed) quadrilateral and resamples
the enclosed region onto an axis-aligned rectangle. The homography is solved
directly and every output pixel is pulled through the inverse mapping with
bilinear interpolation.
"""

import logging
from typing import Tuple

import numpy as np

logger = logging.getLogger(__name__)

# Output rows resampled per batch, keeps coordinate grids small for large crops
_ROWS_PER_CHUNK = 256


def _has_collinear_triple(pts: np.ndarray) -> bool:
    """True if any three of the four points are (numerically) collinear."""
    scale = max(float(np.ptp(pts[:, 0])), float(np.ptp(pts[:, 1])), 1e-12)
    for skip in range(4):
        a, b, c = (pts[i] for i in range(4) if i != skip)
        cross = (b[0] - a[0]) * (c[1] - a[1]) - (b[1] - a[1]) * (c[0] - a[0])
        if abs(cross) <= 1e-9 * scale * scale:
            return True
    return False


def compute_homography(src: np.ndarray, dst: np.ndarray) -> np.ndarray:
    """Solve the 3x3 projective transform mapping four ``src`` points onto ``dst``.

    Args:
        src: (4, 2) source points
        dst: (4, 2) destination points

    Returns:
        3x3 matrix ``H`` with ``H[2, 2] == 1`` such that ``dst ~ H @ [x, y, 1]``

    Raises:
        numpy.linalg.LinAlgError: If the points are degenerate (three collinear)
    """
    src = np.asarray(src, dtype=np.float64)
    dst = np.asarray(dst, dtype=np.float64)

    if _has_collinear_triple(src) or _has_collinear_triple(dst):
        raise np.linalg.LinAlgError("Degenerate quadrilateral, three corners are collinear")

    a = np.zeros((8, 8), dtype=np.float64)
    b = np.zeros(8, dtype=np.float64)
    for i in range(4):
        x, y = src[i]
        u, v = dst[i]
        a[2 * i] = [x, y, 1, 0, 0, 0, -u * x, -u * y]
        a[2 * i + 1] = [0, 0, 0, x, y, 1, -v * x, -v * y]
        b[2 * i] = u
        b[2 * i + 1] = v

    h = np.linalg.solve(a, b)
    if not np.all(np.isfinite(h)):
        raise np.linalg.LinAlgError("Homography has non-finite coefficients")

    return np.append(h, 1.0).reshape(3, 3)


def output_dimensions(corners: np.ndarray) -> Tuple[int, int]:
    """Compute output rectangle dimensions from corner points.

    Width is the average of the top and bottom edge lengths, height the
    average of the left and right edge lengths.

    Args:
        corners: Ordered corner points (4, 2) as [TL, TR, BR, BL].

    Returns:
        (width, height) in pixels.
    """
    tl, tr, br, bl = np.asarray(corners, dtype=np.float64)

    width = int(round((np.linalg.norm(tr - tl) + np.linalg.norm(br - bl)) / 2))
    height = int(round((np.linalg.norm(bl - tl) + np.linalg.norm(br - tr)) / 2))

    return width, height


def _sample_bilinear(image: np.ndarray, xs: np.ndarray, ys: np.ndarray) -> np.ndarray:
    """Bilinear lookup with edge replication for out-of-range coordinates."""
    h, w = image.shape[:2]
    xs = np.clip(xs, 0.0, w - 1)
    ys = np.clip(ys, 0.0, h - 1)

    x0 = np.floor(xs).astype(np.intp)
    y0 = np.floor(ys).astype(np.intp)
    x1 = np.minimum(x0 + 1, w - 1)
    y1 = np.minimum(y0 + 1, h - 1)

    fx = (xs - x0)[..., None].astype(np.float32)
    fy = (ys - y0)[..., None].astype(np.float32)

    top = image[y0, x0] * (1 - fx) + image[y0, x1] * fx
    bottom = image[y1, x0] * (1 - fx) + image[y1, x1] * fx
    return top * (1 - fy) + bottom * fy


def warp_perspective(
    image: np.ndarray,
    corners: np.ndarray,
    size: Tuple[int, int],
) -> np.ndarray:
    """Warp the quadrilateral ``corners`` of ``image`` onto a ``size`` rectangle.

    Args:
        image: Input image as float32 RGB [0, 1], shape (H, W, 3).
        corners: Corner points (4, 2) as [TL, TR, BR, BL] in image pixels.
        size: Output (width, height).

    Returns:
        Perspective-corrected image as float32 RGB [0, 1], shape (height, width, 3).

    Raises:
        ValueError: If ``size`` is not positive
        numpy.linalg.LinAlgError: If the corners are degenerate
    """
    width, height = size
    if width <= 0 or height <= 0:
        raise ValueError(f"Invalid output size {width}x{height}")

    dst = np.array([
        [0, 0],
        [width - 1, 0],
        [width - 1, height - 1],
        [0, height - 1],
    ], dtype=np.float64)

    # Maps output pixels back into the source, so every output pixel gets a value
    inverse = compute_homography(dst, np.asarray(corners, dtype=np.float64))

    src = image if image.ndim == 3 else image[:, :, None]
    out = np.empty((height, width, src.shape[2]), dtype=np.float32)

    us = np.arange(width, dtype=np.float64)
    for row_start in range(0, height, _ROWS_PER_CHUNK):
        row_end = min(height, row_start + _ROWS_PER_CHUNK)
        vs = np.arange(row_start, row_end, dtype=np.float64)
        grid_u, grid_v = np.meshgrid(us, vs)

        denom = inverse[2, 0] * grid_u + inverse[2, 1] * grid_v + inverse[2, 2]
        denom = np.where(np.abs(denom) < 1e-12, 1e-12, denom)
        src_x = (inverse[0, 0] * grid_u + inverse[0, 1] * grid_v + inverse[0, 2]) / denom
        src_y = (inverse[1, 0] * grid_u + inverse[1, 1] * grid_v + inverse[1, 2]) / denom

        out[row_start:row_end] = _sample_bilinear(src, src_x, src_y)

    logger.debug(
        f"Perspective corrected: {image.shape[1]}x{image.shape[0]} -> {width}x{height}"
    )

    return out if image.ndim == 3 else out[:, :, 0]
