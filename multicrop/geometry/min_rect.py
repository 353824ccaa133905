"""Minimum-area bounding rectangle of a convex hull."""

import logging
import math
from typing import Sequence, Tuple

import numpy as np

logger = logging.getLogger(__name__)


def _bounding_box_corners(points: Sequence[Tuple[float, float]]) -> np.ndarray:
    xs = [p[0] for p in points]
    ys = [p[1] for p in points]
    x_min, x_max = min(xs), max(xs)
    y_min, y_max = min(ys), max(ys)
    return np.array(
        [[x_min, y_min], [x_max, y_min], [x_min, y_max], [x_max, y_max]],
        dtype=np.float64,
    )


def min_area_rect(hull: Sequence[Tuple[float, float]]) -> np.ndarray:
    """Find the smallest-area rectangle, at any rotation, enclosing a convex hull.

    For every hull edge the hull is rotated so that edge lies on the x axis,
    the axis-aligned box of the rotated points is measured, and the box with
    the smallest area is rotated back. The optimal rectangle always has a side
    collinear with a hull edge, so checking each edge is exact. Cost is
    O(n^2) in hull size, which stays small for photo outlines.

    Args:
        hull: Convex polygon vertices (x, y), in order

    Returns:
        (4, 2) float array of corners, ordered (min u, min v), (max u, min v),
        (min u, max v), (max u, max v) in the rectangle's own rotated frame.
        Hulls with fewer than three points fall back to the axis-aligned
        bounding box in the same corner order.

    Raises:
        ValueError: If ``hull`` is empty
    """
    if len(hull) == 0:
        raise ValueError("Cannot fit a rectangle to an empty point set")

    if len(hull) < 3:
        return _bounding_box_corners(hull)

    pts = np.asarray(hull, dtype=np.float64)
    n = len(pts)

    best_area = math.inf
    best = _bounding_box_corners(hull)

    for i in range(n):
        j = (i + 1) % n
        edge_x = pts[j, 0] - pts[i, 0]
        edge_y = pts[j, 1] - pts[i, 1]
        angle = math.atan2(edge_y, edge_x)
        cos_a, sin_a = math.cos(-angle), math.sin(-angle)

        rx = pts[:, 0] * cos_a - pts[:, 1] * sin_a
        ry = pts[:, 0] * sin_a + pts[:, 1] * cos_a
        min_rx, max_rx = rx.min(), rx.max()
        min_ry, max_ry = ry.min(), ry.max()

        area = (max_rx - min_rx) * (max_ry - min_ry)
        if area < best_area:
            best_area = area
            cos_b, sin_b = math.cos(angle), math.sin(angle)
            box = np.array(
                [[min_rx, min_ry], [max_rx, min_ry], [min_rx, max_ry], [max_rx, max_ry]]
            )
            best = np.column_stack([
                box[:, 0] * cos_b - box[:, 1] * sin_b,
                box[:, 0] * sin_b + box[:, 1] * cos_b,
            ])

    logger.debug(f"Min-area rect over {n} hull points: area={best_area:.1f}")

    return best
