"""Geometry primitives: convex hull, minimum-area rectangle, perspective warp."""

from multicrop.geometry.hull import convex_hull
from multicrop.geometry.min_rect import min_area_rect
from multicrop.geometry.perspective import compute_homography, warp_perspective

__all__ = [
    'convex_hull',
    'min_area_rect',
    'compute_homography',
    'warp_perspective',
]
