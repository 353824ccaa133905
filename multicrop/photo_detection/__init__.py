"""Photo detection and splitting module."""

from multicrop.photo_detection.models import DetectedPhoto, NormalizedQuad
from multicrop.photo_detection.detector import (
    detect_photos,
    draw_photo_detections,
    reorder_photos,
    select_photos,
)
from multicrop.photo_detection.splitter import rectify, rotate, rotate_cw90

__all__ = [
    "DetectedPhoto",
    "NormalizedQuad",
    "detect_photos",
    "draw_photo_detections",
    "reorder_photos",
    "select_photos",
    "rectify",
    "rotate",
    "rotate_cw90",
]
