"""Photo detection: find individual photographs on a flatbed scan.

The scan is expected to show several prints laid on a light, uniform
background. Detection runs entirely on a downscaled grayscale copy:

1. Threshold dark content against the light background
2. Morphological closing and hole filling, one solid blob per print
3. 4-connected component labeling
4. Convex hull and minimum-area rectangle per component
5. Perspective-corrected crop from the full-resolution image

Prints that touch each other merge into a single component and come back as
one detection.
"""

import logging
import threading
from typing import Dict, List, Optional, Sequence

import cv2
import numpy as np

from multicrop.geometry.hull import convex_hull
from multicrop.geometry.min_rect import min_area_rect
from multicrop.photo_detection.components import label_components
from multicrop.photo_detection.models import DetectedPhoto
from multicrop.photo_detection.morphology import clean_mask
from multicrop.photo_detection.splitter import quad_to_pixels, rectify
from multicrop.photo_detection.threshold import threshold
from multicrop.preprocessing.normalizer import to_working_bitmap
from multicrop.utils.cancellation import check_cancelled

logger = logging.getLogger(__name__)


def detect_photos(
    image: np.ndarray,
    sensitivity: float = 0.5,
    min_relative_size: float = 0.04,
    max_relative_size: float = 0.50,
    max_count: int = 20,
    trim_factor: float = 0.02,
    processing_size: int = 1000,
    cancel_event: Optional[threading.Event] = None,
    stages: Optional[Dict[str, np.ndarray]] = None,
) -> List[DetectedPhoto]:
    """Detect and crop every photo on a scanned sheet.

    Args:
        image: Full-resolution scan, float32 RGB [0, 1]
        sensitivity: 0..1, higher picks up lighter, low-contrast prints and
            bridges fewer gaps
        min_relative_size: Smallest accepted component, as a fraction of the
            working bitmap's pixel count
        max_relative_size: Largest accepted component, same units
        max_count: Maximum number of photos returned
        trim_factor: Fraction of the shorter crop side trimmed from each edge
        processing_size: Longer side of the working bitmap in pixels
        cancel_event: Set from another thread to abort detection
        stages: Optional dict that receives intermediate bitmaps
            ("gray", "threshold", "cleaned") for debug output

    Returns:
        Detected photos, largest component first; ties keep scan order

    Raises:
        Cancelled: If ``cancel_event`` was set; no partial result is returned
    """
    working = to_working_bitmap(image, processing_size)
    work_w, work_h = working.width, working.height
    check_cancelled(cancel_event, "downscale")

    mask = threshold(working.gray, sensitivity)
    cleaned = clean_mask(mask, sensitivity)
    check_cancelled(cancel_event, "morphology")

    if stages is not None:
        stages["gray"] = working.gray
        stages["threshold"] = mask
        stages["cleaned"] = cleaned

    components = label_components(cleaned)

    total_pixels = working.total_pixels
    min_pixels = int(total_pixels * min_relative_size)
    max_pixels = int(total_pixels * max_relative_size)

    # sorted() is stable, equal areas keep their label (scan) order
    candidates = sorted(
        (c for c in components if min_pixels <= c.area <= max_pixels),
        key=lambda c: c.area,
        reverse=True,
    )[:max_count]

    logger.info(
        f"{len(components)} components, {len(candidates)} within "
        f"[{min_pixels}, {max_pixels}] px (max_count={max_count})"
    )

    check_cancelled(cancel_event, "components")

    photos: List[DetectedPhoto] = []
    for comp in candidates:
        check_cancelled(cancel_event, f"component {comp.label}")

        hull = convex_hull(comp.boundary)
        if len(hull) < 3:
            logger.debug(f"Component {comp.label}: hull has {len(hull)} points, skipping")
            continue

        rect = min_area_rect(hull)
        photo = rectify(rect, (work_w, work_h), image, trim_factor, area=comp.area)
        if photo is None:
            logger.debug(f"Component {comp.label}: rectification failed, skipping")
            continue

        logger.debug(
            f"Component {comp.label}: area={comp.area}, hull={len(hull)} pts, "
            f"crop={photo.image.shape[1]}x{photo.image.shape[0]}"
        )
        photos.append(photo)

    logger.info(f"Detected {len(photos)} photos")

    return photos


def select_photos(photos: Sequence[DetectedPhoto], count: int = 0) -> List[DetectedPhoto]:
    """Keep the first ``count`` photos; 0 keeps all of them."""
    if count < 0:
        raise ValueError(f"Photo count must be >= 0, got {count}")
    if count == 0:
        return list(photos)
    return list(photos[:count])


def reorder_photos(photos: Sequence[DetectedPhoto], order: Sequence[int]) -> List[DetectedPhoto]:
    """Rearrange photos into a caller-chosen order.

    Args:
        photos: Photos in detection order
        order: 1-based indices into ``photos``, a permutation of 1..len(photos)

    Returns:
        Photos in the new order

    Raises:
        ValueError: If ``order`` is not a permutation of the photo indices
    """
    if sorted(order) != list(range(1, len(photos) + 1)):
        raise ValueError(
            f"Order {list(order)} is not a permutation of 1..{len(photos)}"
        )
    return [photos[i - 1] for i in order]


def draw_photo_detections(
    page_image: np.ndarray,
    photos: Sequence[DetectedPhoto],
) -> np.ndarray:
    """Draw detected photo quads on the scan for visualization.

    Args:
        page_image: Scan image, float32 RGB [0, 1]
        photos: Detected photos

    Returns:
        Visualization image with colored outlines and labels, float32 RGB [0, 1]
    """
    vis = np.clip(page_image * 255 + 0.5, 0, 255).astype(np.uint8).copy()
    h, w = vis.shape[:2]
    thickness = max(2, min(h, w) // 300)

    # Color palette for multiple photos (RGB)
    colors = [
        (0, 255, 0),    # Green
        (0, 0, 255),    # Blue
        (255, 0, 0),    # Red
        (0, 255, 255),  # Cyan
        (255, 0, 255),  # Magenta
        (255, 255, 0),  # Yellow
        (128, 255, 0),  # Spring green
        (255, 128, 0),  # Orange
    ]

    for i, photo in enumerate(photos):
        color = colors[i % len(colors)]
        corners = np.rint(quad_to_pixels(photo.quad, w, h)).astype(np.int32)

        cv2.polylines(vis, [corners], isClosed=True, color=color, thickness=thickness)
        for corner in corners:
            cv2.circle(vis, tuple(int(v) for v in corner), thickness * 3, (255, 0, 0), -1)

        label = f"Photo {i + 1}"
        if photo.rotation:
            label += f" ({photo.rotation} deg)"
        x, y = (int(v) for v in corners.min(axis=0))
        cv2.putText(
            vis,
            label,
            (x + 5, max(y - 5, 20)),
            cv2.FONT_HERSHEY_SIMPLEX,
            0.6 * thickness / 2,
            color,
            thickness,
        )

    return vis.astype(np.float32) / 255.0
