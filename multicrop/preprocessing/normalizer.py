"""Downscaling to the fixed processing resolution and grayscale reduction."""

import logging

import cv2
import numpy as np

logger = logging.getLogger(__name__)

# Rec. 601 luma weights, R, G, B
_LUMA_WEIGHTS = np.array([0.299, 0.587, 0.114], dtype=np.float32)


class WorkingBitmap:
    """Grayscale working copy of the source image."""

    def __init__(
        self,
        gray: np.ndarray,
        scale_factor: float
    ) -> None:
        self.gray = gray  # uint8 (h, w)
        self.scale_factor = scale_factor  # working / full resolution

    @property
    def width(self) -> int:
        return self.gray.shape[1]

    @property
    def height(self) -> int:
        return self.gray.shape[0]

    @property
    def total_pixels(self) -> int:
        return self.gray.size


def to_grayscale(image: np.ndarray) -> np.ndarray:
    """Reduce an RGB image to 8-bit luma.

    Args:
        image: float32 RGB [0, 1] with shape (H, W, 3), or an already gray (H, W) array

    Returns:
        uint8 array with shape (H, W)
    """
    if image.ndim == 2:
        luma = image.astype(np.float32)
    else:
        luma = image[:, :, :3].astype(np.float32) @ _LUMA_WEIGHTS
    return np.clip(np.rint(luma * 255.0), 0, 255).astype(np.uint8)


def to_working_bitmap(
    image: np.ndarray,
    processing_size: int = 1000,
) -> WorkingBitmap:
    """Downscale the source so its longer side is at most ``processing_size`` and convert to gray.

    Args:
        image: Source image as float32 RGB [0,1] array
        processing_size: Maximum dimension (width or height) of the working bitmap

    Returns:
        WorkingBitmap with the gray pixels and the scale factor back to full resolution
    """
    height, width = image.shape[:2]
    original_max_dim = max(height, width)

    if original_max_dim > processing_size:
        scale_factor = processing_size / original_max_dim
        new_width = max(1, int(width * scale_factor))
        new_height = max(1, int(height * scale_factor))

        # Convert to uint8 for OpenCV resize
        img_uint8 = np.clip(image * 255.0 + 0.5, 0, 255).astype(np.uint8)

        # Resize using INTER_AREA (best for downscaling)
        resized_uint8 = cv2.resize(
            img_uint8,
            (new_width, new_height),
            interpolation=cv2.INTER_AREA
        )
        working = resized_uint8.astype(np.float32) / 255.0

        logger.info(
            f"Resized image from {width}x{height} to {new_width}x{new_height} "
            f"(scale: {scale_factor:.3f})"
        )
    else:
        working = image
        scale_factor = 1.0
        logger.info(f"Image {width}x{height} within processing size, no resize needed")

    return WorkingBitmap(gray=to_grayscale(working), scale_factor=scale_factor)
