"""Image encoding helpers and debug output."""

import logging
from pathlib import Path
from typing import Optional, Union

import cv2
import numpy as np

logger = logging.getLogger(__name__)


def to_bgr_uint8(image: np.ndarray) -> np.ndarray:
    """Convert a float [0,1] / uint8 / bool image of 1, 3 or 4 channels to OpenCV BGR uint8."""
    if image.dtype == np.bool_:
        img_uint8 = image.astype(np.uint8) * 255
    elif image.dtype in (np.float32, np.float64):
        img_uint8 = np.clip(image * 255 + 0.5, 0, 255).astype(np.uint8)
    else:
        img_uint8 = image.astype(np.uint8)

    if img_uint8.ndim == 2:
        return cv2.cvtColor(img_uint8, cv2.COLOR_GRAY2BGR)
    elif img_uint8.shape[2] == 3:
        return cv2.cvtColor(img_uint8, cv2.COLOR_RGB2BGR)
    elif img_uint8.shape[2] == 4:
        return cv2.cvtColor(img_uint8, cv2.COLOR_RGBA2BGR)
    raise ValueError(f"Unsupported number of channels: {img_uint8.shape[2]}")


def write_image(
    image: np.ndarray,
    output_path: Union[str, Path],
    quality: int = 92,
) -> bool:
    """Encode an image as PNG or JPEG depending on the path suffix.

    Args:
        image: Image array as float32 RGB [0,1], uint8 RGB or a mask
        output_path: Destination; ``.png`` writes PNG, anything else JPEG
        quality: JPEG quality (0-100)

    Returns:
        True if OpenCV reported a successful write
    """
    output_path = Path(output_path)
    img_bgr = to_bgr_uint8(image)

    if output_path.suffix.lower() == '.png':
        params = [cv2.IMWRITE_PNG_COMPRESSION, 6]
    else:
        params = [cv2.IMWRITE_JPEG_QUALITY, quality]

    return bool(cv2.imwrite(str(output_path), img_bgr, params))


def save_debug_image(
    image: np.ndarray,
    output_path: Union[str, Path],
    description: Optional[str] = None,
    quality: int = 95
) -> None:
    """Save debug image with step numbering, always as JPEG for easy viewing.

    Args:
        image: Image array as float32 RGB [0,1], uint8 RGB [0,255], or bool mask
        output_path: Path to save debug image (should include step number prefix)
        description: Optional description to log
        quality: JPEG quality (0-100)
    """
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    if output_path.suffix.lower() not in ['.jpg', '.jpeg']:
        output_path = output_path.with_suffix('.jpg')

    if not write_image(image, output_path, quality=quality):
        logger.warning(f"Could not write debug image: {output_path}")
        return

    if description:
        logger.debug(f"Saved debug image: {output_path} - {description}")
    else:
        logger.debug(f"Saved debug image: {output_path}")
