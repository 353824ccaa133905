"""Binarization of the working bitmap into photo content vs. scanner background."""

import logging

import numpy as np

logger = logging.getLogger(__name__)

# Cutoff runs from 200 (strict, only dark content) to 235 (catches faint prints)
_BASE_CUTOFF = 200
_SENSITIVITY_SPAN = 35


def threshold_cutoff(sensitivity: float) -> int:
    """Gray level below which a pixel counts as photo content.

    Args:
        sensitivity: Detection sensitivity in [0, 1]; higher accepts lighter pixels

    Returns:
        Cutoff in [0, 255]
    """
    cutoff = int(_BASE_CUTOFF + sensitivity * _SENSITIVITY_SPAN)
    return max(0, min(255, cutoff))


def threshold(gray: np.ndarray, sensitivity: float) -> np.ndarray:
    """Binarize a gray bitmap.

    Args:
        gray: uint8 working bitmap, shape (h, w)
        sensitivity: Detection sensitivity in [0, 1]

    Returns:
        Boolean mask, True where the pixel is strictly darker than the cutoff
    """
    cutoff = threshold_cutoff(sensitivity)
    mask = gray < cutoff

    logger.debug(
        f"Threshold cutoff={cutoff} (sensitivity={sensitivity:.2f}), "
        f"foreground={mask.mean():.2%}"
    )

    return mask
