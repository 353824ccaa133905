"""Result types shared by detection and splitting."""

from dataclasses import dataclass, field
from typing import Tuple

import numpy as np

NormalizedPoint = Tuple[float, float]


@dataclass(frozen=True)
class NormalizedQuad:
    """Photo corners as fractions of the image size, origin bottom-left, y up."""

    top_left: NormalizedPoint
    top_right: NormalizedPoint
    bottom_left: NormalizedPoint
    bottom_right: NormalizedPoint

    def as_array(self) -> np.ndarray:
        """Corners as a (4, 2) array ordered [TL, TR, BR, BL]."""
        return np.array(
            [self.top_left, self.top_right, self.bottom_right, self.bottom_left],
            dtype=np.float64,
        )


@dataclass
class DetectedPhoto:
    """A photo found on the scan, with its perspective-corrected crop.

    Equality compares quad, rotation and area; crop pixels are not compared.
    """

    quad: NormalizedQuad
    image: np.ndarray = field(compare=False)  # base crop, float32 RGB [0, 1]
    rotation: int = 0  # counter-clockwise degrees applied on top of the crop, multiple of 90
    area: int = 0  # component pixel count at working resolution

    @property
    def display_image(self) -> np.ndarray:
        """The crop with ``rotation`` applied."""
        quarter_turns = (self.rotation // 90) % 4
        if quarter_turns == 0:
            return self.image
        # np.rot90 turns counter-clockwise as displayed (row 0 at the top)
        return np.ascontiguousarray(np.rot90(self.image, k=quarter_turns))

    @property
    def size(self) -> Tuple[int, int]:
        """(width, height) of the displayed image."""
        h, w = self.display_image.shape[:2]
        return w, h
