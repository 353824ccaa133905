"""Connected-component labeling of the cleaned foreground mask."""

import logging
from collections import deque
from dataclasses import dataclass, field
from typing import List, Tuple

import numpy as np

logger = logging.getLogger(__name__)


@dataclass
class Component:
    """A 4-connected foreground region."""

    label: int  # discovery order in the row-major scan
    area: int = 0  # pixel count
    boundary: List[Tuple[int, int]] = field(default_factory=list)  # (x, y) pixels next to background or edge


def label_components(mask: np.ndarray) -> List[Component]:
    """Label 4-connected foreground regions.

    Pixels are scanned in row-major order. The first unlabeled foreground pixel
    seeds a breadth-first flood (explicit queue) that assigns the next label,
    counts the area and records boundary pixels: those with a background
    4-neighbour or lying on the bitmap edge. Boundary pixels are enough for
    the convex hull, since the hull of a region's boundary equals the hull of
    the whole region.

    Args:
        mask: Boolean foreground mask (h, w)

    Returns:
        Components in label order (0, 1, 2, ...)
    """
    h, w = mask.shape
    flat = mask.ravel().tolist()
    labels = [-1] * (h * w)
    components: List[Component] = []

    last_col = w - 1
    last_row_start = (h - 1) * w

    # np.flatnonzero walks indices in row-major order, same as a y/x double loop
    for start in np.flatnonzero(mask).tolist():
        if labels[start] != -1:
            continue

        label = len(components)
        comp = Component(label=label)
        labels[start] = label
        queue = deque([start])

        while queue:
            idx = queue.popleft()
            comp.area += 1
            x = idx % w
            is_boundary = False

            neighbours = []
            if x > 0:
                neighbours.append(idx - 1)
            else:
                is_boundary = True
            if x < last_col:
                neighbours.append(idx + 1)
            else:
                is_boundary = True
            if idx >= w:
                neighbours.append(idx - w)
            else:
                is_boundary = True
            if idx < last_row_start:
                neighbours.append(idx + w)
            else:
                is_boundary = True

            for n in neighbours:
                if not flat[n]:
                    is_boundary = True
                elif labels[n] == -1:
                    labels[n] = label
                    queue.append(n)

            if is_boundary:
                comp.boundary.append((x, idx // w))

        components.append(comp)

    logger.debug(f"Labeled {len(components)} connected components")

    return components
