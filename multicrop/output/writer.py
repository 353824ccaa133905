"""Persist detected photos as numbered files next to the scan."""

import logging
from pathlib import Path
from typing import List, Optional, Sequence, Union

from multicrop.errors import NoPhotosFound
from multicrop.photo_detection.models import DetectedPhoto
from multicrop.utils.debug import write_image

logger = logging.getLogger(__name__)


def output_extension(source_path: Union[str, Path]) -> str:
    """PNG scans stay PNG, everything else is written as JPEG."""
    return "png" if Path(source_path).suffix.lower() == ".png" else "jpg"


def save_photos(
    photos: Sequence[DetectedPhoto],
    source_path: Union[str, Path],
    output_dir: Optional[Union[str, Path]] = None,
    jpeg_quality: int = 92,
) -> List[Path]:
    """Write each photo as ``<stem>_<n>.<ext>``, numbered from 1.

    The rotated ``display_image`` is written. Files whose encoding fails are
    skipped.

    Args:
        photos: Photos in output order
        source_path: The scan the photos came from; names and default directory derive from it
        output_dir: Directory for the files, defaults to the scan's directory
        jpeg_quality: JPEG quality (0-100)

    Returns:
        Paths of the written files, in photo order

    Raises:
        NoPhotosFound: If ``photos`` is empty or no file could be written
    """
    if not photos:
        raise NoPhotosFound("No photos to save")

    source = Path(source_path)
    directory = Path(output_dir) if output_dir is not None else source.parent
    directory.mkdir(parents=True, exist_ok=True)
    ext = output_extension(source)

    written: List[Path] = []
    for i, photo in enumerate(photos, 1):
        path = directory / f"{source.stem}_{i}.{ext}"
        if write_image(photo.display_image, path, quality=jpeg_quality):
            written.append(path)
            logger.info(f"Saved: {path.name} ({photo.size[0]}x{photo.size[1]})")
        else:
            logger.warning(f"Failed to write {path}")

    if not written:
        raise NoPhotosFound(f"None of {len(photos)} photos could be written")

    return written
