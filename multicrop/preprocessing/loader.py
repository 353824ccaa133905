"""Image loading for scanned sheets: JPEG, PNG, TIFF and friends, plus HEIC and RAW."""

import logging
from pathlib import Path
from typing import Tuple, Union

import numpy as np
from PIL import Image, ImageOps, UnidentifiedImageError

from multicrop.errors import CannotLoadImage

logger = logging.getLogger(__name__)

STANDARD_EXTENSIONS = ('.jpg', '.jpeg', '.png', '.tiff', '.tif', '.bmp', '.gif', '.webp')
HEIC_EXTENSIONS = ('.heic', '.heif')
RAW_EXTENSIONS = ('.dng', '.cr2', '.nef', '.arw')

SUPPORTED_EXTENSIONS = STANDARD_EXTENSIONS + HEIC_EXTENSIONS + RAW_EXTENSIONS


class ImageMetadata:
    """Metadata extracted from loaded image."""

    def __init__(
        self,
        original_size: Tuple[int, int],
        format: str,
        bit_depth: int,
    ) -> None:
        self.original_size = original_size  # (width, height)
        self.format = format
        self.bit_depth = bit_depth


# Single-channel modes with more than 8 bits per pixel (16-bit PNG/TIFF scans)
HIGH_DEPTH_MODES = ('I;16', 'I;16L', 'I;16B', 'I;16N', 'I', 'F')


def _to_rgb_array(img: Image.Image) -> Tuple[np.ndarray, int]:
    """Convert a PIL image of any mode to float32 RGB [0, 1].

    Returns:
        Tuple of (RGB array, bit depth of the source samples)
    """
    if img.mode in HIGH_DEPTH_MODES:
        gray = np.asarray(img, dtype=np.float32)
        # Integer modes hold 16-bit samples; float data is scaled by its own peak
        scale = 65535.0 if img.mode != 'F' else max(1.0, float(gray.max(initial=0.0)))
        gray = np.clip(gray / scale, 0.0, 1.0)
        return np.repeat(gray[:, :, None], 3, axis=2), 16

    has_alpha = 'A' in img.getbands() or (img.mode == 'P' and 'transparency' in img.info)
    if has_alpha:
        # Transparent areas read as white background, not black content
        white = Image.new('RGBA', img.size, (255, 255, 255, 255))
        img = Image.alpha_composite(white, img.convert('RGBA'))

    if img.mode != 'RGB':
        img = img.convert('RGB')
    return np.asarray(img, dtype=np.float32) / 255.0, 8


def load_heic(path: Path) -> Tuple[np.ndarray, ImageMetadata]:
    """Load HEIC/HEIF image using pillow-heif.

    Args:
        path: Path to HEIC file

    Returns:
        Tuple of (RGB array as float32 [0,1], metadata)
    """
    try:
        from pillow_heif import register_heif_opener
    except ImportError as e:
        raise CannotLoadImage(
            str(path), "pillow-heif is required for HEIC support, install with: pip install pillow-heif"
        ) from e
    register_heif_opener()

    return load_standard(path, format_name="HEIC")


def load_raw(path: Path) -> Tuple[np.ndarray, ImageMetadata]:
    """Load DNG/RAW image using rawpy.

    Args:
        path: Path to RAW file

    Returns:
        Tuple of (RGB array as float32 [0,1], metadata)
    """
    try:
        import rawpy
    except ImportError as e:
        raise CannotLoadImage(
            str(path), "rawpy is required for DNG/RAW support, install with: pip install rawpy"
        ) from e

    try:
        with rawpy.imread(str(path)) as raw:
            original_size = (raw.sizes.width, raw.sizes.height)
            rgb = raw.postprocess(
                use_camera_wb=True,
                output_color=rawpy.ColorSpace.sRGB,
                output_bps=16,
                no_auto_bright=False,
            )
    except (rawpy.LibRawError, OSError) as e:
        raise CannotLoadImage(str(path), str(e)) from e

    arr = rgb.astype(np.float32) / 65535.0

    metadata = ImageMetadata(
        original_size=original_size,
        format="DNG",
        bit_depth=16
    )

    logger.info(f"Loaded RAW: {path} ({arr.shape[1]}x{arr.shape[0]}, 16-bit)")

    return arr, metadata


def load_standard(path: Path, format_name: str = "") -> Tuple[np.ndarray, ImageMetadata]:
    """Load JPEG, PNG, TIFF and other Pillow-readable formats.

    Args:
        path: Path to image file
        format_name: Format label for the metadata, derived from the suffix when empty

    Returns:
        Tuple of (RGB array as float32 [0,1], metadata)
    """
    try:
        with Image.open(path) as img:
            original_size = img.size
            # Scanners and phones both write EXIF orientation; honour it before detection
            img = ImageOps.exif_transpose(img)
            arr, bit_depth = _to_rgb_array(img)
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError, ValueError) as e:
        raise CannotLoadImage(str(path), str(e)) from e

    if not format_name:
        format_name = path.suffix.lower().lstrip('.').upper()

    metadata = ImageMetadata(
        original_size=original_size,
        format=format_name,
        bit_depth=bit_depth
    )

    logger.info(f"Loaded {format_name}: {path} ({arr.shape[1]}x{arr.shape[0]}, {bit_depth}-bit)")

    return arr, metadata


def load_image(path: Union[str, Path]) -> Tuple[np.ndarray, ImageMetadata]:
    """Load image from any supported format.

    Returns normalized float32 RGB array [0, 1].

    Args:
        path: Path to image file

    Returns:
        Tuple of (RGB array as float32 [0,1] with shape (H, W, 3), metadata)

    Raises:
        CannotLoadImage: If the file does not exist, has an unsupported
            extension, or cannot be decoded
    """
    path_obj = Path(path)

    if not path_obj.is_file():
        raise CannotLoadImage(str(path), "file not found")

    ext = path_obj.suffix.lower()

    if ext in HEIC_EXTENSIONS:
        return load_heic(path_obj)
    elif ext in RAW_EXTENSIONS:
        return load_raw(path_obj)
    elif ext in STANDARD_EXTENSIONS:
        return load_standard(path_obj)
    else:
        raise CannotLoadImage(str(path), f"unsupported image format: {ext}")
