"""Main pipeline orchestrator: load a scan, detect photos, save crops."""

import logging
import os
import threading
import time
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Dict, List, Optional, Union

from multicrop.output.writer import save_photos
from multicrop.photo_detection.detector import detect_photos, draw_photo_detections
from multicrop.photo_detection.models import DetectedPhoto
from multicrop.preprocessing.loader import ImageMetadata, load_image

logger = logging.getLogger(__name__)

# Environment variables that override PipelineConfig defaults
ENV_PREFIX = "MULTICROP_"
_ENV_FIELDS = {
    "sensitivity": "SENSITIVITY",
    "min_relative_size": "MIN_SIZE",
    "max_relative_size": "MAX_SIZE",
    "max_count": "MAX_COUNT",
    "trim_factor": "TRIM_FACTOR",
    "processing_size": "PROCESSING_SIZE",
    "jpeg_quality": "JPEG_QUALITY",
}


@dataclass
class PipelineConfig:
    """All tunable parameters in one place."""

    # Detection
    sensitivity: float = 0.5
    min_relative_size: float = 0.04  # fraction of working pixels
    max_relative_size: float = 0.50
    max_count: int = 20
    trim_factor: float = 0.02

    # Preprocessing
    processing_size: int = 1000  # px, longest edge of the working bitmap

    # Output
    jpeg_quality: int = 92

    def validate(self) -> "PipelineConfig":
        """Check parameter ranges.

        Raises:
            ValueError: On the first out-of-range parameter
        """
        if not 0.0 <= self.sensitivity <= 1.0:
            raise ValueError(f"sensitivity must be in [0, 1], got {self.sensitivity}")
        if not 0.0 < self.min_relative_size <= 1.0:
            raise ValueError(f"min_relative_size must be in (0, 1], got {self.min_relative_size}")
        if not 0.0 < self.max_relative_size <= 1.0:
            raise ValueError(f"max_relative_size must be in (0, 1], got {self.max_relative_size}")
        if self.min_relative_size > self.max_relative_size:
            raise ValueError(
                f"min_relative_size ({self.min_relative_size}) exceeds "
                f"max_relative_size ({self.max_relative_size})"
            )
        if self.max_count < 1:
            raise ValueError(f"max_count must be >= 1, got {self.max_count}")
        if not 0.0 <= self.trim_factor < 0.5:
            raise ValueError(f"trim_factor must be in [0, 0.5), got {self.trim_factor}")
        if self.processing_size < 16:
            raise ValueError(f"processing_size must be >= 16, got {self.processing_size}")
        if not 0 <= self.jpeg_quality <= 100:
            raise ValueError(f"jpeg_quality must be in [0, 100], got {self.jpeg_quality}")
        return self

    @classmethod
    def from_env(cls, environ: Optional[Dict[str, str]] = None) -> "PipelineConfig":
        """Build a config from ``MULTICROP_*`` environment variables over the defaults.

        Args:
            environ: Mapping to read instead of ``os.environ``

        Raises:
            ValueError: If a variable does not parse or is out of range
        """
        env = os.environ if environ is None else environ
        types = {f.name: f.type for f in fields(cls)}
        values = {}

        for name, suffix in _ENV_FIELDS.items():
            raw = env.get(ENV_PREFIX + suffix, "").strip()
            if not raw:
                continue
            cast = int if types[name] in (int, "int") else float
            try:
                values[name] = cast(raw)
            except ValueError as e:
                raise ValueError(f"Invalid {ENV_PREFIX + suffix}={raw!r}: {e}") from e
            logger.debug(f"Config override from environment: {name}={values[name]}")

        return cls(**values).validate()


@dataclass
class PipelineResult:
    """Result of pipeline processing."""

    photos: List[DetectedPhoto]
    metadata: ImageMetadata
    source_path: Path
    processing_time: float
    step_times: Dict[str, float] = field(default_factory=dict)

    @property
    def num_photos(self) -> int:
        return len(self.photos)


class Pipeline:
    """Splits flatbed scans of several prints into individual photos."""

    def __init__(self, config: Optional[PipelineConfig] = None) -> None:
        """Initialize pipeline with configuration.

        Args:
            config: Pipeline configuration. If None, uses defaults.
        """
        self.config = (config or PipelineConfig()).validate()

    def detect(
        self,
        input_path: Union[str, Path],
        cancel_event: Optional[threading.Event] = None,
        debug_output_dir: Optional[Union[str, Path]] = None,
    ) -> PipelineResult:
        """Load a scan and detect the photos on it.

        Args:
            input_path: Path to the scanned image
            cancel_event: Set from another thread to abort detection
            debug_output_dir: Optional directory for intermediate images

        Returns:
            PipelineResult with the detected photos

        Raises:
            CannotLoadImage: If the scan cannot be read
            Cancelled: If ``cancel_event`` is set during detection
        """
        start_time = time.time()
        step_times: Dict[str, float] = {}
        debug_dir: Optional[Path] = None

        if debug_output_dir:
            debug_dir = Path(debug_output_dir)
            debug_dir.mkdir(parents=True, exist_ok=True)

        logger.info(f"Processing: {input_path}")

        step_start = time.time()
        image, metadata = load_image(input_path)
        step_times['load'] = time.time() - step_start
        logger.info(f"Load time: {step_times['load']:.3f}s")

        stages: Optional[Dict] = {} if debug_dir else None

        step_start = time.time()
        cfg = self.config
        photos = detect_photos(
            image,
            sensitivity=cfg.sensitivity,
            min_relative_size=cfg.min_relative_size,
            max_relative_size=cfg.max_relative_size,
            max_count=cfg.max_count,
            trim_factor=cfg.trim_factor,
            processing_size=cfg.processing_size,
            cancel_event=cancel_event,
            stages=stages,
        )
        step_times['detect'] = time.time() - step_start
        logger.info(f"Detection time: {step_times['detect']:.3f}s, found={len(photos)}")

        if debug_dir:
            self._save_debug(debug_dir, image, photos, stages)

        total_time = time.time() - start_time
        logger.info(f"Total processing time: {total_time:.3f}s")

        return PipelineResult(
            photos=photos,
            metadata=metadata,
            source_path=Path(input_path),
            processing_time=total_time,
            step_times=step_times,
        )

    def save(
        self,
        photos: List[DetectedPhoto],
        source_path: Union[str, Path],
        output_dir: Optional[Union[str, Path]] = None,
    ) -> List[Path]:
        """Write photos as numbered files beside the scan (or into ``output_dir``).

        Raises:
            NoPhotosFound: If there is nothing to write
        """
        return save_photos(
            photos,
            source_path,
            output_dir=output_dir,
            jpeg_quality=self.config.jpeg_quality,
        )

    @staticmethod
    def _save_debug(debug_dir: Path, image, photos: List[DetectedPhoto], stages: Dict) -> None:
        from multicrop.utils.debug import save_debug_image

        save_debug_image(stages["gray"], debug_dir / "01_working_gray.jpg", "Working bitmap")
        save_debug_image(stages["threshold"], debug_dir / "02_threshold.jpg", "Threshold mask")
        save_debug_image(stages["cleaned"], debug_dir / "03_cleaned.jpg", "After closing and hole fill")

        overlay = draw_photo_detections(image, photos)
        save_debug_image(overlay, debug_dir / "04_detections.jpg", f"Detected {len(photos)} photos")

        for i, photo in enumerate(photos, 1):
            save_debug_image(
                photo.display_image,
                debug_dir / f"05_photo_{i:02d}.jpg",
                f"Extracted photo {i} ({photo.size[0]}x{photo.size[1]})"
            )


def detect(
    input_path: Union[str, Path],
    sensitivity: float = 0.5,
    min_relative_size: float = 0.04,
    max_relative_size: float = 0.50,
    max_count: int = 20,
    trim_factor: float = 0.02,
    cancel_event: Optional[threading.Event] = None,
) -> List[DetectedPhoto]:
    """Detect photos on the scan at ``input_path`` with the given parameters."""
    config = PipelineConfig(
        sensitivity=sensitivity,
        min_relative_size=min_relative_size,
        max_relative_size=max_relative_size,
        max_count=max_count,
        trim_factor=trim_factor,
    )
    return Pipeline(config).detect(input_path, cancel_event=cancel_event).photos


def save(photos: List[DetectedPhoto], source_path: Union[str, Path]) -> List[Path]:
    """Write photos next to the scan as ``<stem>_<n>.png|jpg``."""
    return save_photos(photos, source_path)
