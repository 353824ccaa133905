"""Command-line interface for splitting scanned sheets into photos."""

import logging
import sys
from pathlib import Path
from typing import Dict, List, Optional, Tuple

import click
from dotenv import load_dotenv

from multicrop import __version__
from multicrop.errors import MultiCropError
from multicrop.photo_detection.detector import reorder_photos, select_photos
from multicrop.photo_detection.splitter import rotate
from multicrop.pipeline import Pipeline, PipelineConfig
from multicrop.preprocessing.loader import SUPPORTED_EXTENSIONS

logger = logging.getLogger(__name__)


def _parse_rotations(values: Tuple[str, ...]) -> Dict[int, int]:
    """Parse ``INDEX:DEGREES`` pairs into {index: degrees}."""
    rotations: Dict[int, int] = {}
    for value in values:
        try:
            index_str, degrees_str = value.split(':', 1)
            index, degrees = int(index_str), int(degrees_str)
        except ValueError:
            raise click.BadParameter(f"expected INDEX:DEGREES, got {value!r}", param_hint='--rotate')
        if index < 1 or degrees % 90 != 0:
            raise click.BadParameter(
                f"index must be >= 1 and degrees a multiple of 90, got {value!r}",
                param_hint='--rotate'
            )
        rotations[index] = rotations.get(index, 0) + degrees
    return rotations


def _parse_order(value: Optional[str]) -> Optional[List[int]]:
    if not value:
        return None
    try:
        return [int(v) for v in value.split(',')]
    except ValueError:
        raise click.BadParameter(f"expected comma-separated indices, got {value!r}", param_hint='--order')


def _collect_inputs(input_paths: Tuple[str, ...]) -> List[Path]:
    input_files: List[Path] = []
    for input_path_str in input_paths:
        input_path = Path(input_path_str)
        if input_path.is_dir():
            found = sorted(
                p for p in input_path.iterdir()
                if p.is_file() and p.suffix.lower() in SUPPORTED_EXTENSIONS
            )
            logger.info(f"Found {len(found)} image(s) in {input_path}")
            input_files.extend(found)
        else:
            input_files.append(input_path)
    return input_files


@click.group()
@click.version_option(version=__version__)
def main() -> None:
    """MultiCrop - split a scan of several photos into individual cropped images."""
    load_dotenv()
    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%H:%M:%S'
    )


@main.command()
@click.argument('input_paths', nargs=-1, required=True, type=click.Path(exists=True))
@click.option('--sensitivity', '-s', type=click.FloatRange(0.0, 1.0), help='Detection sensitivity (0-1)')
@click.option('--min-size', type=float, help='Minimum photo size as a fraction of the scan area')
@click.option('--max-size', type=float, help='Maximum photo size as a fraction of the scan area')
@click.option('--max-count', type=click.IntRange(min=1), help='Maximum number of photos to detect')
@click.option('--trim', 'trim_factor', type=float, help='Inward crop margin as a fraction of the shorter side')
@click.option('--count', type=click.IntRange(min=0), default=0, help='Keep only the first N photos (0 = all)')
@click.option('--order', type=str, help='New 1-based photo order, e.g. "2,1,3"')
@click.option('--rotate', 'rotations', multiple=True, help='Rotate photo INDEX by DEGREES (CCW), e.g. "2:90"')
@click.option(
    '--output',
    '-o',
    'output_dir',
    type=click.Path(file_okay=False),
    help='Output directory (default: next to each scan)'
)
@click.option('--debug', 'debug_dir', type=click.Path(file_okay=False), help='Save intermediate images here')
@click.option('--dry-run', is_flag=True, help='Detect and report, but write nothing')
@click.option('--verbose', '-v', is_flag=True, help='Enable verbose logging')
def split(
    input_paths: Tuple[str, ...],
    sensitivity: Optional[float],
    min_size: Optional[float],
    max_size: Optional[float],
    max_count: Optional[int],
    trim_factor: Optional[float],
    count: int,
    order: Optional[str],
    rotations: Tuple[str, ...],
    output_dir: Optional[str],
    debug_dir: Optional[str],
    dry_run: bool,
    verbose: bool
) -> None:
    """Split scanned sheets into individual photos.

    INPUT_PATHS: One or more image files or directories of images
    """
    if verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    rotate_map = _parse_rotations(rotations)
    new_order = _parse_order(order)

    try:
        config = PipelineConfig.from_env()
        overrides = {
            'sensitivity': sensitivity,
            'min_relative_size': min_size,
            'max_relative_size': max_size,
            'max_count': max_count,
            'trim_factor': trim_factor,
        }
        for name, value in overrides.items():
            if value is not None:
                setattr(config, name, value)
        pipeline = Pipeline(config)
    except ValueError as e:
        raise click.UsageError(str(e))

    input_files = _collect_inputs(input_paths)
    if not input_files:
        logger.error("No input files found")
        sys.exit(1)

    logger.info(f"Processing {len(input_files)} file(s)")

    succeeded = 0
    for input_file in input_files:
        try:
            file_debug_dir = Path(debug_dir) / input_file.stem if debug_dir else None
            result = pipeline.detect(input_file, debug_output_dir=file_debug_dir)

            photos = select_photos(result.photos, count)
            if new_order:
                photos = reorder_photos(photos, new_order)
            for index, degrees in rotate_map.items():
                if index > len(photos):
                    logger.warning(f"{input_file.name}: no photo {index} to rotate")
                    continue
                photos[index - 1] = rotate(photos[index - 1], degrees)

            for i, photo in enumerate(photos, 1):
                q = photo.quad
                click.echo(
                    f"{input_file.name} #{i}: {photo.size[0]}x{photo.size[1]} "
                    f"TL=({q.top_left[0]:.3f},{q.top_left[1]:.3f}) "
                    f"BR=({q.bottom_right[0]:.3f},{q.bottom_right[1]:.3f}) "
                    f"rotation={photo.rotation}"
                )

            if not dry_run:
                written = pipeline.save(photos, input_file, output_dir=output_dir)
                logger.info(f"{input_file.name}: wrote {len(written)} file(s)")
            succeeded += 1

        except (MultiCropError, ValueError) as e:
            logger.error(f"Error processing {input_file}: {e}", exc_info=verbose)
            continue

    logger.info(f"COMPLETE: Processed {succeeded}/{len(input_files)} file(s)")
    if succeeded == 0:
        sys.exit(1)


@main.command()
def info() -> None:
    """Show the effective configuration (defaults plus MULTICROP_* overrides)."""
    try:
        config = PipelineConfig.from_env()
    except ValueError as e:
        raise click.UsageError(str(e))

    click.echo("MultiCrop configuration")
    for name, value in vars(config).items():
        click.echo(f"  {name}: {value}")
    click.echo(f"Supported formats: {' '.join(SUPPORTED_EXTENSIONS)}")


if __name__ == '__main__':
    main()
