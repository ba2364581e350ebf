"""Command-line interface for mosaic splitting."""

import argparse
import logging
import sys
from pathlib import Path

DEFAULT_FORMAT = "png"
OUTPUT_FORMATS = ["png", "jpg", "webp"]


def configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
    )


def parse_crop_config(config_arg: str | None):
    """Parse crop config from CLI argument.

    Args:
        config_arg: Either inline JSON string or path to .json file

    Returns:
        CropConfig object (defaults if not provided)
    """
    from .models import CropConfig

    if not config_arg:
        return CropConfig()

    try:
        # Check if it looks like a file path
        config_path = Path(config_arg)
        if config_path.exists() and config_path.suffix == ".json":
            return CropConfig.from_file(config_path)

        # Try parsing as inline JSON
        return CropConfig.from_json(config_arg)
    except (OSError, ValueError) as e:
        raise ValueError(f"Invalid --config: {e}") from e


def add_common_arguments(parser: argparse.ArgumentParser) -> None:
    """Add grid and configuration arguments to a parser."""
    parser.add_argument(
        "-g",
        "--grid",
        default="3x3",
        help="Grid layout as ROWSxCOLS, e.g. 2x2, 3x3, 4x4 (default: 3x3)",
    )
    parser.add_argument(
        "--config",
        help="JSON crop configuration (inline JSON string or path to .json file)",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")


def add_split_arguments(parser: argparse.ArgumentParser) -> None:
    """Add mosaic splitting arguments to a parser."""
    parser.add_argument("inputs", nargs="+", help="Input mosaic image files")
    parser.add_argument(
        "-o",
        "--output-dir",
        default=".",
        help="Directory for cropped panels (default: current directory)",
    )
    parser.add_argument(
        "-f",
        "--format",
        choices=OUTPUT_FORMATS,
        default=DEFAULT_FORMAT,
        help=f"Output image format (default: {DEFAULT_FORMAT})",
    )
    parser.add_argument(
        "--quality",
        type=float,
        help="Encoding quality 0.0-1.0 for jpg/webp (overrides config, default: 0.98)",
    )
    parser.add_argument(
        "--debug-dir",
        help="Directory to save debug visualization images",
    )
    parser.add_argument(
        "--plot-profiles",
        action="store_true",
        help="Also plot row/column content density per tile into --debug-dir",
    )
    add_common_arguments(parser)


def _load_settings(args: argparse.Namespace):
    from .exceptions import MosaicSplitError
    from .models import GridConfig

    try:
        grid = GridConfig.parse(args.grid)
        config = parse_crop_config(args.config)
    except MosaicSplitError as e:
        sys.exit(e.user_message)
    except ValueError as e:
        sys.exit(str(e))
    return grid, config


def run_split(args: argparse.Namespace) -> None:
    """Split mosaics into cropped panels."""
    from .batch import ImageSource, SplitSession
    from .exceptions import MosaicSplitError

    configure_logging(args.verbose)
    grid, config = _load_settings(args)

    if args.quality is not None:
        config.encode_quality = args.quality
        try:
            config.validate()
        except ValueError as e:
            sys.exit(str(e))

    visualizer = None
    if args.debug_dir:
        from .visualizer import DebugVisualizer

        visualizer = DebugVisualizer(args.debug_dir, args.plot_profiles, config)

    session = SplitSession(config)
    batch = session.run([ImageSource.from_path(p) for p in args.inputs], grid, visualizer)

    for skipped in batch.skipped:
        print(f"Skipped {skipped.source_name}: {skipped.reason}", file=sys.stderr)

    try:
        paths = session.export_all(args.output_dir, args.format)
    except MosaicSplitError as e:
        sys.exit(e.user_message)

    print(f"{len(paths)} panels from {len(batch.results)} image(s) saved to {args.output_dir}")
    if not batch.results:
        sys.exit(1)


def run_bounds(args: argparse.Namespace) -> None:
    """Print detected content bounds for every tile of a mosaic."""
    from .batch import ImageSource, decode_image
    from .detection import compute_crop_region, detect_content_bounds
    from .exceptions import MosaicSplitError
    from .slicing import slice_grid

    configure_logging(args.verbose)
    grid, config = _load_settings(args)

    try:
        source = decode_image(ImageSource.from_path(args.input))
    except MosaicSplitError as e:
        sys.exit(e.user_message)

    for index, tile in enumerate(slice_grid(source, grid), start=1):
        bounds = detect_content_bounds(tile.pixels, config)
        region = compute_crop_region(bounds, tile.width, tile.height, config.safety_buffer)
        min_x, min_y, max_x, max_y = bounds.as_tuple()
        print(
            f"{index}\t{tile.row},{tile.col}\t{tile.width}x{tile.height}\t"
            f"bounds={min_x},{min_y},{max_x},{max_y}\t"
            f"crop={region.x},{region.y},{region.width}x{region.height}"
            + ("" if bounds.has_content else "\tno-content")
        )


def run_grids(args: argparse.Namespace) -> None:
    """List available grid layouts."""
    from .models import DEFAULT_GRID, GRID_OPTIONS

    for option in GRID_OPTIONS:
        marker = " (default)" if option == DEFAULT_GRID else ""
        print(f"{option}\t{option.label}{marker}")


def run_config(args: argparse.Namespace) -> None:
    """Print the default crop configuration."""
    from .models import CropConfig

    print(CropConfig.default_json())


def main() -> None:
    parser = argparse.ArgumentParser(
        description="Split AI-generated mosaic images into cleanly cropped panels",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  mosaic-split split sheet.png                     Split a 3x3 mosaic into sheet_shot_1..9.png
  mosaic-split split a.png b.png -g 2x2 -o shots   Split several 2x2 mosaics into shots/
  mosaic-split bounds sheet.png -g 4x4             Show detected content bounds per tile
  mosaic-split config > crop.json                  Write default configuration
""",
    )
    subparsers = parser.add_subparsers(dest="command")

    split_parser = subparsers.add_parser("split", help="Split mosaics into cropped panels")
    add_split_arguments(split_parser)
    split_parser.set_defaults(func=run_split)

    bounds_parser = subparsers.add_parser("bounds", help="Show detected content bounds per tile")
    bounds_parser.add_argument("input", help="Input mosaic image file")
    add_common_arguments(bounds_parser)
    bounds_parser.set_defaults(func=run_bounds)

    grids_parser = subparsers.add_parser("grids", help="List available grid layouts")
    grids_parser.set_defaults(func=run_grids)

    config_parser = subparsers.add_parser("config", help="Print default crop configuration")
    config_parser.set_defaults(func=run_config)

    args = parser.parse_args()

    if args.command is None:
        parser.print_help()
        sys.exit(1)
    args.func(args)


if __name__ == "__main__":
    main()
