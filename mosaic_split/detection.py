"""Border detection and cropping of mosaic tiles."""

from __future__ import annotations

import logging
import math
from typing import TYPE_CHECKING

import cv2
import numpy as np

from .exceptions import TileEncodeError
from .models import (
    ContentBounds,
    CropConfig,
    CroppedTile,
    CropRegion,
    RenderSurface,
    RenderSurfaceUnavailable,
    Tile,
)
from .noise import content_mask

if TYPE_CHECKING:
    from .visualizer import DebugVisualizer

logger = logging.getLogger(__name__)

_INTERPOLATION_FLAGS = {
    "nearest": cv2.INTER_NEAREST,
    "linear": cv2.INTER_LINEAR,
    "cubic": cv2.INTER_CUBIC,
    "area": cv2.INTER_AREA,
    "lanczos": cv2.INTER_LANCZOS4,
}


def _first_dense_line(counts: np.ndarray, indices: range, threshold: float) -> int | None:
    """Return the first index whose content count exceeds threshold."""
    for i in indices:
        if counts[i] > threshold:
            return i
    return None


def detect_content_bounds(
    pixels: np.ndarray,
    config: CropConfig | None = None,
) -> ContentBounds:
    """Locate the rectangle of genuine content inside a tile.

    Scans inward from each edge, at most scan_fraction of the tile deep,
    and stops at the first line where more than density_threshold of the
    pixels are content. Top and bottom are found first; left and right
    only count pixels between them, so noise rows at the very top or
    bottom cannot hide a vertical seam.

    Args:
        pixels: Tile as BGRA (or BGR / grayscale) array
        config: Detection configuration

    Returns:
        ContentBounds with inclusive coordinates. Edges where no line
        qualifies keep the tile edge.
    """
    config = config or CropConfig()
    h, w = pixels.shape[:2]
    content = content_mask(pixels, config.noise)
    reach = config.scan_fraction

    # Top and bottom: rows over the full width
    row_counts = content.sum(axis=1)
    row_threshold = w * config.density_threshold
    top = _first_dense_line(row_counts, range(math.ceil(h * reach)), row_threshold)
    bottom = _first_dense_line(
        row_counts, range(h - 1, math.floor(h * (1 - reach)), -1), row_threshold
    )
    min_y = 0 if top is None else top
    max_y = h - 1 if bottom is None else bottom

    # Left and right: columns restricted to the detected row range
    col_counts = content[min_y : max_y + 1].sum(axis=0)
    col_threshold = (max_y - min_y) * config.density_threshold
    left = _first_dense_line(col_counts, range(math.ceil(w * reach)), col_threshold)
    right = _first_dense_line(
        col_counts, range(w - 1, math.floor(w * (1 - reach)), -1), col_threshold
    )
    min_x = 0 if left is None else left
    max_x = w - 1 if right is None else right

    return ContentBounds(min_x, min_y, max_x, max_y, has_content=bool(content.any()))


def compute_crop_region(
    bounds: ContentBounds,
    width: int,
    height: int,
    safety_buffer: int = 1,
) -> CropRegion:
    """Shrink bounds inward by the safety buffer, never below 1x1.

    A tile without any content collapses to a single pixel.
    """
    x = min(bounds.min_x + safety_buffer, width - 1)
    y = min(bounds.min_y + safety_buffer, height - 1)
    if not bounds.has_content:
        return CropRegion(x, y, 1, 1)
    crop_w = max(bounds.max_x - bounds.min_x - 2 * safety_buffer + 1, 1)
    crop_h = max(bounds.max_y - bounds.min_y - 2 * safety_buffer + 1, 1)
    return CropRegion(x, y, crop_w, crop_h)


def acquire_surface(
    width: int, height: int, channels: int = 4
) -> RenderSurface | RenderSurfaceUnavailable:
    """Allocate a buffer to render a cropped region into."""
    if width <= 0 or height <= 0:
        return RenderSurfaceUnavailable(f"invalid surface size {width}x{height}")
    shape = (height, width) if channels == 1 else (height, width, channels)
    try:
        buffer = np.empty(shape, dtype=np.uint8)
    except MemoryError:
        return RenderSurfaceUnavailable(f"out of memory for {width}x{height} surface")
    return RenderSurface(buffer)


def render_region(
    pixels: np.ndarray,
    region: CropRegion,
    surface: RenderSurface,
    interpolation: str = "lanczos",
) -> np.ndarray:
    """Re-render a region of pixels into the surface at its exact size."""
    rows, cols = region.as_slices()
    source = np.ascontiguousarray(pixels[rows, cols])
    return cv2.resize(
        source,
        (region.width, region.height),
        dst=surface.pixels,
        interpolation=_INTERPOLATION_FLAGS[interpolation],
    )


def crop_to_content(
    tile: Tile,
    bounds: ContentBounds,
    config: CropConfig | None = None,
    index: int = 1,
) -> CroppedTile:
    """Crop a tile to its content bounds.

    Falls back to returning the tile unmodified when no render surface
    can be acquired.
    """
    config = config or CropConfig()
    region = compute_crop_region(bounds, tile.width, tile.height, config.safety_buffer)
    channels = tile.pixels.shape[2] if tile.pixels.ndim == 3 else 1

    surface = acquire_surface(region.width, region.height, channels)
    if isinstance(surface, RenderSurfaceUnavailable):
        logger.warning(
            "Tile (%d, %d) passed through uncropped: %s", tile.row, tile.col, surface.reason
        )
        return CroppedTile(tile.row, tile.col, index, tile.pixels.copy(), passthrough=True)

    rendered = render_region(tile.pixels, region, surface, config.interpolation)
    return CroppedTile(tile.row, tile.col, index, rendered, bounds=bounds)


def crop_tile(
    tile: Tile,
    config: CropConfig | None = None,
    index: int = 1,
    visualizer: DebugVisualizer | None = None,
) -> CroppedTile:
    """Detect content bounds of a tile and crop to them."""
    config = config or CropConfig()
    bounds = detect_content_bounds(tile.pixels, config)
    logger.debug(
        "Tile (%d, %d) %dx%d bounds=%s content=%s",
        tile.row,
        tile.col,
        tile.width,
        tile.height,
        bounds.as_tuple(),
        bounds.has_content,
    )

    if visualizer:
        region = compute_crop_region(bounds, tile.width, tile.height, config.safety_buffer)
        visualizer.save_tile_bounds(tile, bounds, region)

    return crop_to_content(tile, bounds, config, index)


def encode_tile(
    pixels: np.ndarray,
    ext: str = "png",
    quality: float = 0.98,
    png_compression: int = 3,
) -> bytes:
    """Encode a cropped tile for output.

    Args:
        pixels: BGRA, BGR or grayscale image
        ext: Output format extension (png, jpg, jpeg, webp)
        quality: Quality on a 0-1 scale, used by lossy formats
        png_compression: zlib level for PNG output

    Returns:
        Encoded image bytes
    """
    ext = ext.lower().lstrip(".")
    level = int(round(quality * 100))

    if ext in ("jpg", "jpeg"):
        # JPEG has no alpha channel
        if pixels.ndim == 3 and pixels.shape[2] == 4:
            pixels = cv2.cvtColor(pixels, cv2.COLOR_BGRA2BGR)
        params = [cv2.IMWRITE_JPEG_QUALITY, level]
    elif ext == "webp":
        params = [cv2.IMWRITE_WEBP_QUALITY, max(level, 1)]
    elif ext == "png":
        params = [cv2.IMWRITE_PNG_COMPRESSION, png_compression]
    else:
        raise TileEncodeError(ext)

    ok, buffer = cv2.imencode(f".{ext}", pixels, params)
    if not ok:
        raise TileEncodeError(ext)
    return buffer.tobytes()
