"""Partitioning of a mosaic into equal grid tiles."""

from __future__ import annotations

import math
from typing import Iterator

import cv2
import numpy as np

from .exceptions import InvalidGridError
from .models import GridConfig, SourceImage, Tile


def tile_rectangles(
    width: int, height: int, rows: int, cols: int
) -> Iterator[tuple[int, int, float, float, float, float]]:
    """Yield (row, col, x, y, part_width, part_height) in row-major order.

    Part sizes are real-valued so the tiles cover the image exactly even
    when it does not divide evenly.
    """
    if rows <= 0 or cols <= 0:
        raise InvalidGridError(f"{rows}x{cols}")

    part_w = width / cols
    part_h = height / rows
    for row in range(rows):
        for col in range(cols):
            yield row, col, col * part_w, row * part_h, part_w, part_h


def extract_tile(
    pixels: np.ndarray,
    x: float,
    y: float,
    part_width: float,
    part_height: float,
) -> np.ndarray:
    """Extract a tile rectangle from an image.

    The output is int(part_width) x int(part_height) pixels (at least 1x1).
    Integral rectangles are copied directly; fractional ones are resampled
    so that the exact source rectangle maps onto the output.
    """
    out_w = max(int(part_width), 1)
    out_h = max(int(part_height), 1)

    if all(float(v).is_integer() for v in (x, y, part_width, part_height)):
        x0, y0 = int(x), int(y)
        return pixels[y0 : y0 + out_h, x0 : x0 + out_w].copy()

    # Resample only a window around the rectangle, one pixel of context each side
    img_h, img_w = pixels.shape[:2]
    left = max(math.floor(x) - 1, 0)
    top = max(math.floor(y) - 1, 0)
    right = min(math.ceil(x + part_width) + 1, img_w)
    bottom = min(math.ceil(y + part_height) + 1, img_h)
    window = pixels[top:bottom, left:right].copy()

    scale_x = out_w / part_width
    scale_y = out_h / part_height
    matrix = np.array(
        [
            [scale_x, 0.0, -(x - left) * scale_x],
            [0.0, scale_y, -(y - top) * scale_y],
        ],
        dtype=np.float64,
    )
    return cv2.warpAffine(
        window,
        matrix,
        (out_w, out_h),
        flags=cv2.INTER_LINEAR,
        borderMode=cv2.BORDER_REPLICATE,
    )


def slice_grid(source: SourceImage, grid: GridConfig) -> Iterator[Tile]:
    """Yield the tiles of a mosaic in row-major order.

    Tiles are produced lazily so only one tile buffer needs to be alive
    at a time.
    """
    for row, col, x, y, part_w, part_h in tile_rectangles(
        source.width, source.height, grid.rows, grid.cols
    ):
        yield Tile(
            row,
            col,
            extract_tile(source.pixels, x, y, part_w, part_h),
            origin=(x, y),
            extent=(part_w, part_h),
        )
