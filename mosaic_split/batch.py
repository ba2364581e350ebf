"""Batch processing of uploaded mosaics."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Iterable

import cv2
import numpy as np

from .detection import crop_tile, encode_tile
from .exceptions import ExportError, ImageReadError, MosaicSplitError
from .models import (
    DEFAULT_GRID,
    BatchResult,
    CropConfig,
    CroppedTile,
    GridConfig,
    Skipped,
    SourceImage,
    SplitResult,
    Success,
)
from .slicing import slice_grid

if TYPE_CHECKING:
    from .visualizer import DebugVisualizer

logger = logging.getLogger(__name__)


@dataclass
class ImageSource:
    """An uploaded image, given either as raw bytes or as a file path."""

    name: str
    data: bytes | None = None
    path: Path | None = None

    @classmethod
    def from_path(cls, path: str | Path) -> ImageSource:
        path = Path(path)
        return cls(path.name, path=path)

    def read_bytes(self) -> bytes:
        if self.data is not None:
            return self.data
        if self.path is None:
            raise ImageReadError(self.name, "no data")
        try:
            return self.path.read_bytes()
        except OSError as e:
            raise ImageReadError(self.name, str(e)) from e


def _to_bgra(img: np.ndarray) -> np.ndarray:
    """Normalize a decoded image to 8-bit BGRA."""
    if img.dtype == np.uint16:
        img = (img >> 8).astype(np.uint8)
    elif img.dtype != np.uint8:
        img = cv2.normalize(img, None, 0, 255, cv2.NORM_MINMAX).astype(np.uint8)

    if img.ndim == 2:
        return cv2.cvtColor(img, cv2.COLOR_GRAY2BGRA)
    channels = img.shape[2]
    if channels == 1:
        return cv2.cvtColor(img[:, :, 0], cv2.COLOR_GRAY2BGRA)
    if channels == 3:
        return cv2.cvtColor(img, cv2.COLOR_BGR2BGRA)
    return img


def decode_image(source: ImageSource) -> SourceImage:
    """Decode an uploaded image into a SourceImage.

    Raises:
        ImageReadError: If the data cannot be read or decoded
    """
    data = source.read_bytes()
    if not data:
        raise ImageReadError(source.name, "empty file")

    img = cv2.imdecode(np.frombuffer(data, dtype=np.uint8), cv2.IMREAD_UNCHANGED)
    if img is None or img.size == 0:
        raise ImageReadError(source.name, "unsupported or corrupt image data")

    return SourceImage(source.name, _to_bgra(img))


def split_image(
    source: SourceImage,
    grid: GridConfig = DEFAULT_GRID,
    config: CropConfig | None = None,
    visualizer: DebugVisualizer | None = None,
) -> SplitResult:
    """Split a mosaic into cropped panels.

    A tile that fails to crop is kept uncropped; it never aborts the image.
    """
    config = config or CropConfig()
    result = SplitResult(source.name, grid)

    if visualizer:
        visualizer.save_grid(source, grid)

    for index, tile in enumerate(slice_grid(source, grid), start=1):
        try:
            cropped = crop_tile(tile, config, index, visualizer)
        except Exception as e:
            logger.warning(
                "%s: tile (%d, %d) kept uncropped: %s", source.name, tile.row, tile.col, e
            )
            cropped = CroppedTile(tile.row, tile.col, index, tile.pixels, passthrough=True)
        result.tiles.append(cropped)
        # Release the tile buffer before the next one is extracted
        del tile

    logger.info(
        "%s: split %dx%d %s into %d panels",
        source.name,
        source.width,
        source.height,
        grid,
        len(result.tiles),
    )
    return result


def process_batch(
    sources: Iterable[ImageSource],
    grid: GridConfig = DEFAULT_GRID,
    config: CropConfig | None = None,
    visualizer: DebugVisualizer | None = None,
) -> BatchResult:
    """Split every source, one at a time.

    Each source produces a Success or a Skipped outcome; no error from a
    single image escapes.
    """
    config = config or CropConfig()
    batch = BatchResult()

    for source in sources:
        try:
            result = split_image(decode_image(source), grid, config, visualizer)
        except MosaicSplitError as e:
            logger.error("Skipping %s: %s", source.name, e)
            batch.add(Skipped(source.name, e.user_message))
            continue
        except Exception as e:
            logger.exception("Skipping %s: unexpected error", source.name)
            batch.add(Skipped(source.name, f"Unexpected error: {e}"))
            continue

        batch.add(Success(result))

    logger.info(
        "Batch complete: %d split, %d skipped, %d panels",
        len(batch.results),
        len(batch.skipped),
        batch.total_tiles,
    )
    return batch


class SplitSession:
    """Accumulated split results, most recent batch first."""

    def __init__(self, config: CropConfig | None = None):
        self.config = config or CropConfig()
        self.results: list[SplitResult] = []

    def add_batch(self, batch: BatchResult) -> None:
        """Prepend the results of a batch, keeping their input order."""
        self.results = batch.results + self.results

    def run(
        self,
        sources: Iterable[ImageSource],
        grid: GridConfig = DEFAULT_GRID,
        visualizer: DebugVisualizer | None = None,
    ) -> BatchResult:
        """Process a batch and add its results to the session."""
        batch = process_batch(sources, grid, self.config, visualizer)
        self.add_batch(batch)
        return batch

    def clear(self) -> None:
        self.results = []

    @property
    def total_tiles(self) -> int:
        return sum(len(r.tiles) for r in self.results)

    def export_result(
        self,
        result: SplitResult,
        output_dir: str | Path,
        ext: str = "png",
        taken: set[str] | None = None,
    ) -> list[Path]:
        """Write every panel of one result as <base>_shot_<n>.<ext>.

        Args:
            taken: File names already written by the same export. When a
                name would collide, the base gets a numeric suffix
                (scene_2_shot_1.png) and the new names are added to the set.
        """
        output_dir = Path(output_dir)
        try:
            output_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise ExportError(str(output_dir), str(e)) from e

        base = result.base_name
        if taken is not None:
            suffix = 1
            while taken.intersection(result.output_names(ext, base)):
                suffix += 1
                base = f"{result.base_name}_{suffix}"
            if base != result.base_name:
                logger.warning(
                    "%s: names already used in this export, writing as %s",
                    result.source_name,
                    base,
                )
            taken.update(result.output_names(ext, base))

        paths = []
        for tile in result.tiles:
            path = output_dir / result.output_name(tile, ext, base)
            data = encode_tile(
                tile.pixels, ext, self.config.encode_quality, self.config.png_compression
            )
            try:
                path.write_bytes(data)
            except OSError as e:
                raise ExportError(str(path), str(e)) from e
            paths.append(path)

        logger.info("Exported %d panels of %s to %s", len(paths), result.source_name, output_dir)
        return paths

    def export_all(self, output_dir: str | Path, ext: str = "png") -> list[Path]:
        """Write every panel of every result in the session.

        Results sharing a base name are written under distinct names, so
        every returned path is a separate file.
        """
        paths = []
        taken: set[str] = set()
        for result in self.results:
            paths.extend(self.export_result(result, output_dir, ext, taken))
        return paths
