"""Data models for mosaic splitting."""

from __future__ import annotations

import json
import re
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any, Iterator

import numpy as np

from .exceptions import InvalidGridError


# =============================================================================
# Grid Configuration
# =============================================================================


@dataclass(frozen=True)
class GridConfig:
    """Rows x columns layout of a mosaic."""

    label: str
    rows: int
    cols: int

    @property
    def total(self) -> int:
        """Return number of panels in the grid."""
        return self.rows * self.cols

    @classmethod
    def parse(cls, value: str) -> GridConfig:
        """Parse grid string into GridConfig.

        Supports formats:
            - "3x3", "2X4", "3*3", "3,3" -> rows x cols
            - "9" -> catalog entry with 9 panels

        Returns the catalog entry when one matches, so labels stay stable.
        """
        parts = re.split(r"[xX*,:]", value.strip())
        try:
            numbers = [int(p) for p in parts]
        except ValueError:
            raise InvalidGridError(value) from None

        if len(numbers) == 1:
            for option in GRID_OPTIONS:
                if option.total == numbers[0]:
                    return option
            raise InvalidGridError(value)
        if len(numbers) != 2:
            raise InvalidGridError(value)

        rows, cols = numbers
        if rows <= 0 or cols <= 0:
            raise InvalidGridError(value)
        for option in GRID_OPTIONS:
            if option.rows == rows and option.cols == cols:
                return option
        return cls(f"{rows}x{cols} ({rows * cols} shots)", rows, cols)

    def __str__(self) -> str:
        return f"{self.rows}x{self.cols}"


GRID_OPTIONS: tuple[GridConfig, ...] = (
    GridConfig("2x2 (4 shots)", 2, 2),
    GridConfig("3x3 (9 shots)", 3, 3),
    GridConfig("4x4 (16 shots)", 4, 4),
)

DEFAULT_GRID = GRID_OPTIONS[1]


# =============================================================================
# Pixel Data
# =============================================================================


@dataclass
class SourceImage:
    """A decoded mosaic.

    Pixels are stored as an H x W x 4 uint8 array in OpenCV's BGRA order.
    The array is made read-only so tiles can never write back into it.
    """

    name: str
    pixels: np.ndarray

    def __post_init__(self) -> None:
        # Freeze a view so the caller's array stays writeable
        self.pixels = self.pixels.view()
        self.pixels.flags.writeable = False

    @property
    def width(self) -> int:
        return self.pixels.shape[1]

    @property
    def height(self) -> int:
        return self.pixels.shape[0]


@dataclass
class Tile:
    """One panel of a mosaic, extracted at its (possibly fractional) origin."""

    row: int
    col: int
    pixels: np.ndarray
    origin: tuple[float, float] = (0.0, 0.0)
    extent: tuple[float, float] = (0.0, 0.0)

    @property
    def width(self) -> int:
        return self.pixels.shape[1]

    @property
    def height(self) -> int:
        return self.pixels.shape[0]


@dataclass(frozen=True)
class ContentBounds:
    """Inclusive rectangle of a tile judged to contain real content."""

    min_x: int
    min_y: int
    max_x: int
    max_y: int
    has_content: bool = True

    @classmethod
    def full(cls, width: int, height: int, has_content: bool = True) -> ContentBounds:
        """Return bounds covering the whole tile."""
        return cls(0, 0, width - 1, height - 1, has_content)

    @property
    def width(self) -> int:
        return self.max_x - self.min_x + 1

    @property
    def height(self) -> int:
        return self.max_y - self.min_y + 1

    def contained_in(self, width: int, height: int) -> bool:
        """Check the bounds form a non-empty rectangle inside a width x height tile."""
        return 0 <= self.min_x <= self.max_x < width and 0 <= self.min_y <= self.max_y < height

    def as_tuple(self) -> tuple[int, int, int, int]:
        """Return bounds as (min_x, min_y, max_x, max_y) tuple."""
        return (self.min_x, self.min_y, self.max_x, self.max_y)


@dataclass(frozen=True)
class CropRegion:
    """Region of a tile that is kept after the safety buffer is applied."""

    x: int
    y: int
    width: int
    height: int

    def as_slices(self) -> tuple[slice, slice]:
        """Return (rows, cols) slices for indexing a pixel array."""
        return slice(self.y, self.y + self.height), slice(self.x, self.x + self.width)


@dataclass
class CroppedTile:
    """Final panel image produced from a tile."""

    row: int
    col: int
    index: int
    """1-based position in row-major order."""

    pixels: np.ndarray
    bounds: ContentBounds | None = None
    """Detected bounds, None when the tile was passed through uncropped."""

    passthrough: bool = False

    @property
    def width(self) -> int:
        return self.pixels.shape[1]

    @property
    def height(self) -> int:
        return self.pixels.shape[0]


@dataclass
class RenderSurface:
    """Destination buffer a cropped region is rendered into."""

    pixels: np.ndarray


@dataclass(frozen=True)
class RenderSurfaceUnavailable:
    """A render surface could not be acquired."""

    reason: str


# =============================================================================
# Results
# =============================================================================


@dataclass
class SplitResult:
    """Cropped panels of one source image, in row-major order."""

    source_name: str
    grid: GridConfig
    tiles: list[CroppedTile] = field(default_factory=list)

    @property
    def base_name(self) -> str:
        """Return the source name up to its first dot."""
        return Path(self.source_name).name.split(".")[0]

    def output_name(self, tile: CroppedTile, ext: str = "png", base: str | None = None) -> str:
        return f"{base or self.base_name}_shot_{tile.index}.{ext.lstrip('.')}"

    def output_names(self, ext: str = "png", base: str | None = None) -> list[str]:
        """Return export file names for every tile."""
        return [self.output_name(tile, ext, base) for tile in self.tiles]


@dataclass(frozen=True)
class Success:
    """An image that was split."""

    result: SplitResult

    @property
    def source_name(self) -> str:
        return self.result.source_name


@dataclass(frozen=True)
class Skipped:
    """An image that could not be processed."""

    source_name: str
    reason: str


Outcome = Success | Skipped


@dataclass
class BatchResult:
    """Outcomes of one batch, in input order."""

    outcomes: list[Outcome] = field(default_factory=list)

    def add(self, outcome: Outcome) -> None:
        self.outcomes.append(outcome)

    @property
    def results(self) -> list[SplitResult]:
        """Return split results of the images that succeeded."""
        return [o.result for o in self.outcomes if isinstance(o, Success)]

    @property
    def skipped(self) -> list[Skipped]:
        return [o for o in self.outcomes if isinstance(o, Skipped)]

    @property
    def total_tiles(self) -> int:
        return sum(len(r.tiles) for r in self.results)

    def __iter__(self) -> Iterator[SplitResult]:
        return iter(self.results)

    def __len__(self) -> int:
        return len(self.results)


# =============================================================================
# Crop Configuration
# =============================================================================


INTERPOLATIONS = ("nearest", "linear", "cubic", "area", "lanczos")


def _require_number(name: str, value: Any) -> None:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValueError(f"{name} must be a number, got {value!r}")


def _require_int(name: str, value: Any) -> None:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"{name} must be an integer, got {value!r}")


@dataclass
class NoiseThresholds:
    """Pixel classification thresholds for seam and margin artifacts.

    alpha_cutoff: Pixels with alpha below this are transparent padding
    dark_cutoff: Pixels with mean brightness below this are black seams
    bright_cutoff: Pixels with mean brightness above this are white margins
    """

    alpha_cutoff: int = 40
    dark_cutoff: float = 22
    bright_cutoff: float = 238

    def validate(self) -> None:
        """Validate parameter types and ranges."""
        _require_number("noise.alpha_cutoff", self.alpha_cutoff)
        _require_number("noise.dark_cutoff", self.dark_cutoff)
        _require_number("noise.bright_cutoff", self.bright_cutoff)
        if not (0 <= self.alpha_cutoff <= 256):
            raise ValueError(f"noise.alpha_cutoff must be 0-256, got {self.alpha_cutoff}")
        if not (0 <= self.dark_cutoff <= 255):
            raise ValueError(f"noise.dark_cutoff must be 0-255, got {self.dark_cutoff}")
        if not (0 <= self.bright_cutoff <= 255):
            raise ValueError(f"noise.bright_cutoff must be 0-255, got {self.bright_cutoff}")
        if self.dark_cutoff > self.bright_cutoff:
            raise ValueError(
                f"noise.dark_cutoff ({self.dark_cutoff}) must be <= "
                f"bright_cutoff ({self.bright_cutoff})"
            )


@dataclass
class CropConfig:
    """Complete configuration for border detection and cropping."""

    noise: NoiseThresholds = field(default_factory=NoiseThresholds)
    density_threshold: float = 0.03
    """Fraction of a scan line that must be content for the line to count."""

    scan_fraction: float = 0.25
    """How far into the tile each edge scan may reach."""

    safety_buffer: int = 1
    """Pixels shaved off each side after detection."""

    interpolation: str = "lanczos"
    encode_quality: float = 0.98
    png_compression: int = 3

    def validate(self) -> None:
        """Validate all configuration."""
        if not isinstance(self.noise, NoiseThresholds):
            raise ValueError(f"noise must be NoiseThresholds, got {self.noise!r}")
        self.noise.validate()
        for name in ("density_threshold", "scan_fraction", "encode_quality"):
            _require_number(name, getattr(self, name))
        _require_int("safety_buffer", self.safety_buffer)
        _require_int("png_compression", self.png_compression)

        if not (0.0 <= self.density_threshold < 1.0):
            raise ValueError(
                f"density_threshold must be >= 0.0 and < 1.0, got {self.density_threshold}"
            )
        if not (0.0 < self.scan_fraction <= 0.5):
            raise ValueError(f"scan_fraction must be 0.0-0.5, got {self.scan_fraction}")
        if self.safety_buffer < 0:
            raise ValueError(f"safety_buffer must be >= 0, got {self.safety_buffer}")
        if self.interpolation not in INTERPOLATIONS:
            raise ValueError(f"interpolation must be one of {INTERPOLATIONS}")
        if not (0.0 <= self.encode_quality <= 1.0):
            raise ValueError(f"encode_quality must be 0.0-1.0, got {self.encode_quality}")
        if not (0 <= self.png_compression <= 9):
            raise ValueError(f"png_compression must be 0-9, got {self.png_compression}")

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return asdict(self)

    def to_json(self, indent: int = 2) -> str:
        """Convert to JSON string."""
        return json.dumps(self.to_dict(), indent=indent)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> CropConfig:
        """Create CropConfig from dictionary."""
        if not isinstance(data, dict):
            raise ValueError(f"Config must be a JSON object, got {type(data).__name__}")
        config = cls()

        if "noise" in data:
            if not isinstance(data["noise"], dict):
                raise ValueError(
                    f"noise must be a JSON object, got {type(data['noise']).__name__}"
                )
            for key, value in data["noise"].items():
                if not hasattr(config.noise, key):
                    raise ValueError(f"Unknown noise setting: {key}")
                setattr(config.noise, key, value)

        for key, value in data.items():
            if key == "noise":
                continue
            if not hasattr(config, key):
                raise ValueError(f"Unknown setting: {key}")
            setattr(config, key, value)

        config.validate()
        return config

    @classmethod
    def from_json(cls, json_str: str) -> CropConfig:
        """Parse CropConfig from JSON string."""
        data = json.loads(json_str)
        return cls.from_dict(data)

    @classmethod
    def from_file(cls, path: str | Path) -> CropConfig:
        """Load CropConfig from JSON file."""
        with open(path) as f:
            return cls.from_json(f.read())

    @classmethod
    def default_json(cls) -> str:
        """Return default configuration as formatted JSON string."""
        config = cls()
        return config.to_json()
