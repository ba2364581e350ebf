"""
Unit tests for border detection and cropping
"""

import cv2
import numpy as np
import pytest

from mosaic_split import detection
from mosaic_split.detection import (
    acquire_surface,
    compute_crop_region,
    crop_tile,
    crop_to_content,
    detect_content_bounds,
    encode_tile,
)
from mosaic_split.exceptions import TileEncodeError
from mosaic_split.models import (
    ContentBounds,
    CropConfig,
    RenderSurface,
    RenderSurfaceUnavailable,
    Tile,
)

from .conftest import content_block, framed_mosaic


def uniform(height, width, value, alpha=255):
    pixels = np.full((height, width, 4), value, dtype=np.uint8)
    pixels[:, :, 3] = alpha
    return pixels


class TestDetectContentBounds:
    """Test edge scanning"""

    def test_clean_tile_keeps_full_bounds(self):
        bounds = detect_content_bounds(uniform(40, 50, 128))
        assert bounds.as_tuple() == (0, 0, 49, 39)
        assert bounds.has_content

    def test_fully_noise_tile_keeps_defaults(self):
        bounds = detect_content_bounds(uniform(40, 50, 0))
        assert bounds.as_tuple() == (0, 0, 49, 39)
        assert not bounds.has_content

    def test_transparent_padding(self):
        pixels = uniform(60, 60, 128)
        pixels[:6, :, 3] = 0
        pixels[:, 55:, 3] = 10
        bounds = detect_content_bounds(pixels)
        assert bounds.min_y == 6
        assert bounds.max_x == 54
        assert bounds.min_x == 0
        assert bounds.max_y == 59

    def test_framed_panel(self):
        tile = framed_mosaic()[:100, :100]
        bounds = detect_content_bounds(tile)
        assert bounds.as_tuple() == (15, 15, 84, 84)

    def test_sparse_row_below_density_threshold(self):
        """A seam row with a few stray content pixels is still skipped"""
        pixels = uniform(100, 100, 128)
        pixels[:4, :, :3] = 0
        pixels[2, :3, :3] = 128  # 3 pixels, not more than 3% of 100
        bounds = detect_content_bounds(pixels)
        assert bounds.min_y == 4

    def test_row_just_above_density_threshold(self):
        pixels = uniform(100, 100, 128)
        pixels[:4, :, :3] = 0
        pixels[2, :4, :3] = 128
        bounds = detect_content_bounds(pixels)
        assert bounds.min_y == 2

    def test_scan_stops_at_first_quarter(self):
        """Borders deeper than a quarter of the tile are not removed"""
        pixels = uniform(100, 100, 128)
        pixels[:30] = 255
        bounds = detect_content_bounds(pixels)
        assert bounds.min_y == 0

    def test_border_just_inside_first_quarter(self):
        pixels = uniform(100, 100, 128)
        pixels[:24] = 255
        bounds = detect_content_bounds(pixels)
        assert bounds.min_y == 24

    def test_horizontal_scan_ignores_noise_rows(self):
        """Left seam is found even though the top rows are all noise"""
        pixels = uniform(100, 100, 128)
        pixels[:10] = 0
        pixels[:, :8, :3] = 255
        bounds = detect_content_bounds(pixels)
        assert bounds.min_y == 10
        assert bounds.min_x == 8

    def test_custom_density_threshold(self):
        pixels = uniform(100, 100, 128)
        pixels[:4, :, :3] = 0
        pixels[2, :10, :3] = 128
        config = CropConfig(density_threshold=0.2)
        assert detect_content_bounds(pixels, config).min_y == 4

    def test_custom_scan_fraction(self):
        pixels = uniform(100, 100, 128)
        pixels[:30] = 255
        config = CropConfig(scan_fraction=0.4)
        assert detect_content_bounds(pixels, config).min_y == 30

    @pytest.mark.parametrize("seed", range(6))
    @pytest.mark.parametrize("shape", [(1, 1), (1, 7), (6, 1), (2, 2), (17, 31), (64, 48)])
    def test_bounds_always_inside_tile(self, seed, shape):
        rng = np.random.default_rng(seed)
        h, w = shape
        pixels = rng.choice([0, 128, 255], size=(h, w, 4)).astype(np.uint8)
        pixels[:, :, 3] = rng.choice([0, 255], size=(h, w))
        bounds = detect_content_bounds(pixels)
        assert bounds.contained_in(w, h)

        region = compute_crop_region(bounds, w, h)
        assert region.width >= 1 and region.height >= 1
        assert region.x + region.width <= w
        assert region.y + region.height <= h

    def test_second_pass_is_stable(self):
        """Cropped output has no further border rows or columns to remove"""
        tile = Tile(0, 0, framed_mosaic()[:100, :100].copy())
        cropped = crop_tile(tile)
        bounds = detect_content_bounds(cropped.pixels)
        assert bounds.as_tuple() == (0, 0, cropped.width - 1, cropped.height - 1)


class TestComputeCropRegion:
    """Test safety buffer and clamping"""

    def test_safety_buffer(self):
        region = compute_crop_region(ContentBounds(0, 0, 49, 39), 50, 40)
        assert (region.x, region.y, region.width, region.height) == (1, 1, 48, 38)

    def test_no_safety_buffer(self):
        region = compute_crop_region(ContentBounds(3, 4, 20, 30), 50, 40, safety_buffer=0)
        assert (region.x, region.y, region.width, region.height) == (3, 4, 18, 27)

    def test_no_content_collapses(self):
        bounds = ContentBounds.full(50, 40, has_content=False)
        region = compute_crop_region(bounds, 50, 40)
        assert (region.x, region.y, region.width, region.height) == (1, 1, 1, 1)

    def test_thin_bounds_clamped(self):
        region = compute_crop_region(ContentBounds(5, 5, 6, 5), 10, 10)
        assert region.width == 1
        assert region.height == 1

    def test_single_pixel_tile(self):
        region = compute_crop_region(ContentBounds(0, 0, 0, 0), 1, 1)
        assert (region.x, region.y, region.width, region.height) == (0, 0, 1, 1)


class TestCropToContent:
    """Test rendering of the cropped region"""

    def test_clean_tile(self):
        pixels = content_block(40, 50)
        tile = Tile(0, 0, pixels)
        cropped = crop_to_content(tile, detect_content_bounds(pixels))
        assert (cropped.width, cropped.height) == (48, 38)
        assert np.array_equal(cropped.pixels, pixels[1:39, 1:49])
        assert not cropped.passthrough

    def test_uniform_noise_tile_is_single_pixel(self):
        tile = Tile(1, 2, uniform(40, 50, 255))
        cropped = crop_tile(tile, index=6)
        assert (cropped.width, cropped.height) == (1, 1)
        assert (cropped.row, cropped.col, cropped.index) == (1, 2, 6)

    def test_grayscale_tile(self):
        pixels = np.full((20, 30), 128, dtype=np.uint8)
        cropped = crop_tile(Tile(0, 0, pixels))
        assert cropped.pixels.shape == (18, 28)

    def test_falls_back_when_surface_unavailable(self, monkeypatch):
        monkeypatch.setattr(
            detection,
            "acquire_surface",
            lambda *args, **kwargs: RenderSurfaceUnavailable("no surface"),
        )
        pixels = framed_mosaic()[:100, :100].copy()
        cropped = crop_tile(Tile(0, 1, pixels), index=2)
        assert cropped.passthrough
        assert cropped.bounds is None
        assert np.array_equal(cropped.pixels, pixels)
        assert cropped.index == 2


class TestAcquireSurface:
    """Test render surface acquisition"""

    def test_surface(self):
        surface = acquire_surface(10, 5)
        assert isinstance(surface, RenderSurface)
        assert surface.pixels.shape == (5, 10, 4)

    def test_single_channel(self):
        surface = acquire_surface(10, 5, channels=1)
        assert surface.pixels.shape == (5, 10)

    def test_invalid_size(self):
        assert isinstance(acquire_surface(0, 5), RenderSurfaceUnavailable)


class TestEncodeTile:
    """Test output encoding"""

    def test_png_keeps_alpha(self):
        pixels = content_block(8, 9)
        decoded = cv2.imdecode(np.frombuffer(encode_tile(pixels), np.uint8), cv2.IMREAD_UNCHANGED)
        assert np.array_equal(decoded, pixels)

    def test_jpg_drops_alpha(self):
        data = encode_tile(content_block(16, 16), "jpg", quality=0.98)
        decoded = cv2.imdecode(np.frombuffer(data, np.uint8), cv2.IMREAD_UNCHANGED)
        assert decoded.shape == (16, 16, 3)

    def test_unknown_format(self):
        with pytest.raises(TileEncodeError):
            encode_tile(content_block(4, 4), "gif")
