"""
Unit tests for the noise classifier
"""

import numpy as np
import pytest

from mosaic_split.models import NoiseThresholds
from mosaic_split.noise import content_mask, is_noise, noise_mask


class TestIsNoise:
    """Test single pixel classification"""

    def test_transparent_pixel_is_noise(self):
        assert is_noise(128, 128, 128, 39)
        assert not is_noise(128, 128, 128, 40)

    def test_alpha_checked_before_brightness(self):
        """Mid-grey content is still noise when nearly transparent"""
        assert is_noise(120, 130, 140, 0)

    def test_dark_seam(self):
        assert is_noise(0, 0, 0)
        assert is_noise(21, 22, 22)  # mean 21.67
        assert not is_noise(22, 22, 22)

    def test_white_margin(self):
        assert is_noise(255, 255, 255)
        assert is_noise(238, 238, 239)  # mean 238.33
        assert not is_noise(238, 238, 238)

    def test_saturated_colours_are_content(self):
        """Brightness is the channel mean, so pure red is content"""
        assert not is_noise(255, 0, 0)
        assert not is_noise(0, 0, 255)

    def test_custom_thresholds(self):
        thresholds = NoiseThresholds(alpha_cutoff=0, dark_cutoff=50, bright_cutoff=200)
        assert is_noise(40, 40, 40, 0, thresholds)
        assert is_noise(210, 210, 210, 255, thresholds)
        assert not is_noise(100, 100, 100, 0, thresholds)


class TestNoiseMask:
    """Test vectorised classification"""

    PIXELS = [
        (128, 128, 128, 255),
        (128, 128, 128, 10),
        (0, 0, 0, 255),
        (21, 22, 22, 255),
        (22, 22, 22, 255),
        (238, 238, 238, 255),
        (238, 238, 239, 255),
        (255, 255, 255, 255),
        (200, 30, 90, 60),
    ]

    def _bgra(self):
        # One row, stored in OpenCV channel order
        return np.array([[(b, g, r, a) for r, g, b, a in self.PIXELS]], dtype=np.uint8)

    def test_matches_scalar_predicate(self):
        mask = noise_mask(self._bgra())
        expected = [is_noise(*p) for p in self.PIXELS]
        assert mask[0].tolist() == expected

    def test_content_mask_is_negation(self):
        pixels = self._bgra()
        assert np.array_equal(content_mask(pixels), ~noise_mask(pixels))

    def test_bgr_treated_as_opaque(self):
        pixels = np.full((2, 3, 3), 128, dtype=np.uint8)
        assert not noise_mask(pixels).any()

    def test_grayscale(self):
        pixels = np.array([[0, 100, 255]], dtype=np.uint8)
        assert noise_mask(pixels)[0].tolist() == [True, False, True]

    def test_mask_shape(self):
        pixels = np.zeros((7, 5, 4), dtype=np.uint8)
        assert noise_mask(pixels).shape == (7, 5)


class TestNoiseThresholds:
    """Test threshold validation"""

    def test_defaults(self):
        thresholds = NoiseThresholds()
        assert thresholds.alpha_cutoff == 40
        assert thresholds.dark_cutoff == 22
        assert thresholds.bright_cutoff == 238

    def test_dark_above_bright(self):
        with pytest.raises(ValueError):
            NoiseThresholds(dark_cutoff=200, bright_cutoff=100).validate()

    def test_out_of_range(self):
        with pytest.raises(ValueError):
            NoiseThresholds(bright_cutoff=300).validate()
