"""Classification of seam and margin pixels."""

from __future__ import annotations

import numpy as np

from .models import NoiseThresholds

DEFAULT_THRESHOLDS = NoiseThresholds()


def is_noise(
    r: int,
    g: int,
    b: int,
    a: int = 255,
    thresholds: NoiseThresholds = DEFAULT_THRESHOLDS,
) -> bool:
    """Check whether a single pixel is part of a border artifact.

    Rules are applied in order: near-transparent pixels, then near-black
    seams, then near-white margins. Anything else is content.
    """
    if a < thresholds.alpha_cutoff:
        return True
    brightness = (r + g + b) / 3
    if brightness < thresholds.dark_cutoff:
        return True
    return brightness > thresholds.bright_cutoff


def noise_mask(
    pixels: np.ndarray,
    thresholds: NoiseThresholds = DEFAULT_THRESHOLDS,
) -> np.ndarray:
    """Classify every pixel of an image.

    Args:
        pixels: BGRA or BGR image (BGR is treated as fully opaque),
            or a single-channel grayscale image
        thresholds: Classification thresholds

    Returns:
        Boolean mask, True where the pixel is noise
    """
    if pixels.ndim == 2:
        brightness = pixels.astype(np.float32)
        alpha = None
    else:
        # Channel order does not matter for the mean
        brightness = pixels[:, :, :3].astype(np.float32).sum(axis=2) / 3
        alpha = pixels[:, :, 3] if pixels.shape[2] == 4 else None

    mask = (brightness < thresholds.dark_cutoff) | (brightness > thresholds.bright_cutoff)
    if alpha is not None:
        mask |= alpha < thresholds.alpha_cutoff
    return mask


def content_mask(
    pixels: np.ndarray,
    thresholds: NoiseThresholds = DEFAULT_THRESHOLDS,
) -> np.ndarray:
    """Return boolean mask, True where the pixel is real content."""
    return ~noise_mask(pixels, thresholds)
