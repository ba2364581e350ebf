"""
Shared fixtures for mosaic splitting tests
"""

import cv2
import numpy as np
import pytest

from mosaic_split.models import SourceImage


def content_block(height, width, seed=0):
    """Textured mid-brightness BGRA block that never classifies as noise"""
    rng = np.random.default_rng(seed)
    block = np.empty((height, width, 4), dtype=np.uint8)
    block[:, :, :3] = rng.integers(60, 180, size=(height, width, 3), dtype=np.uint8)
    block[:, :, 3] = 255
    return block


def framed_mosaic(size=200, grid=2, margin=5, separator=10, seed=0):
    """Mosaic on a white canvas where every panel has a black frame.

    Each cell is `margin` px of white, then `separator` px of black,
    then content, mirrored on the far side.
    """
    img = np.full((size, size, 4), 255, dtype=np.uint8)
    cell = size // grid
    for row in range(grid):
        for col in range(grid):
            y0, x0 = row * cell, col * cell
            img[y0 + margin : y0 + cell - margin, x0 + margin : x0 + cell - margin, :3] = 0
            inset = margin + separator
            img[y0 + inset : y0 + cell - inset, x0 + inset : x0 + cell - inset] = content_block(
                cell - 2 * inset, cell - 2 * inset, seed + row * grid + col
            )
    return img


def encode_png(pixels):
    ok, buffer = cv2.imencode(".png", pixels)
    assert ok
    return buffer.tobytes()


@pytest.fixture
def mosaic_pixels():
    """200x200 2x2 mosaic with 5px white margin and 10px black frames"""
    return framed_mosaic()


@pytest.fixture
def mosaic_source(mosaic_pixels):
    return SourceImage("storyboard.png", mosaic_pixels.copy())


@pytest.fixture
def mosaic_png(mosaic_pixels):
    return encode_png(mosaic_pixels)
