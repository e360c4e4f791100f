import os
import sys

import numpy as np
import pytest

# Ensure repo root is on sys.path for test discovery
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from pixeledit.models.pixel_buffer import PixelBuffer  # noqa: E402
from pixeledit.services.pixel_buffer_service import PixelBufferService  # noqa: E402


def make_buffer(width, height, rgba=(0, 0, 0, 255)):
    return PixelBufferService().blank(width, height, rgba)


def numbered_buffer(width, height):
    """Every pixel distinct: R = x, G = y, B = 10*y + x, opaque."""
    ys, xs = np.mgrid[0:height, 0:width]
    samples = np.stack([xs, ys, 10 * ys + xs, np.full_like(xs, 255)], axis=-1).astype(np.uint8)
    return PixelBuffer(width, height, samples)


@pytest.fixture
def gray_buffer():
    return make_buffer(6, 5, (128, 128, 128, 255))


@pytest.fixture
def numbered():
    return numbered_buffer(4, 4)


@pytest.fixture
def noisy_buffer():
    rng = np.random.default_rng(7)
    samples = rng.integers(0, 256, size=(8, 10, 4), dtype=np.uint8)
    return PixelBuffer(10, 8, samples)
