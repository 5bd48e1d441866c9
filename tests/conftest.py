"""
Conftest: shared fixtures for all Loopwright test modules.

1. Synthetic rasters (gradient RGBA, gradient RGB, flat mid-gray)
2. A fresh BufferPool per test
"""

import os
import sys

import numpy as np
import pytest

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from core.pool import BufferPool


def make_test_frame(h=24, w=32, channels=4):
    """Generate a synthetic test frame (gradient + bright center block, not blank)."""
    frame = np.zeros((h, w, channels), dtype=np.uint8)
    frame[:, :, 0] = np.linspace(0, 255, w, dtype=np.uint8)[None, :]
    frame[:, :, 1] = np.linspace(0, 255, h, dtype=np.uint8)[:, None]
    frame[:, :, 2] = 128
    frame[h // 4:3 * h // 4, w // 4:3 * w // 4, :3] = 230
    if channels == 4:
        frame[:, :, 3] = 255
        frame[: h // 3, :, 3] = 90  # semi-transparent band
    return frame


@pytest.fixture
def rgba_frame():
    return make_test_frame()


@pytest.fixture
def rgb_frame():
    return make_test_frame(channels=3)


@pytest.fixture
def gray_frame():
    """4x4 opaque mid-gray raster (128 in every color channel)."""
    frame = np.full((4, 4, 4), 128, dtype=np.uint8)
    frame[:, :, 3] = 255
    return frame


@pytest.fixture
def pool():
    return BufferPool()
