"""
Pixel sampler: interpolation and edge policies.
"""

import os
import sys

import numpy as np
import pytest

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from core.sampler import EDGE_MODES, SAMPLE_MODES, pixel_grid, remap, remap_channel, resolve_coords, sample


def ramp(h=4, w=4):
    """Single-channel-ish raster where R = 10 * x, G = 10 * y."""
    frame = np.zeros((h, w, 4), dtype=np.uint8)
    frame[:, :, 0] = (np.arange(w) * 10)[None, :]
    frame[:, :, 1] = (np.arange(h) * 10)[:, None]
    frame[:, :, 3] = 255
    return frame


class TestSample:

    def test_integer_coords_exact(self):
        f = ramp()
        assert sample(f, 2, 1, channel=0) == 20.0
        assert sample(f, 2, 1, channel=1) == 10.0

    def test_bilinear_midpoint(self):
        f = ramp()
        assert sample(f, 1.5, 0, channel=0) == pytest.approx(15.0)
        assert sample(f, 0, 2.5, channel=1) == pytest.approx(25.0)

    def test_nearest_rounds_half_up(self):
        f = ramp()
        assert sample(f, 0.5, 0, channel=0, mode="nearest") == 10.0
        assert sample(f, 0.49, 0, channel=0, mode="nearest") == 0.0

    def test_last_column_reads_border(self):
        f = ramp()
        assert sample(f, 3.0, 0, channel=0) == 30.0
        assert sample(f, 3.7, 0, channel=0) == pytest.approx(30.0)

    def test_all_channels(self):
        f = ramp()
        px = sample(f, 1, 1)
        assert px.shape == (4,)
        assert px.dtype == np.float32
        assert list(px) == [10.0, 10.0, 0.0, 255.0]


class TestEdgePolicies:

    def test_clamp(self):
        x, y, valid = resolve_coords(-3.0, 9.0, 4, 4, "clamp")
        assert (x, y) == (0.0, 3.0)
        assert valid.all()

    def test_wrap(self):
        x, y, _ = resolve_coords(-1.0, 5.0, 4, 4, "wrap")
        assert (x, y) == (3.0, 1.0)

    def test_transparent_marks_invalid(self):
        _, _, valid = resolve_coords(np.array([-0.5, 1.0, 3.5]), np.zeros(3), 4, 4, "transparent")
        assert list(valid) == [False, True, False]

    def test_transparent_samples_zero(self):
        f = ramp()
        ys, xs = pixel_grid(4, 4)
        out = remap(f, xs + 10, ys, edge="transparent")
        assert not out.any()

    @pytest.mark.parametrize("mode", SAMPLE_MODES)
    @pytest.mark.parametrize("edge", EDGE_MODES)
    def test_remap_identity(self, mode, edge):
        f = ramp()
        ys, xs = pixel_grid(4, 4)
        out = remap(f, xs, ys, mode=mode, edge=edge)
        assert np.array_equal(out, f.astype(np.float32))

    def test_remap_channel_shift_wraps(self):
        f = ramp()
        ys, xs = pixel_grid(4, 4)
        out = remap_channel(f, 0, xs + 1, ys, mode="nearest", edge="wrap")
        assert list(out[0]) == [10.0, 20.0, 30.0, 0.0]


class TestPixelGrid:

    def test_shape(self):
        ys, xs = pixel_grid(3, 5)
        assert ys.shape == xs.shape == (3, 5)
        assert xs[0, 4] == 4.0
        assert ys[2, 0] == 2.0
