"""
Flow field: modes, vortex orbits, z-periodic noise and identity cases.
"""

import os
import sys

import numpy as np
import pytest

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from core.phase import FrameContext
from core.sampler import pixel_grid
from effects import apply_effect
from effects.fields import noise_pair
from effects.flow_field import (
    NOISE_Z_CELLS,
    FlowFieldConfig,
    flow_vectors,
    precompute,
    vortex_centers,
)

MODES = ["liquid", "smoke", "plasma", "vortex"]


class TestPrecompute:

    @pytest.mark.parametrize("cycles,expected", [(1.0, 1), (2.3, 2), (0.4, 1)])
    def test_noise_period(self, cycles, expected):
        data = precompute(FlowFieldConfig(noise_cycles=cycles))
        assert data.noise_period == NOISE_Z_CELLS * expected

    def test_orbit_radii_jittered(self):
        data = precompute(FlowFieldConfig(swirls=4, orbit_radius=0.3, seed=5))
        assert data.orbit_radii.shape == (4,)
        assert (data.orbit_radii >= 0.3 * 0.8 - 1e-6).all()
        assert (data.orbit_radii <= 0.3 * 1.2 + 1e-6).all()
        with pytest.raises(ValueError):
            data.orbit_radii[0] = 0.0

    def test_seed_deterministic(self):
        a = precompute(FlowFieldConfig(seed=3))
        b = precompute(FlowFieldConfig(seed=3))
        np.testing.assert_array_equal(a.orbit_radii, b.orbit_radii)


class TestFields:

    def test_noise_loops_over_period(self):
        data = precompute(FlowFieldConfig(noise_cycles=2.0))
        ys, xs = pixel_grid(12, 16)
        start = noise_pair(xs, ys, 0.05, 0.0, data.noise_period)
        end = noise_pair(xs, ys, 0.05, float(data.noise_period), data.noise_period)
        for a, b in zip(start, end):
            np.testing.assert_allclose(a, b, atol=1e-6)

    def test_vortex_centers_orbit_center(self):
        data = precompute(FlowFieldConfig(mode="vortex", swirls=3))
        w, h = 40, 30
        for i in (0, 5, 9):
            centers, strengths = vortex_centers(data, FrameContext(i, 10), w, h)
            dist = np.hypot(centers[:, 0] - w / 2, centers[:, 1] - h / 2)
            np.testing.assert_allclose(dist, data.orbit_radii * min(w, h), rtol=1e-5)
            assert (strengths >= 0).all()

    def test_vortex_centers_move(self):
        data = precompute(FlowFieldConfig(mode="vortex"))
        a, _ = vortex_centers(data, FrameContext(0, 10), 40, 30)
        b, _ = vortex_centers(data, FrameContext(1, 10), 40, 30)
        assert not np.allclose(a, b)

    @pytest.mark.parametrize("mode", MODES)
    def test_vectors_finite(self, mode):
        data = precompute(FlowFieldConfig(mode=mode))
        ys, xs = pixel_grid(12, 16)
        vx, vy = flow_vectors(data, FrameContext(3, 10), xs, ys)
        assert vx.shape == (12, 16)
        assert np.isfinite(vx).all() and np.isfinite(vy).all()

    def test_zero_strength_vectors(self):
        data = precompute(FlowFieldConfig(flow_strength=0.0))
        ys, xs = pixel_grid(8, 8)
        vx, vy = flow_vectors(data, FrameContext(2, 10), xs, ys)
        assert not vx.any() and not vy.any()


class TestInvoke:

    @pytest.mark.parametrize("mode", MODES)
    def test_modes_render(self, mode, rgba_frame):
        out = apply_effect(rgba_frame, "flow_field", 4, 12, mode=mode)
        assert out.shape == rgba_frame.shape

    @pytest.mark.parametrize("mode", MODES)
    def test_zero_strength_identity(self, mode, rgba_frame):
        out = apply_effect(rgba_frame, "flow_field", 4, 12, mode=mode, flow_strength=0.0)
        np.testing.assert_array_equal(out, rgba_frame)

    def test_zero_blend_identity(self, rgba_frame):
        out = apply_effect(rgba_frame, "flow_field", 4, 12, blend_strength=0.0)
        np.testing.assert_array_equal(out, rgba_frame)

    def test_displaces(self, rgba_frame):
        out = apply_effect(rgba_frame, "flow_field", 4, 12, flow_strength=20.0,
                           noise_scale=0.05, blend_strength=1.0)
        assert not np.array_equal(out, rgba_frame)

    def test_hue_rotation_changes_color(self, rgba_frame):
        a = apply_effect(rgba_frame, "flow_field", 0, 12, flow_strength=0.0)
        b = apply_effect(rgba_frame, "flow_field", 0, 12, flow_strength=0.0, hue_rotation=90.0)
        assert not np.array_equal(a, b)

    @pytest.mark.parametrize("edge", ["wrap", "clamp"])
    def test_edge_behavior(self, edge, rgba_frame):
        out = apply_effect(rgba_frame, "flow_field", 1, 12, edge_behavior=edge)
        assert out.dtype == np.uint8

    def test_preserve_alpha(self, rgba_frame):
        out = apply_effect(rgba_frame, "flow_field", 6, 12, flow_strength=30.0)
        np.testing.assert_array_equal(out[:, :, 3], rgba_frame[:, :, 3])
