"""
Orbit bloom: stage toggles, identities, vignette and looping grain.
"""

import os
import sys

import numpy as np
import pytest

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from effects import apply_effect
from effects.orbit_bloom import OrbitBloomConfig, precompute

STAGES_OFF = {
    "orbit_enabled": False,
    "ripple_enabled": False,
    "bloom_enabled": False,
    "vignette_enabled": False,
    "grain_enabled": False,
}


class TestPrecompute:

    def test_cycles_resolved(self):
        data = precompute(OrbitBloomConfig(orbit_rpm=0.25, bloom_pulse_cycles=2.3))
        assert data.orbit_cycles == 1
        assert data.pulse_cycles == 2
        assert data.grain_cycles == 1

    def test_channel_phases(self):
        data = precompute(OrbitBloomConfig(orbit_phase_g=0.5))
        assert data.channel_phases == (0.0, 0.5, 0.66)


class TestIdentity:

    def test_all_stages_off(self, rgba_frame):
        out = apply_effect(rgba_frame, "orbit_bloom", 3, 10, **STAGES_OFF)
        np.testing.assert_array_equal(out, rgba_frame)

    def test_zero_strengths(self, rgba_frame):
        out = apply_effect(rgba_frame, "orbit_bloom", 3, 10,
                           orbit_radius=0.0, ripple_amplitude=0.0,
                           bloom_intensity=0.0, vignette_enabled=False)
        np.testing.assert_array_equal(out, rgba_frame)

    def test_bloom_ignores_dim_pixels(self):
        frame = np.full((8, 8, 4), 100, dtype=np.uint8)
        frame[:, :, 3] = 255
        params = dict(STAGES_OFF, bloom_enabled=True, bloom_threshold=0.7, bloom_intensity=5.0)
        out = apply_effect(frame, "orbit_bloom", 0, 4, **params)
        np.testing.assert_array_equal(out, frame)


class TestStages:

    def test_vignette_mid_gray(self, gray_frame):
        params = dict(STAGES_OFF, vignette_enabled=True,
                      vignette_strength=0.5, vignette_roundness=1.0)
        out = apply_effect(gray_frame, "orbit_bloom", 0, 1, **params)
        assert tuple(out[0, 0, :3]) == (64, 64, 64)
        assert tuple(out[2, 2, :3]) == (128, 128, 128)
        assert out[0, 0, 3] == 255

    def test_bloom_brightens(self, rgba_frame):
        params = dict(STAGES_OFF, bloom_enabled=True, bloom_threshold=0.5,
                      bloom_intensity=2.0, bloom_pulse_enabled=False)
        out = apply_effect(rgba_frame, "orbit_bloom", 0, 4, **params)
        assert (out[:, :, :3] >= rgba_frame[:, :, :3]).all()
        assert out[:, :, :3].sum() > rgba_frame[:, :, :3].astype(int).sum()

    def test_orbit_moves_channels(self, rgba_frame):
        params = dict(STAGES_OFF, orbit_enabled=True, orbit_radius=6.0)
        out = apply_effect(rgba_frame, "orbit_bloom", 1, 4, **params)
        assert not np.array_equal(out, rgba_frame)

    def test_grain_steps_through_loop(self, rgba_frame):
        params = dict(STAGES_OFF, grain_enabled=True, grain_amount=0.1)
        a = apply_effect(rgba_frame, "orbit_bloom", 0, 8, **params)
        b = apply_effect(rgba_frame, "orbit_bloom", 1, 8, **params)
        c = apply_effect(rgba_frame, "orbit_bloom", 8, 8, **params)
        assert not np.array_equal(a, b)
        np.testing.assert_array_equal(a, c)

    @pytest.mark.parametrize("interpolation", ["nearest", "bilinear"])
    def test_interpolation_modes(self, interpolation, rgba_frame):
        out = apply_effect(rgba_frame, "orbit_bloom", 2, 6, interpolation=interpolation)
        assert out.shape == rgba_frame.shape


class TestAlpha:

    def test_preserve_alpha(self, rgba_frame):
        out = apply_effect(rgba_frame, "orbit_bloom", 2, 6)
        np.testing.assert_array_equal(out[:, :, 3], rgba_frame[:, :, 3])

    def test_opaque_when_not_preserving(self, rgba_frame):
        out = apply_effect(rgba_frame, "orbit_bloom", 2, 6, preserve_alpha=False)
        assert (out[:, :, 3] == 255).all()
