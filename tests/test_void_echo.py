"""
Void echo: echo schedule, feedback accumulation and alpha handling.
"""

import os
import sys

import numpy as np
import pytest

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from effects import apply_effect
from effects.void_echo import VoidEchoConfig, echo_schedule, precompute


class TestPrecompute:

    def test_cycles_and_colors(self):
        data = precompute(VoidEchoConfig(displacement_speed=1.4, rotation_speed=0.3,
                                         tint_color="#FF0000", vignette_color="nope"))
        assert data.speed_cycles == 1
        assert data.rotation_cycles == 1
        assert data.tint == (255, 0, 0)
        assert data.vignette_color == (0, 0, 0)

    def test_clamped_config(self):
        cfg = VoidEchoConfig(echo_count=40, echo_decay=0.1)
        assert cfg.echo_count == 12
        assert cfg.echo_decay == 0.3


class TestSchedule:

    def test_length(self):
        data = precompute(VoidEchoConfig(echo_count=7))
        assert len(echo_schedule(data, 0.3)) == 7

    def test_decay_without_pulse(self):
        data = precompute(VoidEchoConfig(echo_count=4, echo_decay=0.5, pulse_intensity=0.0))
        opacities = [e[1] for e in echo_schedule(data, 0.2)]
        assert opacities == pytest.approx([1.0, 0.5, 0.25, 0.125])

    def test_echo_phases_trail(self):
        data = precompute(VoidEchoConfig(echo_count=3, echo_spacing=0.25))
        phases = [e[0] for e in echo_schedule(data, 0.1)]
        assert phases == pytest.approx([0.1, 0.85, 0.6])

    def test_displacement_radius(self):
        data = precompute(VoidEchoConfig(displacement_radius=50.0))
        for _, _, ox, oy, _ in echo_schedule(data, 0.37):
            assert np.hypot(ox, oy) == pytest.approx(50.0)

    def test_schedule_closes_loop(self):
        data = precompute(VoidEchoConfig(displacement_speed=2.2, rotation_speed=1.3))
        start = echo_schedule(data, 0.0)
        end = echo_schedule(data, 1.0)
        for a, b in zip(start, end):
            assert a[1:] == pytest.approx(b[1:], abs=1e-9)


class TestInvoke:

    @pytest.mark.parametrize("mode", ["screen", "add", "overlay", "normal"])
    def test_blend_modes(self, mode, rgba_frame):
        out = apply_effect(rgba_frame, "void_echo", 2, 10, blend_mode=mode, echo_count=3)
        assert out.shape == rgba_frame.shape

    @pytest.mark.parametrize("edge", ["transparent", "clamp", "wrap"])
    def test_edge_modes(self, edge, rgba_frame):
        out = apply_effect(rgba_frame, "void_echo", 2, 10, edge_mode=edge, echo_count=3)
        assert out.dtype == np.uint8

    def test_nearest_sampling(self, rgba_frame):
        a = apply_effect(rgba_frame, "void_echo", 1, 10, smoothing=False, echo_count=3)
        b = apply_effect(rgba_frame, "void_echo", 1, 10, smoothing=True, echo_count=3)
        assert a.shape == b.shape

    def test_animates(self, rgba_frame):
        a = apply_effect(rgba_frame, "void_echo", 0, 10, displacement_radius=5.0)
        b = apply_effect(rgba_frame, "void_echo", 3, 10, displacement_radius=5.0)
        assert not np.array_equal(a, b)

    def test_preserve_alpha(self, rgba_frame):
        out = apply_effect(rgba_frame, "void_echo", 4, 10, preserve_alpha=True)
        np.testing.assert_array_equal(out[:, :, 3], rgba_frame[:, :, 3])

    def test_far_displacement_is_transparent(self, rgba_frame):
        out = apply_effect(rgba_frame, "void_echo", 0, 10, displacement_radius=200.0,
                           chromatic_strength=0.0, edge_mode="transparent",
                           tint_strength=0.0, vignette_strength=0.0)
        assert not out.any()

    def test_clamp_edge_keeps_alpha(self, gray_frame):
        out = apply_effect(gray_frame, "void_echo", 0, 10, displacement_radius=200.0,
                           edge_mode="clamp", echo_decay=0.95, pulse_intensity=0.0)
        assert out[:, :, 3].min() > 0
