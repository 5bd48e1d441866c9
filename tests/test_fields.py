"""
Field generators and the effect config base.
"""

import dataclasses
import logging
import math
import os
import sys

import numpy as np
import pytest

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from core.sampler import pixel_grid
from effects.config import EffectConfig, clamp, frozen_array
from effects.fields import (
    chromatic_orbit,
    grating_response,
    noise_flow,
    noise_pair,
    normalized_grid,
    polar_ripple,
    radial_vignette,
    spectral_lut,
    streamline,
    vortex_field,
)
from effects.orbit_bloom import OrbitBloomConfig


class TestGrids:

    def test_normalized_grid_corners(self):
        u, v = normalized_grid(5, 7)
        assert u.shape == v.shape == (5, 7)
        assert u[0, 0] == -1.0 and u[0, -1] == 1.0
        assert v[0, 0] == -1.0 and v[-1, 0] == 1.0


class TestGrating:

    def test_range(self):
        u, v = normalized_grid(16, 16)
        vecs = np.array([[1.0, 0.0], [0.0, 1.0], [0.7071, 0.7071]])
        g = grating_response(u, v, vecs, 3.0, 0.4, 1.0, 0.5, 0.2)
        assert g.min() >= -1.0 - 1e-5
        assert g.max() <= 1.0 + 1e-5

    def test_full_rotation_is_identity(self):
        u, v = normalized_grid(8, 8)
        vecs = np.array([[1.0, 0.0]])
        a = grating_response(u, v, vecs, 2.0, 0.0)
        b = grating_response(u, v, vecs, 2.0, 2 * math.pi)
        np.testing.assert_allclose(a, b, atol=1e-4)


class TestShaping:

    def test_radial_vignette_symmetric(self):
        u, v = normalized_grid(4, 4)
        vig = radial_vignette(u, v, 0.5)
        for y, x in [(0, 0), (0, 3), (3, 0), (3, 3)]:
            assert vig[y, x] == pytest.approx(0.5)
        assert vig[1, 1] == pytest.approx(1.0 - 0.5 * 2 / 9, rel=1e-5)
        np.testing.assert_allclose(vig, vig[::-1, ::-1])

    def test_radial_vignette_zero_strength(self):
        u, v = normalized_grid(5, 7)
        assert (radial_vignette(u, v, 0.0) == 1.0).all()

    @pytest.mark.parametrize("mode", ["prismatic", "tinted", "mono"])
    def test_spectral_lut_range(self, mode):
        tints = ((255, 0, 0), (0, 255, 0), (0, 0, 255))
        lut = spectral_lut(mode, 210.0, 0.9, 1.0, tints)
        assert lut.shape == (256, 3)
        assert lut.min() >= 0.0 and lut.max() <= 1.0 + 1e-6
        if mode != "prismatic":
            assert not lut[0].any()

    def test_spectral_lut_tinted_takes_own_channel(self):
        tints = ((200, 9, 9), (9, 100, 9), (9, 9, 50))
        lut = spectral_lut("tinted", 0.0, 1.0, 1.0, tints)
        np.testing.assert_allclose(lut[255], [200 / 255, 100 / 255, 50 / 255], rtol=1e-6)


class TestDisplacementFields:

    def test_zero_ripple_is_identity(self):
        ys, xs = pixel_grid(6, 6)
        sx, sy = polar_ripple(xs, ys, 3.0, 3.0, 0.0, 8, 1, 1.3)
        np.testing.assert_array_equal(sx, xs)
        np.testing.assert_array_equal(sy, ys)

    def test_orbit_radius(self):
        ys, xs = pixel_grid(6, 6)
        sx, sy = chromatic_orbit(xs, ys, 3.0, 3.0, 4.0, 0.7, 0.33)
        np.testing.assert_allclose(np.hypot(sx - xs, sy - ys), 4.0, atol=1e-4)

    def test_vortex_zero_outside_radius(self):
        ys, xs = pixel_grid(21, 21)
        vx, vy = vortex_field(xs, ys, [(10.0, 10.0)], [1.0], 5.0)
        assert vx[10, 10] == 0.0 and vy[10, 10] == 0.0
        assert vx[0, 0] == 0.0 and vy[0, 0] == 0.0
        assert np.hypot(vx[10, 12], vy[10, 12]) == pytest.approx(0.6, abs=1e-5)

    def test_vortex_is_tangential(self):
        ys, xs = pixel_grid(21, 21)
        vx, vy = vortex_field(xs, ys, [(10.0, 10.0)], [1.0], 8.0)
        # right of center, flow points straight down the y axis
        assert abs(vx[10, 13]) < 1e-5
        assert vy[10, 13] > 0

    def test_vortex_zero_radius(self):
        ys, xs = pixel_grid(4, 4)
        vx, vy = vortex_field(xs, ys, [(2.0, 2.0)], [1.0], 0.0)
        assert not vx.any() and not vy.any()

    @pytest.mark.parametrize("mode", ["liquid", "smoke", "plasma"])
    def test_noise_flow_bounded(self, mode):
        ys, xs = pixel_grid(12, 12)
        n1, n2 = noise_pair(xs, ys, 0.1, 0.3, 4)
        vx, vy = noise_flow(mode, n1, n2, 5.0, 0.5)
        assert np.abs(vx).max() <= 5.0 + 1e-4
        assert np.abs(vy).max() <= 5.0 + 1e-4

    def test_noise_flow_zero_strength(self):
        n = np.full((3, 3), 0.4, dtype=np.float32)
        vx, vy = noise_flow("liquid", n, n, 0.0)
        assert not vx.any() and not vy.any()

    def test_streamline_full_coherence(self):
        vx = np.array([1.0, 2.0])
        vy = np.array([3.0, -1.0])
        sx, sy = streamline(vx, vy, 1.0)
        np.testing.assert_array_equal(sx, vx)
        np.testing.assert_array_equal(sy, vy)


@dataclasses.dataclass(frozen=True)
class SampleConfig(EffectConfig):
    amount: float = 0.5
    count: int = 3
    mode: str = "soft"
    angle: float = 0.0
    enabled: bool = True
    color: str = "#FFFFFF"

    PARAM_RANGES = {
        "amount": (0.0, 1.0),
        "count": (1, 8),
        "mode": ("soft", "hard"),
    }
    WRAPPED = {"angle": 360.0}


@dataclasses.dataclass(frozen=True)
class ScheduleConfig(EffectConfig):
    starts: tuple = (0, 10)

    PARAM_RANGES = {"starts": (0, 100)}


class TestEffectConfig:

    def test_defaults(self):
        cfg = SampleConfig()
        assert cfg.to_dict() == {"amount": 0.5, "count": 3, "mode": "soft",
                                 "angle": 0.0, "enabled": True, "color": "#FFFFFF"}

    def test_numeric_clamped(self):
        cfg = SampleConfig(amount=4.0, count=99)
        assert cfg.amount == 1.0
        assert cfg.count == 8

    def test_int_rounded(self):
        assert SampleConfig(count=2.6).count == 3

    @pytest.mark.parametrize("bad", [float("nan"), float("inf"), "lots", None])
    def test_unusable_number_uses_default(self, bad):
        assert SampleConfig(amount=bad).amount == 0.5

    def test_wrapped(self):
        assert SampleConfig(angle=370.0).angle == pytest.approx(10.0)
        assert SampleConfig(angle=-90.0).angle == pytest.approx(270.0)

    def test_unknown_enum_falls_back_with_warning(self, caplog):
        with caplog.at_level(logging.WARNING, logger="effects.config"):
            cfg = SampleConfig(mode="spiky")
        assert cfg.mode == "soft"
        assert "spiky" in caplog.text

    def test_bool_coerced(self):
        assert SampleConfig(enabled=0).enabled is False

    @pytest.mark.parametrize("text,expected", [
        ("false", False), ("False", False), ("0", False), ("no", False), ("", False),
        ("true", True), (" TRUE ", True), ("1", True), ("yes", True),
    ])
    def test_bool_from_flag_string(self, text, expected):
        assert SampleConfig(enabled=text).enabled is expected

    def test_bool_unrecognized_string_uses_default(self, caplog):
        with caplog.at_level(logging.DEBUG, logger="effects.config"):
            cfg = SampleConfig.from_dict({"enabled": "maybe"})
        assert cfg.enabled is True
        assert "maybe" in caplog.text

    def test_stage_toggle_from_string_mapping(self):
        cfg = OrbitBloomConfig.from_dict({"bloom_enabled": "false", "grain_enabled": "true"})
        assert cfg.bloom_enabled is False
        assert cfg.grain_enabled is True

    def test_int_tuple_from_list(self):
        cfg = ScheduleConfig.from_dict({"starts": [5, "20", 7.9, 400, -3]})
        assert cfg.starts == (5, 20, 7, 100, 0)

    @pytest.mark.parametrize("bad", ["0,10", 12, [1, "x"], None])
    def test_int_tuple_malformed_uses_default(self, bad):
        assert ScheduleConfig(starts=bad).starts == (0, 10)

    def test_non_string_for_str_field(self):
        assert SampleConfig(color=12).color == "#FFFFFF"

    def test_frozen(self):
        cfg = SampleConfig()
        with pytest.raises(dataclasses.FrozenInstanceError):
            cfg.amount = 0.1

    def test_from_dict_ignores_unknown(self):
        cfg = SampleConfig.from_dict({"amount": 0.2, "bogus": 1})
        assert cfg.amount == 0.2
        assert SampleConfig.from_dict(None) == SampleConfig()

    def test_replace_revalidates(self):
        assert SampleConfig().replace(amount=9.0).amount == 1.0

    def test_dict_round_trip(self):
        cfg = SampleConfig(amount=0.3, mode="hard", angle=45.0)
        assert SampleConfig.from_dict(cfg.to_dict()) == cfg


class TestHelpers:

    def test_clamp(self):
        assert clamp(5, 0, 3) == 3
        assert clamp(-1, 0, 3) == 0

    def test_frozen_array(self):
        arr = frozen_array(np.zeros(3))
        with pytest.raises(ValueError):
            arr[0] = 1.0
