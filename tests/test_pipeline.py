"""
Composition pipeline: instance lifecycle, chains, layers and sequence rendering.
"""

import logging
import os
import sys

import numpy as np
import pytest

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from core.codec import CodecError
from core.layer import RasterLayer
from core.pipeline import (
    EffectChain,
    EffectInstance,
    EffectSettings,
    render_frames_parallel,
    render_sequence,
    to_rgba,
)
from core.pool import BufferPool
from core.safety import MAX_CHAIN_DEPTH, SafetyError
from effects import EFFECTS, create_effect

ALL_EFFECTS = sorted(EFFECTS)


class TestToRgba:

    def test_adds_opaque_alpha(self, rgb_frame):
        out = to_rgba(rgb_frame)
        assert out.shape[2] == 4
        assert (out[:, :, 3] == 255).all()
        np.testing.assert_array_equal(out[:, :, :3], rgb_frame)

    def test_rgba_passthrough(self, rgba_frame):
        assert to_rgba(rgba_frame) is rgba_frame


class TestEffectInstance:

    def test_lifecycle(self):
        inst = EffectInstance(EFFECTS["holofoil"])
        assert inst.state == "invokable"
        assert inst.name == "holofoil"
        assert "invokable" in repr(inst)

    def test_dict_config(self):
        inst = EffectInstance(EFFECTS["holofoil"], {"grating_order_count": 9})
        assert inst.config.grating_order_count == 5

    @pytest.mark.parametrize("name", ALL_EFFECTS)
    def test_output_contract(self, name, rgba_frame):
        before = rgba_frame.copy()
        out = create_effect(name).invoke(rgba_frame, 3, 12)
        assert out.shape == rgba_frame.shape
        assert out.dtype == np.uint8
        assert not np.may_share_memory(out, rgba_frame)
        np.testing.assert_array_equal(rgba_frame, before)

    @pytest.mark.parametrize("name", ALL_EFFECTS)
    def test_rgb_input_gives_rgba(self, name, rgb_frame):
        out = create_effect(name).invoke(rgb_frame, 0, 4)
        assert out.shape == rgb_frame.shape[:2] + (4,)

    @pytest.mark.parametrize("name", ALL_EFFECTS)
    def test_deterministic_across_instances(self, name, rgba_frame):
        a = create_effect(name).invoke(rgba_frame, 5, 20)
        b = create_effect(name).invoke(rgba_frame, 5, 20, BufferPool())
        assert a.tobytes() == b.tobytes()

    @pytest.mark.parametrize("name", ALL_EFFECTS)
    def test_frame_total_wraps_to_zero(self, name, rgba_frame):
        inst = create_effect(name)
        assert np.array_equal(inst.invoke(rgba_frame, 0, 10), inst.invoke(rgba_frame, 10, 10))

    def test_settings_resize(self, rgba_frame):
        inst = create_effect("orbit_bloom", settings=EffectSettings(width=16, height=12))
        out = inst.invoke(rgba_frame, 0, 4)
        assert out.shape == (12, 16, 4)

    def test_settings_partial_dimensions(self, rgba_frame):
        inst = create_effect("orbit_bloom", settings=EffectSettings(width=16))
        assert inst.invoke(rgba_frame, 0, 4).shape == (24, 16, 4)

    def test_pool_buffers_returned(self, rgba_frame, pool):
        inst = create_effect("void_echo")
        inst.invoke(rgba_frame, 0, 4, pool)
        assert pool.stats()["loaned"] == 0
        allocated = pool.allocations
        inst.invoke(rgba_frame, 1, 4, pool)
        assert pool.allocations == allocated

    def test_timing_logged(self, rgba_frame, caplog):
        with caplog.at_level(logging.DEBUG, logger="core.pipeline"):
            create_effect("holofoil").invoke(rgba_frame, 2, 8)
        assert "holofoil frame 2/8" in caplog.text

    def test_bad_total_frames(self, rgba_frame):
        with pytest.raises(SafetyError):
            create_effect("holofoil").invoke(rgba_frame, 0, -3)


class TestApplyToLayer:

    def test_writes_back_and_adjusts_opacity(self, rgba_frame):
        layer = RasterLayer.from_pixels(rgba_frame, name="fg", opacity=0.8)
        inst = create_effect("orbit_bloom", {"layer_opacity": 0.5})
        expected = inst.invoke(rgba_frame, 1, 6)
        inst.apply_to_layer(layer, 1, 6)
        np.testing.assert_array_equal(layer.pixels(), expected)
        assert layer.opacity == pytest.approx(0.4)

    def test_codec_error_leaves_layer(self, rgba_frame):
        class BrokenLayer(RasterLayer):
            def to_buffer(self):
                return b"broken"

        layer = BrokenLayer.from_pixels(rgba_frame)
        before = layer.data
        with pytest.raises(CodecError):
            create_effect("holofoil").apply_to_layer(layer, 0, 4)
        assert layer.data == before
        assert layer.opacity == 1.0

    def test_size_falls_back_to_layer_info(self, rgba_frame):
        class CanvasLayer(RasterLayer):
            def get_info(self):
                return {"width": 16, "height": 12}

        layer = CanvasLayer.from_pixels(rgba_frame)
        create_effect("holofoil").apply_to_layer(layer, 0, 4)
        assert layer.pixels().shape == (12, 16, 4)

    def test_settings_override_one_side(self, rgba_frame):
        layer = RasterLayer.from_pixels(rgba_frame)
        inst = create_effect("holofoil", settings=EffectSettings(width=10))
        inst.apply_to_layer(layer, 0, 4)
        assert layer.get_info() == {"width": 10, "height": 24}

    def test_layer_size_uses_decoded_size_when_info_empty(self, rgba_frame):
        class BlankInfoLayer(RasterLayer):
            def get_info(self):
                return {}

        layer = BlankInfoLayer.from_pixels(rgba_frame)
        assert create_effect("holofoil").layer_size(layer, (32, 24)) == (32, 24)


class TestEffectChain:

    def test_sequential(self, rgba_frame):
        a = create_effect("flow_field")
        b = create_effect("chromatic_aberration", {"max_displacement": 5.0})
        chain = EffectChain([a, b])
        expected = b.invoke(a.invoke(rgba_frame, 2, 8), 2, 8)
        np.testing.assert_array_equal(chain.invoke(rgba_frame, 2, 8), expected)
        assert len(chain) == 2

    def test_depth_limit(self):
        chain = EffectChain([create_effect("holofoil")] * MAX_CHAIN_DEPTH)
        with pytest.raises(SafetyError):
            chain.append(create_effect("holofoil"))


class TestSequences:

    def test_render_sequence(self, rgba_frame):
        inst = create_effect("orbit_bloom")
        frames = list(render_sequence(inst, rgba_frame, 5))
        assert [i for i, _ in frames] == list(range(5))
        np.testing.assert_array_equal(frames[2][1], inst.invoke(rgba_frame, 2, 5))

    def test_parallel_matches_sequential(self, rgba_frame):
        inst = create_effect("void_echo", {"echo_count": 3})
        sequential = [f for _, f in render_sequence(inst, rgba_frame, 6)]
        parallel = render_frames_parallel(inst, rgba_frame, 6, max_workers=3)
        assert len(parallel) == 6
        for s, p in zip(sequential, parallel):
            np.testing.assert_array_equal(s, p)

    def test_sequence_rejects_bad_total(self, rgba_frame):
        with pytest.raises(SafetyError):
            list(render_sequence(create_effect("holofoil"), rgba_frame, 0))
