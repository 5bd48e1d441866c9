"""
Loopwright — Orbit Bloom

Stage order (each stage can be switched off):
    1. chromatic orbit  — R/G/B sampled from points orbiting each pixel
    2. polar ripple     — radial sine displacement, mixed with the undisplaced image
    3. bloom            — bright-pass, box blur, add back with optional pulse
    4. vignette         — darken toward the edges
    5. grain            — hash grain stepped through the loop
"""

import math
from dataclasses import dataclass

import numpy as np

from core.blend import apply_vignette, to_uint8
from core.convolution import apply_bloom, pulse_gain
from core.noise import hash3
from core.phase import resolve_cycles
from core.sampler import pixel_grid, remap, remap_channel
from effects.config import EffectConfig
from effects.fields import chromatic_orbit, polar_ripple

GRAIN_STEPS_PER_CYCLE = 1024


@dataclass(frozen=True)
class OrbitBloomConfig(EffectConfig):
    orbit_enabled: bool = True
    orbit_radius: float = 4.0
    orbit_rpm: float = 0.25
    orbit_phase_r: float = 0.0
    orbit_phase_g: float = 0.33
    orbit_phase_b: float = 0.66

    ripple_enabled: bool = True
    ripple_amplitude: float = 2.0
    ripple_frequency: int = 8
    ripple_radial_cycles: int = 1
    ripple_mix: float = 0.85

    bloom_enabled: bool = True
    bloom_threshold: float = 0.7
    bloom_intensity: float = 0.9
    bloom_blur_radius: int = 2
    bloom_pulse_enabled: bool = True
    bloom_pulse_amplitude: float = 0.15
    bloom_pulse_cycles: float = 2.0

    vignette_enabled: bool = True
    vignette_strength: float = 0.35
    vignette_roundness: float = 0.75

    grain_enabled: bool = False
    grain_amount: float = 0.03
    grain_cycles: float = 1.0

    interpolation: str = "nearest"
    preserve_alpha: bool = True
    layer_opacity: float = 1.0

    PARAM_RANGES = {
        "orbit_radius": (0.0, 100.0),
        "orbit_rpm": (-10.0, 10.0),
        "orbit_phase_r": (0.0, 1.0),
        "orbit_phase_g": (0.0, 1.0),
        "orbit_phase_b": (0.0, 1.0),
        "ripple_amplitude": (0.0, 100.0),
        "ripple_frequency": (0, 64),
        "ripple_radial_cycles": (0, 32),
        "ripple_mix": (0.0, 1.0),
        "bloom_threshold": (0.0, 1.0),
        "bloom_intensity": (0.0, 5.0),
        "bloom_blur_radius": (0, 32),
        "bloom_pulse_amplitude": (0.0, 1.0),
        "bloom_pulse_cycles": (0.0, 16.0),
        "vignette_strength": (0.0, 1.0),
        "vignette_roundness": (0.0, 1.0),
        "grain_amount": (0.0, 1.0),
        "grain_cycles": (1.0, 16.0),
        "interpolation": ("nearest", "bilinear"),
        "layer_opacity": (0.0, 1.0),
    }


@dataclass(frozen=True)
class OrbitBloomData:
    config: OrbitBloomConfig
    orbit_cycles: int
    pulse_cycles: int
    grain_cycles: int
    channel_phases: tuple


def precompute(config: OrbitBloomConfig, settings=None) -> OrbitBloomData:
    return OrbitBloomData(
        config=config,
        orbit_cycles=resolve_cycles(config.orbit_rpm),
        pulse_cycles=resolve_cycles(config.bloom_pulse_cycles),
        grain_cycles=max(1, resolve_cycles(config.grain_cycles)),
        channel_phases=(config.orbit_phase_r, config.orbit_phase_g, config.orbit_phase_b),
    )


def _orbit(work, data, ctx, xs, ys, cx, cy):
    cfg = data.config
    rotation = ctx.phase(data.orbit_cycles)
    channels = []
    for c, channel_phase in enumerate(data.channel_phases):
        sx, sy = chromatic_orbit(xs, ys, cx, cy, cfg.orbit_radius, rotation, channel_phase)
        channels.append(remap_channel(work, c, sx, sy, cfg.interpolation, "clamp"))
    for c, chan in enumerate(channels):
        work[:, :, c] = chan


def _ripple(work, data, ctx, xs, ys, cx, cy):
    cfg = data.config
    if cfg.ripple_amplitude == 0 or cfg.ripple_mix == 0:
        return
    sx, sy = polar_ripple(xs, ys, cx, cy, cfg.ripple_amplitude, cfg.ripple_frequency,
                          cfg.ripple_radial_cycles, ctx.phase(1))
    displaced = remap(work, sx, sy, cfg.interpolation, "clamp")
    work[:] = displaced * cfg.ripple_mix + work * (1.0 - cfg.ripple_mix)


def _grain(work, data, ctx):
    cfg = data.config
    if cfg.grain_amount <= 0:
        return
    total_steps = GRAIN_STEPS_PER_CYCLE * data.grain_cycles
    step = math.floor(ctx.t * total_steps) % total_steps
    h, w = work.shape[:2]
    ys, xs = np.mgrid[0:h, 0:w]
    n = hash3(xs, ys, step)
    delta = (n - 0.5) * 2.0 * cfg.grain_amount * 255.0
    work += delta[..., None].astype(np.float32)
    np.clip(work, 0.0, 255.0, out=work)


def invoke(data: OrbitBloomData, rgba: np.ndarray, ctx, pool) -> np.ndarray:
    cfg = data.config
    h, w = rgba.shape[:2]
    cx, cy = w / 2.0, h / 2.0
    ys, xs = pixel_grid(h, w)

    out = np.empty((h, w, 4), dtype=np.uint8)
    with pool.loan(w, h, 3, np.float32) as work:
        work[:] = rgba[:, :, :3]

        if cfg.orbit_enabled:
            _orbit(work, data, ctx, xs, ys, cx, cy)
        if cfg.ripple_enabled:
            _ripple(work, data, ctx, xs, ys, cx, cy)
        if cfg.bloom_enabled:
            gain = 1.0
            if cfg.bloom_pulse_enabled:
                gain = pulse_gain(ctx.t, data.pulse_cycles, cfg.bloom_pulse_amplitude)
            work[:] = apply_bloom(work, cfg.bloom_threshold, cfg.bloom_blur_radius,
                                  cfg.bloom_intensity, gain)
        if cfg.vignette_enabled:
            work[:] = apply_vignette(work, cfg.vignette_strength, cfg.vignette_roundness)
        if cfg.grain_enabled:
            _grain(work, data, ctx)

        out[:, :, :3] = to_uint8(work)

    out[:, :, 3] = rgba[:, :, 3] if cfg.preserve_alpha else 255
    return out
