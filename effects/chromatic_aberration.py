"""
Loopwright — Chromatic Aberration

Splits R, G and B by displacing each channel along its own angle, then
composites the split image onto the source.

Displacement modes:
    wave     — all pixels shift together on a sine
    radial   — bursts outward, stronger toward the edges
    orbital  — tangential swirl that rotates through the loop
    pulse    — sharpened sine (pulse_intensity shapes the peak)
    scanline — per-row sine, mostly horizontal
"""

import math
from dataclasses import dataclass

import numpy as np

from core.blend import get_blend_fn, to_uint8
from core.noise import hash3
from core.phase import resolve_cycles
from core.sampler import pixel_grid, remap_channel
from effects.config import EffectConfig


@dataclass(frozen=True)
class ChromaticAberrationConfig(EffectConfig):
    max_displacement: float = 20.0
    displacement_mode: str = "wave"

    wave_frequency: float = 2.0
    wave_phase_shift: float = 120.0
    rotation_speed: float = 360.0
    pulse_intensity: float = 1.0

    displacement_angle: float = 0.0
    angle_variation: float = 45.0

    scanline_frequency: float = 10.0
    scanline_intensity: float = 0.5

    red_opacity: float = 1.0
    green_opacity: float = 1.0
    blue_opacity: float = 1.0
    blend_mode: str = "normal"
    mix: float = 1.0

    edge_mode: str = "wrap"
    noise_amount: float = 0.0
    noise_seed: int = 12345
    interpolation: str = "bilinear"
    preserve_alpha: bool = True
    layer_opacity: float = 1.0

    PARAM_RANGES = {
        "max_displacement": (0.0, 100.0),
        "displacement_mode": ("wave", "radial", "orbital", "pulse", "scanline"),
        "wave_frequency": (0.0, 10.0),
        "rotation_speed": (-720.0, 720.0),
        "pulse_intensity": (0.05, 2.0),
        "angle_variation": (0.0, 180.0),
        "scanline_frequency": (1.0, 50.0),
        "scanline_intensity": (0.0, 1.0),
        "red_opacity": (0.0, 1.0),
        "green_opacity": (0.0, 1.0),
        "blue_opacity": (0.0, 1.0),
        "blend_mode": ("normal", "screen", "add", "overlay"),
        "mix": (0.0, 1.0),
        "edge_mode": ("wrap", "clamp", "transparent"),
        "noise_amount": (0.0, 1.0),
        "noise_seed": (0, 2**31 - 1),
        "interpolation": ("bilinear", "nearest"),
        "layer_opacity": (0.0, 1.0),
    }
    WRAPPED = {"wave_phase_shift": 360.0, "displacement_angle": 360.0}


@dataclass(frozen=True)
class ChromaticAberrationData:
    config: ChromaticAberrationConfig
    wave_cycles: int
    rotation_cycles: int
    channel_angles: tuple
    channel_shifts: tuple       # phase offset per channel, in loop fractions
    opacities: tuple


def precompute(config: ChromaticAberrationConfig, settings=None) -> ChromaticAberrationData:
    base = math.radians(config.displacement_angle)
    var = math.radians(config.angle_variation)
    shift = config.wave_phase_shift / 360.0
    return ChromaticAberrationData(
        config=config,
        wave_cycles=resolve_cycles(config.wave_frequency),
        rotation_cycles=resolve_cycles(config.rotation_speed / 360.0),
        channel_angles=(base, base + var, base + 2 * var),
        channel_shifts=(0.0, shift, 2 * shift),
        opacities=(config.red_opacity, config.green_opacity, config.blue_opacity),
    )


def channel_displacement(data, c, t, xs, ys, cx, cy):
    """(dx, dy) pixel offsets for channel c at loop time t."""
    cfg = data.config
    mode = cfg.displacement_mode
    angle = data.channel_angles[c]
    max_disp = cfg.max_displacement
    t_c = t + data.channel_shifts[c]
    wave_phase = 2 * math.pi * data.wave_cycles * t_c

    if mode == "radial":
        dx, dy = xs - cx, ys - cy
        dist = np.hypot(dx, dy) / max(math.hypot(cx, cy), 1e-6)
        burst = math.sin(wave_phase) * dist
        a = np.arctan2(dy, dx) + angle
        return np.cos(a) * burst * max_disp, np.sin(a) * burst * max_disp

    if mode == "orbital":
        dx, dy = xs - cx, ys - cy
        dist = np.minimum(1.0, np.hypot(dx, dy) / max(cx, cy, 1e-6))
        a = np.arctan2(dy, dx) + math.pi / 2 + 2 * math.pi * data.rotation_cycles * t_c
        return np.cos(a) * dist * max_disp, np.sin(a) * dist * max_disp

    if mode == "pulse":
        s = math.sin(wave_phase)
        amount = math.copysign(abs(s) ** (1.0 / cfg.pulse_intensity), s)
        return (np.full_like(xs, math.cos(angle) * amount * max_disp),
                np.full_like(xs, math.sin(angle) * amount * max_disp))

    if mode == "scanline":
        amount = np.sin(ys * cfg.scanline_frequency * 0.1 + wave_phase) * cfg.scanline_intensity
        return math.cos(angle) * amount * max_disp, math.sin(angle) * amount * max_disp * 0.2

    amplitude = math.sin(wave_phase)
    return (np.full_like(xs, math.cos(angle) * amplitude * max_disp),
            np.full_like(xs, math.sin(angle) * amplitude * max_disp))


def channel_noise(cfg, c, xs, ys):
    """Static hash jitter in [-1, 1] for channel c."""
    xi = xs.astype(np.int64) * 3 + c
    yi = ys.astype(np.int64)
    nx = hash3(cfg.noise_seed, xi, yi) * 2.0 - 1.0
    ny = hash3(cfg.noise_seed + 1, xi, yi) * 2.0 - 1.0
    return nx, ny


def invoke(data: ChromaticAberrationData, rgba: np.ndarray, ctx, pool) -> np.ndarray:
    cfg = data.config
    h, w = rgba.shape[:2]
    cx, cy = w / 2.0, h / 2.0
    ys, xs = pixel_grid(h, w)
    blend = get_blend_fn(cfg.blend_mode)

    out = np.empty((h, w, 4), dtype=np.uint8)
    with pool.loan(w, h, 4, np.float32) as split:
        alpha = np.zeros((h, w), dtype=np.float32)
        for c in range(3):
            dx, dy = channel_displacement(data, c, ctx.t, xs, ys, cx, cy)
            if cfg.noise_amount > 0:
                nx, ny = channel_noise(cfg, c, xs, ys)
                dx = dx + nx * cfg.noise_amount * cfg.max_displacement
                dy = dy + ny * cfg.noise_amount * cfg.max_displacement
            sx, sy = xs + dx, ys + dy
            split[:, :, c] = remap_channel(rgba, c, sx, sy, cfg.interpolation, cfg.edge_mode)
            split[:, :, c] *= data.opacities[c]
            np.maximum(alpha, remap_channel(rgba, 3, sx, sy, cfg.interpolation, cfg.edge_mode),
                       out=alpha)
        split[:, :, 3] = alpha

        src = rgba[:, :, :3].astype(np.float32)
        rgb = blend(src, split[:, :, :3], cfg.mix)
        out[:, :, :3] = to_uint8(rgb)
        if cfg.preserve_alpha:
            out[:, :, 3] = rgba[:, :, 3]
        else:
            out[:, :, 3] = to_uint8(split[:, :, 3])
    return out
