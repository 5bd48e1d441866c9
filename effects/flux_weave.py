"""
Loopwright — Flux Weave

Weaves the image into flowing threads: two interfering sine waves displace
every pixel, braided along one axis, and R/G/B are pulled apart horizontally
by a shimmering phase shift before being blended back over the source.

Wave directions:
    horizontal — waves run along x, displacement mostly vertical
    vertical   — waves run along y, displacement mostly horizontal
    radial     — rings from the center, braided by angle
    diagonal   — waves along x + y at 45 degrees

Turbulence comes from lattice noise that makes one trip around its z period
per loop.
"""

import math
from dataclasses import dataclass

import numpy as np

from core.blend import apply_tint, get_blend_fn, hue_rotate, to_uint8
from core.color import parse_hex_color
from core.phase import resolve_phases
from core.sampler import pixel_grid, remap_channel
from effects.config import EffectConfig
from effects.fields import noise_pair

NOISE_Z_CELLS = 4
TURBULENCE_SCALE = 0.01
SHIMMER_HUE_SWING = 36.0   # degrees, +/- around hue_rotation


@dataclass(frozen=True)
class FluxWeaveConfig(EffectConfig):
    wave_frequency_1: float = 0.02
    wave_frequency_2: float = 0.015
    wave_speed_1: float = 1.0
    wave_speed_2: float = 1.5
    wave_amplitude: float = 30.0
    wave_direction: str = "horizontal"

    flow_angle: float = 0.0
    flow_turbulence: float = 0.3
    braid_count: int = 3
    braid_tightness: float = 0.5

    phase_shift_strength: float = 20.0
    hue_rotation: float = 0.0
    tint_color: str = "#FFFFFF"
    tint_strength: float = 0.2

    pulse_intensity: float = 0.3
    pulse_frequency: float = 1.0
    shimmer_speed: float = 1.0

    blend_mode: str = "overlay"
    blend_amount: float = 0.7
    edge_mode: str = "transparent"
    preserve_alpha: bool = True
    layer_opacity: float = 1.0

    PARAM_RANGES = {
        "wave_frequency_1": (0.001, 0.1),
        "wave_frequency_2": (0.001, 0.1),
        "wave_speed_1": (0.0, 5.0),
        "wave_speed_2": (0.0, 5.0),
        "wave_amplitude": (0.0, 200.0),
        "wave_direction": ("horizontal", "vertical", "radial", "diagonal"),
        "flow_turbulence": (0.0, 1.0),
        "braid_count": (1, 8),
        "braid_tightness": (0.0, 1.0),
        "phase_shift_strength": (0.0, 100.0),
        "tint_strength": (0.0, 1.0),
        "pulse_intensity": (0.0, 1.0),
        "pulse_frequency": (0.5, 4.0),
        "shimmer_speed": (0.0, 5.0),
        "blend_mode": ("overlay", "normal", "screen", "add"),
        "blend_amount": (0.0, 1.0),
        "edge_mode": ("transparent", "clamp", "wrap"),
        "layer_opacity": (0.0, 1.0),
    }
    WRAPPED = {"flow_angle": 360.0, "hue_rotation": 360.0}


@dataclass(frozen=True)
class FluxWeaveData:
    config: FluxWeaveConfig
    flow_rotation: tuple    # (cos, sin) of flow_angle
    tint: tuple
    noise_period: int


def precompute(config: FluxWeaveConfig, settings=None) -> FluxWeaveData:
    angle = math.radians(config.flow_angle)
    return FluxWeaveData(
        config=config,
        flow_rotation=(math.cos(angle), math.sin(angle)),
        tint=parse_hex_color(config.tint_color),
        noise_period=NOISE_Z_CELLS,
    )


def resolve_animation(cfg: FluxWeaveConfig, ctx):
    return resolve_phases(
        ctx,
        wave1=cfg.wave_speed_1,
        wave2=cfg.wave_speed_2,
        pulse=cfg.pulse_frequency,
        shimmer=cfg.shimmer_speed,
    )


def weave_offsets(cfg: FluxWeaveConfig, xs, ys, width, height, phase1, phase2, amplitude):
    """(dx, dy) thread displacement before turbulence and flow rotation."""
    f1, f2 = cfg.wave_frequency_1, cfg.wave_frequency_2
    tight = cfg.braid_tightness
    mode = cfg.wave_direction

    if mode == "vertical":
        wave1 = np.sin(ys * f1 + phase1)
        wave2 = np.cos(xs * f2 + phase2)
        braid = np.sin(xs * cfg.braid_count * math.pi / width) * tight
        return (wave2 + wave1 * 0.5) * amplitude, (wave1 + braid) * amplitude * 0.3

    if mode == "radial":
        dx = xs - width / 2.0
        dy = ys - height / 2.0
        angle = np.arctan2(dy, dx)
        ring = np.sin(np.hypot(dx, dy) * f1 + phase1) * np.cos(angle * cfg.braid_count + phase2)
        return np.cos(angle) * ring * amplitude, np.sin(angle) * ring * amplitude

    if mode == "diagonal":
        diag = (xs + ys) * 0.707
        wave1 = np.sin(diag * f1 + phase1)
        wave2 = np.cos(diag * f2 - phase2)
        braid = np.sin(diag * cfg.braid_count * math.pi / (width + height)) * tight
        combined = (wave1 + wave2 + braid) * amplitude * 0.707
        return combined, combined

    wave1 = np.sin(xs * f1 + phase1)
    wave2 = np.cos(ys * f2 + phase2)
    braid = np.sin(ys * cfg.braid_count * math.pi / height) * tight
    return (wave1 + braid) * amplitude * 0.3, (wave2 + wave1 * 0.5) * amplitude


def channel_shifts(strength, shimmer_phase):
    """Horizontal R/G/B sample shifts; R and B swell apart as the shimmer peaks."""
    shimmer = math.sin(shimmer_phase) * 0.5 + 0.5
    spread = strength * (1.0 + shimmer * 0.3)
    return (spread, strength * 0.5, -spread)


def invoke(data: FluxWeaveData, rgba: np.ndarray, ctx, pool) -> np.ndarray:
    cfg = data.config
    h, w = rgba.shape[:2]
    ys, xs = pixel_grid(h, w)
    phases = resolve_animation(cfg, ctx)

    amplitude = cfg.wave_amplitude * (1.0 + math.sin(phases["pulse"]) * cfg.pulse_intensity)
    dx, dy = weave_offsets(cfg, xs, ys, w, h, phases["wave1"], phases["wave2"], amplitude)

    if cfg.flow_turbulence > 0:
        z = ctx.t * data.noise_period
        n1, n2 = noise_pair(xs, ys, TURBULENCE_SCALE, z, data.noise_period)
        dx = dx + n1 * cfg.flow_turbulence * amplitude
        dy = dy + n2 * cfg.flow_turbulence * amplitude

    cos_a, sin_a = data.flow_rotation
    dx, dy = dx * cos_a - dy * sin_a, dx * sin_a + dy * cos_a

    sx, sy = xs + dx, ys + dy
    shifts = channel_shifts(cfg.phase_shift_strength, phases["shimmer"])
    blend = get_blend_fn(cfg.blend_mode)

    out = np.empty((h, w, 4), dtype=np.uint8)
    with pool.loan(w, h, 3, np.float32) as woven:
        for c, shift in enumerate(shifts):
            woven[:, :, c] = remap_channel(rgba, c, sx + shift, sy, "bilinear", cfg.edge_mode)

        rgb = woven
        if cfg.hue_rotation != 0:
            swing = math.sin(phases["shimmer"]) * SHIMMER_HUE_SWING
            rgb = hue_rotate(woven, cfg.hue_rotation + swing)

        src = rgba[:, :, :3].astype(np.float32)
        rgb = blend(src, rgb, cfg.blend_amount)
        rgb = apply_tint(rgb, data.tint, cfg.tint_strength)
        out[:, :, :3] = to_uint8(rgb)

    if cfg.preserve_alpha:
        out[:, :, 3] = rgba[:, :, 3]
    else:
        out[:, :, 3] = to_uint8(remap_channel(rgba, 3, sx, sy, "bilinear", cfg.edge_mode))
    return out
