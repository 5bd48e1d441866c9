"""
Loopwright — Chrono Lenticular Foil

Micro-groove interference: two crossed cosine gratings sum to an intensity
I in [-1, 1]. The image is nudged along the groove normal, its hue swings by
hue_shift_deg * I, each channel is scaled by a dispersed copy of I, and the
groove slopes pick up the highlight color. The result is composited over the
source with the chosen mode and gamma-corrected.

Groove frequency is normalized by the image diagonal, so the same groove
count looks alike at any size. Fully transparent pixels stay (0, 0, 0, 0).
"""

import math
from dataclasses import dataclass

import numpy as np

from core.blend import get_blend_fn, hue_rotate, to_uint8
from core.color import parse_hex_color
from core.phase import TWO_PI, resolve_phases
from core.sampler import pixel_grid, remap
from effects.config import EffectConfig

DISPERSION_TURNS = (0.0, 0.33, 0.66)
CHANNEL_GAIN = 0.25


@dataclass(frozen=True)
class ChronoLenticularFoilConfig(EffectConfig):
    intensity: float = 0.85
    groove_angle_deg: float = 22.0
    groove_count: float = 1.8
    groove_angle2_deg: float = 98.0
    groove_count2: float = 2.3

    shimmer_speed: float = 1.0
    phase_k1: int = 3
    phase_k2: int = 5

    hue_shift_deg: float = 18.0
    dispersion: float = 0.35
    displacement_px: float = 2.2
    edge_boost: float = 1.4
    color_highlight: str = "#FFFFFF"

    mode: str = "overlay"
    gamma: float = 1.0
    layer_opacity: float = 1.0

    PARAM_RANGES = {
        "intensity": (0.0, 1.0),
        "groove_count": (0.0, 20.0),
        "groove_count2": (0.0, 20.0),
        "shimmer_speed": (0.0, 10.0),
        "phase_k1": (1, 64),
        "phase_k2": (1, 64),
        "hue_shift_deg": (-180.0, 180.0),
        "dispersion": (0.0, 1.0),
        "displacement_px": (0.0, 50.0),
        "edge_boost": (0.0, 10.0),
        "mode": ("overlay", "screen", "add"),
        "gamma": (0.5, 2.2),
        "layer_opacity": (0.0, 1.0),
    }
    WRAPPED = {"groove_angle_deg": 360.0, "groove_angle2_deg": 360.0}


@dataclass(frozen=True)
class ChronoLenticularFoilData:
    config: ChronoLenticularFoilConfig
    directions: tuple   # ((cos, sin), (cos, sin)) per groove set
    highlight: tuple


def precompute(config: ChronoLenticularFoilConfig, settings=None) -> ChronoLenticularFoilData:
    a1 = math.radians(config.groove_angle_deg)
    a2 = math.radians(config.groove_angle2_deg)
    return ChronoLenticularFoilData(
        config=config,
        directions=((math.cos(a1), math.sin(a1)), (math.cos(a2), math.sin(a2))),
        highlight=parse_hex_color(config.color_highlight),
    )


def groove_frequency(count: float, width: int, height: int) -> float:
    """Grooves per pixel: count/100 scaled by 1000 / max(256, diagonal)."""
    return (count / 100.0) * (1000.0 / max(256.0, math.hypot(width, height)))


def resolve_animation(cfg: ChronoLenticularFoilConfig, ctx):
    return resolve_phases(
        ctx,
        groove1=cfg.phase_k1 * cfg.shimmer_speed,
        groove2=cfg.phase_k2 * cfg.shimmer_speed,
    )


def groove_field(data: ChronoLenticularFoilData, xs, ys, width, height, phi1, phi2):
    """Interference intensity I and its gradient (gx, gy)."""
    cfg = data.config
    (c1, s1), (c2, s2) = data.directions
    k1 = TWO_PI * groove_frequency(cfg.groove_count, width, height)
    k2 = TWO_PI * groove_frequency(cfg.groove_count2, width, height)

    arg1 = k1 * (xs * c1 + ys * s1) + phi1
    arg2 = k2 * (xs * c2 + ys * s2) + phi2
    intensity = 0.5 * (np.cos(arg1) + np.cos(arg2))

    sin1, sin2 = np.sin(arg1), np.sin(arg2)
    gx = -sin1 * k1 * c1 - sin2 * k2 * c2
    gy = -sin1 * k1 * s1 - sin2 * k2 * s2
    return intensity, gx, gy


def invoke(data: ChronoLenticularFoilData, rgba: np.ndarray, ctx, pool) -> np.ndarray:
    cfg = data.config
    h, w = rgba.shape[:2]
    ys, xs = pixel_grid(h, w)
    phases = resolve_animation(cfg, ctx)
    phi1 = phases["groove1"]

    intensity, gx, gy = groove_field(data, xs, ys, w, h, phi1, phases["groove2"])
    mag = np.hypot(gx, gy) + 1e-6
    push = cfg.displacement_px * cfg.intensity
    sx = xs + gx / mag * push
    sy = ys + gy / mag * push

    out = np.empty((h, w, 4), dtype=np.uint8)
    with pool.loan(w, h, 3, np.float32) as foil:
        foil[:] = remap(rgba, sx, sy, "bilinear", "clamp")[:, :, :3]
        rgb = hue_rotate(foil, cfg.hue_shift_deg * intensity)

        for c, turn in enumerate(DISPERSION_TURNS):
            gain = intensity * math.cos(phi1 + turn * TWO_PI * cfg.dispersion)
            rgb[:, :, c] = np.clip(rgb[:, :, c] * (1.0 + CHANNEL_GAIN * gain), 0.0, 255.0)

        edge = np.clip(cfg.edge_boost * mag * 0.5, 0.0, 1.0)[..., None] * cfg.intensity
        rgb = rgb + (np.asarray(data.highlight, dtype=np.float32) - rgb) * edge

        src = rgba[:, :, :3].astype(np.float32)
        blended = get_blend_fn(cfg.mode)(src, rgb, cfg.intensity)
        if cfg.gamma != 1.0:
            blended = 255.0 * np.power(np.clip(blended, 0.0, 255.0) / 255.0, 1.0 / cfg.gamma)
        out[:, :, :3] = to_uint8(blended)

    out[:, :, 3] = rgba[:, :, 3]
    out[rgba[:, :, 3] == 0] = 0
    return out
