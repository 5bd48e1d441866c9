"""
Loopwright — Holo Foil

Iridescent holographic foil: interference of several diffraction gratings
mapped through a prismatic color LUT, shaped by vignette, micro-scratches
and grain, then screen-composited onto the source.

Animation modes:
    rotate — gratings rotate, shimmer and ripple advance
    tilt   — as rotate, plus a once-per-loop tilt swell
    ripple — as rotate (ripple_strength drives the radial term)
    pulse  — as rotate, plus a global intensity pulse
    static — every phase frozen at 0
"""

import math
from dataclasses import dataclass

import numpy as np

from core.color import luma, parse_hex_color
from core.noise import hash2, hash3
from core.phase import resolve_phases
from effects.config import EffectConfig, frozen_array
from effects.fields import grating_response, normalized_grid, radial_vignette, spectral_lut


@dataclass(frozen=True)
class HoloFoilConfig(EffectConfig):
    seed: int = 1337
    layer_opacity: float = 1.0

    base_hue: float = 200.0
    saturation: float = 0.9
    value: float = 1.0
    rainbow_strength: float = 0.8

    grating_scale: float = 1.0
    grating_angle_deg: float = 30.0
    grating_order_count: int = 3

    animation_mode: str = "rotate"
    rotation_speed: float = 0.5
    tilt_strength: float = 0.5
    ripple_strength: float = 0.3
    ripple_frequency: float = 2.0
    ripple_speed: float = 1.0
    shimmer_speed: float = 1.0

    color_mode: str = "prismatic"
    tint_red: str = "#FF6666"
    tint_green: str = "#66FF66"
    tint_blue: str = "#6666FF"

    highlight_boost: float = 0.35
    vignette_strength: float = 0.15
    scratch_density: float = 0.15
    scratch_angle_deg: float = 10.0
    scratch_contrast: float = 0.6
    grain_strength: float = 0.1

    preserve_alpha: bool = True

    PARAM_RANGES = {
        "seed": (0, 2**31 - 1),
        "layer_opacity": (0.0, 1.0),
        "saturation": (0.0, 1.0),
        "value": (0.0, 1.0),
        "rainbow_strength": (0.0, 1.0),
        "grating_scale": (0.0, 50.0),
        "grating_order_count": (1, 5),
        "animation_mode": ("rotate", "tilt", "ripple", "pulse", "static"),
        "rotation_speed": (-10.0, 10.0),
        "tilt_strength": (0.0, 1.0),
        "ripple_strength": (0.0, 1.0),
        "ripple_frequency": (0.0, 20.0),
        "ripple_speed": (-10.0, 10.0),
        "shimmer_speed": (0.0, 10.0),
        "color_mode": ("prismatic", "tinted", "mono"),
        "highlight_boost": (0.0, 1.0),
        "vignette_strength": (0.0, 1.0),
        "scratch_density": (0.0, 1.0),
        "scratch_contrast": (0.0, 1.0),
        "grain_strength": (0.0, 1.0),
    }
    WRAPPED = {"base_hue": 360.0, "grating_angle_deg": 360.0, "scratch_angle_deg": 360.0}


@dataclass(frozen=True)
class HoloFoilData:
    config: HoloFoilConfig
    grating_vectors: np.ndarray   # (K, 2) unit vectors
    scratch_dir: tuple
    scratch_spacing: float
    lut: np.ndarray               # (256, 3) foil color in [0, 1]


def build_foil_lut(cfg: HoloFoilConfig) -> np.ndarray:
    """256-entry table mapping shaped response s in [0, 1] to foil RGB in [0, 1]."""
    tints = tuple(parse_hex_color(c) for c in (cfg.tint_red, cfg.tint_green, cfg.tint_blue))
    return spectral_lut(cfg.color_mode, cfg.base_hue, cfg.saturation, cfg.value,
                        tints, rainbow=cfg.rainbow_strength)


def precompute(config: HoloFoilConfig, settings=None) -> HoloFoilData:
    base = math.radians(config.grating_angle_deg)
    k = config.grating_order_count
    angles = [
        base + (hash2(config.seed, i) - 0.5) * 0.35 * (i + 1) / k
        for i in range(k)
    ]
    vectors = np.array([[math.cos(a), math.sin(a)] for a in angles], dtype=np.float32)

    scratch = math.radians(config.scratch_angle_deg)
    return HoloFoilData(
        config=config,
        grating_vectors=frozen_array(vectors),
        scratch_dir=(math.cos(scratch), math.sin(scratch)),
        # sparse scratches get wide spacing
        scratch_spacing=0.5 + (1.0 - config.scratch_density) * 8.0,
        lut=frozen_array(build_foil_lut(config)),
    )


def resolve_animation(cfg: HoloFoilConfig, ctx) -> dict:
    """Per-frame rotation, shimmer, ripple phases plus pulse and tilt gains."""
    if cfg.animation_mode == "static":
        return {"rotation": 0.0, "shimmer": 0.0, "ripple": 0.0,
                "pulse_gain": 1.0, "tilt_gain": 0.0}

    phases = resolve_phases(
        ctx,
        rotation=cfg.rotation_speed,
        shimmer=cfg.shimmer_speed,
        ripple=cfg.ripple_frequency * cfg.ripple_speed,
    )
    pulse_gain = 1.0
    if cfg.animation_mode == "pulse":
        pulse_cycles = phases.cycles["shimmer"] or 1
        pulse_gain = 0.7 + 0.6 * (0.5 + 0.5 * math.sin(ctx.phase(pulse_cycles)))
    tilt_gain = 0.0
    if cfg.animation_mode == "tilt":
        tilt_gain = math.sin(ctx.phase(1))
    return {"rotation": phases["rotation"], "shimmer": phases["shimmer"],
            "ripple": phases["ripple"], "pulse_gain": pulse_gain, "tilt_gain": tilt_gain}


def invoke(data: HoloFoilData, rgba: np.ndarray, ctx, pool) -> np.ndarray:
    cfg = data.config
    h, w = rgba.shape[:2]
    anim = resolve_animation(cfg, ctx)

    u, v = normalized_grid(h, w)
    response = grating_response(
        u, v, data.grating_vectors, cfg.grating_scale, anim["rotation"],
        anim["ripple"], cfg.ripple_strength, anim["shimmer"],
    )
    response = (response + 1.0) * 0.5
    shaped = np.clip(response * anim["pulse_gain"] * (1.0 + cfg.tilt_strength * anim["tilt_gain"]), 0.0, 1.0)
    foil = data.lut[np.rint(shaped * 255).astype(np.intp)]

    s_coord = u * data.scratch_dir[0] + v * data.scratch_dir[1]
    f = s_coord * data.scratch_spacing + 0.5
    f = f - np.floor(f)
    scratch = (1.0 - np.abs(f - 0.5) * 2.0) ** 4 * cfg.scratch_contrast

    ys, xs = np.mgrid[0:h, 0:w]
    grain = (hash3(cfg.seed, xs, ys) - 0.5) * 2.0 * cfg.grain_strength

    out = np.empty((h, w, 4), dtype=np.uint8)
    with pool.loan(w, h, 3, np.float32) as work:
        np.divide(rgba[:, :, :3], 255.0, out=work, casting="unsafe")
        lum = luma(work)
        intensity = shaped * radial_vignette(u, v, cfg.vignette_strength)
        intensity = intensity * (1.0 + scratch) * (1.0 + cfg.highlight_boost * lum) + grain
        intensity = np.clip(intensity, 0.0, 1.0).astype(np.float32)

        # screen: 1 - (1 - src) * (1 - foil * intensity)
        work[:] = 1.0 - (1.0 - work) * (1.0 - foil * intensity[..., None])
        np.clip(work, 0.0, 1.0, out=work)
        out[:, :, :3] = np.rint(work * 255.0).astype(np.uint8)

    out[:, :, 3] = rgba[:, :, 3] if cfg.preserve_alpha else 255
    return out
