"""
Loopwright — Holographic Prism

Turns a layer into a hologram through a chain of stages, each reading the
previous stage's output:

    chromatic  — R and B sampled either side of the pixel along an angle
    dispersion — resample along a second angle, pushed further on bright pixels
    parallax   — alpha is quantized into depth layers, deeper layers shift more
    shimmer    — mix in an HLS spectrum color that ripples along x + y
    glow       — rainbow tint on alpha edges, hue set by angle around the center

The result is mixed with the source twice (preserve_original, then
effect_strength). Alpha is kept and fully transparent pixels stay empty.

Animation modes pick which stages move: rotation spins the chromatic angle
once per loop, pulse breathes dispersion twice per loop, wave ripples the
shimmer across x, depth swings parallax, combined does all of them. The
shimmer hue drifts in every mode; shimmer mode moves nothing else.
"""

import math
from dataclasses import dataclass

import numpy as np

from core.blend import to_uint8
from core.color import hls_to_rgb
from core.phase import resolve_phases
from core.sampler import pixel_grid, remap
from effects.config import EffectConfig

EDGE_ALPHA_STEP = 50
GLOW_LIGHTNESS = 0.5


@dataclass(frozen=True)
class HolographicPrismConfig(EffectConfig):
    animation_mode: str = "combined"

    chromatic_strength: float = 5.0
    chromatic_angle: float = 180.0

    dispersion_intensity: float = 0.55
    dispersion_angle: float = 180.0
    wavelength_separation: float = 2.75

    shimmer_intensity: float = 0.4
    shimmer_speed: float = 1.25
    shimmer_scale: float = 0.004

    parallax_layers: int = 4
    parallax_strength: float = 4.0
    parallax_angle: float = 180.0

    glow_intensity: float = 0.25
    glow_saturation: float = 0.8

    spectrum_hue_start: float = 180.0
    spectrum_hue_range: float = 270.0
    spectrum_saturation: float = 0.85
    spectrum_brightness: float = 0.9

    effect_strength: float = 0.75
    preserve_original: float = 0.5
    edge_mode: str = "clamp"
    layer_opacity: float = 1.0

    PARAM_RANGES = {
        "animation_mode": ("combined", "rotation", "pulse", "wave", "shimmer", "depth"),
        "chromatic_strength": (0.0, 50.0),
        "dispersion_intensity": (0.0, 1.0),
        "wavelength_separation": (0.0, 20.0),
        "shimmer_intensity": (0.0, 1.0),
        "shimmer_speed": (0.0, 10.0),
        "shimmer_scale": (0.0, 0.1),
        "parallax_layers": (1, 16),
        "parallax_strength": (0.0, 50.0),
        "glow_intensity": (0.0, 1.0),
        "glow_saturation": (0.0, 1.0),
        "spectrum_hue_range": (0.0, 360.0),
        "spectrum_saturation": (0.0, 1.0),
        "spectrum_brightness": (0.0, 1.0),
        "effect_strength": (0.0, 1.0),
        "preserve_original": (0.0, 1.0),
        "edge_mode": ("clamp", "wrap"),
        "layer_opacity": (0.0, 1.0),
    }
    WRAPPED = {
        "chromatic_angle": 360.0,
        "dispersion_angle": 360.0,
        "parallax_angle": 360.0,
        "spectrum_hue_start": 360.0,
    }


@dataclass(frozen=True)
class HolographicPrismData:
    config: HolographicPrismConfig
    chromatic_angle: float
    dispersion_dir: tuple
    parallax_dir: tuple
    moving: frozenset    # stages animated by animation_mode


_MODE_STAGES = {
    "rotation": frozenset({"chromatic"}),
    "pulse": frozenset({"dispersion"}),
    "wave": frozenset({"wave"}),
    "depth": frozenset({"parallax"}),
    "shimmer": frozenset(),
    "combined": frozenset({"chromatic", "dispersion", "wave", "parallax"}),
}


def _direction(degrees):
    rad = math.radians(degrees)
    return (math.cos(rad), math.sin(rad))


def precompute(config: HolographicPrismConfig, settings=None) -> HolographicPrismData:
    return HolographicPrismData(
        config=config,
        chromatic_angle=math.radians(config.chromatic_angle),
        dispersion_dir=_direction(config.dispersion_angle),
        parallax_dir=_direction(config.parallax_angle),
        moving=_MODE_STAGES[config.animation_mode],
    )


def alpha_edges(alpha) -> np.ndarray:
    """True where an opaque-ish pixel touches the border or a 4-neighbor whose
    alpha differs by more than EDGE_ALPHA_STEP."""
    a = np.asarray(alpha, dtype=np.int16)
    padded = np.pad(a, 1, mode="constant", constant_values=-1000)
    center = padded[1:-1, 1:-1]
    edge = np.zeros(a.shape, dtype=bool)
    for ny, nx in ((1, 0), (1, 2), (0, 1), (2, 1)):
        neighbor = padded[ny:ny + a.shape[0], nx:nx + a.shape[1]]
        edge |= np.abs(center - neighbor) > EDGE_ALPHA_STEP
    return edge & (a > 0)


def chromatic_stage(data, rgba, xs, ys, loop_phase):
    cfg = data.config
    angle = data.chromatic_angle
    if "chromatic" in data.moving:
        angle += loop_phase
    ox = math.cos(angle) * cfg.chromatic_strength
    oy = math.sin(angle) * cfg.chromatic_strength
    out = remap(rgba, xs, ys, "bilinear", cfg.edge_mode)
    out[:, :, 0] = remap(rgba, xs + ox, ys + oy, "bilinear", cfg.edge_mode)[:, :, 0]
    out[:, :, 2] = remap(rgba, xs - ox, ys - oy, "bilinear", cfg.edge_mode)[:, :, 2]
    return out


def dispersion_stage(data, frame, xs, ys, pulse_phase):
    cfg = data.config
    intensity = cfg.dispersion_intensity
    if "dispersion" in data.moving:
        intensity *= 0.5 + 0.5 * math.sin(pulse_phase)
    wavelength = frame[:, :, :3].mean(axis=2) / 255.0
    push = wavelength * cfg.wavelength_separation * intensity
    dx, dy = data.dispersion_dir
    return remap(frame, xs + dx * push, ys + dy * push, "bilinear", cfg.edge_mode)


def parallax_stage(data, frame, src_alpha, xs, ys, loop_phase):
    cfg = data.config
    strength = cfg.parallax_strength
    if "parallax" in data.moving:
        strength *= math.sin(loop_phase)
    layers = cfg.parallax_layers
    depth = np.floor(src_alpha / 255.0 * layers) / layers
    push = depth * strength
    dx, dy = data.parallax_dir
    return remap(frame, xs + dx * push, ys + dy * push, "bilinear", cfg.edge_mode)


def shimmer_color(data, xs, ys, width, shimmer_phase, loop_phase):
    cfg = data.config
    phase = shimmer_phase
    if "wave" in data.moving:
        phase = phase + np.sin(xs / width * 2.0 * math.pi + loop_phase) * math.pi
    hue = cfg.spectrum_hue_start + np.sin((xs + ys) * cfg.shimmer_scale + phase) * cfg.spectrum_hue_range
    return hls_to_rgb(hue, cfg.spectrum_brightness, cfg.spectrum_saturation)


def glow_color(data, xs, ys, width, height, t):
    """Rainbow around the center; one full hue turn per loop."""
    angle = np.arctan2(ys - height / 2.0, xs - width / 2.0)
    hue = np.degrees(angle) + 360.0 * t
    return hls_to_rgb(hue, GLOW_LIGHTNESS, data.config.glow_saturation)


def resolve_animation(data: HolographicPrismData, ctx):
    return resolve_phases(
        ctx,
        loop=1.0,
        pulse=2.0,
        shimmer=data.config.shimmer_speed,
    )


def invoke(data: HolographicPrismData, rgba: np.ndarray, ctx, pool) -> np.ndarray:
    cfg = data.config
    h, w = rgba.shape[:2]
    ys, xs = pixel_grid(h, w)
    phases = resolve_animation(data, ctx)
    src_alpha = rgba[:, :, 3].astype(np.float32)

    out = np.empty((h, w, 4), dtype=np.uint8)
    with pool.loan(w, h, 4, np.float32) as prism:
        prism[:] = chromatic_stage(data, rgba, xs, ys, phases["loop"])
        prism[:] = dispersion_stage(data, prism, xs, ys, phases["pulse"])
        prism[:] = parallax_stage(data, prism, src_alpha, xs, ys, phases["loop"])

        rgb = prism[:, :, :3]
        k = cfg.shimmer_intensity
        if k > 0:
            shimmer = shimmer_color(data, xs, ys, w, phases["shimmer"], phases["loop"])
            rgb = rgb * (1.0 - k) + shimmer * k

        g = cfg.glow_intensity
        if g > 0:
            edges = alpha_edges(rgba[:, :, 3])
            if edges.any():
                glow = glow_color(data, xs, ys, w, h, ctx.t)
                rgb = np.where(edges[..., None], rgb * (1.0 - g) + glow * g, rgb)

        src = rgba[:, :, :3].astype(np.float32)
        keep = cfg.preserve_original
        rgb = src * keep + rgb * (1.0 - keep)
        rgb = src * (1.0 - cfg.effect_strength) + rgb * cfg.effect_strength
        out[:, :, :3] = to_uint8(rgb)

    out[:, :, 3] = rgba[:, :, 3]
    out[rgba[:, :, 3] == 0] = 0
    return out
