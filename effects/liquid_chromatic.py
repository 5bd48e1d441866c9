"""
Loopwright — Liquid Chromatic

Oil-on-water flow: three wave layers steered by a seeded noise table push
the image around, R/G/B trail behind the flow at 120 degree offsets, and the
flow direction drives an iridescent hue shift. Surface tension brightens
strong source edges, flow peaks pick up specular highlights and a slow depth
wave darkens the liquid. The result is mixed over the source, then glow and
contrast are applied.

Every time term is a resolved loop phase, so frame total_frames equals frame 0.
"""

import math
from dataclasses import dataclass

import numpy as np

from core.blend import apply_contrast, to_uint8
from core.color import hls_to_rgb, rgb_to_hls
from core.convolution import edge_magnitude, soft_glow
from core.noise import hash3
from core.phase import TWO_PI, resolve_phases
from core.sampler import pixel_grid, remap, remap_channel
from effects.config import EffectConfig, frozen_array

NOISE_TABLE_SIZE = 256
NOISE_CELL = 10.0            # pixels per noise table cell
GLOW_MIX = 0.3
CHANNEL_TRAILS = ((0.0, 1.0), (1.0 / 3.0, 0.8), (2.0 / 3.0, 0.6))   # (turn, length) for R, G, B


@dataclass(frozen=True)
class LiquidChromaticConfig(EffectConfig):
    flow_speed: float = 1.0
    flow_angle: float = 45.0
    turbulence: float = 0.5
    viscosity: float = 0.5

    wave_frequency_1: float = 2.0
    wave_frequency_2: float = 3.0
    wave_frequency_3: float = 1.5
    wave_amplitude: float = 20.0
    wave_phase_offset: float = 0.0

    chromatic_separation: float = 10.0
    chromatic_angle: float = 0.0
    chromatic_flow: float = 1.0
    trail_length: float = 0.3

    iridescence_intensity: float = 0.5
    primary_hue: float = 180.0
    hue_shift_range: float = 60.0
    saturation_boost: float = 0.3
    brightness_modulation: float = 0.2

    surface_tension: float = 0.3
    specular_highlights: float = 0.5
    depth_gradient: float = 0.2

    effect_intensity: float = 0.8
    edge_preservation: float = 0.3
    glow_radius: int = 5
    contrast_boost: float = 0.2

    rotation_speed: float = 0.5
    pulse_frequency: float = 1.0
    shimmer_speed: float = 1.5

    seed: int = 42
    preserve_alpha: bool = True
    layer_opacity: float = 1.0

    PARAM_RANGES = {
        "flow_speed": (0.0, 3.0),
        "turbulence": (0.0, 1.0),
        "viscosity": (0.0, 1.0),
        "wave_frequency_1": (0.5, 5.0),
        "wave_frequency_2": (0.5, 5.0),
        "wave_frequency_3": (0.5, 5.0),
        "wave_amplitude": (5.0, 50.0),
        "wave_phase_offset": (0.0, 1.0),
        "chromatic_separation": (0.0, 30.0),
        "chromatic_flow": (0.0, 2.0),
        "trail_length": (0.0, 1.0),
        "iridescence_intensity": (0.0, 1.0),
        "hue_shift_range": (0.0, 180.0),
        "saturation_boost": (0.0, 1.0),
        "brightness_modulation": (0.0, 1.0),
        "surface_tension": (0.0, 1.0),
        "specular_highlights": (0.0, 1.0),
        "depth_gradient": (0.0, 1.0),
        "effect_intensity": (0.0, 1.0),
        "edge_preservation": (0.0, 1.0),
        "glow_radius": (0, 20),
        "contrast_boost": (0.0, 1.0),
        "rotation_speed": (0.0, 2.0),
        "pulse_frequency": (0.0, 5.0),
        "shimmer_speed": (0.0, 3.0),
        "seed": (0, 2**31 - 1),
        "layer_opacity": (0.0, 1.0),
    }
    WRAPPED = {"flow_angle": 360.0, "chromatic_angle": 360.0, "primary_hue": 360.0}


@dataclass(frozen=True)
class LiquidChromaticData:
    config: LiquidChromaticConfig
    flow_angle: float
    chromatic_angle: float
    wave_phase_offset: float
    noise_table: np.ndarray     # (256, 256) seeded values in [0, 1]


def build_noise_table(seed: int) -> np.ndarray:
    i, j = np.mgrid[0:NOISE_TABLE_SIZE, 0:NOISE_TABLE_SIZE]
    return np.asarray(hash3(seed, i, j), dtype=np.float32)


def precompute(config: LiquidChromaticConfig, settings=None) -> LiquidChromaticData:
    return LiquidChromaticData(
        config=config,
        flow_angle=math.radians(config.flow_angle),
        chromatic_angle=math.radians(config.chromatic_angle),
        wave_phase_offset=config.wave_phase_offset * TWO_PI,
        noise_table=frozen_array(build_noise_table(config.seed)),
    )


def sample_noise(table, xs, ys, offset=0.0):
    """Nearest lookup into the noise table, one cell per NOISE_CELL pixels."""
    ix = np.floor(np.abs(xs / NOISE_CELL + offset)).astype(np.intp) % NOISE_TABLE_SIZE
    iy = np.floor(np.abs(ys / NOISE_CELL + offset)).astype(np.intp) % NOISE_TABLE_SIZE
    return table[ix, iy]


def resolve_animation(cfg: LiquidChromaticConfig, ctx):
    return resolve_phases(
        ctx,
        rotation=cfg.rotation_speed,
        wave1=cfg.wave_frequency_1,
        wave2=cfg.wave_frequency_2,
        wave3=cfg.wave_frequency_3,
        pulse=cfg.pulse_frequency,
        shimmer=cfg.shimmer_speed,
        brightness=cfg.shimmer_speed * 1.5,
        loop=1.0,
    )


def liquid_displacement(data: LiquidChromaticData, xs, ys, width, height, phases):
    """(dx, dy) liquid flow in pixels for the given phases."""
    cfg = data.config
    nx = (xs - width / 2.0) / width
    ny = (ys - height / 2.0) / height
    noise_x = sample_noise(data.noise_table, xs, ys)
    noise_y = sample_noise(data.noise_table, xs, ys, 100.0)

    angle = data.flow_angle + math.sin(phases["rotation"]) * math.pi * 0.5
    offset = data.wave_phase_offset
    wave = (np.sin(phases["wave1"] + offset + nx * 10 + noise_x * 5) * 0.5
            + np.sin(phases["wave2"] + offset + ny * 15 + noise_y * 5) * 0.3
            + np.sin(phases["wave3"] + offset + (nx + ny) * 8) * 0.2)

    pulse = 1.0 + math.sin(phases["pulse"]) * 0.2
    amplitude = cfg.wave_amplitude * cfg.flow_speed * (1.0 - cfg.viscosity * 0.5) * pulse
    dx = (math.cos(angle) * wave + (noise_x - 0.5) * cfg.turbulence) * amplitude
    dy = (math.sin(angle) * wave + (noise_y - 0.5) * cfg.turbulence) * amplitude
    return dx.astype(np.float32), dy.astype(np.float32)


def chromatic_trails(data: LiquidChromaticData, rgba, sx, sy, flow, loop_phase):
    """Sample R/G/B at trailing offsets around a flow-following angle.

    Returns float32 (H, W, 4); alpha is the mean of the three samples.
    """
    cfg = data.config
    if cfg.chromatic_separation == 0:
        return remap(rgba, sx, sy, "bilinear", "wrap")

    follow = cfg.chromatic_flow * 0.5
    angle = data.chromatic_angle * (1.0 - follow) + flow * follow
    separation = cfg.chromatic_separation * (1.0 + math.sin(loop_phase) * cfg.trail_length)

    out = np.empty(sx.shape + (4,), dtype=np.float32)
    alpha = np.zeros(sx.shape, dtype=np.float32)
    for c, (turn, length) in enumerate(CHANNEL_TRAILS):
        a = angle + TWO_PI * turn
        ox = sx + np.cos(a) * separation * length
        oy = sy + np.sin(a) * separation * length
        out[:, :, c] = remap_channel(rgba, c, ox, oy, "bilinear", "wrap")
        alpha += remap_channel(rgba, 3, ox, oy, "bilinear", "wrap")
    out[:, :, 3] = alpha / 3.0
    return out


def iridescence(cfg: LiquidChromaticConfig, rgb, flow, phases):
    """Pull hue toward a flow-angle rainbow, lift saturation, pulse lightness."""
    hls = rgb_to_hls(rgb)
    k = cfg.iridescence_intensity
    sweep = (flow + math.pi) / TWO_PI
    shimmer = np.sin(phases["shimmer"] + sweep * 2.0 * TWO_PI) * 0.5 + 0.5
    target = (cfg.primary_hue + shimmer * cfg.hue_shift_range) % 360.0
    hue = hls[..., 0] * (1.0 - k) + target * k
    sat = np.minimum(1.0, hls[..., 2] + cfg.saturation_boost * k)
    light = np.clip(hls[..., 1] + math.sin(phases["brightness"]) * cfg.brightness_modulation * k,
                    0.0, 1.0)
    return hls_to_rgb(hue, light, sat)


def surface(cfg: LiquidChromaticConfig, rgb, edges, dx, dy, xs, ys, loop_phase):
    if cfg.surface_tension > 0:
        tension = np.where(edges > 0.5, cfg.surface_tension * (edges - 0.5) * 2.0, 0.0)
        rgb = np.minimum(255.0, rgb * (1.0 + tension * 0.5)[..., None])
    if cfg.specular_highlights > 0:
        peak = np.hypot(dx, dy) / cfg.wave_amplitude
        spec = np.where(peak > 0.7, (peak - 0.7) / 0.3 * cfg.specular_highlights * 255.0, 0.0)
        rgb = np.minimum(255.0, rgb + spec[..., None])
    if cfg.depth_gradient > 0:
        depth = np.sin(loop_phase + xs * 0.01 + ys * 0.01) * 0.5 + 0.5
        rgb = rgb * (1.0 - depth * cfg.depth_gradient * 0.3)[..., None]
    return rgb.astype(np.float32)


def invoke(data: LiquidChromaticData, rgba: np.ndarray, ctx, pool) -> np.ndarray:
    cfg = data.config
    h, w = rgba.shape[:2]
    ys, xs = pixel_grid(h, w)
    phases = resolve_animation(cfg, ctx)

    dx, dy = liquid_displacement(data, xs, ys, w, h, phases)
    flow = np.arctan2(dy, dx)
    edges = edge_magnitude(rgba)

    out = np.empty((h, w, 4), dtype=np.uint8)
    with pool.loan(w, h, 4, np.float32) as liquid:
        liquid[:] = chromatic_trails(data, rgba, xs + dx, ys + dy, flow, phases["loop"])

        rgb = liquid[:, :, :3]
        if cfg.iridescence_intensity > 0:
            rgb = iridescence(cfg, rgb, flow, phases)
        rgb = surface(cfg, rgb, edges, dx, dy, xs, ys, phases["loop"])

        mix = (cfg.effect_intensity * (1.0 - cfg.edge_preservation * edges))[..., None]
        src = rgba.astype(np.float32)
        rgb = src[:, :, :3] * (1.0 - mix) + rgb * mix
        rgb = soft_glow(rgb, cfg.glow_radius, GLOW_MIX)
        rgb = apply_contrast(rgb, cfg.contrast_boost)
        out[:, :, :3] = to_uint8(rgb)

        if cfg.preserve_alpha:
            out[:, :, 3] = rgba[:, :, 3]
        else:
            out[:, :, 3] = to_uint8(src[:, :, 3] * (1.0 - mix[..., 0]) + liquid[:, :, 3] * mix[..., 0])
    return out
