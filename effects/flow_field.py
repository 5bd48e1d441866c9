"""
Loopwright — Flow Field

Displaces the image through a vector field and mixes the result back over
the source.

Modes:
    liquid — noise angle steers the flow
    smoke  — upward drift with sideways noise
    plasma — swirling noise with a time-driven angle
    vortex — tangential flow around vortices orbiting the frame center

Noise evolves along z through a lattice that is periodic in z, and z makes
exactly one trip around that period per loop.
"""

import math
from dataclasses import dataclass

import numpy as np

from core.blend import hue_rotate, to_uint8
from core.noise import hash2
from core.phase import TWO_PI, resolve_cycles, resolve_phases
from core.sampler import pixel_grid, remap
from effects.config import EffectConfig, frozen_array
from effects.fields import noise_flow, noise_pair, streamline, vortex_field

NOISE_Z_CELLS = 4   # lattice cells traversed in z per noise cycle


@dataclass(frozen=True)
class FlowFieldConfig(EffectConfig):
    mode: str = "liquid"
    seed: int = 0

    flow_strength: float = 12.0
    distortion_amount: float = 1.0
    noise_scale: float = 0.005
    noise_cycles: float = 1.0

    swirls: int = 3
    vortex_intensity: float = 0.4
    vortex_radius: float = 0.35
    orbit_radius: float = 0.3

    turbulence: float = 0.5
    animation_speed: float = 1.0
    pulse_amplitude: float = 0.2
    wave_frequency: float = 2.0
    streamline_coherence: float = 0.7
    smoothing: float = 0.9

    edge_behavior: str = "wrap"
    blend_strength: float = 0.8
    hue_rotation: float = 0.0
    preserve_alpha: bool = True
    layer_opacity: float = 1.0

    PARAM_RANGES = {
        "mode": ("liquid", "smoke", "plasma", "vortex"),
        "seed": (0, 2**31 - 1),
        "flow_strength": (0.0, 200.0),
        "distortion_amount": (0.0, 4.0),
        "noise_scale": (0.0005, 0.1),
        "noise_cycles": (1.0, 16.0),
        "swirls": (1, 8),
        "vortex_intensity": (0.0, 1.0),
        "vortex_radius": (0.01, 1.0),
        "orbit_radius": (0.0, 0.5),
        "turbulence": (0.0, 1.0),
        "animation_speed": (0.0, 8.0),
        "pulse_amplitude": (0.0, 1.0),
        "wave_frequency": (0.0, 8.0),
        "streamline_coherence": (0.0, 1.0),
        "smoothing": (0.0, 1.0),
        "edge_behavior": ("wrap", "clamp"),
        "blend_strength": (0.0, 1.0),
        "hue_rotation": (-180.0, 180.0),
        "layer_opacity": (0.0, 1.0),
    }


@dataclass(frozen=True)
class FlowFieldData:
    config: FlowFieldConfig
    noise_period: int
    orbit_radii: np.ndarray      # (swirls,) fraction of min(w, h)
    base_angles: np.ndarray      # (swirls,) radians


def precompute(config: FlowFieldConfig, settings=None) -> FlowFieldData:
    n = config.swirls
    jitter = np.array([hash2(config.seed, i) for i in range(n)], dtype=np.float32)
    return FlowFieldData(
        config=config,
        noise_period=NOISE_Z_CELLS * max(1, resolve_cycles(config.noise_cycles)),
        orbit_radii=frozen_array(config.orbit_radius * (0.8 + 0.4 * jitter)),
        base_angles=frozen_array(np.arange(n, dtype=np.float32) / n * TWO_PI),
    )


def vortex_centers(data: FlowFieldData, ctx, width: int, height: int):
    """Vortex centers and strengths; each center orbits once per loop."""
    cfg = data.config
    orbit = ctx.phase(1)
    swell = ctx.phase(2)
    scale = min(width, height)
    angles = data.base_angles + orbit
    centers = np.stack([
        width / 2.0 + np.cos(angles) * data.orbit_radii * scale,
        height / 2.0 + np.sin(angles) * data.orbit_radii * scale,
    ], axis=-1)
    strengths = cfg.vortex_intensity * (0.5 + 0.5 * np.sin(swell + np.arange(cfg.swirls)))
    return centers, strengths


def flow_vectors(data: FlowFieldData, ctx, xs, ys):
    """(vx, vy) displacement in pixels for the current frame."""
    cfg = data.config
    h, w = xs.shape
    speed = cfg.animation_speed
    phases = resolve_phases(
        ctx,
        wave=speed * cfg.wave_frequency,
        plasma=speed * cfg.wave_frequency,
        turbulence=speed * cfg.wave_frequency * 2,
        turb_x=speed * 2,
        turb_y=speed * 1.5,
        pulse=speed * cfg.wave_frequency * 3,
    )

    z = ctx.t * data.noise_period
    n1, n2 = noise_pair(xs, ys, cfg.noise_scale, z, data.noise_period)
    wave = math.sin(phases["wave"]) * 0.5 + 0.5
    m1 = n1 * (0.5 + 0.5 * wave)
    m2 = n2 * (0.5 + 0.5 * wave)

    if cfg.mode == "vortex":
        centers, strengths = vortex_centers(data, ctx, w, h)
        vx, vy = vortex_field(xs, ys, centers, strengths, cfg.vortex_radius * min(w, h))
        vx = vx * cfg.flow_strength
        vy = vy * cfg.flow_strength
    else:
        vx, vy = noise_flow(cfg.mode, m1, m2, cfg.flow_strength, phases["plasma"])

    turb = math.sin(phases["turbulence"]) * cfg.turbulence * cfg.flow_strength * 0.3
    vx = vx + math.sin(phases["turb_x"]) * turb
    vy = vy + math.cos(phases["turb_y"]) * turb

    pulse = 1.0 + math.sin(phases["pulse"]) * cfg.pulse_amplitude
    vx, vy = streamline(vx * pulse, vy * pulse, cfg.streamline_coherence)

    # smoothing ranges over [0.85 * s, s] with the noise magnitude
    smooth = cfg.smoothing * (0.85 + 0.15 * np.abs(n1))
    return vx * smooth, vy * smooth


def invoke(data: FlowFieldData, rgba: np.ndarray, ctx, pool) -> np.ndarray:
    cfg = data.config
    h, w = rgba.shape[:2]
    ys, xs = pixel_grid(h, w)

    out = np.empty((h, w, 4), dtype=np.uint8)
    with pool.loan(w, h, 4, np.float32) as work:
        vx, vy = flow_vectors(data, ctx, xs, ys)
        sampled = remap(rgba, xs + vx * cfg.distortion_amount, ys + vy * cfg.distortion_amount,
                        "bilinear", cfg.edge_behavior)
        work[:] = sampled
        if cfg.hue_rotation:
            work[:, :, :3] = hue_rotate(work[:, :, :3], cfg.hue_rotation)

        k = cfg.blend_strength
        src = rgba.astype(np.float32)
        work[:, :, :3] = work[:, :, :3] * k + src[:, :, :3] * (1.0 - k)
        if cfg.preserve_alpha:
            work[:, :, 3] = src[:, :, 3]
        else:
            work[:, :, 3] = work[:, :, 3] * k + src[:, :, 3] * (1.0 - k)
        out[:] = to_uint8(work)
    return out
