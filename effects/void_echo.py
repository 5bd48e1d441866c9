"""
Loopwright — Void Echo

Recursive echoes: each echo is a displaced, chromatically split copy of the
source, blended into an accumulator together with a fraction of everything
accumulated so far (feedback). Echo i trails the loop by i * echo_spacing.

    echo_phase_i = (t - i * spacing) mod 1
    opacity_i    = decay^i * (1 + sin(2pi * echo_phase_i) * pulse)
    out          = blend(out, min(255, echo_i + feedback * strength), opacity_i)
    feedback     = out

Displacement and rotation advance by whole cycles of echo_phase, so every
echo returns to its start when the loop wraps.
"""

import math
from dataclasses import dataclass

import numpy as np

from core.blend import apply_tint, apply_vignette, get_blend_fn, to_uint8
from core.color import parse_hex_color
from core.phase import TWO_PI, resolve_cycles
from core.sampler import pixel_grid, remap_channel
from effects.config import EffectConfig


@dataclass(frozen=True)
class VoidEchoConfig(EffectConfig):
    echo_count: int = 5
    echo_spacing: float = 0.15
    echo_decay: float = 0.7

    displacement_radius: float = 80.0
    displacement_speed: float = 1.0
    displacement_angle: float = 0.0

    chromatic_strength: float = 8.0
    chromatic_rotation: float = 120.0

    blend_mode: str = "screen"
    feedback_strength: float = 0.6

    tint_color: str = "#00FFFF"
    tint_strength: float = 0.3
    vignette_color: str = "#000000"
    vignette_strength: float = 0.4

    pulse_intensity: float = 0.5
    rotation_speed: float = 0.3

    smoothing: bool = True
    edge_mode: str = "transparent"
    preserve_alpha: bool = False
    layer_opacity: float = 1.0

    PARAM_RANGES = {
        "echo_count": (2, 12),
        "echo_spacing": (0.05, 0.5),
        "echo_decay": (0.3, 0.95),
        "displacement_radius": (0.0, 200.0),
        "displacement_speed": (0.1, 3.0),
        "chromatic_strength": (0.0, 30.0),
        "chromatic_rotation": (0.0, 180.0),
        "blend_mode": ("screen", "add", "overlay", "normal"),
        "feedback_strength": (0.0, 1.0),
        "tint_strength": (0.0, 1.0),
        "vignette_strength": (0.0, 1.0),
        "pulse_intensity": (0.0, 1.0),
        "rotation_speed": (0.0, 2.0),
        "edge_mode": ("transparent", "clamp", "wrap"),
        "layer_opacity": (0.0, 1.0),
    }
    WRAPPED = {"displacement_angle": 360.0}


@dataclass(frozen=True)
class VoidEchoData:
    config: VoidEchoConfig
    speed_cycles: int
    rotation_cycles: int
    angle0: float
    channel_angles: tuple
    tint: tuple
    vignette_color: tuple


def precompute(config: VoidEchoConfig, settings=None) -> VoidEchoData:
    rot = math.radians(config.chromatic_rotation)
    return VoidEchoData(
        config=config,
        speed_cycles=resolve_cycles(config.displacement_speed),
        rotation_cycles=resolve_cycles(config.rotation_speed),
        angle0=math.radians(config.displacement_angle),
        channel_angles=(0.0, rot, 2.0 * rot),
        tint=parse_hex_color(config.tint_color, fallback=(0, 0, 0)),
        vignette_color=parse_hex_color(config.vignette_color, fallback=(0, 0, 0)),
    )


def echo_schedule(data: VoidEchoData, t: float):
    """[(echo_phase, opacity, off_x, off_y, rotation)] for every echo at loop time t."""
    cfg = data.config
    out = []
    for i in range(cfg.echo_count):
        phase = (t - i * cfg.echo_spacing) % 1.0
        opacity = cfg.echo_decay ** i * (1.0 + math.sin(TWO_PI * phase) * cfg.pulse_intensity)
        angle = TWO_PI * phase * data.speed_cycles + data.angle0
        out.append((
            phase,
            opacity,
            math.sin(angle) * cfg.displacement_radius,
            math.cos(angle) * cfg.displacement_radius,
            TWO_PI * phase * data.rotation_cycles,
        ))
    return out


def render_echo(rgba, data: VoidEchoData, xs, ys, off_x, off_y, rotation, echo):
    """Fill ``echo`` (H, W, 4 float32) with one displaced, chromatically split copy."""
    cfg = data.config
    h, w = rgba.shape[:2]
    mode = "bilinear" if cfg.smoothing else "nearest"
    pixel_angle = np.arctan2(ys - h / 2.0, xs - w / 2.0)
    bx = xs + off_x
    by = ys + off_y
    for c, chroma in enumerate(data.channel_angles):
        a = pixel_angle + chroma + rotation
        sx = bx + np.cos(a) * cfg.chromatic_strength
        sy = by + np.sin(a) * cfg.chromatic_strength
        echo[:, :, c] = remap_channel(rgba, c, sx, sy, mode, cfg.edge_mode)
    echo[:, :, 3] = remap_channel(rgba, 3, bx, by, mode, cfg.edge_mode)


def invoke(data: VoidEchoData, rgba: np.ndarray, ctx, pool) -> np.ndarray:
    cfg = data.config
    h, w = rgba.shape[:2]
    blend = get_blend_fn(cfg.blend_mode)
    ys, xs = pixel_grid(h, w)

    result = np.empty((h, w, 4), dtype=np.uint8)
    with pool.loan(w, h, 4, np.float32) as acc, \
            pool.loan(w, h, 3, np.float32) as feedback, \
            pool.loan(w, h, 4, np.float32) as echo:
        acc.fill(0)
        feedback.fill(0)

        for _, opacity, off_x, off_y, rotation in echo_schedule(data, ctx.t):
            render_echo(rgba, data, xs, ys, off_x, off_y, rotation, echo)
            layer = np.minimum(255.0, echo[:, :, :3] + feedback * cfg.feedback_strength)
            acc[:, :, :3] = blend(acc[:, :, :3], layer, opacity)
            np.maximum(acc[:, :, 3], echo[:, :, 3] * opacity, out=acc[:, :, 3])
            feedback[:] = acc[:, :, :3]

        rgb = apply_tint(acc[:, :, :3], data.tint, cfg.tint_strength)
        rgb = apply_vignette(rgb, cfg.vignette_strength, 1.0, data.vignette_color)
        result[:, :, :3] = to_uint8(rgb)
        if cfg.preserve_alpha:
            result[:, :, 3] = rgba[:, :, 3]
        else:
            result[:, :, 3] = to_uint8(acc[:, :, 3])
    return result
