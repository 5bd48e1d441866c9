"""
Loopwright — Field Generators

Displacement and intensity fields shared by the effects. Every function is a
pure function of its arguments and works on whole coordinate grids at once.
Angles are radians; time enters only through loop phases, never raw time.
"""

import numpy as np

from core.color import hsv_to_rgb
from core.noise import lattice_noise3

TWO_PI = 2.0 * np.pi


def normalized_grid(height: int, width: int):
    """(u, v) grids spanning [-1, 1] corner to corner."""
    u = np.linspace(-1.0, 1.0, width, dtype=np.float32)
    v = np.linspace(-1.0, 1.0, height, dtype=np.float32)
    return np.meshgrid(u, v)


def grating_response(u, v, vectors, scale, rotation, ripple_phase=0.0,
                     ripple_strength=0.0, shimmer_phase=0.0):
    """Interference of K diffraction gratings, mean of cosines in [-1, 1].

    Each grating unit vector is rotated by ``rotation``; the ripple term adds
    a radial phase proportional to hypot(u, v).

    Args:
        u, v: Normalized coordinate grids in [-1, 1].
        vectors: (K, 2) array of grating unit vectors.
        scale: Spatial frequency in cycles across the half-frame.
    """
    vectors = np.asarray(vectors, dtype=np.float32)
    rc, rs = np.cos(rotation), np.sin(rotation)
    radial = ripple_phase * ripple_strength * np.hypot(u, v)
    freq = TWO_PI * scale
    acc = np.zeros(np.shape(u), dtype=np.float32)
    for gx, gy in vectors:
        rx = gx * rc - gy * rs
        ry = gx * rs + gy * rc
        acc += np.cos((u * rx + v * ry) * freq + radial + shimmer_phase)
    return acc / max(1, len(vectors))


def polar_ripple(xs, ys, cx, cy, amplitude, frequency, radial_cycles, time_phase):
    """Sample coordinates displaced along the radius by a polar sine ripple.

    off = sin(theta * frequency + r * radial_cycles * 2pi + time_phase) * amplitude
    with r normalized by the half-diagonal.

    Returns:
        (sx, sy) sample coordinate grids.
    """
    dx = xs - cx
    dy = ys - cy
    max_r = max(np.hypot(cx, cy), 1e-6)
    r = np.hypot(dx, dy) / max_r
    theta = np.arctan2(dy, dx)
    off = np.sin(theta * frequency + r * radial_cycles * TWO_PI + time_phase) * amplitude
    return xs + np.cos(theta) * off, ys + np.sin(theta) * off


def chromatic_orbit(xs, ys, cx, cy, radius, rotation_phase, channel_phase):
    """Sample coordinates for one channel orbiting each pixel.

    angle = pixel angle + rotation_phase + 2pi * channel_phase
    """
    angle = np.arctan2(ys - cy, xs - cx) + rotation_phase + TWO_PI * channel_phase
    return xs + np.cos(angle) * radius, ys + np.sin(angle) * radius


def vortex_field(xs, ys, centers, strengths, max_radius):
    """Tangential flow around N vortices.

    Each vortex contributes strength * (1 - d / max_radius) for
    0 < d < max_radius, directed perpendicular to the radius.

    Returns:
        (vx, vy) float32 grids.
    """
    vx = np.zeros(np.shape(xs), dtype=np.float32)
    vy = np.zeros(np.shape(xs), dtype=np.float32)
    if max_radius <= 0:
        return vx, vy
    for (px, py), strength in zip(centers, strengths):
        dx = xs - px
        dy = ys - py
        d = np.hypot(dx, dy)
        inside = (d > 0) & (d < max_radius)
        influence = np.where(inside, strength * (1.0 - d / max_radius), 0.0)
        angle = np.arctan2(dy, dx) + np.pi / 2
        vx += (np.cos(angle) * influence).astype(np.float32)
        vy += (np.sin(angle) * influence).astype(np.float32)
    return vx, vy


def noise_pair(xs, ys, noise_scale, z, period_z):
    """Two decorrelated lattice noise layers at base and double frequency."""
    n1 = lattice_noise3(xs * noise_scale, ys * noise_scale, z, period_z)
    n2 = lattice_noise3(xs * noise_scale * 2 + 31.7, ys * noise_scale * 2 + 47.3, z, period_z)
    return np.asarray(n1, dtype=np.float32), np.asarray(n2, dtype=np.float32)


def noise_flow(mode, n1, n2, strength, plasma_phase=0.0):
    """Vector field from two noise layers.

    Modes:
        liquid — direction follows the noise angle
        smoke  — drifts upward, sideways by the noise
        plasma — angle swirls with an extra time phase
    """
    if mode == "smoke":
        return n1 * strength * 0.5, -np.abs(n2) * strength
    if mode == "plasma":
        angle = n1 * 2 * TWO_PI + plasma_phase
        return np.sin(angle) * strength, np.cos(angle + n2 * np.pi) * strength
    angle = n1 * TWO_PI
    return np.sin(angle) * strength, np.cos(angle) * strength


def streamline(vx, vy, coherence):
    """Mix the flow with its perpendicular; coherence 1 keeps pure streamlines."""
    perp = (1.0 - coherence) * 0.3
    return vx * coherence - vy * perp, vy * coherence + vx * perp


def radial_vignette(u, v, strength):
    """1 - strength * min(1, u^2 + v^2) over a normalized [-1, 1] grid."""
    return (1.0 - strength * np.minimum(1.0, u * u + v * v)).astype(np.float32)


def spectral_lut(color_mode, base_hue, saturation, value, tints, rainbow=1.0, size=256):
    """Table mapping a response s in [0, 1] to RGB in [0, 1].

    prismatic — hue sweeps base_hue + 360 * rainbow * s at fixed s/v
    tinted    — each channel ramps toward its own tint: (s * r_R, s * g_G, s * b_B)
    mono      — gray ramp s * value

    ``tints`` is three (r, g, b) tuples, one per output channel.
    """
    s = np.linspace(0.0, 1.0, size, dtype=np.float32)
    if color_mode == "mono":
        ramp = np.clip(s * value, 0.0, 1.0)
        lut = np.stack([ramp, ramp, ramp], axis=-1)
    elif color_mode == "tinted":
        peak = np.array([tints[c][c] for c in range(3)], dtype=np.float32) / 255.0
        lut = np.clip(s[:, None] * peak[None, :], 0.0, 1.0)
    else:
        hue = (base_hue + 360.0 * rainbow * s) % 360.0
        lut = hsv_to_rgb(hue, saturation, value) / 255.0
    return np.ascontiguousarray(lut, dtype=np.float32)
