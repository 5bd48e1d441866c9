"""
Loopwright — Spectral Overwatch

Keyframe effect: a spectral sweep runs for a short window starting at each
key frame and the layer passes through untouched everywhere else. Window
lengths are drawn from glitch_frame_count by a seeded hash, so the schedule
is fixed at precompute time.

Inside a window every motion (sweep rotation, caustic ripple, shimmer) makes
a whole number of cycles over the window, so each run starts and ends on the
same phase. The sweep lights a band of width sweep_width on either side of
a line through the center; the caustic term ripples the band outward, the
response is colored through a spectral table and screen-composited onto the
source under a radial vignette.
"""

import logging
import math
from dataclasses import dataclass

import numpy as np

from core.blend import to_uint8
from core.color import parse_hex_color
from core.noise import hash2, hash3
from core.phase import phase_at, resolve_cycles
from core.safety import MAX_TOTAL_FRAMES
from effects.config import EffectConfig, frozen_array
from effects.fields import normalized_grid, radial_vignette, spectral_lut

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SpectralOverwatchConfig(EffectConfig):
    seed: int = 1337
    key_frames: tuple = (0, 120, 360, 900)
    glitch_frame_count: tuple = (15, 30)

    color_mode: str = "prismatic"
    base_hue: float = 210.0
    saturation: float = 0.9
    value: float = 1.0
    tint_red: str = "#FF6666"
    tint_green: str = "#66FF66"
    tint_blue: str = "#6666FF"

    sweep_angle_deg: float = 25.0
    sweep_width: float = 0.35
    rotation_speed: float = 1.0
    ripple_frequency: float = 2.0
    ripple_speed: float = 1.0
    shimmer_speed: float = 3.0

    vignette_strength: float = 0.2
    caustic_strength: float = 1.0
    grain_strength: float = 0.05
    preserve_alpha: bool = True
    layer_opacity: float = 1.0

    PARAM_RANGES = {
        "seed": (0, 2**31 - 1),
        "key_frames": (0, MAX_TOTAL_FRAMES),
        "glitch_frame_count": (1, MAX_TOTAL_FRAMES),
        "color_mode": ("prismatic", "tinted", "mono"),
        "saturation": (0.0, 1.0),
        "value": (0.0, 1.0),
        "sweep_width": (0.0, 1.0),
        "rotation_speed": (-10.0, 10.0),
        "ripple_frequency": (0.0, 20.0),
        "ripple_speed": (-10.0, 10.0),
        "shimmer_speed": (0.0, 20.0),
        "vignette_strength": (0.0, 1.0),
        "caustic_strength": (0.0, 5.0),
        "grain_strength": (0.0, 1.0),
        "layer_opacity": (0.0, 1.0),
    }
    WRAPPED = {"base_hue": 360.0, "sweep_angle_deg": 360.0}


@dataclass(frozen=True)
class Window:
    start: int
    duration: int

    def contains(self, frame: int) -> bool:
        return self.start <= frame < self.start + self.duration


@dataclass(frozen=True)
class SpectralOverwatchData:
    config: SpectralOverwatchConfig
    schedule: tuple          # Window per key frame, sorted by start
    lut: np.ndarray          # (256, 3) response -> RGB in [0, 1]
    rotation_cycles: int
    ripple_cycles: int
    shimmer_cycles: int
    sweep_angle: float


def build_schedule(key_frames, frame_range, seed: int) -> tuple:
    """One Window per sorted key frame; duration in [min, max] picked by hash2(seed, i)."""
    lo = max(1, int(frame_range[0])) if frame_range else 15
    hi = max(lo, int(frame_range[1])) if len(frame_range) > 1 else lo
    windows = []
    for i, start in enumerate(sorted(key_frames)):
        duration = lo + int(math.floor(hash2(seed, i) * (hi - lo + 1)))
        windows.append(Window(int(start), min(duration, hi)))
    return tuple(windows)


def precompute(config: SpectralOverwatchConfig, settings=None) -> SpectralOverwatchData:
    tints = tuple(parse_hex_color(c) for c in (config.tint_red, config.tint_green, config.tint_blue))
    lut = spectral_lut(config.color_mode, config.base_hue, config.saturation, config.value, tints)
    schedule = build_schedule(config.key_frames, config.glitch_frame_count, config.seed)
    logger.debug("spectral_overwatch: %d windows %s", len(schedule),
                 [(w.start, w.duration) for w in schedule])
    return SpectralOverwatchData(
        config=config,
        schedule=schedule,
        lut=frozen_array(lut),
        rotation_cycles=resolve_cycles(config.rotation_speed),
        ripple_cycles=resolve_cycles(config.ripple_frequency * config.ripple_speed),
        shimmer_cycles=resolve_cycles(config.shimmer_speed),
        sweep_angle=math.radians(config.sweep_angle_deg),
    )


def active_window(data: SpectralOverwatchData, frame: int):
    """First window containing ``frame``, or None."""
    for window in data.schedule:
        if window.contains(frame):
            return window
    return None


def window_phases(data: SpectralOverwatchData, window: Window, frame: int) -> dict:
    local = frame - window.start
    return {
        "rotation": phase_at(data.rotation_cycles, local, window.duration),
        "ripple": phase_at(data.ripple_cycles, local, window.duration),
        "shimmer": phase_at(data.shimmer_cycles, local, window.duration),
    }


def sweep_response(data: SpectralOverwatchData, u, v, phases, grain):
    """Band around the sweep line, rippled by caustics, plus grain. In [0, 1]."""
    cfg = data.config
    angle = data.sweep_angle + phases["rotation"]
    proj = np.abs(u * math.cos(angle) + v * math.sin(angle))
    width = cfg.sweep_width
    if width <= 0:
        band = np.zeros_like(proj)
    else:
        x = np.clip(1.0 - proj / width, 0.0, 1.0)
        band = x * x * (3.0 - 2.0 * x)
    radius = np.hypot(u, v)
    caustic = 1.0 + cfg.caustic_strength * np.cos(phases["ripple"] * radius + phases["shimmer"])
    response = np.clip(band * caustic, 0.0, 1.0)
    if cfg.grain_strength > 0:
        response = np.clip(response + (grain - 0.5) * cfg.grain_strength, 0.0, 1.0)
    return response.astype(np.float32)


def invoke(data: SpectralOverwatchData, rgba: np.ndarray, ctx, pool) -> np.ndarray:
    cfg = data.config
    window = active_window(data, ctx.frame_index)
    if window is None:
        return rgba.copy()

    h, w = rgba.shape[:2]
    u, v = normalized_grid(h, w)
    grain = None
    if cfg.grain_strength > 0:
        ys, xs = np.mgrid[0:h, 0:w]
        grain = hash3(cfg.seed, xs, ys)
    response = sweep_response(data, u, v, window_phases(data, window, ctx.frame_index), grain)

    idx = np.clip(np.rint(response * (len(data.lut) - 1)), 0, len(data.lut) - 1).astype(np.intp)
    out = np.empty((h, w, 4), dtype=np.uint8)
    with pool.loan(w, h, 3, np.float32) as lit:
        lit[:] = data.lut[idx]
        src = rgba[:, :, :3].astype(np.float32) / 255.0
        screened = 1.0 - (1.0 - src) * (1.0 - lit)
        screened *= radial_vignette(u, v, cfg.vignette_strength)[..., None]
        out[:, :, :3] = to_uint8(np.clip(screened, 0.0, 1.0) * 255.0)
    out[:, :, 3] = rgba[:, :, 3] if cfg.preserve_alpha else 255
    return out
