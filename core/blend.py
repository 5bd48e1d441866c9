"""
Loopwright — Blend Algebra
Pure compositing functions on float arrays in the 0..255 range.

Every blend function has the signature (base, blend, alpha) -> result and
broadcasts over numpy arrays; alpha is a scalar or an array in [0, 1].
At alpha == 0 every mode returns base unchanged.
"""

import logging

import cv2
import numpy as np

logger = logging.getLogger(__name__)


def blend_normal(base, blend, alpha):
    return base * (1.0 - alpha) + blend * alpha


def blend_screen(base, blend, alpha):
    screened = 255.0 - (255.0 - base) * (255.0 - blend) / 255.0
    return base + (screened - base) * alpha


def blend_add(base, blend, alpha):
    return np.minimum(255.0, base + blend * alpha)


def blend_overlay(base, blend, alpha):
    low = 2.0 * base * blend / 255.0
    high = 255.0 - 2.0 * (255.0 - base) * (255.0 - blend) / 255.0
    res = np.where(base < 128, low, high)
    return base + (res - base) * alpha


BLEND_FNS = {
    "normal": blend_normal,
    "screen": blend_screen,
    "add": blend_add,
    "overlay": blend_overlay,
}

BLEND_MODES = tuple(BLEND_FNS)


def get_blend_fn(mode: str):
    """Look up a blend function by name. Unknown modes fall back to normal."""
    fn = BLEND_FNS.get(mode)
    if fn is None:
        logger.warning("Unknown blend mode %r, using 'normal'", mode)
        return blend_normal
    return fn


def apply_tint(rgb, tint, strength):
    """Lerp (..., 3) float pixels toward an (r, g, b) tint."""
    if strength <= 0:
        return rgb
    tint = np.asarray(tint, dtype=np.float32)
    return rgb + (tint - rgb) * float(strength)


def hue_rotate(rgb, degrees):
    """Rotate the hue of (..., 3) float or uint8 RGB pixels by ``degrees``.

    ``degrees`` is a scalar or an array matching the pixel grid. Returns
    float32 in 0..255. Saturation and value are kept.
    """
    rgb = np.asarray(rgb, dtype=np.float32)
    degrees = np.asarray(degrees, dtype=np.float32)
    if degrees.ndim == 0 and float(degrees) % 360 == 0:
        return rgb
    shape = rgb.shape
    hsv = cv2.cvtColor(rgb.reshape(-1, 1, 3) / 255.0, cv2.COLOR_RGB2HSV)
    shift = np.broadcast_to(degrees, shape[:-1]).reshape(-1, 1)
    hsv[..., 0] = (hsv[..., 0] + shift) % 360.0
    out = cv2.cvtColor(hsv, cv2.COLOR_HSV2RGB) * 255.0
    return out.reshape(shape)


def vignette_factor(height: int, width: int, strength: float, roundness: float = 1.0):
    """Per-pixel vignette multiplier v in [1 - strength, 1].

    dx = |x - cx| / cx, dy = |y - cy| / cy
    r  = hypot(dx, dy) * roundness + max(dx, dy) * (1 - roundness)
    v  = 1 - strength * min(1, r^2)
    """
    cx = width / 2.0
    cy = height / 2.0
    ys, xs = np.mgrid[0:height, 0:width].astype(np.float32)
    dx = np.abs(xs - cx) / cx
    dy = np.abs(ys - cy) / cy
    r = np.hypot(dx, dy) * roundness + np.maximum(dx, dy) * (1.0 - roundness)
    return (1.0 - strength * np.minimum(1.0, r * r)).astype(np.float32)


def apply_vignette(rgb, strength: float, roundness: float = 1.0, color=(0, 0, 0)):
    """pixel * v + color * (1 - v). Black color makes it purely multiplicative."""
    if strength <= 0:
        return rgb
    h, w = rgb.shape[:2]
    v = vignette_factor(h, w, strength, roundness)[..., None]
    color = np.asarray(color, dtype=np.float32)
    return rgb * v + color * (1.0 - v)


def apply_contrast(rgb, boost: float):
    """Stretch around mid-gray: rgb * (1 + boost) + 128 * -boost, clamped to 0..255."""
    if boost <= 0:
        return rgb
    factor = 1.0 + boost
    return np.clip(rgb * factor + 128.0 * (1.0 - factor), 0.0, 255.0)


def to_uint8(arr) -> np.ndarray:
    """Round, clamp and cast a float working buffer to uint8."""
    return np.clip(np.rint(arr), 0, 255).astype(np.uint8)
