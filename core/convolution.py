"""
Loopwright — Convolution Stage (Bloom)
Luma threshold mask, separable box blur, additive bloom, soft glow and
Sobel edge strength.
"""

import math

import cv2
import numpy as np

from core.color import luma


def bright_mask(rgb, threshold: float) -> np.ndarray:
    """Zero every pixel whose normalized luma is <= threshold.

    Args:
        rgb: (H, W, 3) float array in 0..255.
        threshold: Luma cutoff in [0, 1].

    Returns:
        float32 (H, W, 3) with only the bright pixels kept.
    """
    rgb = np.asarray(rgb, dtype=np.float32)
    keep = luma(rgb) / 255.0 > threshold
    return rgb * keep[..., None]


def box_blur(img, radius: int) -> np.ndarray:
    """Separable box blur, horizontal pass then vertical, edges replicated.

    Window is 2 * radius + 1. radius <= 0 returns the input unchanged.
    """
    radius = int(radius)
    img = np.asarray(img, dtype=np.float32)
    if radius <= 0:
        return img
    k = 2 * radius + 1
    out = cv2.blur(img, (k, 1), borderType=cv2.BORDER_REPLICATE)
    return cv2.blur(out, (1, k), borderType=cv2.BORDER_REPLICATE)


def pulse_gain(t: float, cycles: int, amplitude: float) -> float:
    """1 + sin(2*pi * cycles * t) * amplitude."""
    return 1.0 + math.sin(t * 2.0 * math.pi * cycles) * amplitude


def apply_bloom(rgb, threshold: float, radius: int, intensity: float,
                gain: float = 1.0) -> np.ndarray:
    """Add a blurred bright-pass back onto ``rgb``, clamped to 255.

    intensity == 0 returns the input values unchanged.
    """
    rgb = np.asarray(rgb, dtype=np.float32)
    if intensity <= 0:
        return rgb
    glow = box_blur(bright_mask(rgb, threshold), radius)
    return np.minimum(255.0, rgb + glow * (intensity * gain))


def soft_glow(rgb, radius: int, strength: float = 0.3) -> np.ndarray:
    """Mix a box-blurred copy back in: rgb * (1 - strength) + blur * strength."""
    rgb = np.asarray(rgb, dtype=np.float32)
    if radius <= 0 or strength <= 0:
        return rgb
    return rgb * (1.0 - strength) + box_blur(rgb, radius) * strength


def edge_magnitude(rgb) -> np.ndarray:
    """Sobel gradient magnitude of the channel mean, divided by 255 and capped at 1.

    Returns float32 (H, W) in [0, 1].
    """
    gray = np.mean(np.asarray(rgb, dtype=np.float32)[..., :3], axis=2)
    gx = cv2.Sobel(gray, cv2.CV_32F, 1, 0, ksize=3, borderType=cv2.BORDER_REPLICATE)
    gy = cv2.Sobel(gray, cv2.CV_32F, 0, 1, ksize=3, borderType=cv2.BORDER_REPLICATE)
    return np.minimum(1.0, np.sqrt(gx ** 2 + gy ** 2) / 255.0).astype(np.float32)
