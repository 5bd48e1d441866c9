"""
Loopwright — Color Helpers
Hex parsing and HSV conversion shared by effect precompute stages.
"""

import logging
import re

import cv2
import numpy as np

logger = logging.getLogger(__name__)

DEFAULT_COLOR = (255, 255, 255)

_HEX6 = re.compile(r"^(?:#|0x)?([0-9a-fA-F]{6})$")
_HEX3 = re.compile(r"^#?([0-9a-fA-F]{3})$")


def parse_hex_color(value, fallback=DEFAULT_COLOR) -> tuple:
    """Parse '#RRGGBB', 'RRGGBB', '#RGB' or '0xRRGGBB' into an (r, g, b) tuple.

    Malformed input returns ``fallback`` and logs a warning.
    """
    if isinstance(value, (tuple, list)) and len(value) == 3:
        try:
            return tuple(int(max(0, min(255, int(c)))) for c in value)
        except (TypeError, ValueError):
            pass
    elif isinstance(value, str):
        text = value.strip()
        m = _HEX6.match(text)
        if m:
            h = m.group(1)
            return (int(h[0:2], 16), int(h[2:4], 16), int(h[4:6], 16))
        m = _HEX3.match(text)
        if m:
            h = m.group(1)
            return tuple(int(c * 2, 16) for c in h)
    logger.warning("Malformed color %r, using %s", value, fallback)
    return tuple(fallback)


def rgb_to_hex(rgb) -> str:
    r, g, b = (int(c) for c in rgb)
    return f"#{r:02X}{g:02X}{b:02X}"


def hsv_to_rgb(hue, saturation, value):
    """HSV (hue degrees, s and v in [0, 1]) to float RGB in [0, 255].

    Accepts scalars or equally shaped arrays; returns an (..., 3) float32 array.
    """
    h = np.asarray(hue, dtype=np.float32) % 360.0
    s = np.broadcast_to(np.asarray(saturation, dtype=np.float32), h.shape)
    v = np.broadcast_to(np.asarray(value, dtype=np.float32), h.shape)
    hsv = np.stack([h, s, v], axis=-1).reshape(-1, 1, 3)
    rgb = cv2.cvtColor(hsv, cv2.COLOR_HSV2RGB)
    return (rgb.reshape(h.shape + (3,)) * 255.0).astype(np.float32)


def rgb_to_hsv(rgb):
    """Float or uint8 RGB (..., 3) to float32 HSV (hue degrees, s and v in [0, 1])."""
    arr = np.asarray(rgb, dtype=np.float32) / 255.0
    shape = arr.shape
    hsv = cv2.cvtColor(arr.reshape(-1, 1, 3), cv2.COLOR_RGB2HSV)
    return hsv.reshape(shape)


def luma(rgb):
    """Rec. 709 luma of an (..., 3) array, same scale as the input."""
    rgb = np.asarray(rgb, dtype=np.float32)
    return 0.2126 * rgb[..., 0] + 0.7152 * rgb[..., 1] + 0.0722 * rgb[..., 2]


def hls_to_rgb(hue, lightness, saturation):
    """HLS (hue degrees, l and s in [0, 1]) to float32 RGB in [0, 255].

    Accepts scalars or equally shaped arrays; returns an (..., 3) array.
    """
    h = np.asarray(hue, dtype=np.float32) % 360.0
    shape = np.broadcast(h, np.asarray(lightness), np.asarray(saturation)).shape
    hls = np.stack([
        np.broadcast_to(h, shape),
        np.broadcast_to(np.asarray(lightness, dtype=np.float32), shape),
        np.broadcast_to(np.asarray(saturation, dtype=np.float32), shape),
    ], axis=-1).reshape(-1, 1, 3)
    rgb = cv2.cvtColor(np.ascontiguousarray(hls), cv2.COLOR_HLS2RGB)
    return (rgb.reshape(shape + (3,)) * 255.0).astype(np.float32)


def rgb_to_hls(rgb):
    """Float or uint8 RGB (..., 3) to float32 HLS (hue degrees, l and s in [0, 1])."""
    arr = np.asarray(rgb, dtype=np.float32) / 255.0
    shape = arr.shape
    hls = cv2.cvtColor(np.ascontiguousarray(arr.reshape(-1, 1, 3)), cv2.COLOR_RGB2HLS)
    return hls.reshape(shape)
