"""
Loopwright — Pixel Sampler
Bilinear and nearest resampling with a per-call edge policy.

Edge policies:
    "clamp"       — out-of-range coordinates saturate to the border pixel
    "wrap"        — coordinates tile (modulo width/height)
    "transparent" — out-of-range samples read as 0 in every channel
"""

import numpy as np

EDGE_MODES = ("clamp", "wrap", "transparent")
SAMPLE_MODES = ("bilinear", "nearest")


def resolve_coords(x, y, width: int, height: int, edge: str = "clamp"):
    """Apply an edge policy to sample coordinates.

    Returns:
        (x, y, valid) — float64 coordinate arrays and a boolean mask that is
        False only for samples dropped by the "transparent" policy.
    """
    x = np.asarray(x, dtype=np.float64)
    y = np.asarray(y, dtype=np.float64)
    if edge == "wrap":
        x = np.mod(x, width)
        y = np.mod(y, height)
        valid = np.ones(np.broadcast(x, y).shape, dtype=bool)
    elif edge == "transparent":
        valid = (x >= 0) & (x <= width - 1) & (y >= 0) & (y <= height - 1)
        x = np.clip(x, 0, width - 1)
        y = np.clip(y, 0, height - 1)
    else:
        x = np.clip(x, 0, width - 1)
        y = np.clip(y, 0, height - 1)
        valid = np.ones(np.broadcast(x, y).shape, dtype=bool)
    return x, y, valid


def _gather(frame, xi, yi, channel):
    if channel is None:
        return frame[yi, xi].astype(np.float32)
    return frame[yi, xi, channel].astype(np.float32)


def sample(frame: np.ndarray, x, y, channel=None, mode: str = "bilinear"):
    """Sample a raster at fractional coordinates.

    Neighbour indices are clamped independently per axis into the raster, so
    coordinates on or past the last row/column read the border pixel.

    Args:
        frame: (H, W, C) array.
        x, y: Scalars or arrays of equal shape.
        channel: Channel index, or None for all channels.
        mode: "bilinear" or "nearest" (round half up).

    Returns:
        float32 array of samples (trailing C axis when channel is None).
    """
    h, w = frame.shape[:2]
    x = np.asarray(x, dtype=np.float64)
    y = np.asarray(y, dtype=np.float64)

    if mode == "nearest":
        xi = np.clip(np.floor(x + 0.5), 0, w - 1).astype(np.intp)
        yi = np.clip(np.floor(y + 0.5), 0, h - 1).astype(np.intp)
        return _gather(frame, xi, yi, channel)

    x0f = np.floor(x)
    y0f = np.floor(y)
    fx = (x - x0f).astype(np.float32)
    fy = (y - y0f).astype(np.float32)
    x0 = np.clip(x0f, 0, w - 1).astype(np.intp)
    x1 = np.clip(x0f + 1, 0, w - 1).astype(np.intp)
    y0 = np.clip(y0f, 0, h - 1).astype(np.intp)
    y1 = np.clip(y0f + 1, 0, h - 1).astype(np.intp)

    if channel is None:
        fx = fx[..., None]
        fy = fy[..., None]

    top = _gather(frame, x0, y0, channel) * (1 - fx) + _gather(frame, x1, y0, channel) * fx
    bottom = _gather(frame, x0, y1, channel) * (1 - fx) + _gather(frame, x1, y1, channel) * fx
    return top * (1 - fy) + bottom * fy


def remap(frame: np.ndarray, x, y, mode: str = "bilinear", edge: str = "clamp") -> np.ndarray:
    """Resample every channel of ``frame`` through (H, W) coordinate maps.

    Returns a float32 (H, W, C) array.
    """
    h, w = frame.shape[:2]
    sx, sy, valid = resolve_coords(x, y, w, h, edge)
    out = sample(frame, sx, sy, mode=mode)
    if edge == "transparent":
        out = out * valid[..., None]
    return out


def remap_channel(frame: np.ndarray, channel: int, x, y, mode: str = "bilinear",
                  edge: str = "clamp") -> np.ndarray:
    """Single-channel form of remap(); returns float32 (H, W)."""
    h, w = frame.shape[:2]
    sx, sy, valid = resolve_coords(x, y, w, h, edge)
    out = sample(frame, sx, sy, channel=channel, mode=mode)
    if edge == "transparent":
        out = out * valid
    return out


def pixel_grid(height: int, width: int):
    """(ys, xs) float32 coordinate grids, like np.mgrid[0:h, 0:w]."""
    ys, xs = np.mgrid[0:height, 0:width].astype(np.float32)
    return ys, xs
