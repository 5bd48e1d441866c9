"""
Loopwright — Deterministic Hash & Lattice Noise

Integer hashes run in unsigned 32-bit wrap-around arithmetic so the same
(seed, x, y) triple produces the same value on every platform. All functions
accept scalars or numpy arrays and broadcast.

Test vectors:
    hash2(0, 0) == hash3(0, 0, 0) == 1376312589 / 4294967295
"""

import numpy as np

_MASK32 = np.uint64(0xFFFFFFFF)
_NORM = 4294967295.0


def _u32(v):
    """Reduce ints (possibly negative) or int arrays to uint64 holding uint32 values."""
    return np.asarray(v).astype(np.int64).astype(np.uint64) & _MASK32


def _finish(n):
    n = ((n << np.uint64(13)) & _MASK32) ^ n
    # n*n can exceed 2^64 before masking, so reduce after each product
    sq = (n * n) & _MASK32
    inner = (sq * np.uint64(15731) + np.uint64(789221)) & _MASK32
    out = (n * inner + np.uint64(1376312589)) & _MASK32
    return out.astype(np.float64) / _NORM


def hash2(a, b):
    """Hash two integers to [0, 1]."""
    n = ((_u32(a) * np.uint64(73856093)) & _MASK32) ^ ((_u32(b) * np.uint64(19349663)) & _MASK32)
    out = _finish(n)
    return float(out) if out.ndim == 0 else out


def hash3(a, b, c):
    """Hash three integers to [0, 1]."""
    n = (((_u32(a) * np.uint64(374761393)) & _MASK32)
         ^ ((_u32(b) * np.uint64(668265263)) & _MASK32)
         ^ ((_u32(c) * np.uint64(362437)) & _MASK32))
    out = _finish(n)
    return float(out) if out.ndim == 0 else out


def fade(t):
    """Quintic smoothstep t^3 (t (6t - 15) + 10)."""
    return t * t * t * (t * (t * 6.0 - 15.0) + 10.0)


def lattice_noise3(x, y, z, period_z: int = 256):
    """Value noise in [-1, 1] on an integer lattice.

    Corner values come from hash3 of the lattice indices (x and y masked to
    0..255, z wrapped by period_z), blended trilinearly with fade(). The
    result is periodic in z with period ``period_z``: an animation that moves
    z from 0 to period_z over the loop returns to its starting field.
    """
    x = np.asarray(x, dtype=np.float64)
    y = np.asarray(y, dtype=np.float64)
    z = np.asarray(z, dtype=np.float64)
    period_z = max(1, int(period_z))

    x0f, y0f, z0f = np.floor(x), np.floor(y), np.floor(z)
    fx, fy, fz = x - x0f, y - y0f, z - z0f
    x0 = x0f.astype(np.int64)
    y0 = y0f.astype(np.int64)
    z0 = z0f.astype(np.int64)

    xi0, xi1 = x0 & 255, (x0 + 1) & 255
    yi0, yi1 = y0 & 255, (y0 + 1) & 255
    zi0, zi1 = np.mod(z0, period_z), np.mod(z0 + 1, period_z)

    u, v, w = fade(fx), fade(fy), fade(fz)

    def corner(xi, yi, zi):
        return np.asarray(hash3(xi, yi, zi)) * 2.0 - 1.0

    c000, c100 = corner(xi0, yi0, zi0), corner(xi1, yi0, zi0)
    c010, c110 = corner(xi0, yi1, zi0), corner(xi1, yi1, zi0)
    c001, c101 = corner(xi0, yi0, zi1), corner(xi1, yi0, zi1)
    c011, c111 = corner(xi0, yi1, zi1), corner(xi1, yi1, zi1)

    x00 = c000 + u * (c100 - c000)
    x10 = c010 + u * (c110 - c010)
    x01 = c001 + u * (c101 - c001)
    x11 = c011 + u * (c111 - c011)
    y0v = x00 + v * (x10 - x00)
    y1v = x01 + v * (x11 - x01)
    out = y0v + w * (y1v - y0v)
    return float(out) if np.ndim(out) == 0 else out
