"""
Loopwright — Safety & Resource Guards
Centralized preflight checks run before any frame is processed.
Prevents runaway allocation from oversized rasters and unbounded pools.
"""

import numpy as np

# --- Configurable Limits ---
MAX_DIMENSION = 8192           # Maximum raster width or height in pixels
MAX_TOTAL_FRAMES = 100_000     # Maximum frames in one loop
MAX_CHAIN_DEPTH = 10           # Maximum effects in a chain
MAX_POOL_BUFFERS_PER_KEY = 8   # Idle buffers kept per (w, h, c, dtype)
MAX_POOL_KEYS = 16             # Distinct buffer shapes kept before LRU eviction


class SafetyError(ValueError):
    """Raised when a preflight check fails."""
    pass


def validate_total_frames(total_frames) -> int:
    """Check that a loop length is usable.

    Returns:
        total_frames as int.

    Raises:
        SafetyError: If total_frames is not a positive integer within limits.
    """
    try:
        total = int(total_frames)
    except (TypeError, ValueError):
        raise SafetyError(f"total_frames must be an integer, got {total_frames!r}")
    if total != total_frames:
        raise SafetyError(f"total_frames must be an integer, got {total_frames!r}")
    if total <= 0:
        raise SafetyError(f"total_frames must be > 0, got {total}")
    if total > MAX_TOTAL_FRAMES:
        raise SafetyError(
            f"total_frames={total} exceeds {MAX_TOTAL_FRAMES}. "
            f"Split the loop into shorter sequences."
        )
    return total


def validate_dimensions(width: int, height: int) -> None:
    """Check raster dimensions before buffers are allocated.

    Raises:
        SafetyError: If either side is non-positive or above MAX_DIMENSION.
    """
    if width <= 0 or height <= 0:
        raise SafetyError(f"Raster must be at least 1x1, got {width}x{height}")
    if width > MAX_DIMENSION or height > MAX_DIMENSION:
        raise SafetyError(
            f"Raster is {width}x{height}, exceeds {MAX_DIMENSION}px limit. "
            f"Downscale the layer first."
        )


def validate_frame(frame) -> None:
    """Check that a raster is an (H, W, 3|4) uint8 array within limits.

    Raises:
        SafetyError: If the array has the wrong type, rank, or channel count.
    """
    if not isinstance(frame, np.ndarray):
        raise SafetyError(f"Frame must be a numpy array, got {type(frame).__name__}")
    if frame.ndim != 3 or frame.shape[2] not in (3, 4):
        raise SafetyError(f"Frame must be (H, W, 3) or (H, W, 4), got {frame.shape}")
    if frame.dtype != np.uint8:
        raise SafetyError(f"Frame must be uint8, got {frame.dtype}")
    validate_dimensions(frame.shape[1], frame.shape[0])


def validate_chain_depth(chain: list) -> None:
    """Check that an effect chain isn't too deep.

    Raises:
        SafetyError: If chain exceeds MAX_CHAIN_DEPTH.
    """
    if len(chain) > MAX_CHAIN_DEPTH:
        raise SafetyError(
            f"Effect chain has {len(chain)} effects, max is {MAX_CHAIN_DEPTH}. "
            f"Split into multiple passes."
        )
