"""
Loopwright — Codec Adapter
Thin PNG encode/decode of layer contents via Pillow.
"""

import io

import numpy as np
from PIL import Image, UnidentifiedImageError

from core.safety import validate_dimensions


class CodecError(RuntimeError):
    """Raised when layer bytes can't be decoded or pixels can't be encoded."""
    pass


def decode(data: bytes):
    """Decode image bytes to RGBA pixels.

    Returns:
        (pixels, width, height) with pixels an (H, W, 4) uint8 array.

    Raises:
        CodecError: If the bytes are not a readable image.
    """
    if not data:
        raise CodecError("Empty image buffer")
    try:
        with Image.open(io.BytesIO(data)) as img:
            img = img.convert("RGBA")
            pixels = np.array(img, dtype=np.uint8)
    except (UnidentifiedImageError, OSError, ValueError) as e:
        raise CodecError(f"Could not decode image: {e}") from e
    height, width = pixels.shape[:2]
    return pixels, width, height


def encode(pixels, width: int, height: int, channels: int = 4) -> bytes:
    """Encode (H, W, 3|4) uint8 pixels as PNG bytes.

    Raises:
        CodecError: If the array does not match the declared size.
    """
    pixels = np.asarray(pixels)
    if pixels.shape != (height, width, channels) or channels not in (3, 4):
        raise CodecError(
            f"Pixel array {pixels.shape} does not match {width}x{height}x{channels}"
        )
    buf = io.BytesIO()
    try:
        Image.fromarray(np.ascontiguousarray(pixels, dtype=np.uint8)).save(buf, format="PNG")
    except (OSError, ValueError) as e:
        raise CodecError(f"Could not encode image: {e}") from e
    return buf.getvalue()


def resize(pixels, width: int, height: int) -> np.ndarray:
    """LANCZOS resize of an (H, W, C) uint8 array to width x height."""
    validate_dimensions(width, height)
    pixels = np.asarray(pixels, dtype=np.uint8)
    if pixels.shape[1] == width and pixels.shape[0] == height:
        return pixels
    img = Image.fromarray(np.ascontiguousarray(pixels))
    return np.array(img.resize((width, height), Image.LANCZOS), dtype=np.uint8)
