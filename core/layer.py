"""
Loopwright — Layer Adapter

The host application owns layers; effects only see this small interface:

    get_info()                -> {"width": int, "height": int}
    to_buffer()               -> encoded image bytes
    from_buffer(data)         -> replace contents with encoded image bytes
    adjust_layer_opacity(f)   -> multiply layer opacity by f

RasterLayer is the in-memory implementation used by tests and by anything
driving effects without a host. Its contents are PNG bytes; opacity is
tracked separately and baked into alpha by composite_pixels().
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field

import numpy as np

from core.codec import decode, encode


class Layer(ABC):
    """Interface a host layer must provide."""

    @abstractmethod
    def get_info(self) -> dict:
        ...

    @abstractmethod
    def to_buffer(self) -> bytes:
        ...

    @abstractmethod
    def from_buffer(self, data: bytes) -> None:
        ...

    @abstractmethod
    def adjust_layer_opacity(self, factor: float) -> None:
        ...


@dataclass
class RasterLayer(Layer):
    """In-memory layer backed by PNG bytes.

    Configuration (serializable):
        name: Display name.
        data: Encoded PNG contents.
        opacity: Layer opacity (0-1), multiplied into alpha on composite.
    """
    name: str = ""
    data: bytes = b""
    opacity: float = 1.0
    _size: tuple = field(default=(0, 0), repr=False)

    def __post_init__(self):
        self.opacity = max(0.0, min(1.0, float(self.opacity)))
        if self.data:
            _, w, h = decode(self.data)
            self._size = (w, h)

    @classmethod
    def from_pixels(cls, pixels, name: str = "", opacity: float = 1.0):
        pixels = np.asarray(pixels, dtype=np.uint8)
        h, w, c = pixels.shape
        return cls(name=name, data=encode(pixels, w, h, c), opacity=opacity)

    def get_info(self) -> dict:
        return {"width": self._size[0], "height": self._size[1]}

    def to_buffer(self) -> bytes:
        return self.data

    def from_buffer(self, data: bytes) -> None:
        # decode first so a bad buffer leaves the layer untouched
        _, w, h = decode(data)
        self.data = data
        self._size = (w, h)

    def adjust_layer_opacity(self, factor: float) -> None:
        self.opacity = max(0.0, min(1.0, self.opacity * float(factor)))

    def pixels(self) -> np.ndarray:
        """Decoded RGBA contents, opacity not applied."""
        return decode(self.data)[0]

    def composite_pixels(self) -> np.ndarray:
        """RGBA contents with opacity multiplied into alpha."""
        px = self.pixels().copy()
        if self.opacity < 1.0:
            px[:, :, 3] = np.clip(
                np.rint(px[:, :, 3].astype(np.float32) * self.opacity), 0, 255
            ).astype(np.uint8)
        return px

    def to_dict(self):
        return {"name": self.name, "opacity": self.opacity, **self.get_info()}
