"""
Loopwright — Composition Pipeline

Lifecycle of one effect:

    EffectInstance(descriptor, config, settings)
        -> precompute(config, settings) builds immutable data once
        -> invoke(frame, frame_index, total_frames, pool) per frame

invoke() normalizes the input raster to RGBA uint8, resizes it when the
instance was given explicit dimensions, runs the effect and always returns a
fresh (H, W, 4) uint8 array. The input array is never modified.
"""

import logging
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field

import numpy as np

from core.codec import decode, encode, resize
from core.phase import FrameContext
from core.pool import BufferPool
from core.safety import validate_chain_depth, validate_frame, validate_total_frames

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EffectSettings:
    """Static per-instance settings. Missing dimensions mean 'use the raster size'."""
    width: int | None = None
    height: int | None = None


@dataclass(frozen=True)
class EffectDescriptor:
    """Immutable registry entry for one effect.

    precompute(config, settings) -> data
    invoke(data, rgba, ctx, pool) -> (H, W, 4) uint8
    """
    name: str
    config_cls: type
    precompute: object
    invoke: object
    category: str = "final"
    display_name: str = ""
    description: str = ""
    tags: tuple = field(default_factory=tuple)
    version: str = "1.0.0"

    def to_dict(self):
        return {
            "name": self.name,
            "display_name": self.display_name or self.name,
            "category": self.category,
            "description": self.description,
            "tags": list(self.tags),
            "version": self.version,
            "params": self.config_cls().to_dict(),
        }


def to_rgba(frame: np.ndarray) -> np.ndarray:
    """(H, W, 3|4) uint8 -> (H, W, 4) uint8. 3-channel input gets opaque alpha."""
    if frame.shape[2] == 4:
        return frame
    alpha = np.full(frame.shape[:2] + (1,), 255, dtype=np.uint8)
    return np.concatenate([frame, alpha], axis=2)


class EffectInstance:
    """A configured effect ready to render frames."""

    def __init__(self, descriptor: EffectDescriptor, config=None, settings: EffectSettings | None = None):
        self.descriptor = descriptor
        if config is None:
            config = descriptor.config_cls()
        elif isinstance(config, dict):
            config = descriptor.config_cls.from_dict(config)
        self.config = config
        self.settings = settings or EffectSettings()
        self.state = "constructed"
        self.data = descriptor.precompute(self.config, self.settings)
        self.state = "invokable"

    @property
    def name(self):
        return self.descriptor.name

    def prepare(self, frame: np.ndarray) -> np.ndarray:
        validate_frame(frame)
        rgba = to_rgba(frame)
        w, h = self.settings.width, self.settings.height
        if w is not None or h is not None:
            w = w or rgba.shape[1]
            h = h or rgba.shape[0]
            if (w, h) != (rgba.shape[1], rgba.shape[0]):
                logger.debug("%s: resizing %dx%d raster to %dx%d",
                             self.name, rgba.shape[1], rgba.shape[0], w, h)
                rgba = resize(rgba, w, h)
        return rgba

    def invoke(self, frame: np.ndarray, frame_index: int, total_frames: int,
               pool: BufferPool | None = None) -> np.ndarray:
        """Render one frame. Returns a fresh (H, W, 4) uint8 array."""
        ctx = FrameContext(frame_index, total_frames)
        rgba = self.prepare(frame)
        pool = pool if pool is not None else BufferPool()

        start = time.perf_counter()
        out = self.descriptor.invoke(self.data, rgba, ctx, pool)
        if out is frame or out is rgba or np.may_share_memory(out, frame):
            out = out.copy()
        logger.debug("%s frame %d/%d in %.1fms", self.name, ctx.frame_index,
                     ctx.total_frames, (time.perf_counter() - start) * 1000)
        return out

    def layer_size(self, layer, fallback):
        """(width, height) from settings, else the layer's reported size, else ``fallback``."""
        info = layer.get_info() or {}
        w = self.settings.width or info.get("width") or fallback[0]
        h = self.settings.height or info.get("height") or fallback[1]
        return int(w), int(h)

    def apply_to_layer(self, layer, frame_index: int, total_frames: int,
                       pool: BufferPool | None = None):
        """Decode the layer, render one frame, write it back, adjust opacity.

        Dimensions missing from the instance settings come from the layer's
        get_info(). Codec errors propagate before the layer is touched.
        """
        pixels, pw, ph = decode(layer.to_buffer())
        w, h = self.layer_size(layer, (pw, ph))
        if (w, h) != (pw, ph):
            logger.debug("%s: resizing %dx%d layer contents to %dx%d",
                         self.name, pw, ph, w, h)
            pixels = resize(pixels, w, h)
        out = self.invoke(pixels, frame_index, total_frames, pool)
        h, w = out.shape[:2]
        data = encode(out, w, h, 4)
        layer.from_buffer(data)
        layer.adjust_layer_opacity(getattr(self.config, "layer_opacity", 1.0))
        return layer

    def __repr__(self):
        return f"EffectInstance({self.name!r}, state={self.state!r})"


class EffectChain:
    """Ordered effect instances applied in sequence with one shared pool."""

    def __init__(self, instances=None):
        self.instances = list(instances or [])
        validate_chain_depth(self.instances)

    def append(self, instance: EffectInstance):
        self.instances.append(instance)
        validate_chain_depth(self.instances)
        return self

    def invoke(self, frame: np.ndarray, frame_index: int, total_frames: int,
               pool: BufferPool | None = None) -> np.ndarray:
        pool = pool if pool is not None else BufferPool()
        out = frame
        for inst in self.instances:
            out = inst.invoke(out, frame_index, total_frames, pool)
        return out

    def __len__(self):
        return len(self.instances)


def render_sequence(effect, frame: np.ndarray, total_frames: int, pool: BufferPool | None = None):
    """Yield (frame_index, raster) for every frame of the loop.

    ``effect`` is anything with invoke(frame, frame_index, total_frames, pool):
    an EffectInstance or an EffectChain.
    """
    total = validate_total_frames(total_frames)
    pool = pool if pool is not None else BufferPool()
    for i in range(total):
        yield i, effect.invoke(frame, i, total, pool)


def render_frames_parallel(effect, frame: np.ndarray, total_frames: int,
                           max_workers: int = 4) -> list:
    """Render every frame of the loop on a thread pool.

    Each worker thread gets its own BufferPool. Results are ordered by frame
    index regardless of completion order.
    """
    total = validate_total_frames(total_frames)
    local = threading.local()

    def _render(i):
        pool = getattr(local, "pool", None)
        if pool is None:
            pool = local.pool = BufferPool()
        return effect.invoke(frame, i, total, pool)

    with ThreadPoolExecutor(max_workers=max(1, int(max_workers))) as ex:
        return list(ex.map(_render, range(total)))
