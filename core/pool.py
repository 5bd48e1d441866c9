"""
Loopwright — Buffer Pool
Reusable pixel buffers keyed by (width, height, channels, dtype).

A pool is an explicit object owned by the caller and threaded through the
pipeline. Buffers handed out by acquire() are loans: the borrower is the only
writer until it calls release() exactly once. Buffers are NOT cleared on
acquire; callers that accumulate must zero them with fill(0).
"""

import threading
from collections import OrderedDict
from contextlib import contextmanager

import numpy as np

from core.safety import MAX_POOL_BUFFERS_PER_KEY, MAX_POOL_KEYS


class BufferPoolError(RuntimeError):
    """Raised on pool misuse (double release, foreign buffer, wrong key)."""
    pass


class BufferPool:
    """Arena of reusable numpy buffers.

    Growth is capped two ways: at most ``max_per_key`` idle buffers are kept
    per shape, and at most ``max_keys`` shapes are kept (least recently used
    shape is evicted first). Loaned buffers are never evicted.

    acquire/release run under a lock, so one pool can be shared between
    threads; giving each worker its own pool avoids the contention.
    """

    def __init__(self, max_per_key: int = MAX_POOL_BUFFERS_PER_KEY,
                 max_keys: int = MAX_POOL_KEYS):
        self.max_per_key = max(1, int(max_per_key))
        self.max_keys = max(1, int(max_keys))
        self._idle = OrderedDict()   # key -> list[np.ndarray], LRU order
        self._loaned = {}            # id(buffer) -> (key, buffer)
        self._lock = threading.Lock()
        self.allocations = 0

    @staticmethod
    def _key(width, height, channels, dtype):
        return (int(width), int(height), int(channels), np.dtype(dtype).str)

    def acquire(self, width: int, height: int, channels: int = 4,
                dtype=np.uint8) -> np.ndarray:
        """Borrow a (height, width, channels) buffer.

        Returns a previously released buffer of the same key when one is idle,
        otherwise allocates a new one. Contents are undefined.
        """
        key = self._key(width, height, channels, dtype)
        with self._lock:
            idle = self._idle.get(key)
            if idle:
                buf = idle.pop()
                self._idle.move_to_end(key)
            else:
                buf = np.empty((key[1], key[0], key[2]), dtype=np.dtype(dtype))
                self.allocations += 1
            self._loaned[id(buf)] = (key, buf)
        return buf

    def release(self, buffer: np.ndarray, width: int, height: int,
                channels: int = 4) -> None:
        """Return a loaned buffer. The caller must not touch it afterwards.

        Raises:
            BufferPoolError: If the buffer is not on loan from this pool or the
                declared size does not match the loan.
        """
        with self._lock:
            entry = self._loaned.get(id(buffer))
            if entry is None or entry[1] is not buffer:
                raise BufferPoolError("Buffer is not on loan from this pool (double release?)")
            key = entry[0]
            if key[:3] != (int(width), int(height), int(channels)):
                raise BufferPoolError(
                    f"Released as {width}x{height}x{channels} but loaned as "
                    f"{key[0]}x{key[1]}x{key[2]}"
                )
            del self._loaned[id(buffer)]

            idle = self._idle.setdefault(key, [])
            self._idle.move_to_end(key)
            if len(idle) < self.max_per_key:
                idle.append(buffer)

            while len(self._idle) > self.max_keys:
                self._idle.popitem(last=False)

    @contextmanager
    def loan(self, width: int, height: int, channels: int = 4, dtype=np.uint8):
        """Context manager form of acquire/release; releases on every exit path."""
        buf = self.acquire(width, height, channels, dtype)
        try:
            yield buf
        finally:
            self.release(buf, width, height, channels)

    def stats(self) -> dict:
        """Idle/loaned counts for diagnostics and tests."""
        with self._lock:
            return {
                "keys": len(self._idle),
                "idle": sum(len(v) for v in self._idle.values()),
                "loaned": len(self._loaned),
                "allocations": self.allocations,
            }

    def clear(self) -> None:
        """Drop all idle buffers. Outstanding loans are unaffected."""
        with self._lock:
            self._idle.clear()

    def __len__(self):
        with self._lock:
            return sum(len(v) for v in self._idle.values())
