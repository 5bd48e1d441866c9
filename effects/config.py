"""
Loopwright — Effect Configuration Base

Each effect declares a frozen dataclass subclassing EffectConfig plus a
PARAM_RANGES table:

    PARAM_RANGES = {
        "intensity": (0.0, 1.0),                    # numeric range, clamped
        "mode": ("rotate", "tilt", "static"),       # enum, first entry is default
    }

Construction never fails on bad values: numbers are clamped into range,
non-finite numbers fall back to the field default, unknown enum strings fall
back to the field default. Boolean fields accept flag strings ("true", "0",
"no", ...) from string-valued mappings. Tuple fields hold integers, each
clamped into the declared range.
"""

import dataclasses
import logging
import math

logger = logging.getLogger(__name__)


def clamp(value, lo, hi):
    return max(lo, min(hi, value))


def _is_enum(bounds) -> bool:
    return isinstance(bounds, tuple) and bool(bounds) and isinstance(bounds[0], str)


_TRUE_STRINGS = ("true", "1", "yes", "on")
_FALSE_STRINGS = ("false", "0", "no", "off", "")


class EffectConfig:
    """Mixin for frozen effect config dataclasses."""

    PARAM_RANGES = {}
    WRAPPED = {}   # field -> period, e.g. {"hue": 360.0}

    def __post_init__(self):
        for f in dataclasses.fields(self):
            value = getattr(self, f.name)
            fixed = self._normalize(f, value)
            if fixed is not value:
                object.__setattr__(self, f.name, fixed)

    def _normalize(self, f, value):
        default = f.default
        bounds = self.PARAM_RANGES.get(f.name)

        if isinstance(default, bool):
            return self._to_bool(f, value)

        if isinstance(default, tuple):
            return self._to_int_tuple(f, value, bounds)

        if _is_enum(bounds):
            if value in bounds:
                return value
            fallback = default if default in bounds else bounds[0]
            logger.warning("%s.%s: unsupported value %r, using %r",
                           type(self).__name__, f.name, value, fallback)
            return fallback

        if isinstance(default, (int, float)):
            try:
                num = float(value)
            except (TypeError, ValueError):
                logger.debug("%s.%s: non-numeric %r, using default",
                             type(self).__name__, f.name, value)
                return default
            if not math.isfinite(num):
                logger.debug("%s.%s: non-finite %r, using default",
                             type(self).__name__, f.name, value)
                return default
            if f.name in self.WRAPPED:
                num = num % self.WRAPPED[f.name]
            elif bounds is not None:
                lo, hi = bounds
                clamped = clamp(num, lo, hi)
                if clamped != num:
                    logger.debug("%s.%s: %r clamped to [%s, %s]",
                                 type(self).__name__, f.name, value, lo, hi)
                num = clamped
            if isinstance(default, int):
                return int(round(num))
            return num

        if isinstance(default, str) and not isinstance(value, str):
            return default
        return value

    @classmethod
    def _to_bool(cls, f, value):
        if isinstance(value, str):
            text = value.strip().lower()
            if text in _TRUE_STRINGS:
                return True
            if text in _FALSE_STRINGS:
                return False
            logger.debug("%s.%s: unrecognized flag %r, using default",
                         cls.__name__, f.name, value)
            return f.default
        return bool(value)

    @classmethod
    def _to_int_tuple(cls, f, value, bounds):
        if isinstance(value, (str, bytes)):
            items = None
        else:
            try:
                items = [int(v) for v in value]
            except (TypeError, ValueError, OverflowError):
                items = None
        if items is None:
            logger.debug("%s.%s: expected a sequence of integers, got %r, using default",
                         cls.__name__, f.name, value)
            return f.default
        if bounds is not None:
            items = [int(clamp(v, *bounds)) for v in items]
        return tuple(items)

    def to_dict(self) -> dict:
        return {f.name: getattr(self, f.name) for f in dataclasses.fields(self)}

    @classmethod
    def from_dict(cls, d: dict | None):
        """Build a config from a flat dict. Unknown keys are ignored."""
        d = d or {}
        names = {f.name for f in dataclasses.fields(cls)}
        unknown = set(d) - names
        if unknown:
            logger.debug("%s: ignoring unknown keys %s", cls.__name__, sorted(unknown))
        return cls(**{k: v for k, v in d.items() if k in names})

    def replace(self, **changes):
        return dataclasses.replace(self, **changes)


def frozen_array(arr):
    """Mark a numpy array read-only and return it."""
    arr.setflags(write=False)
    return arr
