"""
Loopwright — Loop Phase Resolver

Every periodic term in an effect completes an INTEGER number of cycles over
the loop, so frame 0 and frame total_frames are the same phase.

Phases use total_frames (not total_frames - 1) as the denominator: with 50
frames and 1 cycle, frame 49 sits at 6.158 rad and the 49 -> 0 transition is
0.126 rad, the same step as every other transition. No duplicate frame at the
loop point.
"""

import math
from dataclasses import dataclass, field
from types import MappingProxyType

from core.safety import validate_total_frames

TWO_PI = 2.0 * math.pi


def resolve_cycles(nominal: float) -> int:
    """Snap a nominal cycles-per-loop value to a nearby integer.

    Candidates are n in [max(0, floor(nominal) - 1), floor(nominal) + 2];
    zero is excluded when nominal is positive. The closest candidate wins and
    ties go to the smaller n. Negative rates resolve symmetrically so a
    non-zero rate never collapses to a frozen phase.

    >>> resolve_cycles(2.3)
    2
    >>> resolve_cycles(0.25)
    1
    """
    try:
        nominal = float(nominal)
    except (TypeError, ValueError):
        return 0
    if not math.isfinite(nominal):
        return 0
    if nominal < 0:
        return -resolve_cycles(-nominal)

    base = math.floor(nominal)
    best = None
    best_diff = None
    for n in range(max(0, base - 1), base + 3):
        if n == 0 and nominal > 0:
            continue
        diff = abs(n - nominal)
        if best is None or diff < best_diff:
            best, best_diff = n, diff
    return best


def phase_at(cycles: int, frame_index: int, total_frames: int) -> float:
    """(2*pi * cycles * frame / total) mod 2*pi, always in [0, 2*pi)."""
    phase = (TWO_PI * cycles * frame_index / total_frames) % TWO_PI
    # float modulo can land exactly on 2*pi for tiny negative inputs
    return 0.0 if phase >= TWO_PI else phase


@dataclass(frozen=True)
class FrameContext:
    """Position of one frame inside the loop.

    frame_index is reduced modulo total_frames, so frame total_frames is
    frame 0 of the next loop.
    """
    frame_index: int
    total_frames: int

    def __post_init__(self):
        total = validate_total_frames(self.total_frames)
        object.__setattr__(self, "total_frames", total)
        object.__setattr__(self, "frame_index", int(self.frame_index) % total)

    @property
    def t(self) -> float:
        """Normalized loop time in [0, 1)."""
        return self.frame_index / self.total_frames

    def phase(self, cycles: int) -> float:
        return phase_at(cycles, self.frame_index, self.total_frames)


@dataclass(frozen=True)
class PhaseSet:
    """Named phases for one frame, each resolved to its own integer cycles."""
    phases: MappingProxyType = field(default_factory=lambda: MappingProxyType({}))
    cycles: MappingProxyType = field(default_factory=lambda: MappingProxyType({}))

    def __getitem__(self, name):
        return self.phases[name]

    def __contains__(self, name):
        return name in self.phases

    def get(self, name, default=0.0):
        return self.phases.get(name, default)


def resolve_phases(ctx: FrameContext, **nominal_cycles) -> PhaseSet:
    """Resolve several independent phases for one frame.

    Example:
        resolve_phases(ctx, rotation=0.5, shimmer=1.0)
        -> PhaseSet(phases={"rotation": ..., "shimmer": ...},
                    cycles={"rotation": 1, "shimmer": 1})
    """
    cycles = {name: resolve_cycles(value) for name, value in nominal_cycles.items()}
    phases = {name: ctx.phase(n) for name, n in cycles.items()}
    return PhaseSet(MappingProxyType(phases), MappingProxyType(cycles))
