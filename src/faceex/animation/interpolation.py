"""Sampling of keyframe tracks between their keys."""

from __future__ import annotations

from typing import Callable

import numpy as np
from numpy.typing import NDArray

# Track interpolation modes
LINEAR = "linear"
SMOOTH = "smooth"
DISCRETE = "discrete"


# ── Easing functions ─────────────────────────────────────────────────

def ease_linear(t: float) -> float:
    return t


def ease_in_out(t: float) -> float:
    if t < 0.5:
        return 2.0 * t * t
    return -1.0 + (4.0 - 2.0 * t) * t


EASING_MAP: dict[str, Callable[[float], float]] = {
    LINEAR: ease_linear,
    SMOOTH: ease_in_out,
}


def find_segment(times: NDArray[np.float64], t: float) -> tuple[int, int]:
    """Indices of the keys surrounding ``t`` (equal when ``t`` is outside the track)."""
    if t <= times[0]:
        return 0, 0
    if t >= times[-1]:
        last = len(times) - 1
        return last, last
    hi = int(np.searchsorted(times, t, side="right"))
    return hi - 1, hi


def sample(times: NDArray[np.float64], values: NDArray, t: float, mode: str = LINEAR):
    """Value of a track at time ``t`` (seconds)."""
    lo, hi = find_segment(times, t)
    if lo == hi or mode == DISCRETE:
        return values[lo]

    span = times[hi] - times[lo]
    if span <= 0:
        return values[hi]
    u = EASING_MAP.get(mode, ease_linear)((t - times[lo]) / span)
    a = float(values[lo])
    b = float(values[hi])
    return a + (b - a) * u
