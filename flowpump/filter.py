"""Adaptive first-order low-pass filter, fixed-alpha EMA and their cascade."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass

from . import config

log = logging.getLogger(__name__)

_TINY = 1e-9


def _safe_exp(x: float) -> float:
    try:
        return math.exp(x)
    except OverflowError:
        return math.inf


def _exp_derivative(t: float, a: float, k: float, b: float) -> float:
    """Slope of ``a + (k - a) * exp(-1 / (b * t))`` with respect to ``t``."""
    if t <= _TINY:
        return 0.0
    factor = (k - a) * _safe_exp(-1.0 / (b * t))
    return factor / (b * t * t)


def slope_matched_b2(a1: float, k1: float, b1: float, a2: float, k2: float, t_ref: float) -> float:
    """Find the secondary ``B`` whose curve slope at ``t_ref`` matches the primary one.

    Bisects ``B`` over ``[1e-3, 100]``.
    """
    target = _exp_derivative(t_ref, a1, k1, b1)
    lo, hi, eps = 1e-3, 100.0, 1e-6
    mid = config.FILTER_B2_GUESS
    for _ in range(60):
        mid = 0.5 * (lo + hi)
        if _exp_derivative(t_ref, a2, k2, mid) > target:
            lo = mid
        else:
            hi = mid
        if hi - lo < eps:
            break
    return mid


class DynamicLPFilter:
    """First-order LPF whose alpha depends on the input magnitude."""

    def __init__(self) -> None:
        self.b2 = slope_matched_b2(
            config.EXP_KI_A,
            config.EXP_KI_K,
            config.EXP_KI_B,
            config.FILTER_SECONDARY_A2,
            config.FILTER_SECONDARY_K2,
            config.FILTER_T_REF,
        )
        log.debug("slope-matched B2 = %.6f", self.b2)
        self.state = 0.0
        self.current_alpha = 0.0

    def _alpha(self, magnitude: float) -> float:
        if magnitude < _TINY:
            return 1.0
        a2, k2 = config.FILTER_SECONDARY_A2, config.FILTER_SECONDARY_K2
        value = a2 + (k2 - a2) * _safe_exp(-1.0 / (self.b2 * magnitude))
        return min(max(value, 0.0), 1.0)

    def update(self, value: float) -> float:
        """Filter one sample and return the output."""
        alpha = self._alpha(abs(value))
        out = alpha * value + (1.0 - alpha) * self.state
        self.state = out
        self.current_alpha = alpha
        return out


@dataclass
class SimpleEMA:
    """Fixed-alpha exponential moving average, primed by its first sample."""

    state: float = 0.0
    primed: bool = False

    def reset(self) -> None:
        self.state = 0.0
        self.primed = False

    def update(self, value: float) -> float:
        if not self.primed:
            self.state = value
            self.primed = True
            return value
        self.state = config.EMA_ALPHA * value + (1.0 - config.EMA_ALPHA) * self.state
        return self.state


class TwoPoleFilter:
    """Adaptive pole followed by a fixed EMA pole."""

    def __init__(self) -> None:
        self.dyn = DynamicLPFilter()
        self.ema = SimpleEMA()

    def reset(self) -> None:
        self.dyn = DynamicLPFilter()
        self.ema.reset()

    def update(self, value: float) -> float:
        return self.ema.update(self.dyn.update(value))