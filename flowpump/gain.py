"""Reciprocal-exponential gain scheduling for PID gains."""

from __future__ import annotations

import math

from . import config

_EPS = 1e-9


def exponential_reciprocal(t: float, a: float, k: float, b: float, c: float) -> float:
    """Evaluate ``a + (k - a) * exp(-1 / (b * (t - c)))``.

    Returns ``a`` when ``b`` or the denominator is too close to zero.
    """
    if abs(b) < _EPS:
        return a
    denominator = b * (t - c)
    if abs(denominator) < _EPS:
        return a
    try:
        growth = math.exp(-1.0 / denominator)
    except OverflowError:
        growth = math.inf
    return a + (k - a) * growth


def get_exp_kp(t: float) -> float:
    return exponential_reciprocal(t, config.EXP_KP_A, config.EXP_KP_K, config.EXP_KP_B, config.EXP_KP_C)


def get_exp_ki(t: float) -> float:
    return exponential_reciprocal(t, config.EXP_KI_A, config.EXP_KI_K, config.EXP_KI_B, config.EXP_KI_C)


def get_exp_kd(t: float) -> float:
    return exponential_reciprocal(t, config.EXP_KD_A, config.EXP_KD_K, config.EXP_KD_B, config.EXP_KD_C)