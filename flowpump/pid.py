"""PID controller with a filtered derivative and output clamped to [0, 1]."""

from __future__ import annotations

import time
from collections.abc import Callable
from dataclasses import dataclass

from . import config


def _monotonic_ms() -> int:
    return int(time.monotonic() * 1000)


@dataclass(frozen=True)
class PIDResult:
    """Output of one PID iteration and its individual terms."""

    output: float
    p_term: float
    i_term: float
    d_term: float


class PIDController:
    """PID controller whose time step comes from a millisecond clock."""

    def __init__(self, clock: Callable[[], int] | None = None) -> None:
        self._clock = clock or _monotonic_ms
        self.kp = 0.0
        self.ki = 0.0
        self.kd = 0.0
        self.reset()

    def reset(self) -> None:
        """Clear integrator, derivative filter and timing."""
        self.deriv_alpha = config.PID_DERIV_FILTER_ALPHA
        self.d_error_filtered = 0.0
        self.integral_term = 0.0
        self.last_error = 0.0
        self.last_time_ms = self._clock()
        self.last_integral_increment = 0.0
        self.last_error_for_aw = 0.0

    def set_gains(self, p: float, i: float, d: float) -> None:
        self.kp, self.ki, self.kd = p, i, d

    def update(self, error: float) -> PIDResult:
        """Run one iteration on ``error``."""
        now = self._clock()
        dt = (now - self.last_time_ms) / 1000.0
        if dt <= 0.0:
            dt = 0.001
        self.last_time_ms = now

        p_out = self.kp * error

        increment = error * dt
        self.integral_term += increment
        i_out = self.ki * self.integral_term
        self.last_integral_increment = increment
        self.last_error_for_aw = error

        d_raw = (error - self.last_error) / dt
        self.d_error_filtered = (
            self.deriv_alpha * d_raw + (1.0 - self.deriv_alpha) * self.d_error_filtered
        )
        d_out = self.kd * self.d_error_filtered

        output = min(max(p_out + i_out + d_out, 0.0), 1.0)
        self.last_error = error
        return PIDResult(output, p_out, i_out, d_out)