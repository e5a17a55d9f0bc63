"""Closed-loop exponential-gain flow controller: LPF, gain scheduler, PID."""

from __future__ import annotations

import math
import time
from collections.abc import Callable
from dataclasses import dataclass

from .egc_types import EgcParams, ExpParams, FlowSensor, PumpDriver


def _monotonic_ms() -> int:
    return int(time.monotonic() * 1000)


def _constrain(x: float, lo: float, hi: float) -> float:
    return lo if x < lo else (hi if x > hi else x)


def _exp_func(t: float, a: float, b: float, k: float, c: float) -> float:
    denom = b * (t - c)
    if abs(denom) < 1e-6:
        denom = 1e-6 if denom >= 0 else -1e-6
    try:
        growth = math.exp(-1.0 / denom)
    except OverflowError:
        growth = math.inf
    return a + (k - a) * growth


class LPF:
    """First-order low-pass filter with a settable alpha."""

    def __init__(self, alpha: float = 0.1) -> None:
        self.alpha = alpha
        self.state = 0.0

    def update(self, x: float) -> float:
        self.state = self.alpha * x + (1.0 - self.alpha) * self.state
        return self.state

    def reset(self, x: float = 0.0) -> None:
        self.state = x


@dataclass(frozen=True)
class GainOutput:
    """Scheduled values for one controller step."""

    e_dyn: float
    ki: float
    alpha_dyn: float


class GainScheduler:
    """Schedules Ki and the dynamic error-filter alpha from the error."""

    def __init__(self, params: ExpParams) -> None:
        self.params = params
        self.lpf_static = LPF(params.alpha_static)
        self.lpf_dyn = LPF(0.5)
        self.alpha_dyn = 0.5

    def update(self, err_raw: float) -> GainOutput:
        p = self.params
        e_static = self.lpf_static.update(err_raw)
        alpha = _exp_func(e_static, p.a2, p.b2, p.k2, p.c2)
        self.alpha_dyn = _constrain(alpha, 0.05, 0.95)
        self.lpf_dyn.alpha = self.alpha_dyn
        e_dyn = self.lpf_dyn.update(err_raw)
        ki = _exp_func(e_dyn, p.a, p.b, p.k, p.c)
        return GainOutput(e_dyn=e_dyn, ki=ki, alpha_dyn=self.alpha_dyn)

    def reset(self) -> None:
        self.lpf_static.reset()
        self.lpf_dyn.reset()


class EgcPID:
    """PID with a runtime Ki and an integrator clamped to ±1."""

    IMAX = 1.0

    def __init__(self, kp: float = 0.0, kd: float = 0.0) -> None:
        self.kp = kp
        self.kd = kd
        self.integ = 0.0
        self.last_err = 0.0

    def update(self, err_raw: float, err_filtered: float, ki: float, dt_s: float) -> float:
        """Return the control fraction in [0, 1]; no derivative when ``dt_s`` is not positive."""
        self.integ = _constrain(self.integ + ki * err_filtered * dt_s, -self.IMAX, self.IMAX)
        deriv = (err_raw - self.last_err) / dt_s if dt_s > 0 else 0.0
        self.last_err = err_raw
        u = self.kp * err_raw + self.integ + self.kd * deriv
        return _constrain(u, 0.0, 1.0)

    def reset(self) -> None:
        self.integ = 0.0
        self.last_err = 0.0


class Controller:
    """Reads the sensor, schedules gains, runs the PID and drives the pump in SPS."""

    def __init__(
        self,
        params: EgcParams,
        sensor: FlowSensor,
        driver: PumpDriver,
        clock: Callable[[], int] | None = None,
    ) -> None:
        self.params = params
        self.sensor = sensor
        self.driver = driver
        self._clock = clock or _monotonic_ms
        self.sched = GainScheduler(params.gain)
        self.pid = EgcPID(params.kp, params.kd)
        self.last_ms = self._clock()

    def update(self, setpoint_ul_per_min: float) -> float:
        """Run one step and return the SPS command sent to the pump."""
        raw = self.sensor.read_ul_per_min()
        flow = self.params.scale.a * raw + self.params.scale.b
        err = setpoint_ul_per_min - flow

        sched = self.sched.update(err)

        now = self._clock()
        dt = (now - self.last_ms) * 1e-3
        self.last_ms = now

        u_frac = _constrain(self.pid.update(err, sched.e_dyn, sched.ki, dt), 0.0, 1.0)
        sps = u_frac * self.params.sps_max
        self.driver.set_target_sps(sps)
        return sps

    def reset(self) -> None:
        self.sched.reset()
        self.pid.reset()
        self.last_ms = self._clock()