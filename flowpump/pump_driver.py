"""DRV8825 stepper pump driver: speed- and period-driven step generation."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Callable

from .egc_types import PumpDriver

MICROSTEP_DIV = 32
MAX_FULL_SPS = 1200
MAX_SPS = MAX_FULL_SPS * MICROSTEP_DIV
MIN_SPS = 20
ACCEL_SPS_PER_CYCLE = 0  # 0 = no ramp

PULSES_PER_REV = 200.0 * MICROSTEP_DIV
MAX_TOP = 0xFFFF


class PumpBackend(ABC):
    """Hardware side of the driver: enable line and STEP pulse generation."""

    @abstractmethod
    def set_enabled(self, enabled: bool) -> None:
        """Drive EN (active low) and SLEEP (active high) for ``enabled``."""

    @abstractmethod
    def set_top(self, top: int) -> None:
        """Set the timer wrap value; 0 stops the pulses."""

    @abstractmethod
    def set_frequency(self, sps: int) -> None:
        """Set the step rate in steps per second; 0 stops the pulses."""


class BitBangStepBackend(PumpBackend):
    """Software step generator toggling the STEP line from :meth:`tick`."""

    def __init__(self, write_step: Callable[[bool], None]) -> None:
        self._write_step = write_step
        self.enabled = False
        self.half_period_us = 0
        self.step_level = False
        self.last_toggle_us = 0

    def set_enabled(self, enabled: bool) -> None:
        self.enabled = enabled

    def set_top(self, top: int) -> None:
        self.half_period_us = (top + 1) // 2 if top else 0

    def set_frequency(self, sps: int) -> None:
        self.half_period_us = 500_000 // sps if sps else 0

    def tick(self, now_us: int) -> None:
        """Toggle STEP when a half period has passed since the last toggle."""
        if not self.half_period_us:
            return
        if now_us - self.last_toggle_us >= self.half_period_us:
            self.last_toggle_us = now_us
            self.step_level = not self.step_level
            self._write_step(self.step_level)


class Drv8825Pump(PumpDriver):
    """1/32-microstep pump with a target speed and a direct period interface."""

    def __init__(self, backend: PumpBackend) -> None:
        self.backend = backend
        self._target_sps = 0.0
        self._current_sps = 0.0
        self.backend.set_enabled(False)

    def set_target_sps(self, sps: float) -> None:
        """Set the target speed, clamped to ``[0, MAX_SPS]``."""
        self._target_sps = min(max(sps, 0.0), float(MAX_SPS))

    def set_target_rpm(self, rpm: float) -> None:
        self.set_target_sps((rpm / 60.0) * PULSES_PER_REV)

    def current_sps(self) -> float:
        return self._current_sps

    def service(self) -> None:
        """Move the current speed towards the target and apply it."""
        if ACCEL_SPS_PER_CYCLE:
            if self._current_sps < self._target_sps:
                self._current_sps = min(self._current_sps + ACCEL_SPS_PER_CYCLE, self._target_sps)
            elif self._current_sps > self._target_sps:
                self._current_sps = max(self._current_sps - ACCEL_SPS_PER_CYCLE, self._target_sps)
        else:
            self._current_sps = self._target_sps

        if self._current_sps < MIN_SPS:
            self.backend.set_enabled(False)
            self.backend.set_frequency(0)
            return
        self.backend.set_enabled(True)
        self.backend.set_frequency(int(self._current_sps))

    def set_top(self, top: int) -> None:
        """Apply a timer wrap value directly; 0 stops and disables the driver."""
        if not 0 <= top <= MAX_TOP:
            raise ValueError(f"top must be in 0..{MAX_TOP}, got {top}")
        self.backend.set_enabled(top != 0)
        self.backend.set_top(top)