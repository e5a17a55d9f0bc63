"""Non-blocking stepper motor controller with speed ramp and soft reverse."""

from __future__ import annotations

import math
import struct
import time
from abc import ABC, abstractmethod
from collections.abc import Callable

from .system_state import Eeprom

STEPS_PER_REV = 200
MICROSTEP = 32

EEPROM_ADDR_RPM = 0
RPM_MIN = 1.0
RPM_MAX = 1200.0
RPM_DEFAULT = 60.0
ACCEL_RPM_PER_SEC = 300.0
DIR_PAUSE_MS = 5
_MAX_INTERVAL_US = 0xFFFFFFFF

_F32 = struct.Struct("<f")


class StepDriver(ABC):
    """STEP/DIR/EN stepper driver."""

    @abstractmethod
    def enable(self) -> None: ...

    @abstractmethod
    def disable(self) -> None: ...

    @abstractmethod
    def set_direction(self, cw: bool) -> None: ...

    @abstractmethod
    def step(self) -> None: ...


def _monotonic_us() -> int:
    return int(time.monotonic() * 1_000_000)


def _sleep_ms(ms: float) -> None:
    time.sleep(ms / 1000.0)


def _interval_us(rpm: float, steps_per_rev: int, microstep: int) -> int:
    if rpm <= 0.0:
        return _MAX_INTERVAL_US
    us = 60.0 * 1e6 / (rpm * steps_per_rev * microstep)
    return max(1, min(int(us), _MAX_INTERVAL_US))


class StepperController:
    """Queued relative moves or free running, stepped from :meth:`service`.

    The RPM set-point is kept in the EEPROM and restored by :meth:`begin`.
    """

    def __init__(
        self,
        driver: StepDriver,
        eeprom: Eeprom | None = None,
        clock_us: Callable[[], int] | None = None,
        sleep_ms: Callable[[float], None] | None = None,
    ) -> None:
        self.driver = driver
        self.eeprom = eeprom if eeprom is not None else Eeprom(_F32.size)
        self._clock_us = clock_us or _monotonic_us
        self._sleep_ms = sleep_ms or _sleep_ms

        self.steps_per_rev = 200
        self.microstep = 1
        self._target = 0
        self._pos = 0
        self._run_forever = False
        self._dir_cont = True
        self._prev_dir = True
        self._rpm_target = RPM_DEFAULT
        self._rpm_actual = RPM_DEFAULT
        self.interval_target_us = 0
        self.interval_current_us = 0
        self._last_step_us = 0
        self._last_accel_us: int | None = None

    def begin(self, steps_per_rev: int, microstep: int) -> None:
        """Set the geometry, enable the driver and restore the saved RPM."""
        self.steps_per_rev = steps_per_rev
        self.microstep = microstep
        self.driver.enable()

        (rpm,) = _F32.unpack(self.eeprom.read(EEPROM_ADDR_RPM, _F32.size))
        if not math.isfinite(rpm) or rpm < RPM_MIN or rpm > RPM_MAX:
            rpm = RPM_DEFAULT
        self._rpm_target = self._rpm_actual = rpm
        self._recompute_intervals()

    def _recompute_intervals(self) -> None:
        self.interval_target_us = _interval_us(self._rpm_target, self.steps_per_rev, self.microstep)

    def enable(self) -> None:
        self.driver.enable()

    def disable(self) -> None:
        self.driver.disable()

    def set_rpm(self, rpm_target: float) -> None:
        """Set the speed set-point, clamped to 1..1200 RPM, and save it."""
        self._rpm_target = min(max(float(rpm_target), RPM_MIN), RPM_MAX)
        self._recompute_intervals()
        self.eeprom.write(EEPROM_ADDR_RPM, _F32.pack(self._rpm_target))

    def run_continuous(self, on: bool, cw: bool = True) -> None:
        self._run_forever = on
        self._dir_cont = cw

    def move_relative(self, steps: int) -> None:
        self._target += steps

    def service(self) -> None:
        """Ramp the speed and issue at most one step; call as often as possible."""
        now = self._clock_us()

        if self._last_accel_us is None:
            self._last_accel_us = now
        dt = (now - self._last_accel_us) / 1e6
        self._last_accel_us = now

        diff = self._rpm_target - self._rpm_actual
        ramp = ACCEL_RPM_PER_SEC * dt
        if abs(diff) < ramp:
            self._rpm_actual = self._rpm_target
        else:
            self._rpm_actual += ramp if diff > 0 else -ramp

        self.interval_current_us = _interval_us(self._rpm_actual, self.steps_per_rev, self.microstep)

        if not (self._run_forever or self._pos != self._target):
            return
        if now - self._last_step_us < self.interval_current_us:
            return

        direction = self._dir_cont if self._run_forever else self._target > self._pos

        if direction != self._prev_dir:
            self.driver.set_direction(direction)
            self._prev_dir = direction
            self._rpm_actual = 0.0
            self._sleep_ms(DIR_PAUSE_MS)
            self._last_step_us = self._clock_us()
            return

        self.driver.step()
        self._pos += 1 if direction else -1
        self._last_step_us = self._clock_us()

    def position(self) -> int:
        return self._pos

    def rpm_target(self) -> float:
        return self._rpm_target

    def rpm_actual(self) -> float:
        return self._rpm_actual

    def busy(self) -> bool:
        """True while a queued move is unfinished and not free running."""
        return not self._run_forever and self._pos != self._target