"""Closed-loop flow control driven by the pump's step period.

Each step filters the sensor, keeps the volume totals, sets the pump period,
reports telemetry and saves the persistent state.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from typing import Any, Protocol

from . import config
from .flow_sensor import SensorError
from .pump_driver import MICROSTEP_DIV
from .report import emit_json
from .system_state import StateStore
from .volume_tracker import VolumeTracker

log = logging.getLogger(__name__)

SYSCLK_HZ = 125_000_000.0
CLKDIV = 8.0
TEETH_PER_REV = 2
FULL_STEPS_PER_REV = 200
TICKS_PER_REV = FULL_STEPS_PER_REV * TEETH_PER_REV
MAX_TOP = 65535

STEPS_PER_REV = 200.0 * MICROSTEP_DIV
LOOP_DT_MS = 10
JSON_PERIOD_MS = 250
FLUSH_PERIOD_MS = 5000
DEFAULT_SETPOINT = 500.0
FLUID_DENSITY = 0.97  # g/mL

# Two cascaded sections, roughly a 0.5 Hz corner at 1 kHz.
G0 = 0.0000613151978015
G1 = 0.0000608014289594
SECTION0 = (1 * G0, 2 * G0, 1 * G0, -1.98780470979604, 0.98804997058725)
SECTION1 = (1 * G1, 2 * G1, 1 * G1, -1.97114860885104, 0.97139181456688)


class BiQuad:
    """Second-order IIR section in direct form II."""

    def __init__(self, b0: float, b1: float, b2: float, a1: float, a2: float) -> None:
        self.b0, self.b1, self.b2 = b0, b1, b2
        self.a1, self.a2 = a1, a2
        self.z1 = 0.0
        self.z2 = 0.0

    def __call__(self, x: float) -> float:
        v = x - self.a1 * self.z1 - self.a2 * self.z2
        y = self.b0 * v + self.b1 * self.z1 + self.b2 * self.z2
        self.z2 = self.z1
        self.z1 = v
        return y


def rate_to_top(ul_per_min: float) -> int:
    """Convert a flow in µL/min to the PWM wrap value, clamped to ``1..65535``."""
    rpm = ul_per_min / config.VPR
    freq = (rpm / 60.0) * TICKS_PER_REV
    if freq == 0:
        return MAX_TOP
    top = SYSCLK_HZ / (CLKDIV * 2.0 * freq) - 1.0
    return int(min(max(top, 1.0), float(MAX_TOP)))


def top_to_sps(top: int) -> float:
    """Return the step rate produced by the PWM wrap value ``top``."""
    return SYSCLK_HZ / (CLKDIV * 2.0 * (top + 1))


class _Buttons(Protocol):
    def begin(self) -> Any: ...

    def poll(self) -> None: ...

    def page_changed(self) -> bool: ...


class _Display(Protocol):
    def advance_page(self) -> None: ...

    def render(self, state: Any, calib_elapsed_ms: int) -> Any: ...


def _millis_clock() -> Callable[[], int]:
    start = time.monotonic()
    return lambda: int((time.monotonic() - start) * 1000)


class FlowLoop:
    """The flow control loop, run at 100 Hz by calling :meth:`step` often.

    ``regulator(measured, target)`` returns the commanded flow in µL/min.
    ``report`` receives each JSON telemetry line.
    """

    def __init__(
        self,
        store: StateStore,
        sensor: Any,
        pump: Any,
        regulator: Callable[[float, float], float],
        clock: Callable[[], int] | None = None,
        report: Callable[[str], None] | None = None,
        buttons: _Buttons | None = None,
        display: _Display | None = None,
    ) -> None:
        self.store = store
        self.sensor = sensor
        self.pump = pump
        self.regulator = regulator
        self._clock = clock or _millis_clock()
        self._report = report or print
        self.buttons = buttons
        self.display = display

        self.volume = VolumeTracker(FLUID_DENSITY)
        self.sections = (BiQuad(*SECTION0), BiQuad(*SECTION1))
        self.measured_rate = 0.0
        self.target_rate = 0.0
        self.pid_output = 0.0
        self.sensor_ok = False
        self.calib_start = 0
        self.last_frame: Any = None

        self.prev_vol_ms = 0
        self.last_json_ms = 0
        self.last_flush_ms = 0
        self.last_loop_ms = 0

    def setup(self) -> None:
        """Restore state, start the sensor, stop the pump and pick a set-point."""
        self.store.load_persistent()
        self.store.set_pump_enabled(False)

        if self.buttons is not None:
            self.buttons.begin()

        try:
            self.sensor.start()
        except SensorError as exc:
            log.error("flow sensor init failed: %s", exc)
            self.sensor_ok = False
        else:
            self.sensor_ok = True

        self.pump.set_top(0)

        if self.store.state.setpoint == 0:
            self.store.set_setpoint(DEFAULT_SETPOINT)
        self.target_rate = self.store.state.setpoint

        self.prev_vol_ms = self._clock()

    def _filter(self, value: float) -> float:
        for section in self.sections:
            value = section(value)
        return value

    def step(self) -> bool:
        """Run one scheduled pass; return False when it is not yet due."""
        state = self.store.state
        now = self._clock()
        state.current_time_ms = now
        if now - self.last_loop_ms < LOOP_DT_MS:
            return False
        self.last_loop_ms += LOOP_DT_MS

        if self.buttons is not None:
            self.buttons.poll()
            if self.buttons.page_changed() and self.display is not None:
                self.display.advance_page()

        raw = self.sensor.read_ul_per_min()
        state.r_flow = raw
        self.measured_rate = self._filter(raw)
        state.f_flow = self.measured_rate

        self.volume.update(self.measured_rate, now - self.prev_vol_ms)
        self.prev_vol_ms = now
        state.volume_ul = self.volume.volume_ul()
        state.mass_g = self.volume.mass_g()

        self.target_rate = state.setpoint
        if state.pump_enabled:
            self.pid_output = self.regulator(self.measured_rate, self.target_rate)
            top = rate_to_top(self.pid_output)
            self.pump.set_top(top)
            state.top_cmd = top
            sps = top_to_sps(top)
            state.sps_cmd = sps
            state.rpm_cmd = sps * 60.0 / STEPS_PER_REV
        else:
            self.pump.set_top(0)
            state.top_cmd = 0
            state.sps_cmd = 0.0
            state.rpm_cmd = 0.0

        if now - self.last_json_ms >= JSON_PERIOD_MS:
            self.last_json_ms = now
            self._report(emit_json(state, state.pump_enabled))

        if now - self.last_flush_ms >= FLUSH_PERIOD_MS:
            self.last_flush_ms = now
            self.store.commit_persistent()

        if self.display is not None:
            self.last_frame = self.display.render(state, now - self.calib_start)
        return True