"""One-shot open-loop calibration pass that stores fitted parameters."""

from __future__ import annotations

import logging
import struct
import time
from collections.abc import Callable

from . import config
from .calibrator import CalibrationError, run_calibration
from .egc_types import CalConfig, EgcParams, FlowSensor, PumpDriver
from .system_state import Eeprom, StateStore

log = logging.getLogger(__name__)

CAL_MAGIC = 0xC0DEC0DE
CAL_ADDR = 0
_MAGIC = struct.Struct("<I")


def _monotonic_ms() -> int:
    return int(time.monotonic() * 1000)


class OpenLoopCalibrator:
    """Runs the pump at full speed once, fits the gain curve and saves it."""

    def __init__(
        self,
        store: StateStore,
        sensor: FlowSensor,
        pump: PumpDriver,
        eeprom: Eeprom,
        clock: Callable[[], int] | None = None,
        sleep: Callable[[float], None] | None = None,
    ) -> None:
        self.store = store
        self.sensor = sensor
        self.pump = pump
        self.eeprom = eeprom
        self._clock = clock or _monotonic_ms
        self._sleep = sleep
        self.done = False
        self.calib_running = False
        self.calib_start = 0

    def setup(self) -> None:
        """Arm the one-shot run and hold the pump at zero speed."""
        self.done = False
        self.pump.set_target_sps(0)

    def run(self) -> EgcParams | None:
        """Run the calibration once; return the stored parameters or None."""
        if self.done:
            return None

        self.calib_running = True
        self.calib_start = self._clock()
        self.store.state.calibrating = True

        cfg = CalConfig(
            f_nom_ul_min=self.store.state.setpoint,
            sps_max=2000.0,
            settle_ms=config.CAL_SETTLE_MS,
            window_ms=config.CAL_WINDOW_MS,
            sample_ms=100,
            ki_min=0.0,
            ki_max=0.40,
            alpha_static=0.20,
            knee_frac=0.50,
            stab_pct=2.0,
        )
        try:
            params = run_calibration(cfg, self.sensor, self.pump, self._clock, self._sleep)
        except CalibrationError as exc:
            log.warning("calibration failed: %s", exc)
            params = None
        else:
            self.eeprom.write(CAL_ADDR, _MAGIC.pack(CAL_MAGIC) + params.to_bytes())
        finally:
            self.done = True
            self.calib_running = False
            self.store.state.calibrating = False
        return params