"""Push-button front ends: a two-button pager/editor and a six-button panel."""

from __future__ import annotations

import logging
import math
import struct
import time
from collections.abc import Callable, Mapping
from enum import IntEnum

from . import config
from .system_state import Eeprom, LEDColour, StateStore

_log = logging.getLogger(__name__)


def _millis_clock() -> Callable[[], int]:
    start = time.monotonic()
    return lambda: int((time.monotonic() - start) * 1000)


class ButtonsTwo:
    """Two-button handler.

    Short UP/DN press: ±10 µL/min on the set-point page, ±1 % on the cal page.
    Both held 0.5–5 s and released: next page.
    Both held 5 s: pump toggle, or calibration on the calibration page.
    UP held 1 s: system on/off.

    ``read_buttons()`` returns ``(up_pressed, down_pressed)``.
    """

    class Mode(IntEnum):
        SETPOINT = 0
        MEASURE = 1
        CALSCALAR = 2
        CALIB = 3

    PAGE_HOLD_MS = 500
    PUMP_HOLD_MS = 5000
    DEBOUNCE_MS = 20
    SYSTEM_HOLD_MS = 1000
    SETPOINT_STEP = 10
    SETPOINT_MAX = 65000
    CAL_LIMIT = 50
    FLASH_MS = 150

    def __init__(
        self,
        read_buttons: Callable[[], tuple[bool, bool]],
        clock: Callable[[], int] | None = None,
        store: StateStore | None = None,
        set_led: Callable[[LEDColour], None] | None = None,
        calibrate: Callable[[], None] | None = None,
        log: Callable[[str], None] | None = None,
    ) -> None:
        self._read = read_buttons
        self._clock = clock or _millis_clock()
        self.store = store if store is not None else StateStore(Eeprom())
        self._set_led = set_led or (lambda colour: None)
        self._calibrate = calibrate or (lambda: None)
        self._log = log or _log.info
        self.flash_ms = self.FLASH_MS

        self.calib_running = False
        self.calib_start = 0

        self._dual_start = 0
        self._dual_active = False
        self._pump_latched = False

        self.mode = self.Mode.SETPOINT
        self.number_val = 0
        self.letter_idx = 0
        self._last_mask = 0
        self._page_edge = False
        self.pump_enabled = False

        self._last_debounce = 0
        self._up_hold: int | None = None

    def begin(self) -> None:
        """Take the editable values from the stored state and show the pump LED."""
        state = self.store.state
        self.number_val = int(state.setpoint)
        self.letter_idx = int(state.cal_scalar)
        self.pump_enabled = state.pump_enabled
        self._update_led()

    def page_changed(self) -> bool:
        return self._page_edge

    def _update_led(self) -> None:
        colour = LEDColour.GREEN if self.pump_enabled else LEDColour.RED
        self.store.state.led_colour = colour
        self._set_led(colour)

    def _pause(self) -> None:
        if self.flash_ms > 0:
            time.sleep(self.flash_ms / 1000.0)

    def _flash(self, first: LEDColour, second: LEDColour) -> None:
        self._set_led(first)
        self._pause()
        self._set_led(second)
        self._pause()
        self._set_led(LEDColour.GREEN if self.store.state.pump_enabled else LEDColour.RED)

    def _announce(self, tag: str, value: float) -> None:
        if tag.startswith("S"):
            self._log(f"[BTN] {tag}: {value / 1000.0:.2f}")
        else:
            self._log(f"[BTN] {tag}: {value:.0f}")

    def _run_calibration(self) -> None:
        self.calib_running = True
        self.calib_start = self._clock()
        self.store.state.calibrating = True
        try:
            self._calibrate()
        finally:
            self.calib_running = False
            self.store.state.calibrating = False

        self.mode = self.Mode.SETPOINT
        self._page_edge = True
        self._flash(LEDColour.BLUE, LEDColour.GREEN)

        self._dual_active = False
        self._pump_latched = False
        self._last_mask = 0

    def _handle_dual(self, mask: int, now: int) -> None:
        if mask == 3:
            if not self._dual_active:
                self._dual_active = True
                self._dual_start = now
                self._pump_latched = False
            if not self._pump_latched and now - self._dual_start >= self.PUMP_HOLD_MS:
                self._pump_latched = True
                if self.mode == self.Mode.CALIB and not self.calib_running:
                    self._run_calibration()
                else:
                    self.pump_enabled = not self.pump_enabled
                    self.store.set_pump_enabled(self.pump_enabled)
                    self._update_led()
                    self._log("[BTN] Pump " + ("ENABLED" if self.pump_enabled else "DISABLED"))
        elif self._dual_active:
            held = now - self._dual_start
            if not self._pump_latched and self.PAGE_HOLD_MS <= held < self.PUMP_HOLD_MS:
                self.mode = self.Mode((self.mode + 1) % len(self.Mode))
                self._page_edge = True
            self._dual_active = False

    def _handle_short_press(self, mask: int, now: int) -> None:
        if mask == self._last_mask or now - self._last_debounce <= self.DEBOUNCE_MS:
            return
        if mask == 0 and self._last_mask == 1:
            if self.mode == self.Mode.SETPOINT and self.number_val <= self.SETPOINT_MAX - self.SETPOINT_STEP:
                self.number_val += self.SETPOINT_STEP
                self._announce("Set", self.number_val)
            if self.mode == self.Mode.CALSCALAR and self.letter_idx < self.CAL_LIMIT:
                self.letter_idx += 1
                self._announce("Cal%", self.letter_idx)
        if mask == 0 and self._last_mask == 2:
            if self.mode == self.Mode.SETPOINT and self.number_val >= self.SETPOINT_STEP:
                self.number_val -= self.SETPOINT_STEP
                self._announce("Set", self.number_val)
            if self.mode == self.Mode.CALSCALAR and self.letter_idx > -self.CAL_LIMIT:
                self.letter_idx -= 1
                self._announce("Cal%", self.letter_idx)
        self._last_debounce = now

    def _handle_system_hold(self, up: bool, down: bool, now: int) -> None:
        if not (up and not down):
            self._up_hold = None
            return
        if self._up_hold is None:
            self._up_hold = now
        elif now - self._up_hold >= self.SYSTEM_HOLD_MS:
            state = self.store.state
            state.system_on = not state.system_on
            self._log("[BTN] System " + ("ON" if state.system_on else "OFF"))
            self._up_hold = None

    def poll(self) -> None:
        """Read the buttons once and apply any gesture that completed."""
        if self.calib_running:
            return
        self._page_edge = False

        up, down = self._read()
        mask = (1 if up else 0) | (2 if down else 0)
        now = self._clock()

        self._handle_dual(mask, now)
        self._handle_short_press(mask, now)
        self._last_mask = mask
        self._handle_system_hold(up, down, now)

        self.store.set_setpoint(float(self.number_val))
        self.store.state.cal_scalar = float(self.letter_idx)


BUTTONS_SIX = ("onoff", "flow_up", "flow_down", "error_up", "error_down", "mode_toggle")
EEPROM_ADDR_ERROR = 0
EEPROM_ADDR_SETPOINT = 4
_F32 = struct.Struct("<f")


class ButtonsSix:
    """Six-button panel: on/off, set-point up/down, error % up/down, mode toggle.

    ``read_pins()`` maps each name in ``BUTTONS_SIX`` to whether it is pressed.
    Set-point and error % are saved to the EEPROM whenever they change.
    """

    def __init__(self, read_pins: Callable[[], Mapping[str, bool]], eeprom: Eeprom) -> None:
        self._read = read_pins
        self.eeprom = eeprom
        self._was_pressed = dict.fromkeys(BUTTONS_SIX, False)
        self._system_on = False
        self._flow_setpoint = 0.0
        self._error_percent = 0.0
        self._mode_toggle = False

    def _load(self) -> None:
        (error,) = _F32.unpack(self.eeprom.read(EEPROM_ADDR_ERROR, _F32.size))
        (setpoint,) = _F32.unpack(self.eeprom.read(EEPROM_ADDR_SETPOINT, _F32.size))
        if not math.isfinite(error) or not config.ERROR_PERCENT_MIN <= error <= config.ERROR_PERCENT_MAX:
            error = 0.0
        if not math.isfinite(setpoint) or not config.FLOW_SP_MIN <= setpoint <= config.FLOW_SP_MAX:
            setpoint = (config.FLOW_SP_MIN + config.FLOW_SP_MAX) * 0.5
        self._error_percent = error
        self._flow_setpoint = setpoint

    def _save(self) -> None:
        self.eeprom.write(EEPROM_ADDR_ERROR, _F32.pack(self._error_percent))
        self.eeprom.write(EEPROM_ADDR_SETPOINT, _F32.pack(self._flow_setpoint))

    def _sample(self) -> dict[str, bool]:
        levels = self._read()
        return {name: bool(levels.get(name, False)) for name in BUTTONS_SIX}

    def begin(self) -> None:
        """Load stored values and take the current button states as the baseline."""
        self._load()
        self._was_pressed = self._sample()

    def update(self) -> None:
        """Apply the presses that started since the previous call."""
        pressed = self._sample()
        edges = {name: pressed[name] and not self._was_pressed[name] for name in BUTTONS_SIX}
        self._was_pressed = pressed

        changed = False
        self._mode_toggle = False

        if edges["onoff"]:
            self._system_on = not self._system_on
        if edges["flow_up"]:
            self._flow_setpoint = min(self._flow_setpoint + config.FLOW_STEP_SIZE, config.FLOW_SP_MAX)
            changed = True
        if edges["flow_down"]:
            self._flow_setpoint = max(self._flow_setpoint - config.FLOW_STEP_SIZE, config.FLOW_SP_MIN)
            changed = True
        if edges["error_up"]:
            self._error_percent = min(self._error_percent + 1.0, config.ERROR_PERCENT_MAX)
            changed = True
        if edges["error_down"]:
            self._error_percent = max(self._error_percent - 1.0, config.ERROR_PERCENT_MIN)
            changed = True
        if edges["mode_toggle"]:
            self._mode_toggle = True

        if changed:
            self._save()

    def system_on(self) -> bool:
        return self._system_on

    def flow_setpoint(self) -> float:
        return self._flow_setpoint

    def error_percent(self) -> float:
        return self._error_percent

    def mode_toggle_pressed(self) -> bool:
        """True only in the update in which the mode button was pressed."""
        return self._mode_toggle