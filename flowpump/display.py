"""Text content of the status LED, the OLED pages and the legacy status screen."""

from __future__ import annotations

from . import config
from .system_state import LEDColour, SystemState

PLUS_MINUS = "\u00b1"
BAR_W = 100
BAR_CHARS = 20

_LED_COLOURS = {
    LEDColour.RED: (255, 0, 0),
    LEDColour.GREEN: (0, 255, 0),
    LEDColour.BLUE: (0, 0, 255),
    LEDColour.AMBER: (255, 100, 0),
}


def led_rgb(colour: LEDColour) -> tuple[int, int, int]:
    """Return the solid ``(r, g, b)`` colour shown for ``colour``; off is black."""
    return _LED_COLOURS.get(colour, (0, 0, 0))


def cal_progress_percent(elapsed_ms: int) -> float:
    """Return calibration progress in percent, clamped to ``0..100``."""
    elapsed = min(max(elapsed_ms, 0), config.CAL_TOTAL_MS)
    return elapsed * 100.0 / config.CAL_TOTAL_MS


def status_lines(
    flow: float,
    setpoint: float,
    error_pct: float,
    voltage: float,
    system_on: bool,
    temperature: float,
    bubble_detected: bool,
) -> list[str]:
    """Return the lines of the single-page status screen."""
    return [
        f"Flow: {flow:.3f} mL/min",
        f"Setpt: {setpoint:.3f} mL/min",
        f"Err%: {error_pct:.1f}",
        f"Volt: {voltage:.1f}",
        f"Temp: {temperature:.1f} C",
        "Bubble: " + ("YES" if bubble_detected else "NO"),
        "System: " + ("ON" if system_on else "OFF"),
    ]


class Sh1107Pages:
    """Four-page OLED view: set-point, measured flow, cal scalar, start calibration.

    :meth:`render` returns the ``(top, centre, bottom)`` text of the screen.
    """

    PAGES = 4

    def __init__(self) -> None:
        self.page = 0

    def advance_page(self) -> None:
        self.page = (self.page + 1) % self.PAGES

    @staticmethod
    def _cal_line(state: SystemState) -> str:
        return f"Cal {PLUS_MINUS}{state.cal_scalar:.0f}%"

    @staticmethod
    def _meas_line(state: SystemState) -> str:
        return f"Meas {state.r_flow:.0f} uL/min"

    @staticmethod
    def _set_line(state: SystemState) -> str:
        return f"Set {state.setpoint:.0f} uL/min"

    @staticmethod
    def _progress(calib_elapsed_ms: int) -> tuple[str, str, str]:
        pct = cal_progress_percent(calib_elapsed_ms)
        filled = int(BAR_W * pct / 100.0)
        cells = filled * BAR_CHARS // BAR_W
        bar = "[" + "#" * cells + "." * (BAR_CHARS - cells) + "]"
        return ("Calibrating\u2026", bar, f"{pct:3.0f}%")

    def render(self, state: SystemState, calib_elapsed_ms: int = 0) -> tuple[str, str, str]:
        """Return the screen for ``state``; calibration shows a progress bar instead."""
        if state.calibrating:
            return self._progress(calib_elapsed_ms)
        if self.page == 0:
            return (self._meas_line(state), f"{state.setpoint:.0f} uL/min", self._cal_line(state))
        if self.page == 1:
            return (self._set_line(state), f"{state.f_flow:.0f} uL/min", self._cal_line(state))
        if self.page == 2:
            return (
                self._set_line(state),
                f"{PLUS_MINUS}{state.cal_scalar:.0f} %",
                self._meas_line(state),
            )
        return ("", "Init Cal?", "Hold 5s to run")