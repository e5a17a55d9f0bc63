"""One-line JSON telemetry report of the system state."""

from __future__ import annotations

import math

from .system_state import SystemState

_OVERFLOW = 4294967040.0


def _fmt(value: float, digits: int) -> str:
    """Format a float with fixed decimals, rounding half away from zero."""
    if math.isnan(value):
        return "nan"
    if math.isinf(value):
        return "inf"
    if value > _OVERFLOW or value < -_OVERFLOW:
        return "ovf"
    sign = "-" if value < 0 else ""
    value = abs(value) + 0.5 / 10**digits
    whole = int(value)
    rest = value - whole
    text = f"{sign}{whole}"
    if digits:
        text += "."
        for _ in range(digits):
            rest *= 10
            digit = int(rest)
            text += str(digit)
            rest -= digit
    return text


def emit_json(state: SystemState, pump_enabled: bool) -> str:
    """Return the telemetry object for ``state`` as one line of JSON."""
    fields = [
        ("t", str(int(state.current_time_ms))),
        ("sp", _fmt(state.setpoint, 0)),
        ("r_flw", _fmt(state.r_flow, 0)),
        ("f_flw", _fmt(state.f_flow, 0)),
        ("rpm", _fmt(state.rpm_cmd, 1)),
        ("sps", _fmt(state.sps_cmd, 0)),
        ("top", str(int(state.top_cmd))),
        ("cal%", _fmt(state.cal_scalar, 0)),
        ("vol_uL", _fmt(state.volume_ul, 0)),
        ("mass_g", _fmt(state.mass_g, 3)),
        ("on", "1" if pump_enabled else "0"),
    ]
    return "{" + ",".join(f'"{key}":{value}' for key, value in fields) + "}"