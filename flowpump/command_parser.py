"""Line-based serial command interpreter for the stepper controller."""

from __future__ import annotations

import re

from .stepper import MICROSTEP, STEPS_PER_REV, StepperController

_LEADING_INT = re.compile(r"\s*([+-]?\d+)")


def _to_int(text: str) -> int:
    """Parse a leading integer the way ``atol`` does; 0 when there is none."""
    match = _LEADING_INT.match(text)
    return int(match.group(1)) if match else 0


class CommandParser:
    """Collects characters into lines and executes one-letter commands.

    V <rpm>, R <1|0>, G <steps>, A <deg>, E, D/S and ? are understood;
    anything else answers ``ERR``.
    """

    def __init__(self, motor: StepperController) -> None:
        self.motor = motor
        self._buffer: list[str] = []

    def feed(self, text: str) -> list[str]:
        """Consume received characters and return the replies to completed lines."""
        replies = []
        for char in text:
            if char in "\r\n":
                if self._buffer:
                    replies.append(self.handle_command("".join(self._buffer)))
                    self._buffer.clear()
            else:
                self._buffer.append(char)
        return replies

    def handle_command(self, line: str) -> str:
        """Execute one command line and return its reply."""
        if not line:
            return "ERR"
        cmd = line[0].upper()
        value = _to_int(line[2:]) if len(line) > 2 else 0
        motor = self.motor

        if cmd == "V":
            motor.set_rpm(value)
            return f"OK RPM {value}"
        if cmd == "R":
            motor.run_continuous(True, value > 0)
            return "OK RUN"
        if cmd == "G":
            motor.move_relative(value)
            return f"OK MOVE {value}"
        if cmd == "A":
            steps = int((value / 360.0) * STEPS_PER_REV * MICROSTEP)
            motor.move_relative(steps)
            return f"OK DEG {value}"
        if cmd == "E":
            motor.enable()
            return "OK ENABLE"
        if cmd in ("D", "S"):
            motor.run_continuous(False)
            motor.disable()
            return "OK STOP"
        if cmd == "?":
            return (
                f"POS {motor.position()} RPM {motor.rpm_target():.1f} "
                f"ACT {motor.rpm_actual():.1f} BUSY {int(motor.busy())}"
            )
        return "ERR"