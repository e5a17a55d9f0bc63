"""Piezo micropump driver configured over I2C (amplitude control after init)."""

from __future__ import annotations

import time
from abc import ABC, abstractmethod
from collections.abc import Callable

from . import config

DEFAULT_DELAY_MS = 40
AMPLITUDE_REGISTER = 6
CYCLE_COUNT = 0x64


def freq_byte(desired_hz: float) -> int:
    """Convert a drive frequency in Hz to the register value (Hz / 7.8125, at least 1)."""
    value = int(desired_hz / 7.8125)
    if not 0 <= value <= 0xFF:
        raise ValueError(f"frequency {desired_hz} Hz does not fit in one byte")
    return value or 1


def amplitude_byte(voltage: float) -> int:
    """Convert a voltage to the 0..255 amplitude register value."""
    ratio = min(max(voltage / config.BARTELS_ABSOLUTE_MAX, 0.0), 1.0)
    return int(ratio * 255.0)


class I2CBus(ABC):
    """An I2C master able to send one write transaction."""

    @abstractmethod
    def write(self, address: int, data: bytes) -> None:
        """Send ``data`` to the device at ``address``."""


def _sleep_ms(ms: float) -> None:
    time.sleep(ms / 1000.0)


class BartelsDriver:
    """Full waveform setup on the first run, amplitude-only updates afterwards."""

    def __init__(self, bus: I2CBus, sleep: Callable[[float], None] | None = None) -> None:
        self.bus = bus
        self._sleep = sleep or _sleep_ms
        self.first_run = True

    def _select_page(self, page: int) -> None:
        self.bus.write(config.BARTELS_DRIVER_ADDR, bytes([config.BARTELS_PAGE_REGISTER, page]))

    def _write_register(self, register: int, value: int) -> None:
        self.bus.write(config.BARTELS_DRIVER_ADDR, bytes([register, value]))

    def _write_full_waveform(self, voltage: float, freq: int) -> None:
        waveform = bytes(
            [0x05, 0x80, 0x06, 0x00, 0x09, 0x00, amplitude_byte(voltage), freq, CYCLE_COUNT, 0x00]
        )
        self._select_page(1)
        for register, value in enumerate(waveform):
            self._write_register(register, value)
        self._sleep(DEFAULT_DELAY_MS)

    def _write_amplitude_only(self, voltage: float) -> None:
        self._select_page(1)
        self._write_register(AMPLITUDE_REGISTER, amplitude_byte(voltage))
        self._sleep(DEFAULT_DELAY_MS)

    def _write_control(self) -> None:
        self._select_page(0)
        for register, value in enumerate(config.BARTELS_CONTROL_DATA):
            self._write_register(register, value)
        self._sleep(DEFAULT_DELAY_MS)

    def _finish(self) -> None:
        self._select_page(0)
        self._sleep(DEFAULT_DELAY_MS)

    def run_sequence(self, voltage: float) -> None:
        """Drive the pump at ``voltage``, clamped to the configured range."""
        voltage = min(max(voltage, config.BARTELS_MIN_VOLTAGE), config.BARTELS_MAX_VOLTAGE)
        freq = freq_byte(config.BARTELS_FREQ)
        if self.first_run:
            for _ in range(2):
                self._write_full_waveform(voltage, freq)
                self._write_control()
                self._finish()
            self.first_run = False
            return
        self._write_amplitude_only(voltage)
        self._write_control()
        self._finish()

    def stop(self) -> None:
        """Set the amplitude to zero with two full passes."""
        for _ in range(2):
            self._write_full_waveform(0.0, freq_byte(config.BARTELS_FREQ))
            self._write_control()
            self._finish()