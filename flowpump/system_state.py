"""Runtime state snapshot and its persistent part (set-point and pump flag)."""

from __future__ import annotations

import struct
from dataclasses import dataclass
from enum import IntEnum

MAGIC = 0x534D3153
VERSION = 1
EE_ADDR = 0

# magic u32, version u8, pad, set-point f32, pump flag u8, pad
_BLOB = struct.Struct("<IB3xfB3x")


class LEDColour(IntEnum):
    """Solid colours of the status LED."""

    OFF = 0
    RED = 1
    GREEN = 2
    BLUE = 3
    AMBER = 4


@dataclass
class SystemState:
    """Live snapshot; only ``setpoint`` and ``pump_enabled`` persist."""

    current_time_ms: int = 0
    setpoint: float = 0.0
    cal_scalar: float = 0.0
    r_flow: float = 0.0
    f_flow: float = 0.0
    rpm_cmd: float = 0.0
    sps_cmd: float = 0.0
    top_cmd: int = 0
    volume_ul: float = 0.0
    mass_g: float = 0.0
    pump_enabled: bool = False
    system_on: bool = False
    calibrating: bool = False
    led_colour: LEDColour = LEDColour.OFF


class Eeprom:
    """In-memory byte-addressable non-volatile store, erased to 0xFF."""

    ERASED = 0xFF

    def __init__(self, size: int = 512) -> None:
        if size <= 0:
            raise ValueError("EEPROM size must be positive")
        self._data = bytearray([self.ERASED]) * size

    def __len__(self) -> int:
        return len(self._data)

    def _check(self, address: int, length: int) -> None:
        if address < 0 or length < 0 or address + length > len(self._data):
            raise IndexError(
                f"range {address}..{address + length} outside EEPROM of {len(self._data)} bytes"
            )

    def read(self, address: int, length: int) -> bytes:
        """Return ``length`` bytes starting at ``address``."""
        self._check(address, length)
        return bytes(self._data[address : address + length])

    def write(self, address: int, data: bytes) -> None:
        """Store ``data`` starting at ``address``."""
        self._check(address, len(data))
        self._data[address : address + len(data)] = data


class StateStore:
    """Owns the live :class:`SystemState` and flushes its persistent part."""

    def __init__(self, eeprom: Eeprom) -> None:
        self.eeprom = eeprom
        self.state = SystemState()
        self.dirty = False

    def load_persistent(self) -> None:
        """Restore set-point and pump flag if a valid blob is stored."""
        magic, version, setpoint, pump = _BLOB.unpack(self.eeprom.read(EE_ADDR, _BLOB.size))
        if magic == MAGIC and version == VERSION:
            self.state.setpoint = setpoint
            self.state.pump_enabled = bool(pump)

    def commit_persistent(self) -> None:
        """Write set-point and pump flag, only when they changed."""
        if not self.dirty:
            return
        blob = _BLOB.pack(MAGIC, VERSION, self.state.setpoint, int(self.state.pump_enabled))
        self.eeprom.write(EE_ADDR, blob)
        self.dirty = False

    def set_setpoint(self, value: float) -> None:
        self.state.setpoint = value
        self.dirty = True

    def set_pump_enabled(self, enabled: bool) -> None:
        self.state.pump_enabled = enabled
        self.dirty = True

    def add_volume(self, ul: float) -> None:
        self.state.volume_ul += ul

    def add_mass(self, grams: float) -> None:
        self.state.mass_g += grams