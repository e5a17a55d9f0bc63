"""Liquid flow sensor driver returning compensated flow in µL/min."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass

from .egc_types import FlowSensor
from .system_state import StateStore

I2C_ADDR = 0x08
WARMUP_FRAMES = 3


class SensorError(Exception):
    """The sensor bus reported a failure."""

    def __init__(self, message: str, code: int = -1) -> None:
        super().__init__(message)
        self.code = code


@dataclass(frozen=True)
class Measurement:
    """One frame read from the sensor."""

    flow_ul_min: float
    temp_c: float
    flags: int


class SensorBus(ABC):
    """Low-level sensor access; every method raises :class:`SensorError` on failure."""

    @abstractmethod
    def start_continuous(self) -> None:
        """Start continuous water measurement."""

    @abstractmethod
    def stop_continuous(self) -> None:
        """Stop continuous measurement."""

    @abstractmethod
    def read_measurement(self) -> Measurement:
        """Read the latest frame."""


class Slf3sFlowSensor(FlowSensor):
    """Flow sensor with warm-up discard and the user's calibration scalar applied."""

    def __init__(self, bus: SensorBus, store: StateStore) -> None:
        self.bus = bus
        self.store = store
        self.measuring = False
        self.last_error: SensorError | None = None
        self.raw_flow = 0.0
        self.temp_c = 0.0
        self.last_flags = 0
        self._read_count = 0

    def start(self) -> None:
        """Restart continuous measurement; raises :class:`SensorError` on failure."""
        try:
            self.bus.stop_continuous()
        except SensorError:
            pass
        self._read_count = 0
        try:
            self.bus.start_continuous()
        except SensorError as exc:
            self.measuring = False
            self.last_error = exc
            raise
        self.measuring = True

    def stop(self) -> None:
        """Stop measuring; does nothing if not measuring."""
        if not self.measuring:
            return
        try:
            self.bus.stop_continuous()
        except SensorError as exc:
            self.last_error = exc
            raise
        finally:
            self.measuring = False

    def read_flow(self) -> float:
        """Return compensated flow in µL/min, or 0.0 while idle, warming up or on a read error."""
        if not self.measuring:
            return 0.0
        try:
            frame = self.bus.read_measurement()
        except SensorError as exc:
            self.last_error = exc
            return 0.0
        self.raw_flow = frame.flow_ul_min
        self.temp_c = frame.temp_c
        self.last_flags = frame.flags

        self._read_count += 1
        if self._read_count <= WARMUP_FRAMES:
            return 0.0

        factor = 1.0 / (1.0 - self.store.state.cal_scalar / 100.0)
        return self.raw_flow * factor

    def read_ul_per_min(self) -> float:
        return self.read_flow()