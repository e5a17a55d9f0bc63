import pytest

from flowpump.pump_driver import (
    MAX_SPS,
    MIN_SPS,
    PULSES_PER_REV,
    BitBangStepBackend,
    Drv8825Pump,
    PumpBackend,
)


class RecordingBackend(PumpBackend):
    def __init__(self):
        self.enabled = []
        self.tops = []
        self.freqs = []

    def set_enabled(self, enabled):
        self.enabled.append(enabled)

    def set_top(self, top):
        self.tops.append(top)

    def set_frequency(self, sps):
        self.freqs.append(sps)


def test_starts_disabled():
    backend = RecordingBackend()
    Drv8825Pump(backend)
    assert backend.enabled == [False]


def test_target_clamped_to_max():
    pump = Drv8825Pump(RecordingBackend())
    pump.set_target_sps(1e9)
    pump.service()
    assert pump.current_sps() == MAX_SPS


def test_negative_target_clamped_to_zero():
    backend = RecordingBackend()
    pump = Drv8825Pump(backend)
    pump.set_target_sps(-5)
    pump.service()
    assert pump.current_sps() == 0.0
    assert backend.enabled[-1] is False
    assert backend.freqs[-1] == 0


def test_below_min_sps_disables():
    backend = RecordingBackend()
    pump = Drv8825Pump(backend)
    pump.set_target_sps(MIN_SPS - 1)
    pump.service()
    assert backend.enabled[-1] is False
    assert backend.freqs[-1] == 0


def test_service_applies_frequency():
    backend = RecordingBackend()
    pump = Drv8825Pump(backend)
    pump.set_target_sps(1000.7)
    pump.service()
    assert backend.enabled[-1] is True
    assert backend.freqs[-1] == 1000


def test_target_rpm_one_rev_per_second():
    pump = Drv8825Pump(RecordingBackend())
    pump.set_target_rpm(60)
    pump.service()
    assert pump.current_sps() == pytest.approx(PULSES_PER_REV)


def test_set_top_enables_and_disables():
    backend = RecordingBackend()
    pump = Drv8825Pump(backend)
    pump.set_top(1000)
    assert backend.enabled[-1] is True
    assert backend.tops[-1] == 1000
    pump.set_top(0)
    assert backend.enabled[-1] is False
    assert backend.tops[-1] == 0


def test_set_top_out_of_range():
    pump = Drv8825Pump(RecordingBackend())
    with pytest.raises(ValueError):
        pump.set_top(70000)


def test_bitbang_frequency_toggles():
    levels = []
    backend = BitBangStepBackend(levels.append)
    backend.set_frequency(500)
    assert backend.half_period_us == 1000
    backend.tick(500)
    assert levels == []
    backend.tick(1000)
    backend.tick(1500)
    backend.tick(2000)
    assert levels == [True, False]


def test_bitbang_top_and_stop():
    levels = []
    backend = BitBangStepBackend(levels.append)
    backend.set_top(9)
    assert backend.half_period_us == 5
    backend.set_top(0)
    backend.tick(10_000)
    assert backend.half_period_us == 0
    assert levels == []


def test_bitbang_as_pump_backend():
    levels = []
    backend = BitBangStepBackend(levels.append)
    pump = Drv8825Pump(backend)
    pump.set_target_sps(500)
    pump.service()
    assert backend.enabled is True
    backend.tick(backend.half_period_us)
    assert levels == [True]