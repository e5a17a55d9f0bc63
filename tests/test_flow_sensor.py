import pytest

from flowpump.flow_sensor import Measurement, SensorBus, SensorError, Slf3sFlowSensor
from flowpump.system_state import Eeprom, StateStore


class FakeBus(SensorBus):
    def __init__(self, frames=(), fail_start=False):
        self.frames = list(frames)
        self.fail_start = fail_start
        self.calls = []

    def start_continuous(self):
        self.calls.append("start")
        if self.fail_start:
            raise SensorError("start failed", 5)

    def stop_continuous(self):
        self.calls.append("stop")

    def read_measurement(self):
        self.calls.append("read")
        item = self.frames.pop(0)
        if isinstance(item, Exception):
            raise item
        return item


def make(frames=(), **kw):
    store = StateStore(Eeprom())
    bus = FakeBus(frames, **kw)
    return Slf3sFlowSensor(bus, store), bus, store


def test_not_measuring_returns_zero_without_reading():
    sensor, bus, _ = make([Measurement(100.0, 20.0, 0)])
    assert sensor.read_flow() == 0.0
    assert "read" not in bus.calls


def test_start_stops_then_starts():
    sensor, bus, _ = make()
    sensor.start()
    assert bus.calls == ["stop", "start"]
    assert sensor.measuring is True


def test_warmup_discards_three_frames():
    frames = [Measurement(100.0, 21.5, 0)] * 4
    sensor, _, _ = make(frames)
    sensor.start()
    results = [sensor.read_flow() for _ in range(4)]
    assert results[:3] == [0.0, 0.0, 0.0]
    assert results[3] == pytest.approx(100.0)
    assert sensor.temp_c == 21.5


def test_cal_scalar_applied():
    frames = [Measurement(100.0, 20.0, 0)] * 4
    sensor, _, store = make(frames)
    store.state.cal_scalar = 50.0
    sensor.start()
    for _ in range(3):
        sensor.read_flow()
    assert sensor.read_flow() == pytest.approx(200.0)


def test_read_error_returns_zero_and_does_not_count():
    err = SensorError("crc", 3)
    frames = [Measurement(10.0, 20.0, 1)] * 3 + [err, Measurement(10.0, 20.0, 1)]
    sensor, _, _ = make(frames)
    sensor.start()
    results = [sensor.read_ul_per_min() for _ in range(5)]
    assert results[3] == 0.0
    assert sensor.last_error is err
    assert results[4] == pytest.approx(10.0)
    assert sensor.last_flags == 1


def test_start_failure_raises():
    sensor, _, _ = make(fail_start=True)
    with pytest.raises(SensorError):
        sensor.start()
    assert sensor.measuring is False


def test_stop_when_idle_does_nothing():
    sensor, bus, _ = make()
    sensor.stop()
    assert bus.calls == []


def test_stop_after_start():
    sensor, bus, _ = make()
    sensor.start()
    sensor.stop()
    assert bus.calls[-1] == "stop"
    assert sensor.measuring is False


def test_restart_resets_warmup():
    frames = [Measurement(50.0, 20.0, 0)] * 5
    sensor, _, _ = make(frames)
    sensor.start()
    for _ in range(4):
        sensor.read_flow()
    sensor.start()
    assert sensor.read_flow() == 0.0