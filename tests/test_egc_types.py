import dataclasses

import pytest

from flowpump.egc_types import (
    EGC_PARAMS,
    CalConfig,
    EgcParams,
    ExpParams,
    FlowSensor,
    PumpDriver,
    ScaleAffine,
)


class RecordingPump(PumpDriver):
    def __init__(self):
        self.calls = []

    def set_target_sps(self, sps):
        self.calls.append(sps)


def _flat(params):
    return [
        *dataclasses.astuple(params.scale),
        *dataclasses.astuple(params.gain),
        params.kp,
        params.kd,
        params.sps_max,
    ]


def test_stop_sends_zero():
    pump = RecordingPump()
    PumpDriver.stop(pump)
    assert pump.calls == [0.0]


def test_set_command_passes_through():
    pump = RecordingPump()
    PumpDriver.set_command(pump, 0.75)
    assert pump.calls == [0.75]


def test_flow_sensor_is_abstract():
    with pytest.raises(TypeError):
        FlowSensor()


def test_exact_round_trip():
    params = EgcParams(
        scale=ScaleAffine(0.5, 2.0),
        gain=ExpParams(a=0.25, b=0.125, k=0.5, c=1.0, t_ref=8.0, alpha_static=0.25,
                       a2=0.0625, b2=0.5, k2=0.75, c2=0.0),
        kp=0.125,
        kd=0.0,
        sps_max=1500.0,
    )
    assert EgcParams.from_bytes(params.to_bytes()) == params


def test_flashed_params_round_trip():
    restored = EgcParams.from_bytes(EGC_PARAMS.to_bytes())
    assert _flat(restored) == pytest.approx(_flat(EGC_PARAMS), rel=1e-6)


def test_from_bytes_rejects_wrong_length():
    with pytest.raises(ValueError):
        EgcParams.from_bytes(b"\x00" * 7)


def test_flashed_params_values():
    assert EGC_PARAMS.gain.t_ref == 57.4
    assert EGC_PARAMS.scale == ScaleAffine(0.993, 2.1)
    assert EGC_PARAMS.sps_max == EgcParams().sps_max


def test_cal_config_is_immutable():
    cfg = CalConfig()
    with pytest.raises(dataclasses.FrozenInstanceError):
        cfg.knee_frac = 0.9
    assert cfg.knee_frac == 0.5
    changed = dataclasses.replace(cfg, knee_frac=0.9)
    assert changed.knee_frac == 0.9
    assert cfg.knee_frac == 0.5