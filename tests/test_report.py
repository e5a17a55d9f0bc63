import json

from flowpump.report import emit_json
from flowpump.system_state import SystemState


def test_keys_in_order():
    out = emit_json(SystemState(), False)
    assert list(json.loads(out)) == [
        "t", "sp", "r_flw", "f_flw", "rpm", "sps", "top", "cal%", "vol_uL", "mass_g", "on",
    ]


def test_values_round_trip():
    state = SystemState(
        current_time_ms=123456,
        setpoint=500.0,
        r_flow=480.0,
        f_flow=490.0,
        sps_cmd=1500.0,
        top_cmd=2000,
        cal_scalar=-5.0,
        volume_ul=42.0,
    )
    data = json.loads(emit_json(state, True))
    assert data["t"] == 123456
    assert data["sp"] == 500
    assert data["r_flw"] == 480
    assert data["f_flw"] == 490
    assert data["sps"] == 1500
    assert data["top"] == 2000
    assert data["cal%"] == -5
    assert data["vol_uL"] == 42
    assert data["on"] == 1


def test_fixed_decimals():
    out = emit_json(SystemState(mass_g=1.5, rpm_cmd=3.0), False)
    assert '"mass_g":1.500' in out
    assert '"rpm":3.0' in out
    assert out.endswith('"on":0}')


def test_half_rounds_up():
    out = emit_json(SystemState(rpm_cmd=12.25), False)
    assert '"rpm":12.3' in out


def test_nan_printed():
    out = emit_json(SystemState(f_flow=float("nan")), False)
    assert '"f_flw":nan' in out