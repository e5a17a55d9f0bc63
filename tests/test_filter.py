import pytest

from flowpump import config
from flowpump.filter import DynamicLPFilter, SimpleEMA, TwoPoleFilter, slope_matched_b2


@pytest.mark.parametrize("b1", [50.0, 80.0])
def test_identical_curves_match_same_b(b1):
    assert slope_matched_b2(0.0, 1.0, b1, 0.0, 1.0, 0.05) == pytest.approx(b1, abs=1e-3)


def test_b2_within_search_range():
    b2 = slope_matched_b2(
        config.EXP_KI_A, config.EXP_KI_K, config.EXP_KI_B,
        config.FILTER_SECONDARY_A2, config.FILTER_SECONDARY_K2, config.FILTER_T_REF,
    )
    assert 1e-3 <= b2 <= 100.0
    assert DynamicLPFilter().b2 == pytest.approx(b2)


def test_dynamic_zero_input_uses_unit_alpha():
    f = DynamicLPFilter()
    assert f.update(0.0) == 0.0
    assert f.current_alpha == 1.0


def test_dynamic_alpha_bounded_by_secondary_upper():
    f = DynamicLPFilter()
    out = f.update(1e6)
    assert 0.0 <= f.current_alpha <= config.FILTER_SECONDARY_K2
    assert 0.0 <= out <= 1e6
    assert f.state == out


def test_ema_first_sample_passes_through():
    e = SimpleEMA()
    assert e.update(7.0) == 7.0
    assert e.primed


def test_ema_between_previous_and_new():
    e = SimpleEMA()
    e.update(0.0)
    out = e.update(10.0)
    assert 0.0 < out < 10.0


def test_ema_converges_and_resets():
    e = SimpleEMA()
    e.update(0.0)
    for _ in range(200):
        out = e.update(3.0)
    assert out == pytest.approx(3.0)
    e.reset()
    assert e.update(-2.0) == -2.0


def test_two_pole_zero_and_positive():
    f = TwoPoleFilter()
    assert f.update(0.0) == 0.0
    out = f.update(100.0)
    assert 0.0 < out <= 100.0


def test_two_pole_reset_clears_state():
    f = TwoPoleFilter()
    f.update(50.0)
    f.update(50.0)
    f.reset()
    assert f.dyn.state == 0.0
    assert f.ema.primed is False