import pytest

from flowpump import config
from flowpump.display import Sh1107Pages, cal_progress_percent, led_rgb, status_lines
from flowpump.system_state import LEDColour, SystemState


@pytest.mark.parametrize(
    "colour, rgb",
    [
        (LEDColour.RED, (255, 0, 0)),
        (LEDColour.GREEN, (0, 255, 0)),
        (LEDColour.BLUE, (0, 0, 255)),
        (LEDColour.AMBER, (255, 100, 0)),
        (LEDColour.OFF, (0, 0, 0)),
    ],
)
def test_led_rgb(colour, rgb):
    assert led_rgb(colour) == rgb


def test_cal_progress_bounds():
    assert cal_progress_percent(0) == 0.0
    assert cal_progress_percent(config.CAL_TOTAL_MS) == 100.0
    assert cal_progress_percent(config.CAL_TOTAL_MS * 3) == 100.0
    assert cal_progress_percent(-50) == 0.0


def test_cal_progress_monotonic():
    values = [cal_progress_percent(ms) for ms in range(0, config.CAL_TOTAL_MS + 1, 1000)]
    assert values == sorted(values)


def test_status_lines_flags():
    lines = status_lines(1.234, 0.5, -2.0, 80.0, False, 21.5, True)
    assert lines[0] == "Flow: 1.234 mL/min"
    assert "Bubble: YES" in lines
    assert "System: OFF" in lines
    assert len(lines) == 7


def test_status_lines_system_on():
    lines = status_lines(0.0, 0.0, 0.0, 0.0, True, 0.0, False)
    assert lines[-1] == "System: ON"
    assert lines[-2] == "Bubble: NO"


def test_pages_cycle_and_wrap():
    pages = Sh1107Pages()
    seen = []
    for _ in range(Sh1107Pages.PAGES):
        seen.append(pages.page)
        pages.advance_page()
    assert seen == [0, 1, 2, 3]
    assert pages.page == 0


def test_setpoint_page_centre():
    state = SystemState(setpoint=500.0, r_flow=480.0, cal_scalar=3.0)
    top, centre, bottom = Sh1107Pages().render(state)
    assert centre == "500 uL/min"
    assert top == "Meas 480 uL/min"
    assert bottom.startswith("Cal ")


def test_measured_page_shows_filtered_flow():
    pages = Sh1107Pages()
    pages.advance_page()
    top, centre, _ = pages.render(SystemState(setpoint=500.0, f_flow=495.0))
    assert top == "Set 500 uL/min"
    assert centre == "495 uL/min"


def test_init_cal_page():
    pages = Sh1107Pages()
    for _ in range(3):
        pages.advance_page()
    _, centre, bottom = pages.render(SystemState())
    assert centre == "Init Cal?"
    assert bottom == "Hold 5s to run"


def test_calibrating_overrides_page():
    state = SystemState(calibrating=True)
    top, bar, pct = Sh1107Pages().render(state, config.CAL_TOTAL_MS)
    assert top.startswith("Calibrating")
    assert pct == "100%"
    assert "." not in bar