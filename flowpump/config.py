"""System-wide configuration: hardware constants, pin map, tuning and version."""

from __future__ import annotations


def version_string(major: int, minor: int, patch: int) -> str:
    """Return the firmware version in ``vMAJOR.MINOR.PATCH`` form."""
    return f"v{major}.{minor}.{patch}"


# ---------------------------------------------------------------------------
# Firmware version
# ---------------------------------------------------------------------------
FW_VERSION_MAJOR = 1
FW_VERSION_MINOR = 0
FW_VERSION_PATCH = 3
FW_VERSION_STRING = version_string(FW_VERSION_MAJOR, FW_VERSION_MINOR, FW_VERSION_PATCH)

# ---------------------------------------------------------------------------
# Build features that are switched on
# ---------------------------------------------------------------------------
ENABLED_FEATURES = frozenset(
    {
        "MIN_CTRL",
        "SH1107",
        "SFL3S_0600F",
        "DRV8825",
        "BUTTONS_TWO",
        "SERIAL_RPT",
    }
)

# ---------------------------------------------------------------------------
# Constant voltage control (legacy)
# ---------------------------------------------------------------------------
CONSTANT_VOLTAGE = 80.0

# ---------------------------------------------------------------------------
# Display
# ---------------------------------------------------------------------------
SSD1306_DISPLAY_ADDR = 0x3C

# ---------------------------------------------------------------------------
# Bartels pump driver
# ---------------------------------------------------------------------------
BARTELS_DRIVER_ADDR = 0x59
BARTELS_PAGE_REGISTER = 0xFF
BARTELS_CONTROL_DATA = bytes([0x00, 0x3B, 0x01, 0x01])

BARTELS_FREQ = 300.0
BARTELS_ABSOLUTE_MAX = 150.0
BARTELS_MAX_VOLTAGE = 150.0
BARTELS_MIN_VOLTAGE = 0.0

# ---------------------------------------------------------------------------
# Flow sensor
# ---------------------------------------------------------------------------
SLF_FLOW_SENSOR_ADDR = 0x08
SLF_START_CMD = 0x36
SLF_CALIBRATION_CMD_BYTE = 0x08
SLF_STOP_CMD = 0x3F
SLF_STOP_BYTE = 0xF9

SLF_SCALE_FACTOR_FLOW = 10000.0
SLF_SCALE_FACTOR_TEMP = 200.0
SLF_RUN_DURATION = 604800.0  # seconds (7 days)

# ---------------------------------------------------------------------------
# Flow / error ranges
# ---------------------------------------------------------------------------
FLOW_SP_MIN = 0.0
FLOW_SP_MAX = 2.0
ERROR_PERCENT_MIN = -50.0
ERROR_PERCENT_MAX = 50.0
FLOW_STEP_SIZE = 0.05

# ---------------------------------------------------------------------------
# Exponential-gain parameters (legacy)
# ---------------------------------------------------------------------------
EXP_KP_A = 0.0
EXP_KP_K = 0.0
EXP_KP_B = 0.0
EXP_KP_C = 0.0

EXP_KI_A = 0.001
EXP_KI_K = 0.23
EXP_KI_B = 100.0
EXP_KI_C = 0.0

EXP_KD_A = 0.0
EXP_KD_K = 0.0
EXP_KD_B = 0.0
EXP_KD_C = 0.0

# ---------------------------------------------------------------------------
# Filter / slope-matching parameters
# ---------------------------------------------------------------------------
FILTER_T_REF = 0.05
FILTER_SECONDARY_A2 = 0.0
FILTER_SECONDARY_K2 = 0.5
FILTER_B2_GUESS = 3.0
EMA_ALPHA = 0.85

# ---------------------------------------------------------------------------
# PID anti-windup / derivative filter
# ---------------------------------------------------------------------------
PID_ANTIWINDUP_GAIN = 0.1
PID_DERIV_FILTER_ALPHA = 0.8

# ---------------------------------------------------------------------------
# Timing
# ---------------------------------------------------------------------------
FLUID_TIME_CONSTANT = 0.05
LOOP_FREQ_FACTOR = 15.0
MAIN_LOOP_DELAY_MS = int((FLUID_TIME_CONSTANT / LOOP_FREQ_FACTOR) * 1000.0)
LOOP_INTERVAL_MS = 10

# ---------------------------------------------------------------------------
# 24 V rail monitor
# ---------------------------------------------------------------------------
PIN_DETECT_24V = "A1"
R_SENSE_TOP = 30_000.0
R_SENSE_BOTTOM = 7_500.0

# ---------------------------------------------------------------------------
# Valve & LED GPIO map
# ---------------------------------------------------------------------------
PIN_VALVE_RUNNING_BUFF = 10
PIN_VALVE_CARTRIDGE_BYP = 11
PIN_VALVE_FLOW_SOURCE = 12
VALVE_PIN_HIGH = 255
VALVE_PIN_LOW = 0

LED_24V_GOOD = 45
LED_RUNNING_BUFF = 39
LED_CARTRIDGE_BYP = 37
LED_FLOW_SOURCE = 35
LED_FLOWRATE_GOOD = 43
LED_PUMP_INDICATOR = 41

# ---------------------------------------------------------------------------
# DRV8825 pump pins (legacy board)
# ---------------------------------------------------------------------------
PIN_PUMP_ENA = 4
PIN_PUMP_OPTO = 5
PIN_PUMP_DIR = 6
PIN_PUMP_STEP = 7

# ---------------------------------------------------------------------------
# Mechanical / stepper constants
# ---------------------------------------------------------------------------
ROLLERS = 6
VPR = 42  # µL per revolution
TPS = 2  # gearbox teeth per revolution
SPR = 200  # full steps per revolution
MICROSTEP = 32

# ---------------------------------------------------------------------------
# PID default gains (scalar mode)
# ---------------------------------------------------------------------------
PID_KP = 0.20
PID_KI = 0.05
PID_KD = 0.00

# ---------------------------------------------------------------------------
# Flow / valve timing
# ---------------------------------------------------------------------------
VALVE_HIGH_TIME_MS = 1_000
RATE_MIN_UL_MIN = 200
RATE_MAX_UL_MIN = 1_800
DESIRED_TOLERANCE_PCT = 10

# ---------------------------------------------------------------------------
# Serial tokens
# ---------------------------------------------------------------------------
VALVE_STR = "VALVE"
VALVE_RUNNINGBUF_STR = "RUNBUF"
VALVE_CARTRIDGEBYPASS_STR = "CARTBYP"
VALVE_FLOWSOURCE_STR = "FLOWSRC"
FLOWRATE_STR = "FLOWRATE"
FLOWSTATE_STR = "FLOWSTATE"
FLOWDIR_STR = "FLOWDIR"
ON_STR = "ON"
OFF_STR = "OFF"
FORWARD_STR = "FORWARD"
REVERSE_STR = "REVERSE"

# ---------------------------------------------------------------------------
# I/O map (GPIO numbers of the XIAO RP2040 pads)
# ---------------------------------------------------------------------------
PIN_STEP = 26
PIN_DIR = 27
PIN_EN = 28  # LOW = enable
PIN_M0 = 29
PIN_M1 = 0
PIN_M2 = 1
PIN_SLEEP = 3  # HIGH = awake

I2C_SDA_PIN = 6
I2C_SCL_PIN = 7
OLED_I2C_ADDR = 0x3C
OLED_ROTATION = 1  # 0 = portrait, 1 = landscape

PIN_BTN_UP = 2
PIN_BTN_DN = 4

PIN_RGB_ENABLE = 11
PIN_RGB_DATA = 12
RGB_NUM_PIXELS = 1

# ---------------------------------------------------------------------------
# Calibration timing
# ---------------------------------------------------------------------------
CAL_SETTLE_MS = 5_000
CAL_WINDOW_MS = 30_000
CAL_TOTAL_MS = CAL_SETTLE_MS + CAL_WINDOW_MS