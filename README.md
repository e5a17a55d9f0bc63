# flowpump

`flowpump` holds the control logic of a liquid-flow controller built around a
stepper-driven peristaltic pump and a thermal flow sensor, in plain Python.
Everything that touches hardware — I²C buses, step pins, EEPROM, clocks,
buttons, displays — is passed in as an object or a callable, so the same code
runs against real devices, simulators or test doubles.

The package has no runtime dependencies and needs Python 3.10 or later.

## What is inside

| Module | Purpose |
| --- | --- |
| `flowpump.config` | System constants: pins, pump geometry, PID defaults, calibration timing, `version_string()` and `FW_VERSION_STRING` |
| `flowpump.system_state` | `SystemState` snapshot, `LEDColour`, an in-memory `Eeprom` byte store and `StateStore`, which saves set-point and pump flag |
| `flowpump.volume_tracker` | `VolumeTracker` integrating flow (µL/min) into volume and mass |
| `flowpump.gain` | Reciprocal-exponential gain curves: `exponential_reciprocal`, `get_exp_kp`, `get_exp_ki`, `get_exp_kd` |
| `flowpump.filter` | `slope_matched_b2`, adaptive `DynamicLPFilter`, fixed-α `SimpleEMA` and the `TwoPoleFilter` cascade |
| `flowpump.pid` | `PIDController` with filtered derivative and output clamped to [0, 1], returning a `PIDResult` |
| `flowpump.egc_types` | `FlowSensor` and `PumpDriver` interfaces, `ScaleAffine`, `ExpParams`, `EgcParams` (with `to_bytes`/`from_bytes`), `CalConfig`, `EGC_PARAMS` |
| `flowpump.egc_control` | `LPF`, `GainScheduler`, `EgcPID` and the closed-loop `Controller` |
| `flowpump.calibrator` | `run_calibration()`: open-loop pulse and analytic Ki-curve fit, raising `CalibrationError` |
| `flowpump.pump_driver` | `Drv8825Pump` with a `PumpBackend` interface and a software `BitBangStepBackend` |
| `flowpump.flow_sensor` | `Slf3sFlowSensor` over a `SensorBus`, with warm-up discard and calibration scalar |
| `flowpump.micropump` | `BartelsDriver` piezo micropump register sequences over an `I2CBus`, `freq_byte`, `amplitude_byte` |
| `flowpump.report` | `emit_json()` single-line telemetry |
| `flowpump.open_loop` | `OpenLoopCalibrator`: one-shot calibration stored to the EEPROM |
| `flowpump.flow_loop` | `FlowLoop`: the 100 Hz control loop, `BiQuad`, `rate_to_top()`, `top_to_sps()` |
| `flowpump.buttons` | `ButtonsTwo` and `ButtonsSix` input handlers |
| `flowpump.display` | OLED page text (`Sh1107Pages`), `status_lines`, `cal_progress_percent`, `led_rgb` |
| `flowpump.stepper` | `StepperController`: non-blocking stepper engine with ramping and soft reverse |
| `flowpump.command_parser` | `CommandParser`: line-based serial command set for the stepper |

## Examples

Integrating delivered volume:

```python
from flowpump.volume_tracker import VolumeTracker

tracker = VolumeTracker(0.97)        # density in g/mL
tracker.update(600.0, 1000)          # 600 µL/min for 1000 ms
print(tracker.volume_ul())           # 10.0 µL
print(tracker.mass_g())              # grams at the given density
```

Converting a flow rate into a PWM wrap value and back into step rate:

```python
from flowpump.flow_loop import rate_to_top, top_to_sps

top = rate_to_top(500.0)             # µL/min -> PWM TOP, clamped to 1..65535
print(top, top_to_sps(top))          # TOP and the steps/s it produces
```

Driving the stepper through its command set:

```python
from flowpump.command_parser import CommandParser
from flowpump.stepper import MICROSTEP, STEPS_PER_REV, StepDriver, StepperController


class QuietDriver(StepDriver):
    def enable(self): pass
    def disable(self): pass
    def set_direction(self, cw): pass
    def step(self): pass


motor = StepperController(QuietDriver())
motor.begin(STEPS_PER_REV, MICROSTEP)
parser = CommandParser(motor)
for reply in parser.feed("V 120\nG 6400\n?\n"):
    print(reply)
# OK RPM 120
# OK MOVE 6400
# POS 0 RPM 120.0 ACT 60.0 BUSY 1
```

Steps are only issued by `StepperController.service()`, which ramps the
actual speed towards the target at 300 RPM/s and must be called repeatedly.

Commands are a letter, a separator character and an optional integer:

| Command | Effect |
| --- | --- |
| `V <rpm>` | set target RPM (clamped to 1–1200, saved to the EEPROM) |
| `R 1` / `R 0` | run continuously clockwise / counter-clockwise |
| `G <steps>` | move by a relative number of micro-steps |
| `A <deg>` | rotate by degrees (at 200 steps × 32 micro-steps per revolution) |
| `E` | enable coils |
| `D` / `S` | stop and de-energise |
| `?` | report position, target and actual RPM, busy flag |

Anything else answers `ERR`.

Calibration (`run_calibration`, `OpenLoopCalibrator`) and the loops take
`clock` callables returning milliseconds and `sleep` callables taking
milliseconds; they default to `time.monotonic` and `time.sleep`.

## What the package does not do

- It has no command-line program and no serial-port handling; `CommandParser`
  consumes text you pass to `feed()` and returns replies as strings.
- It talks to no hardware by itself. `SensorBus`, `I2CBus`, `PumpBackend` and
  `StepDriver` are interfaces to implement for a real bus or pins; `Eeprom` is
  an in-memory store only.
- `FlowLoop` has no built-in regulator: you pass a
  `regulator(measured, target)` callable returning the commanded flow in µL/min.
- The display module produces text only; it draws on no screen.

## Tests

The test suite uses pytest; install the `test` extra to get it and run
`pytest`.