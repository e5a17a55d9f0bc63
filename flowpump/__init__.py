"""Flow control for stepper-driven pumps: filters, PID, calibration, device and loop models."""

__version__ = "0.1.0"