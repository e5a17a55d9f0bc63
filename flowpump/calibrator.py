"""Open-loop calibration pulse and analytic Ki-curve solve."""

from __future__ import annotations

import logging
import math
import time
from collections.abc import Callable

from .egc_types import CalConfig, EgcParams, ExpParams, FlowSensor, PumpDriver, ScaleAffine

log = logging.getLogger(__name__)


class CalibrationError(Exception):
    """A calibration run was rejected; ``code`` names the check that failed."""

    def __init__(self, code: str, message: str) -> None:
        super().__init__(f"{code}: {message}")
        self.code = code


def _monotonic_ms() -> int:
    return int(time.monotonic() * 1000)


def _sleep_ms(ms: float) -> None:
    time.sleep(ms / 1000.0)


def run_calibration(
    cfg: CalConfig,
    sensor: FlowSensor,
    pump: PumpDriver,
    clock: Callable[[], int] | None = None,
    sleep: Callable[[float], None] | None = None,
) -> EgcParams:
    """Drive the pump at ``cfg.sps_max``, sample the flow and fit the Ki curve.

    ``clock`` returns milliseconds and ``sleep`` takes milliseconds.
    Raises :class:`CalibrationError` when a check fails.
    """
    clock = clock or _monotonic_ms
    sleep = sleep or _sleep_ms

    if cfg.ki_max <= cfg.ki_min:
        raise CalibrationError("E1", "Ki_max <= Ki_min")
    if not 0.0 < cfg.knee_frac < 1.0:
        raise CalibrationError("E2", "knee_frac out of range")

    log.debug("sps_max=%.1f", cfg.sps_max)
    pump.set_target_sps(cfg.sps_max)
    sleep(cfg.settle_ms)

    t0 = clock()
    total = total_sq = 0.0
    n = 0
    while clock() - t0 < cfg.window_ms:
        flow = sensor.read_ul_per_min()
        total += flow
        total_sq += flow * flow
        n += 1
        sleep(cfg.sample_ms)
    pump.stop()

    if n == 0:
        raise CalibrationError("E3", "sensor produced no samples")
    mean = total / n
    if mean < 1e-3:
        raise CalibrationError("E4", "mean flow is about zero")

    var = max(total_sq / n - mean * mean, 0.0)
    cv = 100.0 * math.sqrt(var) / mean
    if cv > cfg.stab_pct:
        raise CalibrationError("E5", f"flow unstable, CV={cv:.1f}")

    err_upper = cfg.f_nom_ul_min - mean
    t_ref = max(cfg.knee_frac * abs(err_upper), 1.0)
    b = (cfg.ki_max - cfg.ki_min) / (4.0 * t_ref * t_ref)

    log.info("calibration succeeded")
    return EgcParams(
        scale=ScaleAffine(),
        gain=ExpParams(
            a=cfg.ki_min,
            k=cfg.ki_max,
            b=b,
            c=0.0,
            t_ref=t_ref,
            alpha_static=cfg.alpha_static,
            a2=0.05,
            b2=b * 0.5,
            k2=0.95,
            c2=0.0,
        ),
    )