"""Hardware interfaces and parameter bundles of the exponential-gain controller."""

from __future__ import annotations

import struct
from abc import ABC, abstractmethod
from dataclasses import dataclass, field

_PARAMS = struct.Struct("<15f")


class FlowSensor(ABC):
    """A source of flow readings in µL/min."""

    @abstractmethod
    def read_ul_per_min(self) -> float: ...


class PumpDriver(ABC):
    """A pump driven by an absolute speed in steps per second."""

    @abstractmethod
    def set_target_sps(self, sps: float) -> None: ...

    def stop(self) -> None:
        self.set_target_sps(0.0)

    def set_command(self, duty_frac: float) -> None:
        """Legacy entry point; passes the value straight on as SPS."""
        self.set_target_sps(duty_frac)


@dataclass(frozen=True)
class ScaleAffine:
    """Raw-to-true affine scale ``y = a * raw + b``."""

    a: float = 1.0
    b: float = 0.0


@dataclass(frozen=True)
class ExpParams:
    """Exponential gain-schedule parameters, primary and secondary curve."""

    a: float = 0.0
    b: float = 0.0
    k: float = 0.0
    c: float = 0.0
    t_ref: float = 0.0
    alpha_static: float = 0.20
    a2: float = 0.05
    b2: float = 0.001
    k2: float = 0.95
    c2: float = 0.0


@dataclass(frozen=True)
class EgcParams:
    """Factory calibration bundle stored in non-volatile memory."""

    scale: ScaleAffine = field(default_factory=ScaleAffine)
    gain: ExpParams = field(default_factory=ExpParams)
    kp: float = 0.0
    kd: float = 0.0
    sps_max: float = 2000.0

    def to_bytes(self) -> bytes:
        """Pack as little-endian 32-bit floats."""
        g = self.gain
        return _PARAMS.pack(
            self.scale.a, self.scale.b,
            g.a, g.b, g.k, g.c, g.t_ref, g.alpha_static, g.a2, g.b2, g.k2, g.c2,
            self.kp, self.kd, self.sps_max,
        )

    @classmethod
    def from_bytes(cls, data: bytes) -> EgcParams:
        if len(data) != _PARAMS.size:
            raise ValueError(f"expected {_PARAMS.size} bytes, got {len(data)}")
        v = _PARAMS.unpack(data)
        return cls(
            scale=ScaleAffine(v[0], v[1]),
            gain=ExpParams(*v[2:12]),
            kp=v[12],
            kd=v[13],
            sps_max=v[14],
        )


@dataclass(frozen=True)
class CalConfig:
    """Settings for an open-loop calibration run."""

    f_nom_ul_min: float = 0.0
    sps_max: float = 2000.0
    settle_ms: int = 2000
    window_ms: int = 800
    sample_ms: int = 50
    ki_min: float = 0.0
    ki_max: float = 0.40
    alpha_static: float = 0.20
    knee_frac: float = 0.5
    stab_pct: float = 2.5


EGC_PARAMS = EgcParams(
    scale=ScaleAffine(0.993, 2.1),
    gain=ExpParams(
        a=0.00,
        b=0.00025,
        k=0.38,
        c=0.0,
        t_ref=57.4,
        alpha_static=0.20,
        a2=0.05,
        b2=0.00012,
        k2=0.95,
        c2=0.0,
    ),
    kp=0.0,
    kd=0.0,
)