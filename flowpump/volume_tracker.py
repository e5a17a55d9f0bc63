"""Cumulative volume and mass integrator for a measured flow."""

from __future__ import annotations


class VolumeTracker:
    """Integrates flow in µL/min over millisecond intervals."""

    def __init__(self, density_g_per_ml: float = 1.0) -> None:
        self._density = density_g_per_ml
        self._vol_ul = 0.0

    def update(self, flow_ul_per_min: float, dt_ms: int) -> None:
        """Add the volume passed at ``flow_ul_per_min`` during ``dt_ms``."""
        if dt_ms < 0:
            raise ValueError("dt_ms must not be negative")
        self._vol_ul += flow_ul_per_min * dt_ms / 60000.0

    def reset(self) -> None:
        self._vol_ul = 0.0

    def volume_ul(self) -> float:
        return self._vol_ul

    def mass_g(self) -> float:
        return self._vol_ul * self._density / 1000.0