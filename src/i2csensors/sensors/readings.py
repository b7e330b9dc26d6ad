"""
Immutable reading types produced by the drivers.

A new instance is created for every acquisition; none of them hold bus
resources, so they can be handed to other threads freely.
"""

from __future__ import annotations

import math
from dataclasses import asdict, dataclass
from typing import Any, Dict

STANDARD_SEA_LEVEL_HPA = 1013.25

# International barometric formula constants
_ALTITUDE_SCALE_M = 44330.0
_ALTITUDE_EXPONENT = 5.255


@dataclass(frozen=True)
class Illumination:
    lux: float

    def as_dict(self) -> Dict[str, Any]:
        return asdict(self)

    def __str__(self) -> str:
        return f"Illumination({self.lux:.2f} lx)"


@dataclass(frozen=True)
class BarometricReading:
    """Pressure in hPa and die temperature in °C."""

    pressure_hpa: float
    temperature_c: float

    def to_sealevel_pressure(self, altitude_m: float) -> float:
        """Equivalent sea-level pressure (hPa) for a station at ``altitude_m``."""
        return self.pressure_hpa / math.pow(1.0 - altitude_m / _ALTITUDE_SCALE_M, _ALTITUDE_EXPONENT)

    def to_altitude(self, sea_level_pressure_hpa: float = STANDARD_SEA_LEVEL_HPA) -> float:
        """Altitude in metres given the current sea-level pressure."""
        return _ALTITUDE_SCALE_M * (
            1.0 - math.pow(self.pressure_hpa / sea_level_pressure_hpa, 1.0 / _ALTITUDE_EXPONENT)
        )

    def as_dict(self) -> Dict[str, Any]:
        return asdict(self)

    def __str__(self) -> str:
        return f"BarometricReading({self.pressure_hpa:.2f} hPa, {self.temperature_c:.2f} °C)"


@dataclass(frozen=True)
class RelativeHumidity:
    temperature_c: float
    humidity_pct: float

    @property
    def dew_point(self) -> float:
        """
        Dew point in °C (Magnus form with the Buck enhancement term).

        Two coefficient pairs are used: one for sub-zero temperatures and one
        for everything else.
        """
        t = self.temperature_c
        d = 234.5
        if t < 0:
            b, c = 17.368, 238.88
        else:
            b, c = 17.966, 247.15
        gamma = math.log(self.humidity_pct / 100.0 * math.exp((b - t / d) * (t / (c + t))))
        return c * gamma / (b - gamma)

    def as_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["dew_point_c"] = self.dew_point
        return data

    def __str__(self) -> str:
        return f"RelativeHumidity({self.temperature_c:.2f} °C, {self.humidity_pct:.2f} %)"


@dataclass(frozen=True)
class MagneticField:
    """Magnetic flux density per axis in µT."""

    x: float
    y: float
    z: float

    @property
    def magnitude(self) -> float:
        return math.sqrt(self.x * self.x + self.y * self.y + self.z * self.z)

    def as_dict(self) -> Dict[str, Any]:
        return asdict(self)

    def __str__(self) -> str:
        return f"MagneticField({self.x:.2f}, {self.y:.2f}, {self.z:.2f} µT)"
