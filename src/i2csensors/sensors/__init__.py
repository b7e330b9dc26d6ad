"""Chip drivers and the reading types they produce.

:mod:`bh1750` (illumination), :mod:`bmp180` (pressure/temperature),
:mod:`dsth01` (humidity/temperature) and :mod:`hmc5883l` (magnetic field)
each build on :mod:`i2csensors.core` and are independent of one another.
"""

from .bh1750 import BH1750, Resolution
from .bmp180 import BMP180, CalibrationCoefficients
from .dsth01 import DSTH01
from .hmc5883l import GAIN_TABLE, HMC5883L
from .readings import BarometricReading, Illumination, MagneticField, RelativeHumidity

__all__ = [
    "BH1750",
    "BMP180",
    "DSTH01",
    "HMC5883L",
    "GAIN_TABLE",
    "BarometricReading",
    "CalibrationCoefficients",
    "Illumination",
    "MagneticField",
    "RelativeHumidity",
    "Resolution",
]
