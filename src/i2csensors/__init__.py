"""I2C sensor drivers.

Illumination (BH1750FVI), barometric pressure (BMP180), humidity (DSTH01)
and magnetic field (HMC5883L) drivers sharing one register-I/O layer and
one connect/read/close contract.
"""

from .errors import (
    ArgumentRangeError,
    BusNotFoundError,
    CommunicationError,
    InvalidStateError,
    NotSupportedError,
    SelfTestError,
    SensorError,
    SensorTimeoutError,
)
from .sensors import (
    BH1750,
    BMP180,
    DSTH01,
    HMC5883L,
    BarometricReading,
    Illumination,
    MagneticField,
    RelativeHumidity,
    Resolution,
)

__version__ = "0.1.0"

__all__ = [
    "ArgumentRangeError",
    "BH1750",
    "BMP180",
    "BarometricReading",
    "BusNotFoundError",
    "CommunicationError",
    "DSTH01",
    "HMC5883L",
    "Illumination",
    "InvalidStateError",
    "MagneticField",
    "NotSupportedError",
    "RelativeHumidity",
    "Resolution",
    "SelfTestError",
    "SensorError",
    "SensorTimeoutError",
]
