"""Bus plumbing shared by all drivers.

The register helper, the provider protocols with their smbus2/gpiozero
implementations, the sensor base classes, and the background timer used for
continuous sampling.
"""

from .contract import NotifyingSensor, ReadableSensor
from .periodic import PeriodicTimer
from .platform import (
    BusProvider,
    GpioProvider,
    GpiozeroProvider,
    I2cChannel,
    SMBusChannel,
    SMBusProvider,
    scan_bus,
)
from .registers import RegisterDevice, be_int16, be_uint16

__all__ = [
    "BusProvider",
    "GpioProvider",
    "GpiozeroProvider",
    "I2cChannel",
    "NotifyingSensor",
    "PeriodicTimer",
    "ReadableSensor",
    "RegisterDevice",
    "SMBusChannel",
    "SMBusProvider",
    "be_int16",
    "be_uint16",
    "scan_bus",
]
