"""
Bosch Sensortec BMP180 barometric pressure sensor.

Each reading is a two-phase acquisition (temperature, then pressure at the
configured oversampling) followed by the datasheet's fixed-point
compensation using the factory calibration coefficients stored in EEPROM.
"""

from __future__ import annotations

import enum
import logging
import time
from dataclasses import dataclass
from typing import Optional, Tuple

from ..core.contract import ReadableSensor, Sleep
from ..core.platform import BusProvider
from ..core.registers import RegisterDevice, be_int16, be_uint16
from ..errors import ArgumentRangeError, CommunicationError
from .readings import BarometricReading

logger = logging.getLogger(__name__)

ADDRESS = 0x77
CHIP_ID = 0x55

CMD_TEMPERATURE = 0x2E
CMD_PRESSURE = 0x34
# Start of conversion bit in ctrl_meas; set while a conversion runs
SCO_BIT = 1 << 5

TEMPERATURE_DELAY_S = 0.005
TEMPERATURE_POLL_S = 0.005
PRESSURE_POLL_S = 0.010

CALIBRATION_SIZE = 22


class Register(enum.IntEnum):
    AC1 = 0xAA
    AC2 = 0xAC
    AC3 = 0xAE
    AC4 = 0xB0
    AC5 = 0xB2
    AC6 = 0xB4
    B1 = 0xB6
    B2 = 0xB8
    MB = 0xBA
    MC = 0xBC
    MD = 0xBE
    ID = 0xD0
    SOFT_RESET = 0xE0
    CTRL_MEAS = 0xF4
    OUT_MSB = 0xF6
    OUT_LSB = 0xF7
    OUT_XLSB = 0xF8


@dataclass(frozen=True)
class CalibrationCoefficients:
    """Factory calibration words; AC4..AC6 are unsigned, the rest signed."""

    ac1: int
    ac2: int
    ac3: int
    ac4: int
    ac5: int
    ac6: int
    b1: int
    b2: int
    mb: int
    mc: int
    md: int

    @classmethod
    def from_bytes(cls, data: bytes) -> "CalibrationCoefficients":
        if len(data) < CALIBRATION_SIZE:
            raise CommunicationError(
                f"Expected {CALIBRATION_SIZE} calibration bytes, got {len(data)}"
            )
        return cls(
            ac1=be_int16(data, 0),
            ac2=be_int16(data, 2),
            ac3=be_int16(data, 4),
            ac4=be_uint16(data, 6),
            ac5=be_uint16(data, 8),
            ac6=be_uint16(data, 10),
            b1=be_int16(data, 12),
            b2=be_int16(data, 14),
            mb=be_int16(data, 16),
            mc=be_int16(data, 18),
            md=be_int16(data, 20),
        )


def _tdiv(a: int, b: int) -> int:
    """Integer division truncating toward zero, like C."""
    q = abs(a) // abs(b)
    return q if (a >= 0) == (b >= 0) else -q


def compensate(cal: CalibrationCoefficients, ut: int, up: int, oversampling: int) -> Tuple[int, int]:
    """
    Datasheet compensation algorithm.

    Returns ``(temperature, pressure)`` in 0.1 °C and Pa. Shifts are arithmetic
    and divisions truncate, matching the reference C implementation bit for
    bit. B4 and B7 are 32-bit unsigned in the reference code.
    """
    oss = oversampling

    x1 = ((ut - cal.ac6) * cal.ac5) >> 15
    x2 = _tdiv(cal.mc << 11, x1 + cal.md)
    b5 = x1 + x2
    temperature = (b5 + 8) >> 4

    b6 = b5 - 4000
    x1 = (cal.b2 * ((b6 * b6) >> 12)) >> 11
    x2 = (cal.ac2 * b6) >> 11
    x3 = x1 + x2
    b3 = _tdiv(((cal.ac1 * 4 + x3) << oss) + 2, 4)
    x1 = (cal.ac3 * b6) >> 13
    x2 = (cal.b1 * ((b6 * b6) >> 12)) >> 16
    x3 = (x1 + x2 + 2) >> 2
    b4 = (cal.ac4 * ((x3 + 32768) & 0xFFFFFFFF)) >> 15
    b7 = (((up - b3) & 0xFFFFFFFF) * (50000 >> oss)) & 0xFFFFFFFF
    if b7 < 0x80000000:
        p = (b7 * 2) // b4
    else:
        p = (b7 // b4) * 2
    x1 = (p >> 8) * (p >> 8)
    x1 = (x1 * 3038) >> 16
    x2 = (-7357 * p) >> 16
    pressure = p + ((x1 + x2 + 3791) >> 4)
    return temperature, pressure


class BMP180(ReadableSensor[BarometricReading]):
    """BMP180 driver; ``oversampling`` 0..3 trades speed for noise."""

    name = "BMP180"
    address = ADDRESS

    def __init__(self, bus: Optional[BusProvider], *, sleep: Sleep = time.sleep) -> None:
        super().__init__(bus, sleep=sleep)
        self._oversampling = 0
        self._calibration: Optional[CalibrationCoefficients] = None

    @property
    def oversampling(self) -> int:
        return self._oversampling

    @oversampling.setter
    def oversampling(self, value: int) -> None:
        value = int(value)
        if not 0 <= value <= 3:
            raise ArgumentRangeError(f"oversampling must be within 0..3, got {value}")
        self._oversampling = value

    @property
    def calibration(self) -> Optional[CalibrationCoefficients]:
        """Cached coefficients, or None until the first reading."""
        return self._calibration

    def _handshake(self, device: RegisterDevice) -> None:
        chip_id = device.write_read(Register.ID, 1)[0]
        if chip_id != CHIP_ID:
            raise CommunicationError(f"I2C device communication failure (chip id 0x{chip_id:02X})")
        # Coefficients belong to one connection; a reconnect reads them again.
        self._calibration = None

    def read_calibration(self) -> CalibrationCoefficients:
        """Read the EEPROM coefficients once per connection."""
        device = self._ensure_connected()
        if self._calibration is None:
            self._calibration = CalibrationCoefficients.from_bytes(
                device.write_read(Register.AC1, CALIBRATION_SIZE)
            )
            logger.debug("%s calibration %s", self.name, self._calibration)
        return self._calibration

    def read(self) -> BarometricReading:
        device = self._ensure_connected()
        cal = self.read_calibration()
        oss = self._oversampling

        device.write(Register.CTRL_MEAS, CMD_TEMPERATURE)
        self._sleep(TEMPERATURE_DELAY_S)
        self._wait_idle(device, TEMPERATURE_POLL_S)
        raw_t = device.write_read(Register.OUT_MSB, 2)
        ut = be_uint16(raw_t)

        while True:
            device.write(Register.CTRL_MEAS, CMD_PRESSURE | (oss << 6))
            self._sleep(0.005 * (1 << oss))
            self._wait_idle(device, PRESSURE_POLL_S)
            raw_p = device.write_read(Register.OUT_MSB, 3)
            # Output registers still holding the temperature means the
            # pressure result has not landed yet.
            if raw_p[:2] != raw_t[:2]:
                break
            logger.debug("%s pressure registers not updated yet, retrying", self.name)
        up = ((raw_p[0] << 16) | (raw_p[1] << 8) | raw_p[2]) >> (8 - oss)

        temperature, pressure = compensate(cal, ut, up, oss)
        return BarometricReading(pressure_hpa=pressure / 100.0, temperature_c=temperature / 10.0)

    def _measuring(self, device: RegisterDevice) -> bool:
        status = device.write_read(Register.CTRL_MEAS, 1)[0]
        return bool(status & SCO_BIT)

    def _wait_idle(self, device: RegisterDevice, interval: float) -> None:
        while self._measuring(device):
            self._sleep(interval)

    def _release_resources(self) -> None:
        self._calibration = None
