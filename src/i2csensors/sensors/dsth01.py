"""
DSTH01 (Si7005-class) relative humidity and temperature sensor.

The chip sits at a fixed I2C address and only responds while its active-low
chip-select line is held low, so several of them can share one bus by
taking turns on chip-select. Every exit path of a reading releases
chip-select again.
"""

from __future__ import annotations

import enum
import logging
import time
from typing import Optional

from ..core.contract import ReadableSensor, Sleep
from ..core.platform import BusProvider, GpioProvider, OutputLine
from ..core.registers import RegisterDevice, be_uint16
from ..errors import NotSupportedError
from .readings import RelativeHumidity

logger = logging.getLogger(__name__)

ADDRESS = 0x40

WAKE_DELAY_S = 0.015
POLL_INTERVAL_S = 0.010
STATUS_NOT_READY = 0x01


class Register(enum.IntEnum):
    STATUS = 0x00
    DATA_H = 0x01
    DATA_L = 0x02
    CONFIG = 0x03
    ID = 0x04


class Config(enum.IntFlag):
    START = 1 << 0
    HEAT = 1 << 1
    TEMP = 1 << 4
    FAST = 1 << 5


def raw_to_temperature(raw: int) -> float:
    return (raw >> 2) / 32.0 - 50.0


def raw_to_humidity(raw: int) -> float:
    return (raw >> 4) / 16.0 - 24.0


class DSTH01(ReadableSensor[RelativeHumidity]):
    """DSTH01 driver gated by a GPIO chip-select pin."""

    name = "DSTH01"
    address = ADDRESS

    def __init__(
        self,
        bus: Optional[BusProvider],
        gpio: Optional[GpioProvider],
        chip_select_pin: int,
        *,
        sleep: Sleep = time.sleep,
    ) -> None:
        super().__init__(bus, sleep=sleep)
        if gpio is None:
            raise NotSupportedError("DSTH01 requires a GPIO provider for chip-select")
        self._gpio = gpio
        self.chip_select_pin = int(chip_select_pin)
        self._chip_select: Optional[OutputLine] = None
        self.heater = False

    def _handshake(self, device: RegisterDevice) -> None:
        self._chip_select = self._gpio.open_output(self.chip_select_pin, initial_high=False)
        try:
            self._sleep(WAKE_DELAY_S)
            device.write_read(Register.STATUS, 1)
        finally:
            self._chip_select.on()

    def read(self) -> RelativeHumidity:
        """Temperature then humidity conversion in standard (non-fast) mode."""
        device = self._ensure_connected()
        chip_select = self._chip_select
        heat = Config.HEAT if self.heater else Config(0)
        try:
            chip_select.off()
            self._sleep(WAKE_DELAY_S)

            device.write(Register.CONFIG, Config.TEMP | Config.START | heat)
            self._wait_conversion_ready(device)
            temperature = raw_to_temperature(be_uint16(device.write_read(Register.DATA_H, 2)))

            device.write(Register.CONFIG, Config.START | heat)
            self._wait_conversion_ready(device)
            humidity = raw_to_humidity(be_uint16(device.write_read(Register.DATA_H, 2)))
        finally:
            chip_select.on()

        return RelativeHumidity(temperature_c=temperature, humidity_pct=humidity)

    def _wait_conversion_ready(self, device: RegisterDevice) -> None:
        while True:
            self._sleep(POLL_INTERVAL_S)
            status = device.write_read(Register.STATUS, 1)[0]
            if not status & STATUS_NOT_READY:
                return

    def _release_resources(self) -> None:
        chip_select, self._chip_select = self._chip_select, None
        if chip_select is not None:
            chip_select.close()
