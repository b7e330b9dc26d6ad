"""
ROHM BH1750FVI ambient light sensor.

The chip has no register map: every interaction is a single op-code byte,
and a measurement is a plain two-byte read. One-shot measurements power the
chip down automatically; continuous mode keeps it converting and the driver
polls the result register from a background timer.

Conversion::

    lux = counts / 1.2 * (69 / MT) / (2 if VERY_HIGH else 1)

where ``MT`` is the measurement-time register (default 69, range 31..254).
"""

from __future__ import annotations

import enum
import logging
import sys
import time
from typing import Callable, Optional

from ..core.contract import NotifyingSensor, Sleep
from ..core.periodic import PeriodicTimer
from ..core.platform import BusProvider
from ..core.registers import RegisterDevice, be_uint16
from ..errors import ArgumentRangeError, InvalidStateError, SensorError
from .readings import Illumination

logger = logging.getLogger(__name__)

ADDRESS_LOW = 0x23
ADDRESS_HIGH = 0x5C

MT_DEFAULT = 69
MT_MIN = 31
MT_MAX = 254
MIN_PERIOD_MS = 10
CONTINUOUS_GRACE_S = 1.0

# Max conversion times: L mode 24 ms, H/H2 180 ms (typ. 16 / 120 ms)
LOW_RES_DELAY_S = 0.024
HIGH_RES_DELAY_S = 0.180


class Command(enum.IntEnum):
    POWER_DOWN = 0x00
    POWER_ON = 0x01
    RESET = 0x07
    CONT_H = 0x10
    CONT_H2 = 0x11
    CONT_L = 0x13
    ONE_H = 0x20
    ONE_H2 = 0x21
    ONE_L = 0x23
    # Low 3 bits carry MT[7:5]
    MT_HIGH = 0x40
    # Low 5 bits carry MT[4:0]
    MT_LOW = 0x60


class Resolution(enum.Enum):
    """Measurement modes: LOW is 4 lx steps, HIGH 1 lx, VERY_HIGH 0.5 lx."""

    LOW = "low"
    HIGH = "high"
    VERY_HIGH = "very_high"


_ONE_SHOT = {
    Resolution.LOW: Command.ONE_L,
    Resolution.HIGH: Command.ONE_H,
    Resolution.VERY_HIGH: Command.ONE_H2,
}
_CONTINUOUS = {
    Resolution.LOW: Command.CONT_L,
    Resolution.HIGH: Command.CONT_H,
    Resolution.VERY_HIGH: Command.CONT_H2,
}

TimerFactory = Callable[[Callable[[], None], float, float], PeriodicTimer]


def counts_to_lux(counts: int, measurement_time: int, mode: Resolution) -> float:
    divisor = 2.0 if mode is Resolution.VERY_HIGH else 1.0
    return counts / 1.2 * (69.0 / measurement_time) / divisor


class BH1750(NotifyingSensor[Illumination]):
    """BH1750FVI driver with one-shot and continuous acquisition."""

    name = "BH1750"

    def __init__(
        self,
        bus: Optional[BusProvider],
        *,
        addr_low: bool = True,
        sleep: Sleep = time.sleep,
        timer_factory: TimerFactory = PeriodicTimer,
    ) -> None:
        super().__init__(bus, Illumination(0.0), sleep=sleep)
        self.address = ADDRESS_LOW if addr_low else ADDRESS_HIGH
        self._timer_factory = timer_factory
        self._timer: Optional[PeriodicTimer] = None
        self._powered = False
        self._continuous = False
        self._mode = Resolution.LOW
        self._mtime = MT_DEFAULT
        self._period_ms = 1000

    # ------------------------------------------------------------------
    # Configuration
    # ------------------------------------------------------------------
    @property
    def powered(self) -> bool:
        return self._powered

    @powered.setter
    def powered(self, value: bool) -> None:
        value = bool(value)
        if value == self._powered:
            return
        self._send(Command.POWER_ON if value else Command.POWER_DOWN)
        self._powered = value

    @property
    def mode(self) -> Resolution:
        return self._mode

    @mode.setter
    def mode(self, value: Resolution) -> None:
        try:
            value = Resolution(value)
        except ValueError as exc:
            raise ArgumentRangeError(f"unknown measurement mode {value!r}") from exc
        if value is self._mode:
            return
        self._mode = value
        if self._continuous:
            self._restart_continuous()

    @property
    def measurement_time(self) -> int:
        """Measurement Time register for H and H2 modes, 31..254."""
        return self._mtime

    @measurement_time.setter
    def measurement_time(self, value: int) -> None:
        value = int(value)
        if not MT_MIN <= value <= MT_MAX:
            raise ArgumentRangeError(f"measurement_time must be within {MT_MIN}..{MT_MAX}, got {value}")
        if value == self._mtime:
            return
        self._mtime = value
        if not self._connected:
            return
        restart = self._continuous
        if restart:
            self._stop_continuous()
        self._write_measurement_time()
        if restart:
            self._start_continuous()
        else:
            self.powered = False

    @property
    def continuous_period_ms(self) -> int:
        """Milliseconds between continuous-mode reads, at least 10."""
        return self._period_ms

    @continuous_period_ms.setter
    def continuous_period_ms(self, value: int) -> None:
        value = int(value)
        if value < MIN_PERIOD_MS:
            raise ArgumentRangeError(f"continuous_period_ms must be >= {MIN_PERIOD_MS}, got {value}")
        if value == self._period_ms:
            return
        self._period_ms = value
        if self._continuous:
            self._restart_continuous()

    @property
    def continuous(self) -> bool:
        return self._continuous

    @continuous.setter
    def continuous(self, value: bool) -> None:
        value = bool(value)
        if value == self._continuous:
            return
        if value:
            self._ensure_connected()
            self._start_continuous()
        else:
            self._stop_continuous()

    # ------------------------------------------------------------------
    # Acquisition
    # ------------------------------------------------------------------
    def read(self) -> Illumination:
        """
        Trigger a one-shot measurement and return it.

        In continuous mode the cached value is returned without touching the
        bus; the background timer keeps it fresh.
        """
        device = self._ensure_connected()
        if self._continuous:
            return self._last_reading

        self.powered = True
        self._send(_ONE_SHOT[self._mode])
        self._sleep(LOW_RES_DELAY_S if self._mode is Resolution.LOW else HIGH_RES_DELAY_S)
        counts = be_uint16(device.read(2))
        logger.debug("Read counts: %d", counts)
        # The chip powers itself down after a one-shot measurement.
        self._powered = False

        reading = Illumination(self._counts_to_lux(counts))
        self._update_last_reading(reading)
        return reading

    def _counts_to_lux(self, counts: int) -> float:
        return counts_to_lux(counts, self._mtime, self._mode)

    def _differs(self, new: Illumination, old: Illumination) -> bool:
        return abs(new.lux - old.lux) >= sys.float_info.epsilon

    def _start_continuous(self) -> None:
        self.powered = True
        self._send(_CONTINUOUS[self._mode])
        self._timer = self._timer_factory(
            self._sample_tick, CONTINUOUS_GRACE_S, self._period_ms / 1000.0
        )
        self._timer.start()
        self._continuous = True
        logger.info("%s continuous mode on (%s, every %d ms)", self.name, self._mode.value, self._period_ms)

    def _stop_continuous(self) -> None:
        timer, self._timer = self._timer, None
        if timer is not None:
            timer.cancel()
        self._continuous = False
        self.powered = False
        logger.info("%s continuous mode off", self.name)

    def _restart_continuous(self) -> None:
        self._stop_continuous()
        self._start_continuous()

    def _sample_tick(self) -> None:
        device = self._device
        if device is None:
            return
        try:
            counts = be_uint16(device.read(2))
        except (OSError, SensorError) as exc:
            logger.warning("Reading a luminance value failed: %s", exc)
            return
        self._update_last_reading(Illumination(self._counts_to_lux(counts)))

    # ------------------------------------------------------------------
    # Low level
    # ------------------------------------------------------------------
    def _handshake(self, device: RegisterDevice) -> None:
        self._powered = False
        self.powered = True
        self._write_measurement_time()
        self.powered = False

    def _send(self, command: Command) -> None:
        if self._device is None:
            raise InvalidStateError(f"{self.name} device not yet initialized")
        logger.debug("SendCommand %s", command.name)
        self._device.command(command)

    def _write_measurement_time(self) -> None:
        """Both op-codes must be sent, high bits first, for MT to take effect."""
        self.powered = True
        value = self._mtime
        logger.debug("WriteMTReg %d", value)
        self._device.command(Command.MT_HIGH | (value >> 5))
        self._device.command(Command.MT_LOW | (value & 0x1F))

    def _release_resources(self) -> None:
        try:
            if self._continuous:
                self._stop_continuous()
            elif self._connected:
                self.powered = False
        finally:
            self._timer = None
            self._continuous = False
            self._powered = False
