"""
Honeywell HMC5883L three-axis magnetometer.

Readings are single-shot. With a data-ready (DRDY) pin the driver waits for
the falling edge (bounded by a timeout); without one it waits a fixed settle
time and reads the data registers directly. ``connect()`` runs the chip's
positive-bias self-test before anything else so a damaged or miswired part is
never trusted.
"""

from __future__ import annotations

import enum
import logging
import threading
import time
from typing import Optional, Sequence, Tuple

from ..core.contract import ReadableSensor, Sleep
from ..core.platform import BusProvider, EdgeInput, GpioProvider
from ..core.registers import RegisterDevice, be_int16
from ..errors import (
    ArgumentRangeError,
    CommunicationError,
    InvalidStateError,
    NotSupportedError,
    SelfTestError,
    SensorError,
    SensorTimeoutError,
)
from .readings import MagneticField

logger = logging.getLogger(__name__)

ADDRESS = 0x1E
IDENTIFICATION = b"H43"
REGISTER_COUNT = 13

DRDY_TIMEOUT_S = 0.200
SETTLE_DELAY_S = 0.100
SELF_TEST_CYCLE_S = 0.080

# Positive self-test limits at gain 390 (datasheet)
SELF_TEST_LOW = 243
SELF_TEST_HIGH = 575
SELF_TEST_REFERENCE_GAIN = 390


class Register(enum.IntEnum):
    CONF_A = 0
    CONF_B = 1
    MODE = 2
    DATA_X_MSB = 3
    DATA_X_LSB = 4
    DATA_Z_MSB = 5
    DATA_Z_LSB = 6
    DATA_Y_MSB = 7
    DATA_Y_LSB = 8
    STATUS = 9
    ID_A = 10
    ID_B = 11
    ID_C = 12


class ConfigA(enum.IntFlag):
    MA1 = 1 << 6
    MA0 = 1 << 5
    DO2 = 1 << 4
    DO1 = 1 << 3
    DO0 = 1 << 2
    MS1 = 1 << 1
    MS0 = 1 << 0

    AVERAGE_1 = 0
    AVERAGE_2 = MA0
    AVERAGE_4 = MA1
    AVERAGE_8 = MA1 | MA0

    BIAS_NONE = 0
    BIAS_POSITIVE = MS0
    BIAS_NEGATIVE = MS1

    RATE_0_75HZ = 0
    RATE_1_5HZ = DO0
    RATE_3HZ = DO1
    RATE_7_5HZ = DO1 | DO0
    RATE_15HZ = DO2
    RATE_30HZ = DO2 | DO0
    RATE_75HZ = DO2 | DO1


class Mode(enum.IntEnum):
    CONTINUOUS = 0x00
    SINGLE_SHOT = 0x01
    IDLE = 0x02


GAIN_MASK = 0xE0

#: (ConfB gain bits, counts per gauss), most to least sensitive
GAIN_TABLE: Tuple[Tuple[int, int], ...] = (
    (0x00, 1370),
    (0x20, 1090),
    (0x40, 820),
    (0x60, 660),
    (0x80, 440),
    (0xA0, 390),
    (0xC0, 330),
    (0xE0, 230),
)
_GAIN_BY_CODE = dict(GAIN_TABLE)
_CODE_BY_GAIN = {gain: code for code, gain in GAIN_TABLE}

SELF_TEST_GAINS = (390, 330, 230)

NORMAL_CONF_A = ConfigA.RATE_15HZ | ConfigA.AVERAGE_8 | ConfigA.BIAS_NONE
SELF_TEST_CONF_A = ConfigA.RATE_15HZ | ConfigA.AVERAGE_8 | ConfigA.BIAS_POSITIVE


def gain_for_code(conf_b: int) -> int:
    return _GAIN_BY_CODE[conf_b & GAIN_MASK]


def self_test_bounds(gain: int) -> Tuple[int, int]:
    """Exclusive (low, high) axis limits for the positive self-test at ``gain``."""
    return (
        SELF_TEST_LOW * gain // SELF_TEST_REFERENCE_GAIN,
        SELF_TEST_HIGH * gain // SELF_TEST_REFERENCE_GAIN,
    )


def decode_field(registers: Sequence[int]) -> MagneticField:
    """
    Decode 8 bytes read from ConfB onwards.

    Layout: ConfB, Mode, X, Z, Y (the chip stores Z before Y). Axis counts
    are scaled by the gain in ConfB to µT (1 gauss = 100 µT).
    """
    gain = float(gain_for_code(registers[0]))
    x = be_int16(registers, 2)
    z = be_int16(registers, 4)
    y = be_int16(registers, 6)
    return MagneticField(x / gain * 100.0, y / gain * 100.0, z / gain * 100.0)


class _PendingReading:
    """One-shot result slot resolved from the DRDY edge callback."""

    def __init__(self) -> None:
        self._done = threading.Event()
        self.field: Optional[MagneticField] = None
        self.error: Optional[BaseException] = None

    def resolve(self, field: MagneticField) -> None:
        self.field = field
        self._done.set()

    def fail(self, error: BaseException) -> None:
        self.error = error
        self._done.set()

    def wait(self, timeout: float) -> bool:
        return self._done.wait(timeout)


class HMC5883L(ReadableSensor[MagneticField]):
    """HMC5883L driver with optional DRDY interrupt."""

    name = "HMC5883L"
    address = ADDRESS

    def __init__(
        self,
        bus: Optional[BusProvider],
        gpio: Optional[GpioProvider] = None,
        data_ready_pin: Optional[int] = None,
        *,
        sleep: Sleep = time.sleep,
        drdy_timeout_s: float = DRDY_TIMEOUT_S,
    ) -> None:
        super().__init__(bus, sleep=sleep)
        if data_ready_pin is not None and gpio is None:
            raise NotSupportedError("HMC5883L needs a GPIO provider to use a data-ready pin")
        self._gpio = gpio
        self.data_ready_pin = data_ready_pin
        self.drdy_timeout_s = drdy_timeout_s
        self._drdy: Optional[EdgeInput] = None
        self._pending: Optional[_PendingReading] = None

    # ------------------------------------------------------------------
    # Connection
    # ------------------------------------------------------------------
    def _handshake(self, device: RegisterDevice) -> None:
        ident = device.write_read(Register.ID_A, 3)
        if ident != IDENTIFICATION:
            raise CommunicationError(f"unexpected identification {ident!r}")
        # Self-test before attaching to the DRDY pin
        self.self_test()
        if self.data_ready_pin is not None:
            self._drdy = self._gpio.open_edge_input(self.data_ready_pin, self._data_ready)

    def self_test(self) -> None:
        """
        Positive-bias self-test, escalating gain when local fields saturate.

        Raises ``SelfTestError`` if the axes are out of bounds at every gain.
        The chip is put back into normal measurement mode either way.
        """
        device = self._device
        if device is None:
            raise InvalidStateError(f"{self.name} device not open")
        level = 0
        device.write(Register.CONF_A, SELF_TEST_CONF_A)
        device.write(Register.CONF_B, _CODE_BY_GAIN[SELF_TEST_GAINS[level]])
        device.write(Register.MODE, Mode.CONTINUOUS)
        try:
            while True:
                # wait for a measurement to become available
                self._sleep(SELF_TEST_CYCLE_S)
                raw = device.write_read(Register.DATA_X_MSB, 6)
                axes = (be_int16(raw, 0), be_int16(raw, 2), be_int16(raw, 4))

                gain = SELF_TEST_GAINS[level]
                low, high = self_test_bounds(gain)
                if all(low < value < high for value in axes):
                    logger.info("%s self-test passed at gain %d: %s", self.name, gain, axes)
                    return

                logger.debug("%s self-test out of bounds at gain %d: %s", self.name, gain, axes)
                if level >= len(SELF_TEST_GAINS) - 1:
                    raise SelfTestError(f"{self.name} self-test failed, last axes {axes}")
                level += 1
                device.write(Register.CONF_B, _CODE_BY_GAIN[SELF_TEST_GAINS[level]])
                # one measurement cycle still uses the old gain
                self._sleep(SELF_TEST_CYCLE_S)
        finally:
            device.write(Register.CONF_A, NORMAL_CONF_A)

    # ------------------------------------------------------------------
    # Register access
    # ------------------------------------------------------------------
    def read_register(self, register: int, count: int = 1) -> bytes:
        device = self._ensure_connected()
        if count < 1 or int(register) + count > REGISTER_COUNT:
            raise ArgumentRangeError(f"cannot read {count} byte(s) from register {int(register)}")
        return device.write_read(register, count)

    def write_register(self, register: int, value: int) -> None:
        device = self._ensure_connected()
        if not 0 <= int(register) < REGISTER_COUNT:
            raise ArgumentRangeError(f"no such register {int(register)}")
        device.write(register, value)

    @property
    def gain(self) -> int:
        """Current gain in counts per gauss (one of the ``GAIN_TABLE`` values)."""
        return gain_for_code(self.read_register(Register.CONF_B)[0])

    @gain.setter
    def gain(self, value: int) -> None:
        code = _CODE_BY_GAIN.get(int(value))
        if code is None:
            raise ArgumentRangeError(
                f"gain must be one of {sorted(_CODE_BY_GAIN)}, got {value}"
            )
        self.write_register(Register.CONF_B, code)

    # ------------------------------------------------------------------
    # Acquisition
    # ------------------------------------------------------------------
    def read(self) -> MagneticField:
        """Single-shot measurement of all three axes."""
        device = self._ensure_connected()
        if self._drdy is None:
            device.write(Register.MODE, Mode.SINGLE_SHOT)
            # Ensure data is available.
            self._sleep(SETTLE_DELAY_S)
            return decode_field(device.write_read(Register.CONF_B, 8))

        pending = _PendingReading()
        self._pending = pending
        try:
            device.write(Register.MODE, Mode.SINGLE_SHOT)
            if not pending.wait(self.drdy_timeout_s):
                raise SensorTimeoutError(
                    f"{self.name} data-ready not signalled within {self.drdy_timeout_s * 1000:.0f} ms"
                )
        finally:
            self._pending = None
        if pending.error is not None:
            raise pending.error
        return pending.field

    def _data_ready(self) -> None:
        pending = self._pending
        device = self._device
        if pending is None or device is None:
            return
        try:
            pending.resolve(decode_field(device.write_read(Register.CONF_B, 8)))
        except (OSError, SensorError) as exc:
            pending.fail(exc)

    def _release_resources(self) -> None:
        self._pending = None
        drdy, self._drdy = self._drdy, None
        if drdy is not None:
            drdy.close()
