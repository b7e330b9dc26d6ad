"""
Bus and GPIO providers.

Drivers never open ``/dev/i2c-*`` or GPIO lines themselves. They receive a
``BusProvider`` (and, where needed, a ``GpioProvider``) at construction and
ask it for channels and pins. The default implementations use ``smbus2`` for
I2C and ``gpiozero`` for GPIO; tests pass fakes that satisfy the same
protocols.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Callable, Iterable, List, Optional, Protocol, Sequence

from gpiozero import DigitalInputDevice, DigitalOutputDevice, GPIOZeroError
from smbus2 import SMBus, i2c_msg

from ..errors import CommunicationError

logger = logging.getLogger(__name__)

# Raspberry Pi exposes the header bus as i2c-1; some boards (MinnowBoard) use i2c-5.
DEFAULT_BUS_CANDIDATES = (5, 1)


class I2cChannel(Protocol):
    """Transaction channel bound to one slave address."""

    address: int

    def write(self, data: bytes) -> None: ...

    def read(self, size: int) -> bytes: ...

    def write_read(self, data: bytes, size: int) -> bytes: ...

    def close(self) -> None: ...


class BusProvider(Protocol):
    def find_bus(self) -> Optional[int]: ...

    def open_channel(self, bus_id: int, address: int, fast_mode: bool = True) -> I2cChannel: ...


class OutputLine(Protocol):
    def on(self) -> None: ...

    def off(self) -> None: ...

    def close(self) -> None: ...


class EdgeInput(Protocol):
    def close(self) -> None: ...


class GpioProvider(Protocol):
    def open_output(self, pin: int, initial_high: bool = True) -> OutputLine: ...

    def open_edge_input(self, pin: int, on_falling: Callable[[], None]) -> EdgeInput: ...


class SMBusChannel:
    """``I2cChannel`` backed by an ``smbus2.SMBus`` handle.

    Reads and writes go through ``i2c_rdwr`` so that ``write_read`` is a single
    repeated-start transaction, which the BMP180 and HMC5883L need for burst
    reads.
    """

    def __init__(self, bus: SMBus, address: int) -> None:
        self.bus = bus
        self.address = address

    def write(self, data: bytes) -> None:
        self.bus.i2c_rdwr(i2c_msg.write(self.address, list(data)))

    def read(self, size: int) -> bytes:
        msg = i2c_msg.read(self.address, size)
        self.bus.i2c_rdwr(msg)
        return bytes(list(msg))

    def write_read(self, data: bytes, size: int) -> bytes:
        write = i2c_msg.write(self.address, list(data))
        read = i2c_msg.read(self.address, size)
        self.bus.i2c_rdwr(write, read)
        return bytes(list(read))

    def close(self) -> None:
        self.bus.close()


class SMBusProvider:
    """Resolve a Linux I2C bus and open ``smbus2`` channels on it."""

    def __init__(
        self,
        candidates: Sequence[int] = DEFAULT_BUS_CANDIDATES,
        dev_root: str | Path = "/dev",
    ) -> None:
        self.candidates = tuple(candidates)
        self.dev_root = Path(dev_root)

    def find_bus(self) -> Optional[int]:
        for bus_id in self.candidates:
            if (self.dev_root / f"i2c-{bus_id}").exists():
                return bus_id
        logger.info("No I2C bus found among candidates %s", self.candidates)
        return None

    def open_channel(self, bus_id: int, address: int, fast_mode: bool = True) -> SMBusChannel:
        # Bus speed is a kernel/device-tree setting on Linux, not per transaction.
        logger.debug(
            "Opening i2c-%d addr 0x%02X (%s mode requested)",
            bus_id,
            address,
            "fast" if fast_mode else "standard",
        )
        return SMBusChannel(SMBus(bus_id), address)


class GpiozeroProvider:
    """``GpioProvider`` using gpiozero devices."""

    def open_output(self, pin: int, initial_high: bool = True) -> DigitalOutputDevice:
        try:
            return DigitalOutputDevice(pin, initial_value=initial_high)
        except GPIOZeroError as exc:
            raise CommunicationError(f"cannot open GPIO{pin} as output: {exc}") from exc

    def open_edge_input(self, pin: int, on_falling: Callable[[], None]) -> DigitalInputDevice:
        try:
            device = DigitalInputDevice(pin, pull_up=True)
        except GPIOZeroError as exc:
            raise CommunicationError(f"cannot open GPIO{pin} as input: {exc}") from exc
        # With the pull-up enabled gpiozero treats "low" as active, so a
        # falling edge is an activation.
        device.when_activated = on_falling
        return device


def scan_bus(bus_id: int, addresses: Iterable[int] = range(0x03, 0x78)) -> List[int]:
    """Return the addresses on ``bus_id`` that acknowledge a read."""
    found: List[int] = []
    with SMBus(bus_id) as bus:
        for addr in addresses:
            try:
                bus.read_byte(addr)
            except OSError:
                continue
            found.append(addr)
    return found
