"""
Register transaction helper shared by every driver.

``RegisterDevice`` is the only place a driver touches the bus. It knows
nothing about any particular chip and never retries: whatever the underlying
channel raises (``OSError`` for smbus2) reaches the caller unchanged.
"""

from __future__ import annotations

import logging
from typing import Sequence

from ..tools.debug import time_block
from .platform import I2cChannel

logger = logging.getLogger(__name__)


def be_uint16(data: Sequence[int], offset: int = 0) -> int:
    """Decode two bytes at ``offset`` as a big-endian unsigned 16-bit value."""
    return ((data[offset] & 0xFF) << 8) | (data[offset + 1] & 0xFF)


def be_int16(data: Sequence[int], offset: int = 0) -> int:
    """Decode two bytes at ``offset`` as a big-endian signed 16-bit value."""
    value = be_uint16(data, offset)
    if value & 0x8000:
        value -= 0x10000
    return value


class RegisterDevice:
    """Uniform write / write-read primitives over one ``I2cChannel``."""

    def __init__(self, channel: I2cChannel) -> None:
        self.channel = channel

    @property
    def address(self) -> int:
        return self.channel.address

    def command(self, opcode: int) -> None:
        """Send a single op-code byte (chips without a register map)."""
        logger.debug("0x%02X <- cmd 0x%02X", self.address, opcode & 0xFF)
        with time_block(f"i2c 0x{self.address:02X} command"):
            self.channel.write(bytes([opcode & 0xFF]))

    def write(self, register: int, *payload: int) -> None:
        """Write ``payload`` starting at ``register``."""
        data = bytes([register & 0xFF, *(b & 0xFF for b in payload)])
        logger.debug("0x%02X <- %s", self.address, data.hex())
        with time_block(f"i2c 0x{self.address:02X} write"):
            self.channel.write(data)

    def write_read(self, register: int, size: int) -> bytes:
        """Set the register pointer, then burst-read ``size`` bytes."""
        with time_block(f"i2c 0x{self.address:02X} write_read"):
            data = bytes(self.channel.write_read(bytes([register & 0xFF]), size))
        logger.debug("0x%02X [0x%02X] -> %s", self.address, register & 0xFF, data.hex())
        return data

    def read(self, size: int) -> bytes:
        """Plain read of ``size`` bytes without addressing a register."""
        with time_block(f"i2c 0x{self.address:02X} read"):
            data = bytes(self.channel.read(size))
        logger.debug("0x%02X -> %s", self.address, data.hex())
        return data

    def close(self) -> None:
        self.channel.close()
