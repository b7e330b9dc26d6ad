from __future__ import annotations

import pytest

from i2csensors.core.registers import RegisterDevice, be_int16, be_uint16

from fakes import FakeChannel


def test_big_endian_decode_is_host_independent() -> None:
    data = bytes([0x01, 0x00])
    assert be_uint16(data) == 256
    assert be_int16(data) == 256


def test_signed_decode_and_offset() -> None:
    data = [0xAA, 0xFF, 0xFE, 0x80, 0x00]
    assert be_int16(data, 1) == -2
    assert be_uint16(data, 1) == 0xFFFE
    assert be_int16(data, 3) == -32768
    assert be_uint16(data, 3) == 0x8000


def test_register_device_write_and_write_read() -> None:
    channel = FakeChannel(0x77)
    channel.respond(0xD0, [0x55])
    device = RegisterDevice(channel)

    device.write(0xF4, 0x2E)
    device.command(0x01)

    assert device.write_read(0xD0, 1) == b"\x55"
    assert channel.writes == [b"\xf4\x2e", b"\x01"]
    assert channel.register_reads == [0xD0]


def test_bus_errors_propagate_unchanged() -> None:
    device = RegisterDevice(FakeChannel(0x40))
    with pytest.raises(OSError):
        device.write_read(0x00, 1)
    with pytest.raises(OSError):
        device.read(2)


def test_transactions_are_timed_when_debugging(monkeypatch) -> None:
    from i2csensors.tools import debug

    monkeypatch.setattr(debug, "DEBUG_I2CSENSORS", True)
    messages = []
    with debug.time_block("i2c 0x40 write", emitter=messages.append):
        pass
    assert debug.debug_enabled()
    assert len(messages) == 1
    assert messages[0].startswith("[DEBUG] i2c 0x40 write took")
