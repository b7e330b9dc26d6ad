from __future__ import annotations

import struct

import pytest

from i2csensors.errors import (
    ArgumentRangeError,
    InvalidStateError,
    NotSupportedError,
    SensorTimeoutError,
)
from i2csensors.sensors.hmc5883l import HMC5883L, decode_field, self_test_bounds

from fakes import FakeBus, FakeGpio, SleepRecorder

DRDY_PIN = 22
FIELD_REGISTERS = [0x20, 0x01, 0x04, 0x42, 0xFD, 0xDF, 0x00, 0xDA]


def _axes(value: int) -> bytes:
    return struct.pack(">hhh", value, value, value)


def _sensor(self_test_value: int = 400, *, with_drdy: bool = False):
    bus = FakeBus()
    channel = bus.channel(0x1E)
    channel.respond(10, b"H43")
    channel.respond(3, _axes(self_test_value))
    sleep = SleepRecorder()
    gpio = FakeGpio() if with_drdy else None
    sensor = HMC5883L(
        bus,
        gpio,
        DRDY_PIN if with_drdy else None,
        sleep=sleep,
        drdy_timeout_s=0.05,
    )
    return sensor, channel, gpio, sleep


def test_self_test_bounds_scale_with_gain() -> None:
    assert self_test_bounds(390) == (243, 575)
    assert self_test_bounds(330) == (205, 486)
    assert self_test_bounds(230) == (143, 339)


def test_decode_field_axis_order_and_scale() -> None:
    field = decode_field(FIELD_REGISTERS)
    assert field.x == pytest.approx(100.0)
    assert field.y == pytest.approx(20.0)
    assert field.z == pytest.approx(-50.0)


def test_data_ready_pin_needs_gpio() -> None:
    with pytest.raises(NotSupportedError):
        HMC5883L(FakeBus(), None, DRDY_PIN)


def test_connect_runs_self_test_and_restores_normal_mode() -> None:
    sensor, channel, _, sleep = _sensor()

    assert sensor.connect()

    assert channel.writes == [b"\x00\x71", b"\x01\xa0", b"\x02\x00", b"\x00\x70"]
    assert sleep.calls == [0.08]


def test_self_test_escalates_gain_when_saturated() -> None:
    sensor, channel, _, sleep = _sensor(self_test_value=150)

    assert sensor.connect()

    assert channel.writes == [
        b"\x00\x71",
        b"\x01\xa0",
        b"\x02\x00",
        b"\x01\xc0",
        b"\x01\xe0",
        b"\x00\x70",
    ]
    assert sleep.calls == [0.08] * 5


def test_self_test_failure_fails_connect() -> None:
    sensor, channel, _, _ = _sensor(self_test_value=0)

    assert not sensor.connect()

    assert not sensor.connected
    assert channel.writes[-1] == b"\x00\x70"
    assert channel.closed


def test_wrong_identification_fails_before_self_test() -> None:
    sensor, channel, _, _ = _sensor()
    channel.responses[10].clear()
    channel.respond(10, b"H44")

    assert not sensor.connect()
    assert channel.writes == []


def test_self_test_requires_open_device() -> None:
    sensor, _, _, _ = _sensor()
    with pytest.raises(InvalidStateError):
        sensor.self_test()


def test_single_shot_read_without_data_ready_pin() -> None:
    sensor, channel, _, sleep = _sensor()
    channel.respond(1, FIELD_REGISTERS)
    assert sensor.connect()
    channel.writes.clear()
    sleep.calls.clear()

    field = sensor.read()

    assert field == decode_field(FIELD_REGISTERS)
    assert channel.writes == [b"\x02\x01"]
    assert sleep.calls == [0.1]


def test_read_with_data_ready_edge() -> None:
    sensor, channel, gpio, sleep = _sensor(with_drdy=True)
    channel.respond(1, FIELD_REGISTERS)
    assert sensor.connect()
    edge = gpio.inputs[DRDY_PIN]

    def _signal(data: bytes) -> None:
        if data == b"\x02\x01":
            edge.fall()

    channel.on_write = _signal
    sleep.calls.clear()

    field = sensor.read()

    assert field == decode_field(FIELD_REGISTERS)
    assert sleep.calls == []


def test_data_ready_timeout() -> None:
    sensor, channel, _, _ = _sensor(with_drdy=True)
    assert sensor.connect()

    with pytest.raises(SensorTimeoutError):
        sensor.read()
    assert sensor._pending is None


def test_edge_without_pending_read_is_ignored() -> None:
    sensor, channel, gpio, _ = _sensor(with_drdy=True)
    assert sensor.connect()
    reads = list(channel.register_reads)

    gpio.inputs[DRDY_PIN].fall()

    assert channel.register_reads == reads


def test_bus_error_in_data_ready_callback_surfaces_in_read() -> None:
    sensor, channel, gpio, _ = _sensor(with_drdy=True)
    assert sensor.connect()
    edge = gpio.inputs[DRDY_PIN]
    channel.on_write = lambda data: edge.fall() if data == b"\x02\x01" else None

    # ConfB and the data registers never answer.
    with pytest.raises(OSError):
        sensor.read()


def test_gain_property() -> None:
    sensor, channel, _, _ = _sensor()
    channel.respond(1, FIELD_REGISTERS)
    assert sensor.connect()

    assert sensor.gain == 1090
    sensor.gain = 230
    assert channel.writes[-1] == b"\x01\xe0"
    with pytest.raises(ArgumentRangeError):
        sensor.gain = 1000


def test_register_access_is_range_checked() -> None:
    sensor, _, _, _ = _sensor()
    assert sensor.connect()

    assert sensor.read_register(10, 3) == b"H43"
    with pytest.raises(ArgumentRangeError):
        sensor.read_register(12, 2)
    with pytest.raises(ArgumentRangeError):
        sensor.read_register(0, 0)
    with pytest.raises(ArgumentRangeError):
        sensor.write_register(13, 0)


def test_close_releases_data_ready_line() -> None:
    sensor, channel, gpio, _ = _sensor(with_drdy=True)
    assert sensor.connect()

    sensor.close()

    assert gpio.inputs[DRDY_PIN].closed
    assert channel.closed
    assert not sensor.connected
