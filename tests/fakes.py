"""In-memory stand-ins for the bus and GPIO providers used by the driver tests."""

from __future__ import annotations

from collections import deque
from typing import Callable, Deque, Dict, List, Optional


class FakeChannel:
    """
    Records writes and answers reads from per-register response queues.

    Each register queue yields its responses in order; the last one repeats
    once the queue is down to a single entry.
    """

    def __init__(self, address: int) -> None:
        self.address = address
        self.writes: List[bytes] = []
        self.register_reads: List[int] = []
        self.responses: Dict[int, Deque[bytes]] = {}
        self.raw_responses: Deque[bytes] = deque()
        self.on_write: Optional[Callable[[bytes], None]] = None
        self.closed = False

    def respond(self, register: int, *payloads) -> None:
        self.responses.setdefault(register, deque()).extend(bytes(p) for p in payloads)

    def queue_read(self, *payloads) -> None:
        self.raw_responses.extend(bytes(p) for p in payloads)

    def write(self, data: bytes) -> None:
        self.writes.append(bytes(data))
        if self.on_write is not None:
            self.on_write(bytes(data))

    def read(self, size: int) -> bytes:
        if not self.raw_responses:
            raise OSError(121, "Remote I/O error")
        data = self.raw_responses.popleft() if len(self.raw_responses) > 1 else self.raw_responses[0]
        return data[:size]

    def write_read(self, data: bytes, size: int) -> bytes:
        register = data[0]
        self.register_reads.append(register)
        queue = self.responses.get(register)
        if not queue:
            raise OSError(121, "Remote I/O error")
        payload = queue.popleft() if len(queue) > 1 else queue[0]
        return payload[:size]

    def close(self) -> None:
        self.closed = True


class FakeBus:
    def __init__(self, bus_id: Optional[int] = 1) -> None:
        self.bus_id = bus_id
        self.channels: Dict[int, FakeChannel] = {}
        self.opened: List[int] = []

    def channel(self, address: int) -> FakeChannel:
        return self.channels.setdefault(address, FakeChannel(address))

    def find_bus(self) -> Optional[int]:
        return self.bus_id

    def open_channel(self, bus_id: int, address: int, fast_mode: bool = True) -> FakeChannel:
        self.opened.append(address)
        return self.channel(address)


class FakeOutputLine:
    def __init__(self, pin: int, initial_high: bool) -> None:
        self.pin = pin
        self.high = initial_high
        self.events: List[str] = []
        self.closed = False

    def on(self) -> None:
        self.high = True
        self.events.append("on")

    def off(self) -> None:
        self.high = False
        self.events.append("off")

    def close(self) -> None:
        self.closed = True


class FakeEdgeInput:
    def __init__(self, pin: int, callback: Callable[[], None]) -> None:
        self.pin = pin
        self.callback = callback
        self.closed = False

    def fall(self) -> None:
        self.callback()

    def close(self) -> None:
        self.closed = True


class FakeGpio:
    def __init__(self) -> None:
        self.outputs: Dict[int, FakeOutputLine] = {}
        self.inputs: Dict[int, FakeEdgeInput] = {}

    def open_output(self, pin: int, initial_high: bool = True) -> FakeOutputLine:
        line = FakeOutputLine(pin, initial_high)
        self.outputs[pin] = line
        return line

    def open_edge_input(self, pin: int, on_falling: Callable[[], None]) -> FakeEdgeInput:
        line = FakeEdgeInput(pin, on_falling)
        self.inputs[pin] = line
        return line


class FakeTimer:
    """Manually driven replacement for ``PeriodicTimer``."""

    def __init__(self, callback: Callable[[], None], initial_delay: float, period: float) -> None:
        self.callback = callback
        self.initial_delay = initial_delay
        self.period = period
        self.started = False
        self.cancelled = False

    def start(self) -> None:
        self.started = True

    def cancel(self) -> None:
        self.cancelled = True

    def tick(self) -> None:
        self.callback()


class TimerRecorder:
    def __init__(self) -> None:
        self.timers: List[FakeTimer] = []

    def __call__(self, callback, initial_delay, period) -> FakeTimer:
        timer = FakeTimer(callback, initial_delay, period)
        self.timers.append(timer)
        return timer


class SleepRecorder:
    def __init__(self) -> None:
        self.calls: List[float] = []

    def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)
