from __future__ import annotations

import threading
import time

import pytest

from i2csensors.core.periodic import PeriodicTimer


def test_rejects_non_positive_period() -> None:
    with pytest.raises(ValueError):
        PeriodicTimer(lambda: None, 0.0, 0.0)


def test_ticks_repeatedly_until_cancelled() -> None:
    ticks = []
    enough = threading.Event()

    def _tick() -> None:
        ticks.append(time.monotonic())
        if len(ticks) >= 3:
            enough.set()

    timer = PeriodicTimer(_tick, 0.0, 0.01)
    timer.start()
    assert enough.wait(2.0)
    timer.cancel()

    count = len(ticks)
    time.sleep(0.05)
    assert len(ticks) == count
    assert not timer.running


def test_initial_delay_is_honoured() -> None:
    fired = threading.Event()
    timer = PeriodicTimer(fired.set, 0.5, 0.01)
    timer.start()
    try:
        assert not fired.wait(0.1)
    finally:
        timer.cancel()


def test_callback_may_cancel_its_own_timer() -> None:
    done = threading.Event()
    holder = {}

    def _tick() -> None:
        holder["timer"].cancel()
        done.set()

    timer = PeriodicTimer(_tick, 0.0, 0.01)
    holder["timer"] = timer
    timer.start()

    assert done.wait(2.0)
    timer._thread.join(1.0)
    assert not timer._thread.is_alive()


def test_failing_callback_does_not_stop_the_timer(caplog) -> None:
    calls = []
    enough = threading.Event()

    def _tick() -> None:
        calls.append(1)
        if len(calls) == 1:
            raise IndexError("short read")
        enough.set()

    timer = PeriodicTimer(_tick, 0.0, 0.01)
    with caplog.at_level("ERROR"):
        timer.start()
        try:
            assert enough.wait(2.0)
        finally:
            timer.cancel()

    assert len(calls) >= 2
    assert "callback failed" in caplog.text
