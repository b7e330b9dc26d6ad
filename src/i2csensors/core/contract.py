"""
Sensor capability contract.

Every driver is a :class:`ReadableSensor`: ``connect()`` once, check
``connected``, then call ``read()`` as often as needed and ``close()`` at the
end (or use the sensor as a context manager). Drivers with a hardware
continuous mode additionally implement :class:`NotifyingSensor`, which keeps
the most recent value and pushes every distinct update to subscribers.
"""

from __future__ import annotations

import logging
import threading
import time
from abc import ABC, abstractmethod
from typing import Callable, Generic, List, Optional, TypeVar

from ..errors import BusNotFoundError, InvalidStateError, NotSupportedError, SensorError
from .platform import BusProvider
from .registers import RegisterDevice

logger = logging.getLogger(__name__)

T = TypeVar("T")

Sleep = Callable[[float], None]


class ReadableSensor(ABC, Generic[T]):
    """Base class for all drivers: connection handling, teardown, state checks."""

    #: 7-bit slave address; subclasses set this before ``connect()``.
    address: int = 0x00
    #: Human-readable chip name used in log messages.
    name: str = "sensor"

    def __init__(self, bus: Optional[BusProvider], *, sleep: Sleep = time.sleep) -> None:
        if bus is None:
            raise NotSupportedError(f"{type(self).__name__} requires an I2C bus provider")
        self._bus = bus
        self._sleep = sleep
        self._device: Optional[RegisterDevice] = None
        self._connected = False

    @property
    def connected(self) -> bool:
        """True once the handshake succeeded and until ``close()``."""
        return self._connected

    def connect(self) -> bool:
        """
        Open the bus channel and run the chip handshake.

        Returns ``False`` (after logging why) when no bus is present, the chip
        does not answer as expected, or the bus raises. Calling it again on a
        connected sensor is a no-op returning ``True``.
        """
        if self._connected:
            return True
        try:
            bus_id = self._bus.find_bus()
            if bus_id is None:
                raise BusNotFoundError("no I2C bus found")
            self._device = RegisterDevice(self._bus.open_channel(bus_id, self.address))
            self._handshake(self._device)
        except BusNotFoundError as exc:
            logger.info("%s not connected: %s", self.name, exc)
            return False
        except (SensorError, OSError) as exc:
            logger.warning("%s initialization failed: %s", self.name, exc)
            self._release()
            return False

        self._connected = True
        logger.info("%s connected at 0x%02X", self.name, self.address)
        return True

    @abstractmethod
    def read(self) -> T:
        """Acquire one reading from the chip."""

    @abstractmethod
    def _handshake(self, device: RegisterDevice) -> None:
        """Verify the chip answers; raise ``CommunicationError`` if not."""

    def _release_resources(self) -> None:
        """Chip-specific teardown (power down, pins); runs before the channel closes."""

    def _ensure_connected(self) -> RegisterDevice:
        if not self._connected or self._device is None:
            raise InvalidStateError(f"{self.name} is not connected")
        return self._device

    def _release(self) -> None:
        try:
            self._release_resources()
        finally:
            device, self._device = self._device, None
            self._connected = False
            if device is not None:
                device.close()

    def close(self) -> None:
        """Release the bus channel and any GPIO lines. Safe to call repeatedly."""
        if self._device is None and not self._connected:
            return
        self._release()
        logger.debug("%s closed", self.name)

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


class NotifyingSensor(ReadableSensor[T]):
    """A sensor that caches its latest value and notifies on change."""

    def __init__(self, bus: Optional[BusProvider], initial: T, *, sleep: Sleep = time.sleep) -> None:
        super().__init__(bus, sleep=sleep)
        self._last_reading = initial
        self._subscribers: List[Callable[[T], None]] = []
        self._subscribers_lock = threading.Lock()

    @property
    def last_reading(self) -> T:
        """Latest value, from either ``read()`` or continuous sampling."""
        return self._last_reading

    def subscribe(self, callback: Callable[[T], None]) -> Callable[[], None]:
        """Register ``callback`` for reading changes; returns an unsubscribe function."""
        with self._subscribers_lock:
            self._subscribers.append(callback)

        def _unsubscribe() -> None:
            with self._subscribers_lock:
                if callback in self._subscribers:
                    self._subscribers.remove(callback)

        return _unsubscribe

    def _differs(self, new: T, old: T) -> bool:
        return new != old

    def _update_last_reading(self, value: T) -> bool:
        """Store ``value`` and notify subscribers if it changed."""
        if not self._differs(value, self._last_reading):
            return False
        self._last_reading = value
        with self._subscribers_lock:
            subscribers = list(self._subscribers)
        for callback in subscribers:
            try:
                callback(value)
            except Exception:
                logger.exception("%s reading subscriber failed", self.name)
        return True
