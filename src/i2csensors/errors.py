"""
Shared exception classes for all sensor drivers.

Callers can catch at either level::

    # Precise:
    except SensorTimeoutError: ...

    # Any driver failure:
    except SensorError: ...

Bus-level failures are not wrapped: smbus2 raises ``OSError`` and that
propagates unchanged from every acquisition method.
"""


class SensorError(Exception):
    """Base class for all driver errors."""


class NotSupportedError(SensorError):
    """Raised at construction when a required bus or GPIO capability is absent."""


class BusNotFoundError(SensorError):
    """Raised when bus enumeration returns no candidate."""


class CommunicationError(SensorError):
    """Raised when a device-ID or handshake check does not match."""


class InvalidStateError(SensorError, RuntimeError):
    """Raised when an acquisition is attempted before ``connect()`` succeeded."""


class ArgumentRangeError(SensorError, ValueError):
    """Raised when a configuration value is outside its domain."""


class SensorTimeoutError(SensorError, TimeoutError):
    """Raised when an interrupt-driven wait exceeds its bound."""


class SelfTestError(SensorError):
    """Raised when the magnetometer self-test fails at every gain level."""
