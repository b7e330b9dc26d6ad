"""Configuration objects and helpers.

``sensors.yaml`` describes which chips are wired up, on which GPIO lines,
and with which acquisition settings. :func:`load_sensors_config` turns it
into typed dataclasses and :func:`build_sensors` creates the drivers.
"""

from .sensors_config import (
    DEFAULT_SENSORS_FILE,
    SensorsConfig,
    build_sensors,
    connect_sensors,
    load_sensors_config,
)

__all__ = [
    "DEFAULT_SENSORS_FILE",
    "SensorsConfig",
    "build_sensors",
    "connect_sensors",
    "load_sensors_config",
]
