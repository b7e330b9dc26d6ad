"""Sensor configuration (``sensors.yaml``) and the driver factory."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Tuple

import yaml

from ..core.contract import ReadableSensor
from ..core.platform import DEFAULT_BUS_CANDIDATES, BusProvider, GpioProvider
from ..sensors.bh1750 import BH1750, Resolution
from ..sensors.bmp180 import BMP180
from ..sensors.dsth01 import DSTH01
from ..sensors.hmc5883l import HMC5883L

logger = logging.getLogger(__name__)

DEFAULT_SENSORS_FILE = Path(__file__).resolve().parent / "sensors.yaml"

SENSOR_NAMES = ("illumination", "barometer", "humidity", "magnetometer")


def _block(payload: Mapping[str, Any], key: str) -> Mapping[str, Any]:
    value = payload.get(key) if isinstance(payload, Mapping) else None
    return value if isinstance(value, Mapping) else {}


def _as_bool(value: Any, default: bool) -> bool:
    if value is None:
        return default
    if isinstance(value, str):
        return value.strip().lower() in {"1", "true", "yes", "on"}
    return bool(value)


def _as_int(value: Any, default: Optional[int]) -> Optional[int]:
    if value is None:
        return default
    try:
        return int(value)
    except (TypeError, ValueError):
        logger.warning("Ignoring non-integer config value %r", value)
        return default


@dataclass
class IlluminationSettings:
    enabled: bool = True
    addr_low: bool = True
    mode: str = "low"
    measurement_time: int = 69
    continuous: bool = False
    continuous_period_ms: int = 1000

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "IlluminationSettings":
        d = cls()
        # Normalize mode: case-insensitive, hyphens vs underscores
        mode = str(data.get("mode", d.mode) or d.mode).strip().lower().replace("-", "_")
        if mode not in {r.value for r in Resolution}:
            logger.warning("Unknown illumination mode %r, using %r", mode, d.mode)
            mode = d.mode
        return cls(
            enabled=_as_bool(data.get("enabled"), d.enabled),
            addr_low=_as_bool(data.get("addr_low"), d.addr_low),
            mode=mode,
            measurement_time=_as_int(data.get("measurement_time"), d.measurement_time),
            continuous=_as_bool(data.get("continuous"), d.continuous),
            continuous_period_ms=_as_int(data.get("continuous_period_ms"), d.continuous_period_ms),
        )


@dataclass
class BarometerSettings:
    enabled: bool = True
    oversampling: int = 0

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "BarometerSettings":
        d = cls()
        return cls(
            enabled=_as_bool(data.get("enabled"), d.enabled),
            oversampling=_as_int(data.get("oversampling"), d.oversampling),
        )


@dataclass
class HumiditySettings:
    enabled: bool = True
    chip_select_pin: Optional[int] = None
    heater: bool = False

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "HumiditySettings":
        d = cls()
        return cls(
            enabled=_as_bool(data.get("enabled"), d.enabled),
            chip_select_pin=_as_int(data.get("chip_select_pin"), d.chip_select_pin),
            heater=_as_bool(data.get("heater"), d.heater),
        )


@dataclass
class MagnetometerSettings:
    enabled: bool = True
    data_ready_pin: Optional[int] = None
    gain: Optional[int] = None

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "MagnetometerSettings":
        d = cls()
        return cls(
            enabled=_as_bool(data.get("enabled"), d.enabled),
            data_ready_pin=_as_int(data.get("data_ready_pin"), d.data_ready_pin),
            gain=_as_int(data.get("gain"), d.gain),
        )


@dataclass
class SensorsConfig:
    """
    Typed view of ``sensors.yaml``.

    Supported shape::

        bus:
          candidates: [5, 1]
        illumination: {mode: high, measurement_time: 69, continuous: true}
        barometer: {oversampling: 3}
        humidity: {chip_select_pin: 27, heater: false}
        magnetometer: {data_ready_pin: 22, gain: 1370}
    """

    bus_candidates: Tuple[int, ...] = DEFAULT_BUS_CANDIDATES
    illumination: IlluminationSettings = field(default_factory=IlluminationSettings)
    barometer: BarometerSettings = field(default_factory=BarometerSettings)
    humidity: HumiditySettings = field(default_factory=HumiditySettings)
    magnetometer: MagnetometerSettings = field(default_factory=MagnetometerSettings)

    @classmethod
    def from_mapping(cls, mapping: Mapping[str, Any] | None) -> "SensorsConfig":
        payload: Mapping[str, Any] = mapping or {}
        candidates = _block(payload, "bus").get("candidates", DEFAULT_BUS_CANDIDATES)
        if isinstance(candidates, (int, str)):
            candidates = [candidates]
        bus_ids = tuple(
            v for v in (_as_int(c, None) for c in candidates or ()) if v is not None
        ) or DEFAULT_BUS_CANDIDATES
        return cls(
            bus_candidates=bus_ids,
            illumination=IlluminationSettings.from_mapping(_block(payload, "illumination")),
            barometer=BarometerSettings.from_mapping(_block(payload, "barometer")),
            humidity=HumiditySettings.from_mapping(_block(payload, "humidity")),
            magnetometer=MagnetometerSettings.from_mapping(_block(payload, "magnetometer")),
        )


def load_sensors_config(path: str | Path | None = None) -> SensorsConfig:
    """
    Load ``path`` (default: the bundled ``sensors.yaml``).

    Missing files fall back to default :class:`SensorsConfig`.
    """
    cfg_path = Path(path) if path is not None else DEFAULT_SENSORS_FILE
    if not cfg_path.exists():
        return SensorsConfig()
    with cfg_path.open("r", encoding="utf-8") as fh:
        raw = yaml.safe_load(fh) or {}
    if not isinstance(raw, Mapping):
        raise ValueError(f"Expected mapping in {cfg_path}, got {type(raw).__name__}")
    return SensorsConfig.from_mapping(raw)


def build_sensors(
    config: SensorsConfig,
    bus: Optional[BusProvider],
    gpio: Optional[GpioProvider] = None,
) -> Dict[str, ReadableSensor]:
    """
    Construct the enabled drivers and apply the settings that need no bus I/O.

    Out-of-range values raise ``ArgumentRangeError`` from the driver setters.
    """
    sensors: Dict[str, ReadableSensor] = {}

    ill = config.illumination
    if ill.enabled:
        lux = BH1750(bus, addr_low=ill.addr_low)
        lux.mode = Resolution(ill.mode)
        lux.measurement_time = ill.measurement_time
        lux.continuous_period_ms = ill.continuous_period_ms
        sensors["illumination"] = lux

    if config.barometer.enabled:
        baro = BMP180(bus)
        baro.oversampling = config.barometer.oversampling
        sensors["barometer"] = baro

    hum = config.humidity
    if hum.enabled:
        if hum.chip_select_pin is None:
            logger.warning("humidity sensor enabled without chip_select_pin; skipping")
        else:
            rh = DSTH01(bus, gpio, hum.chip_select_pin)
            rh.heater = hum.heater
            sensors["humidity"] = rh

    mag = config.magnetometer
    if mag.enabled:
        sensors["magnetometer"] = HMC5883L(
            bus, gpio if mag.data_ready_pin is not None else None, mag.data_ready_pin
        )

    return sensors


def connect_sensors(
    sensors: Mapping[str, ReadableSensor],
    config: SensorsConfig,
) -> Dict[str, ReadableSensor]:
    """Connect each sensor, apply post-connect settings, return the ones that answered."""
    connected: Dict[str, ReadableSensor] = {}
    for name, sensor in sensors.items():
        if not sensor.connect():
            logger.warning("%s (%s) not connected", name, sensor.name)
            continue
        if isinstance(sensor, HMC5883L) and config.magnetometer.gain is not None:
            sensor.gain = config.magnetometer.gain
        if isinstance(sensor, BH1750) and config.illumination.continuous:
            sensor.continuous = True
        connected[name] = sensor
    return connected
