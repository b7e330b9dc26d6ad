"""
i2csensors command line
=======================

Read the sensors described in ``sensors.yaml`` and print one JSON line per
reading, or scan the bus for responding addresses.

Examples
--------
# List addresses answering on the configured buses
i2csensors --list

# Five rounds, one second apart, barometer and magnetometer only
i2csensors --count 5 --interval 1 --sensors barometer,magnetometer

# Run until Ctrl-C with a custom config
i2csensors --config ./my_sensors.yaml --count 0
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
import threading
import time
from typing import Dict, List, Optional, Sequence

from .config import build_sensors, connect_sensors, load_sensors_config
from .config.sensors_config import SENSOR_NAMES, SensorsConfig
from .core.contract import ReadableSensor
from .core.platform import GpiozeroProvider, SMBusProvider, scan_bus
from .errors import ArgumentRangeError, SensorError

logger = logging.getLogger(__name__)


def _build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(prog="i2csensors", description="Read I2C sensors as JSON lines.")
    ap.add_argument("--config", type=str, default=None, help="Path to sensors.yaml (default: bundled)")
    ap.add_argument("--list", action="store_true", help="Scan the configured buses and exit")
    ap.add_argument(
        "--sensors",
        type=str,
        default="",
        help=f"Comma-separated subset of: {', '.join(SENSOR_NAMES)} (default: all enabled)",
    )
    ap.add_argument("--count", type=int, default=1, help="Number of rounds; 0 runs until Ctrl-C")
    ap.add_argument("--interval", type=float, default=1.0, help="Seconds between rounds")
    ap.add_argument(
        "--log-level",
        type=str,
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level for diagnostics on stderr",
    )
    return ap


def _select(config: SensorsConfig, selection: str) -> None:
    """Disable every sensor not named in ``selection`` (empty keeps config)."""
    wanted = {s.strip().lower() for s in selection.split(",") if s.strip()}
    if not wanted:
        return
    unknown = wanted - set(SENSOR_NAMES)
    if unknown:
        logger.warning("Ignoring unknown sensor names: %s", ", ".join(sorted(unknown)))
    for name in SENSOR_NAMES:
        if name not in wanted:
            getattr(config, name).enabled = False


def _scan(config: SensorsConfig) -> None:
    for bus_id in config.bus_candidates:
        try:
            found = scan_bus(bus_id)
        except FileNotFoundError:
            print(f"  Bus {bus_id}: not available (skip)")
            continue
        except OSError as exc:
            print(f"  Bus {bus_id}: cannot scan ({exc})")
            continue
        if found:
            print(f"  Bus {bus_id}: " + " ".join(f"0x{addr:02X}" for addr in found))
        else:
            print(f"  Bus {bus_id}: (no devices detected)")


def read_round(sensors: Dict[str, ReadableSensor], t0: float) -> List[dict]:
    """Read every sensor once; failures are logged and skipped."""
    rows: List[dict] = []
    for name, sensor in sensors.items():
        try:
            reading = sensor.read()
        except (SensorError, OSError) as exc:
            logger.warning("A measurement failed (%s): %s", name, exc)
            continue
        row = {"sensor": name, "t_s": round(time.monotonic() - t0, 6)}
        row.update(reading.as_dict())
        rows.append(row)
    return rows


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = _build_parser().parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        config = load_sensors_config(args.config)
    except (OSError, ValueError) as exc:
        print(f"ERROR: cannot load config: {exc}", file=sys.stderr)
        return 2

    if args.list:
        _scan(config)
        return 0

    _select(config, args.sensors)
    bus = SMBusProvider(config.bus_candidates)
    try:
        sensors = build_sensors(config, bus, GpiozeroProvider())
    except ArgumentRangeError as exc:
        print(f"ERROR: invalid config: {exc}", file=sys.stderr)
        return 2
    stop = threading.Event()
    try:
        try:
            active = connect_sensors(sensors, config)
        except ArgumentRangeError as exc:
            print(f"ERROR: invalid config: {exc}", file=sys.stderr)
            return 2
        if not active:
            print("ERROR: no sensors connected", file=sys.stderr)
            return 1

        t0 = time.monotonic()
        rounds = 0
        while not stop.is_set():
            for row in read_round(active, t0):
                print(json.dumps(row), flush=True)
            rounds += 1
            if args.count and rounds >= args.count:
                break
            stop.wait(max(0.0, args.interval))
    except KeyboardInterrupt:
        pass
    finally:
        for sensor in sensors.values():
            sensor.close()
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
