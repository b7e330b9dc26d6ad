from __future__ import annotations

import pytest

from i2csensors.sensors.readings import BarometricReading, MagneticField, RelativeHumidity


def test_dew_point_above_freezing() -> None:
    reading = RelativeHumidity(temperature_c=20.0, humidity_pct=50.0)
    assert reading.dew_point == pytest.approx(9.3, abs=0.2)


def test_dew_point_uses_sub_zero_coefficients() -> None:
    reading = RelativeHumidity(temperature_c=-5.0, humidity_pct=80.0)
    # Sub-zero coefficient pair (17.368, 238.88)
    assert reading.dew_point == pytest.approx(-7.91, abs=0.01)


def test_dew_point_close_to_temperature_at_saturation() -> None:
    reading = RelativeHumidity(temperature_c=12.5, humidity_pct=100.0)
    assert reading.dew_point == pytest.approx(12.5, abs=0.1)
    assert reading.dew_point < 12.5


@pytest.mark.parametrize(
    "pressure_hpa, altitude_m",
    [(1013.25, 0.0), (954.6, 500.0), (899.0, 1000.0), (795.0, 2000.0)],
)
def test_sealevel_and_altitude_are_inverse(pressure_hpa: float, altitude_m: float) -> None:
    reading = BarometricReading(pressure_hpa=pressure_hpa, temperature_c=15.0)
    sea_level = reading.to_sealevel_pressure(altitude_m)
    assert reading.to_altitude(sea_level) == pytest.approx(altitude_m, abs=1e-6)


def test_standard_atmosphere_altitude() -> None:
    assert BarometricReading(1013.25, 15.0).to_altitude() == pytest.approx(0.0, abs=1e-9)
    assert BarometricReading(899.0, 15.0).to_altitude() == pytest.approx(1000.0, abs=15.0)


def test_readings_are_immutable_value_objects() -> None:
    field = MagneticField(3.0, 4.0, 0.0)
    assert field.magnitude == pytest.approx(5.0)
    assert field == MagneticField(3.0, 4.0, 0.0)
    with pytest.raises(AttributeError):
        field.x = 1.0  # type: ignore[misc]


def test_humidity_as_dict_includes_dew_point() -> None:
    data = RelativeHumidity(20.0, 50.0).as_dict()
    assert set(data) == {"temperature_c", "humidity_pct", "dew_point_c"}
