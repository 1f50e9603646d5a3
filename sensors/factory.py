from __future__ import annotations

from sensors.base import SensorSource
from sensors.max6675 import Max6675Sensor, SpidevTransport
from sensors.simulated import SimulatedSensor
from sensors.thermal import ThermalZoneSensor
from settings import Settings


def build_sensor(settings: Settings) -> SensorSource:
    """Instantiate the sensor selected by ``SENSOR_KIND``."""
    if settings.sensor_kind == "max6675":
        return Max6675Sensor(SpidevTransport(bus=settings.spi_bus, device=settings.spi_device))
    if settings.sensor_kind == "thermal":
        return ThermalZoneSensor()
    return SimulatedSensor()
