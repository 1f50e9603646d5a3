from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional


_POLL_INTERVAL_ENV = "POLL_INTERVAL_MS"
_HISTORY_CAPACITY_ENV = "HISTORY_CAPACITY"
_SINK_ENDPOINT_ENV = "TELEMETRY_SINK_ENDPOINT"
_SINK_HEADER_ENV = "TELEMETRY_SINK_HEADER"
_SINK_TIMEOUT_ENV = "TELEMETRY_SINK_TIMEOUT"
_SENSOR_KIND_ENV = "SENSOR_KIND"
_SPI_BUS_ENV = "SPI_BUS"
_SPI_DEVICE_ENV = "SPI_DEVICE"
_LOG_LEVEL_ENV = "LOG_LEVEL"

SENSOR_KINDS = ("max6675", "thermal", "simulated")


@dataclass(frozen=True)
class Settings:
    poll_interval_ms: int
    history_capacity: int
    sink_endpoint: Optional[str]
    sink_header: Optional[str]
    sink_timeout: float
    sensor_kind: str
    spi_bus: int
    spi_device: int
    log_level: str

    @property
    def poll_interval(self) -> float:
        return self.poll_interval_ms / 1000.0


def _read_optional_env(name: str, default: Optional[str]) -> Optional[str]:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    return candidate or None


def _read_int_env(name: str, default: int, minimum: int = 1) -> int:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    try:
        parsed = int(candidate)
    except ValueError:
        return default
    return parsed if parsed >= minimum else default


def _read_float_env(name: str, default: float) -> float:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    try:
        parsed = float(candidate)
    except ValueError:
        return default
    return parsed if parsed > 0 else default


def _read_sensor_kind(default: str) -> str:
    value = os.getenv(_SENSOR_KIND_ENV)
    if value is None:
        return default
    candidate = value.strip().lower()
    return candidate if candidate in SENSOR_KINDS else default


def _read_log_level(default: str) -> str:
    value = os.getenv(_LOG_LEVEL_ENV)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    return candidate.upper()


@lru_cache
def get_settings() -> Settings:
    return Settings(
        poll_interval_ms=_read_int_env(_POLL_INTERVAL_ENV, 1000),
        history_capacity=_read_int_env(_HISTORY_CAPACITY_ENV, 100),
        sink_endpoint=_read_optional_env(_SINK_ENDPOINT_ENV, None),
        sink_header=_read_optional_env(_SINK_HEADER_ENV, None),
        sink_timeout=_read_float_env(_SINK_TIMEOUT_ENV, 5.0),
        sensor_kind=_read_sensor_kind("simulated"),
        spi_bus=_read_int_env(_SPI_BUS_ENV, 0, minimum=0),
        spi_device=_read_int_env(_SPI_DEVICE_ENV, 0, minimum=0),
        log_level=_read_log_level("INFO"),
    )
