"""Linux thermal-zone sensor for hosts without a thermocouple."""

from __future__ import annotations

from pathlib import Path

from models.errors import TransportError
from models.records import Reading, Sample

DEFAULT_THERMAL_PATH = Path("/sys/class/thermal/thermal_zone0/temp")


class ThermalZoneSensor:
    name = "thermal"

    def __init__(self, path: Path = DEFAULT_THERMAL_PATH) -> None:
        self.path = path

    def open(self) -> None:
        if not self.path.exists():
            raise TransportError(f"Thermal zone {self.path} does not exist.")

    def poll(self) -> Sample:
        try:
            raw = self.path.read_text().strip()
        except OSError as exc:
            raise TransportError(f"Failed to read {self.path}: {exc}") from exc
        try:
            millidegrees = float(raw)
        except ValueError as exc:
            raise TransportError(f"Unexpected thermal zone value {raw!r}.") from exc
        return Reading(value=millidegrees / 1000.0)

    def close(self) -> None:
        return None
