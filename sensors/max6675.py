"""MAX6675 thermocouple-to-digital converter over SPI."""

from __future__ import annotations

import logging
from typing import Optional, Protocol

from models.errors import SensorFault, TransportError
from models.records import Fault, Reading, Sample

logger = logging.getLogger(__name__)

FRAME_BYTES = 2
SPI_SPEED_HZ = 500_000
DEGREES_PER_LSB = 0.25
# D2 goes high when the thermocouple input is open.
OPEN_THERMOCOUPLE_BIT = 0x0004
OPEN_THERMOCOUPLE_REASON = "Thermocouple not connected!"


def decode_frame(frame: bytes) -> float:
    """Convert a raw 16-bit MAX6675 frame into degrees Celsius.

    Raises ``SensorFault`` when the open-thermocouple bit is set.
    """
    if len(frame) != FRAME_BYTES:
        raise TransportError(f"Expected {FRAME_BYTES} bytes from MAX6675, got {len(frame)}.")
    raw = (frame[0] << 8) | frame[1]
    if raw & OPEN_THERMOCOUPLE_BIT:
        raise SensorFault(OPEN_THERMOCOUPLE_REASON)
    return (raw >> 3) * DEGREES_PER_LSB


class SpiTransport(Protocol):
    def open(self) -> None:
        ...

    def transfer(self, data: bytes) -> bytes:
        ...

    def close(self) -> None:
        ...


class SpidevTransport:
    """Linux ``spidev`` transport. Requires the ``hardware`` extra."""

    def __init__(self, bus: int = 0, device: int = 0, speed_hz: int = SPI_SPEED_HZ) -> None:
        self.bus = bus
        self.device = device
        self.speed_hz = speed_hz
        self._spi = None

    def open(self) -> None:
        try:
            import spidev
        except ImportError as exc:
            raise TransportError(
                "The 'spidev' package is required for the MAX6675 sensor."
            ) from exc

        spi = spidev.SpiDev()
        try:
            spi.open(self.bus, self.device)
        except OSError as exc:
            raise TransportError(
                f"Failed to open SPI device bus={self.bus} device={self.device}: {exc}"
            ) from exc
        spi.max_speed_hz = self.speed_hz
        spi.mode = 0
        self._spi = spi

    def transfer(self, data: bytes) -> bytes:
        if self._spi is None:
            raise TransportError("SPI device is not open.")
        try:
            return bytes(self._spi.xfer2(list(data)))
        except OSError as exc:
            raise TransportError(f"SPI transfer failed: {exc}") from exc

    def close(self) -> None:
        if self._spi is not None:
            self._spi.close()
            self._spi = None


class Max6675Sensor:
    name = "max6675"

    def __init__(self, transport: Optional[SpiTransport] = None) -> None:
        self.transport = transport or SpidevTransport()

    def open(self) -> None:
        self.transport.open()
        logger.info("SPI device opened.", extra={"sensor": self.name})

    def poll(self) -> Sample:
        frame = self.transport.transfer(bytes(FRAME_BYTES))
        try:
            value = decode_frame(frame)
        except SensorFault as exc:
            return Fault(reason=exc.reason)
        return Reading(value=value)

    def close(self) -> None:
        self.transport.close()
        logger.info("SPI device closed.", extra={"sensor": self.name})
