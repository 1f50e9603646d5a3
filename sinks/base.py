from __future__ import annotations

from typing import Protocol

from models.records import Reading


class TelemetrySink(Protocol):
    """External endpoint that accepted readings are pushed to."""

    def send(self, reading: Reading) -> None:
        """Transmit one reading. Raises ``SinkDeliveryError`` on failure."""

    def close(self) -> None:
        ...
