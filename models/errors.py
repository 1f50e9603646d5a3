"""Exception taxonomy for the telemetry pipeline.

None of these are fatal to the process. ``TransportError`` raised while
acquiring the sensor is reported at startup, after which the service keeps
serving queries without live polling.
"""

from __future__ import annotations


class TelemetryError(Exception):
    """Base class for telemetry pipeline errors."""


class SensorFault(TelemetryError):
    """The sensor reported a domain-level fault, e.g. an open thermocouple."""

    def __init__(self, reason: str) -> None:
        super().__init__(reason)
        self.reason = reason


class TransportError(TelemetryError):
    """Unexpected I/O or driver failure while talking to the sensor."""


class SinkDeliveryError(TelemetryError):
    """A reading could not be forwarded to the external sink."""


class SubscriberDeliveryError(TelemetryError):
    """A live subscriber's channel is broken or cannot keep up."""
