"""Wiring of the telemetry pipeline."""

from __future__ import annotations

import logging
from functools import lru_cache
from typing import Optional

from sensors.base import SensorSource
from sensors.factory import build_sensor
from services.aggregator import Aggregator, HistoryStats
from services.broadcast import BroadcastHub
from services.forwarder import SinkForwarder
from services.history import HistoryStore
from services.poller import PollLoop
from settings import get_settings
from sinks.base import TelemetrySink
from sinks.http import HttpTelemetrySink, parse_header

logger = logging.getLogger(__name__)


class TemperatureMonitor:
    """Owns the history window and the components that feed and serve it."""

    def __init__(
        self,
        source: SensorSource,
        sink: Optional[TelemetrySink] = None,
        capacity: int = 100,
        interval: float = 1.0,
    ) -> None:
        self.store = HistoryStore(capacity=capacity)
        self.hub = BroadcastHub(self.store)
        self.forwarder = SinkForwarder(sink)
        self.loop = PollLoop(
            source=source,
            store=self.store,
            hub=self.hub,
            forwarder=self.forwarder,
            interval=interval,
        )
        self.aggregator = Aggregator()

    def start(self) -> bool:
        return self.loop.start()

    def stats(self) -> HistoryStats:
        return self.aggregator.aggregate(self.store.snapshot())

    def shutdown(self) -> None:
        """Stop polling, release the sensor, then stop forwarding."""
        self.loop.stop()
        self.forwarder.shutdown()
        self.store.clear()
        logger.info("Temperature monitor shut down.")


@lru_cache
def build_default_monitor() -> TemperatureMonitor:
    """Factory that wires the monitor from environment settings."""
    settings = get_settings()
    sink: Optional[TelemetrySink] = None
    if settings.sink_endpoint:
        try:
            headers = parse_header(settings.sink_header)
        except ValueError as exc:
            logger.warning(
                "Ignoring malformed telemetry sink header.",
                extra={"endpoint": settings.sink_endpoint, "reason": str(exc)},
            )
            headers = {}
        sink = HttpTelemetrySink(
            endpoint=settings.sink_endpoint,
            headers=headers,
            timeout=settings.sink_timeout,
        )
        logger.info("Forwarding readings to telemetry sink.", extra={"endpoint": settings.sink_endpoint})
    return TemperatureMonitor(
        source=build_sensor(settings),
        sink=sink,
        capacity=settings.history_capacity,
        interval=settings.poll_interval,
    )
