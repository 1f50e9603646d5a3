"""Fixed-period sensor polling on a background thread."""

from __future__ import annotations

import logging
import threading
import time
from enum import Enum
from typing import Dict, Optional, Union

from models.errors import SensorFault, TransportError
from models.records import Fault, Reading, Sample
from sensors.base import SensorSource
from services.broadcast import BroadcastHub
from services.forwarder import SinkForwarder
from services.history import HistoryStore

logger = logging.getLogger(__name__)


class PollState(str, Enum):
    """Lifecycle of the poll loop."""

    idle = "idle"
    polling = "polling"
    accepted = "accepted"
    faulted = "faulted"
    stopped = "stopped"


class PollLoop:
    """Pulls one sample per tick and routes it through store, hub and sink.

    A tick never raises: faults, transport errors and unexpected exceptions
    are reported to subscribers as ``Fault`` events and polling continues on
    schedule. Stopping is cooperative and takes effect at the next tick
    boundary; the sensor is released only after the in-flight tick is done.
    """

    def __init__(
        self,
        source: SensorSource,
        store: HistoryStore,
        hub: BroadcastHub,
        forwarder: SinkForwarder,
        interval: float = 1.0,
    ) -> None:
        if interval <= 0:
            raise ValueError("Poll interval must be positive.")
        self.source = source
        self.store = store
        self.hub = hub
        self.forwarder = forwarder
        self.interval = interval
        self.state = PollState.idle
        self.sensor_available = False
        self.ticks = 0
        self.accepted = 0
        self.faults = 0
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._lifecycle_lock = threading.Lock()

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> bool:
        """Acquire the sensor and begin polling.

        Returns ``False`` when the sensor cannot be acquired; the rest of the
        service keeps running without live readings.
        """
        with self._lifecycle_lock:
            if self.state is PollState.stopped:
                raise RuntimeError("Poll loop has been stopped and cannot restart.")
            if self._thread is not None:
                return True
            try:
                self.source.open()
            except Exception as exc:  # noqa: BLE001 - startup must survive a missing sensor
                logger.error(
                    "Failed to acquire sensor; serving without live polling.",
                    exc_info=True,
                    extra={"sensor": self.source.name, "reason": str(exc)},
                )
                return False
            self.sensor_available = True
            self._thread = threading.Thread(target=self._run, name="poll-loop", daemon=True)
            self._thread.start()
        logger.info(
            "Temperature polling started.",
            extra={"sensor": self.source.name, "tick_ms": int(self.interval * 1000)},
        )
        return True

    def stop(self, timeout: Optional[float] = None) -> None:
        with self._lifecycle_lock:
            if self.state is PollState.stopped:
                return
            self._stop.set()
            thread, self._thread = self._thread, None
            if thread is not None and thread is not threading.current_thread():
                thread.join(timeout)
            if self.sensor_available:
                try:
                    self.source.close()
                except Exception:  # noqa: BLE001 - release failures are logged only
                    logger.exception("Failed to release sensor.", extra={"sensor": self.source.name})
                self.sensor_available = False
            self.state = PollState.stopped
        logger.info("Temperature polling stopped.", extra={"state": self.state.value})

    def tick(self) -> PollState:
        """Run one poll cycle and return its outcome."""
        self.state = PollState.polling
        self.ticks += 1
        sample = self._pull()

        if isinstance(sample, Reading):
            sequence = self.store.append(sample)
            self.hub.publish(sample, sequence)
            self.forwarder.forward(sample)
            self.accepted += 1
            outcome = PollState.accepted
            logger.debug(
                "Reading accepted.",
                extra={"temperature": f"{sample.value:.2f}", "sequence": sequence},
            )
        else:
            self.hub.publish_fault(sample)
            self.faults += 1
            outcome = PollState.faulted

        if self.state is PollState.polling:
            self.state = PollState.idle
        return outcome

    def status(self) -> Dict[str, Union[str, int, bool, float]]:
        return {
            "state": self.state.value,
            "sensor": self.source.name,
            "sensor_available": self.sensor_available,
            "interval_ms": int(self.interval * 1000),
            "ticks": self.ticks,
            "accepted": self.accepted,
            "faults": self.faults,
        }

    def _pull(self) -> Sample:
        try:
            sample = self.source.poll()
        except SensorFault as exc:
            sample = Fault(reason=exc.reason)
        except TransportError as exc:
            logger.error(
                "Sensor transport error.",
                exc_info=True,
                extra={"sensor": self.source.name, "reason": str(exc)},
            )
            return Fault(reason=str(exc) or "Sensor transport error")
        except Exception as exc:  # noqa: BLE001 - one bad tick must not stop polling
            logger.exception(
                "Unexpected error while polling sensor.",
                extra={"sensor": self.source.name},
            )
            return Fault(reason=f"Sensor error: {exc}")

        if isinstance(sample, Fault):
            logger.warning(
                "Sensor reported a fault.",
                extra={"sensor": self.source.name, "reason": sample.reason},
            )
        return sample

    def _run(self) -> None:
        # First tick fires one period after start.
        deadline = time.monotonic()
        while True:
            deadline += self.interval
            delay = deadline - time.monotonic()
            if delay < 0:
                # Overran one or more periods; resume from now instead of bursting.
                deadline = time.monotonic()
                delay = 0.0
            if self._stop.wait(delay):
                break
            try:
                self.tick()
            except Exception:  # noqa: BLE001 - keep the schedule alive
                logger.exception("Poll tick failed.")
                self.state = PollState.idle
