"""Best-effort forwarding of accepted readings to an external sink."""

from __future__ import annotations

import logging
from concurrent.futures import Future, ThreadPoolExecutor, wait
from threading import Lock
from typing import Optional, Set

from models.records import Reading
from sinks.base import TelemetrySink

logger = logging.getLogger(__name__)


class SinkForwarder:
    """Fire-and-forget, at-most-once delivery to a ``TelemetrySink``.

    ``forward`` only submits work to a small executor, so a slow or failing
    sink never delays the next poll tick. At most ``max_pending`` sends are
    queued or running; readings beyond that are dropped. Errors are logged
    and dropped.
    """

    def __init__(
        self,
        sink: Optional[TelemetrySink],
        workers: int = 1,
        max_pending: int = 4,
    ) -> None:
        self.sink = sink
        self.max_pending = max_pending
        self.executor: Optional[ThreadPoolExecutor] = None
        self._futures: Set[Future[None]] = set()
        self._futures_lock = Lock()
        self.dropped = 0
        if sink is not None:
            self.executor = ThreadPoolExecutor(
                max_workers=workers, thread_name_prefix="sink-forwarder"
            )

    @property
    def enabled(self) -> bool:
        return self.executor is not None

    @property
    def pending(self) -> int:
        with self._futures_lock:
            return len(self._futures)

    def forward(self, reading: Reading) -> Optional[Future[None]]:
        if self.executor is None or self.sink is None:
            return None
        with self._futures_lock:
            if len(self._futures) >= self.max_pending:
                self.dropped += 1
                logger.warning(
                    "Telemetry sink backlog full; reading dropped.",
                    extra={"temperature": reading.value, "reason": f"pending={len(self._futures)}"},
                )
                return None
            try:
                future = self.executor.submit(self._send, self.sink, reading)
            except RuntimeError:
                logger.debug("Forwarder is shut down; reading not forwarded.")
                return None
            self._futures.add(future)
        future.add_done_callback(self._clear_future)
        return future

    def shutdown(self, timeout: float = 1.0) -> None:
        """Cancel queued sends, give running ones ``timeout`` seconds, close the sink."""
        if self.executor is not None:
            self.executor.shutdown(wait=False, cancel_futures=True)
            with self._futures_lock:
                in_flight = set(self._futures)
            _, not_done = wait(in_flight, timeout=timeout)
            if not_done:
                logger.warning(
                    "Closing telemetry sink with sends still in flight.",
                    extra={"reason": f"pending={len(not_done)}"},
                )
        if self.sink is not None:
            try:
                self.sink.close()
            except Exception:  # noqa: BLE001 - teardown must not mask shutdown
                logger.exception("Failed to close telemetry sink.")

    def _clear_future(self, future: Future[None]) -> None:
        with self._futures_lock:
            self._futures.discard(future)

    @staticmethod
    def _send(sink: TelemetrySink, reading: Reading) -> None:
        try:
            sink.send(reading)
        except Exception as exc:  # noqa: BLE001 - best effort delivery
            logger.warning(
                "Telemetry sink delivery failed.",
                extra={"temperature": reading.value, "reason": str(exc) or type(exc).__name__},
            )
