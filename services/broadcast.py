"""Fan-out of history snapshots and live events to connected viewers."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from itertools import count
from threading import Lock
from typing import Dict, Optional, Protocol, Tuple, Union

from models.errors import SubscriberDeliveryError
from models.records import Fault, Reading
from services.history import HistoryStore

logger = logging.getLogger(__name__)

_subscriber_ids = count(1)


@dataclass(frozen=True)
class HistoryEvent:
    readings: Tuple[Reading, ...]


@dataclass(frozen=True)
class ReadingEvent:
    reading: Reading


@dataclass(frozen=True)
class FaultEvent:
    fault: Fault


HubEvent = Union[HistoryEvent, ReadingEvent, FaultEvent]


class Subscriber(Protocol):
    subscriber_id: str

    def send(self, event: HubEvent) -> None:
        """Hand ``event`` to the transport without blocking.

        Raises ``SubscriberDeliveryError`` when the channel is broken.
        """


class BroadcastHub:
    """Registry of live subscribers with ordered history-then-stream delivery.

    Each subscriber is stored with the sequence number of the newest reading
    its initial snapshot contained. A published reading at or below that mark
    was already delivered through the snapshot and is skipped, so a viewer
    that connects between ``HistoryStore.append`` and ``publish`` sees the
    reading exactly once.
    """

    def __init__(self, store: HistoryStore) -> None:
        self._store = store
        self._subscribers: Dict[Subscriber, int] = {}
        self._lock = Lock()

    @property
    def subscriber_count(self) -> int:
        with self._lock:
            return len(self._subscribers)

    def subscribe(self, subscriber: Subscriber) -> None:
        with self._lock:
            readings, sequence = self._store.window()
            try:
                subscriber.send(HistoryEvent(readings=readings))
            except Exception as exc:
                logger.warning(
                    "Initial history delivery failed; subscriber not registered.",
                    extra={"subscriber_id": subscriber.subscriber_id, "reason": str(exc)},
                )
                raise SubscriberDeliveryError(str(exc)) from exc
            self._subscribers[subscriber] = sequence
            total = len(self._subscribers)
        logger.info(
            "Subscriber connected.",
            extra={"subscriber_id": subscriber.subscriber_id, "subscriber_count": total},
        )

    def unsubscribe(self, subscriber: Subscriber) -> None:
        with self._lock:
            removed = self._subscribers.pop(subscriber, None) is not None
            total = len(self._subscribers)
        if removed:
            logger.info(
                "Subscriber disconnected.",
                extra={"subscriber_id": subscriber.subscriber_id, "subscriber_count": total},
            )

    def publish(self, reading: Reading, sequence: Optional[int] = None) -> None:
        """Deliver a reading that has already been appended to the store."""
        event = ReadingEvent(reading=reading)
        with self._lock:
            for subscriber, watermark in list(self._subscribers.items()):
                if sequence is not None and sequence <= watermark:
                    continue
                self._deliver(subscriber, event)

    def publish_fault(self, fault: Fault) -> None:
        event = FaultEvent(fault=fault)
        with self._lock:
            for subscriber in list(self._subscribers):
                self._deliver(subscriber, event)

    def _deliver(self, subscriber: Subscriber, event: HubEvent) -> None:
        # Caller holds self._lock.
        try:
            subscriber.send(event)
        except Exception as exc:
            self._subscribers.pop(subscriber, None)
            logger.warning(
                "Dropping subscriber after failed delivery.",
                extra={
                    "subscriber_id": subscriber.subscriber_id,
                    "reason": str(exc) or type(exc).__name__,
                    "subscriber_count": len(self._subscribers),
                },
            )


class QueueSubscriber:
    """Bridges hub events from the poll thread into an asyncio queue.

    ``send`` may be called from any thread. Once the queue overflows or the
    owning loop is gone the subscriber is marked closed; further sends raise
    ``SubscriberDeliveryError`` and ``get`` returns ``None``.
    """

    def __init__(
        self,
        loop: asyncio.AbstractEventLoop,
        maxsize: int = 256,
        subscriber_id: Optional[str] = None,
    ) -> None:
        self.subscriber_id = subscriber_id or f"sub-{next(_subscriber_ids)}"
        self._loop = loop
        self._queue: asyncio.Queue[Optional[HubEvent]] = asyncio.Queue(maxsize=maxsize)
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def send(self, event: HubEvent) -> None:
        if self._closed:
            raise SubscriberDeliveryError(f"Subscriber {self.subscriber_id} is closed.")
        try:
            self._loop.call_soon_threadsafe(self._enqueue, event)
        except RuntimeError as exc:
            self._closed = True
            raise SubscriberDeliveryError(str(exc)) from exc

    async def get(self) -> Optional[HubEvent]:
        if self._closed and self._queue.empty():
            return None
        return await self._queue.get()

    def close(self) -> None:
        self._closed = True

    def _enqueue(self, event: HubEvent) -> None:
        if self._closed:
            return
        try:
            self._queue.put_nowait(event)
        except asyncio.QueueFull:
            self._closed = True
            while not self._queue.empty():
                self._queue.get_nowait()
            self._queue.put_nowait(None)
            logger.warning(
                "Subscriber queue overflowed; closing.",
                extra={"subscriber_id": self.subscriber_id},
            )
