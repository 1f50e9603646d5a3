"""Bounded in-memory history of accepted readings."""

from __future__ import annotations

from collections import deque
from threading import Lock
from typing import Deque, Optional, Tuple

from models.records import Reading


class HistoryStore:
    """Owns the reading window; the only component that mutates it.

    Appends come from the poll thread while HTTP handlers and the broadcast
    hub read concurrently, so every access goes through one lock and readers
    only ever receive tuple copies.
    """

    def __init__(self, capacity: int = 100) -> None:
        if capacity < 1:
            raise ValueError("History capacity must be at least 1.")
        self.capacity = capacity
        self._readings: Deque[Reading] = deque(maxlen=capacity)
        self._sequence = 0
        self._lock = Lock()

    def append(self, reading: Reading) -> int:
        """Add ``reading`` at the tail and return its sequence number.

        Timestamps earlier than the current tail are kept in arrival order.
        """
        with self._lock:
            self._readings.append(reading)
            self._sequence += 1
            return self._sequence

    def snapshot(self) -> Tuple[Reading, ...]:
        with self._lock:
            return tuple(self._readings)

    def window(self) -> Tuple[Tuple[Reading, ...], int]:
        """Return the snapshot together with the sequence of its newest reading."""
        with self._lock:
            return tuple(self._readings), self._sequence

    def current(self) -> Optional[Reading]:
        with self._lock:
            return self._readings[-1] if self._readings else None

    def clear(self) -> None:
        with self._lock:
            self._readings.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._readings)
