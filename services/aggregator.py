"""Summary statistics over the history window."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, Optional

from models.records import Reading


@dataclass
class HistoryStats:
    """Computed statistics for a batch of readings."""

    count: int = 0
    min_value: Optional[float] = None
    max_value: Optional[float] = None
    mean_value: Optional[float] = None
    first_timestamp: Optional[datetime] = None
    last_timestamp: Optional[datetime] = None


class Aggregator:
    """Pure aggregation component that can be unit tested in isolation."""

    def aggregate(self, readings: Iterable[Reading]) -> HistoryStats:
        stats = HistoryStats()
        total = 0.0

        for reading in readings:
            stats.count += 1
            value = reading.value
            total += value

            if stats.min_value is None or value < stats.min_value:
                stats.min_value = value
            if stats.max_value is None or value > stats.max_value:
                stats.max_value = value

            if stats.first_timestamp is None:
                stats.first_timestamp = reading.timestamp
            stats.last_timestamp = reading.timestamp

        if stats.count:
            stats.mean_value = total / stats.count

        return stats
