"""Pydantic schemas for the HTTP and WebSocket API layer."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any, List, Optional, Union

from pydantic import BaseModel, Field, RootModel, field_serializer

from models.records import Reading, isoformat_utc
from services.aggregator import HistoryStats
from services.broadcast import FaultEvent, HistoryEvent, HubEvent, ReadingEvent


class TemperatureReading(BaseModel):
    """One reading as exposed to viewers."""

    temperature: float = Field(..., description="Degrees Celsius.")
    timestamp: datetime

    @field_serializer("timestamp")
    def _serialize_timestamp(self, value: datetime) -> str:
        return isoformat_utc(value)

    @classmethod
    def from_reading(cls, reading: Reading) -> "TemperatureReading":
        return cls(temperature=reading.value, timestamp=reading.timestamp)


class CurrentTemperature(BaseModel):
    """Latest value; ``temperature`` is null until a reading is accepted."""

    temperature: Optional[float] = None
    timestamp: datetime

    @field_serializer("timestamp")
    def _serialize_timestamp(self, value: datetime) -> str:
        return isoformat_utc(value)


class HistoryPayload(RootModel[List[TemperatureReading]]):
    """Ordered readings, oldest first."""

    @classmethod
    def from_readings(cls, readings: Any) -> "HistoryPayload":
        return cls([TemperatureReading.from_reading(reading) for reading in readings])


class FaultMessage(BaseModel):
    message: str


class StatsResponse(BaseModel):
    """Summary of the history window."""

    count: int = Field(..., ge=0)
    min_value: Optional[float] = None
    max_value: Optional[float] = None
    mean_value: Optional[float] = None

    @classmethod
    def from_stats(cls, stats: HistoryStats) -> "StatsResponse":
        return cls(
            count=stats.count,
            min_value=stats.min_value,
            max_value=stats.max_value,
            mean_value=stats.mean_value,
        )


class PollStatus(BaseModel):
    state: str
    sensor: str
    sensor_available: bool
    interval_ms: int
    ticks: int
    accepted: int
    faults: int


class HealthResponse(BaseModel):
    status: str = "ok"
    subscribers: int
    history_length: int
    history_capacity: int
    poller: PollStatus


class StreamEventType(str, Enum):
    """Event names sent over the live channel."""

    history = "temperatureHistory"
    temperature = "temperature"
    error = "error"


class StreamMessage(BaseModel):
    """Envelope for every WebSocket message."""

    event: StreamEventType
    data: Union[List[TemperatureReading], TemperatureReading, FaultMessage]

    @classmethod
    def from_event(cls, event: HubEvent) -> "StreamMessage":
        if isinstance(event, HistoryEvent):
            return cls(
                event=StreamEventType.history,
                data=[TemperatureReading.from_reading(reading) for reading in event.readings],
            )
        if isinstance(event, ReadingEvent):
            return cls(
                event=StreamEventType.temperature,
                data=TemperatureReading.from_reading(event.reading),
            )
        if isinstance(event, FaultEvent):
            return cls(event=StreamEventType.error, data=FaultMessage(message=event.fault.reason))
        raise TypeError(f"Unsupported hub event {type(event).__name__}.")
