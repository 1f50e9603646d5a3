"""Domain models shared across services."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Union


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True, slots=True)
class Reading:
    """A single accepted temperature sample, in degrees Celsius."""

    value: float
    timestamp: datetime = field(default_factory=utcnow)


@dataclass(frozen=True, slots=True)
class Fault:
    """A sensor-reported problem for one tick. Never stored in history."""

    reason: str
    timestamp: datetime = field(default_factory=utcnow)


Sample = Union[Reading, Fault]


def isoformat_utc(value: datetime) -> str:
    """Render ``value`` as an ISO-8601 UTC string with a ``Z`` suffix."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace(
        "+00:00", "Z"
    )
