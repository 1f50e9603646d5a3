from __future__ import annotations

from typing import Protocol

from models.records import Sample


class SensorSource(Protocol):
    """A single scalar sensor polled once per tick.

    ``open`` and ``close`` bracket the resource's lifetime. ``poll`` returns a
    ``Reading`` or a ``Fault`` and may raise ``TransportError`` (or
    ``SensorFault``) when the underlying device misbehaves.
    """

    name: str

    def open(self) -> None:
        ...

    def poll(self) -> Sample:
        ...

    def close(self) -> None:
        ...
