"""Tests for the poll loop's per-tick routing and lifecycle."""

from __future__ import annotations

import threading
import time
from typing import Iterable, List, Union

import pytest

from models.errors import SensorFault, TransportError
from models.records import Fault, Reading
from services.broadcast import BroadcastHub, FaultEvent, HistoryEvent, HubEvent, ReadingEvent
from services.forwarder import SinkForwarder
from services.history import HistoryStore
from services.poller import PollLoop, PollState


class ScriptedSource:
    """Replays a script of readings, faults and exceptions, then repeats 20.0."""

    name = "scripted"

    def __init__(self, script: Iterable[Union[Reading, Fault, Exception]] = (), fail_open: bool = False) -> None:
        self.script = list(script)
        self.fail_open = fail_open
        self.opened = 0
        self.closed = 0
        self.polls = 0

    def open(self) -> None:
        if self.fail_open:
            raise TransportError("no such device")
        self.opened += 1

    def poll(self) -> Union[Reading, Fault]:
        self.polls += 1
        if not self.script:
            return Reading(value=20.0)
        item = self.script.pop(0)
        if isinstance(item, Exception):
            raise item
        return item

    def close(self) -> None:
        self.closed += 1


class RecordingSubscriber:
    subscriber_id = "recorder"

    def __init__(self) -> None:
        self.events: List[HubEvent] = []

    def send(self, event: HubEvent) -> None:
        self.events.append(event)


class RecordingForwarder(SinkForwarder):
    def __init__(self) -> None:
        super().__init__(sink=None)
        self.forwarded: List[Reading] = []

    def forward(self, reading: Reading) -> None:  # type: ignore[override]
        self.forwarded.append(reading)


def _build(source: ScriptedSource, interval: float = 60.0):
    store = HistoryStore(capacity=10)
    hub = BroadcastHub(store)
    forwarder = RecordingForwarder()
    loop = PollLoop(source=source, store=store, hub=hub, forwarder=forwarder, interval=interval)
    return loop, store, hub, forwarder


def test_reading_tick_appends_publishes_and_forwards() -> None:
    reading = Reading(value=21.5)
    loop, store, hub, forwarder = _build(ScriptedSource([reading]))
    subscriber = RecordingSubscriber()
    hub.subscribe(subscriber)

    outcome = loop.tick()

    assert outcome is PollState.accepted
    assert loop.state is PollState.idle
    assert store.snapshot() == (reading,)
    assert subscriber.events[-1] == ReadingEvent(reading=reading)
    assert forwarder.forwarded == [reading]


def test_fault_then_valid_reading() -> None:
    fault = Fault(reason="Thermocouple not connected!")
    reading = Reading(value=24.5)
    loop, store, hub, forwarder = _build(ScriptedSource([fault, reading]))
    subscriber = RecordingSubscriber()
    hub.subscribe(subscriber)

    assert loop.tick() is PollState.faulted
    assert loop.tick() is PollState.accepted

    assert subscriber.events == [
        HistoryEvent(readings=()),
        FaultEvent(fault=fault),
        ReadingEvent(reading=reading),
    ]
    assert len(store) == 1
    assert forwarder.forwarded == [reading]
    assert (loop.ticks, loop.accepted, loop.faults) == (2, 1, 1)


@pytest.mark.parametrize(
    "error, expected_reason",
    [
        (SensorFault("Thermocouple not connected!"), "Thermocouple not connected!"),
        (TransportError("SPI transfer failed"), "SPI transfer failed"),
        (ZeroDivisionError("boom"), "Sensor error: boom"),
    ],
)
def test_sensor_exceptions_become_faults(error: Exception, expected_reason: str) -> None:
    loop, store, hub, forwarder = _build(ScriptedSource([error]))
    subscriber = RecordingSubscriber()
    hub.subscribe(subscriber)

    assert loop.tick() is PollState.faulted

    event = subscriber.events[-1]
    assert isinstance(event, FaultEvent)
    assert event.fault.reason == expected_reason
    assert store.current() is None
    assert forwarder.forwarded == []


def test_start_returns_false_when_sensor_cannot_be_acquired() -> None:
    source = ScriptedSource(fail_open=True)
    loop, *_ = _build(source)

    assert loop.start() is False
    assert loop.running is False
    assert loop.sensor_available is False

    loop.stop()
    assert source.closed == 0
    assert loop.state is PollState.stopped


def test_background_loop_keeps_polling_after_faults() -> None:
    source = ScriptedSource([TransportError("glitch"), Fault(reason="open"), Reading(value=22.0)])
    loop, store, _hub, forwarder = _build(source, interval=0.01)

    assert loop.start() is True
    deadline = time.monotonic() + 5.0
    while loop.accepted < 3 and time.monotonic() < deadline:
        time.sleep(0.01)
    loop.stop()

    assert loop.faults == 2
    assert loop.accepted >= 3
    assert forwarder.forwarded[0].value == 22.0
    assert store.current() is not None


def test_stop_waits_for_in_flight_tick_then_releases_sensor_once() -> None:
    entered = threading.Event()
    release = threading.Event()

    class SlowSource(ScriptedSource):
        def poll(self) -> Union[Reading, Fault]:
            entered.set()
            release.wait(5.0)
            return Reading(value=30.0)

    source = SlowSource()
    loop, store, *_ = _build(source, interval=0.01)
    loop.start()
    assert entered.wait(5.0)

    stopper = threading.Thread(target=loop.stop)
    stopper.start()
    time.sleep(0.05)
    assert source.closed == 0
    release.set()
    stopper.join(5.0)

    assert source.closed == 1
    assert store.current() is not None
    assert loop.state is PollState.stopped

    loop.stop()
    assert source.closed == 1


def test_stopped_loop_cannot_restart() -> None:
    loop, *_ = _build(ScriptedSource())
    loop.stop()

    with pytest.raises(RuntimeError):
        loop.start()


def test_status_reports_counters() -> None:
    loop, *_ = _build(ScriptedSource([Reading(value=1.0)]), interval=0.5)
    loop.tick()

    status = loop.status()

    assert status == {
        "state": "idle",
        "sensor": "scripted",
        "sensor_available": False,
        "interval_ms": 500,
        "ticks": 1,
        "accepted": 1,
        "faults": 0,
    }


def test_invalid_interval_rejected() -> None:
    with pytest.raises(ValueError):
        _build(ScriptedSource(), interval=0)
