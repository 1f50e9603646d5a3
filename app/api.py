"""HTTP and WebSocket route definitions for the service."""

from __future__ import annotations

import asyncio
import logging

import anyio
from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect, status

from app.schemas import (
    CurrentTemperature,
    HealthResponse,
    HistoryPayload,
    PollStatus,
    StatsResponse,
    StreamMessage,
)
from models.errors import SubscriberDeliveryError
from models.records import utcnow
from services.broadcast import QueueSubscriber
from services.monitor import TemperatureMonitor, build_default_monitor

logger = logging.getLogger(__name__)

router = APIRouter()


def get_monitor() -> TemperatureMonitor:
    return build_default_monitor()


@router.get(
    "/api/temperature",
    response_model=CurrentTemperature,
    summary="Latest accepted temperature reading.",
)
async def get_current_temperature(
    monitor: TemperatureMonitor = Depends(get_monitor),
) -> CurrentTemperature:
    reading = monitor.store.current()
    if reading is None:
        return CurrentTemperature(temperature=None, timestamp=utcnow())
    return CurrentTemperature(temperature=reading.value, timestamp=reading.timestamp)


@router.get(
    "/api/temperature/history",
    response_model=HistoryPayload,
    summary="Readings in the retained window, oldest first.",
)
async def get_temperature_history(
    monitor: TemperatureMonitor = Depends(get_monitor),
) -> HistoryPayload:
    return HistoryPayload.from_readings(monitor.store.snapshot())


@router.get(
    "/api/temperature/stats",
    response_model=StatsResponse,
    summary="Minimum, maximum and mean over the retained window.",
)
async def get_temperature_stats(
    monitor: TemperatureMonitor = Depends(get_monitor),
) -> StatsResponse:
    return StatsResponse.from_stats(monitor.stats())


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Health check endpoint.",
    status_code=status.HTTP_200_OK,
)
async def healthcheck(
    monitor: TemperatureMonitor = Depends(get_monitor),
) -> HealthResponse:
    return HealthResponse(
        subscribers=monitor.hub.subscriber_count,
        history_length=len(monitor.store),
        history_capacity=monitor.store.capacity,
        poller=PollStatus(**monitor.loop.status()),
    )


@router.get(
    "/",
    summary="Root endpoint mirrors health information.",
    status_code=status.HTTP_200_OK,
)
async def root() -> dict[str, str]:
    return {"status": "ok", "detail": "See /health for service status."}


async def _wait_for_disconnect(websocket: WebSocket) -> None:
    while True:
        message = await websocket.receive()
        if message["type"] == "websocket.disconnect":
            return


async def _pump_events(websocket: WebSocket, subscriber: QueueSubscriber) -> None:
    while True:
        event = await subscriber.get()
        if event is None:
            await websocket.close(code=status.WS_1013_TRY_AGAIN_LATER)
            return
        message = StreamMessage.from_event(event)
        await websocket.send_json(message.model_dump(mode="json"))


@router.websocket("/ws/temperature")
async def temperature_stream(
    websocket: WebSocket,
    monitor: TemperatureMonitor = Depends(get_monitor),
) -> None:
    """Send the history window once, then every reading and fault as it occurs."""
    await websocket.accept()
    subscriber = QueueSubscriber(asyncio.get_running_loop())
    try:
        monitor.hub.subscribe(subscriber)
    except SubscriberDeliveryError:
        await websocket.close(code=status.WS_1011_INTERNAL_ERROR)
        return

    async def pump(scope: anyio.CancelScope) -> None:
        try:
            await _pump_events(websocket, subscriber)
        except WebSocketDisconnect:
            pass
        except Exception as exc:  # noqa: BLE001 - a broken channel only ends this viewer
            logger.warning(
                "Live channel closed with an error.",
                extra={"subscriber_id": subscriber.subscriber_id, "reason": str(exc)},
            )
        scope.cancel()

    async def listen(scope: anyio.CancelScope) -> None:
        await _wait_for_disconnect(websocket)
        scope.cancel()

    try:
        async with anyio.create_task_group() as tg:
            tg.start_soon(pump, tg.cancel_scope)
            tg.start_soon(listen, tg.cancel_scope)
    finally:
        monitor.hub.unsubscribe(subscriber)
        subscriber.close()
