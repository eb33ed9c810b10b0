"""WebSocket handling for the push stream."""

from __future__ import annotations

import asyncio
import logging

from fastapi import WebSocket, WebSocketDisconnect

from ..live.push import Subscriber, SubscriberRegistry

logger = logging.getLogger(__name__)


async def _pump(websocket: WebSocket, subscriber: Subscriber, send_lock: asyncio.Lock) -> None:
    """Drain the subscriber's queue to the socket until it is closed."""
    while True:
        message = await subscriber.next_message()
        if message is None:
            return
        async with send_lock:
            await websocket.send_json(message)


async def _listen(websocket: WebSocket, send_lock: asyncio.Lock, keepalive_seconds: float) -> None:
    """Answer client pings and send our own when the client is idle."""
    while True:
        try:
            data = await asyncio.wait_for(websocket.receive_text(), timeout=keepalive_seconds)
        except asyncio.TimeoutError:
            async with send_lock:
                await websocket.send_text("ping")
            continue

        if data == "ping":
            async with send_lock:
                await websocket.send_text("pong")
        else:
            logger.debug("Received WebSocket message: %s", data[:100])


async def websocket_endpoint(
    websocket: WebSocket,
    registry: SubscriberRegistry,
    keepalive_seconds: float = 30.0,
) -> None:
    """Serve one push-stream connection.

    The connection lives until the client disconnects, a send fails, or
    the registry drops the subscriber. In every case the subscriber is
    removed and nothing is retried.
    """
    # Subscribe first so nothing published after the handshake is missed
    subscriber = registry.subscribe()
    try:
        await websocket.accept()
    except Exception:
        registry.unsubscribe(subscriber)
        raise
    send_lock = asyncio.Lock()

    pump = asyncio.create_task(_pump(websocket, subscriber, send_lock))
    listen = asyncio.create_task(_listen(websocket, send_lock, keepalive_seconds))
    try:
        done, _ = await asyncio.wait({pump, listen}, return_when=asyncio.FIRST_COMPLETED)
        for task in done:
            exc = None if task.cancelled() else task.exception()
            if exc is None:
                continue
            if isinstance(exc, WebSocketDisconnect):
                logger.info("Client %d disconnected normally", subscriber.subscriber_id)
            else:
                logger.warning("WebSocket error for subscriber %d: %s", subscriber.subscriber_id, exc)
    finally:
        for task in (pump, listen):
            task.cancel()
        await asyncio.gather(pump, listen, return_exceptions=True)
        registry.unsubscribe(subscriber)

    if pump in done and not pump.cancelled() and pump.exception() is None:
        # Dropped by the registry; close so the client reconnects
        try:
            await websocket.close()
        except RuntimeError:
            pass
