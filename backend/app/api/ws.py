"""WebSocket endpoint carrying the named-event realtime protocol."""

from __future__ import annotations

import asyncio
import json
import logging
import time
from collections.abc import AsyncIterator, Awaitable, Callable
from typing import Any, TypeVar

from fastapi import APIRouter, WebSocket, status
from fastapi.websockets import WebSocketDisconnect, WebSocketState

from app.api.deps import get_realtime_for_websocket
from app.config import get_settings
from app.monitoring.metrics import realtime_dropped_events_total
from chatline.realtime import WebSocketChannel

router = APIRouter(tags=["ws"])

settings = get_settings()

logger = logging.getLogger(__name__)

T = TypeVar("T")

PING_EVENT = "ping"


async def iter_keepalive_messages(
    websocket: WebSocket,
    receiver: Callable[[], Awaitable[T]],
    *,
    send_ping: Callable[[], bool],
    timeout_seconds: float | int | None,
    ping_interval_seconds: float | int | None,
) -> AsyncIterator[T]:
    """Yield messages from *receiver* while sending keepalive pings when idle."""

    timeout = float(timeout_seconds) if timeout_seconds else 0.0
    interval = float(ping_interval_seconds) if ping_interval_seconds else 0.0
    last_activity = time.monotonic()
    last_ping_sent: float | None = None

    while True:
        try:
            if timeout > 0:
                message = await asyncio.wait_for(receiver(), timeout=timeout)
            else:
                message = await receiver()
        except asyncio.TimeoutError:
            if websocket.application_state != WebSocketState.CONNECTED:
                break

            now = time.monotonic()
            should_ping = interval <= 0 or (
                now - last_activity >= interval
                and (last_ping_sent is None or now - last_ping_sent >= interval)
            )
            if should_ping:
                if not send_ping():
                    break
                last_ping_sent = now
            continue
        except asyncio.CancelledError:  # pragma: no cover - cooperative cancellation
            raise
        except (RuntimeError, WebSocketDisconnect):
            break
        else:
            last_activity = time.monotonic()
            last_ping_sent = None
            yield message


def _receiver(websocket: WebSocket) -> Callable[[], Awaitable[str]]:
    async def receive() -> str:
        message = await websocket.receive()
        if message["type"] == "websocket.disconnect":
            raise WebSocketDisconnect(code=message.get("code", status.WS_1000_NORMAL_CLOSURE))
        if message.get("text") is not None:
            return message["text"]
        raw = message.get("bytes") or b""
        return raw.decode("utf-8", errors="replace")

    return receive


def _handshake_user_id(websocket: WebSocket) -> str | None:
    user_id = (websocket.query_params.get("userId") or "").strip()
    if not user_id or user_id in {"undefined", "null"}:
        return None
    return user_id


def _handshake_user_info(websocket: WebSocket) -> dict[str, Any] | None:
    raw = websocket.query_params.get("userInfo")
    if not raw:
        return None
    try:
        info = json.loads(raw)
    except json.JSONDecodeError:
        logger.warning("Ignoring malformed userInfo in realtime handshake")
        return None
    return info if isinstance(info, dict) else None


def decode_frame(raw: str) -> tuple[str, Any] | None:
    """Return ``(event, data)`` for a client frame, or ``None`` when unusable."""

    text = raw.strip()
    if not text:
        return None
    if text.lower() == PING_EVENT:
        return PING_EVENT, {}
    try:
        payload = json.loads(text)
    except json.JSONDecodeError:
        return None
    if not isinstance(payload, dict):
        return None
    event = payload.get("event") or payload.get("type")
    if not isinstance(event, str) or not event:
        return None
    return event, payload.get("data")


@router.websocket("/ws")
async def websocket_realtime(websocket: WebSocket) -> None:
    """Bidirectional realtime channel for one client session."""

    service = get_realtime_for_websocket(websocket)
    if service is None:
        await websocket.close(code=status.WS_1013_TRY_AGAIN_LATER, reason="Realtime unavailable")
        return

    await websocket.accept()
    channel = WebSocketChannel(
        websocket,
        user_id=_handshake_user_id(websocket),
        user_info=_handshake_user_info(websocket),
        queue_size=settings.realtime_send_queue_size,
    )
    channel.start()
    service.connect(channel)

    try:
        async for raw_message in iter_keepalive_messages(
            websocket,
            _receiver(websocket),
            send_ping=lambda: channel.send(PING_EVENT, {}),
            timeout_seconds=settings.websocket_keepalive_timeout_seconds,
            ping_interval_seconds=settings.websocket_keepalive_ping_interval_seconds,
        ):
            frame = decode_frame(raw_message)
            if frame is None:
                realtime_dropped_events_total.labels("malformed").inc()
                logger.warning(
                    "Dropped undecodable realtime frame", extra={"channel": channel.channel_id}
                )
                continue
            event, data = frame
            if event == "pong":
                continue
            service.handle(channel, event, data)
    finally:
        service.disconnect(channel)
        await channel.close()
