"""Channel handles used by the realtime core.

A channel is one live, bidirectional connection. The core only ever calls
:meth:`Channel.send`, which must return immediately: the concrete transport
owns buffering and drop policy.
"""

from __future__ import annotations

import asyncio
import contextlib
import itertools
import logging
from typing import Any, Protocol, runtime_checkable

from fastapi.websockets import WebSocket, WebSocketDisconnect, WebSocketState

from app.monitoring.metrics import realtime_dropped_events_total


logger = logging.getLogger(__name__)

_channel_ids = itertools.count(1)


def next_channel_id() -> str:
    return f"ch-{next(_channel_ids)}"


def build_frame(event: str, payload: Any) -> dict[str, Any]:
    return {"event": event, "data": payload}


@runtime_checkable
class Channel(Protocol):
    """Best-effort, non-blocking send capability bound to one connection."""

    channel_id: str
    user_id: str | None

    @property
    def is_open(self) -> bool: ...

    def send(self, event: str, payload: Any) -> bool: ...

    async def close(self) -> None: ...


class WebSocketChannel:
    """Channel backed by a FastAPI websocket and a bounded outbound queue."""

    def __init__(
        self,
        websocket: WebSocket,
        *,
        user_id: str | None = None,
        user_info: dict[str, Any] | None = None,
        queue_size: int = 256,
    ) -> None:
        self.channel_id = next_channel_id()
        self.user_id = user_id
        self.user_info = user_info
        self._websocket = websocket
        self._queue: asyncio.Queue[dict[str, Any] | None] = asyncio.Queue(maxsize=queue_size)
        self._writer: asyncio.Task[None] | None = None
        self._closed = False

    def __repr__(self) -> str:
        return f"WebSocketChannel(id={self.channel_id!r}, user_id={self.user_id!r})"

    @property
    def is_open(self) -> bool:
        return not self._closed and self._websocket.application_state == WebSocketState.CONNECTED

    def start(self) -> None:
        if self._writer is None:
            self._writer = asyncio.create_task(
                self._drain(), name=f"realtime-writer-{self.channel_id}"
            )

    def send(self, event: str, payload: Any) -> bool:
        if not self.is_open:
            realtime_dropped_events_total.labels("closed").inc()
            return False
        try:
            self._queue.put_nowait(build_frame(event, payload))
        except asyncio.QueueFull:
            realtime_dropped_events_total.labels("backpressure").inc()
            logger.debug(
                "Dropped realtime event on saturated channel",
                extra={"channel": self.channel_id, "event": event},
            )
            return False
        return True

    async def _drain(self) -> None:
        while True:
            frame = await self._queue.get()
            if frame is None:
                break
            if self._websocket.application_state != WebSocketState.CONNECTED:
                self._closed = True
                break
            try:
                await self._websocket.send_json(frame)
            except (WebSocketDisconnect, RuntimeError) as exc:
                logger.debug("Failed to send websocket message: %s", exc)
                realtime_dropped_events_total.labels("transport").inc()
                self._closed = True
                break

    async def close(self) -> None:
        self._closed = True
        writer = self._writer
        self._writer = None
        if writer is None or writer.done():
            return
        with contextlib.suppress(asyncio.QueueFull):
            self._queue.put_nowait(None)
        try:
            await asyncio.wait_for(asyncio.shield(writer), timeout=1.0)
        except asyncio.TimeoutError:
            writer.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await writer


__all__ = ["Channel", "WebSocketChannel", "build_frame", "next_channel_id"]
