from __future__ import annotations

import asyncio
from typing import Any

import pytest
from fastapi.websockets import WebSocketState

from app.monitoring.metrics import realtime_dropped_events_total
from chatline.realtime import WebSocketChannel
from chatline.realtime.channels import build_frame


class DummyWebSocket:
    def __init__(self, *, fail: bool = False) -> None:
        self.application_state = WebSocketState.CONNECTED
        self.sent: list[dict[str, Any]] = []
        self._fail = fail

    async def send_json(self, payload: dict[str, Any]) -> None:
        if self._fail:
            raise RuntimeError("Cannot call send once a close message has been sent")
        await asyncio.sleep(0)
        self.sent.append(payload)


async def _settle() -> None:
    for _ in range(10):
        await asyncio.sleep(0)


@pytest.mark.anyio
async def test_frames_are_written_in_submission_order() -> None:
    websocket = DummyWebSocket()
    channel = WebSocketChannel(websocket, user_id="u1")  # type: ignore[arg-type]
    channel.start()

    for index in range(5):
        assert channel.send("tick", index) is True
    await channel.close()

    assert websocket.sent == [build_frame("tick", index) for index in range(5)]
    assert channel.is_open is False


@pytest.mark.anyio
async def test_send_does_not_block_when_queue_is_full() -> None:
    websocket = DummyWebSocket()
    channel = WebSocketChannel(websocket, queue_size=2)  # type: ignore[arg-type]

    assert channel.send("a", 1) is True
    assert channel.send("b", 2) is True
    assert channel.send("c", 3) is False
    assert realtime_dropped_events_total.value("backpressure") == 1.0
    await channel.close()


@pytest.mark.anyio
async def test_transport_failure_closes_channel() -> None:
    websocket = DummyWebSocket(fail=True)
    channel = WebSocketChannel(websocket, user_id="u1")  # type: ignore[arg-type]
    channel.start()

    assert channel.send("first", {}) is True
    await _settle()

    assert channel.is_open is False
    assert channel.send("second", {}) is False
    assert realtime_dropped_events_total.value("transport") == 1.0
    await channel.close()


@pytest.mark.anyio
async def test_send_to_disconnected_socket_is_dropped() -> None:
    websocket = DummyWebSocket()
    websocket.application_state = WebSocketState.DISCONNECTED
    channel = WebSocketChannel(websocket)  # type: ignore[arg-type]

    assert channel.send("late", {}) is False
    assert realtime_dropped_events_total.value("closed") == 1.0
    await channel.close()
