"""Fan-out of named events to user channels and group rooms."""

from __future__ import annotations

import logging
from typing import Any, Callable, Iterable

from app.monitoring.metrics import realtime_dropped_events_total, realtime_events_total

from .channels import Channel
from .registry import ConnectionRegistry
from .rooms import RoomMembership


logger = logging.getLogger(__name__)

PayloadBuilder = Callable[[Channel], Any]


class FanoutDispatcher:
    """Push events to live channels without waiting for delivery.

    Offline targets and transport failures are silent drops: nothing is
    queued for later and nothing is retried.
    """

    def __init__(self, registry: ConnectionRegistry, rooms: RoomMembership) -> None:
        self._registry = registry
        self._rooms = rooms

    def is_online(self, user_id: str) -> bool:
        return self._registry.is_online(user_id)

    def emit(self, user_id: str, event: str, payload: Any) -> bool:
        channel = self._registry.lookup(user_id)
        if channel is None:
            return False
        delivered = self._push(channel, event, payload)
        if delivered:
            realtime_events_total.labels("user", "out", event).inc()
        return delivered

    def emit_to_room(self, group_id: str, event: str, payload: Any) -> int:
        return self.emit_to_room_each(group_id, event, lambda _channel: payload)

    def emit_to_room_each(self, group_id: str, event: str, build: PayloadBuilder) -> int:
        """Push a per-channel payload to every channel subscribed to the room."""

        delivered = self._fan_out(self._rooms.members(group_id), event, build)
        if delivered:
            realtime_events_total.labels("room", "out", event).inc(delivered)
        return delivered

    def broadcast(self, event: str, payload: Any) -> int:
        delivered = self._fan_out(self._registry.live_channels(), event, lambda _channel: payload)
        if delivered:
            realtime_events_total.labels("broadcast", "out", event).inc(delivered)
        return delivered

    def _fan_out(self, channels: Iterable[Channel], event: str, build: PayloadBuilder) -> int:
        delivered = 0
        for channel in channels:
            try:
                payload = build(channel)
            except Exception:
                logger.exception(
                    "Failed to build realtime payload", extra={"channel": channel.channel_id, "event": event}
                )
                continue
            if self._push(channel, event, payload):
                delivered += 1
        return delivered

    @staticmethod
    def _push(channel: Channel, event: str, payload: Any) -> bool:
        try:
            return channel.send(event, payload)
        except Exception:
            realtime_dropped_events_total.labels("error").inc()
            logger.exception(
                "Unexpected error while pushing realtime event",
                extra={"channel": channel.channel_id, "event": event},
            )
            return False


__all__ = ["FanoutDispatcher", "PayloadBuilder"]
