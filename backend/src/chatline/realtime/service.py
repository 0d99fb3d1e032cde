"""Process-wide realtime service owning presence, rooms and typing state."""

from __future__ import annotations

import asyncio
import contextlib
import logging
from typing import Any

from .calls import CallRelay
from .channels import Channel
from .dispatcher import FanoutDispatcher
from .lifecycle import LifecycleController
from .registry import ConnectionRegistry
from .rooms import RoomMembership
from .typing_state import TypingAggregator


logger = logging.getLogger(__name__)


class RealtimeService:
    """Single owner of the realtime state for one process.

    All mutations happen on the event loop thread and run to completion
    without awaiting, so no locking is needed. The instance is created at
    application startup and handed to request handlers.
    """

    def __init__(
        self,
        *,
        typing_idle_timeout: float | None = None,
        typing_sweep_interval: float = 1.0,
    ) -> None:
        self.registry = ConnectionRegistry()
        self.rooms = RoomMembership()
        self.dispatcher = FanoutDispatcher(self.registry, self.rooms)
        self.typing = TypingAggregator(self.dispatcher)
        self.calls = CallRelay(self.dispatcher)
        self.lifecycle = LifecycleController(
            self.registry, self.rooms, self.dispatcher, self.typing, self.calls
        )
        self._typing_idle_timeout = typing_idle_timeout
        self._typing_sweep_interval = typing_sweep_interval
        self._sweeper: asyncio.Task[None] | None = None
        self._started = False

    @classmethod
    def from_settings(cls, settings: Any) -> "RealtimeService":
        return cls(
            typing_idle_timeout=settings.realtime_typing_idle_timeout_seconds,
            typing_sweep_interval=settings.realtime_typing_sweep_interval_seconds,
        )

    @property
    def started(self) -> bool:
        return self._started

    async def start(self) -> None:
        if self._started:
            return
        if self._typing_idle_timeout:
            self._sweeper = asyncio.create_task(self._sweep_typing(), name="realtime-typing-sweeper")
            logger.info(
                "Typing idle expiry enabled", extra={"timeout_seconds": self._typing_idle_timeout}
            )
        self._started = True

    async def stop(self) -> None:
        if self._sweeper is not None:
            self._sweeper.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._sweeper
            self._sweeper = None
        channels = self.registry.live_channels()
        for channel in channels:
            self.lifecycle.disconnect(channel)
        for channel in channels:
            with contextlib.suppress(Exception):
                await channel.close()
        self._started = False

    async def _sweep_typing(self) -> None:
        assert self._typing_idle_timeout is not None
        while True:
            await asyncio.sleep(self._typing_sweep_interval)
            try:
                self.typing.expire_idle(self._typing_idle_timeout)
            except Exception:
                logger.exception("Typing idle sweep failed")

    # ------------------------------------------------------------------
    # Channel lifecycle
    # ------------------------------------------------------------------
    def connect(self, channel: Channel) -> None:
        self.lifecycle.connect(channel)

    def disconnect(self, channel: Channel) -> None:
        self.lifecycle.disconnect(channel)

    def handle(self, channel: Channel, event: str, data: Any) -> bool:
        return self.lifecycle.handle(channel, event, data)

    # ------------------------------------------------------------------
    # Collaborator surface
    # ------------------------------------------------------------------
    def emit(self, user_id: str, event: str, payload: Any) -> bool:
        return self.dispatcher.emit(user_id, event, payload)

    def emit_to_room(self, group_id: str, event: str, payload: Any) -> int:
        return self.dispatcher.emit_to_room(group_id, event, payload)

    def is_online(self, user_id: str) -> bool:
        return self.dispatcher.is_online(user_id)

    def online_user_ids(self) -> list[str]:
        return self.lifecycle.online_snapshot()


__all__ = ["RealtimeService"]
