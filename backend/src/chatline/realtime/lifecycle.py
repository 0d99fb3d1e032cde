"""Connect/disconnect hooks and routing of inbound realtime signals."""

from __future__ import annotations

import logging
from typing import Any, Callable

from pydantic import ValidationError

from app.monitoring.metrics import realtime_dropped_events_total, realtime_events_total

from .calls import CallRelay
from .channels import Channel
from .conversations import ChatType, InvalidConversationId, parse_conversation_id
from .dispatcher import FanoutDispatcher
from .registry import ConnectionRegistry
from .rooms import RoomMembership
from .signals import GroupRoomSignal, TypingSignal
from .typing_state import TypingAggregator


logger = logging.getLogger(__name__)

ONLINE_USERS_EVENT = "onlineUserIds"
PONG_EVENT = "pong"

JOIN_EVENTS = frozenset({"joinGroupRoom", "joinGroup"})
LEAVE_EVENTS = frozenset({"leaveGroupRoom", "leaveGroup"})


class LifecycleController:
    """Apply channel lifecycle transitions to the shared realtime state."""

    def __init__(
        self,
        registry: ConnectionRegistry,
        rooms: RoomMembership,
        dispatcher: FanoutDispatcher,
        typing: TypingAggregator,
        calls: CallRelay,
    ) -> None:
        self._registry = registry
        self._rooms = rooms
        self._dispatcher = dispatcher
        self._typing = typing
        self._calls = calls

    # ------------------------------------------------------------------
    # Presence
    # ------------------------------------------------------------------
    def online_snapshot(self) -> list[str]:
        return sorted(self._registry.online_user_ids())

    def broadcast_presence(self) -> int:
        return self._dispatcher.broadcast(ONLINE_USERS_EVENT, self.online_snapshot())

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------
    def connect(self, channel: Channel) -> None:
        self._registry.attach(channel)
        if channel.user_id is None:
            logger.info("Anonymous realtime channel connected", extra={"channel": channel.channel_id})
            channel.send(ONLINE_USERS_EVENT, self.online_snapshot())
            return
        self._registry.register(channel.user_id, channel)
        logger.info(
            "Realtime channel connected",
            extra={"channel": channel.channel_id, "user_id": channel.user_id},
        )
        self.broadcast_presence()

    def disconnect(self, channel: Channel) -> None:
        if not self._registry.is_attached(channel):
            logger.debug("Ignoring disconnect of detached channel", extra={"channel": channel.channel_id})
            return
        user_id = channel.user_id
        # A displaced channel leaves typing and presence to the newer one.
        owns_user = user_id is not None and self._registry.lookup(user_id) is channel
        steps: list[tuple[str, Callable[[], Any]]] = [
            ("unregister", lambda: self._unregister(channel)),
            ("rooms", lambda: self._rooms.leave_all(channel)),
        ]
        if owns_user:
            steps.append(("typing", lambda: self._typing.clear_user(user_id)))
            steps.append(("presence", self.broadcast_presence))

        for name, step in steps:
            try:
                step()
            except Exception:
                logger.exception(
                    "Realtime disconnect cleanup step failed",
                    extra={"step": name, "channel": channel.channel_id, "user_id": user_id},
                )
        logger.info(
            "Realtime channel disconnected",
            extra={"channel": channel.channel_id, "user_id": user_id},
        )

    def _unregister(self, channel: Channel) -> None:
        self._registry.detach(channel)
        if channel.user_id is not None:
            self._registry.unregister(channel.user_id, channel)

    # ------------------------------------------------------------------
    # Inbound signals
    # ------------------------------------------------------------------
    def handle(self, channel: Channel, event: str, data: Any) -> bool:
        """Route one inbound signal; malformed signals are logged and dropped."""

        try:
            handled = self._route(channel, event, data)
        except (ValidationError, InvalidConversationId, PermissionError) as exc:
            realtime_dropped_events_total.labels("malformed").inc()
            logger.warning(
                "Dropped malformed realtime signal",
                extra={"channel": channel.channel_id, "event": event, "error": str(exc)},
            )
            return False
        if handled:
            realtime_events_total.labels("signal", "in", event).inc()
        else:
            realtime_dropped_events_total.labels("unknown").inc()
            logger.warning(
                "Dropped unknown realtime signal",
                extra={"channel": channel.channel_id, "event": event},
            )
        return handled

    def _route(self, channel: Channel, event: str, data: Any) -> bool:
        if event == "typing":
            self._handle_typing(channel, TypingSignal.model_validate(data))
            return True
        if event in JOIN_EVENTS:
            signal = GroupRoomSignal.model_validate(data)
            if self._rooms.join(channel, signal.group_id):
                logger.debug(
                    "Channel joined group room",
                    extra={"channel": channel.channel_id, "group_id": signal.group_id},
                )
            return True
        if event in LEAVE_EVENTS:
            signal = GroupRoomSignal.model_validate(data)
            if self._rooms.leave(channel, signal.group_id):
                logger.debug(
                    "Channel left group room",
                    extra={"channel": channel.channel_id, "group_id": signal.group_id},
                )
            return True
        if self._calls.handles(event):
            self._calls.relay(channel, event, data)
            return True
        if event == "ping":
            channel.send(PONG_EVENT, {})
            return True
        return False

    def _handle_typing(self, channel: Channel, signal: TypingSignal) -> None:
        ref = parse_conversation_id(signal.conversation_id)
        if signal.chat_type is not None and signal.chat_type is not ref.chat_type:
            raise InvalidConversationId(
                f"Conversation '{signal.conversation_id}' is not a {signal.chat_type.value} chat"
            )
        # Identity comes from the handshake so disconnect cleanup can find it.
        user_id = channel.user_id
        if user_id is None:
            raise PermissionError("Anonymous channels cannot send typing signals")
        if ref.chat_type is ChatType.DIRECT and user_id not in ref.participants:
            raise PermissionError(f"User '{user_id}' is not a participant of '{ref.conversation_id}'")
        info = signal.user.display_metadata() if signal.user is not None else None
        self._typing.set_typing(ref.conversation_id, user_id, signal.is_typing, info=info)


__all__ = ["LifecycleController", "ONLINE_USERS_EVENT", "PONG_EVENT"]
