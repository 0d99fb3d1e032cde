"""Per-conversation typing indicators."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping

from app.monitoring.metrics import realtime_events_total, realtime_typing_conversations

from .channels import Channel
from .conversations import ChatType, ConversationRef, parse_conversation_id
from .dispatcher import FanoutDispatcher


logger = logging.getLogger(__name__)

TYPING_UPDATE_EVENT = "typingUpdate"


@dataclass(slots=True)
class TypingParticipant:
    """A user marked as typing plus whatever display metadata the client sent."""

    user_id: str
    info: dict[str, Any] = field(default_factory=dict)
    last_signal: float = field(default_factory=time.monotonic)

    def to_public(self) -> dict[str, Any]:
        return {**self.info, "userId": self.user_id}


class TypingAggregator:
    """Keep the set of typing users per conversation and push per-recipient views.

    A user is listed for a conversation only while their latest signal for it
    was a start that has not been matched by a stop, a disconnect or (when
    enabled) an idle expiry. Conversations with nobody typing are dropped.
    """

    def __init__(self, dispatcher: FanoutDispatcher) -> None:
        self._dispatcher = dispatcher
        self._typing: Dict[str, Dict[str, TypingParticipant]] = {}

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------
    def set_typing(
        self,
        conversation_id: str,
        user_id: str,
        is_typing: bool,
        *,
        info: Mapping[str, Any] | None = None,
    ) -> list[str]:
        """Apply a start/stop signal and dispatch the new views.

        Raises :class:`~chatline.realtime.conversations.InvalidConversationId`
        for identifiers that cannot be parsed.
        """

        ref = parse_conversation_id(conversation_id)
        key = ref.conversation_id
        if is_typing:
            bucket = self._typing.setdefault(key, {})
            participant = bucket.get(user_id)
            if participant is None:
                bucket[user_id] = TypingParticipant(user_id=user_id, info=dict(info or {}))
            else:
                participant.last_signal = time.monotonic()
                if info:
                    participant.info = dict(info)
        else:
            bucket = self._typing.get(key)
            if bucket is not None:
                bucket.pop(user_id, None)
                if not bucket:
                    self._typing.pop(key, None)

        realtime_events_total.labels("typing", "in", "start" if is_typing else "stop").inc()
        self._sync_gauge()
        self._dispatch(ref)
        return self.typing_users(key)

    def clear_user(self, user_id: str) -> list[str]:
        """Remove *user_id* from every conversation and re-dispatch each one."""

        affected = [key for key, bucket in self._typing.items() if user_id in bucket]
        for key in affected:
            bucket = self._typing[key]
            bucket.pop(user_id, None)
            if not bucket:
                self._typing.pop(key, None)
        self._sync_gauge()
        for key in affected:
            self._dispatch(parse_conversation_id(key))
        return affected

    def expire_idle(self, max_idle_seconds: float, *, now: float | None = None) -> list[str]:
        """Drop typing entries whose last start signal is older than the limit."""

        now = time.monotonic() if now is None else now
        affected: list[str] = []
        for key in list(self._typing):
            bucket = self._typing[key]
            stale = [uid for uid, entry in bucket.items() if now - entry.last_signal > max_idle_seconds]
            if not stale:
                continue
            for uid in stale:
                bucket.pop(uid, None)
            if not bucket:
                self._typing.pop(key, None)
            affected.append(key)
        if affected:
            logger.debug("Expired idle typing indicators", extra={"conversations": affected})
            self._sync_gauge()
            for key in affected:
                self._dispatch(parse_conversation_id(key))
        return affected

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------
    def typing_users(self, conversation_id: str) -> list[str]:
        return list(self._typing.get(conversation_id, {}))

    def conversations(self) -> frozenset[str]:
        return frozenset(self._typing)

    def __contains__(self, conversation_id: object) -> bool:
        return conversation_id in self._typing

    def view_for(self, conversation_id: str, recipient_id: str | None) -> list[TypingParticipant]:
        bucket = self._typing.get(conversation_id, {})
        return [entry for uid, entry in bucket.items() if uid != recipient_id]

    # ------------------------------------------------------------------
    # Dispatch helpers
    # ------------------------------------------------------------------
    def _payload(self, ref: ConversationRef, recipient_id: str | None) -> dict[str, Any]:
        view = self.view_for(ref.conversation_id, recipient_id)
        payload: dict[str, Any] = {
            "conversationId": ref.conversation_id,
            "chatType": ref.chat_type.value,
            "typingUsers": [entry.user_id for entry in view],
            "users": [entry.to_public() for entry in view],
        }
        if ref.group_id is not None:
            payload["groupId"] = ref.group_id
        return payload

    def _dispatch(self, ref: ConversationRef) -> None:
        if ref.chat_type is ChatType.DIRECT:
            for recipient_id in ref.participants:
                self._dispatcher.emit(recipient_id, TYPING_UPDATE_EVENT, self._payload(ref, recipient_id))
            return

        def build(channel: Channel) -> dict[str, Any]:
            return self._payload(ref, channel.user_id)

        self._dispatcher.emit_to_room_each(ref.group_id, TYPING_UPDATE_EVENT, build)

    def _sync_gauge(self) -> None:
        realtime_typing_conversations.set(len(self._typing))


__all__ = ["TYPING_UPDATE_EVENT", "TypingAggregator", "TypingParticipant"]
