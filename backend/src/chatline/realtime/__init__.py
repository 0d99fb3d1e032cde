"""Presence, typing indicators and event fan-out for connected clients."""

from .calls import CallRelay  # noqa: F401
from .channels import Channel, WebSocketChannel  # noqa: F401
from .conversations import (  # noqa: F401
    ChatType,
    InvalidConversationId,
    direct_conversation_id,
    group_conversation_id,
    parse_conversation_id,
)
from .dispatcher import FanoutDispatcher  # noqa: F401
from .lifecycle import LifecycleController  # noqa: F401
from .registry import ConnectionRegistry  # noqa: F401
from .rooms import RoomMembership  # noqa: F401
from .service import RealtimeService  # noqa: F401
from .typing_state import TypingAggregator  # noqa: F401

__all__ = [
    "CallRelay",
    "Channel",
    "ChatType",
    "ConnectionRegistry",
    "FanoutDispatcher",
    "InvalidConversationId",
    "LifecycleController",
    "RealtimeService",
    "RoomMembership",
    "TypingAggregator",
    "WebSocketChannel",
    "direct_conversation_id",
    "group_conversation_id",
    "parse_conversation_id",
]
