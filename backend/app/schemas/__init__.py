"""Pydantic schemas for API payloads."""

from .realtime import EventDelivery, EventPublish, OnlineUsersRead, UserPresenceRead

__all__ = [
    "EventDelivery",
    "EventPublish",
    "OnlineUsersRead",
    "UserPresenceRead",
]
