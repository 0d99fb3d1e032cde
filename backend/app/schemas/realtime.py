"""Schemas for the realtime collaborator API."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field


class OnlineUsersRead(BaseModel):
    """Snapshot of users with a registered realtime channel."""

    user_ids: list[str] = Field(default_factory=list, description="Online user identifiers, sorted")
    count: int = Field(..., ge=0)


class UserPresenceRead(BaseModel):
    user_id: str
    online: bool


class EventPublish(BaseModel):
    """Named application event pushed to connected clients."""

    event: str = Field(..., min_length=1, max_length=64, description="Event name, e.g. newMessage")
    payload: Any = Field(default=None, description="JSON payload forwarded verbatim")


class EventDelivery(BaseModel):
    event: str
    delivered: int = Field(..., ge=0, description="Number of channels the event was queued on")
