"""Presence lookups for application code running outside the realtime process loop."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from app.api.deps import get_realtime
from app.schemas import OnlineUsersRead, UserPresenceRead
from chatline.realtime import RealtimeService

router = APIRouter(prefix="/presence", tags=["presence"])


@router.get("/online", response_model=OnlineUsersRead)
def list_online_users(realtime: RealtimeService = Depends(get_realtime)) -> OnlineUsersRead:
    """Return the ids of every user with a live realtime channel."""

    user_ids = realtime.online_user_ids()
    return OnlineUsersRead(user_ids=user_ids, count=len(user_ids))


@router.get("/{user_id}", response_model=UserPresenceRead)
def read_user_presence(
    user_id: str, realtime: RealtimeService = Depends(get_realtime)
) -> UserPresenceRead:
    return UserPresenceRead(user_id=user_id, online=realtime.is_online(user_id))
